"""Question pack loader — discovers and loads versioned questionnaire catalogues.

Usage:
    from question_packs.loader import load_catalogue, list_catalogues
    catalogue = load_catalogue("profile", "v1.0")
    catalogue.sections    # tuple[Section, ...], declaration order
    catalogue.questions   # tuple[Question, ...], declaration order

Integrity enforcement:
    Every ``load_catalogue()`` call runs ``validate_and_build_catalogue()``
    which validates raw JSON dicts and constructs frozen ``Section`` and
    ``Question`` instances.  If ANY definition is malformed or
    cross-references something that does not exist the loader raises
    ``CatalogueViolation`` and scoring never starts.

Version locking:
    The profile v1.0 pack is frozen.  A SHA-256 checksum of questions.json
    is verified at load time.  If the file changes without an explicit
    version bump the loader raises ``CataloguePackVersionError``.

Hot reload:
    ``CatalogueHandle`` publishes a new immutable ``ProfileCatalogue`` by
    swapping a single reference.  In-flight scoring calls keep the
    snapshot they started with.
"""
from __future__ import annotations

import hashlib
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from engine.catalogue_validator import validate_and_build_catalogue
from schemas.profile import Question, Section

_log = logging.getLogger(__name__)

# ── Version-locked checksums ──────────────────────────────────────
# SHA-256 of the canonical questions.json for each frozen version.
# If a pack is listed here, any content change requires an explicit
# version bump (new directory under question_packs/<family>/).
_FROZEN_CHECKSUMS: dict[str, str] = {
    "profile/v1.0": "6ad4ac68cc63fcb9",  # 50 questions, 8 sections
}


class CataloguePackVersionError(Exception):
    """Raised when a frozen question pack's checksum does not match."""
    pass


@dataclass(frozen=True)
class ProfileCatalogue:
    """An immutable catalogue snapshot.

    ``sections`` and ``questions`` keep declaration order; scoring output
    order depends on it.  ``document_sections`` maps document-section
    keys to their display titles (read-only).
    """
    pack_id: str
    version: str
    sections: tuple[Section, ...]
    questions: tuple[Question, ...]
    document_sections: Mapping[str, str] = field(default_factory=dict)
    checksum: str = ""

    def __post_init__(self) -> None:
        # Read-only copy: a published snapshot never shares a mutable mapping
        object.__setattr__(self, "document_sections", MappingProxyType(dict(self.document_sections)))

    def question(self, question_id: str) -> Question | None:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None

    def section(self, section_id: str) -> Section | None:
        for s in self.sections:
            if s.id == section_id:
                return s
        return None

    def document_section_label(self, key: str) -> str:
        return self.document_sections.get(key, key)

    def question_count(self) -> int:
        return len(self.questions)


def build_catalogue(
    raw_sections: list[dict[str, Any]],
    raw_questions: list[dict[str, Any]],
    document_sections: dict[str, str] | None = None,
    *,
    pack_id: str = "inline",
    version: str = "",
) -> ProfileCatalogue:
    """Validate in-memory definitions and return a catalogue snapshot.

    Used for fixture catalogues and by ``load_catalogue()``.  When no
    document-section vocabulary is given it is derived from the keys
    the definitions reference, each labelled with its own key.
    """
    if document_sections is None:
        document_sections = {}
        for raw in [*raw_sections, *raw_questions]:
            keys = raw.get("document_section_ids")
            if isinstance(keys, list):
                for key in keys:
                    if isinstance(key, str):
                        document_sections.setdefault(key, key)

    sections, questions = validate_and_build_catalogue(raw_sections, raw_questions, document_sections)
    return ProfileCatalogue(
        pack_id=pack_id,
        version=version,
        sections=sections,
        questions=questions,
        document_sections=dict(document_sections),
    )


PACKS_DIR = Path(__file__).parent


def list_catalogues() -> list[dict[str, str]]:
    """Discover all available question packs under question_packs/."""
    packs = []
    for manifest_path in PACKS_DIR.rglob("manifest.json"):
        try:
            with open(manifest_path, encoding="utf-8") as f:
                m = json.load(f)
        except (json.JSONDecodeError, OSError):
            continue
        packs.append({
            "pack_id": m.get("pack_id", "unknown"),
            "name": m.get("name", ""),
            "version": m.get("version", ""),
            "path": str(manifest_path.parent),
        })
    return packs


def load_catalogue(family: str = "profile", version: str = "v1.0") -> ProfileCatalogue:
    """
    Load a question pack by family and version.

    Flow:
      1. Read manifest, sections, questions and document-section JSON.
      2. ``validate_and_build_catalogue()`` validates raw dicts and
         constructs frozen definitions.
      3. Frozen packs have their questions.json checksum verified.

    Args:
        family: Pack family directory name (e.g. "profile")
        version: Version directory name (e.g. "v1.0")

    Returns:
        ProfileCatalogue with all definitions loaded.
    """
    pack_dir = PACKS_DIR / family / version

    manifest_path = pack_dir / "manifest.json"
    if not manifest_path.exists():
        raise FileNotFoundError(f"Question pack not found: {pack_dir}")
    with open(manifest_path, encoding="utf-8") as f:
        manifest = json.load(f)

    with open(pack_dir / manifest.get("sections_ref", "sections.json"), encoding="utf-8") as f:
        sections_data = json.load(f)

    questions_path = pack_dir / manifest.get("questions_ref", "questions.json")
    with open(questions_path, encoding="utf-8") as f:
        questions_data = json.load(f)

    with open(pack_dir / manifest.get("document_sections_ref", "document_sections.json"), encoding="utf-8") as f:
        document_sections = json.load(f).get("document_sections", {})

    catalogue = build_catalogue(
        sections_data.get("sections", []),
        questions_data.get("questions", []),
        document_sections,
        pack_id=manifest.get("pack_id", ""),
        version=manifest.get("version", ""),
    )

    # ── Version-lock guardrail ────────────────────────────────────
    with open(questions_path, "rb") as fb:
        checksum = hashlib.sha256(fb.read()).hexdigest()[:16]

    pack_key = f"{family}/{version}"
    expected = _FROZEN_CHECKSUMS.get(pack_key)
    if expected and checksum != expected:
        raise CataloguePackVersionError(
            f"Question pack '{pack_key}' is version-locked (expected checksum "
            f"{expected}, got {checksum}).  If you modified questions.json, "
            f"create a new version directory (e.g. {family}/v1.1/) and update "
            f"_FROZEN_CHECKSUMS in question_packs/loader.py."
        )
    if expected:
        _log.debug("Question pack %s: checksum verified (%s)", pack_key, checksum)

    _log.debug(
        "Loaded question pack %s: %d sections, %d questions",
        pack_key, len(catalogue.sections), len(catalogue.questions),
    )
    return ProfileCatalogue(
        pack_id=catalogue.pack_id,
        version=catalogue.version,
        sections=catalogue.sections,
        questions=catalogue.questions,
        document_sections=catalogue.document_sections,
        checksum=checksum,
    )


class CatalogueHandle:
    """Process-wide holder for the current catalogue snapshot.

    Readers call ``current()`` once per scoring call and use that
    snapshot throughout.  ``reload()`` builds the new snapshot fully
    before publishing it; a failed load leaves the old one in place.
    """

    def __init__(self, catalogue: ProfileCatalogue):
        self._catalogue = catalogue
        self._reload_lock = threading.Lock()

    def current(self) -> ProfileCatalogue:
        return self._catalogue

    def reload(self, family: str = "profile", version: str = "v1.0") -> ProfileCatalogue:
        with self._reload_lock:
            fresh = load_catalogue(family, version)
            previous = self._catalogue
            self._catalogue = fresh
        _log.info("Question pack reloaded: %s -> %s", previous.pack_id, fresh.pack_id)
        return fresh
