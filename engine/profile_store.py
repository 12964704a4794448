"""Profile document store — one JSON document per project id.

Reference adapter for the answer-storage collaborator.  The scoring
engine never touches it; callers load a response map here and pass it
to ``engine.insights.build_profile_insights``.
"""
import hashlib
import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, StrictBool, StrictFloat, StrictInt, StrictStr, ValidationError

_log = logging.getLogger(__name__)

PROFILE_VERSION = 1

ProfileResponse = Union[StrictBool, StrictInt, StrictFloat, StrictStr, List[StrictStr]]


class ProfileDocument(BaseModel):
    """Persisted questionnaire answers for one project."""
    version: int = PROFILE_VERSION
    project_id: StrictStr
    responses: Dict[str, ProfileResponse] = Field(default_factory=dict)
    updated_at: Optional[str] = None


def _slugify(name: str) -> str:
    """Readable, filesystem-safe prefix of a project id (lossy)."""
    slug = re.sub(r"[^\w\s-]", "", name.strip())
    slug = re.sub(r"[\s]+", "_", slug)
    return slug[:64] or "unknown"


def profile_path(store_root, project_id):
    # Slugs collide ("acme/pay" vs "acmepay"); the digest keeps one file per id
    digest = hashlib.sha256(project_id.encode("utf-8")).hexdigest()[:16]
    return os.path.join(store_root, f"{_slugify(project_id)}-{digest}.json")


def save_profile(store_root, project_id, responses) -> str:
    doc = ProfileDocument(
        project_id=project_id,
        responses=responses,
        updated_at=datetime.now(timezone.utc).isoformat(),
    )
    os.makedirs(store_root, exist_ok=True)
    path = profile_path(store_root, project_id)

    # Write-then-rename so readers never see a half-written document
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(doc.model_dump_json(indent=2))
    os.replace(tmp, path)
    return path


def load_profile(store_root, project_id) -> Optional[ProfileDocument]:
    """Return the stored document, or None if absent or unreadable."""
    path = profile_path(store_root, project_id)
    if not os.path.isfile(path):
        return None
    doc = _read_document(path)
    if doc is not None and doc.project_id != project_id:
        _log.warning("Profile document %s belongs to '%s', not '%s'", path, doc.project_id, project_id)
        return None
    return doc


def _read_document(path) -> Optional[ProfileDocument]:
    try:
        with open(path, encoding="utf-8") as f:
            return ProfileDocument.model_validate(json.load(f))
    except (json.JSONDecodeError, ValidationError, OSError) as exc:
        _log.warning("Ignoring unreadable profile document %s: %s", path, exc)
        return None


def load_responses(store_root, project_id) -> Dict[str, ProfileResponse]:
    doc = load_profile(store_root, project_id)
    return dict(doc.responses) if doc else {}


def list_profiles(store_root) -> List[str]:
    """Return the project ids with a readable stored profile, sorted."""
    if not os.path.isdir(store_root):
        return []
    ids = []
    for name in os.listdir(store_root):
        if not name.endswith(".json"):
            continue
        doc = _read_document(os.path.join(store_root, name))
        if doc is not None:
            ids.append(doc.project_id)
    return sorted(ids)
