"""Profile runtime — wires the profile store to the insight assembler.

This is the host-side entry point:
  - CatalogueHandle  (current immutable question pack)
  - profile store    (answers keyed by project id)
  - insights         (pure scoring and classification)

Usage:
    runtime = ProfileRuntime.from_settings()
    insights = runtime.assess_project("acme-payments", "payments")
    payload = insights.to_dict()
"""
from __future__ import annotations

from typing import Any, Mapping

from engine.config import Settings, load_settings
from engine.insights import build_profile_insights
from engine.profile_store import load_responses, save_profile
from question_packs.loader import CatalogueHandle, load_catalogue
from schemas.insights import ProfileInsights


class ProfileRuntime:
    """Scores stored project profiles against the current catalogue."""

    def __init__(self, handle: CatalogueHandle, store_dir: str):
        self.handle = handle
        self.store_dir = store_dir

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ProfileRuntime:
        settings = settings or load_settings()
        catalogue = load_catalogue(settings.catalogue_family, settings.catalogue_version)
        return cls(CatalogueHandle(catalogue), settings.store_dir)

    def save_answers(self, project_id: str, answers: Mapping[str, Any]) -> str:
        return save_profile(self.store_dir, project_id, dict(answers))

    def assess_answers(self, domain: str | None, answers: Mapping[str, Any]) -> ProfileInsights:
        # One snapshot per call: a concurrent reload cannot change it mid-way
        catalogue = self.handle.current()
        return build_profile_insights(catalogue, domain, answers)

    def assess_project(self, project_id: str, domain: str | None) -> ProfileInsights:
        return self.assess_answers(domain, load_responses(self.store_dir, project_id))
