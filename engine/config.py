"""Runtime settings read from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    catalogue_family: str = "profile"
    catalogue_version: str = "v1.0"
    store_dir: str = os.path.join("out", "profiles")


def load_settings() -> Settings:
    defaults = Settings()
    return Settings(
        catalogue_family=os.environ.get("PROFILE_CATALOGUE_FAMILY", defaults.catalogue_family),
        catalogue_version=os.environ.get("PROFILE_CATALOGUE_VERSION", defaults.catalogue_version),
        store_dir=os.environ.get("PROFILE_STORE_DIR", defaults.store_dir),
    )
