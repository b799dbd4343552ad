"""
Shared configuration management for the ISIL Tagger.
"""

import os
from pathlib import Path
from typing import Dict, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Nationwide KBART feeds appended to the reference list of an institution.
DEFAULT_PROVIDER_LINKS = {
    "DE-14": "https://dbod.de/SLUB-EZB-KBART.zip",
}

# Institutions whose holdings link may point to a plain ISSN allow-list; the
# value is a substring identifying such a link.
DEFAULT_ALLOW_LIST_MARKERS = {
    "DE-15-FID": "FID_ISSN_Filter",
}


def default_cache_dir() -> Path:
    """Return the per-user cache directory for holdings files."""
    base = os.environ.get("XDG_CACHE_HOME") or os.path.join(os.path.expanduser("~"), ".cache")
    return Path(base) / "isil-tagger"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="TAGGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )
    
    log_level: str = Field(default="info")


class TaggerSettings(BaseConfig):
    """Settings shared by all tagger components.

    Constructed once per process and passed to every component; there are
    no module level flags.
    """

    # Holdings cache
    cache_dir: Path = Field(default_factory=default_cache_dir)
    force_refresh: bool = Field(default=False)

    # Downloads
    download_timeout: float = Field(default=60.0)
    download_max_attempts: int = Field(default=5)
    download_base_delay: float = Field(default=1.0)
    download_max_delay: float = Field(default=30.0)
    download_error_policy: Literal["fail", "skip"] = Field(default="fail")

    # Stream processing
    workers: int = Field(default=16)
    batch_size: int = Field(default=2000)
    progress_interval: int = Field(default=100000)
    run_timeout: Optional[float] = Field(default=None)

    # Domain overrides
    provider_links: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PROVIDER_LINKS))
    allow_list_markers: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_ALLOW_LIST_MARKERS))


def get_settings(**overrides) -> TaggerSettings:
    """Get settings, with explicit values taking precedence over the environment."""
    return TaggerSettings(**{k: v for k, v in overrides.items() if v is not None})
