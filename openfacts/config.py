"""TOML configuration loader."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .credentials import DEFAULT_PRICES_API_URL

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]

DEFAULT_SESSION_URL = "https://world.openfoodfacts.org/cgi/session.pl"
DEFAULT_CACHE_PATH = "~/.cache/openfacts/products.db"


@dataclass
class ServiceConfig:
    app_name: str = "openfacts"
    app_url: str = ""
    languages: list[str] = field(default_factory=lambda: ["en"])
    enable_pricing: bool = True


@dataclass
class CatalogConfig:
    backend: str = "food"
    base_url: str = ""  # empty: the backend's public endpoint
    timeout: float = 20.0


@dataclass
class PricesConfig:
    api_url: str = DEFAULT_PRICES_API_URL
    session_url: str = DEFAULT_SESSION_URL
    credentials_path: str = ""  # empty: discover open_prices_credentials.json
    timeout: float = 20.0
    recent_days: int = 30
    recent_limit: int = 30


@dataclass
class CacheConfig:
    enabled: bool = True
    path: str = DEFAULT_CACHE_PATH
    max_age_days: int = 7

    @classmethod
    def production(cls) -> CacheConfig:
        return cls(enabled=True, max_age_days=7)

    @classmethod
    def development(cls) -> CacheConfig:
        return cls(enabled=True, max_age_days=1)

    @classmethod
    def minimal(cls) -> CacheConfig:
        return cls(enabled=False)


@dataclass
class OpenFactsConfig:
    service: ServiceConfig = field(default_factory=ServiceConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    prices: PricesConfig = field(default_factory=PricesConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    @property
    def user_agent(self) -> str:
        name = self.service.app_name
        if self.service.app_url:
            return f"{name} ({self.service.app_url})"
        return name


def load_config(path: str | Path | None = None) -> OpenFactsConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    ``OPENFACTS_LANGUAGES`` (comma separated) and ``OPEN_PRICES_API_URL``
    fill values the file does not set.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    svc = raw.get("service", {})
    cat = raw.get("catalog", {})
    prc = raw.get("prices", {})
    cch = raw.get("cache", {})

    # Resolve languages: config file → environment variable → default
    languages = svc.get("languages")
    if not languages:
        env_languages = os.environ.get("OPENFACTS_LANGUAGES", "")
        languages = [c.strip() for c in env_languages.split(",") if c.strip()]
    if not languages:
        languages = ["en"]

    api_url = prc.get("api_url", "") or os.environ.get(
        "OPEN_PRICES_API_URL", DEFAULT_PRICES_API_URL
    )

    return OpenFactsConfig(
        service=ServiceConfig(
            app_name=svc.get("app_name", "openfacts"),
            app_url=svc.get("app_url", ""),
            languages=list(languages),
            enable_pricing=svc.get("enable_pricing", True),
        ),
        catalog=CatalogConfig(
            backend=cat.get("backend", "food"),
            base_url=cat.get("base_url", ""),
            timeout=cat.get("timeout", 20.0),
        ),
        prices=PricesConfig(
            api_url=api_url.rstrip("/"),
            session_url=prc.get("session_url", DEFAULT_SESSION_URL),
            credentials_path=prc.get("credentials_path", ""),
            timeout=prc.get("timeout", 20.0),
            recent_days=prc.get("recent_days", 30),
            recent_limit=prc.get("recent_limit", 30),
        ),
        cache=CacheConfig(
            enabled=cch.get("enabled", True),
            path=cch.get("path", DEFAULT_CACHE_PATH),
            max_age_days=cch.get("max_age_days", 7),
        ),
    )
