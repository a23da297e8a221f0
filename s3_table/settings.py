from __future__ import annotations
"""Application settings persistence helpers."""

from dataclasses import asdict, dataclass, replace
import json
import logging
import os
from pathlib import Path
from typing import Mapping

LOGGER = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"


@dataclass
class AppSettings:
    """Connection options for the storage service."""

    region: str = DEFAULT_REGION
    endpoint_url: str = ""
    max_listing_pages: int = 0


def apply_environment(settings: AppSettings, environ: Mapping[str, str] | None = None) -> AppSettings:
    """Return ``settings`` with region and endpoint overridden from AWS variables."""

    env = os.environ if environ is None else environ
    region = env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION")
    endpoint_url = env.get("AWS_ENDPOINT_URL_S3") or env.get("AWS_ENDPOINT_URL")
    overrides = {}
    if region:
        overrides["region"] = region.strip()
    if endpoint_url:
        overrides["endpoint_url"] = endpoint_url.strip()
    return replace(settings, **overrides) if overrides else settings


class SettingsStorage:
    """JSON-backed persistence for :class:`AppSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".pys3t_settings.json"
        self._path = Path(storage_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> AppSettings:
        if not self._path.exists():
            return AppSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            LOGGER.warning("Ignoring unreadable settings file %s", self._path)
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()

        region = data.get("region")
        if not isinstance(region, str) or not region.strip():
            region = AppSettings.region

        endpoint_url = data.get("endpoint_url")
        if not isinstance(endpoint_url, str):
            endpoint_url = AppSettings.endpoint_url

        max_pages = data.get("max_listing_pages", AppSettings.max_listing_pages)
        try:
            max_pages_value = int(max_pages)
        except (TypeError, ValueError):
            max_pages_value = AppSettings.max_listing_pages
        if max_pages_value < 0:
            max_pages_value = AppSettings.max_listing_pages

        return AppSettings(
            region=region.strip(),
            endpoint_url=endpoint_url.strip(),
            max_listing_pages=max_pages_value,
        )

    def save(self, settings: AppSettings) -> None:
        payload = asdict(settings)
        payload["region"] = (settings.region or "").strip() or DEFAULT_REGION
        payload["endpoint_url"] = (settings.endpoint_url or "").strip()
        payload["max_listing_pages"] = max(int(settings.max_listing_pages), 0)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            LOGGER.warning("Unable to write settings file %s", self._path)
