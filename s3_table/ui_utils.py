from __future__ import annotations
"""UI-agnostic helpers for formatting and command generation."""
from dataclasses import dataclass
from datetime import datetime
from importlib.metadata import PackageNotFoundError, metadata, version

from .models import SORT_ASCENDING, SORT_BY_KEY, SORT_BY_LAST_MODIFIED, SORT_BY_SIZE

DIST_NAME = "pys3t"

COLUMN_SORT_KEYS = (SORT_BY_KEY, SORT_BY_SIZE, SORT_BY_LAST_MODIFIED)
COLUMN_TITLES = ("Name", "Size", "Last Modified", "Access")


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    summary: str
    homepage: str | None
    repository: str | None
    author: str | None


def load_package_info(dist_name: str = DIST_NAME) -> PackageInfo:
    try:
        distribution_metadata = metadata(dist_name)
        package_version = version(dist_name)
    except PackageNotFoundError:
        return PackageInfo(
            name="S3 Table Browser",
            version="",
            summary="Search, sort and page through the objects of an S3 bucket.",
            homepage=None,
            repository=None,
            author=None,
        )
    summary = distribution_metadata.get("Summary") or ""
    author = distribution_metadata.get("Author") or distribution_metadata.get("Author-email")
    homepage = distribution_metadata.get("Home-page")
    repository = None
    for entry in distribution_metadata.get_all("Project-URL") or []:
        label, _, link = entry.partition(",")
        label = label.strip().lower()
        url = link.strip()
        if label == "repository":
            repository = url
        elif label == "homepage" and not homepage:
            homepage = url
    return PackageInfo(
        name=distribution_metadata.get("Name"),
        version=package_version,
        summary=summary,
        homepage=homepage or None,
        repository=repository,
        author=author or None,
    )


def format_size(size: int | None) -> str:
    if size is None:
        return "-"
    suffixes = ["B", "KB", "MB", "GB", "TB"]
    value = float(max(size, 0))
    for suffix in suffixes:
        if value < 1024 or suffix == suffixes[-1]:
            return f"{value:.1f} {suffix}" if suffix != "B" else f"{int(value)} {suffix}"
        value /= 1024
    return f"{size} B"


def format_last_modified(last_modified: datetime | None) -> str:
    if not last_modified:
        return "-"
    return last_modified.astimezone().strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def sort_indicator(column_key: str, sort_key: str, direction: str) -> str:
    if column_key != sort_key:
        return ""
    return " ▲" if direction == SORT_ASCENDING else " ▼"


def describe_count(total_filtered: int, total_objects: int, search_term: str) -> str:
    if search_term:
        return f"Current Objects: {total_filtered} of {total_objects}"
    return f"Current Objects: {total_filtered}"


def suggest_command_filename(key: str) -> str:
    cleaned = key.strip().rstrip("/")
    if not cleaned:
        return "local-file"
    name = cleaned.rsplit("/", 1)[-1]
    return name or "local-file"


def build_signed_url_commands(*, url: str, filename: str) -> tuple[str, str]:
    wget_cmd = f'wget "{url}" -O "{filename}"'
    curl_cmd = f'curl -L "{url}" -o "{filename}"'
    return wget_cmd, curl_cmd
