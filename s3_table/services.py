from __future__ import annotations
"""Business logic for listing bucket inventories and signing object URLs."""
from datetime import datetime, timezone
import logging
from typing import Callable

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .models import Inventory, ObjectMeta
from .settings import AppSettings

LOGGER = logging.getLogger(__name__)

URL_EXPIRY_SECONDS = 3600

_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


class FetchError(RuntimeError):
    """Raised when a bucket inventory cannot be retrieved in full."""

    def __init__(self, bucket: str, message: str):
        super().__init__(message)
        self.bucket = bucket


class SignError(RuntimeError):
    """Raised when a signed URL cannot be issued for one object."""

    def __init__(self, bucket: str, key: str, message: str):
        super().__init__(message)
        self.bucket = bucket
        self.key = key


def normalize_entry(bucket_name: str, entry: dict) -> ObjectMeta:
    """Convert one ``list_objects_v2`` ``Contents`` entry into :class:`ObjectMeta`.

    Raises:
        FetchError: when the entry is missing a key, size or timestamp.
    """

    missing = [field for field in ("Key", "Size", "LastModified") if entry.get(field) is None]
    if missing:
        raise FetchError(
            bucket_name,
            f"Malformed listing entry in bucket '{bucket_name}': missing {', '.join(missing)}",
        )

    key = entry["Key"]
    if not isinstance(key, str) or not key:
        raise FetchError(bucket_name, f"Malformed listing entry in bucket '{bucket_name}': empty key")

    size = entry["Size"]
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise FetchError(bucket_name, f"Malformed listing entry '{key}': invalid size {size!r}")

    return ObjectMeta(key=key, size=size, last_modified=_parse_timestamp(bucket_name, key, entry["LastModified"]))


def _parse_timestamp(bucket_name: str, key: str, value: object) -> datetime:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            value = None
    if not isinstance(value, datetime):
        raise FetchError(bucket_name, f"Malformed listing entry '{key}': invalid timestamp")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3TableService:
    """Encapsulates S3 calls independent of any UI technology."""

    def __init__(
        self,
        client_factory: Callable[..., object] | None = None,
        settings: AppSettings | None = None,
    ):
        self._client_factory = client_factory or boto3.client
        self._settings = settings or AppSettings()

    @property
    def settings(self) -> AppSettings:
        return self._settings

    def configure(self, settings: AppSettings) -> None:
        self._settings = settings

    def fetch_inventory(self, bucket_name: str) -> Inventory:
        """Return every object in ``bucket_name``.

        Continuation tokens are followed until the service reports the listing
        is complete, or until ``max_listing_pages`` requests have been made, in
        which case the inventory is flagged as truncated.

        Raises:
            FetchError: when a request fails or any entry is malformed.
        """

        client = self._create_client()
        max_pages = max(self._settings.max_listing_pages, 0)
        objects: list[ObjectMeta] = []
        request_token: str | None = None
        requests_made = 0
        truncated = False

        while True:
            list_params = {"Bucket": bucket_name}
            if request_token:
                list_params["ContinuationToken"] = request_token
            try:
                response = client.list_objects_v2(**list_params)
            except (ClientError, BotoCoreError) as exc:
                raise FetchError(bucket_name, str(exc)) from exc
            requests_made += 1

            objects.extend(normalize_entry(bucket_name, entry) for entry in response.get("Contents", []))

            if not response.get("IsTruncated", False):
                break
            response_token = response.get("NextContinuationToken")
            if not response_token:
                LOGGER.warning("Listing for '%s' truncated without a continuation token", bucket_name)
                truncated = True
                break
            if max_pages and requests_made >= max_pages:
                truncated = True
                break
            request_token = response_token

        LOGGER.debug(
            "Fetched %d object(s) from '%s' in %d request(s)%s",
            len(objects),
            bucket_name,
            requests_made,
            " (truncated)" if truncated else "",
        )
        return Inventory(bucket=bucket_name, objects=tuple(objects), truncated=truncated)

    def generate_presigned_url(
        self,
        *,
        bucket_name: str,
        key: str,
        expires_in: int = URL_EXPIRY_SECONDS,
    ) -> str:
        """Create a presigned GET URL for one object.

        The object is checked with ``head_object`` first so a key that no
        longer exists is reported instead of signed.

        Raises:
            SignError: when the object is missing, access is denied or the
                service cannot be reached.
        """

        if not key:
            raise ValueError("key cannot be empty")
        if expires_in <= 0:
            raise ValueError("expires_in must be greater than zero")

        client = self._create_client()
        try:
            client.head_object(Bucket=bucket_name, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_OBJECT_CODES:
                raise SignError(bucket_name, key, f"Object '{key}' no longer exists in '{bucket_name}'") from exc
            raise SignError(bucket_name, key, str(exc)) from exc
        except BotoCoreError as exc:
            raise SignError(bucket_name, key, str(exc)) from exc

        try:
            return client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket_name, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as exc:
            raise SignError(bucket_name, key, str(exc)) from exc

    def _create_client(self):
        config = Config(signature_version="s3v4")
        client_kwargs = {"region_name": self._settings.region or None, "config": config}
        if self._settings.endpoint_url:
            client_kwargs["endpoint_url"] = self._settings.endpoint_url
        return self._client_factory("s3", **client_kwargs)
