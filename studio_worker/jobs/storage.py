"""
Object-store collaborator (Supabase Storage).

Used for one thing: rehosting inline ``data:`` reference images so the
provider can fetch them by URL. Every upload gets a fresh uuid-based key,
so concurrent calls never write the same object.
"""

import re
import uuid
import base64
import binascii
import logging
from typing import Optional

from supabase import Client, create_client

from .. import config
from .errors import MisconfigurationError, ReferenceAssetError

logger = logging.getLogger(__name__)

_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]*)*?);base64,(?P<data>.*)$", re.DOTALL)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


def is_data_uri(value: Optional[str]) -> bool:
    return bool(value) and value.lstrip().startswith("data:")


def decode_data_uri(value: str) -> tuple[bytes, str]:
    """Return (raw bytes, content type) for a base64 data URI."""
    match = _DATA_URI.match(value.strip())
    if not match:
        raise ReferenceAssetError("Reference asset is not a base64 data URI")
    content_type = match.group("mime") or "application/octet-stream"
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ReferenceAssetError(f"Reference asset is not valid base64: {e}") from e
    if not data:
        raise ReferenceAssetError("Reference asset is empty")
    return data, content_type


def reference_key(content_type: str) -> str:
    ext = _EXTENSIONS.get(content_type, "bin")
    return f"references/{uuid.uuid4().hex}.{ext}"


class SupabaseObjectStore:
    """Uploads bytes to a public bucket and returns the public URL."""

    def __init__(self, client: Optional[Client] = None, bucket: Optional[str] = None):
        self._client = client
        self.bucket = bucket or config.REFERENCE_BUCKET

    @property
    def client(self) -> Client:
        if self._client is None:
            if not config.storage_configured():
                raise MisconfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
            self._client = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
        return self._client

    def upload(self, data: bytes, content_type: str) -> str:
        key = reference_key(content_type)
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            path=key,
            file=data,
            file_options={"content-type": content_type},
        )
        public_url = bucket.get_public_url(key)
        logger.info(f"Rehosted reference asset: {public_url}")
        return public_url


class ReferenceAssets:
    """Turns a request's reference asset into something a provider can fetch."""

    def __init__(self, store=None):
        self.store = store or SupabaseObjectStore()

    def rehost(self, asset: Optional[str]) -> Optional[str]:
        """
        Upload inline assets and return their public URL; URLs pass through.

        Any failure degrades to ``None`` (generate without the reference)
        rather than failing the whole request.
        """
        if not asset:
            return None
        if not is_data_uri(asset):
            return asset
        try:
            data, content_type = decode_data_uri(asset)
            return self.store.upload(data, content_type)
        except Exception as e:
            logger.warning(f"Could not rehost reference asset, continuing without it: {e}")
            return None
