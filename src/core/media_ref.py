"""
Media references: where a record's image actually lives.

Records persist a single string per image. This module turns that string
into one of three tagged variants and back:

    LocalRef(path)         on-device file (file:// URI or absolute path)
    RemoteRef(url)         http(s) URL, possibly a signed one
    InlineRef(uri)         data: URI carrying the image bytes

Anything else (no scheme, relative) is an object-store key and parses to
``None`` via ``parse_media_ref``; use ``is_object_key`` to test for it.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import parse_qs, unquote, urlparse

# Query parameters that mark a URL as time-bounded (S3 v4 and v2 signing)
SIGNING_PARAMS = frozenset({
    "x-amz-signature",
    "x-amz-credential",
    "x-amz-expires",
    "signature",
    "expires",
})


@dataclass(frozen=True)
class LocalRef:
    path: str

    def to_str(self) -> str:
        return self.path


@dataclass(frozen=True)
class RemoteRef:
    url: str

    @property
    def is_signed(self) -> bool:
        """True when the URL carries signing parameters and may expire."""
        query = parse_qs(urlparse(self.url).query, keep_blank_values=True)
        return any(name.lower() in SIGNING_PARAMS for name in query)

    def to_str(self) -> str:
        return self.url


@dataclass(frozen=True)
class InlineRef:
    """
    A data: URI kept as written.

    The payload is only decoded when ``data`` is read, so classifying or
    checking a reference never touches the image bytes.
    """

    uri: str

    @classmethod
    def from_bytes(cls, data: bytes, mime: str = "image/jpeg") -> "InlineRef":
        encoded = base64.b64encode(data).decode("ascii")
        return cls(f"data:{mime};base64,{encoded}")

    @property
    def _header(self) -> str:
        return self.uri.partition(",")[0][len("data:"):]

    @property
    def mime(self) -> str:
        return self._header.split(";", 1)[0] or "application/octet-stream"

    @property
    def data(self) -> bytes:
        """Decoded payload. Raises ValueError when the URI is malformed."""
        _, sep, payload = self.uri.partition(",")
        if not sep:
            raise ValueError("data: URI has no payload separator")
        if ";base64" not in self._header:
            return unquote(payload).encode("utf-8")
        payload = "".join(payload.split())
        # Tolerate missing padding
        payload += "=" * (-len(payload) % 4)
        try:
            return base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e

    def to_str(self) -> str:
        return self.uri


MediaRef = Union[LocalRef, RemoteRef, InlineRef]


def parse_media_ref(value: Optional[str]) -> Optional[MediaRef]:
    """Parse a persisted reference string by its prefix. Returns None for object keys."""
    if not value:
        return None
    lowered = value.lower()
    if lowered.startswith(("http://", "https://")):
        return RemoteRef(value)
    if lowered.startswith("data:"):
        return InlineRef(value)
    if lowered.startswith("file://"):
        return LocalRef(value)
    if value.startswith("/"):
        return LocalRef(value)
    return None


def is_object_key(value: Optional[str]) -> bool:
    """An object key is any non-empty reference that isn't a path, URL or data URI."""
    return bool(value) and parse_media_ref(value) is None


def local_path(ref: LocalRef) -> str:
    """Filesystem path for a local reference (strips the file:// scheme)."""
    if ref.path.lower().startswith("file://"):
        return unquote(urlparse(ref.path).path)
    return ref.path


def object_key_from_url(url: str, bucket_name: Optional[str] = None) -> Optional[str]:
    """
    Recover the object key from an object-store URL.

    Virtual-hosted URLs carry the key as the whole path. Path-style URLs
    (``https://<account>.r2.cloudflarestorage.com/<bucket>/<key>``) start
    with the bucket segment, which is dropped when it matches ``bucket_name``.
    """
    path = unquote(urlparse(url).path).lstrip("/")
    if not path:
        return None
    if bucket_name and path.startswith(f"{bucket_name}/"):
        path = path[len(bucket_name) + 1:]
    return path or None
