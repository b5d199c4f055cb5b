"""
Image payload handling and storage.

Images arrive as base64 strings, optionally with a ``data:<mime>;base64,``
prefix. Stored submissions only ever reference images by URL.
"""

import base64
import binascii
import logging
import mimetypes
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"

_DATA_URI = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.S
)


class InvalidImageError(ValueError):
    """Raised when an image payload is not valid base64."""


@dataclass(frozen=True, slots=True)
class ImagePayload:
    """A base64 image split from its optional data-URI prefix."""

    data: str
    media_type: str = DEFAULT_IMAGE_MIME

    def to_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidImageError("Image is not valid base64") from e


def split_data_uri(image: str) -> ImagePayload:
    """
    Split ``data:image/png;base64,AAAA`` into media type and data.

    Bare base64 is assumed to be JPEG.
    """
    image = image.strip()
    match = _DATA_URI.match(image)
    if match is None:
        return ImagePayload(data=image)
    return ImagePayload(
        data=match.group("data").strip(),
        media_type=match.group("mime") or DEFAULT_IMAGE_MIME,
    )


def is_image_payload(value: str) -> bool:
    """True for data URIs; plain http(s) or relative URLs are references."""
    return value.startswith("data:")


class ImageStore(Protocol):
    """Object storage contract: put bytes, get back a URL."""

    def put(self, data: bytes, content_type: str) -> str: ...

    def delete(self, url: str) -> None: ...


class LocalImageStore:
    """Stores images under a directory served at ``base_url``."""

    def __init__(self, root: Path, base_url: str) -> None:
        self._root = root
        self._base_url = base_url.rstrip("/")

    def put(self, data: bytes, content_type: str) -> str:
        extension = mimetypes.guess_extension(content_type) or ".bin"
        name = f"{uuid.uuid4().hex}{extension}"
        self._root.mkdir(parents=True, exist_ok=True)
        (self._root / name).write_bytes(data)
        logger.debug("Stored image %s (%d bytes)", name, len(data))
        return f"{self._base_url}/{name}"

    def delete(self, url: str) -> None:
        """Remove an image stored here; URLs from elsewhere are ignored."""
        prefix = f"{self._base_url}/"
        name = url.removeprefix(prefix)
        if not url.startswith(prefix) or Path(name).name != name or name in ("", "..", "."):
            return
        (self._root / name).unlink(missing_ok=True)
        logger.debug("Deleted image %s", url)


def upload_image(store: ImageStore, image: str) -> str:
    """
    Upload a data-URI image and return its URL.

    Values that already are references are returned unchanged.
    """
    if not is_image_payload(image):
        return image
    payload = split_data_uri(image)
    return store.put(payload.to_bytes(), payload.media_type)
