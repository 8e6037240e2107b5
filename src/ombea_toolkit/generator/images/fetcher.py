"""
Module: generator.images.fetcher

Purpose:
    Turn a question's image reference into bytes plus a file extension.
    References are HTTP(S) URLs (fetched with requests), local file
    paths, or raw bytes already resolved by the caller.

Key Functions:
    - fetch_image(): Resolve any reference to FetchedImage
    - normalize_url(): Rewrite share links into direct-download links

Key Classes:
    - FetchedImage: Raw bytes + extension hint
    - ImageFetchError: One reference could not be resolved

Dependencies:
    - requests: HTTP downloads

Used By:
    - generator.images.embedder
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0

MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/bmp": "bmp",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}


class ImageFetchError(Exception):
    """Image reference could not be downloaded or read."""
    pass


@dataclass(frozen=True)
class FetchedImage:
    """
    Raw image bytes (immutable).

    Attributes:
        data: Encoded image bytes
        extension: Extension from the HTTP content type or file name,
            None when nothing usable was known
        source: Human-readable origin for log messages
    """

    data: bytes
    extension: Optional[str] = None
    source: str = "<bytes>"


def normalize_url(url: str) -> str:
    """
    Rewrite share links into direct downloads.

    Example:
        >>> normalize_url("https://www.dropbox.com/s/abc/pic.png?dl=0")
        'https://www.dropbox.com/s/abc/pic.png?dl=1'
    """
    if "dropbox.com" in url:
        return url.replace("?dl=0", "?dl=1")
    return url


def _is_url(reference: str) -> bool:
    return reference.lower().startswith(("http://", "https://"))


def _download(url: str, timeout: float) -> FetchedImage:
    final_url = normalize_url(url)
    try:
        response = requests.get(final_url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise ImageFetchError(f"Download failed for {final_url}: {e}") from e

    content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
    if content_type and not content_type.startswith("image/"):
        logger.warning(f"Non-image content type {content_type!r} for {final_url}, trying anyway")
    return FetchedImage(
        data=response.content,
        extension=MIME_EXTENSIONS.get(content_type),
        source=final_url,
    )


def _read_file(path: Path) -> FetchedImage:
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageFetchError(f"Cannot read image file {path}: {e}") from e
    suffix = path.suffix.lower().lstrip(".")
    extension = "jpg" if suffix == "jpeg" else (suffix or None)
    return FetchedImage(data=data, extension=extension, source=str(path))


def fetch_image(
    reference: Union[str, bytes, Path],
    timeout: float = DEFAULT_TIMEOUT,
) -> FetchedImage:
    """
    Resolve an image reference to bytes.

    Args:
        reference: URL, file path, or raw bytes
        timeout: HTTP timeout in seconds

    Returns:
        FetchedImage

    Raises:
        ImageFetchError: If the reference is empty, unreachable or unreadable

    Example:
        >>> fetch_image(b"\\x89PNG...").source
        '<bytes>'
    """
    if isinstance(reference, (bytes, bytearray)):
        if not reference:
            raise ImageFetchError("Empty image bytes")
        return FetchedImage(data=bytes(reference))
    if isinstance(reference, Path):
        return _read_file(reference)
    if not isinstance(reference, str) or not reference.strip():
        raise ImageFetchError(f"Unsupported image reference: {reference!r}")
    reference = reference.strip()
    if _is_url(reference):
        return _download(reference, timeout)
    return _read_file(Path(reference))
