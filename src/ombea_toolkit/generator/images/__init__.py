"""
Module: generator.images

Purpose:
    Question image handling: fetch (URL, file or bytes), decode with
    Pillow, fit into the slide's picture area and store as media parts.

Key Functions:
    - embed_images(): Parallel fetch + decode for one generation batch
    - fit_image(): Aspect-preserving placement geometry
    - fetch_image(): Resolve one reference to bytes

Used By:
    - generator.controller
    - generator.slides.question_slide
"""

from .embedder import (
    IMAGE_AREA_HEIGHT,
    IMAGE_AREA_WIDTH,
    IMAGE_AREA_X,
    IMAGE_AREA_Y,
    EmbeddedImage,
    ImageBatchResult,
    ImagePlacement,
    decode_image,
    embed_images,
    fit_image,
    load_image,
    media_part_name,
    write_images,
)
from .fetcher import FetchedImage, ImageFetchError, fetch_image, normalize_url

__all__ = [
    "IMAGE_AREA_HEIGHT",
    "IMAGE_AREA_WIDTH",
    "IMAGE_AREA_X",
    "IMAGE_AREA_Y",
    "EmbeddedImage",
    "FetchedImage",
    "ImageBatchResult",
    "ImageFetchError",
    "ImagePlacement",
    "decode_image",
    "embed_images",
    "fetch_image",
    "fit_image",
    "load_image",
    "media_part_name",
    "normalize_url",
    "write_images",
]
