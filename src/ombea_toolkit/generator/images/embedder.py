"""
Module: generator.images.embedder

Purpose:
    Resolve question images in parallel, decode their natural size with
    Pillow, fit them into the slide's picture area and register them as
    media parts. Results are keyed by slide file number, so completion
    order never matters. One failing image never aborts the batch: the
    slide is generated without a picture and the failure is reported.

Key Functions:
    - fit_image(): Letterbox a picture inside the placement area
    - decode_image(): Natural size + extension from encoded bytes
    - embed_images(): Fetch and decode all images of a batch
    - media_part_name(): Archive path of a question image

Key Classes:
    - ImagePlacement: Picture geometry in EMU
    - EmbeddedImage: Decoded image ready to be written
    - ImageBatchResult: Images by slide file number + per-slide failures

Dependencies:
    - PIL: Image decoding
    - concurrent.futures (std): Parallel fetches

Used By:
    - generator.controller
    - generator.slides.question_slide
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from io import BytesIO
from typing import Dict, Tuple

from PIL import Image, UnidentifiedImageError

from ..package import PackageArchive
from .fetcher import DEFAULT_TIMEOUT, FetchedImage, ImageFetchError, fetch_image

logger = logging.getLogger(__name__)

# Picture area on a question slide (EMU)
IMAGE_AREA_X = 5486400
IMAGE_AREA_Y = 1600200
IMAGE_AREA_WIDTH = 3000000
IMAGE_AREA_HEIGHT = 3000000

# Pillow format -> media extension
PIL_FORMAT_EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "GIF": "gif",
    "BMP": "bmp",
    "WEBP": "webp",
}
DEFAULT_EXTENSION = "jpg"


@dataclass(frozen=True)
class ImagePlacement:
    """Picture offset and extent in EMU."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class EmbeddedImage:
    """
    A decoded question image (immutable).

    Attributes:
        file_number: Slide file number the image belongs to
        data: Encoded bytes, written unchanged
        extension: Media extension (png, jpg, ...)
        pixel_size: Natural (width, height) in pixels
        placement: Fitted geometry on the slide
    """

    file_number: int
    data: bytes
    extension: str
    pixel_size: Tuple[int, int]
    placement: ImagePlacement

    @property
    def media_part(self) -> str:
        return media_part_name(self.file_number, self.extension)

    @property
    def rels_target(self) -> str:
        """Target as written in the slide's relationship list."""
        return f"../media/image_q_slide{self.file_number}.{self.extension}"


@dataclass
class ImageBatchResult:
    """Images keyed by slide file number, plus per-slide failure messages."""

    images: Dict[int, EmbeddedImage] = field(default_factory=dict)
    failures: Dict[int, str] = field(default_factory=dict)


def media_part_name(file_number: int, extension: str) -> str:
    """
    Example:
        >>> media_part_name(7, "png")
        'ppt/media/image_q_slide7.png'
    """
    return f"ppt/media/image_q_slide{file_number}.{extension}"


def fit_image(
    width: int,
    height: int,
    area_x: int = IMAGE_AREA_X,
    area_y: int = IMAGE_AREA_Y,
    area_width: int = IMAGE_AREA_WIDTH,
    area_height: int = IMAGE_AREA_HEIGHT,
) -> ImagePlacement:
    """
    Fit a picture into the placement area, preserving its aspect ratio.

    The constraining axis fills the area; the other axis is centered
    in the remaining slack.

    Args:
        width: Natural width in pixels
        height: Natural height in pixels

    Returns:
        ImagePlacement in EMU

    Raises:
        ValueError: If either dimension is not positive

    Example:
        >>> fit_image(200, 100)
        ImagePlacement(x=5486400, y=2350200, width=3000000, height=1500000)
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive: {width}x{height}")

    image_ratio = width / height
    area_ratio = area_width / area_height
    if image_ratio > area_ratio:
        final_width = area_width
        final_height = round(final_width / image_ratio)
    else:
        final_height = area_height
        final_width = round(final_height * image_ratio)

    return ImagePlacement(
        x=area_x + round((area_width - final_width) / 2),
        y=area_y + round((area_height - final_height) / 2),
        width=final_width,
        height=final_height,
    )


def decode_image(fetched: FetchedImage) -> Tuple[Tuple[int, int], str]:
    """
    Decode natural size and pick the media extension.

    The extension known from the fetch (content type or file name) wins;
    otherwise Pillow's detected format decides, defaulting to jpg.

    Raises:
        ImageFetchError: If Pillow cannot identify the bytes
    """
    try:
        with Image.open(BytesIO(fetched.data)) as img:
            size = img.size
            detected = PIL_FORMAT_EXTENSIONS.get(img.format or "")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
        raise ImageFetchError(f"Cannot decode image from {fetched.source}: {e}") from e
    extension = fetched.extension or detected or DEFAULT_EXTENSION
    return size, extension


def load_image(
    file_number: int,
    reference,
    timeout: float = DEFAULT_TIMEOUT,
) -> EmbeddedImage:
    """
    Fetch, decode and fit one image.

    Raises:
        ImageFetchError: If any step fails
    """
    fetched = fetch_image(reference, timeout=timeout)
    (width, height), extension = decode_image(fetched)
    try:
        placement = fit_image(width, height)
    except ValueError as e:
        raise ImageFetchError(f"Unusable image from {fetched.source}: {e}") from e
    logger.debug(f"Slide {file_number}: image {width}x{height} from {fetched.source}")
    return EmbeddedImage(
        file_number=file_number,
        data=fetched.data,
        extension=extension,
        pixel_size=(width, height),
        placement=placement,
    )


def embed_images(
    references: Dict[int, object],
    workers: int = 4,
    timeout: float = DEFAULT_TIMEOUT,
) -> ImageBatchResult:
    """
    Resolve every image of a generation batch.

    Downloads run in a thread pool and are awaited together; each
    result lands under its slide file number.

    Args:
        references: Slide file number -> image reference
        workers: Maximum worker threads
        timeout: Per-request HTTP timeout in seconds

    Returns:
        ImageBatchResult; failed slides appear only in `failures`

    Example:
        >>> result = embed_images({4: "https://example.org/a.png"})
        >>> sorted(result.images) + sorted(result.failures)
        [4]
    """
    result = ImageBatchResult()
    if not references:
        return result

    if len(references) > 1 and workers > 1:
        with ThreadPoolExecutor(max_workers=min(workers, len(references))) as pool:
            future_map = {
                pool.submit(load_image, number, ref, timeout): number
                for number, ref in references.items()
            }
            for future in future_map:
                number = future_map[future]
                try:
                    result.images[number] = future.result()
                except ImageFetchError as e:
                    result.failures[number] = str(e)
    else:
        # Single image - no thread overhead
        for number, ref in references.items():
            try:
                result.images[number] = load_image(number, ref, timeout)
            except ImageFetchError as e:
                result.failures[number] = str(e)

    for number, message in sorted(result.failures.items()):
        logger.warning(f"Slide {number}: image skipped ({message})")
    logger.info(f"Images: {len(result.images)} embedded, {len(result.failures)} failed")
    return result


def write_images(archive: PackageArchive, images: Dict[int, EmbeddedImage]) -> Tuple[str, ...]:
    """Store media parts; returns the part names written."""
    written = []
    for number in sorted(images):
        image = images[number]
        archive.write(image.media_part, image.data)
        written.append(image.media_part)
    return tuple(written)
