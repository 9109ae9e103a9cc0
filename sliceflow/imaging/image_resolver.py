"""
Source image acquisition and true pixel dimensions.

Stored queue item dimensions can be stale (1x vs 2x exports), so the
resolver reads the real width and height from the image header and
reports when the stored values need correcting.
"""

import io
import struct
from typing import Optional, Tuple

import requests
from PIL import Image, UnidentifiedImageError

from sliceflow.core.config import get_config_value
from sliceflow.core.constants import (
    DEFAULT_HEADER_RANGE_BYTES,
    DEFAULT_IMAGE_FETCH_TIMEOUT,
    STEP_FETCHING_IMAGE,
)
from sliceflow.core.error_handler import FetchFailure
from sliceflow.core.logging_config import get_logger
from sliceflow.core.models import QueueItem

logger = get_logger(__name__)

PNG_SIGNATURE = b"\x89PNG"
JPEG_SOI = b"\xff\xd8"
# Baseline and progressive start-of-frame markers carry the frame size
JPEG_SOF_MARKERS = (0xC0, 0xC2)
# Standalone markers without a length field
JPEG_STANDALONE_MARKERS = {0x01, 0xD8, 0xD9} | set(range(0xD0, 0xD8))


def _png_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
    if len(data) < 24:
        return None
    width, height = struct.unpack(">II", data[16:24])
    return width, height


def _jpeg_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
    offset = 2
    while offset + 9 <= len(data):
        if data[offset] != 0xFF:
            offset += 1
            continue

        marker = data[offset + 1]
        if marker in JPEG_SOF_MARKERS:
            height, width = struct.unpack(">HH", data[offset + 5:offset + 9])
            return width, height

        if marker == 0xFF or marker in JPEG_STANDALONE_MARKERS:
            offset += 1
            continue

        segment_length = struct.unpack(">H", data[offset + 2:offset + 4])[0]
        offset += 2 + segment_length

    return None


def parse_image_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
    """
    Read width and height from a PNG IHDR chunk or a JPEG start-of-frame marker.

    Args:
        data (bytes): Leading bytes of the image file

    Returns:
        Optional[Tuple[int, int]]: (width, height), or None if not found
    """
    if data.startswith(PNG_SIGNATURE):
        return _png_dimensions(data)
    if data.startswith(JPEG_SOI):
        return _jpeg_dimensions(data)
    return None


def _pillow_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
    # Image.open only parses the header; pixel data is never decoded here
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.size
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Pillow could not identify image: {e}")
        return None


class ResolvedImage:
    """
    The source image with its true dimensions.

    Attributes:
        url: Image reference.
        width: Actual pixel width.
        height: Actual pixel height.
        corrected: True if the stored dimensions differed and must be persisted.
    """

    def __init__(self, url: str, width: int, height: int, corrected: bool = False):
        self.url = url
        self.width = width
        self.height = height
        self.corrected = corrected

    def __repr__(self) -> str:
        return f"ResolvedImage({self.width}x{self.height}, corrected={self.corrected})"


class ImageResolver:
    """
    Fetches image headers and derives actual pixel dimensions.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        header_range_bytes: Optional[int] = None,
        timeout: Optional[float] = None
    ):
        self.session = session or requests.Session()
        self.header_range_bytes = header_range_bytes or get_config_value(
            "image.header_range_bytes", DEFAULT_HEADER_RANGE_BYTES
        )
        self.timeout = timeout or get_config_value("image.fetch_timeout", DEFAULT_IMAGE_FETCH_TIMEOUT)

    def _get(self, url: str, headers: Optional[dict] = None) -> requests.Response:
        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to fetch image {url[:80]}: {e}")
            raise FetchFailure(f"Failed to fetch image: {e}", step=STEP_FETCHING_IMAGE)

    def read_dimensions(self, url: str) -> Tuple[int, int]:
        """
        Determine the true pixel dimensions of a hosted image.

        Reads only the first header_range_bytes when the server honours
        range requests, and falls back to one full fetch otherwise.

        Args:
            url (str): Image reference

        Returns:
            Tuple[int, int]: (width, height)

        Raises:
            FetchFailure: If the image is unreachable or its size cannot be read
        """
        response = self._get(url, headers={"Range": f"bytes=0-{self.header_range_bytes - 1}"})
        data = response.content
        dimensions = parse_image_dimensions(data)

        if dimensions is None and response.status_code == 206:
            logger.info("Image header did not contain dimensions, fetching full image")
            data = self._get(url).content
            dimensions = parse_image_dimensions(data)

        if dimensions is None:
            dimensions = _pillow_dimensions(data)

        if not dimensions or dimensions[0] <= 0 or dimensions[1] <= 0:
            raise FetchFailure("Could not read image dimensions", step=STEP_FETCHING_IMAGE)

        return dimensions

    def resolve(self, item: QueueItem) -> ResolvedImage:
        """
        Resolve a queue item's image and compare against its stored dimensions.

        Args:
            item (QueueItem): Queue item with image_url and nominal dimensions

        Returns:
            ResolvedImage: Image with actual dimensions

        Raises:
            FetchFailure: If the item has no image or the image cannot be read
        """
        if not item.image_url:
            raise FetchFailure("Queue item has no image_url", step=STEP_FETCHING_IMAGE)

        width, height = self.read_dimensions(item.image_url)
        corrected = (width, height) != (item.image_width, item.image_height)

        if corrected:
            logger.warning(
                f"Stored dimensions {item.image_width}x{item.image_height} differ from "
                f"actual {width}x{height}, correcting"
            )
        else:
            logger.info(f"Image dimensions confirmed: {width}x{height}")

        return ResolvedImage(item.image_url, width, height, corrected=corrected)
