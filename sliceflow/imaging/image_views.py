"""
Resized and cropped views of a hosted image, expressed as CDN URLs.

Both supported CDNs transform images from URL parameters, so building a
view never downloads or decodes the image.
"""

import re
from typing import Optional, Tuple

from sliceflow.core.constants import DEFAULT_CROP_QUALITY
from sliceflow.core.logging_config import get_logger

logger = get_logger(__name__)

IMAGEKIT_PATTERN = re.compile(r"^(https?://ik\.imagekit\.io/[^/]+)/(.+)$")
CLOUDINARY_UPLOAD_SEGMENT = "/upload/"


def expected_resize_dimensions(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Dimensions a limit-style resize produces: aspect ratio kept, never enlarged.

    Args:
        width (int): Source width
        height (int): Source height
        max_width (int): Width bound
        max_height (int): Height bound

    Returns:
        Tuple[int, int]: Resulting (width, height)
    """
    scale = min(1.0, max_width / width, max_height / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


class ImageViewBuilder:
    """
    Builds resize and crop view references for ImageKit and Cloudinary URLs.
    """

    def __init__(self, crop_quality: int = DEFAULT_CROP_QUALITY):
        self.crop_quality = crop_quality

    @staticmethod
    def is_imagekit(url: str) -> bool:
        return bool(url) and "ik.imagekit.io" in url

    @staticmethod
    def is_cloudinary(url: str) -> bool:
        return bool(url) and "cloudinary.com/" in url and CLOUDINARY_UPLOAD_SEGMENT in url

    def supports(self, url: str) -> bool:
        """Whether views can be derived from this URL."""
        return self.is_imagekit(url) or self.is_cloudinary(url)

    def resize(self, url: str, max_width: int, max_height: int) -> str:
        """
        Reference to the image shrunk to fit within the bounds.

        Unsupported hosts get the original reference back.

        Args:
            url (str): Image reference
            max_width (int): Width bound
            max_height (int): Height bound

        Returns:
            str: View reference
        """
        if self.is_imagekit(url):
            match = IMAGEKIT_PATTERN.match(url)
            if match:
                base, path = match.groups()
                return f"{base}/tr:w-{max_width},h-{max_height},c-at_max/{path}"
            return url

        if self.is_cloudinary(url):
            before, after = self._split_cloudinary(url)
            return f"{before}c_limit,w_{max_width},h_{max_height}/{after}"

        logger.debug(f"No resize transform for host of {url[:80]}")
        return url

    def crop(self, url: str, x: int, y: int, width: int, height: int) -> Optional[str]:
        """
        Reference to a rectangular region of the image in original pixels.

        Args:
            url (str): Image reference
            x (int): Left edge
            y (int): Top edge
            width (int): Region width
            height (int): Region height

        Returns:
            Optional[str]: View reference, or None if the host cannot crop
        """
        x, y, width, height = (int(round(v)) for v in (x, y, width, height))

        if self.is_imagekit(url):
            match = IMAGEKIT_PATTERN.match(url)
            if match:
                base, path = match.groups()
                return f"{base}/tr:x-{x},y-{y},w-{width},h-{height},cm-extract/{path}"

        if self.is_cloudinary(url):
            before, after = self._split_cloudinary(url)
            return (
                f"{before}c_crop,x_{x},y_{y},w_{width},h_{height},"
                f"q_{self.crop_quality},f_jpg/{after}"
            )

        logger.warning(f"Cannot crop image on unsupported host: {url[:80]}")
        return None

    @staticmethod
    def _split_cloudinary(url: str) -> Tuple[str, str]:
        index = url.index(CLOUDINARY_UPLOAD_SEGMENT) + len(CLOUDINARY_UPLOAD_SEGMENT)
        return url[:index], url[index:]
