"""
Segmentation and coordinate rescaling.

Segmentation runs on a size-bounded view of the design, so the boundaries
it returns are in analyzed-space. The slicer maps them back onto the
original image, splits multi-column rows, and drops footer content.
"""

from typing import Dict, Any, List, Optional

from sliceflow.core.config import get_config_value
from sliceflow.core.constants import (
    DEFAULT_SEGMENTATION_MAX_WIDTH,
    DEFAULT_SEGMENTATION_MAX_HEIGHT,
    LINK_SOURCE_AI,
    SLICE_TYPE_CTA,
    SLICE_TYPE_IMAGE,
    STEP_ANALYZING_IMAGE,
    STEP_GENERATING_SLICE_URLS,
)
from sliceflow.core.error_handler import APIError, ValidationError, SegmentationFailure, CropUrlFailure
from sliceflow.core.logging_config import get_logger
from sliceflow.core.models import Brand, Slice
from sliceflow.imaging.image_resolver import ResolvedImage
from sliceflow.imaging.image_views import ImageViewBuilder, expected_resize_dimensions
from sliceflow.services.base import SegmentationService

logger = get_logger(__name__)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def column_boundaries(
    columns: int,
    gutter_positions: Optional[List[float]],
    analyzed_width: float,
    scale_x: float,
    actual_width: int
) -> List[int]:
    """
    x boundaries of the columns of a split row, in original pixels.

    Gutters are percentages of the analyzed width. When their count does
    not match the column count, or they would leave a column with no
    width, evenly spaced gutters are used instead.

    Args:
        columns (int): Number of columns
        gutter_positions (List[float], optional): Gutter percentages
        analyzed_width (float): Width of the analyzed view
        scale_x (float): actual_width / analyzed_width
        actual_width (int): Width of the original image

    Returns:
        List[int]: columns + 1 increasing boundaries from 0 to actual_width
    """
    even = [round(actual_width * i / columns) for i in range(columns + 1)]

    gutters = list(gutter_positions or [])
    if len(gutters) != columns - 1:
        if gutters:
            logger.warning(f"Expected {columns - 1} gutters, got {len(gutters)}; using even columns")
        return even

    inner = sorted(
        _clamp(round(analyzed_width * p / 100 * scale_x), 0, actual_width) for p in gutters
    )
    xs = [0] + inner + [actual_width]
    if any(right <= left for left, right in zip(xs, xs[1:])):
        logger.warning(f"Gutters {gutters} leave an empty column; using even columns")
        return even
    return xs


class SliceResult:
    """
    Output of the slicer.

    Attributes:
        slices: Ordered slices in original-space.
        footer_start_y: Footer boundary in original pixels.
        footer_start_percent: Footer boundary as percent of the original height.
        scale_x: Horizontal analyzed-to-original factor.
        scale_y: Vertical analyzed-to-original factor.
    """

    def __init__(
        self,
        slices: List[Slice],
        footer_start_y: int,
        footer_start_percent: float,
        scale_x: float,
        scale_y: float
    ):
        self.slices = slices
        self.footer_start_y = footer_start_y
        self.footer_start_percent = footer_start_percent
        self.scale_x = scale_x
        self.scale_y = scale_y


class Slicer:
    """
    Calls segmentation and emits original-space slices.
    """

    def __init__(
        self,
        segmentation_service: SegmentationService,
        view_builder: Optional[ImageViewBuilder] = None,
        max_width: Optional[int] = None,
        max_height: Optional[int] = None
    ):
        self.segmentation_service = segmentation_service
        self.view_builder = view_builder or ImageViewBuilder()
        self.max_width = max_width or get_config_value(
            "image_views.segmentation_max_width", DEFAULT_SEGMENTATION_MAX_WIDTH
        )
        self.max_height = max_height or get_config_value(
            "image_views.segmentation_max_height", DEFAULT_SEGMENTATION_MAX_HEIGHT
        )

    def _segment(self, image: ResolvedImage, view_url: str, brand: Optional[Brand]) -> Dict[str, Any]:
        link_index = None
        default_destination = None
        preferences = None
        if brand is not None and brand.healthy_links:
            link_index = [entry.to_dict() for entry in brand.healthy_links]
            default_destination = brand.default_destination_url
            preferences = brand.link_preferences
            logger.info(f"Passing {len(link_index)} link index entries to segmentation")

        try:
            return self.segmentation_service.segment(
                view_url,
                image.width,
                image.height,
                link_index=link_index,
                default_destination_url=default_destination,
                preference_rules=preferences
            )
        except (APIError, ValidationError) as e:
            raise SegmentationFailure(f"Segmentation failed: {e}", step=STEP_ANALYZING_IMAGE)

    def _analyzed_dimensions(self, response: Dict[str, Any], image: ResolvedImage, view_url: str):
        analyzed_width = response.get("analyzedWidth")
        analyzed_height = response.get("analyzedHeight")
        if analyzed_width and analyzed_height:
            return analyzed_width, analyzed_height

        if view_url != image.url:
            return expected_resize_dimensions(image.width, image.height, self.max_width, self.max_height)
        return image.width, image.height

    def slice(self, image: ResolvedImage, brand: Optional[Brand] = None) -> SliceResult:
        """
        Segment an image and rescale the result to original-space.

        Args:
            image (ResolvedImage): Image with actual dimensions
            brand (Brand, optional): Brand whose link index seeds provisional links

        Returns:
            SliceResult: Slices and footer boundary

        Raises:
            SegmentationFailure: If segmentation fails or no slice survives
        """
        view_url = self.view_builder.resize(image.url, self.max_width, self.max_height)
        response = self._segment(image, view_url, brand)

        analyzed_width, analyzed_height = self._analyzed_dimensions(response, image, view_url)
        scale_x = image.width / analyzed_width
        scale_y = image.height / analyzed_height
        logger.info(
            f"Analyzed {analyzed_width}x{analyzed_height}, actual {image.width}x{image.height}, "
            f"scale {scale_x:.4f}x{scale_y:.4f}"
        )

        footer_analyzed = response.get("footerStartY")
        if footer_analyzed is None or footer_analyzed <= 0:
            footer_start_y = image.height
        else:
            footer_start_y = _clamp(round(footer_analyzed * scale_y), 0, image.height)
        footer_start_percent = footer_start_y / image.height * 100

        raw_slices = sorted(response.get("slices") or [], key=lambda s: s["yTop"])
        slices: List[Slice] = []
        previous_bottom = 0
        row_index = 0

        for raw in raw_slices:
            y_top = _clamp(round(raw["yTop"] * scale_y), 0, image.height)
            y_bottom = _clamp(round(raw["yBottom"] * scale_y), 0, image.height)
            y_top = max(y_top, previous_bottom)

            if y_top >= y_bottom:
                logger.debug(f"Dropping empty slice {raw['yTop']}-{raw['yBottom']}")
                continue
            if y_bottom > footer_start_y:
                logger.debug(f"Dropping footer slice {y_top}-{y_bottom} (footer at {footer_start_y})")
                continue

            slices.extend(self._row_slices(raw, row_index, y_top, y_bottom, image, analyzed_width, scale_x))
            previous_bottom = y_bottom
            row_index += 1

        logger.info(
            f"Kept {row_index} of {len(raw_slices)} rows ({len(slices)} slices), "
            f"footer at {footer_start_y}px"
        )

        if not slices:
            raise SegmentationFailure("Segmentation produced no usable slices", step=STEP_ANALYZING_IMAGE)

        return SliceResult(slices, footer_start_y, footer_start_percent, scale_x, scale_y)

    def _row_slices(
        self,
        raw: Dict[str, Any],
        row_index: int,
        y_top: int,
        y_bottom: int,
        image: ResolvedImage,
        analyzed_width: float,
        scale_x: float
    ) -> List[Slice]:
        split = raw.get("horizontalSplit") or {}
        columns = split.get("columns") or 1
        if columns > 1:
            xs = column_boundaries(columns, split.get("gutterPositions"), analyzed_width, scale_x, image.width)
        else:
            columns = 1
            xs = [0, image.width]
        details = split.get("columnDetails") or []

        row = []
        for column in range(columns):
            detail = details[column] if column < len(details) else {}
            link = detail.get("link") or raw.get("link")
            row.append(Slice(
                y_top=y_top,
                y_bottom=y_bottom,
                width=xs[column + 1] - xs[column],
                height=y_bottom - y_top,
                start_percent=y_top / image.height * 100,
                end_percent=y_bottom / image.height * 100,
                slice_type=SLICE_TYPE_CTA if raw.get("hasCTA") else SLICE_TYPE_IMAGE,
                column=column,
                total_columns=columns,
                row_index=row_index,
                x_left=xs[column],
                link=link,
                link_source=LINK_SOURCE_AI if link else None,
                alt_text=detail.get("altText") or raw.get("altText"),
                description=detail.get("description") or raw.get("description") or raw.get("name"),
                is_clickable=raw.get("isClickable", True),
            ))
        return row


def attach_slice_views(slices: List[Slice], image_url: str, view_builder: ImageViewBuilder) -> List[Slice]:
    """
    Give every slice a crop view of its region.

    Slices whose view cannot be built are dropped.

    Args:
        slices (List[Slice]): Original-space slices
        image_url (str): Full image reference
        view_builder (ImageViewBuilder): View builder

    Returns:
        List[Slice]: Slices with image_url set

    Raises:
        CropUrlFailure: If no slice has a view
    """
    kept = []
    for slice_ in slices:
        view = view_builder.crop(image_url, slice_.x_left, slice_.y_top, slice_.width, slice_.height)
        if view is None:
            logger.warning(f"No crop view for {slice_}, dropping it")
            continue
        slice_.image_url = view
        kept.append(slice_)

    if not kept:
        raise CropUrlFailure("No slice views could be generated", step=STEP_GENERATING_SLICE_URLS)

    logger.info(f"Generated views for {len(kept)} of {len(slices)} slices")
    return kept
