"""
Slice link assignment, validation and repair.

With a healthy link index, segmentation has already proposed links; these
are checked against the guardrail rules and the rejected ones are resolved
in one batched call. Without an index, a slice annotation service suggests
alt text and links, and the product URLs it discovers are remembered for
the brand.
"""

from typing import Dict, Any, List, Optional

from sliceflow.core.config import get_config_value
from sliceflow.core.constants import (
    DEFAULT_AI_MAX_WIDTH,
    DEFAULT_AI_MAX_HEIGHT,
    DEFAULT_ALT_TEXT_TEMPLATE,
    DEFAULT_VERIFIED_CONFIDENCE_THRESHOLD,
    LINK_SOURCE_AI,
    LINK_SOURCE_DEFAULT_FALLBACK,
    LINK_SOURCE_NEEDS_RESOLUTION,
    LINK_SOURCE_RESOLVED_PREFIX,
    STEP_SLICE_ANALYSIS,
)
from sliceflow.core.error_handler import APIError, ValidationError, AnnotationFailure, ResolutionFailure
from sliceflow.core.logging_config import get_logger
from sliceflow.core.models import Brand, Slice
from sliceflow.imaging.image_views import ImageViewBuilder
from sliceflow.pipeline.link_rules import LinkRule, DEFAULT_LINK_RULES, find_violation
from sliceflow.services.base import SliceAnnotationService, LinkResolutionService
from sliceflow.storage.brand_store import BrandStore

logger = get_logger(__name__)


def placeholder_alt_text(index: int) -> str:
    return DEFAULT_ALT_TEXT_TEMPLATE.format(n=index + 1)


def normalize_product_name(name: str) -> str:
    return name.lower().strip()


def new_product_urls(discovered: List[Dict[str, Any]], known: Dict[str, str]) -> Dict[str, str]:
    """
    Discovered product URLs whose normalized name is not known yet.

    Args:
        discovered (List[Dict[str, Any]]): [{productName, url}]
        known (Dict[str, str]): Already stored name to URL

    Returns:
        Dict[str, str]: Additions keyed by normalized name; the first URL per name wins
    """
    additions: Dict[str, str] = {}
    for entry in discovered:
        name = entry.get("productName")
        url = entry.get("url")
        if not name or not url:
            continue
        key = normalize_product_name(name)
        if key and key not in known and key not in additions:
            additions[key] = url
    return additions


class LinkAnnotator:
    """
    Assigns links and alt text to slices.
    """

    def __init__(
        self,
        annotation_service: SliceAnnotationService,
        resolution_service: LinkResolutionService,
        brand_store: Optional[BrandStore] = None,
        view_builder: Optional[ImageViewBuilder] = None,
        rules: Optional[List[LinkRule]] = None,
        confidence_threshold: Optional[float] = None
    ):
        self.annotation_service = annotation_service
        self.resolution_service = resolution_service
        self.brand_store = brand_store
        self.view_builder = view_builder or ImageViewBuilder()
        self.rules = rules if rules is not None else DEFAULT_LINK_RULES
        self.confidence_threshold = confidence_threshold or get_config_value(
            "pipeline.verified_confidence_threshold", DEFAULT_VERIFIED_CONFIDENCE_THRESHOLD
        )

    def annotate(self, slices: List[Slice], brand: Optional[Brand], full_image_ref: str) -> List[Slice]:
        """
        Assign links and alt text. Never raises for service failures.

        Args:
            slices (List[Slice]): Slices with crop views
            brand (Brand, optional): Brand of the campaign
            full_image_ref (str): Full image reference

        Returns:
            List[Slice]: The same slices, updated in place
        """
        if brand is not None and brand.healthy_links:
            logger.info(f"Validating provisional links against {len(brand.healthy_links)} index entries")
            self.validate_links(slices, brand)
        else:
            logger.info("No link index, annotating slices with AI")
            try:
                self.annotate_with_ai(slices, brand, full_image_ref)
            except AnnotationFailure as e:
                logger.warning(f"Slice annotation degraded: {e}")

        for index, slice_ in enumerate(slices):
            if not slice_.alt_text:
                slice_.alt_text = placeholder_alt_text(index)

        return slices

    def flag_imperfect_links(self, slices: List[Slice]) -> List[int]:
        """
        Clear links that break a guardrail rule.

        Returns:
            List[int]: Indices of flagged slices
        """
        flagged = []
        for index, slice_ in enumerate(slices):
            violation = find_violation(slice_, self.rules)
            if violation is None:
                continue
            logger.info(f"Slice {index} link {slice_.link} flagged: {violation}")
            slice_.link = None
            slice_.link_source = LINK_SOURCE_NEEDS_RESOLUTION
            slice_.link_verified = False
            slice_.link_warning = violation
            flagged.append(index)
        return flagged

    def validate_links(self, slices: List[Slice], brand: Brand) -> None:
        flagged = self.flag_imperfect_links(slices)
        if not flagged:
            return

        try:
            resolved = self.resolve_flagged(slices, flagged, brand)
        except ResolutionFailure as e:
            logger.warning(f"Link resolution degraded: {e}")
            resolved = set()

        for index in flagged:
            if index not in resolved:
                self._apply_fallback(slices[index], brand)

    def resolve_flagged(self, slices: List[Slice], flagged: List[int], brand: Brand) -> set:
        """
        Resolve all flagged slices in one call.

        Returns:
            set: Indices that received a URL

        Raises:
            ResolutionFailure: If the resolution service fails
        """
        request = [
            {
                "index": index,
                "description": slices[index].description,
                "altText": slices[index].alt_text,
                "imageUrl": slices[index].image_url,
            }
            for index in flagged
        ]

        try:
            response = self.resolution_service.resolve(brand.id, brand.domain, request)
        except (APIError, ValidationError) as e:
            raise ResolutionFailure(f"Link resolution failed: {e}", step=STEP_SLICE_ANALYSIS)

        flagged_set = set(flagged)
        resolved = set()
        for result in response.get("results") or []:
            index = result.get("index")
            url = result.get("url")
            if index not in flagged_set or not url:
                continue
            slice_ = slices[index]
            slice_.link = url
            slice_.link_source = f"{LINK_SOURCE_RESOLVED_PREFIX}{result.get('source') or 'resolver'}"
            slice_.link_verified = (result.get("confidence") or 0) > self.confidence_threshold
            resolved.add(index)

        logger.info(f"Resolved {len(resolved)} of {len(flagged)} flagged links")
        return resolved

    def _apply_fallback(self, slice_: Slice, brand: Brand) -> None:
        if not brand.default_destination_url:
            logger.warning(f"No default destination for brand {brand.id}, leaving link unresolved")
            return
        slice_.link = brand.default_destination_url
        slice_.link_source = LINK_SOURCE_DEFAULT_FALLBACK
        slice_.link_verified = False

    def annotate_with_ai(self, slices: List[Slice], brand: Optional[Brand], full_image_ref: str) -> None:
        """
        Merge AI annotations into slices by index and learn discovered product URLs.

        Raises:
            AnnotationFailure: If the annotation service fails
        """
        slice_views = [{"index": index, "imageUrl": s.image_url} for index, s in enumerate(slices)]
        known = brand.product_urls if brand is not None else {}
        full_view = self.view_builder.resize(
            full_image_ref,
            get_config_value("image_views.ai_max_width", DEFAULT_AI_MAX_WIDTH),
            get_config_value("image_views.ai_max_height", DEFAULT_AI_MAX_HEIGHT)
        )

        try:
            response = self.annotation_service.annotate(
                slice_views,
                brand.domain if brand is not None else None,
                full_view,
                known_urls=[{"name": name, "url": url} for name, url in known.items()]
            )
        except (APIError, ValidationError) as e:
            raise AnnotationFailure(f"Slice annotation failed: {e}", step=STEP_SLICE_ANALYSIS)

        analyses = {a["index"]: a for a in response.get("analyses") or [] if "index" in a}
        if len(analyses) < len(slices):
            logger.warning(f"Annotation covered {len(analyses)} of {len(slices)} slices")

        for index, slice_ in enumerate(slices):
            analysis = analyses.get(index)
            if analysis is None:
                continue
            if analysis.get("altText"):
                slice_.alt_text = analysis["altText"]
            else:
                slice_.alt_text = placeholder_alt_text(index)
            suggested = analysis.get("suggestedLink")
            if suggested:
                slice_.link = suggested
                slice_.link_source = LINK_SOURCE_AI
            slice_.is_clickable = analysis.get("isClickable") if analysis.get("isClickable") is not None else True
            slice_.link_verified = bool(analysis.get("linkVerified"))
            slice_.link_warning = analysis.get("linkWarning")

        if brand is not None:
            self.learn_product_urls(brand, response.get("discoveredUrls") or [])

    def learn_product_urls(self, brand: Brand, discovered: List[Dict[str, Any]]) -> int:
        """
        Store newly discovered product URLs for the brand.

        Returns:
            int: Number of URLs added
        """
        additions = new_product_urls(discovered, brand.product_urls)
        if not additions or self.brand_store is None:
            return 0

        try:
            added = self.brand_store.add_product_urls(brand.id, additions)
        except (APIError, OSError) as e:
            logger.warning(f"Failed to save discovered URLs for brand {brand.id}: {e}")
            return 0

        logger.info(f"Saved {added} new discovered URLs to brand {brand.id}")
        return added
