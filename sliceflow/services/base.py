"""
Collaborator interfaces.

The AI and lookup services the pipeline depends on are opaque. These
interfaces fix their input and output contracts so the pipeline can run
against HTTP implementations in production and mocks in tests.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional


class SegmentationService(ABC):
    """
    Splits a campaign image into horizontal slices.
    """

    @abstractmethod
    def segment(
        self,
        image_url: str,
        image_width: int,
        image_height: int,
        link_index: Optional[List[Dict[str, Any]]] = None,
        default_destination_url: Optional[str] = None,
        preference_rules: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Segment an image.

        Args:
            image_url (str): Size-bounded view of the image
            image_width (int): Actual width of the original image
            image_height (int): Actual height of the original image
            link_index (List[Dict[str, Any]], optional): Brand link index for provisional links
            default_destination_url (str, optional): Brand default destination
            preference_rules (List[str], optional): Brand link preference rules

        Returns:
            Dict[str, Any]: {slices, footerStartY, imageWidth, imageHeight, analyzedWidth, analyzedHeight}
                in analyzed-space coordinates

        Raises:
            APIError: If the service fails
        """
        pass


class SliceAnnotationService(ABC):
    """
    Suggests alt text and links for slices when no link index is available.
    """

    @abstractmethod
    def annotate(
        self,
        slice_views: List[Dict[str, Any]],
        brand_domain: Optional[str],
        full_image_url: str,
        known_urls: Optional[List[Dict[str, str]]] = None
    ) -> Dict[str, Any]:
        """
        Annotate slices.

        Args:
            slice_views (List[Dict[str, Any]]): [{index, imageUrl}] per slice
            brand_domain (str, optional): Brand website domain
            full_image_url (str): Whole-campaign view for context
            known_urls (List[Dict[str, str]], optional): [{name, url}] learned product URLs

        Returns:
            Dict[str, Any]: {analyses: [{index, altText, suggestedLink, isClickable,
                linkVerified, linkWarning}], discoveredUrls: [{productName, url}]}

        Raises:
            APIError: If the service fails
        """
        pass


class LinkResolutionService(ABC):
    """
    Finds destination URLs for slices whose provisional link was rejected.
    """

    @abstractmethod
    def resolve(
        self,
        brand_id: Optional[str],
        brand_domain: Optional[str],
        flagged_slices: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Resolve links for a batch of slices.

        Args:
            brand_id (str, optional): Brand id
            brand_domain (str, optional): Brand website domain
            flagged_slices (List[Dict[str, Any]]): [{index, description, altText, imageUrl}]

        Returns:
            Dict[str, Any]: {results: [{index, url, confidence, source}]}

        Raises:
            APIError: If the service fails
        """
        pass


class CopyGenerationService(ABC):
    """
    Generates subject line and preview text candidates.
    """

    @abstractmethod
    def generate(
        self,
        slices: List[Dict[str, Any]],
        brand_context: Dict[str, Any],
        pair_count: int,
        copy_examples: Optional[Dict[str, Any]],
        image_url: str
    ) -> Dict[str, Any]:
        """
        Generate copy candidates.

        Returns:
            Dict[str, Any]: {subjectLines: [...], previewTexts: [...], spellingErrors?: [...]}

        Raises:
            APIError: If the service fails
        """
        pass


class SpellingCheckService(ABC):
    """
    Checks the text rendered in an image for spelling mistakes.
    """

    @abstractmethod
    def check(self, image_url: str) -> Dict[str, Any]:
        """
        Returns:
            Dict[str, Any]: {hasErrors, errors: [{text, correction, location}]}
        """
        pass


class CopySearchService(ABC):
    """
    Looks up copy already written for a campaign in the external task tracker.
    """

    @abstractmethod
    def search(self, source_url: str, brand_id: Optional[str], list_id: Optional[str]) -> Dict[str, Any]:
        """
        Returns:
            Dict[str, Any]: {found, subjectLine, previewText, taskId, taskUrl}
        """
        pass
