"""
Image acquisition and CDN view references.
"""

from sliceflow.imaging.image_resolver import ImageResolver, ResolvedImage, parse_image_dimensions
from sliceflow.imaging.image_views import ImageViewBuilder, expected_resize_dimensions
