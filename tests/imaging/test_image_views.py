"""
Tests for CDN view references.
"""

import pytest

from sliceflow.imaging.image_views import ImageViewBuilder, expected_resize_dimensions

CLOUDINARY_URL = "https://res.cloudinary.com/acme/image/upload/v1712/campaigns/spring.png"


class TestImageViewBuilder:

    def setup_method(self):
        self.builder = ImageViewBuilder()

    def test_imagekit_resize(self, imagekit_url):
        assert self.builder.resize(imagekit_url, 600, 5000) == (
            "https://ik.imagekit.io/acme/tr:w-600,h-5000,c-at_max/campaigns/spring.png"
        )

    def test_imagekit_crop(self, imagekit_url):
        assert self.builder.crop(imagekit_url, 0, 120, 600, 340) == (
            "https://ik.imagekit.io/acme/tr:x-0,y-120,w-600,h-340,cm-extract/campaigns/spring.png"
        )

    def test_cloudinary_resize(self):
        assert self.builder.resize(CLOUDINARY_URL, 600, 7900) == (
            "https://res.cloudinary.com/acme/image/upload/c_limit,w_600,h_7900/v1712/campaigns/spring.png"
        )

    def test_cloudinary_crop(self):
        assert self.builder.crop(CLOUDINARY_URL, 300, 10.4, 300, 99.6) == (
            "https://res.cloudinary.com/acme/image/upload/"
            "c_crop,x_300,y_10,w_300,h_100,q_90,f_jpg/v1712/campaigns/spring.png"
        )

    def test_unsupported_host(self):
        url = "https://example.com/spring.png"

        assert self.builder.resize(url, 600, 5000) == url
        assert self.builder.crop(url, 0, 0, 600, 100) is None
        assert not self.builder.supports(url)


class TestExpectedResizeDimensions:

    @pytest.mark.parametrize("size, bounds, expected", [
        ((600, 5400), (600, 5000), (556, 5000)),
        ((1200, 3000), (600, 5000), (600, 1500)),
        ((500, 2000), (600, 5000), (500, 2000)),
    ])
    def test_limit_semantics(self, size, bounds, expected):
        assert expected_resize_dimensions(*size, *bounds) == expected
