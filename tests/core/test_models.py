"""
Tests for the domain models.
"""

import pytest

from sliceflow.core.error_handler import ValidationError
from sliceflow.core.models import Brand, EarlyGenerationSession, LinkIndexEntry, QueueItem, Slice


class TestSlice:

    def test_round_trip_uses_camel_case(self):
        slice_ = Slice(
            y_top=0, y_bottom=200, width=600, height=200,
            start_percent=0.0, end_percent=10.0,
            link="https://acme.com/products/runner", link_source="ai",
            link_warning="year_mismatch", description="Runner",
        )

        data = slice_.to_dict()

        assert data["yTop"] == 0
        assert data["yBottom"] == 200
        assert data["linkSource"] == "ai"
        assert data["linkWarning"] == "year_mismatch"
        assert Slice.from_dict(data).link == "https://acme.com/products/runner"

    def test_optional_keys_omitted(self):
        data = Slice(0, 10, 600, 10, 0.0, 1.0).to_dict()

        assert "linkWarning" not in data
        assert "description" not in data
        assert data["isClickable"] is True

    def test_text_joins_description_and_alt_text(self):
        slice_ = Slice(0, 10, 600, 10, 0.0, 1.0, description="Running Shoes", alt_text="$120")

        assert slice_.text == "Running Shoes $120"


class TestQueueItem:

    def test_from_dict_requires_id(self):
        with pytest.raises(ValidationError):
            QueueItem.from_dict({"image_url": "https://x"})

    def test_defaults(self):
        item = QueueItem.from_dict({"id": "job-1", "image_url": "https://x"})

        assert item.status == "queued"
        assert item.processing_percent == 0
        assert item.generated_subject_lines == []
        assert item.slices == []

    def test_slices_are_deserialized(self):
        item = QueueItem.from_dict({
            "id": "job-1",
            "slices": [{"yTop": 0, "yBottom": 100, "width": 600}],
        })

        assert isinstance(item.slices[0], Slice)
        assert item.to_dict()["slices"][0]["yBottom"] == 100


class TestBrand:

    def test_healthy_links_sorted_by_use_count(self):
        brand = Brand(
            id="acme",
            name="Acme",
            link_index=[
                LinkIndexEntry("Shoes", "https://acme.com/collections/shoes", use_count=3),
                LinkIndexEntry("Broken", "https://acme.com/old", use_count=50, is_healthy=False),
                LinkIndexEntry("Runner", "https://acme.com/products/runner", use_count=9),
            ],
        )

        assert [e.title for e in brand.healthy_links] == ["Runner", "Shoes"]

    def test_from_dict_reads_learned_product_urls(self):
        brand = Brand.from_dict({
            "id": "acme",
            "name": "Acme",
            "all_links": {"productUrls": {"runner": "https://acme.com/products/runner"}},
            "link_index": [{"title": "Home", "url": "https://acme.com"}],
        })

        assert brand.product_urls == {"runner": "https://acme.com/products/runner"}
        assert brand.link_index[0].is_healthy is True
        assert brand.to_dict()["all_links"]["productUrls"]["runner"].endswith("/runner")


class TestEarlyGenerationSession:

    def test_round_trip(self):
        session = EarlyGenerationSession("job-1-abc", subject_lines=["A"], preview_texts=["B"])

        restored = EarlyGenerationSession.from_dict(session.to_dict())

        assert restored.session_key == "job-1-abc"
        assert restored.subject_lines == ["A"]
        assert restored.spelling_errors == []
        assert restored.created_at == session.created_at
