"""
Domain models for campaign processing.

Queue items are persisted as flat dictionaries keyed by column name
(snake_case); slices are persisted inside them as camelCase dictionaries,
the shape the editor and the collaborators exchange.
"""

from typing import Dict, Any, List, Optional

from sliceflow.core.constants import (
    STATUS_QUEUED,
    SLICE_TYPE_IMAGE,
)
from sliceflow.core.error_handler import validate_required_fields
from sliceflow.core.utils import utc_now_iso


class Slice:
    """
    A horizontal (optionally multi-column) region of the source design.

    Coordinates are in original-image pixels. start_percent/end_percent are
    y / original height expressed in percent.
    """

    def __init__(
        self,
        y_top: int,
        y_bottom: int,
        width: int,
        height: int,
        start_percent: float,
        end_percent: float,
        slice_type: str = SLICE_TYPE_IMAGE,
        column: int = 0,
        total_columns: int = 1,
        row_index: int = 0,
        x_left: int = 0,
        link: Optional[str] = None,
        link_source: Optional[str] = None,
        link_verified: bool = False,
        link_warning: Optional[str] = None,
        alt_text: Optional[str] = None,
        description: Optional[str] = None,
        is_clickable: bool = True,
        image_url: Optional[str] = None
    ):
        self.y_top = y_top
        self.y_bottom = y_bottom
        self.width = width
        self.height = height
        self.start_percent = start_percent
        self.end_percent = end_percent
        self.slice_type = slice_type
        self.column = column
        self.total_columns = total_columns
        self.row_index = row_index
        self.x_left = x_left
        self.link = link
        self.link_source = link_source
        self.link_verified = link_verified
        self.link_warning = link_warning
        self.alt_text = alt_text
        self.description = description
        self.is_clickable = is_clickable
        self.image_url = image_url

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted camelCase shape."""
        data = {
            "yTop": self.y_top,
            "yBottom": self.y_bottom,
            "xLeft": self.x_left,
            "width": self.width,
            "height": self.height,
            "startPercent": self.start_percent,
            "endPercent": self.end_percent,
            "type": self.slice_type,
            "column": self.column,
            "totalColumns": self.total_columns,
            "rowIndex": self.row_index,
            "link": self.link,
            "linkSource": self.link_source,
            "linkVerified": self.link_verified,
            "altText": self.alt_text,
            "isClickable": self.is_clickable,
            "imageUrl": self.image_url,
        }
        if self.link_warning:
            data["linkWarning"] = self.link_warning
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Slice":
        """Build a slice from its persisted camelCase shape."""
        return cls(
            y_top=data["yTop"],
            y_bottom=data["yBottom"],
            width=data.get("width", 0),
            height=data.get("height", data["yBottom"] - data["yTop"]),
            start_percent=data.get("startPercent", 0.0),
            end_percent=data.get("endPercent", 0.0),
            slice_type=data.get("type", SLICE_TYPE_IMAGE),
            column=data.get("column", 0),
            total_columns=data.get("totalColumns", 1),
            row_index=data.get("rowIndex", 0),
            x_left=data.get("xLeft", 0),
            link=data.get("link"),
            link_source=data.get("linkSource"),
            link_verified=data.get("linkVerified", False),
            link_warning=data.get("linkWarning"),
            alt_text=data.get("altText"),
            description=data.get("description"),
            is_clickable=data.get("isClickable", True),
            image_url=data.get("imageUrl"),
        )

    @property
    def text(self) -> str:
        """Description and alt text joined, for heuristics that read slice copy."""
        return " ".join(part for part in (self.description, self.alt_text) if part)

    def __repr__(self) -> str:
        return (
            f"Slice(row={self.row_index}, col={self.column}/{self.total_columns}, "
            f"y={self.y_top}-{self.y_bottom}, link={self.link!r})"
        )


class QueueItem:
    """
    A campaign queue record: the durable state of one processing job.
    """

    FIELDS = [
        "id", "status", "processing_step", "processing_percent",
        "image_url", "image_width", "image_height", "brand_id",
        "source_url", "source_metadata",
        "provided_subject_line", "provided_preview_text",
        "generated_subject_lines", "generated_preview_texts",
        "selected_subject_line", "selected_preview_text",
        "spelling_errors", "qa_flags", "slices", "footer_start_percent",
        "copy_source", "clickup_task_id", "clickup_task_url",
        "error_message", "updated_at",
    ]

    def __init__(self, **fields: Any):
        self.id = fields.get("id")
        self.status = fields.get("status") or STATUS_QUEUED
        self.processing_step = fields.get("processing_step")
        self.processing_percent = fields.get("processing_percent") or 0
        self.image_url = fields.get("image_url")
        self.image_width = fields.get("image_width")
        self.image_height = fields.get("image_height")
        self.brand_id = fields.get("brand_id")
        self.source_url = fields.get("source_url")
        self.source_metadata = fields.get("source_metadata") or {}
        self.provided_subject_line = fields.get("provided_subject_line")
        self.provided_preview_text = fields.get("provided_preview_text")
        self.generated_subject_lines = fields.get("generated_subject_lines") or []
        self.generated_preview_texts = fields.get("generated_preview_texts") or []
        self.selected_subject_line = fields.get("selected_subject_line")
        self.selected_preview_text = fields.get("selected_preview_text")
        self.spelling_errors = fields.get("spelling_errors") or []
        self.qa_flags = fields.get("qa_flags")
        self.slices = [
            s if isinstance(s, Slice) else Slice.from_dict(s)
            for s in (fields.get("slices") or [])
        ]
        self.footer_start_percent = fields.get("footer_start_percent")
        self.copy_source = fields.get("copy_source")
        self.clickup_task_id = fields.get("clickup_task_id")
        self.clickup_task_url = fields.get("clickup_task_url")
        self.error_message = fields.get("error_message")
        self.updated_at = fields.get("updated_at")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueueItem":
        """
        Build a queue item from a stored record.

        Raises:
            ValidationError: If the record has no id.
        """
        validate_required_fields(data, ["id"], component="QueueItem")
        return cls(**{key: data.get(key) for key in cls.FIELDS})

    def to_dict(self) -> Dict[str, Any]:
        data = {key: getattr(self, key) for key in self.FIELDS}
        data["slices"] = [s.to_dict() for s in self.slices]
        return data

    def __repr__(self) -> str:
        return f"QueueItem(id={self.id!r}, status={self.status!r}, step={self.processing_step!r})"


class EarlyGenerationSession:
    """
    Result of a background task, stored under its session key.

    Written once by the background task and read by the poller.
    """

    def __init__(
        self,
        session_key: str,
        subject_lines: Optional[List[str]] = None,
        preview_texts: Optional[List[str]] = None,
        spelling_errors: Optional[List[Dict[str, Any]]] = None,
        created_at: Optional[str] = None
    ):
        self.session_key = session_key
        self.subject_lines = list(subject_lines or [])
        self.preview_texts = list(preview_texts or [])
        self.spelling_errors = list(spelling_errors or [])
        self.created_at = created_at or utc_now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_key": self.session_key,
            "subject_lines": self.subject_lines,
            "preview_texts": self.preview_texts,
            "spelling_errors": self.spelling_errors,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EarlyGenerationSession":
        return cls(
            session_key=data["session_key"],
            subject_lines=data.get("subject_lines"),
            preview_texts=data.get("preview_texts"),
            spelling_errors=data.get("spelling_errors"),
            created_at=data.get("created_at"),
        )


class LinkIndexEntry:
    """
    A curated destination URL from a brand's link index.
    """

    def __init__(
        self,
        title: str,
        url: str,
        link_type: str = "page",
        use_count: int = 0,
        last_verified_at: Optional[str] = None,
        is_healthy: bool = True
    ):
        self.title = title
        self.url = url
        self.link_type = link_type
        self.use_count = use_count
        self.last_verified_at = last_verified_at
        self.is_healthy = is_healthy

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "link_type": self.link_type,
            "use_count": self.use_count,
            "last_verified_at": self.last_verified_at,
            "is_healthy": self.is_healthy,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinkIndexEntry":
        return cls(
            title=data.get("title", ""),
            url=data["url"],
            link_type=data.get("link_type", "page"),
            use_count=data.get("use_count", 0),
            last_verified_at=data.get("last_verified_at"),
            is_healthy=data.get("is_healthy", True),
        )


class Brand:
    """
    Brand context consulted read-only by the pipeline, apart from the
    product URL learning cache.
    """

    def __init__(
        self,
        id: str,
        name: str,
        domain: Optional[str] = None,
        default_destination_url: Optional[str] = None,
        copy_examples: Optional[Dict[str, List[str]]] = None,
        link_preferences: Optional[List[str]] = None,
        link_index: Optional[List[LinkIndexEntry]] = None,
        product_urls: Optional[Dict[str, str]] = None,
        clickup_list_id: Optional[str] = None
    ):
        self.id = id
        self.name = name
        self.domain = domain
        self.default_destination_url = default_destination_url
        self.copy_examples = copy_examples
        self.link_preferences = link_preferences or []
        self.link_index = link_index or []
        self.product_urls = product_urls or {}
        self.clickup_list_id = clickup_list_id

    @property
    def context(self) -> Dict[str, Any]:
        """Brand context in the shape copy generation expects."""
        return {"name": self.name, "domain": self.domain}

    @property
    def healthy_links(self) -> List[LinkIndexEntry]:
        """Healthy link index entries, most used first."""
        healthy = [entry for entry in self.link_index if entry.is_healthy]
        return sorted(healthy, key=lambda entry: entry.use_count, reverse=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "domain": self.domain,
            "default_destination_url": self.default_destination_url,
            "copy_examples": self.copy_examples,
            "link_preferences": self.link_preferences,
            "link_index": [entry.to_dict() for entry in self.link_index],
            "all_links": {"productUrls": dict(self.product_urls)},
            "clickup_list_id": self.clickup_list_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Brand":
        validate_required_fields(data, ["id", "name"], component="Brand")
        all_links = data.get("all_links") or {}
        return cls(
            id=data["id"],
            name=data["name"],
            domain=data.get("domain"),
            default_destination_url=data.get("default_destination_url"),
            copy_examples=data.get("copy_examples"),
            link_preferences=data.get("link_preferences"),
            link_index=[LinkIndexEntry.from_dict(e) for e in data.get("link_index") or []],
            product_urls=all_links.get("productUrls"),
            clickup_list_id=data.get("clickup_list_id"),
        )
