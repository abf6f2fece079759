"""
Source Record Data Classes.

Compiler input layers, one dataclass per API shape. Each record has a
from_dict() accepting the snake_case/camelCase JSON the extraction API
returns, and coerce() which passes instances through unchanged.

Classes:
    SourceTable: Markdown table with corner-form bbox
    SourceEntity: Field-level extraction (label + suggested value)
    SourceExtractedEntity: Unified table/figure/footnote/summary entity
    SourceOcr: Raw OCR text block
    SourceMarkdown: LLM vision markdown for a page

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pdfquery.vdom.types import BoundingBox, Rect


class _SourceRecord:
    """Shared coercion for records that may arrive as dicts."""

    @classmethod
    def coerce(cls, item: Union['_SourceRecord', Dict[str, Any]]):
        if isinstance(item, cls):
            return item
        return cls.from_dict(item)

    @classmethod
    def coerce_all(cls, items) -> list:
        return [cls.coerce(item) for item in items or []]


@dataclass
class SourceTable(_SourceRecord):
    """A markdown table as returned by the tables API."""
    id: str
    page_number: int
    markdown: str
    bbox: BoundingBox = field(default_factory=BoundingBox)
    confidence: Optional[float] = None
    verification_status: Optional[str] = 'pending'
    verified_by: Optional[str] = None
    verified_at: Optional[str] = None
    was_corrected: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceTable':
        return cls(
            id=str(data['id']),
            page_number=data.get('page_number', data.get('pageNumber', 1)),
            markdown=data.get('markdown') or '',
            bbox=BoundingBox.from_dict(data.get('bbox')),
            confidence=data.get('confidence'),
            verification_status=data.get('verification_status') or 'pending',
            verified_by=data.get('verified_by'),
            verified_at=data.get('verified_at'),
            was_corrected=data.get('was_corrected'),
        )


@dataclass
class SourceEntity(_SourceRecord):
    """
    A field-level extraction.

    Example:
        >>> SourceEntity.from_dict({
        ...     "id": "e1", "field_label": "Total Revenue", "page_number": 1,
        ...     "suggested_value": "$1,234", "confidence": 0.93,
        ...     "bounding_box": {"x": 0.1, "y": 0.5, "width": 0.2, "height": 0.03},
        ... })
    """
    id: str
    field_label: str
    page_number: int
    suggested_value: str
    bounding_box: Rect = field(default_factory=Rect.full_page)
    confidence: float = 0.0
    field_category: Optional[str] = None
    row_index: Optional[int] = None
    suggested_value_numeric: Optional[float] = None
    verification_status: Optional[str] = 'pending'
    verified_value: Optional[str] = None
    verified_at: Optional[str] = None
    was_corrected: bool = False
    flag_reason: Optional[str] = None
    flagged_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceEntity':
        return cls(
            id=str(data['id']),
            field_label=data.get('field_label') or '',
            page_number=data.get('page_number', 1),
            suggested_value=data.get('suggested_value') or '',
            bounding_box=Rect.from_dict(data.get('bounding_box')),
            confidence=data.get('confidence') or 0.0,
            field_category=data.get('field_category'),
            row_index=data.get('row_index'),
            suggested_value_numeric=data.get('suggested_value_numeric'),
            verification_status=data.get('verification_status') or 'pending',
            verified_value=data.get('verified_value'),
            verified_at=data.get('verified_at'),
            was_corrected=bool(data.get('was_corrected', False)),
            flag_reason=data.get('flag_reason'),
            flagged_at=data.get('flagged_at'),
        )


@dataclass
class SourceExtractedEntity(_SourceRecord):
    """Unified entity from the job entities endpoint (table, figure, footnote, ...)."""
    id: str
    type: str
    title: str
    page: int
    bbox: Rect = field(default_factory=Rect.full_page)
    schema: Optional[List[str]] = None
    is_complete: Optional[bool] = None
    caption: Optional[str] = None
    image_url: Optional[str] = None
    confidence: Optional[float] = None
    verification_status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceExtractedEntity':
        return cls(
            id=str(data['id']),
            type=data.get('type') or '',
            title=data.get('title') or '',
            page=data.get('page', 1),
            bbox=Rect.from_dict(data.get('bbox')),
            schema=data.get('schema'),
            is_complete=data.get('isComplete'),
            caption=data.get('caption'),
            image_url=data.get('imageUrl'),
            confidence=data.get('confidence'),
            verification_status=data.get('verification_status'),
        )


@dataclass
class SourceOcr(_SourceRecord):
    """A raw OCR text block."""
    id: str
    page: int
    text: str
    bbox: Rect = field(default_factory=Rect.full_page)
    confidence: float = 0.0
    verification_status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceOcr':
        return cls(
            id=str(data['id']),
            page=data.get('page', 1),
            text=data.get('text') or '',
            bbox=Rect.from_dict(data.get('bbox')),
            confidence=data.get('confidence') or 0.0,
            verification_status=data.get('verification_status'),
        )


@dataclass
class SourceMarkdown(_SourceRecord):
    """LLM vision markdown output for one page."""
    id: str
    page: int
    content: str
    model: Optional[str] = None
    confidence: Optional[float] = None
    verification_status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceMarkdown':
        return cls(
            id=str(data['id']),
            page=data.get('page', 1),
            content=data.get('content') or '',
            model=data.get('model'),
            confidence=data.get('confidence'),
            verification_status=data.get('verification_status'),
        )
