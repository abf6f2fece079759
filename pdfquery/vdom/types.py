"""
Virtual Document Data Classes.

This module defines the flat, queryable document representation:
Document -> Pages -> Entities. Every record serializes to the camelCase
wire format through to_dict() and can be rebuilt with from_dict().

Classes:
    BoundingBox: Corner-form box (xmin, ymin, xmax, ymax)
    Rect: Top-left origin box (x, y, width, height)
    EntityMeta: Verification workflow state with an extension map
    VirtualEntity: One flat extracted item
    PageMeta / VirtualPage: Per-page entity list and statistics
    DocumentMeta / VirtualDoc: Root document
    EntityChange / MutationLog: Tracked field edits
    QueryStats: Aggregate statistics for a selection
    TransformationResult: Cached VLM entity-to-markdown output

Author: ML Engineering Team
"""

import json
import threading
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pdfquery.utils.helpers import to_camel_case, to_snake_case


ENTITY_TYPES: Tuple[str, ...] = (
    # Page-level extractions
    'ocr', 'table', 'figure', 'footnote', 'markdown',
    # Cell-level types
    'table_row', 'table_cell', 'currency', 'percentage', 'date', 'text', 'number',
    # Semantic labels
    'header', 'label', 'total', 'subtotal', 'unknown',
)

VERIFICATION_STATUSES: Tuple[str, ...] = (
    'pending', 'verified', 'flagged', 'rejected', 'skipped',
)


def _to_wire(value: Any) -> Any:
    """Recursively convert records inside containers to wire dicts."""
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire(v) for v in value]
    return value


# =============================================================================
# GEOMETRY
# =============================================================================

@dataclass
class BoundingBox:
    """
    Corner-form bounding box, nominally normalized to 0-1.

    The range is a convention, not a constraint: values outside 0-1 are
    stored as given.
    """
    xmin: float = 0.0
    ymin: float = 0.0
    xmax: float = 1.0
    ymax: float = 1.0

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    def contains(self, other: 'BoundingBox', tolerance: float = 1e-9) -> bool:
        """True if `other` lies inside this box (edges inclusive)."""
        return (
            other.xmin >= self.xmin - tolerance
            and other.ymin >= self.ymin - tolerance
            and other.xmax <= self.xmax + tolerance
            and other.ymax <= self.ymax + tolerance
        )

    def is_normalized(self) -> bool:
        """True if every coordinate lies in [0, 1]."""
        return all(0.0 <= v <= 1.0 for v in (self.xmin, self.ymin, self.xmax, self.ymax))

    def to_dict(self) -> Dict[str, float]:
        return {'xmin': self.xmin, 'ymin': self.ymin, 'xmax': self.xmax, 'ymax': self.ymax}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'BoundingBox':
        if not data:
            return cls()
        return cls(
            xmin=data.get('xmin', 0.0),
            ymin=data.get('ymin', 0.0),
            xmax=data.get('xmax', 1.0),
            ymax=data.get('ymax', 1.0),
        )


@dataclass
class Rect:
    """
    Top-left origin box used by source records and vendor adapters.

    Example:
        >>> Rect(0.1, 0.2, 0.3, 0.1).to_bbox()
        BoundingBox(xmin=0.1, ymin=0.2, xmax=0.4, ymax=0.30000000000000004)
    """
    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0

    def to_bbox(self) -> BoundingBox:
        """Convert to corner form."""
        return BoundingBox(
            xmin=self.x,
            ymin=self.y,
            xmax=self.x + self.width,
            ymax=self.y + self.height,
        )

    def to_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}

    @classmethod
    def full_page(cls) -> 'Rect':
        """The default box substituted when a source item carries none."""
        return cls(0.0, 0.0, 1.0, 1.0)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Rect':
        """Build from `{x, y, width, height}`; missing data yields the full page."""
        if not data:
            return cls.full_page()
        return cls(
            x=data.get('x', 0.0),
            y=data.get('y', 0.0),
            width=data.get('width', 1.0),
            height=data.get('height', 1.0),
        )


# =============================================================================
# ENTITY METADATA
# =============================================================================

@dataclass
class EntityMeta:
    """
    Verification workflow state of an entity.

    The enumerable fields are typed attributes. Anything else set through
    set() lands in `extra`. Keys may be given by Python name
    (``verification_status``) or by wire name (``verificationStatus``).

    Example:
        >>> meta = EntityMeta(confidence=0.95)
        >>> meta.set('verificationStatus', 'verified')
        >>> meta.get('verification_status')
        'verified'
        >>> meta.set('reviewNote', 'checked twice')
        >>> meta.extra
        {'reviewNote': 'checked twice'}
    """
    verified: bool = False
    verification_status: str = 'pending'
    confidence: float = 0.0
    was_corrected: bool = False
    source: str = 'system'
    verified_by: Optional[str] = None
    verified_at: Optional[int] = None
    correction_type: Optional[str] = None
    processor_type: Optional[str] = None
    flag_reason: Optional[str] = None
    flagged_by: Optional[str] = None
    flagged_at: Optional[int] = None
    highlight: Optional[bool] = None
    selected: Optional[bool] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    REQUIRED_FIELDS = ('verified', 'verification_status', 'confidence', 'was_corrected', 'source')
    OPTIONAL_FIELDS = (
        'verified_by', 'verified_at', 'correction_type', 'processor_type',
        'flag_reason', 'flagged_by', 'flagged_at', 'highlight', 'selected',
    )

    @classmethod
    def field_name(cls, key: str) -> Optional[str]:
        """Typed attribute name for `key`, or None if it is an extension key."""
        name = key if key in cls.REQUIRED_FIELDS + cls.OPTIONAL_FIELDS else to_snake_case(key)
        if name in cls.REQUIRED_FIELDS or name in cls.OPTIONAL_FIELDS:
            return name
        return None

    def has_key(self, key: str) -> bool:
        """True if `key` names a typed field or a stored extension key."""
        return self.field_name(key) is not None or key in self.extra

    def get(self, key: str, default: Any = None) -> Any:
        name = self.field_name(key)
        if name is not None:
            return getattr(self, name)
        return self.extra.get(key, default)

    def set(self, key: str, value: Any) -> None:
        name = self.field_name(key)
        if name is not None:
            setattr(self, name, value)
        else:
            self.extra[key] = value

    def remove(self, key: str) -> bool:
        """
        Clear an optional field or drop an extension key.

        Required fields are left untouched. Returns True if something was
        cleared.
        """
        name = self.field_name(key)
        if name in self.OPTIONAL_FIELDS:
            changed = getattr(self, name) is not None
            setattr(self, name, None)
            return changed
        if name is None and key in self.extra:
            del self.extra[key]
            return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        data = {to_camel_case(name): getattr(self, name) for name in self.REQUIRED_FIELDS}
        for name in self.OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[to_camel_case(name)] = value
        data.update(_to_wire(self.extra))
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'EntityMeta':
        meta = cls()
        for key, value in (data or {}).items():
            meta.set(key, value)
        return meta


# =============================================================================
# ENTITIES, PAGES, DOCUMENT
# =============================================================================

@dataclass
class TransformationResult:
    """Result of a VLM entity-to-markdown transformation."""
    success: bool
    markdown: str
    model: str
    tokens: Dict[str, int] = field(default_factory=lambda: {'input': 0, 'output': 0})
    timestamp: int = 0
    prompt_style: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'success': self.success,
            'markdown': self.markdown,
            'model': self.model,
            'tokens': dict(self.tokens),
            'timestamp': self.timestamp,
        }
        if self.prompt_style is not None:
            data['promptStyle'] = self.prompt_style
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransformationResult':
        return cls(
            success=bool(data.get('success', False)),
            markdown=data.get('markdown', ''),
            model=data.get('model', ''),
            tokens=dict(data.get('tokens') or {'input': 0, 'output': 0}),
            timestamp=data.get('timestamp', 0),
            prompt_style=data.get('promptStyle'),
        )


# Top-level entity attributes addressable by selector and attr()
_ENTITY_FIELDS = (
    'id', 'type', 'text', 'value', 'bbox', 'meta', 'page_index',
    'table_id', 'row_index', 'col_index',
)


@dataclass(eq=False)
class VirtualEntity:
    """
    One flat extracted item with geometry and verification metadata.

    Entities compare by identity: two entities with equal fields are still
    distinct items in the document.

    Attributes:
        id: Entity id (expected unique within a document)
        type: One of ENTITY_TYPES
        text: Raw text content
        bbox: Corner-form bounding box
        meta: Verification state
        page_index: 0-based index of the owning page
        value: Parsed numeric (or string) value, if any
        table_id / row_index / col_index: Table membership for cells
        data: Open data bag, serialized as ``_data``
    """
    id: str
    type: str
    text: str
    bbox: BoundingBox
    meta: EntityMeta
    page_index: int
    value: Any = None
    table_id: Optional[str] = None
    row_index: Optional[int] = None
    col_index: Optional[int] = None
    data: Optional[Dict[str, Any]] = None

    @property
    def page_number(self) -> int:
        return self.page_index + 1

    @staticmethod
    def field_name(key: str) -> Optional[str]:
        """Entity attribute name for `key` (Python or wire spelling), else None."""
        if key in _ENTITY_FIELDS:
            return key
        if key == '_data':
            return 'data'
        name = to_snake_case(key)
        return name if name in _ENTITY_FIELDS else None

    def get_field(self, key: str) -> Any:
        """
        Look up an attribute by name: meta first, then entity fields.

        Returns None when neither holds the key.
        """
        if self.meta.has_key(key):
            return self.meta.get(key)
        name = self.field_name(key)
        if name is not None:
            return getattr(self, name)
        return None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'id': self.id,
            'type': self.type,
            'text': self.text,
        }
        if self.value is not None:
            data['value'] = self.value
        data['bbox'] = self.bbox.to_dict()
        data['meta'] = self.meta.to_dict()
        data['pageIndex'] = self.page_index
        if self.table_id is not None:
            data['tableId'] = self.table_id
        if self.row_index is not None:
            data['rowIndex'] = self.row_index
        if self.col_index is not None:
            data['colIndex'] = self.col_index
        if self.data is not None:
            data['_data'] = _to_wire(self.data)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VirtualEntity':
        bag = data.get('_data')
        if bag is not None:
            bag = dict(bag)
            if isinstance(bag.get('transformation'), dict):
                bag['transformation'] = TransformationResult.from_dict(bag['transformation'])
        return cls(
            id=data['id'],
            type=data.get('type', 'unknown'),
            text=data.get('text', ''),
            bbox=BoundingBox.from_dict(data.get('bbox')),
            meta=EntityMeta.from_dict(data.get('meta')),
            page_index=data.get('pageIndex', 0),
            value=data.get('value'),
            table_id=data.get('tableId'),
            row_index=data.get('rowIndex'),
            col_index=data.get('colIndex'),
            data=bag,
        )


@dataclass
class PageMeta:
    """Verification statistics for one page."""
    total_entities: int = 0
    verified_count: int = 0
    flagged_count: int = 0
    pending_count: int = 0
    avg_confidence: float = 0.0
    verification_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {to_camel_case(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'PageMeta':
        data = data or {}
        return cls(**{f.name: data.get(to_camel_case(f.name), f.default) for f in fields(cls)})


@dataclass
class VirtualPage:
    """A page: 0-based index, 1-based number, entities ordered top to bottom."""
    id: str
    page_index: int
    page_number: int
    entities: List[VirtualEntity] = field(default_factory=list)
    meta: PageMeta = field(default_factory=PageMeta)
    markdown: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'id': self.id,
            'pageIndex': self.page_index,
            'pageNumber': self.page_number,
            'entities': [e.to_dict() for e in self.entities],
            'meta': self.meta.to_dict(),
        }
        for key in ('markdown', 'width', 'height'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VirtualPage':
        page_index = data.get('pageIndex', 0)
        return cls(
            id=data.get('id', f'p_{page_index}'),
            page_index=page_index,
            page_number=data.get('pageNumber', page_index + 1),
            entities=[VirtualEntity.from_dict(e) for e in data.get('entities', [])],
            meta=PageMeta.from_dict(data.get('meta')),
            markdown=data.get('markdown'),
            width=data.get('width'),
            height=data.get('height'),
        )


@dataclass
class DocumentMeta:
    """Document-level statistics and provenance. Timestamps are epoch ms."""
    total_pages: int = 0
    total_entities: int = 0
    verified_count: int = 0
    flagged_count: int = 0
    pending_count: int = 0
    verification_score: float = 0.0
    created_at: int = 0
    last_modified: int = 0
    file_name: Optional[str] = None
    document_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                data[to_camel_case(f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DocumentMeta':
        data = data or {}
        return cls(**{f.name: data.get(to_camel_case(f.name), f.default) for f in fields(cls)})


@dataclass
class VirtualDoc:
    """
    Root document: pages of flat entities plus aggregate statistics.

    `version` increases by one for every mutation command that changed at
    least one field. Mutation commands hold `lock` while writing.

    Example:
        >>> doc = DocCompiler().add_tables(tables).compile()
        >>> doc.version
        1
        >>> restored = VirtualDoc.from_dict(json.loads(doc.to_json()))
    """
    id: str
    version: int = 1
    pages: List[VirtualPage] = field(default_factory=list)
    meta: DocumentMeta = field(default_factory=DocumentMeta)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def iter_entities(self) -> Iterator[VirtualEntity]:
        """All entities in page order."""
        for page in self.pages:
            yield from page.entities

    def get_page(self, page_number: int) -> Optional[VirtualPage]:
        for page in self.pages:
            if page.page_number == page_number:
                return page
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'version': self.version,
            'pages': [p.to_dict() for p in self.pages],
            'meta': self.meta.to_dict(),
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VirtualDoc':
        return cls(
            id=data['id'],
            version=data.get('version', 1),
            pages=[VirtualPage.from_dict(p) for p in data.get('pages', [])],
            meta=DocumentMeta.from_dict(data.get('meta')),
        )


# =============================================================================
# MUTATION TRACKING & STATISTICS
# =============================================================================

@dataclass
class EntityChange:
    """One tracked field edit. `new_value` is None for removals."""
    entity_id: str
    page_index: int
    field: str
    old_value: Any
    new_value: Any
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entityId': self.entity_id,
            'pageIndex': self.page_index,
            'field': self.field,
            'oldValue': _to_wire(self.old_value),
            'newValue': _to_wire(self.new_value),
            'timestamp': self.timestamp,
        }


@dataclass
class MutationLog:
    """Ordered edits exported for external persistence."""
    doc_id: str
    doc_version: int
    changes: List[EntityChange] = field(default_factory=list)
    created_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'docId': self.doc_id,
            'docVersion': self.doc_version,
            'changes': [c.to_dict() for c in self.changes],
            'createdAt': self.created_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass
class QueryStats:
    """Verification counts and average confidence for a selection."""
    total: int = 0
    verified: int = 0
    flagged: int = 0
    pending: int = 0
    score: float = 0.0
    avg_confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'verified': self.verified,
            'flagged': self.flagged,
            'pending': self.pending,
            'score': self.score,
            'avgConfidence': self.avg_confidence,
        }
