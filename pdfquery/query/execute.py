"""
Config-Driven Query Execution.

The entry point for CLI and API consumers: a QueryConfig goes in, a
serializable QueryResponse comes out.

Usage:
    response = execute_query(doc, QueryConfig(selector=".currency", top_k=10,
                                              min_confidence=0.8, sort_by="confidence"))
    print(json.dumps(response.to_dict()))

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from pdfquery.query.engine import create_query_engine
from pdfquery.utils.exceptions import InvalidQueryConfigError
from pdfquery.utils.helpers import now_ms
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import BoundingBox, QueryStats, VirtualDoc, VirtualEntity

# Initialize module logger
logger = get_logger(__name__)

SORT_KEYS = ('confidence', 'position', 'page')
OUTPUT_FORMATS = ('json', 'text', 'html', 'csv')


@dataclass
class QueryConfig:
    """
    Query parameters.

    Attributes:
        selector: Selector string (None or "*" selects everything).
        top_k: Maximum number of items returned; totals count all matches.
        page_range: Inclusive (start, end) page numbers.
        min_confidence: Lower confidence bound (inclusive).
        status: Verification status or list of statuses to keep.
        contains: Case-insensitive text search.
        pattern: Case-insensitive regex searched in entity text.
        sort_by: "confidence", "position" or "page".
        output: Preferred output format for renderers.
        context: Text lines shown per item in text output (0 collapses to one line).
    """
    selector: Optional[str] = None
    top_k: Optional[int] = None
    page_range: Optional[Tuple[int, int]] = None
    min_confidence: Optional[float] = None
    status: Union[str, List[str], None] = None
    contains: Optional[str] = None
    pattern: Optional[str] = None
    sort_by: Optional[str] = None
    output: Optional[str] = None
    context: int = 0

    def validate(self) -> None:
        """
        Check field values.

        Raises:
            InvalidQueryConfigError: On the first invalid field.
        """
        if self.top_k is not None and self.top_k < 0:
            raise InvalidQueryConfigError("top_k", self.top_k, "must be >= 0")
        if self.page_range is not None:
            if len(self.page_range) != 2 or self.page_range[0] > self.page_range[1]:
                raise InvalidQueryConfigError("page_range", self.page_range, "expected (start, end) with start <= end")
        if self.sort_by is not None and self.sort_by not in SORT_KEYS:
            raise InvalidQueryConfigError("sort_by", self.sort_by, f"expected one of {SORT_KEYS}")
        if self.output is not None and self.output not in OUTPUT_FORMATS:
            raise InvalidQueryConfigError("output", self.output, f"expected one of {OUTPUT_FORMATS}")
        if self.pattern:
            try:
                re.compile(self.pattern)
            except re.error as e:
                raise InvalidQueryConfigError("pattern", self.pattern, str(e)) from e

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QueryConfig':
        """Build from a camelCase (or snake_case) mapping."""
        def pick(snake: str, camel: str) -> Any:
            return data.get(camel, data.get(snake))

        page_range = pick('page_range', 'pageRange')
        return cls(
            selector=data.get('selector'),
            top_k=pick('top_k', 'topK'),
            page_range=tuple(page_range) if page_range is not None else None,
            min_confidence=pick('min_confidence', 'minConfidence'),
            status=data.get('status'),
            contains=data.get('contains'),
            pattern=data.get('pattern'),
            sort_by=pick('sort_by', 'sortBy'),
            output=data.get('output'),
            context=data.get('context') or 0,
        )


@dataclass
class QueryResultItem:
    """Serializable view of one matched entity."""
    id: str
    type: str
    text: str
    page: int
    bbox: BoundingBox
    confidence: float
    status: str
    value: Any = None
    table_id: Optional[str] = None
    position: Optional[Dict[str, int]] = None

    @classmethod
    def from_entity(cls, entity: VirtualEntity) -> 'QueryResultItem':
        position = None
        if entity.row_index is not None:
            position = {'row': entity.row_index, 'col': entity.col_index or 0}
        return cls(
            id=entity.id,
            type=entity.type,
            text=entity.text,
            page=entity.page_number,
            bbox=entity.bbox,
            confidence=entity.meta.confidence,
            status=entity.meta.verification_status,
            value=entity.value,
            table_id=entity.table_id,
            position=position,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'type': self.type,
            'text': self.text,
            'page': self.page,
            'bbox': self.bbox.to_dict(),
            'confidence': self.confidence,
            'status': self.status,
        }
        if self.value is not None:
            data['value'] = self.value
        if self.table_id is not None:
            data['tableId'] = self.table_id
        if self.position is not None:
            data['position'] = dict(self.position)
        return data


@dataclass
class QueryResponse:
    """Result of execute_query. `total` counts matches before top_k."""
    query: Optional[str]
    document_id: str
    total: int
    returned: int
    items: List[QueryResultItem] = field(default_factory=list)
    stats: QueryStats = field(default_factory=QueryStats)
    duration: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'query': self.query,
            'documentId': self.document_id,
            'total': self.total,
            'returned': self.returned,
            'items': [item.to_dict() for item in self.items],
            'stats': self.stats.to_dict(),
            'duration': self.duration,
        }


def execute_query(doc: VirtualDoc, config: Union[QueryConfig, Dict[str, Any]]) -> QueryResponse:
    """
    Run a configured query.

    Filters apply in this order: selector, page range, minimum confidence,
    status, contains, pattern, then sorting. Statistics and the total are
    taken before the top_k cut.

    Raises:
        InvalidQueryConfigError: If the config is invalid.
    """
    if isinstance(config, dict):
        config = QueryConfig.from_dict(config)
    config.validate()

    start = now_ms()
    result = create_query_engine(doc)(config.selector)

    if config.page_range is not None:
        first_page, last_page = config.page_range
        result = result.filter(lambda e: first_page <= e.page_number <= last_page)

    if config.min_confidence is not None:
        result = result.filter(f"[confidence>={config.min_confidence}]")

    if config.status:
        statuses = [config.status] if isinstance(config.status, str) else list(config.status)
        result = result.filter(lambda e: e.meta.verification_status in statuses)

    if config.contains:
        result = result.contains(config.contains)

    if config.pattern:
        result = result.matches(re.compile(config.pattern, re.IGNORECASE))

    if config.sort_by == 'confidence':
        result = result.sort_by_confidence()
    elif config.sort_by == 'position':
        result = result.sort_by_position()
    elif config.sort_by == 'page':
        result = result.sort_by(lambda e: e.page_index)

    stats = result.stats()
    total = len(result)

    if config.top_k is not None and config.top_k > 0:
        result = result.take(config.top_k)

    items = [QueryResultItem.from_entity(entity) for entity in result]
    response = QueryResponse(
        query=config.selector,
        document_id=doc.id,
        total=total,
        returned=len(items),
        items=items,
        stats=stats,
        duration=now_ms() - start,
    )
    logger.info(f"Query {config.selector!r} on {doc.id}: {response.returned}/{response.total} results")
    return response
