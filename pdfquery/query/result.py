"""
Query Result Module.

QueryResult is an immutable, ordered view of entities over a shared
VirtualDoc. Read operations return new results over the same document.
Mutation commands (attr, remove_attr, toggle_attr, data) write through to
the live entities under the document lock and record tracked edits in the
result's own change log.

Usage:
    $$ = create_query_engine(doc)
    $$('.currency').stats()
    log = $$('.table[confidence>0.9]').attr('verified', True).get_mutation_log()

Author: ML Engineering Team
"""

import json
import math
import re
from functools import cmp_to_key, reduce
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from config import get_config
from pdfquery.output_handler.html_renderer import (
    RenderOptions,
    render_entities,
    render_html_document,
    render_pages,
)
from pdfquery.query.selector import matches_selector
from pdfquery.query.transform import transform_entity
from pdfquery.utils.helpers import is_number, now_ms, stringify
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import (
    EntityChange,
    EntityMeta,
    MutationLog,
    QueryStats,
    VirtualDoc,
    VirtualEntity,
)

# Initialize module logger
logger = get_logger(__name__)

# Entity fields writable through attr(); other non-meta keys become extension meta
MUTABLE_ENTITY_FIELDS = ('text', 'value', 'type')

Selector = Union[str, Callable[[VirtualEntity], bool], None]

_MISSING = object()


def _same(old: Any, new: Any) -> bool:
    """Strict equality: same type and equal value; int and float compare by value."""
    if is_number(old) and is_number(new):
        return old == new
    return type(old) is type(new) and old == new


def _write_field(entity: VirtualEntity, key: str, value: Any) -> None:
    if EntityMeta.field_name(key) is None and VirtualEntity.field_name(key) in MUTABLE_ENTITY_FIELDS:
        setattr(entity, VirtualEntity.field_name(key), value)
    else:
        entity.meta.set(key, value)


class QueryResult:
    """
    Ordered selection of entities from one document.

    Attributes:
        entities: The selected entities (tuple, live references).
    """

    def __init__(self, entities: Iterable[VirtualEntity], doc: VirtualDoc):
        self.entities: Tuple[VirtualEntity, ...] = tuple(entities)
        self._doc = doc
        self._changes: List[EntityChange] = []

    def __len__(self) -> int:
        return len(self.entities)

    def __iter__(self) -> Iterator[VirtualEntity]:
        return iter(self.entities)

    def __repr__(self) -> str:
        return f"QueryResult(doc={self._doc.id!r}, length={len(self.entities)})"

    def _derive(self, entities: Iterable[VirtualEntity]) -> 'QueryResult':
        return QueryResult(entities, self._doc)

    # -------------------------------------------------------------------------
    # Filtering
    # -------------------------------------------------------------------------

    def filter(self, selector: Selector) -> 'QueryResult':
        """Keep entities matching a predicate or compound selector string."""
        if callable(selector):
            return self._derive(e for e in self.entities if selector(e))
        if isinstance(selector, str):
            return self._derive(e for e in self.entities if matches_selector(e, selector))
        return self._derive(self.entities)

    def not_(self, selector: Selector) -> 'QueryResult':
        """Drop entities matching a predicate or compound selector string."""
        if callable(selector):
            return self._derive(e for e in self.entities if not selector(e))
        if isinstance(selector, str):
            return self._derive(e for e in self.entities if not matches_selector(e, selector))
        return self._derive(self.entities)

    def contains(self, text: str) -> 'QueryResult':
        """Case-insensitive substring search on entity text."""
        needle = text.lower()
        return self._derive(e for e in self.entities if e.text and needle in e.text.lower())

    def matches(self, pattern: Union[str, re.Pattern]) -> 'QueryResult':
        """Keep entities whose text matches a regex (search semantics)."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        return self._derive(e for e in self.entities if e.text and regex.search(e.text))

    def on_page(self, page_number: int) -> 'QueryResult':
        return self._derive(e for e in self.entities if e.page_index == page_number - 1)

    def in_table(self, table_id: str) -> 'QueryResult':
        return self._derive(e for e in self.entities if e.table_id == table_id)

    def take(self, n: int) -> 'QueryResult':
        return self._derive(self.entities[:max(n, 0)])

    def skip(self, n: int) -> 'QueryResult':
        return self._derive(self.entities[max(n, 0):])

    def first(self) -> 'QueryResult':
        return self._derive(self.entities[:1])

    def last(self) -> 'QueryResult':
        return self._derive(self.entities[-1:])

    def eq(self, index: int) -> 'QueryResult':
        """Entity at `index` (negative counts from the end), or empty."""
        if -len(self.entities) <= index < len(self.entities):
            return self._derive([self.entities[index]])
        return self._derive([])

    def by_id(self, entity_id: str) -> 'QueryResult':
        return self._derive(e for e in self.entities if e.id == entity_id)

    # -------------------------------------------------------------------------
    # Sorting
    # -------------------------------------------------------------------------

    def sort_by(self, key: Union[str, Callable[[VirtualEntity], Any]]) -> 'QueryResult':
        """
        Sort ascending by a field name or key function.

        Numbers compare numerically; anything else compares as text.
        Field names are looked up like attr(): meta first, then entity.
        """
        def key_of(entity):
            return key(entity) if callable(key) else entity.get_field(key)

        def compare(a, b):
            left, right = key_of(a), key_of(b)
            if is_number(left) and is_number(right):
                return (left > right) - (left < right)
            left, right = stringify(left), stringify(right)
            return (left > right) - (left < right)

        return self._derive(sorted(self.entities, key=cmp_to_key(compare)))

    def sort_by_confidence(self) -> 'QueryResult':
        """Highest confidence first; ties keep their order."""
        return self._derive(sorted(self.entities, key=lambda e: e.meta.confidence or 0, reverse=True))

    def sort_by_position(self) -> 'QueryResult':
        """Reading order: rows top to bottom, then left to right within a row."""
        tolerance = get_config("query.position_tolerance", 0.01)

        def compare(a, b):
            dy = a.bbox.ymin - b.bbox.ymin
            if abs(dy) > tolerance:
                return -1 if dy < 0 else 1
            dx = a.bbox.xmin - b.bbox.xmin
            return (dx > 0) - (dx < 0)

        return self._derive(sorted(self.entities, key=cmp_to_key(compare)))

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def get(self, index: int) -> Optional[VirtualEntity]:
        """Entity at `index`, or None when out of range."""
        if -len(self.entities) <= index < len(self.entities):
            return self.entities[index]
        return None

    def text(self) -> Optional[str]:
        return self.entities[0].text if self.entities else None

    def texts(self) -> List[str]:
        return [e.text for e in self.entities]

    def values(self) -> List[Any]:
        return [e.value for e in self.entities]

    def ids(self) -> List[str]:
        return [e.id for e in self.entities]

    def types(self) -> List[str]:
        return [e.type for e in self.entities]

    def each(self, fn: Callable[[VirtualEntity], Any]) -> 'QueryResult':
        for entity in self.entities:
            fn(entity)
        return self

    def map(self, fn: Callable[[VirtualEntity], Any]) -> List[Any]:
        return [fn(e) for e in self.entities]

    def reduce(self, fn: Callable[[Any, VirtualEntity], Any], initial: Any) -> Any:
        return reduce(fn, self.entities, initial)

    def some(self, predicate: Callable[[VirtualEntity], bool]) -> bool:
        return any(predicate(e) for e in self.entities)

    def every(self, predicate: Callable[[VirtualEntity], bool]) -> bool:
        return all(predicate(e) for e in self.entities)

    def find(self, predicate: Callable[[VirtualEntity], bool]) -> Optional[VirtualEntity]:
        return next((e for e in self.entities if predicate(e)), None)

    def get_doc(self) -> VirtualDoc:
        return self._doc

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def attr(self, key: Union[str, Dict[str, Any]], value: Any = _MISSING) -> Any:
        """
        Get or set attributes.

        attr('confidence') returns the first entity's value (meta first,
        then entity fields; None when empty). attr('verified', True) or
        attr({'verified': True, 'verifiedBy': 'me'}) sets every selected
        entity and returns self.

        Meta fields are routed to meta, text/value/type to the entity and
        any other key to the meta extension map.
        """
        if isinstance(key, str) and value is _MISSING:
            return self.entities[0].get_field(key) if self.entities else None

        attrs = {key: value} if isinstance(key, str) else dict(key)
        self._apply([(entity, attrs) for entity in self.entities])
        return self

    def _apply(self, assignments: List[Tuple[VirtualEntity, Dict[str, Any]]]) -> None:
        """Run one mutation command; bumps the doc version once if anything changed."""
        timestamp = now_ms()
        changed = 0

        with self._doc.lock:
            for entity, attrs in assignments:
                for field_key, new_value in attrs.items():
                    old_value = entity.get_field(field_key)
                    if _same(old_value, new_value):
                        continue
                    self._changes.append(EntityChange(
                        entity_id=entity.id,
                        page_index=entity.page_index,
                        field=field_key,
                        old_value=old_value,
                        new_value=new_value,
                        timestamp=timestamp,
                    ))
                    _write_field(entity, field_key, new_value)
                    changed += 1
            self._commit(changed, timestamp)

    def _commit(self, changed: int, timestamp: int) -> None:
        if changed:
            self._doc.version += 1
            self._doc.meta.last_modified = timestamp
            logger.debug(f"{self._doc.id}: {changed} field changes, version {self._doc.version}")

    def remove_attr(self, keys: Union[str, List[str]]) -> 'QueryResult':
        """
        Clear optional meta fields or extension keys.

        Required meta fields and entity fields are left untouched.
        """
        key_list = [keys] if isinstance(keys, str) else list(keys)
        timestamp = now_ms()
        changed = 0

        with self._doc.lock:
            for entity in self.entities:
                for field_key in key_list:
                    old_value = entity.get_field(field_key)
                    if old_value is None or not entity.meta.remove(field_key):
                        continue
                    self._changes.append(EntityChange(
                        entity_id=entity.id,
                        page_index=entity.page_index,
                        field=field_key,
                        old_value=old_value,
                        new_value=None,
                        timestamp=timestamp,
                    ))
                    changed += 1
            self._commit(changed, timestamp)
        return self

    def toggle_attr(self, key: str, force: Optional[bool] = None) -> 'QueryResult':
        """
        Flip a boolean attribute per entity, or set it to `force`.

        The whole call is one command: at most one version increment.
        """
        with self._doc.lock:
            assignments = [
                (entity, {key: force if force is not None else not bool(entity.get_field(key))})
                for entity in self.entities
            ]
            self._apply(assignments)
        return self

    def data(self, key: Union[str, Dict[str, Any]], value: Any = _MISSING) -> Any:
        """
        Get or set values in the entity data bag.

        Reads fall back to meta when the bag lacks the key. Writes are not
        tracked and do not change the document version.
        """
        if isinstance(key, str) and value is _MISSING:
            if not self.entities:
                return None
            entity = self.entities[0]
            if entity.data and key in entity.data:
                return entity.data[key]
            if entity.meta.has_key(key):
                return entity.meta.get(key)
            return None

        values = {key: value} if isinstance(key, str) else dict(key)
        with self._doc.lock:
            for entity in self.entities:
                if entity.data is None:
                    entity.data = {}
                entity.data.update(values)
        return self

    def changes(self) -> List[EntityChange]:
        return list(self._changes)

    def get_mutation_log(self) -> MutationLog:
        """Snapshot of this result's edits for external persistence."""
        return MutationLog(
            doc_id=self._doc.id,
            doc_version=self._doc.version,
            changes=list(self._changes),
            created_at=now_ms(),
        )

    def clear_changes(self) -> 'QueryResult':
        self._changes = []
        return self

    def has_changes(self) -> bool:
        return bool(self._changes)

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    def stats(self) -> QueryStats:
        total = len(self.entities)
        statuses = [e.meta.verification_status for e in self.entities]
        verified = statuses.count('verified')
        confidence_sum = sum(e.meta.confidence or 0 for e in self.entities)

        return QueryStats(
            total=total,
            verified=verified,
            flagged=statuses.count('flagged'),
            pending=statuses.count('pending'),
            score=verified / total if total > 0 else 0.0,
            avg_confidence=confidence_sum / total if total > 0 else 0.0,
        )

    def _numbers(self) -> List[float]:
        return [e.value for e in self.entities if is_number(e.value) and not math.isnan(e.value)]

    def sum(self) -> float:
        return sum(self._numbers())

    def avg(self) -> float:
        numbers = self._numbers()
        return sum(numbers) / len(numbers) if numbers else 0.0

    def min(self) -> Optional[float]:
        numbers = self._numbers()
        return min(numbers) if numbers else None

    def max(self) -> Optional[float]:
        numbers = self._numbers()
        return max(numbers) if numbers else None

    def count(self) -> int:
        return len(self.entities)

    def count_by_type(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for entity in self.entities:
            counts[entity.type] = counts.get(entity.type, 0) + 1
        return counts

    def count_by_page(self) -> Dict[int, int]:
        counts: Dict[int, int] = {}
        for entity in self.entities:
            counts[entity.page_number] = counts.get(entity.page_number, 0) + 1
        return counts

    def group_by(self, key_fn: Callable[[VirtualEntity], Any]) -> Dict[Any, 'QueryResult']:
        groups: Dict[Any, List[VirtualEntity]] = {}
        for entity in self.entities:
            groups.setdefault(key_fn(entity), []).append(entity)
        return {key: self._derive(members) for key, members in groups.items()}

    def group_by_page(self) -> Dict[int, 'QueryResult']:
        return self.group_by(lambda e: e.page_number)

    def group_by_type(self) -> Dict[str, 'QueryResult']:
        return self.group_by(lambda e: e.type)

    # -------------------------------------------------------------------------
    # Serialization & rendering
    # -------------------------------------------------------------------------

    def to_array(self) -> List[VirtualEntity]:
        return list(self.entities)

    def json(self, indent: Optional[int] = None) -> str:
        return json.dumps([e.to_dict() for e in self.entities], indent=indent, ensure_ascii=False)

    def html(self, options: Optional[RenderOptions] = None) -> str:
        return render_entities(self.entities, options)

    def html_document(self, options: Optional[RenderOptions] = None) -> str:
        return render_html_document(self.entities, options)

    def html_by_page(self, options: Optional[RenderOptions] = None) -> str:
        return render_pages(self.entities, options)

    async def markdown(self, image_url: Optional[str] = None, model: Optional[str] = None,
                       prompt_style: Optional[str] = None, api_endpoint: Optional[str] = None,
                       force: bool = False, client=None) -> str:
        """
        Transform the first entity to markdown with a vision model.

        See pdfquery.query.transform.transform_entity. Returns "" for an
        empty result.
        """
        if not self.entities:
            return ''
        return await transform_entity(
            self.entities[0],
            image_url=image_url,
            model=model,
            prompt_style=prompt_style,
            api_endpoint=api_endpoint,
            force=force,
            client=client,
        )
