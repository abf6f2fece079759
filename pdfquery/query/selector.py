"""
Selector Parser and Matcher.

Parses CSS-like selector strings into a small AST and matches entities
against it.

Grammar:
    group     := branch ("," branch)*
    branch    := compound [index]
    compound  := part*
    part      := "*" | ".type" | "#id" | "[key op value]" | "[key]"
               | ":contains(text)" | ":page(n)" | ":page(<=n)" | ":pages(a-b)"
    index     := ":first" | ":last" | ":even" | ":odd"
               | ":eq(n)" | ":gt(n)" | ":lt(n)"

Unknown or malformed parts never raise; they match nothing.

Usage:
    group = parse_selector(".table[confidence>0.9], .figure:first")
    matches = group.select(entities)

Author: ML Engineering Team
"""

import math
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple, Union

from pdfquery.utils.helpers import parse_float, stringify, to_number
from pdfquery.vdom.types import VirtualEntity

# Characters allowed in .type and #id names
_NAME_CHAR = re.compile(r'[A-Za-z0-9_-]')

_STRING_OP = re.compile(r'([A-Za-z0-9_]+)([\^$*]?=)(.+)')
_COMPARE_OP = re.compile(r'([A-Za-z0-9_]+)(>=?|<=?|!=)(.+)')
_PRESENCE = re.compile(r'[A-Za-z0-9_]+')
_PAGE_COMPARE = re.compile(r'(<=?|>=?)([0-9]+)')
_PAGE_RANGE = re.compile(r'([0-9]+)-([0-9]+)')
_LEADING_INT = re.compile(r'^\s*[+-]?[0-9]+')
_QUOTES = re.compile(r'^["\']|["\']$')

# Trailing index pseudo-classes, checked in this order
_INDEX_PATTERNS = (
    ('first', re.compile(r':first$')),
    ('last', re.compile(r':last$')),
    ('even', re.compile(r':even$')),
    ('odd', re.compile(r':odd$')),
    ('eq', re.compile(r':eq\(([0-9]+)\)$')),
    ('gt', re.compile(r':gt\(([0-9]+)\)$')),
    ('lt', re.compile(r':lt\(([0-9]+)\)$')),
)


def _strip_quotes(text: str) -> str:
    return _QUOTES.sub('', text)


def _parse_literal(raw: str) -> Union[bool, float, str]:
    """Comparison operand: true/false, a leading float, else unquoted text."""
    if raw == 'true':
        return True
    if raw == 'false':
        return False
    number = parse_float(raw)
    if number is not None:
        return number
    return _strip_quotes(raw)


# =============================================================================
# AST NODES
# =============================================================================

@dataclass(frozen=True)
class Universal:
    def matches(self, entity: VirtualEntity) -> bool:
        return True


@dataclass(frozen=True)
class TypeSelector:
    name: str

    def matches(self, entity: VirtualEntity) -> bool:
        return entity.type == self.name


@dataclass(frozen=True)
class IdSelector:
    name: str

    def matches(self, entity: VirtualEntity) -> bool:
        return entity.id == self.name


@dataclass(frozen=True)
class AttributeSelector:
    """
    Attribute test against meta first, then top-level entity fields.

    String operators (=, ^=, $=, *=) compare canonical string forms; ordering
    operators coerce both sides to numbers, so a missing value never
    matches; != compares string forms and holds for missing values.
    """
    key: str
    op: Optional[str] = None
    value: Union[bool, float, str, None] = None

    def matches(self, entity: VirtualEntity) -> bool:
        actual = entity.get_field(self.key)

        if self.op is None:
            return actual is not None

        if self.op in ('=', '^=', '$=', '*='):
            text = stringify(actual)
            if self.op == '=':
                return text == self.value
            if self.op == '^=':
                return text.startswith(self.value)
            if self.op == '$=':
                return text.endswith(self.value)
            return self.value in text

        if self.op == '!=':
            return actual is None or stringify(actual) != stringify(self.value)

        left, right = to_number(actual), to_number(self.value)
        if math.isnan(left) or math.isnan(right):
            return False
        if self.op == '>':
            return left > right
        if self.op == '>=':
            return left >= right
        if self.op == '<':
            return left < right
        return left <= right


@dataclass(frozen=True)
class ContainsPseudo:
    text: str

    def matches(self, entity: VirtualEntity) -> bool:
        return self.text in (entity.text or '').lower()


@dataclass(frozen=True)
class PagePseudo:
    """:page(n) or :page(op n) on the 1-based page number."""
    number: int
    op: str = '='

    def matches(self, entity: VirtualEntity) -> bool:
        page = entity.page_number
        if self.op == '<=':
            return page <= self.number
        if self.op == '<':
            return page < self.number
        if self.op == '>=':
            return page >= self.number
        if self.op == '>':
            return page > self.number
        return page == self.number


@dataclass(frozen=True)
class PagesPseudo:
    start: int
    end: int

    def matches(self, entity: VirtualEntity) -> bool:
        return self.start <= entity.page_number <= self.end


@dataclass(frozen=True)
class Unmatched:
    """A part that was not understood; matches nothing."""
    raw: str

    def matches(self, entity: VirtualEntity) -> bool:
        return False


@dataclass(frozen=True)
class CompoundSelector:
    """AND of simple parts; an empty compound matches nothing."""
    parts: Tuple = ()

    def matches(self, entity: VirtualEntity) -> bool:
        if not self.parts:
            return False
        return all(part.matches(entity) for part in self.parts)


@dataclass(frozen=True)
class IndexFilter:
    """Positional post-filter applied to an ordered match list."""
    kind: str
    value: Optional[int] = None

    def apply(self, entities: List[VirtualEntity]) -> List[VirtualEntity]:
        if self.kind == 'first':
            return entities[:1]
        if self.kind == 'last':
            return entities[-1:]
        if self.kind == 'eq':
            return [entities[self.value]] if self.value < len(entities) else []
        if self.kind == 'gt':
            return entities[self.value + 1:]
        if self.kind == 'lt':
            return entities[:self.value]
        if self.kind == 'even':
            return entities[0::2]
        if self.kind == 'odd':
            return entities[1::2]
        return entities


@dataclass(frozen=True)
class SelectorBranch:
    compound: CompoundSelector
    index: Optional[IndexFilter] = None

    def select(self, entities: Sequence[VirtualEntity]) -> List[VirtualEntity]:
        matched = [entity for entity in entities if self.compound.matches(entity)]
        if self.index is not None:
            matched = self.index.apply(matched)
        return matched


@dataclass(frozen=True)
class SelectorGroup:
    """
    Comma-separated branches.

    One branch returns its matches as-is; several branches return the
    union in first-seen order with duplicate ids dropped.
    """
    branches: Tuple[SelectorBranch, ...] = ()

    def select(self, entities: Sequence[VirtualEntity]) -> List[VirtualEntity]:
        if len(self.branches) == 1:
            return self.branches[0].select(entities)

        seen = set()
        union = []
        for branch in self.branches:
            for entity in branch.select(entities):
                if entity.id not in seen:
                    seen.add(entity.id)
                    union.append(entity)
        return union


# =============================================================================
# TOKENIZER & PARSER
# =============================================================================

def split_or(selector: str) -> List[str]:
    """
    Split on top-level commas; commas inside [...] or (...) are kept.

    Example:
        >>> split_or(":contains(a, b), .table")
        [':contains(a, b)', '.table']
    """
    parts = []
    current = []
    depth = 0

    for char in selector:
        if char in '[(':
            depth += 1
        elif char in '])':
            depth -= 1
        elif char == ',' and depth == 0:
            parts.append(''.join(current).strip())
            current = []
            continue
        current.append(char)

    tail = ''.join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def tokenize_compound(selector: str) -> List[str]:
    """
    Split a compound selector into simple-selector tokens.

    Whitespace and stray characters between tokens are skipped.

    Example:
        >>> tokenize_compound("#id.table[confidence>0.9]:contains(x)")
        ['#id', '.table', '[confidence>0.9]', ':contains(x)']
    """
    tokens = []
    i = 0
    n = len(selector)

    while i < n:
        char = selector[i]

        if char in '.#':
            start = i
            i += 1
            while i < n and _NAME_CHAR.match(selector[i]):
                i += 1
            if i - start > 1:
                tokens.append(selector[start:i])

        elif char == '[':
            start = i
            i += 1
            while i < n and selector[i] != ']':
                i += 1
            if i < n:
                i += 1
            tokens.append(selector[start:i])

        elif char == ':':
            start = i
            i += 1
            while i < n and _NAME_CHAR.match(selector[i]):
                i += 1
            if i < n and selector[i] == '(':
                i += 1
                depth = 1
                while i < n and depth > 0:
                    if selector[i] == '(':
                        depth += 1
                    elif selector[i] == ')':
                        depth -= 1
                    i += 1
            if i - start > 1:
                tokens.append(selector[start:i])

        elif char == '*':
            tokens.append('*')
            i += 1

        else:
            i += 1

    return tokens


def _parse_attribute(body: str):
    match = _STRING_OP.fullmatch(body)
    if match:
        key, op, raw = match.groups()
        return AttributeSelector(key, op, _strip_quotes(raw))

    match = _COMPARE_OP.fullmatch(body)
    if match:
        key, op, raw = match.groups()
        return AttributeSelector(key, op, _parse_literal(raw))

    if _PRESENCE.fullmatch(body):
        return AttributeSelector(body)

    return None


def _parse_page(body: str):
    match = _PAGE_COMPARE.fullmatch(body)
    if match:
        return PagePseudo(int(match.group(2)), match.group(1))
    match = _LEADING_INT.match(body)
    if match:
        return PagePseudo(int(match.group(0)))
    return None


def parse_part(token: str):
    """Parse one token into an AST node (Unmatched when not understood)."""
    node = None

    if token == '*':
        node = Universal()
    elif token.startswith('.'):
        node = TypeSelector(token[1:])
    elif token.startswith('#'):
        node = IdSelector(token[1:])
    elif token.startswith('[') and token.endswith(']'):
        node = _parse_attribute(token[1:-1])
    elif token.startswith(':contains(') and token.endswith(')'):
        node = ContainsPseudo(_strip_quotes(token[10:-1]).lower())
    elif token.startswith(':page(') and token.endswith(')'):
        node = _parse_page(token[6:-1])
    elif token.startswith(':pages(') and token.endswith(')'):
        match = _PAGE_RANGE.fullmatch(token[7:-1])
        if match:
            node = PagesPseudo(int(match.group(1)), int(match.group(2)))

    return node if node is not None else Unmatched(token)


@lru_cache(maxsize=256)
def parse_compound(selector: str) -> CompoundSelector:
    """Parse a compound selector (no commas, no index pseudo-class)."""
    if selector == '*':
        return CompoundSelector((Universal(),))
    return CompoundSelector(tuple(parse_part(token) for token in tokenize_compound(selector)))


def parse_branch(selector: str) -> SelectorBranch:
    """Parse one OR branch, stripping its trailing index pseudo-class."""
    for kind, pattern in _INDEX_PATTERNS:
        match = pattern.search(selector)
        if match:
            base = selector[:match.start()].strip() or '*'
            value = int(match.group(1)) if match.groups() else None
            return SelectorBranch(parse_compound(base), IndexFilter(kind, value))
    return SelectorBranch(parse_compound(selector))


@lru_cache(maxsize=256)
def parse_selector(selector: str) -> SelectorGroup:
    """
    Parse a full selector string.

    Example:
        >>> group = parse_selector(".table:first, #e1")
        >>> len(group.branches)
        2
    """
    return SelectorGroup(tuple(parse_branch(branch) for branch in split_or(selector)))


def matches_selector(entity: VirtualEntity, selector: str) -> bool:
    """True if the entity matches a compound selector (used by filter/not_)."""
    return parse_compound(selector.strip()).matches(entity)
