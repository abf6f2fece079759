"""
Query Module.

jQuery-like selection, aggregation and tracked mutation over a VirtualDoc.
"""

from .selector import (
    SelectorGroup,
    SelectorBranch,
    CompoundSelector,
    IndexFilter,
    parse_selector,
    parse_compound,
    split_or,
    tokenize_compound,
    matches_selector,
)
from .result import QueryResult
from .engine import QueryEngine, create_query_engine, query_page, query_pages
from .execute import QueryConfig, QueryResultItem, QueryResponse, execute_query
from .transform import transform_entity

__all__ = [
    'SelectorGroup',
    'SelectorBranch',
    'CompoundSelector',
    'IndexFilter',
    'parse_selector',
    'parse_compound',
    'split_or',
    'tokenize_compound',
    'matches_selector',
    'QueryResult',
    'QueryEngine',
    'create_query_engine',
    'query_page',
    'query_pages',
    'QueryConfig',
    'QueryResultItem',
    'QueryResponse',
    'execute_query',
    'transform_entity',
]
