"""
Output Handler Module.

This module provides functionality for:
    - HTML rendering of entities (fragments, documents, page views)
    - Text and CSV listings of query responses
    - Excel export
    - Writing rendered output to disk

Author: ML Engineering Team
"""

from .html_renderer import (
    RenderOptions,
    render_entity,
    render_entities,
    render_html_document,
    render_pages,
    render_table,
)
from .formatter import format_query_response, query_response_to_csv
from .excel_exporter import ExcelExporter
from .handler import OutputHandler, items_to_entities

__all__ = [
    'RenderOptions',
    'render_entity',
    'render_entities',
    'render_html_document',
    'render_pages',
    'render_table',
    'format_query_response',
    'query_response_to_csv',
    'ExcelExporter',
    'OutputHandler',
    'items_to_entities',
]
