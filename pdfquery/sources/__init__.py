"""
Sources Module.

Turns API payloads, saved files and vendor adapter output into compiler
input records, and fetches them from the extraction API.
"""

from .api import (
    from_entities_api,
    from_page_api_blocks,
    from_page_api_markdown,
    from_page_api_tables,
    from_adapter_result,
)
from .loaders import PageSources, load_json, load_entities_from_file, load_page_from_file
from .fetch import MultiPageSources, fetch_entities, fetch_page, fetch_pages

__all__ = [
    'from_entities_api',
    'from_page_api_blocks',
    'from_page_api_markdown',
    'from_page_api_tables',
    'from_adapter_result',
    'PageSources',
    'load_json',
    'load_entities_from_file',
    'load_page_from_file',
    'MultiPageSources',
    'fetch_entities',
    'fetch_page',
    'fetch_pages',
]
