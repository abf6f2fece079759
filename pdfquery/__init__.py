"""
pdfquery - Source Package.

Compiles PDF extraction output into a flat, queryable virtual document and
queries it with CSS-like selectors.

Modules:
    - vdom: Document model and compiler input records
    - adapters: Vendor OCR / layout output normalization
    - sources: API payloads, saved files and fetch helpers
    - compiler: Layer compilation and inspector tree flattening
    - query: Selector engine, tracked mutations, config-driven queries
    - output_handler: HTML, text, CSV, JSON and Excel output
    - utils: Logging, exceptions and helpers

Architecture:
    Vendor JSON -> Adapters -> Sources -> Compiler -> VirtualDoc -> Query -> Output
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

from .compiler import DocCompiler, compile_document, create_compiler, tree_to_virtual_doc
from .query import QueryConfig, QueryResult, create_query_engine, execute_query
from .vdom import VirtualDoc, VirtualEntity, VirtualPage

__all__ = [
    'DocCompiler',
    'compile_document',
    'create_compiler',
    'tree_to_virtual_doc',
    'QueryConfig',
    'QueryResult',
    'create_query_engine',
    'execute_query',
    'VirtualDoc',
    'VirtualEntity',
    'VirtualPage',
]
