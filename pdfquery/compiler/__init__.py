"""
Compiler Module.

Turns extraction layers (or an inspector tree) into a VirtualDoc.
"""

from .detection import detect_entity_type, parse_value
from .table_parser import ParsedTable, ParsedTableRow, iter_cell_boxes, parse_markdown_table
from .compiler import (
    DocCompiler,
    calculate_page_meta,
    build_document_meta,
    create_compiler,
    compile_document,
)
from .tree_adapter import TreeNode, tree_to_virtual_doc, get_page_count

__all__ = [
    'detect_entity_type',
    'parse_value',
    'ParsedTable',
    'ParsedTableRow',
    'iter_cell_boxes',
    'parse_markdown_table',
    'DocCompiler',
    'calculate_page_meta',
    'build_document_meta',
    'create_compiler',
    'compile_document',
    'TreeNode',
    'tree_to_virtual_doc',
    'get_page_count',
]
