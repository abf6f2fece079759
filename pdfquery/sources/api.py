"""
Source Adapters.

Normalize extraction API responses (and vendor adapter output) into the
compiler's Source* records.

Supported shapes:
    - Entities endpoint:  /api/ocr/jobs/{id}/entities
    - Page endpoint:      /api/ocr/jobs/{id}/pages/{n}
    - AdapterResult from any vendor adapter

Author: ML Engineering Team
"""

from typing import Any, Dict, List, Tuple

from config import get_config
from pdfquery.adapters.types import AdapterResult
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.sources import (
    SourceExtractedEntity,
    SourceMarkdown,
    SourceOcr,
    SourceTable,
)
from pdfquery.vdom.types import Rect

# Initialize module logger
logger = get_logger(__name__)


def from_entities_api(response: Dict[str, Any]) -> List[SourceExtractedEntity]:
    """
    Convert an entities endpoint response.

    Entities without a bbox get the full-page box.
    """
    return [SourceExtractedEntity.from_dict(entity) for entity in response.get('entities') or []]


def from_page_api_blocks(response: Dict[str, Any]) -> List[SourceOcr]:
    """Convert a page response's OCR blocks; ids are ``ocr-<page>-<i>``."""
    page = response['page']
    default_confidence = get_config('sources.default_ocr_confidence', 0.9)
    blocks = []
    for index, block in enumerate(response.get('blocks') or []):
        confidence = block.get('confidence')
        blocks.append(SourceOcr(
            id=f"ocr-{page}-{index}",
            page=page,
            text=block.get('text', ''),
            bbox=Rect.from_dict(block.get('bbox')),
            confidence=default_confidence if confidence is None else confidence,
        ))
    return blocks


def from_page_api_markdown(response: Dict[str, Any]) -> SourceMarkdown:
    """Convert a page response's LLM markdown into one block."""
    page = response['page']
    return SourceMarkdown(
        id=f"md-{page}",
        page=page,
        content=response.get('content') or '',
        model=get_config('sources.default_markdown_model', 'llamaparse'),
        confidence=get_config('sources.default_markdown_confidence', 0.95),
    )


def from_page_api_tables(response: Dict[str, Any]) -> List[SourceTable]:
    """
    Convert a page response's table metadata.

    The page endpoint carries no table markdown, so these tables compile
    to container entities without cells.
    """
    page = response['page']
    metadata = response.get('metadata') or {}
    default_confidence = get_config('sources.default_table_confidence', 0.9)
    return [
        SourceTable(
            id=f"table-{page}-{index}",
            page_number=page,
            markdown='',
            bbox=Rect.from_dict(table.get('bbox')).to_bbox(),
            confidence=default_confidence,
            verification_status='pending',
        )
        for index, table in enumerate(metadata.get('tables') or [])
    ]


def from_adapter_result(result: AdapterResult) -> Tuple[List[SourceTable], List[SourceOcr]]:
    """
    Bridge a vendor AdapterResult into compiler layers.

    Returns:
        (tables, ocr_blocks): tables keep their markdown, every block
        becomes an OCR block.
    """
    tables = [
        SourceTable(
            id=table.id,
            page_number=table.page,
            markdown=table.markdown,
            bbox=table.bbox.to_bbox(),
            confidence=table.confidence,
            verification_status='pending',
        )
        for table in result.tables
    ]
    ocr_blocks = [
        SourceOcr(
            id=block.id,
            page=block.page,
            text=block.text,
            bbox=block.bbox,
            confidence=block.confidence,
        )
        for block in result.blocks
    ]
    logger.debug(f"Bridged adapter result: {len(tables)} tables, {len(ocr_blocks)} blocks")
    return tables, ocr_blocks
