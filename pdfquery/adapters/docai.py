"""
Google Document AI Adapter.

Input: a Document (JSON form of the process() response).
Boxes: layout.boundingPoly.normalizedVertices, already 0-1, so only the
enclosing rectangle is taken. Text is sliced from document.text by the
layout's textAnchor segments.
"""

from typing import Any, Dict, Optional

from pdfquery.adapters.types import (
    AdapterResult,
    NormalizedBlock,
    NormalizedTable,
    points_to_rect,
    vendor_confidence,
)
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import Rect

# Initialize module logger
logger = get_logger(__name__)


def _layout_rect(layout: Dict[str, Any]) -> Optional[Rect]:
    vertices = (layout.get('boundingPoly') or {}).get('normalizedVertices')
    if not vertices:
        return None
    return points_to_rect([(v.get('x', 0.0), v.get('y', 0.0)) for v in vertices])


def _anchor_text(layout: Dict[str, Any], full_text: str) -> str:
    segments = (layout.get('textAnchor') or {}).get('textSegments') or []
    parts = []
    for segment in segments:
        start = int(segment.get('startIndex') or 0)
        end = int(segment.get('endIndex') or 0)
        parts.append(full_text[start:end])
    return ''.join(parts)


def from_docai(document: Dict[str, Any]) -> AdapterResult:
    """
    Convert a Document AI document.

    Lines become line blocks and tables become tables with empty
    markdown. Ids come from a single running counter across pages.
    """
    result = AdapterResult()
    full_text = document.get('text') or ''
    pages = document.get('pages') or []
    counter = 0

    for page in pages:
        page_number = page.get('pageNumber') or 1

        for line in page.get('lines') or []:
            layout = line.get('layout') or {}
            bbox = _layout_rect(layout)
            if bbox is None:
                continue
            result.blocks.append(NormalizedBlock(
                id=f"docai-line-{counter}",
                page=page_number,
                text=_anchor_text(layout, full_text).strip(),
                bbox=bbox,
                confidence=vendor_confidence(layout.get('confidence')),
                type='line',
            ))
            counter += 1

        for table in page.get('tables') or []:
            layout = table.get('layout') or {}
            bbox = _layout_rect(layout)
            if bbox is None:
                continue
            result.tables.append(NormalizedTable(
                id=f"docai-table-{counter}",
                page=page_number,
                markdown='',
                bbox=bbox,
                confidence=vendor_confidence(layout.get('confidence')),
            ))
            counter += 1

    result.page_count = len(pages) or 1
    logger.debug(f"DocAI: {len(result.blocks)} lines, {len(result.tables)} tables")
    return result
