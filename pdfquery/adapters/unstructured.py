"""
Unstructured.io Adapter.

Input: the Element list from partition() (as dicts).
Boxes: metadata.coordinates.points in pixels, divided by the coordinate
system's layout_width / layout_height. Table elements carry HTML in
metadata.text_as_html, which is reduced to a GFM pipe table.
"""

import re
from typing import Any, Dict, List, Optional

from pdfquery.adapters.types import (
    AdapterResult,
    NormalizedBlock,
    NormalizedTable,
    points_to_rect,
    rows_to_markdown,
)
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import Rect

# Initialize module logger
logger = get_logger(__name__)

_ROW_PATTERN = re.compile(r'<tr[^>]*>(.*?)</tr>', re.IGNORECASE | re.DOTALL)
_CELL_PATTERN = re.compile(r'<t[dh][^>]*>(.*?)</t[dh]>', re.IGNORECASE | re.DOTALL)
_TAG_PATTERN = re.compile(r'<[^>]*>')

# Element type -> normalized block type (anything else is 'other')
ELEMENT_TYPES = {
    'Title': 'paragraph',
    'Header': 'paragraph',
    'NarrativeText': 'paragraph',
    'Text': 'paragraph',
    'ListItem': 'paragraph',
    'Image': 'figure',
    'Figure': 'figure',
}


def _coordinates_rect(coords: Dict[str, Any]) -> Optional[Rect]:
    points = coords.get('points') or []
    return points_to_rect(
        [(p[0], p[1]) for p in points],
        coords.get('layout_width') or 1,
        coords.get('layout_height') or 1,
    )


def html_table_to_markdown(html: str) -> str:
    """Reduce an HTML table to a GFM pipe table; rows without cells are dropped."""
    rows: List[List[str]] = []
    for row_match in _ROW_PATTERN.finditer(html):
        cells = [
            _TAG_PATTERN.sub('', cell).strip()
            for cell in _CELL_PATTERN.findall(row_match.group(1))
        ]
        if cells:
            rows.append(cells)
    return rows_to_markdown(rows).strip()


def from_unstructured(elements: List[Dict[str, Any]]) -> AdapterResult:
    """
    Convert Unstructured elements.

    Elements without coordinates still count toward the page total.
    """
    result = AdapterResult()
    max_page = 1

    for element in elements or []:
        metadata = element.get('metadata') or {}
        page = metadata.get('page_number') or 1
        max_page = max(max_page, page)

        coords = metadata.get('coordinates')
        if not coords:
            continue
        bbox = _coordinates_rect(coords)
        if bbox is None:
            continue

        confidence = metadata.get('detection_class_prob')
        if confidence is None:
            confidence = 1

        if element.get('type') == 'Table':
            html = metadata.get('text_as_html')
            result.tables.append(NormalizedTable(
                id=element.get('element_id', ''),
                page=page,
                markdown=html_table_to_markdown(html) if html else element.get('text', ''),
                bbox=bbox,
                confidence=confidence,
            ))
        else:
            result.blocks.append(NormalizedBlock(
                id=element.get('element_id', ''),
                page=page,
                text=element.get('text', ''),
                bbox=bbox,
                confidence=confidence,
                type=ELEMENT_TYPES.get(element.get('type'), 'other'),
            ))

    result.page_count = max_page
    logger.debug(
        f"Unstructured: {len(result.blocks)} blocks, {len(result.tables)} tables"
    )
    return result
