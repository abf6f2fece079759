"""
Docling Adapter.

Input: an exported DoclingDocument ({texts, tables, figures, pages}).
Boxes: prov[].bbox {l, t, r, b, coord_origin} in page units. BOTTOMLEFT
(the default) has y growing upward and is flipped to a top-left origin.
Docling reports no confidence, so every item gets 1.
"""

from typing import Any, Dict, List, Tuple

from pdfquery.adapters.types import AdapterResult, NormalizedBlock, NormalizedTable, rows_to_markdown
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import Rect

# Initialize module logger
logger = get_logger(__name__)

# Text labels that are not body paragraphs
OTHER_LABELS = ('footnote', 'page_header', 'page_footer')


def docling_bbox_to_rect(bbox: Dict[str, Any], page_width: float, page_height: float) -> Rect:
    """
    Normalize a Docling box to a top-left origin 0-1 rect.

    Example:
        >>> docling_bbox_to_rect({"l": 72, "t": 720, "r": 300, "b": 700}, 612, 792)
        Rect(x=0.1176..., y=0.0909..., width=0.3725..., height=0.0252...)
    """
    left, top = bbox.get('l', 0.0), bbox.get('t', 0.0)
    right, bottom = bbox.get('r', 0.0), bbox.get('b', 0.0)

    x = left / page_width
    width = (right - left) / page_width

    if bbox.get('coord_origin', 'BOTTOMLEFT') == 'BOTTOMLEFT':
        y = 1 - top / page_height
        height = (top - bottom) / page_height
    else:
        y = top / page_height
        height = (bottom - top) / page_height

    return Rect(x, y, width, height)


def table_cells_to_markdown(cells: List[List[Dict[str, Any]]]) -> str:
    return rows_to_markdown([[cell.get('text', '') for cell in row] for row in cells]).strip()


def from_docling(document: Dict[str, Any]) -> AdapterResult:
    """Convert a Docling document into paragraph/figure blocks and tables."""
    result = AdapterResult()
    dims: Dict[int, Tuple[float, float]] = {
        page.get('page_no'): (page.get('width') or 1, page.get('height') or 1)
        for page in document.get('pages') or []
    }
    seen_pages: List[int] = []

    def provenance(item):
        for prov in item.get('prov') or []:
            page_no = prov.get('page_no', 1)
            seen_pages.append(page_no)
            width, height = dims.get(page_no, (1, 1))
            yield page_no, docling_bbox_to_rect(prov.get('bbox') or {}, width, height)

    for item in document.get('texts') or []:
        block_type = 'other' if item.get('label') in OTHER_LABELS else 'paragraph'
        for page_no, rect in provenance(item):
            result.blocks.append(NormalizedBlock(
                id=item.get('self_ref', ''),
                page=page_no,
                text=item.get('text', ''),
                bbox=rect,
                confidence=1,
                type=block_type,
            ))

    for table in document.get('tables') or []:
        markdown = table_cells_to_markdown((table.get('data') or {}).get('table_cells') or [])
        for page_no, rect in provenance(table):
            result.tables.append(NormalizedTable(
                id=table.get('self_ref', ''),
                page=page_no,
                markdown=markdown,
                bbox=rect,
                confidence=1,
            ))

    for figure in document.get('figures') or []:
        for page_no, rect in provenance(figure):
            result.blocks.append(NormalizedBlock(
                id=figure.get('self_ref', ''),
                page=page_no,
                text=figure.get('caption') or '',
                bbox=rect,
                confidence=1,
                type='figure',
            ))

    result.page_count = max(seen_pages) if seen_pages else 1
    logger.debug(
        f"Docling: {len(result.blocks)} blocks, {len(result.tables)} tables, "
        f"{result.page_count} pages"
    )
    return result
