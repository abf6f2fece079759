"""
Azure Document Intelligence Adapter.

Input: AnalyzeResult from a prebuilt-layout / prebuilt-read analysis.
Boxes: pixel (or inch) polygons, divided by the owning page's width and
height. Tables come with a cell grid that is serialized to GFM markdown.
"""

from typing import Any, Dict, List, Optional, Tuple

from pdfquery.adapters.types import (
    AdapterResult,
    NormalizedBlock,
    NormalizedTable,
    points_to_rect,
    rows_to_markdown,
    vendor_confidence,
)
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import Rect

# Initialize module logger
logger = get_logger(__name__)


def _polygon_rect(polygon, width: float, height: float) -> Optional[Rect]:
    if not polygon:
        return None
    return points_to_rect([(p.get('x', 0.0), p.get('y', 0.0)) for p in polygon], width, height)


def _cells_to_rows(cells: List[Dict[str, Any]]) -> List[List[str]]:
    """Place cell contents on a dense grid; gaps become empty strings."""
    grid: Dict[int, Dict[int, str]] = {}
    for cell in cells:
        grid.setdefault(cell.get('rowIndex', 0), {})[cell.get('columnIndex', 0)] = cell.get('content', '')

    if not grid:
        return []

    rows = []
    for row_index in range(max(grid) + 1):
        row = grid.get(row_index, {})
        width = max(row) + 1 if row else 0
        rows.append([row.get(col, '') for col in range(width)])
    return rows


def from_azure(result: Dict[str, Any]) -> AdapterResult:
    """
    Convert an Azure AnalyzeResult.

    Lines have no vendor confidence and default to 1. Words keep theirs.
    """
    converted = AdapterResult()
    pages = result.get('pages') or []
    dims: Dict[int, Tuple[float, float]] = {
        page.get('pageNumber'): (page.get('width') or 1, page.get('height') or 1)
        for page in pages
    }
    counter = 0

    for page in pages:
        page_number = page.get('pageNumber')
        width, height = dims.get(page_number, (1, 1))

        for line in page.get('lines') or []:
            bbox = _polygon_rect(line.get('polygon'), width, height)
            if bbox is None:
                continue
            converted.blocks.append(NormalizedBlock(
                id=f"azure-line-{counter}",
                page=page_number,
                text=line.get('content', ''),
                bbox=bbox,
                confidence=1,
                type='line',
            ))
            counter += 1

        for word in page.get('words') or []:
            bbox = _polygon_rect(word.get('polygon'), width, height)
            if bbox is None:
                continue
            converted.blocks.append(NormalizedBlock(
                id=f"azure-word-{counter}",
                page=page_number,
                text=word.get('content', ''),
                bbox=bbox,
                confidence=vendor_confidence(word.get('confidence')),
                type='word',
            ))
            counter += 1

    for table in result.get('tables') or []:
        regions = table.get('boundingRegions') or []
        if not regions:
            continue
        region = regions[0]
        width, height = dims.get(region.get('pageNumber'), (1, 1))
        bbox = _polygon_rect(region.get('polygon'), width, height)
        if bbox is None:
            continue

        converted.tables.append(NormalizedTable(
            id=f"azure-table-{counter}",
            page=region.get('pageNumber'),
            markdown=rows_to_markdown(_cells_to_rows(table.get('cells') or [])).strip(),
            bbox=bbox,
            confidence=1,
        ))
        counter += 1

    converted.page_count = len(pages) or 1
    logger.debug(
        f"Azure: {len(converted.blocks)} blocks, {len(converted.tables)} tables"
    )
    return converted
