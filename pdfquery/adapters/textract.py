"""
AWS Textract Adapter.

Input: the AnalyzeDocument / DetectDocumentText response.
Boxes: Geometry.BoundingBox is already normalized with a top-left origin,
so it passes through unchanged. Confidence is reported on a 0-100 scale.
"""

from typing import Any, Dict

from pdfquery.adapters.types import AdapterResult, NormalizedBlock, NormalizedTable, vendor_confidence
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import Rect

# Initialize module logger
logger = get_logger(__name__)


def from_textract(response: Dict[str, Any]) -> AdapterResult:
    """
    Convert a Textract response.

    LINE and WORD blocks become blocks, TABLE blocks become tables with
    empty markdown. Blocks without geometry are skipped.
    """
    result = AdapterResult()

    for block in response.get('Blocks') or []:
        box = (block.get('Geometry') or {}).get('BoundingBox')
        if not box:
            continue

        bbox = Rect(box.get('Left', 0.0), box.get('Top', 0.0),
                    box.get('Width', 0.0), box.get('Height', 0.0))
        page = block.get('Page') or 1
        confidence = vendor_confidence(block.get('Confidence'), scale=100)
        block_type = block.get('BlockType')

        if block_type == 'TABLE':
            result.tables.append(NormalizedTable(
                id=block['Id'],
                page=page,
                markdown='',
                bbox=bbox,
                confidence=confidence,
            ))
        elif block_type in ('LINE', 'WORD'):
            result.blocks.append(NormalizedBlock(
                id=block['Id'],
                page=page,
                text=block.get('Text') or '',
                bbox=bbox,
                confidence=confidence,
                type='line' if block_type == 'LINE' else 'word',
            ))

    result.page_count = (response.get('DocumentMetadata') or {}).get('Pages') or 1
    logger.debug(
        f"Textract: {len(result.blocks)} blocks, {len(result.tables)} tables, "
        f"{result.page_count} pages"
    )
    return result
