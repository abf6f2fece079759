"""
Shared Types for Vendor Adapters.

Every adapter turns one vendor's JSON into an AdapterResult whose boxes
use a top-left origin normalized to 0-1. Vendor payloads stay plain dicts
since vendors change their schemas.

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pdfquery.vdom.types import Rect


# Normalized block kinds
BLOCK_TYPES = ('word', 'line', 'paragraph', 'table', 'figure', 'other')


@dataclass
class NormalizedBlock:
    """A vendor text/figure block with a normalized box."""
    id: str
    page: int
    text: str
    bbox: Rect
    confidence: float
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'page': self.page,
            'text': self.text,
            'bbox': self.bbox.to_dict(),
            'confidence': self.confidence,
        }
        if self.type is not None:
            data['type'] = self.type
        return data


@dataclass
class NormalizedTable:
    """A vendor table; `markdown` is a GFM pipe table or empty."""
    id: str
    page: int
    markdown: str
    bbox: Rect
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'page': self.page,
            'markdown': self.markdown,
            'bbox': self.bbox.to_dict(),
            'confidence': self.confidence,
        }


@dataclass
class AdapterResult:
    """Output of any vendor adapter."""
    blocks: List[NormalizedBlock] = field(default_factory=list)
    tables: List[NormalizedTable] = field(default_factory=list)
    page_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'blocks': [b.to_dict() for b in self.blocks],
            'tables': [t.to_dict() for t in self.tables],
            'pageCount': self.page_count,
        }


@dataclass
class ImageDimensions:
    """Pixel size of the image an OCR engine ran on."""
    width: float
    height: float


def points_to_rect(points: Sequence[Tuple[float, float]],
                   width: float = 1.0, height: float = 1.0) -> Optional[Rect]:
    """
    Enclosing rectangle of a polygon, scaled by page size.

    Polygons with fewer than four points are rejected (None).
    """
    if len(points) < 4:
        return None
    xs = [p[0] / width for p in points]
    ys = [p[1] / height for p in points]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    return Rect(min_x, min_y, max_x - min_x, max_y - min_y)


def rows_to_markdown(rows: Iterable[Sequence[str]]) -> str:
    """
    Serialize a cell grid as a GFM pipe table.

    A ``|---|`` separator follows the first row.

    Example:
        >>> rows_to_markdown([["Item", "Price"], ["Widget", "$5"]])
        '| Item | Price |\\n|---|---|\\n| Widget | $5 |'
    """
    lines = []
    for i, row in enumerate(rows):
        lines.append('| ' + ' | '.join(row) + ' |')
        if i == 0:
            lines.append('|' + '|'.join('---' for _ in row) + '|')
    return '\n'.join(lines)


def vendor_confidence(value: Any, default: float = 1.0, scale: float = 1.0) -> float:
    """
    Vendor confidence divided by `scale`, or `default` when absent or null.

    Example:
        >>> vendor_confidence(None)
        1.0
        >>> vendor_confidence(87, scale=100)
        0.87
    """
    if value is None:
        return default
    return value / scale
