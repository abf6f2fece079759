"""
Markdown Table Parser.

Parses GFM pipe tables into rows of cell strings and lays the rows out as
a uniform grid over the table's bounding box.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

from pdfquery.vdom.types import BoundingBox

SEPARATOR_PATTERN = re.compile(r'^\|?\s*[-:]+\s*\|')


@dataclass
class ParsedTableRow:
    cells: List[str]
    is_header: bool = False


@dataclass
class ParsedTable:
    rows: List[ParsedTableRow] = field(default_factory=list)
    column_count: int = 0

    @property
    def row_count(self) -> int:
        return len(self.rows)


def parse_markdown_table(markdown: str) -> ParsedTable:
    """
    Parse a GFM pipe table.

    Separator rows are skipped and the first remaining row is the header.
    Segments before the first and after the last pipe are dropped, so a
    row needs at least two pipes to carry a cell. Malformed input yields
    an empty table, never an error.

    Example:
        >>> table = parse_markdown_table("| A | B |\\n|---|---|\\n| 1 | 2 |")
        >>> [row.cells for row in table.rows]
        [['A', 'B'], ['1', '2']]
    """
    rows: List[ParsedTableRow] = []

    for raw_line in markdown.split('\n'):
        line = raw_line.strip()
        if not line:
            continue
        if SEPARATOR_PATTERN.match(line):
            continue
        if '|' not in line:
            continue

        cells = [cell.strip() for cell in line.split('|')][1:-1]
        if cells:
            rows.append(ParsedTableRow(cells=cells, is_header=not rows))

    column_count = max((len(row.cells) for row in rows), default=0)
    return ParsedTable(rows=rows, column_count=column_count)


def iter_cell_boxes(table: ParsedTable, bbox: BoundingBox) -> Iterator[Tuple[int, int, str, BoundingBox]]:
    """
    Yield (row, col, text, box) for every non-blank cell.

    Rows share the table height evenly, and columns share the width
    according to the widest row.
    """
    if not table.rows:
        return

    row_height = bbox.height / table.row_count
    col_width = bbox.width / table.column_count if table.column_count > 0 else bbox.width

    for row_index, row in enumerate(table.rows):
        for col_index, text in enumerate(row.cells):
            if not text.strip():
                continue
            yield row_index, col_index, text, BoundingBox(
                xmin=bbox.xmin + col_index * col_width,
                ymin=bbox.ymin + row_index * row_height,
                xmax=bbox.xmin + (col_index + 1) * col_width,
                ymax=bbox.ymin + (row_index + 1) * row_height,
            )
