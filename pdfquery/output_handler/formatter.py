"""
Query Response Formatters.

Plain-text and CSV renderings of a QueryResponse.
"""

import csv
import io
from typing import Optional

from config import get_config
from pdfquery.utils.helpers import stringify

# CSV column header -> item wire key
CSV_COLUMNS = [
    ('id', 'id'),
    ('page', 'page'),
    ('type', 'type'),
    ('text', 'text'),
    ('value', 'value'),
    ('confidence', 'confidence'),
    ('status', 'status'),
    ('table_id', 'tableId'),
    ('xmin', None),
    ('ymin', None),
    ('xmax', None),
    ('ymax', None),
]


def format_query_response(
    response,
    show_stats: Optional[bool] = None,
    max_text_length: Optional[int] = None,
    context: int = 0
) -> str:
    """
    Render a QueryResponse as a readable listing.

    Args:
        response: QueryResponse from execute_query.
        show_stats: Append the statistics footer (default from output.show_stats).
        max_text_length: Truncate item text beyond this many characters,
            adding "..." (default from output.max_text_length).
        context: Text lines shown per item; 0 joins the text onto one line.

    Returns:
        Multi-line string.

    Example:
        Query: .currency
        Document: doc_1
        Results: 2/2 (0ms)

        [1:t1_r1_c1] currency (95%)
          $1,234.56
          value: 1234.56
    """
    if show_stats is None:
        show_stats = get_config("output.show_stats", True)
    if max_text_length is None:
        max_text_length = get_config("output.max_text_length", 80)

    lines = [
        f"Query: {response.query if response.query is not None else '*'}",
        f"Document: {response.document_id}",
        f"Results: {response.returned}/{response.total} ({response.duration}ms)",
        '',
    ]

    for item in response.items:
        text = item.text or ''
        if len(text) > max_text_length:
            text = text[:max_text_length] + '...'

        lines.append(f"[{item.page}:{item.id}] {item.type} ({(item.confidence or 0) * 100:.0f}%)")
        if context > 0:
            lines.extend(f"  {line}" for line in text.split('\n')[:context])
        else:
            lines.append(f"  {text.replace(chr(10), ' ')}")
        if item.value is not None:
            lines.append(f"  value: {stringify(item.value)}")
        lines.append('')

    if show_stats:
        stats = response.stats
        lines.append('---')
        lines.append(f"Stats: {stats.verified} verified, {stats.flagged} flagged, {stats.pending} pending")
        lines.append(f"Avg confidence: {stats.avg_confidence * 100:.1f}%")

    return '\n'.join(lines)


def query_response_to_csv(response) -> str:
    """Render the items of a QueryResponse as CSV with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow([header for header, _ in CSV_COLUMNS])

    for item in response.items:
        data = item.to_dict()
        bbox = data['bbox']
        row = []
        for header, key in CSV_COLUMNS:
            value = data.get(key) if key else bbox[header]
            row.append(stringify(value))
        writer.writerow(row)

    return buffer.getvalue()
