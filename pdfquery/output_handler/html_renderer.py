"""
HTML Renderer Module.

Renders entities as HTML fragments, standalone documents, or page-grouped
views. Every piece of entity text is escaped; tables are rendered from
their markdown as real HTML tables.

Usage:
    html = render_entities(entities, RenderOptions(show_status=False))
    page = render_html_document(entities)

Author: ML Engineering Team
"""

from dataclasses import dataclass
from html import escape
from typing import Any, Dict, Iterable, List, Optional, Union

from config import get_config
from pdfquery.utils.helpers import stringify
from pdfquery.vdom.types import VirtualEntity

DEFAULT_TITLE = "pdfquery document"

# Confidence badge thresholds
HIGH_CONFIDENCE = 0.9
LOW_CONFIDENCE = 0.7


@dataclass
class RenderOptions:
    """
    HTML rendering switches.

    Attributes:
        include_metadata: Emit data-id/type/page/confidence attributes.
        show_confidence: Emit the confidence badge.
        show_status: Emit the verification status badge.
        render_tables: Render table markdown as an HTML table.
        class_prefix: CSS class prefix (default from output.html_class_prefix).
    """
    include_metadata: bool = True
    show_confidence: bool = True
    show_status: bool = True
    render_tables: bool = True
    class_prefix: Optional[str] = None

    @property
    def prefix(self) -> str:
        return self.class_prefix or get_config("output.html_class_prefix", "vdoc")


def _options(options: Union[RenderOptions, Dict[str, Any], None]) -> RenderOptions:
    if options is None:
        return RenderOptions()
    if isinstance(options, dict):
        return RenderOptions(**options)
    return options


def default_styles(prefix: str) -> str:
    """Stylesheet for rendered documents."""
    p = prefix
    return f"""
    .{p}-document {{ font-family: system-ui, sans-serif; padding: 20px; }}
    .{p}-page {{ border: 1px solid #e0e0e0; margin-bottom: 20px; border-radius: 8px; overflow: hidden; }}
    .{p}-page-header {{ background: #f5f5f5; padding: 8px 16px; font-weight: 600; border-bottom: 1px solid #e0e0e0; }}
    .{p}-page-content {{ padding: 16px; }}
    .{p}-entity {{ margin: 8px 0; padding: 8px 12px; border-radius: 4px; border-left: 3px solid #ccc; background: #fafafa; }}
    .{p}-entity.type-table {{ border-left-color: #2196f3; background: #e3f2fd; }}
    .{p}-entity.type-currency {{ border-left-color: #4caf50; background: #e8f5e9; }}
    .{p}-entity.type-percentage {{ border-left-color: #ff9800; background: #fff3e0; }}
    .{p}-entity.type-date {{ border-left-color: #9c27b0; background: #f3e5f5; }}
    .{p}-entity.type-header {{ border-left-color: #607d8b; background: #eceff1; font-weight: 600; }}
    .{p}-entity.type-footnote {{ border-left-color: #795548; background: #efebe9; font-size: 0.9em; font-style: italic; }}
    .{p}-entity.type-figure {{ border-left-color: #e91e63; background: #fce4ec; }}
    .{p}-entity.status-verified {{ box-shadow: inset 0 0 0 1px #4caf50; }}
    .{p}-entity.status-flagged {{ box-shadow: inset 0 0 0 1px #f44336; }}
    .{p}-entity.status-pending {{ box-shadow: inset 0 0 0 1px #ff9800; }}
    .{p}-badge {{ display: inline-block; padding: 2px 6px; border-radius: 3px; font-size: 0.75em; margin-left: 8px; }}
    .{p}-badge.confidence {{ background: #e0e0e0; color: #333; }}
    .{p}-badge.confidence.high {{ background: #c8e6c9; color: #2e7d32; }}
    .{p}-badge.confidence.low {{ background: #ffcdd2; color: #c62828; }}
    .{p}-badge.status {{ text-transform: uppercase; font-weight: 600; }}
    .{p}-type {{ color: #666; font-size: 0.8em; text-transform: uppercase; }}
    .{p}-text {{ margin-top: 4px; }}
    .{p}-value {{ font-family: monospace; background: #f5f5f5; padding: 2px 4px; border-radius: 2px; }}
    .{p}-table {{ width: 100%; border-collapse: collapse; margin: 8px 0; }}
    .{p}-table th, .{p}-table td {{ border: 1px solid #ddd; padding: 8px; text-align: left; }}
    .{p}-table th {{ background: #f5f5f5; font-weight: 600; }}
    """


def _split_row(line: str) -> List[str]:
    return [cell.strip() for cell in line.split('|')][1:-1]


def render_table(markdown: str, prefix: str) -> str:
    """
    Render a markdown pipe table as an HTML table.

    Falls back to an escaped <pre> block when the markdown has fewer than
    two lines or no header cells.
    """
    lines = [line for line in markdown.strip().split('\n') if line.strip()]
    headers = _split_row(lines[0]) if len(lines) >= 2 else []
    if not headers:
        return f'<pre class="{prefix}-markdown">{escape(markdown)}</pre>'

    rows = [_split_row(line) for line in lines[1:] if '---' not in line]
    header_html = ''.join(f'<th>{escape(cell)}</th>' for cell in headers)
    rows_html = '\n'.join(
        '<tr>' + ''.join(f'<td>{escape(cell)}</td>' for cell in row) + '</tr>'
        for row in rows
    )
    return (
        f'<table class="{prefix}-table">\n'
        f'  <thead><tr>{header_html}</tr></thead>\n'
        f'  <tbody>{rows_html}</tbody>\n'
        f'</table>'
    )


def render_entity(entity: VirtualEntity, options: Union[RenderOptions, Dict[str, Any], None] = None) -> str:
    """Render one entity as a <div> block."""
    opts = _options(options)
    prefix = opts.prefix
    status = entity.meta.verification_status
    confidence = entity.meta.confidence or 0.0

    classes = f"{prefix}-entity type-{escape(entity.type)} status-{escape(status)}"

    data_attrs = ''
    if opts.include_metadata:
        data_attrs = (
            f' data-id="{escape(entity.id)}" data-type="{escape(entity.type)}"'
            f' data-page="{entity.page_number}" data-confidence="{stringify(confidence)}"'
        )

    header_parts = [f'<span class="{prefix}-type">{escape(entity.type)}</span>']
    if opts.show_confidence:
        level = 'high' if confidence > HIGH_CONFIDENCE else 'low' if confidence < LOW_CONFIDENCE else ''
        header_parts.append(
            f'<span class="{prefix}-badge confidence {level}">{confidence * 100:.0f}%</span>'
        )
    if opts.show_status:
        header_parts.append(
            f'<span class="{prefix}-badge status {escape(status)}">{escape(status)}</span>'
        )
    if entity.value is not None:
        header_parts.append(f'<span class="{prefix}-value">{escape(stringify(entity.value))}</span>')

    if entity.type == 'table' and opts.render_tables:
        content = render_table(entity.text, prefix)
    else:
        content = f'<div class="{prefix}-text">{escape(entity.text or "")}</div>'

    return (
        f'<div class="{classes}"{data_attrs}>\n'
        f'  <div class="{prefix}-header">{" ".join(header_parts)}</div>\n'
        f'  {content}\n'
        f'</div>'
    )


def render_entities(entities: Iterable[VirtualEntity],
                    options: Union[RenderOptions, Dict[str, Any], None] = None) -> str:
    """Render entities one after another."""
    opts = _options(options)
    return '\n'.join(render_entity(entity, opts) for entity in entities)


def render_pages(entities: Iterable[VirtualEntity],
                 options: Union[RenderOptions, Dict[str, Any], None] = None) -> str:
    """Render entities grouped into one block per page, in first-seen page order."""
    opts = _options(options)
    prefix = opts.prefix

    by_page: Dict[int, List[VirtualEntity]] = {}
    for entity in entities:
        by_page.setdefault(entity.page_number, []).append(entity)

    blocks = []
    for page_number, page_entities in by_page.items():
        blocks.append(
            f'<div class="{prefix}-page" data-page="{page_number}">\n'
            f'  <div class="{prefix}-page-header">Page {page_number}</div>\n'
            f'  <div class="{prefix}-page-content">\n'
            f'{render_entities(page_entities, opts)}\n'
            f'  </div>\n'
            f'</div>'
        )
    return '\n'.join(blocks)


def render_html_document(entities: Iterable[VirtualEntity],
                         options: Union[RenderOptions, Dict[str, Any], None] = None,
                         title: str = DEFAULT_TITLE) -> str:
    """Render entities into a standalone HTML page with default styles."""
    opts = _options(options)
    prefix = opts.prefix
    return (
        '<!DOCTYPE html>\n'
        '<html lang="en">\n'
        '<head>\n'
        '  <meta charset="UTF-8">\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f'  <title>{escape(title)}</title>\n'
        f'  <style>{default_styles(prefix)}</style>\n'
        '</head>\n'
        '<body>\n'
        f'  <div class="{prefix}-document">\n'
        f'{render_entities(entities, opts)}\n'
        '  </div>\n'
        '</body>\n'
        '</html>'
    )
