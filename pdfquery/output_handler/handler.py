"""
Main Output Handler Module.

This module provides the OutputHandler class that renders query responses
in every supported format and writes them to disk.

Author: ML Engineering Team
"""

import json
from pathlib import Path
from typing import List, Optional, Union

from config import get_config
from pdfquery.utils.exceptions import OutputWriteError, UnsupportedOutputFormatError
from pdfquery.utils.helpers import ensure_directory, generate_timestamp
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import EntityMeta, VirtualEntity
from .excel_exporter import ExcelExporter
from .formatter import format_query_response, query_response_to_csv
from .html_renderer import RenderOptions, render_html_document

# Initialize module logger
logger = get_logger(__name__)

# Formats rendered as text
TEXT_FORMATS = ('json', 'text', 'html', 'csv')

# Formats that can be saved to disk
FILE_FORMATS = TEXT_FORMATS + ('xlsx',)

FILE_EXTENSIONS = {
    'json': 'json',
    'text': 'txt',
    'html': 'html',
    'csv': 'csv',
    'xlsx': 'xlsx',
}


def items_to_entities(response) -> List[VirtualEntity]:
    """Rebuild lightweight entities from response items for HTML rendering."""
    entities = []
    for item in response.items:
        entities.append(VirtualEntity(
            id=item.id,
            type=item.type,
            text=item.text,
            bbox=item.bbox,
            meta=EntityMeta(
                confidence=item.confidence,
                verification_status=item.status,
                verified=item.status == 'verified',
            ),
            page_index=item.page - 1,
            value=item.value,
            table_id=item.table_id,
        ))
    return entities


class OutputHandler:
    """
    Renders and saves query responses.

    Attributes:
        output_dir: Directory for files saved without a directory part.

    Example:
        >>> handler = OutputHandler()
        >>> print(handler.render(response, "text"))
        >>> handler.save(response, "xlsx")
    """

    def __init__(self, output_dir: Optional[Union[str, Path]] = None) -> None:
        self.output_dir = Path(output_dir or get_config("paths.output_dir", "outputs"))
        self._excel_exporter = None
        logger.debug(f"OutputHandler initialized (output_dir: {self.output_dir})")

    @property
    def excel_exporter(self) -> ExcelExporter:
        """Get or create the Excel exporter."""
        if self._excel_exporter is None:
            self._excel_exporter = ExcelExporter(self.output_dir)
        return self._excel_exporter

    def render(self, response, fmt: Optional[str] = None, context: int = 0,
               render_options: Optional[RenderOptions] = None) -> str:
        """
        Render a response as text.

        Args:
            response: QueryResponse from execute_query.
            fmt: json, text, html or csv (default from output.default_format).
            context: Lines of item text in text output.
            render_options: HTML rendering switches.

        Raises:
            UnsupportedOutputFormatError: For any other format.
        """
        fmt = (fmt or get_config("output.default_format", "text")).lower()

        if fmt == 'json':
            return json.dumps(response.to_dict(), indent=2, ensure_ascii=False)
        if fmt == 'text':
            return format_query_response(response, context=context)
        if fmt == 'html':
            title = f"{response.document_id}: {response.query or '*'}"
            return render_html_document(items_to_entities(response), render_options, title=title)
        if fmt == 'csv':
            return query_response_to_csv(response)

        raise UnsupportedOutputFormatError(fmt, list(TEXT_FORMATS))

    def save(self, response, fmt: Optional[str] = None, filename: Optional[str] = None,
             context: int = 0) -> str:
        """
        Write a response to a file.

        Args:
            response: QueryResponse from execute_query.
            fmt: json, text, html, csv or xlsx.
            filename: Target path; a bare name lands in output_dir and a
                missing name is generated from a timestamp.
            context: Lines of item text in text output.

        Returns:
            Path of the written file.

        Raises:
            UnsupportedOutputFormatError: If the format is unknown.
            OutputWriteError: If the file cannot be written.
        """
        fmt = (fmt or get_config("output.default_format", "text")).lower()
        if fmt not in FILE_FORMATS:
            raise UnsupportedOutputFormatError(fmt, list(FILE_FORMATS))

        if filename is None:
            filename = f"query_{generate_timestamp()}.{FILE_EXTENSIONS[fmt]}"

        if fmt == 'xlsx':
            return self.excel_exporter.export(response, filename)

        filepath = Path(filename)
        if not filepath.is_absolute() and filepath.parent == Path('.'):
            filepath = self.output_dir / filepath
        ensure_directory(filepath.parent)

        content = self.render(response, fmt, context=context)
        try:
            with open(filepath, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Failed to write {filepath}: {e}")
            raise OutputWriteError(str(filepath), str(e)) from e

        logger.info(f"Saved {fmt} output: {filepath}")
        return str(filepath)
