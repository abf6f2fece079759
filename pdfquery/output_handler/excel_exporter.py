"""
Excel Exporter Module.

This module writes query responses to Excel workbooks with openpyxl.

Features:
    - Formatted, frozen header row
    - Auto-column width
    - Statistics sheet with the query summary

Author: ML Engineering Team
"""

from pathlib import Path
from typing import Optional, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from config import get_config
from pdfquery.utils.exceptions import OutputWriteError
from pdfquery.utils.helpers import ensure_directory, generate_timestamp
from pdfquery.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class ExcelExporter:
    """
    Exports query responses to .xlsx files.

    Example:
        >>> exporter = ExcelExporter()
        >>> path = exporter.export(response, "currency.xlsx")
    """

    # Header -> item attribute
    COLUMNS = [
        ('Page', 'page'),
        ('Entity ID', 'id'),
        ('Type', 'type'),
        ('Text', 'text'),
        ('Value', 'value'),
        ('Confidence', 'confidence'),
        ('Status', 'status'),
        ('Table ID', 'table_id'),
    ]

    MAX_COLUMN_WIDTH = 60

    def __init__(self, output_dir: Optional[Union[str, Path]] = None) -> None:
        self.output_dir = Path(output_dir or get_config("paths.output_dir", "outputs"))
        self.sheet_name = get_config("output.excel.sheet_name", "Results")
        logger.debug(f"ExcelExporter initialized (output_dir: {self.output_dir})")

    def export(self, response, filename: Optional[str] = None) -> str:
        """
        Write a QueryResponse to an Excel file.

        Args:
            response: QueryResponse from execute_query.
            filename: Output filename; a relative name lands in output_dir.

        Returns:
            Path to the created file.

        Raises:
            OutputWriteError: If the workbook cannot be saved.
        """
        if filename is None:
            filename = f"query_{generate_timestamp()}.xlsx"
        filepath = Path(filename)
        if not filepath.is_absolute() and filepath.parent == Path('.'):
            filepath = self.output_dir / filepath
        ensure_directory(filepath.parent)

        workbook = Workbook()
        self._create_results_sheet(workbook, response)
        self._create_stats_sheet(workbook, response)

        try:
            workbook.save(filepath)
        except OSError as e:
            logger.error(f"Excel export failed: {e}")
            raise OutputWriteError(str(filepath), str(e)) from e

        logger.info(f"Excel file saved: {filepath} ({response.returned} rows)")
        return str(filepath)

    def _create_results_sheet(self, workbook: Workbook, response) -> None:
        sheet = workbook.active
        sheet.title = self.sheet_name

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        thin = Side(style='thin')
        border = Border(left=thin, right=thin, top=thin, bottom=thin)

        for col, (header, _) in enumerate(self.COLUMNS, 1):
            cell = sheet.cell(row=1, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = border

        for row_num, item in enumerate(response.items, 2):
            for col, (_, attr) in enumerate(self.COLUMNS, 1):
                value = getattr(item, attr)
                if isinstance(value, (dict, list)):
                    value = str(value)
                cell = sheet.cell(row=row_num, column=col, value=value)
                cell.border = border

        for col, (header, _) in enumerate(self.COLUMNS, 1):
            width = len(header)
            for row in range(2, len(response.items) + 2):
                value = sheet.cell(row=row, column=col).value
                if value is not None:
                    width = max(width, len(str(value)))
            sheet.column_dimensions[get_column_letter(col)].width = min(width + 2, self.MAX_COLUMN_WIDTH)

        sheet.freeze_panes = 'A2'

    def _create_stats_sheet(self, workbook: Workbook, response) -> None:
        sheet = workbook.create_sheet(title="Statistics")
        header_fill = PatternFill(start_color="548235", end_color="548235", fill_type="solid")

        stats = response.stats
        rows = [
            ('Query', response.query or '*'),
            ('Document', response.document_id),
            ('Total matches', response.total),
            ('Returned', response.returned),
            ('Verified', stats.verified),
            ('Flagged', stats.flagged),
            ('Pending', stats.pending),
            ('Verification score', round(stats.score, 4)),
            ('Average confidence', round(stats.avg_confidence, 4)),
            ('Duration (ms)', response.duration),
        ]

        for col, header in enumerate(('Metric', 'Value'), 1):
            cell = sheet.cell(row=1, column=col, value=header)
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = header_fill

        for row_num, (metric, value) in enumerate(rows, 2):
            sheet.cell(row=row_num, column=1, value=metric)
            sheet.cell(row=row_num, column=2, value=value)

        sheet.column_dimensions['A'].width = 22
        sheet.column_dimensions['B'].width = 40
