"""
Document Compiler Module.

Compiles heterogeneous extraction layers (tables, field entities, unified
extracted entities, OCR blocks, LLM markdown) into a flat, queryable
VirtualDoc: Document -> Pages -> Entities.

Features:
    - Page grouping across every input layer
    - Markdown table decomposition into grid-positioned cell entities
    - Automatic entity type detection from text patterns
    - Per-page and per-document verification statistics

Usage:
    compiler = DocCompiler(document_id="doc_123")
    compiler.add_tables(tables).add_entities(entities)
    doc = compiler.compile()

Author: ML Engineering Team
"""

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from config import get_config
from pdfquery.adapters.types import AdapterResult
from pdfquery.compiler.detection import detect_entity_type, parse_value
from pdfquery.compiler.table_parser import iter_cell_boxes, parse_markdown_table
from pdfquery.sources.api import from_adapter_result
from pdfquery.utils.helpers import now_ms, parse_timestamp_ms
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.sources import (
    SourceEntity,
    SourceExtractedEntity,
    SourceMarkdown,
    SourceOcr,
    SourceTable,
)
from pdfquery.vdom.types import (
    BoundingBox,
    DocumentMeta,
    EntityMeta,
    PageMeta,
    VirtualDoc,
    VirtualEntity,
    VirtualPage,
)

# Initialize module logger
logger = get_logger(__name__)

# Unified entity type -> entity type; unmapped types pass through
EXTRACTED_TYPE_MAP = {
    'table': 'table',
    'figure': 'figure',
    'footnote': 'footnote',
    'summary': 'text',
    'signature': 'text',
}


def calculate_page_meta(entities: List[VirtualEntity]) -> PageMeta:
    """
    Compute verification statistics for a list of entities.

    Args:
        entities: Entities of one page (or any selection).

    Returns:
        PageMeta with counts, average confidence and verified/total score.
    """
    total = len(entities)
    statuses = Counter(entity.meta.verification_status for entity in entities)
    confidence_sum = sum(entity.meta.confidence or 0 for entity in entities)
    verified = statuses['verified']

    return PageMeta(
        total_entities=total,
        verified_count=verified,
        flagged_count=statuses['flagged'],
        pending_count=statuses['pending'],
        avg_confidence=confidence_sum / total if total > 0 else 0.0,
        verification_score=verified / total if total > 0 else 0.0,
    )


def build_document_meta(pages: List[VirtualPage], file_name: Optional[str] = None,
                        document_type: Optional[str] = None) -> DocumentMeta:
    """Sum page statistics into document statistics."""
    now = now_ms()
    total = sum(page.meta.total_entities for page in pages)
    verified = sum(page.meta.verified_count for page in pages)

    return DocumentMeta(
        file_name=file_name,
        document_type=document_type,
        total_pages=len(pages),
        total_entities=total,
        verified_count=verified,
        flagged_count=sum(page.meta.flagged_count for page in pages),
        pending_count=sum(page.meta.pending_count for page in pages),
        verification_score=verified / total if total > 0 else 0.0,
        created_at=now,
        last_modified=now,
    )


class DocCompiler:
    """
    Accumulates source layers and compiles them into a VirtualDoc.

    Every add_* method accepts record instances or raw API dicts and
    returns the compiler for chaining. compile() does not consume the
    accumulated layers; calling it twice gives equivalent documents.

    Attributes:
        include_tables: Emit table container entities (and their cells).
        parse_table_cells: Decompose table markdown into cell entities.
        auto_detect_types: Classify cells and fields from their text.
        document_id: Id of the compiled document.
        file_name: Recorded in document meta.
        document_type: Recorded in document meta.

    Example:
        >>> doc = (DocCompiler(document_id="doc_1")
        ...        .add_tables([{"id": "t1", "page_number": 1,
        ...                      "markdown": "| A | B |\\n|---|---|\\n| 1 | 2 |",
        ...                      "bbox": {"xmin": 0, "ymin": 0, "xmax": 1, "ymax": 0.5},
        ...                      "confidence": 0.9}])
        ...        .compile())
        >>> [e.type for e in doc.pages[0].entities]
        ['table', 'header', 'header', 'currency', 'currency']
    """

    def __init__(
        self,
        include_tables: Optional[bool] = None,
        parse_table_cells: Optional[bool] = None,
        auto_detect_types: Optional[bool] = None,
        document_id: Optional[str] = None,
        file_name: Optional[str] = None,
        document_type: Optional[str] = None
    ):
        self.include_tables = (
            include_tables if include_tables is not None
            else get_config("compiler.include_tables", True)
        )
        self.parse_table_cells = (
            parse_table_cells if parse_table_cells is not None
            else get_config("compiler.parse_table_cells", True)
        )
        self.auto_detect_types = (
            auto_detect_types if auto_detect_types is not None
            else get_config("compiler.auto_detect_types", True)
        )
        self.document_id = document_id or f"doc_{now_ms()}"
        self.file_name = file_name or get_config("compiler.file_name", "unknown")
        self.document_type = document_type or get_config("compiler.document_type", "document")

        self._tables: List[SourceTable] = []
        self._entities: List[SourceEntity] = []
        self._extracted: List[SourceExtractedEntity] = []
        self._ocr_blocks: List[SourceOcr] = []
        self._markdown_blocks: List[SourceMarkdown] = []
        self._version = 1

        logger.debug(f"DocCompiler initialized: {self.document_id}")

    # -------------------------------------------------------------------------
    # Input layers
    # -------------------------------------------------------------------------

    def add_tables(self, tables: Iterable[Any]) -> 'DocCompiler':
        """Add markdown tables (SourceTable or tables-API dicts)."""
        self._tables.extend(SourceTable.coerce_all(tables))
        return self

    def add_entities(self, entities: Iterable[Any]) -> 'DocCompiler':
        """Add field-level extractions."""
        self._entities.extend(SourceEntity.coerce_all(entities))
        return self

    def add_extracted_entities(self, entities: Iterable[Any]) -> 'DocCompiler':
        """Add unified entities (table, figure, footnote, summary, ...)."""
        self._extracted.extend(SourceExtractedEntity.coerce_all(entities))
        return self

    def add_ocr_blocks(self, blocks: Iterable[Any]) -> 'DocCompiler':
        """Add raw OCR text blocks."""
        self._ocr_blocks.extend(SourceOcr.coerce_all(blocks))
        return self

    def add_markdown_blocks(self, blocks: Iterable[Any]) -> 'DocCompiler':
        """Add LLM vision markdown blocks."""
        self._markdown_blocks.extend(SourceMarkdown.coerce_all(blocks))
        return self

    def add_markdown_page(self, markdown: str, page_number: int) -> 'DocCompiler':
        """Add a whole page of markdown as a synthetic full-page table."""
        self._tables.append(SourceTable(
            id=f"synthetic_{page_number}_{now_ms()}",
            page_number=page_number,
            markdown=markdown,
            bbox=BoundingBox(0.0, 0.0, 1.0, 1.0),
            confidence=1.0,
            verification_status='pending',
        ))
        return self

    def add_adapter_result(self, result: AdapterResult) -> 'DocCompiler':
        """Add a vendor adapter's tables and blocks."""
        tables, ocr_blocks = from_adapter_result(result)
        return self.add_tables(tables).add_ocr_blocks(ocr_blocks)

    def reset(self) -> 'DocCompiler':
        """Clear every layer and bump the document version."""
        self._tables = []
        self._entities = []
        self._extracted = []
        self._ocr_blocks = []
        self._markdown_blocks = []
        self._version += 1
        return self

    # -------------------------------------------------------------------------
    # Compilation
    # -------------------------------------------------------------------------

    def compile(self) -> VirtualDoc:
        """
        Compile the accumulated layers into a VirtualDoc.

        Returns:
            Document with pages ascending by page number and entities of
            each page ascending by bbox.ymin (ties keep insertion order).
        """
        page_numbers = sorted(
            {t.page_number for t in self._tables}
            | {e.page_number for e in self._entities}
            | {x.page for x in self._extracted}
            | {o.page for o in self._ocr_blocks}
            | {m.page for m in self._markdown_blocks}
        )

        pages = [
            self._build_page(
                number,
                [t for t in self._tables if t.page_number == number],
                [e for e in self._entities if e.page_number == number],
                [x for x in self._extracted if x.page == number],
                [o for o in self._ocr_blocks if o.page == number],
                [m for m in self._markdown_blocks if m.page == number],
            )
            for number in page_numbers
        ]

        self._check_duplicate_ids(pages)

        doc = VirtualDoc(
            id=self.document_id,
            version=self._version,
            pages=pages,
            meta=build_document_meta(pages, self.file_name, self.document_type),
        )
        logger.info(
            f"Compiled {doc.id}: {doc.meta.total_pages} pages, "
            f"{doc.meta.total_entities} entities"
        )
        return doc

    def _build_page(self, page_number: int, tables: List[SourceTable],
                    entities: List[SourceEntity], extracted: List[SourceExtractedEntity],
                    ocr_blocks: List[SourceOcr], markdown_blocks: List[SourceMarkdown]) -> VirtualPage:
        page_index = page_number - 1
        page_entities: List[VirtualEntity] = []

        if self.include_tables:
            for table in tables:
                page_entities.append(self._table_to_entity(table, page_index))
                if self.parse_table_cells and table.markdown:
                    page_entities.extend(self._table_cells(table, page_index))

        page_entities.extend(self._source_entity_to_virtual(e, page_index) for e in entities)
        page_entities.extend(self._extracted_to_virtual(x, page_index) for x in extracted)
        page_entities.extend(self._ocr_to_virtual(o, page_index) for o in ocr_blocks)
        page_entities.extend(self._markdown_to_virtual(m, page_index) for m in markdown_blocks)

        # Stable: equal ymin keeps insertion order
        page_entities.sort(key=lambda entity: entity.bbox.ymin)

        for entity in page_entities:
            if not entity.bbox.is_normalized():
                logger.debug(f"Entity {entity.id} has a bbox outside 0-1: {entity.bbox}")

        markdown = (
            '\n\n'.join(block.content for block in markdown_blocks)
            if markdown_blocks else None
        )

        return VirtualPage(
            id=f"p_{page_index}",
            page_index=page_index,
            page_number=page_number,
            entities=page_entities,
            meta=calculate_page_meta(page_entities),
            markdown=markdown,
        )

    @staticmethod
    def _check_duplicate_ids(pages: List[VirtualPage]) -> None:
        counts = Counter(entity.id for page in pages for entity in page.entities)
        duplicates = sorted(entity_id for entity_id, count in counts.items() if count > 1)
        if duplicates:
            logger.warning(f"Duplicate entity ids kept as separate entities: {duplicates}")

    # -------------------------------------------------------------------------
    # Entity conversion
    # -------------------------------------------------------------------------

    def _table_to_entity(self, table: SourceTable, page_index: int) -> VirtualEntity:
        status = table.verification_status or 'pending'
        return VirtualEntity(
            id=table.id,
            type='table',
            text=table.markdown,
            bbox=BoundingBox(table.bbox.xmin, table.bbox.ymin, table.bbox.xmax, table.bbox.ymax),
            meta=EntityMeta(
                confidence=table.confidence if table.confidence is not None else 0.0,
                verification_status=status,
                verified=status == 'verified',
                verified_by=table.verified_by,
                verified_at=parse_timestamp_ms(table.verified_at),
                was_corrected=bool(table.was_corrected),
                source='ocr',
            ),
            page_index=page_index,
        )

    def _table_cells(self, table: SourceTable, page_index: int) -> List[VirtualEntity]:
        parsed = parse_markdown_table(table.markdown)
        status = table.verification_status or 'pending'
        cells = []

        for row_index, col_index, text, cell_bbox in iter_cell_boxes(parsed, table.bbox):
            if parsed.rows[row_index].is_header:
                entity_type = 'header'
            elif self.auto_detect_types:
                entity_type = detect_entity_type(text)
            else:
                entity_type = 'table_cell'

            cells.append(VirtualEntity(
                id=f"{table.id}_r{row_index}_c{col_index}",
                type=entity_type,
                text=text,
                value=parse_value(text, entity_type),
                bbox=cell_bbox,
                meta=EntityMeta(
                    confidence=table.confidence if table.confidence is not None else 0.0,
                    verification_status=status,
                    verified=table.verification_status == 'verified',
                    source='ocr',
                ),
                page_index=page_index,
                table_id=table.id,
                row_index=row_index,
                col_index=col_index,
            ))

        logger.debug(f"Table {table.id}: {len(cells)} cells from {parsed.row_count} rows")
        return cells

    def _source_entity_to_virtual(self, entity: SourceEntity, page_index: int) -> VirtualEntity:
        status = entity.verification_status or 'pending'
        entity_type = (
            detect_entity_type(entity.suggested_value, entity.field_label)
            if self.auto_detect_types else 'text'
        )
        return VirtualEntity(
            id=entity.id,
            type=entity_type,
            text=entity.verified_value or entity.suggested_value,
            value=entity.suggested_value_numeric,
            bbox=entity.bounding_box.to_bbox(),
            meta=EntityMeta(
                confidence=entity.confidence,
                verification_status=status,
                verified=status == 'verified',
                verified_at=parse_timestamp_ms(entity.verified_at),
                was_corrected=entity.was_corrected,
                flag_reason=entity.flag_reason,
                flagged_at=parse_timestamp_ms(entity.flagged_at),
                source='ocr',
            ),
            page_index=page_index,
            row_index=entity.row_index,
        )

    def _extracted_to_virtual(self, entity: SourceExtractedEntity, page_index: int) -> VirtualEntity:
        status = entity.verification_status or 'pending'
        entity_type = EXTRACTED_TYPE_MAP.get(entity.type) or entity.type or 'unknown'
        text = f"{entity.title}\n{entity.caption}" if entity.caption else entity.title

        return VirtualEntity(
            id=entity.id,
            type=entity_type,
            text=text,
            bbox=entity.bbox.to_bbox(),
            meta=EntityMeta(
                confidence=entity.confidence if entity.confidence is not None else 1.0,
                verification_status=status,
                verified=status == 'verified',
                source='ocr',
            ),
            page_index=page_index,
        )

    def _ocr_to_virtual(self, ocr: SourceOcr, page_index: int) -> VirtualEntity:
        status = ocr.verification_status or 'pending'
        return VirtualEntity(
            id=ocr.id,
            type='ocr',
            text=ocr.text,
            bbox=ocr.bbox.to_bbox(),
            meta=EntityMeta(
                confidence=ocr.confidence,
                verification_status=status,
                verified=status == 'verified',
                source='ocr',
            ),
            page_index=page_index,
        )

    def _markdown_to_virtual(self, block: SourceMarkdown, page_index: int) -> VirtualEntity:
        status = block.verification_status or 'pending'
        return VirtualEntity(
            id=block.id,
            type='markdown',
            text=block.content,
            bbox=BoundingBox(0.0, 0.0, 1.0, 1.0),
            meta=EntityMeta(
                confidence=block.confidence if block.confidence is not None else 1.0,
                verification_status=status,
                verified=status == 'verified',
                source='ai_correction',
                processor_type=block.model,
            ),
            page_index=page_index,
        )


def create_compiler(**options) -> DocCompiler:
    """Create a DocCompiler; keyword options as in DocCompiler.__init__."""
    return DocCompiler(**options)


def compile_document(tables: Iterable[Any], entities: Iterable[Any], **options) -> VirtualDoc:
    """Compile tables and field entities in one call."""
    return (
        DocCompiler(**options)
        .add_tables(tables)
        .add_entities(entities)
        .compile()
    )
