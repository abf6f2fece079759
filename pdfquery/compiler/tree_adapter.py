"""
Inspector Tree Adapter.

Flattens a nested document inspector tree (document -> page -> blocks)
into a VirtualDoc so the same selector queries run against it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from pdfquery.compiler.compiler import build_document_meta, calculate_page_meta
from pdfquery.utils.helpers import is_number
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import EntityMeta, Rect, VirtualDoc, VirtualEntity, VirtualPage

# Initialize module logger
logger = get_logger(__name__)

# Inspector node type -> entity type
TYPE_MAP = {
    'table': 'table',
    'figure': 'figure',
    'ocr-block': 'ocr',
    'footnote': 'footnote',
    'summary': 'markdown',
    'heading': 'header',
    'paragraph': 'text',
    'signature': 'text',
    'form': 'text',
    'list': 'text',
    'header': 'header',
}

STRUCTURAL_TYPES = ('document', 'page')


@dataclass
class TreeNode:
    """One inspector node; `bbox` is top-left origin, normalized."""
    id: str
    type: str
    tag_name: str = 'div'
    text_content: Optional[str] = None
    page: int = 1
    bbox: Optional[Rect] = None
    children: List['TreeNode'] = field(default_factory=list)
    class_name: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    data: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TreeNode':
        bbox = data.get('bbox')
        return cls(
            id=str(data['id']),
            type=data.get('type', ''),
            tag_name=data.get('tagName', 'div'),
            text_content=data.get('textContent'),
            page=data.get('page', 1),
            bbox=Rect.from_dict(bbox) if bbox else None,
            children=[cls.from_dict(child) for child in data.get('children') or []],
            class_name=data.get('className'),
            attributes=dict(data.get('attributes') or {}),
            data=data.get('data'),
        )

    def walk(self) -> Iterator['TreeNode']:
        """Pre-order traversal."""
        yield self
        for child in self.children:
            yield from child.walk()


def _node_to_entity(node: TreeNode, default_confidence: float) -> VirtualEntity:
    confidence = node.attributes.get('data-confidence')
    return VirtualEntity(
        id=node.id,
        type=TYPE_MAP.get(node.type, 'unknown'),
        text=node.text_content or '',
        bbox=node.bbox.to_bbox(),
        meta=EntityMeta(
            confidence=confidence if is_number(confidence) else default_confidence,
            source='ocr',
            processor_type='ocr',
        ),
        page_index=node.page - 1,
        data=node.data,
    )


def _flatten(node: TreeNode, include_ocr_blocks: bool,
             default_confidence: float, out: List[VirtualEntity]) -> None:
    if node.type not in STRUCTURAL_TYPES and node.bbox is not None:
        if node.type == 'ocr-block' and not include_ocr_blocks:
            return
        out.append(_node_to_entity(node, default_confidence))

    for child in node.children:
        _flatten(child, include_ocr_blocks, default_confidence, out)


def tree_to_virtual_doc(tree: Any, doc_id: str = 'inspector-doc',
                        include_ocr_blocks: bool = True,
                        default_confidence: float = 0.9) -> VirtualDoc:
    """
    Convert an inspector tree into a VirtualDoc.

    Args:
        tree: Root TreeNode or its dict form.
        doc_id: Id of the produced document.
        include_ocr_blocks: When False, ocr-block nodes and everything
            beneath them are skipped.
        default_confidence: Used when a node has no numeric
            ``data-confidence`` attribute.

    Returns:
        Document whose pages keep the tree's traversal order.
    """
    root = tree if isinstance(tree, TreeNode) else TreeNode.from_dict(tree)

    entities: List[VirtualEntity] = []
    _flatten(root, include_ocr_blocks, default_confidence, entities)

    by_page: Dict[int, List[VirtualEntity]] = {}
    for entity in entities:
        by_page.setdefault(entity.page_index, []).append(entity)

    pages = [
        VirtualPage(
            id=f"page-{page_index + 1}",
            page_index=page_index,
            page_number=page_index + 1,
            entities=page_entities,
            meta=calculate_page_meta(page_entities),
        )
        for page_index, page_entities in sorted(by_page.items())
    ]

    logger.debug(f"Flattened inspector tree into {len(entities)} entities on {len(pages)} pages")
    return VirtualDoc(id=doc_id, version=1, pages=pages, meta=build_document_meta(pages))


def get_page_count(tree: Any) -> int:
    """Highest page number referenced anywhere in the tree (0 for none)."""
    root = tree if isinstance(tree, TreeNode) else TreeNode.from_dict(tree)
    return max((node.page for node in root.walk()), default=0)
