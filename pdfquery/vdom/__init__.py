"""
Virtual Document Module.

In-memory document model (VirtualDoc -> VirtualPage -> VirtualEntity) and
the source record types the compiler consumes.
"""

from .types import (
    ENTITY_TYPES,
    VERIFICATION_STATUSES,
    BoundingBox,
    Rect,
    EntityMeta,
    TransformationResult,
    VirtualEntity,
    PageMeta,
    VirtualPage,
    DocumentMeta,
    VirtualDoc,
    EntityChange,
    MutationLog,
    QueryStats,
)
from .sources import (
    SourceTable,
    SourceEntity,
    SourceExtractedEntity,
    SourceOcr,
    SourceMarkdown,
)

__all__ = [
    'ENTITY_TYPES',
    'VERIFICATION_STATUSES',
    'BoundingBox',
    'Rect',
    'EntityMeta',
    'TransformationResult',
    'VirtualEntity',
    'PageMeta',
    'VirtualPage',
    'DocumentMeta',
    'VirtualDoc',
    'EntityChange',
    'MutationLog',
    'QueryStats',
    'SourceTable',
    'SourceEntity',
    'SourceExtractedEntity',
    'SourceOcr',
    'SourceMarkdown',
]
