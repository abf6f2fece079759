"""
File Loaders.

Load saved API responses (entities or page payloads) from JSON.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

from pdfquery.sources.api import from_entities_api, from_page_api_blocks, from_page_api_markdown
from pdfquery.utils.exceptions import InvalidSourceError
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.sources import SourceExtractedEntity, SourceMarkdown, SourceOcr

# Initialize module logger
logger = get_logger(__name__)


@dataclass
class PageSources:
    """OCR blocks and markdown of one page."""
    page: int
    ocr: List[SourceOcr] = field(default_factory=list)
    markdown: Optional[SourceMarkdown] = None


def load_json(path: Union[str, Path]) -> Any:
    """
    Read a JSON file.

    Raises:
        InvalidSourceError: If the file is missing or not valid JSON.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise InvalidSourceError(str(file_path), "file not found")
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidSourceError(str(file_path), f"invalid JSON: {e}") from e
    logger.debug(f"Loaded JSON: {file_path}")
    return data


def load_entities_from_file(data: Any) -> List[SourceExtractedEntity]:
    """
    Load extracted entities from a parsed entities payload.

    Raises:
        InvalidSourceError: If the payload has no entities array.
    """
    if not isinstance(data, dict) or not isinstance(data.get('entities'), list):
        raise InvalidSourceError("entities file", "missing entities array")
    return from_entities_api(data)


def load_page_from_file(data: Any) -> PageSources:
    """
    Load OCR blocks and markdown from a parsed page payload.

    Raises:
        InvalidSourceError: If the payload has no numeric page number.
    """
    page = data.get('page') if isinstance(data, dict) else None
    if not isinstance(page, (int, float)) or isinstance(page, bool):
        raise InvalidSourceError("page file", "missing page number")
    return PageSources(
        page=page,
        ocr=from_page_api_blocks(data),
        markdown=from_page_api_markdown(data),
    )
