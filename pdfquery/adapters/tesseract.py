"""
Tesseract Adapter.

Supports two output shapes:
    - pytesseract image_to_data(output_type=Output.DICT): parallel arrays
    - tesseract.js recognize(): data.lines[].words[] with x0/y0/x1/y1 boxes

Both report pixel boxes with a top-left origin, so coordinates are divided
by the source image size. Confidence is on a 0-100 scale; -1 marks
structural rows without text.

Author: ML Engineering Team
"""

from typing import Any, Dict, Tuple, Union

from PIL import Image

from pdfquery.adapters.types import AdapterResult, ImageDimensions, NormalizedBlock, vendor_confidence
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import Rect

# Initialize module logger
logger = get_logger(__name__)

# image_to_data levels: 1=page, 2=block, 3=paragraph, 4=line, 5=word
LEVEL_TYPES = {3: 'paragraph', 4: 'line', 5: 'word'}

DimensionsLike = Union[ImageDimensions, Image.Image, Tuple[float, float]]


def _image_size(image_dimensions: DimensionsLike) -> Tuple[float, float]:
    """
    Resolve (width, height) from dimensions, a PIL image or a tuple.

    Args:
        image_dimensions: ImageDimensions, a PIL Image (its .size is used)
            or a (width, height) tuple.

    Returns:
        (width, height) in pixels.
    """
    if isinstance(image_dimensions, ImageDimensions):
        return image_dimensions.width, image_dimensions.height
    if isinstance(image_dimensions, Image.Image):
        return image_dimensions.size
    width, height = image_dimensions
    return width, height


def from_pytesseract(data: Dict[str, Any], image_dimensions: DimensionsLike) -> AdapterResult:
    """
    Convert pytesseract image_to_data output.

    Rows with empty text or negative confidence are skipped, as are page
    and block level containers.

    Args:
        data: Dictionary output from image_to_data.
        image_dimensions: Size of the OCR'd image.

    Returns:
        AdapterResult with paragraph, line and word blocks.

    Example:
        >>> image = Image.open("page1.png")
        >>> data = pytesseract.image_to_data(image, output_type=Output.DICT)
        >>> result = from_pytesseract(data, image)
    """
    img_width, img_height = _image_size(image_dimensions)
    result = AdapterResult()

    for i, raw_text in enumerate(data.get('text') or []):
        text = (raw_text or '').strip()
        conf = float(data['conf'][i])
        if not text or conf < 0:
            continue

        block_type = LEVEL_TYPES.get(data['level'][i])
        if block_type is None:
            continue

        page = data['page_num'][i]
        result.blocks.append(NormalizedBlock(
            id=f"tess-{page}-{data['block_num'][i]}-{data['line_num'][i]}-{data['word_num'][i]}",
            page=page,
            text=text,
            bbox=Rect(
                data['left'][i] / img_width,
                data['top'][i] / img_height,
                data['width'][i] / img_width,
                data['height'][i] / img_height,
            ),
            confidence=conf / 100,
            type=block_type,
        ))

    result.page_count = max([1] + list(data.get('page_num') or []))
    logger.debug(f"pytesseract: {len(result.blocks)} blocks kept")
    return result


def _pixel_box(box: Dict[str, float], img_width: float, img_height: float) -> Rect:
    return Rect(
        box['x0'] / img_width,
        box['y0'] / img_height,
        (box['x1'] - box['x0']) / img_width,
        (box['y1'] - box['y0']) / img_height,
    )


def from_tesseract_js(result: Dict[str, Any], image_dimensions: DimensionsLike,
                      page_number: int = 1) -> AdapterResult:
    """Convert a tesseract.js recognize() result into line and word blocks."""
    img_width, img_height = _image_size(image_dimensions)
    converted = AdapterResult(page_count=1)

    for line_id, line in enumerate((result.get('data') or {}).get('lines') or []):
        converted.blocks.append(NormalizedBlock(
            id=f"tessjs-line-{line_id}",
            page=page_number,
            text=line.get('text', ''),
            bbox=_pixel_box(line['bbox'], img_width, img_height),
            confidence=vendor_confidence(line.get('confidence'), default=0.0, scale=100),
            type='line',
        ))
        for word_id, word in enumerate(line.get('words') or []):
            converted.blocks.append(NormalizedBlock(
                id=f"tessjs-line-{line_id}-word-{word_id}",
                page=page_number,
                text=word.get('text', ''),
                bbox=_pixel_box(word['bbox'], img_width, img_height),
                confidence=vendor_confidence(word.get('confidence'), default=0.0, scale=100),
                type='word',
            ))

    return converted
