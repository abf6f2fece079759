#!/usr/bin/env python3
"""
pdfquery - Main Entry Point.

Compiles an extraction payload (API response, vendor OCR output, inspector
tree or a saved VirtualDoc) into a queryable document, runs a selector
query against it and prints or saves the result.

Usage:
    Command Line:
        python main.py --input tables.json --selector ".currency" --top-k 10
        python main.py --input textract.json --source textract --format html --output out.html
        python main.py --input tess.json --source tesseract --image page1.png

    Python:
        from main import run_query
        response = run_query("entities.json", selector=".table:first")

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

import yaml
from PIL import Image

# Import project modules
from config import ConfigurationManager, load_config
from pdfquery.adapters import ImageDimensions, get_adapter
from pdfquery.compiler import DocCompiler, tree_to_virtual_doc
from pdfquery.output_handler import OutputHandler
from pdfquery.query import QueryConfig, QueryResponse, execute_query
from pdfquery.sources import (
    from_page_api_tables,
    load_entities_from_file,
    load_json,
    load_page_from_file,
)
from pdfquery.utils.exceptions import ConfigurationError, InvalidSourceError, PdfQueryError
from pdfquery.utils.logger import LOGGER_NAMESPACE, get_logger, setup_logger_from_config
from pdfquery.vdom import VirtualDoc

SOURCE_TYPES = (
    'auto', 'doc', 'tree', 'entities', 'page',
    'textract', 'docai', 'azure', 'tesseract', 'tesseract_js', 'unstructured', 'docling',
)

# Sources whose boxes are in image pixels
PIXEL_SOURCES = ('tesseract', 'tesseract_js')


def parse_arguments(argv: Optional[list] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="pdfquery - query extracted PDF content with selectors",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    High-confidence currency cells:
        python main.py --input tables.json --selector ".currency[confidence>0.9]"

    First table on pages 2-4 as HTML:
        python main.py --input doc.json --selector ".table:pages(2-4):first" --format html

    Tesseract output, boxes scaled by the page image:
        python main.py --input tess.json --source tesseract --image page.png
        """
    )

    # Input/Output arguments
    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="JSON input file"
    )

    parser.add_argument(
        "--source", "-s",
        choices=SOURCE_TYPES,
        default="auto",
        help="Input kind (default: detect from content)"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Write the result to this file instead of stdout"
    )

    parser.add_argument(
        "--format", "-f",
        choices=('json', 'text', 'html', 'csv', 'xlsx'),
        default=None,
        help="Output format (default from config; xlsx needs --output)"
    )

    # Query options
    parser.add_argument("--selector", type=str, default=None, help="Selector string (default: all)")
    parser.add_argument("--top-k", "-k", type=int, default=None, help="Maximum results returned")
    parser.add_argument("--min-confidence", type=float, default=None, help="Minimum confidence (0-1)")
    parser.add_argument("--status", type=str, nargs="+", default=None, help="Verification status filter")
    parser.add_argument("--contains", type=str, default=None, help="Case-insensitive text search")
    parser.add_argument("--pattern", type=str, default=None, help="Case-insensitive regex search")
    parser.add_argument("--sort-by", choices=('confidence', 'position', 'page'), default=None)
    parser.add_argument("--pages", type=int, nargs=2, metavar=("START", "END"), default=None,
                        help="Inclusive page range")
    parser.add_argument("--context", type=int, default=0, help="Text lines per item in text output")

    # Pixel-coordinate sources
    parser.add_argument("--image", type=str, default=None, help="Page image, used for its size")
    parser.add_argument("--image-width", type=float, default=None)
    parser.add_argument("--image-height", type=float, default=None)

    # Processing options
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    # Logging options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.

    Raises:
        ConfigurationError: If the configuration file is not valid YAML.
    """
    try:
        config = load_config(args.config) if args.config else ConfigurationManager()
    except yaml.YAMLError as e:
        raise ConfigurationError(args.config or "settings.yaml", str(e)) from e
    logger = setup_logger_from_config()

    if args.debug:
        logging.getLogger(LOGGER_NAMESPACE).setLevel(logging.DEBUG)
        for handler in logging.getLogger(LOGGER_NAMESPACE).handlers:
            handler.setLevel(logging.DEBUG)

    logger.debug(f"pdfquery {config.get('project.version', '1.0.0')}")
    logger.debug(f"Input: {args.input} (source: {args.source})")
    return config


def validate_inputs(args: argparse.Namespace) -> Path:
    """
    Validate command-line inputs.

    Returns:
        Path of the input file.

    Raises:
        FileNotFoundError: If the input or image file does not exist.
        ValueError: If option combinations are invalid.
    """
    input_path = Path(args.input)
    if not input_path.is_file():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    if args.image and not Path(args.image).is_file():
        raise FileNotFoundError(f"Image file not found: {args.image}")

    if args.format == 'xlsx' and not args.output:
        raise ValueError("xlsx output needs --output")

    if (args.image_width is None) != (args.image_height is None):
        raise ValueError("--image-width and --image-height go together")

    if args.source in PIXEL_SOURCES and not args.image and args.image_width is None:
        raise ValueError(f"{args.source} input needs --image or --image-width/--image-height")

    return input_path


def detect_source(data: Any) -> str:
    """
    Guess the input kind from a parsed JSON payload.

    Raises:
        InvalidSourceError: If no known shape matches.
    """
    if isinstance(data, list):
        return 'unstructured'
    if not isinstance(data, dict):
        raise InvalidSourceError("input", "expected a JSON object or array")

    if 'pages' in data and 'version' in data and 'meta' in data:
        return 'doc'
    if data.get('type') == 'document' and 'children' in data:
        return 'tree'
    if 'entities' in data:
        return 'entities'
    if 'page' in data and ('blocks' in data or 'content' in data):
        return 'page'
    if 'Blocks' in data:
        return 'textract'
    if data.get('schema_name') == 'DoclingDocument' or 'texts' in data:
        return 'docling'
    if 'level' in data and 'text' in data:
        return 'tesseract'
    if isinstance(data.get('data'), dict) and 'lines' in data['data']:
        return 'tesseract_js'
    if 'pages' in data and 'text' in data:
        return 'docai'
    if 'pages' in data and ('paragraphs' in data or 'tables' in data or 'modelId' in data):
        return 'azure'

    raise InvalidSourceError("input", "could not detect the input kind; pass --source")


def _image_dimensions(args: argparse.Namespace):
    if args.image:
        with Image.open(args.image) as image:
            return ImageDimensions(*image.size)
    return ImageDimensions(args.image_width, args.image_height)


def build_document(data: Any, source: str, args: argparse.Namespace,
                   file_name: Optional[str] = None) -> VirtualDoc:
    """
    Build a VirtualDoc from a parsed payload.

    Args:
        data: Parsed JSON.
        source: Input kind (see SOURCE_TYPES, not "auto").
        args: Parsed arguments (for image dimensions).
        file_name: Recorded in the document meta.
    """
    logger = get_logger(__name__)

    if source == 'doc':
        return VirtualDoc.from_dict(data)
    if source == 'tree':
        return tree_to_virtual_doc(data)

    compiler = DocCompiler(file_name=file_name)

    if source == 'entities':
        compiler.add_extracted_entities(load_entities_from_file(data))
    elif source == 'page':
        page = load_page_from_file(data)
        compiler.add_tables(from_page_api_tables(data))
        compiler.add_ocr_blocks(page.ocr)
        if page.markdown is not None and page.markdown.content:
            compiler.add_markdown_blocks([page.markdown])
    else:
        adapter = get_adapter(source)
        if source in PIXEL_SOURCES:
            result = adapter(data, _image_dimensions(args))
        else:
            result = adapter(data)
        logger.info(f"{source}: {len(result.blocks)} blocks, {len(result.tables)} tables")
        compiler.add_adapter_result(result)

    return compiler.compile()


def run_query(
    input_path: str,
    selector: Optional[str] = None,
    source: str = 'auto',
    config_path: Optional[str] = None,
    args: Optional[argparse.Namespace] = None,
    **query_options
) -> QueryResponse:
    """
    Load an input file, build the document and run a query.

    This is the main programmatic entry point.

    Args:
        input_path: JSON input file.
        selector: Selector string.
        source: Input kind or "auto".
        config_path: Optional custom configuration file path.
        args: Parsed CLI arguments (image dimensions for pixel sources).
        **query_options: Further QueryConfig fields (top_k, sort_by, ...).

    Returns:
        QueryResponse.

    Example:
        >>> response = run_query("tables.json", ".currency", top_k=5)
        >>> [item.text for item in response.items]
    """
    logger = get_logger(__name__)
    if config_path and ConfigurationManager().config_path != Path(config_path):
        load_config(config_path)

    data = load_json(input_path)
    if source == 'auto':
        source = detect_source(data)
        logger.info(f"Detected input kind: {source}")

    doc = build_document(data, source, args or argparse.Namespace(image=None), Path(input_path).name)
    return execute_query(doc, QueryConfig(selector=selector, **query_options))


def main(argv: Optional[list] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = None
    try:
        args = parse_arguments(argv)

        initialize_system(args)
        logger = get_logger(__name__)

        input_path = validate_inputs(args)

        response = run_query(
            str(input_path),
            selector=args.selector,
            source=args.source,
            config_path=args.config,
            args=args,
            top_k=args.top_k,
            page_range=tuple(args.pages) if args.pages else None,
            min_confidence=args.min_confidence,
            status=args.status,
            contains=args.contains,
            pattern=args.pattern,
            sort_by=args.sort_by,
            output=args.format if args.format != 'xlsx' else None,
            context=args.context,
        )

        handler = OutputHandler()
        if args.output:
            path = handler.save(response, args.format, filename=args.output, context=args.context)
            logger.info(f"Wrote {response.returned} results to {path}")
        else:
            print(handler.render(response, args.format, context=args.context))

        return 0

    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except PdfQueryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if args is not None:
            debug = args.debug
        else:
            debug = "--debug" in (sys.argv if argv is None else argv)
        if debug:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
