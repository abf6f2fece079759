"""
Tests for the vendor adapters.
"""

import pytest
from PIL import Image

from pdfquery.adapters import (
    ADAPTERS,
    ImageDimensions,
    from_azure,
    from_docai,
    from_docling,
    from_pytesseract,
    from_tesseract_js,
    from_textract,
    from_unstructured,
    get_adapter,
    rows_to_markdown,
    vendor_confidence,
)
from pdfquery.adapters.docling import docling_bbox_to_rect
from pdfquery.adapters.types import points_to_rect
from pdfquery.adapters.unstructured import html_table_to_markdown
from pdfquery.utils.exceptions import UnsupportedVendorError


def assert_normalized(rect):
    for value in (rect.x, rect.y, rect.width, rect.height, rect.x + rect.width, rect.y + rect.height):
        assert 0.0 <= value <= 1.0 + 1e-9


def square(x0, y0, x1, y1):
    """Four {x, y} corner points."""
    return [{"x": x0, "y": y0}, {"x": x1, "y": y0}, {"x": x1, "y": y1}, {"x": x0, "y": y1}]


# -------------------------
# Shared Helpers
# -------------------------


class TestSharedHelpers:
    def test_rows_to_markdown(self):
        assert rows_to_markdown([["Item", "Price"], ["Widget", "$5"]]) == (
            "| Item | Price |\n|---|---|\n| Widget | $5 |"
        )

    def test_vendor_confidence(self):
        assert vendor_confidence(None) == 1.0
        assert vendor_confidence(None, default=0.0, scale=100) == 0.0
        assert vendor_confidence(87, scale=100) == pytest.approx(0.87)
        assert vendor_confidence(0) == 0

    def test_points_to_rect_needs_four_points(self):
        assert points_to_rect([(0, 0), (1, 0), (1, 1)]) is None

    def test_points_to_rect_scales(self):
        rect = points_to_rect([(100, 200), (300, 200), (300, 400), (100, 400)], 1000, 1000)
        assert (rect.x, rect.y) == pytest.approx((0.1, 0.2))
        assert (rect.width, rect.height) == pytest.approx((0.2, 0.2))

    def test_registry(self):
        assert set(ADAPTERS) == {
            "textract", "docai", "azure", "tesseract", "tesseract_js", "unstructured", "docling",
        }
        assert get_adapter("Textract") is from_textract
        with pytest.raises(UnsupportedVendorError) as exc_info:
            get_adapter("abbyy")
        assert exc_info.value.details["vendor"] == "abbyy"


# -------------------------
# Textract
# -------------------------


class TestTextract:
    @pytest.fixture
    def response(self):
        def geometry(left, top, width, height):
            return {"BoundingBox": {"Left": left, "Top": top, "Width": width, "Height": height}}

        return {
            "DocumentMetadata": {"Pages": 2},
            "Blocks": [
                {"BlockType": "PAGE", "Id": "page-1", "Page": 1, "Geometry": geometry(0, 0, 1, 1)},
                {"BlockType": "LINE", "Id": "l1", "Page": 1, "Text": "Total Revenue",
                 "Confidence": 99.5, "Geometry": geometry(0.1, 0.2, 0.3, 0.05)},
                {"BlockType": "WORD", "Id": "w1", "Page": 2, "Text": "$12,500,000",
                 "Confidence": 98.0, "Geometry": geometry(0.5, 0.2, 0.2, 0.05)},
                {"BlockType": "TABLE", "Id": "tb1", "Page": 2, "Confidence": 90.0,
                 "Geometry": geometry(0.05, 0.4, 0.9, 0.3)},
                {"BlockType": "LINE", "Id": "no-geometry", "Text": "lost"},
                {"BlockType": "LINE", "Id": "l2", "Text": "No confidence",
                 "Geometry": geometry(0.1, 0.9, 0.3, 0.05)},
            ],
        }

    def test_blocks_and_tables(self, response):
        result = from_textract(response)
        assert result.page_count == 2
        assert [b.id for b in result.blocks] == ["l1", "w1", "l2"]
        assert [b.type for b in result.blocks] == ["line", "word", "line"]
        assert [t.id for t in result.tables] == ["tb1"]
        assert result.tables[0].markdown == ""
        for block in result.blocks + result.tables:
            assert_normalized(block.bbox)

    def test_confidence_rescaled(self, response):
        result = from_textract(response)
        assert result.blocks[0].confidence == pytest.approx(0.995)
        assert result.blocks[2].confidence == pytest.approx(1.0)
        assert result.tables[0].confidence == pytest.approx(0.9)

    def test_text_and_page(self, response):
        blocks = from_textract(response).blocks
        assert [b.text for b in blocks] == ["Total Revenue", "$12,500,000", "No confidence"]
        assert [b.page for b in blocks] == [1, 2, 1]

    def test_empty_response(self):
        result = from_textract({})
        assert result.blocks == [] and result.tables == []
        assert result.page_count == 1


# -------------------------
# Document AI
# -------------------------


class TestDocAI:
    @pytest.fixture
    def document(self):
        def layout(start, end, vertices, confidence=None):
            data = {
                "textAnchor": {"textSegments": [{"startIndex": start, "endIndex": end}]},
                "boundingPoly": {"normalizedVertices": vertices},
            }
            if confidence is not None:
                data["confidence"] = confidence
            return data

        box = [{"x": 0.1, "y": 0.1}, {"x": 0.5, "y": 0.1}, {"x": 0.5, "y": 0.15}, {"x": 0.1, "y": 0.15}]
        return {
            "text": "Invoice #12345\nTotal: $50\n",
            "pages": [{
                "pageNumber": 1,
                "lines": [
                    {"layout": layout(None, "14", box, 0.95)},
                    {"layout": layout("15", "26", box)},
                    {"layout": layout("0", "7", box[:3])},
                ],
                "tables": [{"layout": {"boundingPoly": {"normalizedVertices": box}, "confidence": 0.8}}],
            }],
        }

    def test_lines_and_tables(self, document):
        result = from_docai(document)
        assert result.page_count == 1
        assert [b.id for b in result.blocks] == ["docai-line-0", "docai-line-1"]
        assert [t.id for t in result.tables] == ["docai-table-2"]
        assert result.tables[0].confidence == 0.8

    def test_text_from_anchor_segments(self, document):
        texts = [b.text for b in from_docai(document).blocks]
        assert texts == ["Invoice #12345", "Total: $50"]

    def test_confidence_defaults_to_one(self, document):
        blocks = from_docai(document).blocks
        assert blocks[0].confidence == 0.95
        assert blocks[1].confidence == 1

    def test_null_confidence_defaults_to_one(self, document):
        document["pages"][0]["lines"][0]["layout"]["confidence"] = None
        document["pages"][0]["tables"][0]["layout"]["confidence"] = None
        result = from_docai(document)
        assert result.blocks[0].confidence == 1
        assert result.tables[0].confidence == 1

    def test_bbox(self, document):
        bbox = from_docai(document).blocks[0].bbox
        assert (bbox.x, bbox.y) == pytest.approx((0.1, 0.1))
        assert (bbox.width, bbox.height) == pytest.approx((0.4, 0.05))


# -------------------------
# Azure
# -------------------------


class TestAzure:
    @pytest.fixture
    def result(self):
        return {
            "modelId": "prebuilt-layout",
            "pages": [{
                "pageNumber": 1,
                "width": 8.5,
                "height": 11,
                "lines": [
                    {"content": "Quarterly Report", "polygon": square(0.85, 1.1, 4.25, 2.2)},
                    {"content": "No polygon"},
                ],
                "words": [
                    {"content": "Quarterly", "polygon": square(0.85, 1.1, 2.5, 2.2), "confidence": 0.97},
                ],
            }],
            "tables": [{
                "boundingRegions": [{"pageNumber": 1, "polygon": square(0.85, 3.3, 7.65, 5.5)}],
                "cells": [
                    {"rowIndex": 0, "columnIndex": 0, "content": "Item"},
                    {"rowIndex": 0, "columnIndex": 1, "content": "Price"},
                    {"rowIndex": 1, "columnIndex": 0, "content": "Widget"},
                    {"rowIndex": 1, "columnIndex": 1, "content": "$5"},
                ],
            }],
        }

    def test_pixel_polygons_normalized(self, result):
        converted = from_azure(result)
        assert converted.page_count == 1
        line = converted.blocks[0]
        assert (line.bbox.x, line.bbox.y) == pytest.approx((0.1, 0.1))
        assert (line.bbox.width, line.bbox.height) == pytest.approx((0.4, 0.1))
        for block in converted.blocks + converted.tables:
            assert_normalized(block.bbox)

    def test_ids_and_confidence(self, result):
        converted = from_azure(result)
        assert [b.id for b in converted.blocks] == ["azure-line-0", "azure-word-1"]
        assert [b.confidence for b in converted.blocks] == [1, 0.97]
        assert converted.tables[0].id == "azure-table-2"

    def test_null_word_confidence_defaults_to_one(self, result):
        result["pages"][0]["words"][0]["confidence"] = None
        assert from_azure(result).blocks[1].confidence == 1

    def test_table_markdown_from_cells(self, result):
        table = from_azure(result).tables[0]
        assert table.markdown == "| Item | Price |\n|---|---|\n| Widget | $5 |"

    def test_table_without_region_skipped(self, result):
        result["tables"][0]["boundingRegions"] = []
        assert from_azure(result).tables == []


# -------------------------
# Tesseract
# -------------------------


class TestPytesseract:
    @pytest.fixture
    def data(self):
        return {
            "level": [1, 2, 5, 5, 5],
            "page_num": [1, 1, 1, 1, 1],
            "block_num": [0, 1, 1, 1, 1],
            "par_num": [0, 0, 1, 1, 1],
            "line_num": [0, 0, 1, 1, 1],
            "word_num": [0, 0, 1, 2, 3],
            "left": [0, 100, 100, 300, 500],
            "top": [0, 140, 140, 140, 140],
            "width": [1000, 600, 150, 200, 50],
            "height": [1400, 70, 70, 70, 70],
            "conf": ["-1", "-1", 96, "91.5", 95],
            "text": ["", "", "Hello", "World", "  "],
        }

    def test_filters_structural_and_empty_rows(self, data):
        result = from_pytesseract(data, ImageDimensions(1000, 1400))
        assert [b.text for b in result.blocks] == ["Hello", "World"]
        assert [b.id for b in result.blocks] == ["tess-1-1-1-1", "tess-1-1-1-2"]
        assert all(b.type == "word" for b in result.blocks)

    def test_pixel_boxes_normalized(self, data):
        block = from_pytesseract(data, ImageDimensions(1000, 1400)).blocks[0]
        assert (block.bbox.x, block.bbox.y) == pytest.approx((0.1, 0.1))
        assert (block.bbox.width, block.bbox.height) == pytest.approx((0.15, 0.05))
        assert block.confidence == pytest.approx(0.96)

    def test_dimension_forms(self, data):
        image = Image.new("RGB", (1000, 1400))
        expected = from_pytesseract(data, ImageDimensions(1000, 1400)).to_dict()
        assert from_pytesseract(data, image).to_dict() == expected
        assert from_pytesseract(data, (1000, 1400)).to_dict() == expected

    def test_page_count(self, data):
        data["page_num"] = [1, 1, 1, 2, 2]
        assert from_pytesseract(data, (1000, 1400)).page_count == 2


class TestTesseractJs:
    def test_lines_and_words(self):
        result = from_tesseract_js({"data": {"lines": [{
            "text": "Hello World",
            "confidence": 90,
            "bbox": {"x0": 100, "y0": 140, "x1": 600, "y1": 210},
            "words": [
                {"text": "Hello", "confidence": 95, "bbox": {"x0": 100, "y0": 140, "x1": 300, "y1": 210}},
            ],
        }]}}, ImageDimensions(1000, 1400), page_number=3)

        assert [b.id for b in result.blocks] == ["tessjs-line-0", "tessjs-line-0-word-0"]
        assert [b.page for b in result.blocks] == [3, 3]
        line = result.blocks[0]
        assert line.confidence == pytest.approx(0.9)
        assert (line.bbox.width, line.bbox.height) == pytest.approx((0.5, 0.05))

    def test_null_confidence_is_zero(self):
        result = from_tesseract_js({"data": {"lines": [{
            "text": "Hello",
            "confidence": None,
            "bbox": {"x0": 0, "y0": 0, "x1": 100, "y1": 100},
            "words": [{"text": "Hello", "bbox": {"x0": 0, "y0": 0, "x1": 100, "y1": 100}}],
        }]}}, (1000, 1000))
        assert [b.confidence for b in result.blocks] == [0.0, 0.0]


# -------------------------
# Unstructured
# -------------------------


class TestUnstructured:
    @pytest.fixture
    def elements(self):
        coords = {
            "points": [[100, 100], [100, 150], [500, 150], [500, 100]],
            "layout_width": 1000,
            "layout_height": 1000,
        }
        return [
            {"type": "Title", "element_id": "u1", "text": "Annual Report",
             "metadata": {"page_number": 1, "coordinates": coords, "detection_class_prob": 0.93}},
            {"type": "Table", "element_id": "u2", "text": "Metric Value Revenue $1M",
             "metadata": {
                 "page_number": 1,
                 "coordinates": coords,
                 "text_as_html": "<table><tr><th>Metric</th><th>Value</th></tr>"
                                 "<tr><td>Revenue</td><td><b>$1M</b></td></tr></table>",
             }},
            {"type": "Image", "element_id": "u3", "text": "",
             "metadata": {"page_number": 2, "coordinates": coords}},
            {"type": "Footer", "element_id": "u4", "text": "Page 3", "metadata": {"page_number": 3}},
        ]

    def test_blocks_and_tables(self, elements):
        result = from_unstructured(elements)
        assert [(b.id, b.type) for b in result.blocks] == [("u1", "paragraph"), ("u3", "figure")]
        assert [t.id for t in result.tables] == ["u2"]
        assert result.blocks[0].confidence == 0.93
        assert result.blocks[1].confidence == 1

    def test_page_count_includes_elements_without_coordinates(self, elements):
        assert from_unstructured(elements).page_count == 3

    def test_html_table_to_markdown(self, elements):
        table = from_unstructured(elements).tables[0]
        assert table.markdown == "| Metric | Value |\n|---|---|\n| Revenue | $1M |"

    def test_table_without_html_keeps_text(self, elements):
        del elements[1]["metadata"]["text_as_html"]
        assert from_unstructured(elements).tables[0].markdown == "Metric Value Revenue $1M"

    def test_bbox(self, elements):
        bbox = from_unstructured(elements).blocks[0].bbox
        assert (bbox.x, bbox.y, bbox.width, bbox.height) == pytest.approx((0.1, 0.1, 0.4, 0.05))

    def test_rows_without_cells_dropped(self):
        assert html_table_to_markdown("<table><tr></tr><tr><td>A</td></tr></table>") == "| A |\n|---|"


# -------------------------
# Docling
# -------------------------


class TestDocling:
    @pytest.fixture
    def document(self):
        return {
            "schema_name": "DoclingDocument",
            "pages": [{"page_no": 1, "width": 612, "height": 792}],
            "texts": [
                {"self_ref": "#/texts/0", "label": "section_header", "text": "Executive Summary",
                 "prov": [{"page_no": 1, "bbox": {"l": 72, "t": 720, "r": 300, "b": 700,
                                                  "coord_origin": "BOTTOMLEFT"}}]},
                {"self_ref": "#/texts/1", "label": "footnote", "text": "1. Source: filings",
                 "prov": [{"page_no": 1, "bbox": {"l": 72, "t": 80, "r": 200, "b": 70}}]},
            ],
            "tables": [{
                "self_ref": "#/tables/0",
                "label": "table",
                "data": {"table_cells": [
                    [{"text": "Metric"}, {"text": "Value"}],
                    [{"text": "Revenue"}, {"text": "$1M"}],
                ]},
                "prov": [{"page_no": 1, "bbox": {"l": 72, "t": 600, "r": 540, "b": 400}}],
            }],
            "figures": [{
                "self_ref": "#/figures/0",
                "label": "picture",
                "caption": "Revenue Growth Chart",
                "prov": [{"page_no": 1, "bbox": {"l": 72, "t": 380, "r": 540, "b": 200}}],
            }],
        }

    def test_blocks_tables_figures(self, document):
        result = from_docling(document)
        assert result.page_count == 1
        assert [(b.text, b.type) for b in result.blocks] == [
            ("Executive Summary", "paragraph"),
            ("1. Source: filings", "other"),
            ("Revenue Growth Chart", "figure"),
        ]
        assert result.tables[0].markdown == "| Metric | Value |\n|---|---|\n| Revenue | $1M |"
        for block in result.blocks + result.tables:
            assert_normalized(block.bbox)
            assert block.confidence == 1

    def test_bottom_left_origin_flipped(self, document):
        header = from_docling(document).blocks[0]
        assert header.bbox.y < 0.15
        assert header.bbox.y == pytest.approx(1 - 720 / 792)
        assert header.bbox.height == pytest.approx(20 / 792)

    def test_top_left_origin(self):
        rect = docling_bbox_to_rect(
            {"l": 61.2, "t": 79.2, "r": 306, "b": 158.4, "coord_origin": "TOPLEFT"}, 612, 792,
        )
        assert (rect.x, rect.y, rect.width, rect.height) == pytest.approx((0.1, 0.1, 0.4, 0.1))
