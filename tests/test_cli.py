"""
Tests for the command-line entry point.
"""

import json
import logging

import pytest
from PIL import Image

from main import detect_source, main, run_query
from pdfquery.utils.exceptions import InvalidSourceError
from pdfquery.utils.logger import LOGGER_NAMESPACE


@pytest.fixture(autouse=True)
def detach_log_handlers():
    """main() binds console handlers to the captured stderr; drop them afterwards."""
    yield
    logging.getLogger(LOGGER_NAMESPACE).handlers.clear()


def write_json(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def run_json(capsys, argv):
    assert main(argv + ["--format", "json"]) == 0
    return json.loads(capsys.readouterr().out)


@pytest.fixture
def entities_file(tmp_path):
    return write_json(tmp_path / "entities.json", {"entities": [
        {"id": "tbl-1", "type": "table", "title": "Balance sheet", "page": 1, "confidence": 0.9},
        {"id": "fig-1", "type": "figure", "title": "Chart", "page": 2, "confidence": 0.6},
    ]})


@pytest.fixture
def textract_file(tmp_path):
    def geometry(left, top, width, height):
        return {"BoundingBox": {"Left": left, "Top": top, "Width": width, "Height": height}}

    return write_json(tmp_path / "textract.json", {"Blocks": [
        {"BlockType": "LINE", "Id": "l1", "Page": 1, "Text": "Total Revenue",
         "Confidence": 99.0, "Geometry": geometry(0.1, 0.2, 0.3, 0.05)},
        {"BlockType": "LINE", "Id": "l2", "Page": 2, "Text": "$12,500",
         "Confidence": 80.0, "Geometry": geometry(0.5, 0.2, 0.2, 0.05)},
    ]})


class TestDetectSource:
    @pytest.mark.parametrize("payload, expected", [
        ({"id": "d", "version": 1, "pages": [], "meta": {}}, "doc"),
        ({"id": "root", "type": "document", "children": []}, "tree"),
        ({"entities": []}, "entities"),
        ({"page": 1, "blocks": []}, "page"),
        ({"Blocks": []}, "textract"),
        ({"schema_name": "DoclingDocument"}, "docling"),
        ({"level": [], "text": []}, "tesseract"),
        ({"data": {"lines": []}}, "tesseract_js"),
        ({"text": "abc", "pages": []}, "docai"),
        ({"pages": [], "paragraphs": []}, "azure"),
        ([{"type": "Title", "text": "x"}], "unstructured"),
    ])
    def test_shapes(self, payload, expected):
        assert detect_source(payload) == expected

    @pytest.mark.parametrize("payload", [{"foo": 1}, "text", 3])
    def test_unknown_shape(self, payload):
        with pytest.raises(InvalidSourceError):
            detect_source(payload)


class TestMain:
    def test_entities_query(self, capsys, entities_file):
        data = run_json(capsys, ["--input", entities_file, "--selector", ".figure"])
        assert [item["id"] for item in data["items"]] == ["fig-1"]
        assert data["items"][0]["page"] == 2

    def test_query_options(self, capsys, entities_file):
        data = run_json(capsys, ["--input", entities_file, "--min-confidence", "0.8"])
        assert [item["id"] for item in data["items"]] == ["tbl-1"]

        data = run_json(capsys, ["--input", entities_file, "--pages", "2", "2"])
        assert [item["id"] for item in data["items"]] == ["fig-1"]

        data = run_json(capsys, ["--input", entities_file, "--sort-by", "confidence", "-k", "1"])
        assert data["total"] == 2
        assert data["returned"] == 1

    def test_textract_detected(self, capsys, textract_file):
        data = run_json(capsys, ["--input", textract_file, "--selector", ".ocr:page(2)"])
        assert [item["text"] for item in data["items"]] == ["$12,500"]
        assert data["items"][0]["confidence"] == pytest.approx(0.8)

    def test_tree_input(self, capsys, tmp_path):
        path = write_json(tmp_path / "tree.json", {"id": "root", "type": "document", "children": [
            {"id": "p1", "type": "page", "page": 1, "children": [
                {"id": "h", "type": "heading", "page": 1, "textContent": "Intro",
                 "bbox": {"x": 0, "y": 0, "width": 1, "height": 0.1}},
            ]},
        ]})
        data = run_json(capsys, ["--input", path, "--selector", ".header"])
        assert [item["id"] for item in data["items"]] == ["h"]

    def test_saved_doc_input(self, capsys, tmp_path, doc):
        path = write_json(tmp_path / "doc.json", doc.to_dict())
        data = run_json(capsys, ["--input", path, "--selector", ".percentage"])
        assert [item["id"] for item in data["items"]] == ["t1_r2_c1"]
        assert data["documentId"] == "doc_test"

    def test_tesseract_with_image(self, capsys, tmp_path):
        image = tmp_path / "page.png"
        Image.new("RGB", (1000, 1400)).save(image)
        path = write_json(tmp_path / "tess.json", {
            "level": [5], "page_num": [1], "block_num": [1], "par_num": [1], "line_num": [1],
            "word_num": [1], "left": [100], "top": [140], "width": [150], "height": [70],
            "conf": [96], "text": ["Hello"],
        })
        data = run_json(capsys, ["--input", path, "--source", "tesseract", "--image", str(image)])
        bbox = data["items"][0]["bbox"]
        assert (bbox["xmin"], bbox["ymin"]) == pytest.approx((0.1, 0.1))

    def test_text_output_to_stdout(self, capsys, entities_file):
        assert main(["--input", entities_file, "--selector", "#tbl-1"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("Query: #tbl-1")
        assert "Balance sheet" in out

    def test_output_file(self, capsys, tmp_path, entities_file):
        target = tmp_path / "result.csv"
        assert main(["--input", entities_file, "--format", "csv", "--output", str(target)]) == 0
        assert capsys.readouterr().out == ""
        lines = target.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("id,page,type")
        assert len(lines) == 3

    def test_xlsx_output_file(self, tmp_path, entities_file):
        target = tmp_path / "result.xlsx"
        assert main(["--input", entities_file, "--format", "xlsx", "--output", str(target)]) == 0
        assert target.exists()


class TestMainErrors:
    def test_missing_input(self, capsys, tmp_path):
        assert main(["--input", str(tmp_path / "absent.json")]) == 1
        assert "Input file not found" in capsys.readouterr().err

    def test_xlsx_needs_output(self, capsys, entities_file):
        assert main(["--input", entities_file, "--format", "xlsx"]) == 1
        assert "xlsx output needs --output" in capsys.readouterr().err

    def test_pixel_source_needs_dimensions(self, capsys, entities_file):
        assert main(["--input", entities_file, "--source", "tesseract"]) == 1
        assert "needs --image" in capsys.readouterr().err

    def test_half_dimensions(self, capsys, entities_file):
        assert main(["--input", entities_file, "--image-width", "100"]) == 1

    def test_undetectable_input(self, capsys, tmp_path):
        path = write_json(tmp_path / "odd.json", {"foo": 1})
        assert main(["--input", path]) == 1
        assert "could not detect" in capsys.readouterr().err

    def test_malformed_config(self, capsys, tmp_path, entities_file):
        config = tmp_path / "bad.yaml"
        config.write_text("query: [unclosed\n", encoding="utf-8")
        assert main(["--input", entities_file, "--config", str(config)]) == 1
        assert "Invalid configuration" in capsys.readouterr().err

    def test_custom_config(self, capsys, tmp_path, entities_file):
        config = tmp_path / "custom.yaml"
        config.write_text("output:\n  default_format: csv\n", encoding="utf-8")
        assert main(["--input", entities_file, "--config", str(config)]) == 0
        assert capsys.readouterr().out.startswith("id,page,type")

    def test_invalid_query_option(self, capsys, entities_file):
        assert main(["--input", entities_file, "--pages", "3", "1"]) == 1
        assert "page_range" in capsys.readouterr().err

    @pytest.fixture
    def failing_query(self, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("boom")
        monkeypatch.setattr("main.run_query", explode)

    def test_unexpected_error_traceback_with_debug(self, capsys, entities_file, failing_query):
        assert main(["--input", entities_file, "--debug"]) == 1
        err = capsys.readouterr().err
        assert "Unexpected error: boom" in err
        assert "Traceback" in err

    def test_debug_flag_read_from_argv_not_process_args(self, capsys, monkeypatch, entities_file, failing_query):
        monkeypatch.setattr("sys.argv", ["main.py", "--debug"])
        assert main(["--input", entities_file]) == 1
        err = capsys.readouterr().err
        assert "Unexpected error: boom" in err
        assert "Traceback" not in err


class TestRunQuery:
    def test_programmatic_entry(self, entities_file):
        response = run_query(entities_file, ".table", top_k=5)
        assert [item.id for item in response.items] == ["tbl-1"]
