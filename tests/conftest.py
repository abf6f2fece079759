"""
Shared pytest fixtures for the pdfquery test suite.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import CONFIG_ENV_VAR, ConfigurationManager
from pdfquery.compiler import DocCompiler


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Every test starts from the bundled settings.yaml."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


@pytest.fixture
def revenue_table():
    """Verified 3x2 table on page 1: header row, one currency and one percentage cell."""
    return {
        "id": "t1",
        "page_number": 1,
        "markdown": "| Item | Amount |\n|---|---|\n| Revenue | $1,234.56 |\n| Growth | 12.5% |",
        "bbox": {"xmin": 0.1, "ymin": 0.2, "xmax": 0.9, "ymax": 0.5},
        "confidence": 0.95,
        "verification_status": "verified",
    }


@pytest.fixture
def quarter_table():
    """Pending 2x2 table on page 2."""
    return {
        "id": "t2",
        "page_number": 2,
        "markdown": "| Q | Value |\n|---|---|\n| Q1 | 100 |",
        "bbox": {"xmin": 0.0, "ymin": 0.4, "xmax": 1.0, "ymax": 0.6},
        "confidence": 0.7,
        "verification_status": "pending",
    }


@pytest.fixture
def field_entities():
    return [
        {
            "id": "e1",
            "field_label": "Total Revenue",
            "page_number": 1,
            "suggested_value": "$5,000",
            "suggested_value_numeric": 5000.0,
            "bounding_box": {"x": 0.1, "y": 0.6, "width": 0.2, "height": 0.05},
            "confidence": 0.88,
            "verification_status": "pending",
        },
        {
            "id": "e2",
            "field_label": "Report Date",
            "page_number": 2,
            "suggested_value": "2024-01-15",
            "bounding_box": {"x": 0.5, "y": 0.1, "width": 0.3, "height": 0.05},
            "confidence": 0.6,
            "verification_status": "flagged",
            "flag_reason": "blurry",
        },
    ]


@pytest.fixture
def doc(revenue_table, quarter_table, field_entities):
    """
    Two-page document with 14 entities.

    Page 1: t1, its six cells, e1 (total).
    Page 2: e2 (date), t2, its four cells.
    """
    return (
        DocCompiler(document_id="doc_test", file_name="report.pdf")
        .add_tables([revenue_table, quarter_table])
        .add_entities(field_entities)
        .compile()
    )
