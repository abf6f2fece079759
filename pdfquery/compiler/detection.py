"""
Entity Type Detection.

Classifies a text span (optionally with its field label) into a semantic
entity type. The order of checks is fixed: label hints, then currency,
percentage, date, number, short label, plain text.

Example:
    >>> detect_entity_type("$1,234.56")
    'currency'
    >>> detect_entity_type("45%")
    'percentage'
    >>> detect_entity_type("Total", "Total Revenue")
    'total'
"""

import re
from typing import Optional

from pdfquery.utils.helpers import parse_float

CURRENCY_PATTERN = re.compile(r'^[$£€¥]?\s*-?[0-9,]+\.?[0-9]*\s*(?:万|亿|千)?$')
PERCENTAGE_PATTERN = re.compile(r'^-?[0-9]+\.?[0-9]*\s*%$')
DATE_PATTERN = re.compile(
    r'^[0-9]{4}[-/][0-9]{1,2}[-/][0-9]{1,2}$|^[0-9]{1,2}[-/][0-9]{1,2}[-/][0-9]{2,4}$'
)
NUMBER_PATTERN = re.compile(r'^-?[0-9,]+\.?[0-9]*$')

# Label substrings checked in this order
LABEL_HINTS = (
    ('total', 'total'),
    ('subtotal', 'subtotal'),
    ('date', 'date'),
)

# Texts shorter than this on a single line are labels
SHORT_TEXT_LIMIT = 50

_NON_NUMERIC = re.compile(r'[^0-9.\-]')


def detect_entity_type(text: str, label: Optional[str] = None) -> str:
    """
    Detect the entity type of a text span.

    Args:
        text: Cell or field text.
        label: Optional field label; a matching hint overrides patterns.

    Returns:
        One of total, subtotal, date, currency, percentage, number, label, text.
    """
    trimmed = text.strip()

    if label:
        lower_label = label.lower()
        for hint, entity_type in LABEL_HINTS:
            if hint in lower_label:
                return entity_type

    if CURRENCY_PATTERN.match(trimmed):
        return 'currency'
    if PERCENTAGE_PATTERN.match(trimmed):
        return 'percentage'
    if DATE_PATTERN.match(trimmed):
        return 'date'
    if NUMBER_PATTERN.match(trimmed):
        return 'number'

    if len(trimmed) < SHORT_TEXT_LIMIT and '\n' not in trimmed:
        return 'label'

    return 'text'


def parse_value(text: str, entity_type: str) -> Optional[float]:
    """
    Parse the numeric value of a classified cell.

    Currency and number cells drop every character other than digits, dot
    and minus before parsing; percentages are additionally divided by 100.
    Anything unparseable gives None.

    Example:
        >>> parse_value("$1,234.56", "currency")
        1234.56
        >>> parse_value("12.5%", "percentage")
        0.125
    """
    if entity_type not in ('currency', 'number', 'percentage'):
        return None

    number = parse_float(_NON_NUMERIC.sub('', text))
    if number is None:
        return None
    if entity_type == 'percentage':
        return number / 100
    return number
