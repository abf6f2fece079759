"""
Query Engine Module.

Binds the selector language to one document.

Usage:
    $$ = create_query_engine(doc)
    $$('.currency').sum()
    $$('.table, .figure').count_by_page()
    $$(lambda e: e.meta.confidence < 0.7).attr('verificationStatus', 'flagged')
"""

from typing import Iterable

from pdfquery.query.result import QueryResult, Selector
from pdfquery.query.selector import parse_selector
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import VirtualDoc

# Initialize module logger
logger = get_logger(__name__)


class QueryEngine:
    """
    Callable selector engine over a document.

    The entity list is captured once at construction. Entities added to
    the document later are not seen; field edits are, since entities are
    shared references.
    """

    def __init__(self, doc: VirtualDoc):
        self.doc = doc
        self._entities = list(doc.iter_entities())
        logger.debug(f"QueryEngine bound to {doc.id} ({len(self._entities)} entities)")

    def __call__(self, selector: Selector = None) -> QueryResult:
        """
        Select entities.

        Args:
            selector: None, "" or "*" for everything; a predicate; or a
                selector string such as ".table[confidence>0.9]:first".
        """
        if selector is None or selector == '' or selector == '*':
            return QueryResult(self._entities, self.doc)

        if callable(selector):
            return QueryResult([e for e in self._entities if selector(e)], self.doc)

        matched = parse_selector(selector).select(self._entities)
        logger.debug(f"Selector {selector!r} matched {len(matched)} entities")
        return QueryResult(matched, self.doc)


def create_query_engine(doc: VirtualDoc) -> QueryEngine:
    """Create a QueryEngine bound to `doc`."""
    return QueryEngine(doc)


def query_page(doc: VirtualDoc, page_number: int) -> QueryResult:
    """All entities of one page (empty when the page does not exist)."""
    page = doc.get_page(page_number)
    return QueryResult(page.entities if page else [], doc)


def query_pages(doc: VirtualDoc, page_numbers: Iterable[int]) -> QueryResult:
    """Entities of several pages, in document page order."""
    wanted = set(page_numbers)
    return QueryResult(
        [entity for page in doc.pages if page.page_number in wanted for entity in page.entities],
        doc,
    )
