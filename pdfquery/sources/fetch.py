"""
Fetch Helpers.

Async httpx calls against the extraction API. A non-2xx response raises
FetchError with the HTTP status; there is no retry. fetch_pages issues
every page request concurrently and fails as a whole if one page fails,
cancelling the requests still in flight.

Usage:
    entities = asyncio.run(fetch_entities("job_123"))
    pages = asyncio.run(fetch_pages("job_123", [1, 2, 3]))
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from config import get_config
from pdfquery.sources.api import from_entities_api, from_page_api_blocks, from_page_api_markdown
from pdfquery.sources.loaders import PageSources
from pdfquery.utils.exceptions import FetchError
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.sources import SourceExtractedEntity, SourceMarkdown, SourceOcr

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://publicusercontent.okrapdf.com"


@dataclass
class MultiPageSources:
    """Concatenated OCR blocks and per-page markdown of several pages."""
    ocr: List[SourceOcr] = field(default_factory=list)
    markdown: List[SourceMarkdown] = field(default_factory=list)


def _base_url(base_url: Optional[str]) -> str:
    return (base_url or get_config("sources.base_url", DEFAULT_BASE_URL)).rstrip('/')


async def _get_json(url: str, headers: Optional[Dict[str, str]],
                    client: Optional[httpx.AsyncClient]) -> Any:
    request_headers = {"accept": "application/json", **(headers or {})}

    try:
        if client is None:
            timeout = get_config("sources.timeout", 30.0)
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                res = await own_client.get(url, headers=request_headers)
        else:
            res = await client.get(url, headers=request_headers)
    except httpx.RequestError as e:
        logger.error(f"Request failed: {url} ({e})")
        raise FetchError(url, None, str(e)) from e

    if not res.is_success:
        logger.error(f"Bad status {res.status_code} from {url}")
        raise FetchError(url, res.status_code)

    return res.json()


async def fetch_entities(job_id: str, base_url: Optional[str] = None,
                         headers: Optional[Dict[str, str]] = None,
                         client: Optional[httpx.AsyncClient] = None) -> List[SourceExtractedEntity]:
    """
    Fetch every extracted entity of a job.

    Raises:
        FetchError: On a transport error or non-2xx status.
    """
    url = f"{_base_url(base_url)}/api/ocr/jobs/{job_id}/entities?type=all"
    data = await _get_json(url, headers, client)
    entities = from_entities_api(data)
    logger.info(f"Fetched {len(entities)} entities for job {job_id}")
    return entities


async def fetch_page(job_id: str, page_number: int, base_url: Optional[str] = None,
                     headers: Optional[Dict[str, str]] = None,
                     client: Optional[httpx.AsyncClient] = None) -> PageSources:
    """Fetch one page's OCR blocks and markdown."""
    url = f"{_base_url(base_url)}/api/ocr/jobs/{job_id}/pages/{page_number}"
    data = await _get_json(url, headers, client)
    data.setdefault('page', page_number)
    return PageSources(
        page=data['page'],
        ocr=from_page_api_blocks(data),
        markdown=from_page_api_markdown(data),
    )


async def fetch_pages(job_id: str, page_numbers: List[int], base_url: Optional[str] = None,
                      headers: Optional[Dict[str, str]] = None,
                      client: Optional[httpx.AsyncClient] = None) -> MultiPageSources:
    """
    Fetch several pages concurrently.

    Results keep the order of `page_numbers`. The first failing page
    raises and the whole batch fails; requests still in flight are
    cancelled and awaited before the error propagates.
    """
    if client is None:
        timeout = get_config("sources.timeout", 30.0)
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            return await fetch_pages(job_id, page_numbers, base_url, headers, own_client)

    tasks = [
        asyncio.ensure_future(fetch_page(job_id, number, base_url, headers, client))
        for number in page_numbers
    ]
    try:
        pages = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    combined = MultiPageSources()
    for page in pages:
        combined.ocr.extend(page.ocr)
        combined.markdown.append(page.markdown)
    logger.info(f"Fetched {len(pages)} pages for job {job_id}")
    return combined
