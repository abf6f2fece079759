"""
Entity-to-Markdown Transform.

Sends an entity's image to a vision-language model endpoint and caches the
markdown on the entity's data bag. Failures are logged and degrade to the
entity's own text; this module never raises on network problems.
"""

from typing import Optional

import httpx

from config import get_config
from pdfquery.utils.exceptions import TransformError
from pdfquery.utils.helpers import now_ms
from pdfquery.utils.logger import get_logger
from pdfquery.vdom.types import TransformationResult, VirtualEntity

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_MODEL = "qwen/qwen3-vl-235b-a22b-instruct"
DEFAULT_ENDPOINT = "/api/transform/entity-to-markdown"


def resolve_endpoint(api_endpoint: Optional[str] = None) -> str:
    """Endpoint URL: explicit value, else transform.base_url + transform.endpoint."""
    if api_endpoint:
        return api_endpoint
    base_url = (get_config("transform.base_url", "") or "").rstrip('/')
    return base_url + get_config("transform.endpoint", DEFAULT_ENDPOINT)


def cached_transformation(entity: VirtualEntity) -> Optional[TransformationResult]:
    """The cached transformation of an entity, if any."""
    cached = (entity.data or {}).get('transformation')
    if isinstance(cached, dict):
        cached = TransformationResult.from_dict(cached)
    return cached


async def _post(endpoint: str, payload: dict, client: Optional[httpx.AsyncClient]) -> httpx.Response:
    if client is not None:
        return await client.post(endpoint, json=payload)
    async with httpx.AsyncClient(timeout=get_config("transform.timeout", 60.0)) as own_client:
        return await own_client.post(endpoint, json=payload)


async def transform_entity(
    entity: VirtualEntity,
    image_url: Optional[str] = None,
    model: Optional[str] = None,
    prompt_style: Optional[str] = None,
    api_endpoint: Optional[str] = None,
    force: bool = False,
    client: Optional[httpx.AsyncClient] = None
) -> str:
    """
    Transform an entity image to markdown.

    Args:
        entity: Entity to transform.
        image_url: Image of the entity region; without it the entity text
            is returned.
        model: Vision model id (default from transform.model).
        prompt_style: "table", "page" or "json" (default from transform.prompt_style).
        api_endpoint: Full endpoint URL (default from config).
        force: Ignore a cached transformation.
        client: Optional httpx.AsyncClient to send the request with.

    Returns:
        Markdown from the model, the cached markdown, or the entity text
        when the call fails or is not possible.
    """
    model = model or get_config("transform.model", DEFAULT_MODEL)
    prompt_style = prompt_style or get_config("transform.prompt_style", "table")

    cached = cached_transformation(entity)
    if cached is not None and not force:
        logger.debug(f"Using cached transformation for {entity.id}")
        return cached.markdown

    fallback = entity.text or ''
    if not image_url:
        return fallback

    endpoint = resolve_endpoint(api_endpoint)
    payload = {
        'imageUrl': image_url,
        'model': model,
        'promptStyle': prompt_style,
        'entityType': entity.type,
    }

    try:
        response = await _post(endpoint, payload, client)
        if not response.is_success:
            raise TransformError(endpoint, f"HTTP {response.status_code}")

        data = response.json()
        if not isinstance(data, dict) or not data.get('success'):
            raise TransformError(endpoint, "response reported no success")

        result = TransformationResult(
            success=True,
            markdown=data['markdown'],
            model=data.get('model') or model,
            tokens=dict(data.get('tokens') or {'input': 0, 'output': 0}),
            timestamp=now_ms(),
            prompt_style=prompt_style,
        )
    except (TransformError, httpx.HTTPError, httpx.InvalidURL, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Transform failed for {entity.id}: {e}")
        return fallback

    if entity.data is None:
        entity.data = {}
    entity.data['transformation'] = result
    logger.info(f"Transformed {entity.id} with {result.model}")
    return result.markdown
