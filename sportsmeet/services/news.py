from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from sportsmeet.core.config import settings
from sportsmeet.core.errors import Unavailable

logger = logging.getLogger(__name__)


async def fetch_sports_headlines(*, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """Return the news provider's top sports headlines unchanged."""
    if not settings.news_api_key:
        raise Unavailable("News API key is missing in backend configuration")

    params = {"category": "sports", "country": settings.news_country, "apiKey": settings.news_api_key}

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=10.0)
    try:
        r = await client.get(settings.news_api_url, params=params)
        r.raise_for_status()
        return r.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Error fetching news: %s", exc)
        raise Unavailable("Failed to fetch news") from exc
    finally:
        if owns_client:
            await client.aclose()
