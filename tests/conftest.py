import asyncio
import json
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import pytest

from mangarunners.core.exceptions import NetworkError
from mangarunners.runners.atsumaru.api import AtsumaruAPI
from mangarunners.runners.atsumaru.config import AtsumaruConfig
from mangarunners.runners.atsumaru.search import QueryCache, SearchResolver


def make_hit(
    doc_id: str,
    title: str,
    english_title: Optional[str] = None,
    poster: Optional[str] = "/posters/cover.jpg",
    score: int = 100,
    snippet: Optional[str] = None,
) -> Dict[str, Any]:
    document: Dict[str, Any] = {"id": doc_id, "title": title}
    if english_title is not None:
        document["englishTitle"] = english_title
    if poster is not None:
        document["poster"] = poster
    hit: Dict[str, Any] = {"document": document, "text_match": score}
    if snippet is not None:
        hit["highlight"] = {"title": {"snippet": snippet, "matched_tokens": []}}
    return hit


def search_body(hits: List[Dict[str, Any]], found: Optional[int] = None) -> str:
    return json.dumps({
        "found": len(hits) if found is None else found,
        "hits": hits,
        "page": 1,
        "out_of": 1000,
    })


EMPTY = search_body([])


class Delayed:
    """Response served after a delay (value may be an exception)."""

    def __init__(self, seconds: float, value: Any):
        self.seconds = seconds
        self.value = value


class FakeSearchFetcher:
    """
    Serves search responses keyed by (strategy, page).

    A list value is consumed one item per call; its last item repeats.
    """

    def __init__(self, responses: Dict[tuple, Any]):
        self.responses = {key: list(v) if isinstance(v, list) else v for key, v in responses.items()}
        self.calls: List[tuple] = []

    async def __call__(self, url: str) -> str:
        params = parse_qs(urlparse(url).query)
        strategy = "fallback" if params.get("infix") == ["always"] else "primary"
        page = int(params["page"][0])
        self.calls.append((strategy, page, url))

        value = self.responses.get((strategy, page), EMPTY)
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]

        if isinstance(value, Delayed):
            await asyncio.sleep(value.seconds)
            value = value.value
        if isinstance(value, BaseException):
            raise value
        return value

    def pages_called(self) -> List[int]:
        return [page for _, page, _ in self.calls]


class RouteFetcher:
    """Serves responses for the first route whose key is a substring of the URL."""

    def __init__(self, routes: Dict[str, Any]):
        self.routes = routes
        self.calls: List[str] = []

    async def __call__(self, url: str) -> str:
        self.calls.append(url)
        for key, value in self.routes.items():
            if key in url:
                if isinstance(value, BaseException):
                    raise value
                if isinstance(value, str):
                    return value
                return json.dumps(value)
        raise NetworkError(f"HTTP 404 error for {url}", url=url, status_code=404)


@pytest.fixture
def config() -> AtsumaruConfig:
    return AtsumaruConfig()


@pytest.fixture
def make_resolver(config):
    def factory(fetcher, cache: Optional[QueryCache] = None, **overrides) -> SearchResolver:
        cfg = config.model_copy(update=overrides) if overrides else config
        return SearchResolver(AtsumaruAPI(fetcher, cfg), cfg, cache=cache)
    return factory
