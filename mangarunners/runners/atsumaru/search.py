"""
Atsumaru Search Resolution

This module resolves a free-text query into one ranked, deduplicated page of
directory results. Every attempt issues two query strategies concurrently
(prefix and infix relaxation), prefers exact normalized-title matches over
server relevance, and walks a fallback ladder over empty pages and transient
upstream failures.

Nothing here raises on upstream trouble: transport errors, empty bodies and
malformed JSON all count as "no hits" for the attempt that saw them.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from mangarunners.core.models import Highlight, PagedResult
from mangarunners.runners.common import normalize_title

from .api import AtsumaruAPI, SearchStrategy
from .config import AtsumaruConfig
from .parser import AtsumaruParser, build_series_id
from .types import SearchHit, SearchResponse


logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    """Result of one fetch attempt."""

    HITS = "hits"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class FetchOutcome:
    """What a single fetch attempt produced."""

    status: OutcomeStatus
    response: Optional[SearchResponse] = None
    elapsed: float = 0.0
    error: Optional[str] = None

    @classmethod
    def from_response(cls, response: Optional[SearchResponse], elapsed: float = 0.0) -> "FetchOutcome":
        if response is not None and response.has_hits:
            return cls(OutcomeStatus.HITS, response, elapsed)
        return cls(OutcomeStatus.EMPTY, response, elapsed)

    @classmethod
    def failed(cls, error: str, elapsed: float = 0.0) -> "FetchOutcome":
        return cls(OutcomeStatus.FAILED, None, elapsed, error)

    @property
    def has_hits(self) -> bool:
        return self.status is OutcomeStatus.HITS

    @property
    def hits(self) -> List[SearchHit]:
        return self.response.hits if self.response is not None else []


class LadderState(str, Enum):
    """States of the pagination and retry ladder."""

    INIT = "init"
    FETCH_REQUESTED_PAGE = "fetch_requested_page"
    CONCURRENT_TOP_PAGE_CHECK = "concurrent_top_page_check"
    EVALUATE = "evaluate"
    RETRY_PAGE_1_ON_EMPTY = "retry_page_1_on_empty"
    RETRY_TRANSIENT = "retry_transient"
    DONE = "done"


class QueryCache:
    """
    Last-query result cache.

    Best effort only: one entry, overwritten on every successful ranked
    search, never invalidated and never consulted by the resolver itself.
    """

    def __init__(self, max_results: int = 50):
        self.max_results = max_results
        self._query: Optional[str] = None
        self._results: List[Highlight] = []

    def store(self, normalized_query: str, results: Sequence[Highlight]) -> None:
        self._query = normalized_query
        self._results = list(results[:self.max_results])

    def get(self, normalized_query: str) -> Optional[List[Highlight]]:
        """Cached results if the last stored query matches, else None."""
        if self._query is not None and self._query == normalized_query:
            return list(self._results)
        return None

    def clear(self) -> None:
        self._query = None
        self._results = []


def parse_search_body(text: Optional[str]) -> Optional[SearchResponse]:
    """Decode a search body; None for missing, empty or invalid JSON."""
    if not text:
        return None
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return SearchResponse.from_payload(payload)


def is_good(hits: Sequence[SearchHit], normalized_query: str) -> bool:
    """A hit list is good if any title matches the query exactly or by prefix."""
    return any(h.is_exact(normalized_query) or h.has_prefix(normalized_query) for h in hits)


def pick_best_exact(hits: Sequence[SearchHit]) -> List[SearchHit]:
    """
    Collapse exact matches to one hit per normalized title.

    Within a group the higher text_match wins; on equal scores a hit with a
    poster replaces one without. Groups keep first-seen order.
    """
    best: Dict[str, SearchHit] = {}
    for hit in hits:
        key = hit.group_key
        current = best.get(key)
        if current is None:
            best[key] = hit
        elif hit.text_match > current.text_match:
            best[key] = hit
        elif hit.text_match == current.text_match and hit.document.has_poster and not current.document.has_poster:
            best[key] = hit
    return list(best.values())


def rank_hits(hits: Sequence[SearchHit], normalized_query: str) -> List[SearchHit]:
    """Order by exact tier and text_match descending, keeping response order on ties."""
    indexed = list(enumerate(hits))
    indexed.sort(key=lambda pair: (
        -pair[1].exact_tier(normalized_query),
        -pair[1].text_match,
        pair[0],
    ))
    return [hit for _, hit in indexed]


def dedupe_by_id(results: Sequence[Highlight]) -> List[Highlight]:
    """Drop repeated ids, keeping the first occurrence."""
    seen = set()
    unique = []
    for result in results:
        if not result.id or result.id in seen:
            continue
        seen.add(result.id)
        unique.append(result)
    return unique


class SearchResolver:
    """Resolves queries against the Atsumaru full-text search endpoint."""

    def __init__(
        self,
        api: AtsumaruAPI,
        config: Optional[AtsumaruConfig] = None,
        parser: Optional[AtsumaruParser] = None,
        cache: Optional[QueryCache] = None,
    ):
        """
        Initialize the resolver.

        Args:
            api: API client whose fetch_text performs the requests
            config: Runner configuration (page bounds, retries, timeouts)
            parser: Parser used for cover URLs
            cache: Optional last-query cache to update after ranked searches
        """
        self.api = api
        self.config = config or api.config
        self.parser = parser or AtsumaruParser(
            base_url=self.config.base_url,
            placeholder_cover=self.config.placeholder_cover,
        )
        self.cache = cache

    async def search(self, query: str, page: int = 1, per_page: Optional[int] = None) -> Optional[PagedResult]:
        """
        Search and return one page of ranked results.

        Args:
            query: Raw user query (sent upstream unmodified apart from trimming)
            page: 1-based page number
            per_page: Requested page size, clamped to the configured bounds

        Returns:
            PagedResult, or None when every attempt came back empty
        """
        q = (query or "").strip()
        if not q:
            return None

        nq = normalize_title(q)
        try:
            page = max(1, int(page))
        except (TypeError, ValueError):
            page = 1
        per_page = self.config.clamp_per_page(per_page)

        state = LadderState.INIT
        outcome = FetchOutcome(OutcomeStatus.EMPTY)

        while state is not LadderState.DONE:
            logger.debug(f"Search ladder for '{q}' page {page}: {state.value}")

            if state is LadderState.INIT:
                state = LadderState.FETCH_REQUESTED_PAGE

            elif state is LadderState.FETCH_REQUESTED_PAGE:
                if page > 1:
                    state = LadderState.CONCURRENT_TOP_PAGE_CHECK
                else:
                    outcome = await self._attempt(q, 1, per_page)
                    state = LadderState.EVALUATE

            elif state is LadderState.CONCURRENT_TOP_PAGE_CHECK:
                # Clients may keep a stale page number across a new search,
                # so an exact match on page 1 wins over the requested page.
                outcome, top = await asyncio.gather(
                    self._attempt(q, page, per_page),
                    self._attempt(q, 1, per_page),
                )
                exact_on_top = [h for h in top.hits if h.is_exact(nq)]
                if exact_on_top:
                    logger.debug(f"Page 1 holds {len(exact_on_top)} exact matches for '{q}'")
                    return self._exact_page(exact_on_top)
                state = LadderState.EVALUATE

            elif state is LadderState.EVALUATE:
                if outcome.has_hits:
                    state = LadderState.DONE
                elif page == 1:
                    state = LadderState.RETRY_TRANSIENT
                else:
                    state = LadderState.RETRY_PAGE_1_ON_EMPTY

            elif state is LadderState.RETRY_TRANSIENT:
                for attempt in range(self.config.transient_retries):
                    logger.debug(f"Retrying empty page 1 for '{q}' (retry {attempt + 1})")
                    outcome = await self._attempt(q, 1, per_page)
                    if outcome.has_hits:
                        break
                state = LadderState.DONE

            elif state is LadderState.RETRY_PAGE_1_ON_EMPTY:
                retry = await self._attempt(q, 1, per_page)
                if retry.has_hits:
                    logger.debug(f"Page {page} empty for '{q}', falling back to page 1")
                    outcome = retry
                    page = 1
                state = LadderState.DONE

        if not outcome.has_hits:
            logger.info(f"No search results for '{q}'")
            return None

        return self._finalize(outcome, nq, page, per_page)

    async def fetch_strategies(self, query: str, page: int, per_page: int) -> FetchOutcome:
        """
        Run both query strategies concurrently and pick one hit list.

        Exact normalized-title matches across both lists take precedence;
        otherwise a strategy with exact or prefix matches is chosen (primary
        first), then whichever returned more hits.
        """
        nq = normalize_title(query)
        started = time.monotonic()

        primary, fallback = await asyncio.gather(
            self._fetch_strategy(query, page, per_page, SearchStrategy.PRIMARY),
            self._fetch_strategy(query, page, per_page, SearchStrategy.FALLBACK),
        )
        elapsed = time.monotonic() - started

        logger.debug(
            f"Search '{query}' page {page}: primary {primary.status.value} "
            f"({len(primary.hits)} hits, {primary.elapsed:.2f}s), fallback "
            f"{fallback.status.value} ({len(fallback.hits)} hits, {fallback.elapsed:.2f}s)"
        )

        exact = [h for h in (*primary.hits, *fallback.hits) if h.is_exact(nq)]
        if exact:
            return FetchOutcome.from_response(SearchResponse.exact_only(exact), elapsed)

        primary_count, fallback_count = len(primary.hits), len(fallback.hits)

        if primary_count and is_good(primary.hits, nq):
            return primary
        if fallback_count and is_good(fallback.hits, nq):
            return fallback
        if primary_count or fallback_count:
            return primary if primary_count >= fallback_count else fallback

        if primary.status is OutcomeStatus.FAILED and fallback.status is OutcomeStatus.FAILED:
            return FetchOutcome.failed(f"{primary.error}; {fallback.error}", elapsed)
        return FetchOutcome(OutcomeStatus.EMPTY, None, elapsed)

    async def _attempt(self, query: str, page: int, per_page: int) -> FetchOutcome:
        try:
            return await self.fetch_strategies(query, page, per_page)
        except Exception as e:
            logger.warning(f"Search attempt for '{query}' page {page} failed: {e}")
            return FetchOutcome.failed(str(e))

    async def _fetch_strategy(self, query: str, page: int, per_page: int, strategy: SearchStrategy) -> FetchOutcome:
        started = time.monotonic()
        try:
            url = self.api.build_search_url(query, page, per_page, strategy)
            pending = self.api.fetch_text(url)
            if self.config.strategy_timeout:
                text = await asyncio.wait_for(pending, timeout=self.config.strategy_timeout)
            else:
                text = await pending
            response = parse_search_body(text)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            elapsed = time.monotonic() - started
            logger.debug(f"{strategy.value} search for '{query}' failed after {elapsed:.2f}s: {e!r}")
            return FetchOutcome.failed(f"{strategy.value}: {e!r}", elapsed)

        elapsed = time.monotonic() - started
        if response is None:
            return FetchOutcome.failed(f"{strategy.value}: unreadable response body", elapsed)
        return FetchOutcome.from_response(response, elapsed)

    def _exact_page(self, exact_hits: Sequence[SearchHit]) -> PagedResult:
        results = dedupe_by_id([self.to_highlight(h) for h in pick_best_exact(exact_hits)])
        return PagedResult(results=results, is_last_page=True)

    def _finalize(self, outcome: FetchOutcome, nq: str, page: int, per_page: int) -> PagedResult:
        hits = outcome.hits

        exact = [h for h in hits if h.is_exact(nq)]
        if exact:
            return self._exact_page(exact)

        results = dedupe_by_id([self.to_highlight(h) for h in rank_hits(hits, nq)])

        if self.cache is not None:
            self.cache.store(nq, results)

        found = outcome.response.found if outcome.response is not None else None
        total = found if found is not None else len(results)
        is_last_page = len(results) < per_page or page * per_page >= total

        logger.debug(f"Ranked {len(results)} results (found={found}, last={is_last_page})")
        return PagedResult(results=results, is_last_page=is_last_page)

    def to_highlight(self, hit: SearchHit) -> Highlight:
        """Map a search hit to the host-facing result shape."""
        doc = hit.document
        return Highlight(
            id=build_series_id(doc.id),
            title=doc.display_title,
            cover=self.parser.cover_for(doc.poster),
            subtitle=hit.snippet or None,
        )
