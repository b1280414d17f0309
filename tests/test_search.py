import asyncio
import time
from urllib.parse import parse_qs, urlparse

import pytest

from mangarunners.core.exceptions import NetworkError
from mangarunners.core.models import Highlight
from mangarunners.runners.atsumaru import search as search_module
from mangarunners.runners.atsumaru.api import AtsumaruAPI, SearchStrategy
from mangarunners.runners.atsumaru.search import (
    OutcomeStatus,
    QueryCache,
    dedupe_by_id,
    pick_best_exact,
    rank_hits,
)
from mangarunners.runners.atsumaru.types import SearchHit
from mangarunners.runners.common import normalize_title

from conftest import EMPTY, Delayed, FakeSearchFetcher, make_hit, search_body


# Title normalization

@pytest.mark.parametrize("value", [
    "One Piece",
    "  Naïve Don't!!  ",
    "Re:Zero − Starting Life in Another World",
    "Ścięgno’s `Tale´",
    "",
    "---",
    "ÀÉÎÕÜ 123",
])
def test_normalize_is_idempotent(value):
    once = normalize_title(value)
    assert normalize_title(once) == once


def test_normalize_ignores_diacritics_and_apostrophes():
    assert normalize_title("Naïve Don't") == normalize_title("Naive Dont")
    assert normalize_title("Naïve Don't") == "naive dont"


def test_normalize_collapses_punctuation_and_handles_none():
    assert normalize_title("  Re:Zero -- Kara  ") == "re zero kara"
    assert normalize_title(None) == ""
    assert normalize_title("") == ""


# Pure helpers

def _hits(*raw):
    return [SearchHit.model_validate(h) for h in raw]


def test_pick_best_exact_prefers_higher_score():
    hits = _hits(
        make_hit("a", "Foo Bar", score=10, poster=None),
        make_hit("b", "Foo  Bar!", score=50, poster=None),
    )
    assert [h.document.id for h in pick_best_exact(hits)] == ["b"]


def test_pick_best_exact_prefers_poster_on_equal_score():
    hits = _hits(
        make_hit("no-cover", "Foo Bar", score=10, poster=None),
        make_hit("cover", "Foo Bar", score=10, poster="/posters/foo.jpg"),
    )
    assert [h.document.id for h in pick_best_exact(hits)] == ["cover"]


def test_pick_best_exact_keeps_first_when_fully_tied():
    hits = _hits(
        make_hit("first", "Foo Bar", score=10),
        make_hit("second", "Foo Bar", score=10),
    )
    assert [h.document.id for h in pick_best_exact(hits)] == ["first"]


def test_rank_hits_orders_by_tier_then_score_then_position():
    hits = _hits(
        make_hit("low", "Alpha", score=1),
        make_hit("tie-1", "Beta", score=5),
        make_hit("primary-exact", "Query", score=0),
        make_hit("tie-2", "Gamma", score=5),
        make_hit("english-exact", "Other", english_title="Query", score=0),
    )
    ranked = rank_hits(hits, "query")
    assert [h.document.id for h in ranked] == ["english-exact", "primary-exact", "tie-1", "tie-2", "low"]


def test_dedupe_by_id_keeps_first_occurrence():
    items = [
        Highlight(id="atsu|1", title="One", cover="c"),
        Highlight(id="atsu|2", title="Two", cover="c"),
        Highlight(id="atsu|1", title="One again", cover="c"),
    ]
    assert [(r.id, r.title) for r in dedupe_by_id(items)] == [("atsu|1", "One"), ("atsu|2", "Two")]


def test_search_urls_differ_by_strategy(config):
    api = AtsumaruAPI(lambda url: None, config)
    primary = api.build_search_url("  Naïve Don't ", 2, 24, SearchStrategy.PRIMARY)
    fallback = api.build_search_url("  Naïve Don't ", 2, 24, SearchStrategy.FALLBACK)

    p, f = parse_qs(urlparse(primary).query), parse_qs(urlparse(fallback).query)
    assert p["q"] == ["Naïve Don't"]
    assert p["page"] == ["2"] and p["per_page"] == ["24"]
    assert p["prefix"] == ["true"] and p["prioritize_exact_match"] == ["true"]
    assert "infix" not in p and "drop_tokens_threshold" not in p
    assert f["infix"] == ["always"] and f["drop_tokens_threshold"] == ["0"]
    assert p["cb"] != f["cb"] or p["_"] != f["_"]
    assert urlparse(primary).path == "/collections/manga/documents/search"


# Resolver behaviour

async def test_exact_match_dominates_score(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): search_body([
            make_hit("1", "Foo Bar", score=1),
            make_hit("2", "Foo", score=99),
        ]),
    })
    result = await make_resolver(fetcher).search("foo bar", 1, 24)

    assert [r.id for r in result.results] == ["atsu|1"]
    assert result.is_last_page is True


async def test_exact_best_pick_keeps_entry_with_cover(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): search_body([
            make_hit("bare", "Foo Bar", score=7, poster=None),
            make_hit("covered", "Foo Bar", score=7, poster="/posters/foo.png"),
        ]),
    })
    result = await make_resolver(fetcher).search("Foo Bar", 1, 24)

    assert [r.id for r in result.results] == ["atsu|covered"]
    assert result.results[0].cover == "https://atsu.moe/static/posters/foo.png"


async def test_same_exact_hit_in_both_strategies_appears_once(make_resolver):
    body = search_body([make_hit("42", "Berserk", score=10)])
    fetcher = FakeSearchFetcher({("primary", 1): body, ("fallback", 1): body})

    result = await make_resolver(fetcher).search("berserk", 1, 24)

    assert [r.id for r in result.results] == ["atsu|42"]


async def test_duplicate_ids_in_ranked_results_keep_first_position(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): search_body([
            make_hit("a", "Vagabond Side", score=30),
            make_hit("b", "Vagabond Story", score=20),
            make_hit("a", "Vagabond Side", score=10),
        ]),
    })
    result = await make_resolver(fetcher).search("vagabond", 1, 24)

    assert [r.id for r in result.results] == ["atsu|a", "atsu|b"]


async def test_last_page_when_fewer_results_than_page_size(make_resolver):
    hits = [make_hit(str(i), f"Series {i}") for i in range(15)]
    fetcher = FakeSearchFetcher({("primary", 1): search_body(hits, found=15)})

    result = await make_resolver(fetcher).search("series", 1, 20)

    assert len(result.results) == 15
    assert result.is_last_page is True


async def test_not_last_page_when_more_found(make_resolver):
    hits = [make_hit(str(i), f"Series {i}") for i in range(20)]
    fetcher = FakeSearchFetcher({("primary", 1): search_body(hits, found=50)})

    result = await make_resolver(fetcher).search("series", 1, 20)

    assert len(result.results) == 20
    assert result.is_last_page is False


async def test_page_one_retries_after_transient_empty(make_resolver):
    three = search_body([make_hit(str(i), f"Dungeon {i}") for i in range(3)])
    fetcher = FakeSearchFetcher({
        ("primary", 1): [EMPTY, three],
        ("fallback", 1): EMPTY,
    })

    result = await make_resolver(fetcher).search("dungeon", 1, 24)

    assert [r.id for r in result.results] == ["atsu|0", "atsu|1", "atsu|2"]
    # first attempt plus one retry, two strategies each
    assert len(fetcher.calls) == 4


async def test_retries_stop_after_configured_attempts(make_resolver):
    fetcher = FakeSearchFetcher({})

    result = await make_resolver(fetcher).search("nothing here", 1, 24)

    assert result is None
    assert len(fetcher.calls) == 6


async def test_failed_primary_does_not_block_fallback(make_resolver):
    good = search_body([make_hit("f1", "Blue Lock"), make_hit("f2", "Blue Lock Episode Nagi")])
    fetcher = FakeSearchFetcher({
        ("primary", 1): Delayed(0.05, NetworkError("HTTP 503 error", status_code=503)),
        ("fallback", 1): good,
    })

    result = await make_resolver(fetcher).search("blue lock", 1, 24)

    assert [r.id for r in result.results] == ["atsu|f1"]
    assert result.is_last_page is True


async def test_strategies_are_in_flight_together(make_resolver):
    fallback_started = asyncio.Event()
    body = search_body([make_hit("x", "Monster Hunter")])

    class OrderingFetcher(FakeSearchFetcher):
        async def __call__(self, url):
            if "infix=always" in url:
                fallback_started.set()
                return EMPTY
            # Would time out if the fallback were only issued after the primary returned
            await asyncio.wait_for(fallback_started.wait(), timeout=1.0)
            return body

    result = await make_resolver(OrderingFetcher({})).search("monster", 1, 24)

    assert [r.id for r in result.results] == ["atsu|x"]


async def test_hanging_strategy_is_bounded_by_timeout(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): Delayed(30, EMPTY),
        ("fallback", 1): search_body([make_hit("k", "Kingdom")]),
    })
    resolver = make_resolver(fetcher, strategy_timeout=0.1)

    started = time.monotonic()
    result = await resolver.search("kingdom", 1, 24)

    assert time.monotonic() - started < 5
    assert [r.id for r in result.results] == ["atsu|k"]


async def test_fallback_chosen_when_primary_has_no_good_hits(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): search_body([make_hit("p", "Unrelated Title", score=500)]),
        ("fallback", 1): search_body([make_hit("f", "Gachiakuta Extra", score=1)]),
    })
    result = await make_resolver(fetcher).search("gachiakuta", 1, 24)

    assert [r.id for r in result.results] == ["atsu|f"]


async def test_larger_list_chosen_when_neither_strategy_is_good(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): search_body([make_hit("p1", "Alpha")]),
        ("fallback", 1): search_body([make_hit("f1", "Beta"), make_hit("f2", "Gamma")]),
    })
    resolver = make_resolver(fetcher)

    outcome = await resolver.fetch_strategies("zzz", 1, 24)

    assert outcome.status is OutcomeStatus.HITS
    assert [h.document.id for h in outcome.hits] == ["f1", "f2"]


async def test_equal_counts_favor_primary(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): search_body([make_hit("p1", "Alpha")]),
        ("fallback", 1): search_body([make_hit("f1", "Beta")]),
    })
    outcome = await make_resolver(fetcher).fetch_strategies("zzz", 1, 24)

    assert [h.document.id for h in outcome.hits] == ["p1"]


async def test_malformed_bodies_count_as_no_hits(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): "<html>Bad gateway</html>",
        ("fallback", 1): '{"hits": "not a list"}',
    })
    resolver = make_resolver(fetcher)

    outcome = await resolver.fetch_strategies("berserk", 1, 24)
    assert outcome.has_hits is False
    assert await resolver.search("berserk", 1, 24) is None


async def test_both_strategies_failing_reports_failure(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): NetworkError("down"),
        ("fallback", 1): NetworkError("down"),
    })
    outcome = await make_resolver(fetcher).fetch_strategies("berserk", 1, 24)

    assert outcome.status is OutcomeStatus.FAILED


async def test_later_page_prefers_exact_match_on_first_page(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 3): search_body([make_hit("p3", "Naruto Gaiden")]),
        ("primary", 1): search_body([make_hit("n", "Naruto"), make_hit("b", "Boruto")]),
    })
    result = await make_resolver(fetcher).search("Naruto", 3, 24)

    assert [r.id for r in result.results] == ["atsu|n"]
    assert result.is_last_page is True
    assert sorted(set(fetcher.pages_called())) == [1, 3]


async def test_empty_later_page_falls_back_to_first_page(make_resolver):
    first_page = [make_hit(str(i), f"Hunter {i}") for i in range(12)]
    fetcher = FakeSearchFetcher({("primary", 1): search_body(first_page, found=12)})

    result = await make_resolver(fetcher).search("hunter", 4, 12)

    assert len(result.results) == 12
    # page renormalized to 1: 1 * 12 >= 12
    assert result.is_last_page is True


async def test_later_page_keeps_requested_results(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 2): search_body([make_hit(f"p2-{i}", f"Slime {i}") for i in range(12)], found=40),
        ("primary", 1): search_body([make_hit(f"p1-{i}", f"Slime {i}") for i in range(12)], found=40),
    })
    result = await make_resolver(fetcher).search("slime", 2, 12)

    assert result.results[0].id == "atsu|p2-0"
    assert result.is_last_page is False


async def test_per_page_is_clamped(make_resolver):
    fetcher = FakeSearchFetcher({})
    await make_resolver(fetcher).search("anything", 1, 500)

    per_page = {parse_qs(urlparse(url).query)["per_page"][0] for _, _, url in fetcher.calls}
    assert per_page == {"48"}


async def test_blank_query_returns_none_without_requests(make_resolver):
    fetcher = FakeSearchFetcher({})
    assert await make_resolver(fetcher).search("   ", 1, 24) is None
    assert fetcher.calls == []


async def test_snippet_becomes_plain_subtitle(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): search_body([
            make_hit("s", "Solo Leveling Ragnarok", snippet="<mark>Solo</mark> <mark>Leveling</mark> Ragnarok"),
        ]),
    })
    result = await make_resolver(fetcher).search("solo leveling", 1, 24)

    assert result.results[0].subtitle == "Solo Leveling Ragnarok"


async def test_ranked_results_update_cache(make_resolver):
    cache = QueryCache(max_results=2)
    fetcher = FakeSearchFetcher({
        ("primary", 1): search_body([make_hit(str(i), f"Frieren {i}") for i in range(3)]),
    })
    await make_resolver(fetcher, cache=cache).search("Frieren!", 1, 24)

    cached = cache.get("frieren")
    assert [r.id for r in cached] == ["atsu|0", "atsu|1"]
    assert cache.get("other") is None


async def test_one_piece_end_to_end(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): search_body([
            make_hit("op", "ONE PIECE", english_title="One Piece", score=900,
                     snippet="<mark>One</mark> <mark>Piece</mark>"),
            make_hit("sw", "One Piece Film: Strong World", score=800),
            make_hit("opm", "One Punch-Man", score=700),
        ], found=3),
        ("fallback", 1): search_body([make_hit("opm", "One Punch-Man", score=700)]),
    })
    result = await make_resolver(fetcher).search("One Piece", 1, 24)

    assert len(result.results) == 1
    assert result.results[0].title == "One Piece"
    assert result.results[0].id == "atsu|op"
    assert result.is_last_page is True


async def test_non_finite_score_does_not_discard_other_strategy(make_resolver):
    fetcher = FakeSearchFetcher({
        ("primary", 1): '{"hits": [{"document": {"id": "x", "title": "Zzz"}, "text_match": Infinity}]}',
        ("fallback", 1): search_body([make_hit("f1", "Kingdom")]),
    })
    result = await make_resolver(fetcher).search("kingdom", 1, 24)

    assert [r.id for r in result.results] == ["atsu|f1"]


async def test_body_decoding_error_stays_within_its_strategy(make_resolver, monkeypatch):
    decode = search_module.parse_search_body

    def fragile_decode(text):
        if "Zzz" in text:
            raise OverflowError("cannot convert float infinity to integer")
        return decode(text)

    monkeypatch.setattr(search_module, "parse_search_body", fragile_decode)
    fetcher = FakeSearchFetcher({
        ("primary", 1): search_body([make_hit("x", "Zzz")]),
        ("fallback", 1): search_body([make_hit("f1", "Kingdom")]),
    })
    resolver = make_resolver(fetcher)

    outcome = await resolver.fetch_strategies("kingdom", 1, 24)
    assert [h.document.id for h in outcome.hits] == ["f1"]

    result = await resolver.search("kingdom", 1, 24)
    assert [r.id for r in result.results] == ["atsu|f1"]
