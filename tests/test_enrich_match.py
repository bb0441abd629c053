from __future__ import annotations

import asyncio

import httpx

from conftest import TMDB_HOST, Gate, stage_context

from clipit.identifier.schema import FailureType
from clipit.identifier.sources.payloads import RegionProviders, WatchProvidersResponse
from clipit.identifier.stages import enrich_match
from clipit.identifier.stages.enrich_match import merge_providers, pick_region


def offers(*names: str):
    return [{"provider_name": name, "logo_path": f"/{name.lower()}.png"} for name in names]


def run_stage(upstream, settings, tmdb_id=11):
    async def go():
        async with stage_context(upstream, settings) as ctx:
            return await enrich_match.process(tmdb_id, ctx)

    return asyncio.run(go())


def test_providers_are_capped_deduplicated_and_tagged() -> None:
    region = RegionProviders.model_validate(
        {
            "link": "https://www.themoviedb.org/movie/11/watch?locale=US",
            "flatrate": offers("Disney Plus", "Netflix", "Hulu", "Max", "Peacock"),
            "rent": offers("Netflix", "Apple TV", "Google Play", "Vudu"),
            "buy": offers("Amazon"),
        }
    )

    providers = merge_providers(region)

    assert [p.name for p in providers] == ["Disney Plus", "Netflix", "Hulu", "Max", "Apple TV"]
    assert [p.type for p in providers] == ["subscription"] * 4 + ["rent"]
    assert providers[0].logo == "https://image.tmdb.org/t/p/original/disney plus.png"
    assert all(p.link == "https://www.themoviedb.org/movie/11/watch?locale=US" for p in providers)


def test_provider_limits_hold_for_large_regions() -> None:
    region = RegionProviders.model_validate(
        {"flatrate": offers(*(f"S{i}" for i in range(10))), "rent": offers(*(f"R{i}" for i in range(10)))}
    )

    providers = merge_providers(region)

    assert len(providers) == 6
    assert sum(p.type == "subscription" for p in providers) == 4
    assert sum(p.type == "rent" for p in providers) == 2
    assert len({p.name for p in providers}) == len(providers)
    assert all(p.link == "" for p in providers)


def test_preferred_region_then_any_region() -> None:
    payload = WatchProvidersResponse.model_validate(
        {"results": {"GB": {"flatrate": offers("BBC")}, "US": {"flatrate": offers("Netflix")}}}
    )
    assert pick_region(payload, "US").flatrate[0].provider_name == "Netflix"
    assert pick_region(payload, "DE").flatrate[0].provider_name == "BBC"
    assert pick_region(WatchProvidersResponse(), "US") is None


def test_process_fetches_both_lists(upstream, settings) -> None:
    upstream.add(TMDB_HOST, "/3/movie/11/watch/providers", {"results": {"US": {"flatrate": offers("Disney Plus")}}})
    upstream.add(
        TMDB_HOST,
        "/3/movie/11/similar",
        {
            "results": [
                {"id": 100 + i, "title": f"Similar {i}", "release_date": "1980-05-21", "poster_path": f"/{i}.jpg"}
                for i in range(9)
            ]
        },
    )

    bundle, result = run_stage(upstream, settings)

    assert [p.name for p in bundle.streaming_providers] == ["Disney Plus"]
    assert len(bundle.similar_movies) == 6
    first = bundle.similar_movies[0]
    assert (first.id, first.title, first.year) == (100, "Similar 0", "1980")
    assert first.poster == "https://image.tmdb.org/t/p/w200/0.jpg"
    assert first.genres == []
    assert result.success is True


def test_similar_without_dates_or_posters(upstream, settings) -> None:
    upstream.add(TMDB_HOST, "/3/movie/11/watch/providers", {"results": {}})
    upstream.add(TMDB_HOST, "/3/movie/11/similar", {"results": [{"id": 7, "title": "Bare"}]})

    bundle, _ = run_stage(upstream, settings)

    assert bundle.streaming_providers == []
    assert bundle.similar_movies[0].year == "Unknown"
    assert bundle.similar_movies[0].poster == ""


def test_enrichment_failures_yield_empty_lists(upstream, settings) -> None:
    upstream.add(TMDB_HOST, "/3/movie/11/watch/providers", httpx.Response(500))
    upstream.add(TMDB_HOST, "/3/movie/11/similar", httpx.Response(200, text="not json"))

    bundle, result = run_stage(upstream, settings)

    assert bundle.streaming_providers == []
    assert bundle.similar_movies == []
    assert result.success is False
    assert {f.cause for f in result.failures} == {"providers_unavailable", "similar_unavailable"}
    assert all(f.type is FailureType.ENRICHMENT_ERROR for f in result.failures)


def test_providers_and_similar_are_fetched_concurrently(upstream, settings) -> None:
    gate = Gate(expected=2)
    upstream.add(
        TMDB_HOST,
        "/3/movie/11/watch/providers",
        gate.hold({"results": {"US": {"flatrate": offers("Disney Plus")}}}),
    )
    upstream.add(TMDB_HOST, "/3/movie/11/similar", gate.hold({"results": [{"id": 7, "title": "Other"}]}))

    bundle, result = run_stage(upstream, settings)

    assert gate.peak == 2
    assert [p.name for p in bundle.streaming_providers] == ["Disney Plus"]
    assert [s.title for s in bundle.similar_movies] == ["Other"]
    assert result.success is True
