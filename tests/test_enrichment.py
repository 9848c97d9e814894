"""Tests for turning candidates into catalog entries"""

import asyncio

from conftest import make_file
from mediacatalog.enrichment import (
    build_placeholders,
    enrich,
    make_ids_unique,
    placeholder_id,
)
from mediacatalog.models import (
    AggregatedSeries,
    EnrichedRecord,
    EpisodeRef,
    MovieCandidate,
    MovieEntry,
    SeasonFragment,
    TvEntry,
)


def dune():
    return MovieCandidate("Dune", "/m/Dune (2021)", [make_file("/m/Dune (2021)/Dune.mkv")], year=2021)


def series():
    episode = EpisodeRef(1, "Show.S01E01.mkv", "Show", "/tv/Show/Show.S01E01.mkv")
    return AggregatedSeries("Show", "/tv/Show", [SeasonFragment(1, [episode])], ["/tv/Show", "/b/Show"])


class FakeLookup:
    """Answers from a dict keyed by primary title and records every call."""

    def __init__(self, records, failing=()):
        self.records = records
        self.failing = set(failing)
        self.calls = []

    async def __call__(self, primary, fallback, media_type):
        self.calls.append((primary, fallback, media_type))
        if primary in self.failing:
            raise RuntimeError("service unavailable")
        return self.records.get(primary)


class TestEnrich:

    def test_hit_and_miss(self):
        lookup = FakeLookup({
            "Dune": EnrichedRecord(id=438631, title="Dune", media_type="movie",
                                   release_date="2021-09-15", genre_names=["Science Fiction"]),
        })

        movie_entry, tv_entry = asyncio.run(enrich([dune(), series()], lookup))

        assert isinstance(movie_entry, MovieEntry)
        assert movie_entry.id == "movie_438631"
        assert movie_entry.tmdb_id == 438631
        assert movie_entry.enriched
        assert movie_entry.files[0].name == "Dune.mkv"

        assert isinstance(tv_entry, TvEntry)
        assert tv_entry.id.startswith("unknown_tv_")
        assert not tv_entry.enriched
        assert tv_entry.source_paths == ["/tv/Show", "/b/Show"]
        assert tv_entry.episode_count == 1

    def test_lookup_arguments(self):
        lookup = FakeLookup({})
        asyncio.run(enrich([dune(), series()], lookup))
        assert lookup.calls == [
            ("Dune", "Dune (2021)", "movie"),
            ("Show", None, "tv"),
        ]

    def test_entry_kind_follows_candidate(self):
        # A movie-shaped candidate stays a movie even if TMDB answers with tv.
        lookup = FakeLookup({"Dune": EnrichedRecord(id=1, title="Dune", media_type="tv")})
        [entry] = asyncio.run(enrich([dune()], lookup))
        assert isinstance(entry, MovieEntry)
        assert entry.id == "movie_1"

    def test_failing_lookup_becomes_placeholder(self):
        lookup = FakeLookup({}, failing={"Dune"})
        [entry] = asyncio.run(enrich([dune()], lookup))
        assert entry.id.startswith("unknown_movie_")
        assert entry.release_date == "2021"

    def test_same_record_twice_gets_unique_ids(self):
        record = EnrichedRecord(id=7, title="Dune", media_type="movie")
        lookup = FakeLookup({"Dune": record})
        first, second = asyncio.run(enrich([dune(), dune()], lookup))
        assert (first.id, second.id) == ("movie_7", "movie_7_2")


class TestPlaceholders:

    def test_ids_are_stable(self):
        assert placeholder_id(dune()) == placeholder_id(dune())
        other = MovieCandidate("Dune", "/elsewhere")
        assert placeholder_id(other) != placeholder_id(dune())

    def test_build_placeholders(self):
        entries = build_placeholders([dune(), series()])
        assert [type(e) for e in entries] == [MovieEntry, TvEntry]
        assert all(not e.enriched for e in entries)

    def test_make_ids_unique(self):
        entries = [MovieEntry(id="a", title="x") for _ in range(3)] + [MovieEntry(id="a_2", title="y")]
        make_ids_unique(entries)
        assert [e.id for e in entries] == ["a", "a_2", "a_3", "a_2_2"]
