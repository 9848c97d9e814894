"""Tests for catalog serialization and persistence"""

from datetime import datetime, timezone

from conftest import make_file
from mediacatalog.aggregator import aggregate_versions
from mediacatalog.catalog import (
    build_document,
    entry_to_dict,
    item_to_dict,
    load_catalog,
    sort_items,
    write_catalog,
)
from mediacatalog.models import EpisodeRef, MovieEntry, SeasonFragment, TvEntry


def movie(id="movie_1", title="Dune", **kwargs):
    return MovieEntry(id=id, title=title, files=[make_file(f"/m/{title}.1080p.mkv")], **kwargs)


def show(id="tv_1", title="Show"):
    episodes = [
        EpisodeRef(1, "Show.S01E01.mkv", "Show", "/tv/Show.S01E01.mkv", signature="s1"),
        EpisodeRef(2, "Show.S01E02.mkv", "Show", "/tv/Show.S01E02.mkv"),
    ]
    return TvEntry(id=id, title=title, seasons=[SeasonFragment(1, episodes)], source_paths=["/tv"])


def fake_url(path, signature):
    return f"url:{path}:{signature}"


class TestEntryToDict:

    def test_movie_has_files_not_seasons(self):
        data = entry_to_dict(movie())
        assert data["media_type"] == "movie"
        assert data["file_count"] == 1
        assert data["files"][0]["quality"] == "1080p"
        assert data["files"][0]["extension"] == "MKV"
        assert "seasons" not in data
        assert "url" not in data["files"][0]

    def test_tv_has_seasons_not_files(self):
        data = entry_to_dict(show())
        assert "files" not in data
        assert data["season_count"] == 1
        assert data["episode_count"] == 2
        assert data["seasons"][0]["episode_count"] == 2
        assert data["source_paths"] == ["/tv"]

    def test_urls(self):
        data = entry_to_dict(show(), file_url=fake_url)
        urls = [e["url"] for e in data["seasons"][0]["episodes"]]
        assert urls == ["url:/tv/Show.S01E01.mkv:s1", "url:/tv/Show.S01E02.mkv:None"]

    def test_version_group(self):
        [group] = aggregate_versions([MovieEntry(id="movie_1", title="Dune"), movie(id="movie_1_2")])
        data = item_to_dict(group)

        assert data["id"] == "movie_1_2"
        assert data["is_aggregated"] is True
        assert data["aggregated_count"] == 2
        assert [(v["id"], v["is_main"]) for v in data["versions"]] == [
            ("movie_1_2", True), ("movie_1", False),
        ]
        assert len(data["versions"][0]["files"]) == 1


class TestDocument:

    def test_sort_by_title_ignores_case(self):
        items = [{"title": "b"}, {"title": "A"}, {"title": "c"}]
        assert [i["title"] for i in sort_items(items)] == ["A", "b", "c"]

    def test_missing_values_sort_last(self):
        items = [{"id": 1, "vote_average": None}, {"id": 2, "vote_average": 5.0}, {"id": 3, "vote_average": 7.5}]
        result = sort_items(items, "vote_average", "desc")
        assert [i["id"] for i in result] == [3, 2, 1]

    def test_build_document(self):
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        document = build_document([show(), movie()], now=now)

        assert document["total"] == 2
        assert [m["title"] for m in document["movies"]] == ["Dune", "Show"]
        assert document["generated_at"] == "2024-01-02T03:04:05+00:00"
        assert document["config"] == {"order_by": "title", "order": "asc"}

    def test_write_and_load(self, tmp_path):
        document = build_document([movie(title="流浪地球")])
        path = write_catalog(document, tmp_path / "out" / "catalog.json")

        assert path.exists()
        assert "流浪地球" in path.read_text(encoding="utf-8")
        assert load_catalog(path) == document
