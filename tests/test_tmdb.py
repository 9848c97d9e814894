"""Tests for the TMDB client, with the HTTP layer replaced by a fake"""

import asyncio

import pytest
import requests

from mediacatalog.cache import Cache
from mediacatalog.tmdb import (
    TMDB_BASE_URL,
    TMDBClient,
    TMDBError,
    extract_tmdb_id,
    similarity_score,
)

MATRIX = {
    "id": 603,
    "title": "The Matrix",
    "original_title": "The Matrix",
    "release_date": "1999-03-30",
    "genre_ids": [28, 878],
    "overview": "A hacker learns the truth.",
    "poster_path": "/matrix.jpg",
    "popularity": 80.0,
    "vote_average": 8.2,
}

MOVIE_GENRES = {"genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}]}


class FakeResponse:

    def __init__(self, data=None, status_code=200, headers=None):
        self._data = data or {}
        self.status_code = status_code
        self.headers = headers or {}

    def json(self):
        return self._data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class FakeTMDB:
    """Routes ``requests.get`` calls by endpoint.

    A route is a response, an exception instance, or a list of those
    consumed in order (the last one repeats).
    """

    def __init__(self):
        self.routes = {
            "/genre/movie/list": FakeResponse(MOVIE_GENRES),
            "/genre/tv/list": FakeResponse({"genres": [{"id": 18, "name": "Drama"}]}),
        }
        self.calls = []

    def get(self, url, params=None, timeout=None):
        endpoint = url[len(TMDB_BASE_URL):]
        self.calls.append((endpoint, dict(params or {})))
        route = self.routes.get(endpoint, FakeResponse(status_code=404))
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if isinstance(route, Exception):
            raise route
        return route

    def endpoints(self):
        return [endpoint for endpoint, _ in self.calls]


@pytest.fixture
def fake_tmdb(monkeypatch):
    fake = FakeTMDB()
    sleeps = []
    monkeypatch.setattr("mediacatalog.tmdb.requests.get", fake.get)
    monkeypatch.setattr("mediacatalog.tmdb.time.sleep", sleeps.append)
    fake.sleeps = sleeps
    return fake


@pytest.fixture
def client(fake_tmdb):
    return TMDBClient(api_key="test-key", cache=Cache(persist=False))


class TestSearch:

    def test_exact_match_with_year(self, fake_tmdb, client):
        fake_tmdb.routes["/search/movie"] = FakeResponse({"results": [MATRIX]})

        record = client.search("The Matrix", 1999, "movie")

        assert record.id == 603
        assert record.media_type == "movie"
        assert record.release_date == "1999-03-30"
        assert record.genre_names == ["Action", "Science Fiction"]
        assert record.confidence == 1.0
        params = dict(fake_tmdb.calls[0][1])
        assert params["query"] == "The Matrix"
        assert params["year"] == 1999
        assert params["language"] == "en-US"

    def test_weak_match_is_rejected(self, fake_tmdb, client):
        fake_tmdb.routes["/search/movie"] = FakeResponse(
            {"results": [{"id": 1, "title": "Completely Different"}]}
        )
        assert client.search("The Matrix", None, "movie") is None

    def test_multi_search_drops_people(self, fake_tmdb, client):
        fake_tmdb.routes["/search/multi"] = FakeResponse({"results": [
            {"media_type": "person", "id": 1, "name": "The Office"},
            {"media_type": "tv", "id": 2316, "name": "The Office",
             "first_air_date": "2005-03-24", "genre_ids": [18]},
        ]})

        record = client.search("The Office")

        assert record.media_type == "tv"
        assert record.id == 2316
        assert record.release_date == "2005-03-24"
        assert record.genre_names == ["Drama"]

    def test_year_breaks_ties(self, fake_tmdb, client):
        remake = {**MATRIX, "id": 1, "release_date": "2021-01-01", "popularity": 0}
        fake_tmdb.routes["/search/movie"] = FakeResponse({"results": [remake, MATRIX]})
        assert client.search("The Matrix", 1999, "movie").id == 603

    def test_results_are_cached(self, fake_tmdb, client):
        fake_tmdb.routes["/search/movie"] = FakeResponse({"results": [MATRIX]})
        client.search("The Matrix", 1999, "movie")
        again = client.search("The Matrix", 1999, "movie")

        assert again.id == 603
        assert fake_tmdb.endpoints().count("/search/movie") == 1

    def test_genre_table_fetched_once(self, fake_tmdb, client):
        fake_tmdb.routes["/search/movie"] = FakeResponse({"results": [MATRIX]})
        client.search("The Matrix", 1999, "movie")
        client.search("The Matrix", None, "movie")
        assert fake_tmdb.endpoints().count("/genre/movie/list") == 1


class TestRequests:

    def test_rate_limited_request_is_retried(self, fake_tmdb, client):
        fake_tmdb.routes["/search/movie"] = [
            FakeResponse(status_code=429, headers={"Retry-After": "2"}),
            FakeResponse({"results": [MATRIX]}),
        ]
        assert client.search("The Matrix", 1999, "movie").id == 603
        assert 2 in fake_tmdb.sleeps

    def test_retry_after_date_waits_one_second(self, fake_tmdb, client):
        fake_tmdb.routes["/search/movie"] = [
            FakeResponse(status_code=429, headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"}),
            FakeResponse({"results": [MATRIX]}),
        ]
        assert client.search("The Matrix", 1999, "movie").id == 603
        assert 1.0 in fake_tmdb.sleeps

    def test_network_errors_give_up_after_retries(self, fake_tmdb, client):
        fake_tmdb.routes["/search/movie"] = requests.exceptions.ConnectionError("down")
        assert client.search("The Matrix", None, "movie") is None
        assert fake_tmdb.endpoints().count("/search/movie") == 3

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("TMDB_API_KEY", raising=False)
        monkeypatch.setattr("mediacatalog.tmdb.load_env_files", lambda: None)
        with pytest.raises(TMDBError, match="API key not found"):
            TMDBClient(cache=Cache(persist=False))

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("TMDB_API_KEY", "from-env")
        assert TMDBClient(cache=Cache(persist=False)).api_key == "from-env"


class TestLookup:

    def test_explicit_id(self, fake_tmdb, client):
        fake_tmdb.routes["/movie/438631"] = FakeResponse({
            "id": 438631,
            "title": "Dune",
            "release_date": "2021-09-15",
            "genres": [{"id": 878, "name": "Science Fiction"}],
        })

        record = client.lookup("Dune (438631)", None, "movie")

        assert record.id == 438631
        assert record.genre_names == ["Science Fiction"]
        assert record.confidence == 1.0
        assert not any(e.startswith("/search") for e in fake_tmdb.endpoints())

    def test_unknown_id_falls_back_to_search(self, fake_tmdb, client):
        fake_tmdb.routes["/search/movie"] = FakeResponse({"results": [
            {"id": 438631, "title": "Dune", "release_date": "2021-09-15"},
        ]})

        record = client.lookup("Dune (999999)", None, "movie")

        assert record.id == 438631
        assert "/movie/999999" in fake_tmdb.endpoints()
        search_params = [p for e, p in fake_tmdb.calls if e == "/search/movie"]
        assert search_params[0]["query"] == "Dune"

    def test_generic_title_uses_folder_name(self, fake_tmdb, client):
        fake_tmdb.routes["/search/movie"] = FakeResponse({"results": [
            {"id": 27205, "title": "Inception", "release_date": "2010-07-15"},
        ]})

        record = client.lookup("电影", "Inception.2010.1080p", "movie")

        assert record.id == 27205
        search_params = [p for e, p in fake_tmdb.calls if e == "/search/movie"]
        assert [(p["query"], p.get("year")) for p in search_params] == [("Inception", 2010)]

    def test_nothing_searchable(self, fake_tmdb, client):
        assert client.lookup("S01", None, "tv") is None
        assert fake_tmdb.calls == []

    def test_async_lookup(self, fake_tmdb, client):
        fake_tmdb.routes["/search/tv"] = FakeResponse({"results": [
            {"id": 1396, "name": "Breaking Bad", "first_air_date": "2008-01-20"},
        ]})
        record = asyncio.run(client.async_lookup("Breaking Bad", None, "tv"))
        assert record.id == 1396
        assert record.title == "Breaking Bad"


class TestHelpers:

    @pytest.mark.parametrize("name,expected", [
        ("Dune (438631)", ("Dune", 438631)),
        ("流浪地球（535167）.mkv", ("流浪地球", 535167)),
        ("Avatar (2009)", None),
        ("Plain Title", None),
        ("(12345)", None),
    ])
    def test_extract_tmdb_id(self, name, expected):
        assert extract_tmdb_id(name) == expected

    def test_similarity_ignores_case_and_punctuation(self):
        assert similarity_score("Spider-Man", "spiderman") == 1.0
        assert similarity_score("Alien", "Aliens") > 0.8
