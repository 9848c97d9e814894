"""Tests for the AList client and the local lister"""

import asyncio

import pytest
import requests

from mediacatalog.listing import AListClient, ListingError, LocalDirectoryLister


class FakeResponse:

    def __init__(self, data, status_code=200):
        self._data = data
        self.status_code = status_code

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Answers AList endpoints from queued responses."""

    def __init__(self):
        self.login_responses = [FakeResponse({"code": 200, "data": {"token": "tok-1"}})]
        self.list_responses = []
        self.posts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append((url, json, headers))
        if url.endswith("/api/auth/login"):
            queue = self.login_responses
        else:
            queue = self.list_responses
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response


def listing(*items, code=200):
    return FakeResponse({"code": code, "message": "", "data": {"content": list(items)}})


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(session):
    return AListClient("https://alist.example.com/", "user", "secret", session=session)


class TestAListClient:

    def test_logs_in_then_lists(self, session, client):
        session.list_responses = [listing(
            {"name": "Movie.mkv", "is_dir": False, "sign": "abc", "size": 1024},
            {"name": "Show", "is_dir": True, "sign": "", "size": 0},
        )]

        entries = client.list_directory_sync("/media")

        login, fs_list = session.posts
        assert login[0] == "https://alist.example.com/api/auth/login"
        assert login[1] == {"username": "user", "password": "secret"}
        assert fs_list[1]["path"] == "/media"
        assert fs_list[1]["per_page"] == 0
        assert fs_list[2] == {"Authorization": "tok-1"}

        assert [(e.name, e.is_directory) for e in entries] == [("Movie.mkv", False), ("Show", True)]
        assert entries[0].signature == "abc"
        assert entries[0].size == 1024
        assert entries[1].signature is None

    def test_null_content_is_empty(self, session, client):
        session.list_responses = [FakeResponse({"code": 200, "data": {"content": None}})]
        assert client.list_directory_sync("/empty") == []

    def test_expired_token_logs_in_again(self, session, client):
        session.login_responses = [
            FakeResponse({"code": 200, "data": {"token": "old"}}),
            FakeResponse({"code": 200, "data": {"token": "new"}}),
        ]
        session.list_responses = [listing(code=401), listing({"name": "a.mkv", "is_dir": False})]

        entries = client.list_directory_sync("/media")

        assert [e.name for e in entries] == ["a.mkv"]
        assert client.token == "new"

    def test_api_error_raises(self, session, client):
        session.list_responses = [FakeResponse({"code": 500, "message": "object not found"})]
        with pytest.raises(ListingError, match="object not found"):
            client.list_directory_sync("/missing")

    def test_network_error_raises(self, session, client):
        session.list_responses = [requests.exceptions.ConnectionError("refused")]
        with pytest.raises(ListingError):
            client.list_directory_sync("/media")

    def test_invalid_json_raises(self, session, client):
        session.list_responses = [FakeResponse(ValueError("not json"))]
        with pytest.raises(ListingError, match="invalid JSON"):
            client.list_directory_sync("/media")

    def test_rejected_login(self, session, client):
        session.login_responses = [FakeResponse({"code": 400, "message": "bad password"})]
        with pytest.raises(ListingError, match="bad password"):
            client.login()

    def test_async_listing(self, session, client):
        session.list_responses = [listing({"name": "a.mkv", "is_dir": False})]
        entries = asyncio.run(client.list_directory("/media"))
        assert entries[0].name == "a.mkv"

    def test_file_url(self, client):
        assert client.file_url("/media/My Movie.mkv", "abc") == (
            "https://alist.example.com/d/media/My%20Movie.mkv?sign=abc"
        )
        assert client.file_url("/a.mkv") == "https://alist.example.com/d/a.mkv"


class TestLocalDirectoryLister:

    def test_lists_sorted(self, tmp_path):
        (tmp_path / "b.mkv").write_bytes(b"12345")
        (tmp_path / "a").mkdir()

        entries = asyncio.run(LocalDirectoryLister().list_directory(str(tmp_path)))

        assert [(e.name, e.is_directory) for e in entries] == [("a", True), ("b.mkv", False)]
        assert entries[1].size == 5
        assert entries[0].size is None

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(ListingError):
            LocalDirectoryLister().list_directory_sync(str(tmp_path / "nope"))

    def test_file_url(self, tmp_path):
        url = LocalDirectoryLister().file_url(str(tmp_path / "a.mkv"))
        assert url.startswith("file://")
        assert url.endswith("/a.mkv")
