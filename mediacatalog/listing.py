"""Directory listing services.

Both listers expose ``async list_directory(path) -> list[RawEntry]``.
An empty directory yields ``[]``; every other failure raises
``ListingError`` so the walker can skip the path.
"""
import asyncio
import logging
import os
from pathlib import Path
from urllib.parse import quote

import requests

from .models import RawEntry

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15


class ListingError(Exception):
    """Exception raised when a directory cannot be listed."""
    pass


class AListClient:
    """Client for the AList file-listing HTTP API."""

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the client. No request is made until the first listing.

        Args:
            base_url: Server root, e.g. ``https://alist.example.com``
            username: Login name
            password: Login password
            session: Optional session, mainly for tests
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token: str | None = None

    def _post(self, endpoint: str, payload: dict, headers: dict | None = None) -> dict:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise ListingError(f"POST {endpoint} failed: {e}") from e
        except ValueError as e:
            raise ListingError(f"POST {endpoint} returned invalid JSON") from e

    def login(self) -> str:
        """
        Authenticate and store the session token.

        Raises:
            ListingError: If the server rejects the credentials
        """
        data = self._post("/api/auth/login", {
            "username": self.username,
            "password": self.password,
        })
        token = (data.get("data") or {}).get("token")
        if data.get("code", 200) != 200 or not token:
            raise ListingError(f"AList login failed: {data.get('message', 'no token returned')}")
        self.token = token
        log.info("AList login successful")
        return token

    def list_directory_sync(self, path: str, _retry: bool = True) -> list[RawEntry]:
        """
        List one directory.

        Args:
            path: Absolute path on the AList server

        Returns:
            Entries in server order; ``[]`` for an empty directory

        Raises:
            ListingError: On network, HTTP or API-level failure
        """
        if not self.token:
            self.login()

        data = self._post(
            "/api/fs/list",
            {"path": path, "password": "", "page": 1, "per_page": 0, "refresh": False},
            headers={"Authorization": self.token},
        )
        code = data.get("code", 200)
        if code == 401 and _retry:
            log.info("AList token expired, logging in again")
            self.token = None
            return self.list_directory_sync(path, _retry=False)
        if code != 200:
            raise ListingError(f"Listing {path} failed ({code}): {data.get('message', '')}")

        content = (data.get("data") or {}).get("content") or []
        log.debug("Listed %s: %d items", path, len(content))
        return [
            RawEntry(
                name=item["name"],
                is_directory=bool(item.get("is_dir")),
                signature=item.get("sign") or None,
                size=item.get("size"),
            )
            for item in content
        ]

    async def list_directory(self, path: str) -> list[RawEntry]:
        return await asyncio.to_thread(self.list_directory_sync, path)

    def file_url(self, path: str, signature: str | None = None) -> str:
        """Direct download URL for a file."""
        url = f"{self.base_url}/d{quote(path)}"
        if signature:
            url += f"?sign={signature}"
        return url


class LocalDirectoryLister:
    """Lists directories on the local filesystem, for offline scans."""

    def list_directory_sync(self, path: str) -> list[RawEntry]:
        try:
            with os.scandir(path) as it:
                entries = sorted(it, key=lambda e: e.name)
                return [
                    RawEntry(
                        name=entry.name,
                        is_directory=entry.is_dir(),
                        size=None if entry.is_dir() else entry.stat().st_size,
                    )
                    for entry in entries
                ]
        except OSError as e:
            raise ListingError(f"Cannot list {path}: {e}") from e

    async def list_directory(self, path: str) -> list[RawEntry]:
        return await asyncio.to_thread(self.list_directory_sync, path)

    def file_url(self, path: str, signature: str | None = None) -> str:
        return Path(path).resolve().as_uri()
