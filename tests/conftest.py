"""Shared fixtures: an in-memory directory tree and entry builders."""

import asyncio
import posixpath

import pytest

from mediacatalog.listing import ListingError
from mediacatalog.models import FileRef, RawEntry
from mediacatalog.parser import parse_name


class FakeLister:
    """Serves listings for a tree described by slash-separated file paths.

    Every path is relative to "/"; intermediate components become
    directories.  Paths listed in ``failing`` raise ListingError.
    """

    def __init__(self, paths, failing=(), delay=0.0):
        self.tree = {"/": {}}
        self.failing = set(failing)
        self.delay = delay
        self.calls = []
        self.active = 0
        self.peak = 0
        for path in paths:
            parts = path.strip("/").split("/")
            current = "/"
            for i, part in enumerate(parts):
                is_dir = i < len(parts) - 1
                children = self.tree.setdefault(current, {})
                children[part] = children.get(part, False) or is_dir
                current = posixpath.join(current, part)
                if is_dir:
                    self.tree.setdefault(current, {})

    async def list_directory(self, path):
        self.calls.append(path)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
            if path in self.failing:
                raise ListingError(f"cannot list {path}")
            children = self.tree.get(path, {})
            return [RawEntry(name=name, is_directory=is_dir) for name, is_dir in children.items()]
        finally:
            self.active -= 1


@pytest.fixture
def make_lister():
    return FakeLister


def make_file(path):
    """FileRef for a path, parsed with the default preset."""
    name = posixpath.basename(path)
    return FileRef(name=name, path=path, metadata=parse_name(name))


def files(*names):
    return [RawEntry(name=n, is_directory=False) for n in names]


def dirs(*names):
    return [RawEntry(name=n, is_directory=True) for n in names]
