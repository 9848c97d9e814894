"""Tests for the command line interface"""

import json

import pytest

from mediacatalog.cli import main


@pytest.fixture
def library(tmp_path, monkeypatch):
    """A small local library; the working directory is isolated from real .env files."""
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))

    lib = tmp_path / "lib"
    for relative in (
        "Avatar (2009)/Avatar.2009.1080p.mkv",
        "Show/Season 1/Show.S01E01.mkv",
        "Show/Season 1/Show.S01E02.mkv",
    ):
        path = lib / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"video")
    return lib


class TestScan:

    def test_scan_without_tmdb(self, library, tmp_path, capsys):
        output = tmp_path / "catalog.json"

        code = main(["scan", "--local", str(library), "--no-tmdb", "-o", str(output)])

        assert code == 0
        assert f"Wrote 2 entries to {output}" in capsys.readouterr().out
        document = json.loads(output.read_text(encoding="utf-8"))
        assert document["total"] == 2
        avatar, show = document["movies"]
        assert avatar["title"] == "Avatar"
        assert avatar["release_date"] == "2009"
        assert avatar["files"][0]["url"].startswith("file://")
        assert show["media_type"] == "tv"
        assert show["episode_count"] == 2

    def test_scan_without_api_key_fails(self, library, monkeypatch, capsys):
        monkeypatch.delenv("TMDB_API_KEY", raising=False)
        monkeypatch.setattr("mediacatalog.tmdb.load_env_files", lambda: None)

        code = main(["scan", "--local", str(library)])

        assert code == 1
        assert "TMDB API key not found" in capsys.readouterr().out

    def test_no_roots(self, library, capsys):
        assert main(["scan", "--no-tmdb"]) == 1
        assert "No roots configured" in capsys.readouterr().out

    def test_roots_from_settings_need_alist(self, library, tmp_path, monkeypatch, capsys):
        for variable in ("ALIST_URL", "ALIST_USERNAME", "ALIST_PASSWORD"):
            monkeypatch.delenv(variable, raising=False)
        settings = tmp_path / "settings.json"
        settings.write_text(json.dumps({"roots": ["/media"]}), encoding="utf-8")

        assert main(["scan", "-c", str(settings), "--no-tmdb"]) == 1
        assert "AList connection is not configured" in capsys.readouterr().out

    def test_bad_settings_file(self, library, tmp_path, capsys):
        assert main(["scan", "-c", str(tmp_path / "missing.json")]) == 1
        assert "Settings file not found" in capsys.readouterr().out


class TestAnalyze:

    def test_report(self, library, capsys):
        assert main(["analyze", "--local", str(library)]) == 0
        out = capsys.readouterr().out
        assert "Structure:        categorized" in out
        assert "1 movies, 1 TV shows" in out
        assert "Recommended preset: default" in out

    def test_missing_directory(self, library, tmp_path, capsys):
        assert main(["analyze", "--local", str(tmp_path / "nope")]) == 1
        assert "Not a directory" in capsys.readouterr().out

    def test_max_depth_option(self, library, capsys):
        assert main(["analyze", "--local", str(library), "--max-depth", "1"]) == 0
        assert "Not descended (too deep): 1 directories" in capsys.readouterr().out


class TestPresets:

    def test_lists_presets(self, capsys):
        assert main(["presets"]) == 0
        out = capsys.readouterr().out
        for name in ("default", "chinese", "strict", "loose"):
            assert name in out
