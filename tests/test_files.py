"""
Tests for the retrying reader and the folder listing.
"""

import asyncio

import pytest
from conftest import write

from dnaweb import files
from dnaweb.files import get_directory_files, matches_extension, read_all_text_async


def _flaky_reader(monkeypatch, failures: int, text: str = "text"):
    """Make read_all_text fail with OSError a number of times, then succeed."""
    calls = []

    def read_all_text(path):
        calls.append(path)
        if len(calls) <= failures:
            raise PermissionError("locked by another process")
        return text

    monkeypatch.setattr(files, "read_all_text", read_all_text)
    monkeypatch.setattr(files, "READ_RETRY_DELAY", 0)
    return calls


class TestReadAllTextAsync:
    def test_succeeds_on_the_third_attempt(self, monkeypatch):
        calls = _flaky_reader(monkeypatch, failures=2)

        assert asyncio.run(read_all_text_async("page.dnaweb")) == "text"
        assert len(calls) == 3

    def test_gives_up_after_three_attempts(self, monkeypatch):
        calls = _flaky_reader(monkeypatch, failures=3)

        with pytest.raises(PermissionError):
            asyncio.run(read_all_text_async("page.dnaweb"))
        assert len(calls) == 3

    def test_missing_file_is_not_retried(self, monkeypatch, site):
        monkeypatch.setattr(files, "READ_RETRY_DELAY", 0)
        calls = []
        read_all_text = files.read_all_text

        def counting(path):
            calls.append(path)
            return read_all_text(path)

        monkeypatch.setattr(files, "read_all_text", counting)

        with pytest.raises(FileNotFoundError):
            asyncio.run(read_all_text_async(str(site / "gone.dnaweb")))
        assert len(calls) == 1

    def test_keeps_line_endings(self, site):
        path = write(site, "page.dnaweb", "a\r\nb\n")

        assert asyncio.run(read_all_text_async(str(path))) == "a\r\nb\n"


class TestDirectoryFiles:
    def test_sorted_recursive_listing(self, site):
        write(site, "b.dnaweb", "")
        write(site, "a.dnaweb", "")
        write(site, "sub/c.dnaweb", "")
        write(site, "notes.txt", "")

        assert get_directory_files(str(site), [".dnaweb"]) == [
            str(site / "a.dnaweb"), str(site / "b.dnaweb"), str(site / "sub" / "c.dnaweb")]

    def test_missing_root(self, site):
        assert get_directory_files(str(site / "nope"), [".dnaweb"]) == []

    def test_extension_match_ignores_case_and_accepts_wildcards(self):
        assert matches_extension("/s/Page.DNAWEB", [".dnaweb"])
        assert matches_extension("/s/notes.txt", ["*"])
        assert not matches_extension("/s/notes.txt", [".dnaweb"])
