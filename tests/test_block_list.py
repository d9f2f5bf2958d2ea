import pytest

from focusshield.core.errors import BlockListError
from focusshield.file_handlers import block_list as block_list_module
from focusshield.file_handlers.block_list import (
    BlockListHandler,
    expand_www_variants,
    normalize_domain,
)
from focusshield.utils.config import DEFAULT_BLOCK_LIST


@pytest.mark.parametrize("raw, expected", [
    ("reddit.com", "reddit.com"),
    ("  Reddit.COM  ", "reddit.com"),
    ("https://www.reddit.com/r/all", "reddit.com"),
    ("http://news.ycombinator.com:443/item?id=1", "news.ycombinator.com"),
    ("www.youtube.com.", "youtube.com"),
    ("youtube.com#top", "youtube.com"),
    ("", ""),
])
def test_normalize_domain(raw, expected):
    assert normalize_domain(raw) == expected


def test_expand_www_variants():
    assert expand_www_variants("foo.com") == ["foo.com", "www.foo.com"]
    assert expand_www_variants("blog.foo.com") == ["blog.foo.com"]


def test_first_load_seeds_defaults(tmp_path):
    path = tmp_path / "state" / "blocklist.txt"
    handler = BlockListHandler(str(path))

    domains = handler.load()

    assert len(domains) == 2 * len(DEFAULT_BLOCK_LIST)
    assert "twitter.com" in handler
    assert "www.twitter.com" in handler
    assert path.read_text().splitlines() == sorted(domains)


def test_load_skips_comments_and_duplicates(tmp_path):
    path = tmp_path / "blocklist.txt"
    path.write_text("# my list\n\nReddit.com\nreddit.com\n  x.com  \n")

    handler = BlockListHandler(str(path))
    assert handler.load() == ["reddit.com", "x.com"]


def test_add_includes_www_variant(block_list):
    size = len(block_list)

    assert block_list.add("foo.com") == ["foo.com", "www.foo.com"]
    assert block_list.add("foo.com") == []
    assert block_list.add("https://www.FOO.com/") == []

    assert len(block_list) == size + 2


def test_add_subdomain_has_no_www_variant(block_list):
    assert block_list.add("blog.example.org") == ["blog.example.org"]


def test_add_persists(block_list):
    block_list.add("foo.com")

    reloaded = BlockListHandler(block_list.block_list_path)
    reloaded.load()
    assert "foo.com" in reloaded
    assert "www.foo.com" in reloaded


def test_add_existing_default_changes_nothing(block_list):
    size = len(block_list)
    assert block_list.add("twitter.com") == []
    assert len(block_list) == size


def test_add_fills_in_missing_www_variant(tmp_path):
    path = tmp_path / "blocklist.txt"
    path.write_text("foo.com\n")
    handler = BlockListHandler(str(path))
    handler.load()

    assert handler.add("foo.com") == ["www.foo.com"]


@pytest.mark.parametrize("bad", ["", "   ", "https://", "localhost", "127.0.0.1", "bad_domain!.com"])
def test_add_rejects_invalid_input(block_list, bad):
    size = len(block_list)
    with pytest.raises(BlockListError):
        block_list.add(bad)
    assert len(block_list) == size


def test_remove_removes_www_variant(block_list):
    assert block_list.remove("www.reddit.com") == ["reddit.com", "www.reddit.com"]
    assert "reddit.com" not in block_list

    reloaded = BlockListHandler(block_list.block_list_path)
    reloaded.load()
    assert "www.reddit.com" not in reloaded


def test_remove_missing_changes_nothing(block_list):
    before = block_list.sorted()
    assert block_list.remove("example.com") == []
    assert block_list.sorted() == before


def test_remove_empty_is_an_error(block_list):
    with pytest.raises(BlockListError):
        block_list.remove("  ")


def test_failed_save_leaves_block_list_unchanged(block_list, monkeypatch):
    before = block_list.sorted()

    def disk_full(src, dst):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(block_list_module.os, "replace", disk_full)
    with pytest.raises(BlockListError):
        block_list.add("example.com")
    with pytest.raises(BlockListError):
        block_list.remove("reddit.com")
    monkeypatch.undo()

    assert block_list.sorted() == before
    reloaded = BlockListHandler(block_list.block_list_path)
    reloaded.load()
    assert reloaded.sorted() == before
