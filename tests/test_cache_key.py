"""Tests for repostats.cache_key — GitHub URL parsing and cache key derivation."""

import pytest

from repostats.cache_key import KEY_SEPARATOR, key_for, make_cache_key, parse_repo_url


# ── Valid URLs ──────────────────────────────────────────────────
@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://github.com/fastapi/fastapi", ("fastapi", "fastapi")),
        ("https://github.com/owner/repo/", ("owner", "repo")),
        ("https://github.com/owner/repo.git", ("owner", "repo")),
        ("http://github.com/owner/repo", ("owner", "repo")),
        ("github.com/owner/repo", ("owner", "repo")),
        ("https://github.com/owner/repo/tree/main/src", ("owner", "repo")),
        ("https://github.com/owner/repo?tab=readme", ("owner", "repo")),
        ("https://www.github.com/some-org/my_repo.py", ("some-org", "my_repo.py")),
        ("  https://github.com/owner/repo  ", ("owner", "repo")),
    ],
)
def test_parse_valid_url(url: str, expected: tuple[str, str]):
    assert parse_repo_url(url) == expected


# ── Invalid URLs ────────────────────────────────────────────────
@pytest.mark.parametrize(
    "url",
    [
        "",
        "   ",
        "not-a-url",
        "https://gitlab.com/owner/repo",
        "https://github.com/",
        "https://github.com/owner",
        "https://github.com/owner/",
        "https://github.com/owner/.git",
    ],
)
def test_parse_invalid_url(url: str):
    with pytest.raises(ValueError):
        parse_repo_url(url)


@pytest.mark.parametrize(
    "url",
    ["", "https://github.com/owner", "https://example.com/a/b", "github.com"],
)
def test_unresolvable_url_has_empty_key(url: str):
    assert make_cache_key(url) == ""


# ── Key derivation ─────────────────────────────────────────────
def test_key_joins_owner_and_repo():
    assert make_cache_key("https://github.com/acme/widgets.git") == "acme__widgets"


def test_key_ignores_scheme_and_git_suffix():
    variants = [
        "https://github.com/acme/widgets",
        "https://github.com/acme/widgets.git",
        "http://github.com/acme/widgets",
        "http://github.com/acme/widgets.git",
        "github.com/acme/widgets",
    ]
    assert {make_cache_key(u) for u in variants} == {"acme__widgets"}


def test_key_has_no_slashes():
    key = make_cache_key("https://github.com/acme/widgets/issues/12")
    assert "/" not in key
    assert key.split(KEY_SEPARATOR) == ["acme", "widgets"]


def test_distinct_repos_get_distinct_keys():
    assert make_cache_key("https://github.com/a/b") != make_cache_key("https://github.com/b/a")


def test_key_for_matches_url_key():
    url = "https://github.com/acme/widgets.git"
    assert key_for(*parse_repo_url(url)) == make_cache_key(url) == "acme__widgets"
