"""
GitHub repository URL → cache key resolution.

Accepted forms (anything containing ``github.com/<owner>/<repo>``):
  https://github.com/owner/repo
  https://github.com/owner/repo.git
  http://github.com/owner/repo/tree/main
  github.com/owner/repo

The key joins owner and repo with ``__``. Store keys may not contain ``/``
(document paths need an even number of segments), and ``__`` never shows up
in a GitHub owner name.
"""

from __future__ import annotations

import re

KEY_SEPARATOR = "__"

_REPO_REF_RE = re.compile(
    r"github\.com/"
    r"(?P<owner>[^/?#\s]+)/"
    r"(?P<repo>[^/?#\s]+)"
)


def parse_repo_url(url: str) -> tuple[str, str]:
    """Return (owner, repo) from a GitHub repository URL.

    Raises ``ValueError`` with a descriptive message when the URL does not
    reference a repository.
    """
    if not url or not url.strip():
        raise ValueError("Repository URL must not be empty.")

    match = _REPO_REF_RE.search(url.strip())
    if not match:
        raise ValueError(
            f"Invalid GitHub repository URL: '{url.strip()}'. "
            "Expected format: https://github.com/owner/repo"
        )

    owner = match.group("owner")
    repo = match.group("repo")
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not repo:
        raise ValueError(f"Invalid GitHub repository URL: '{url.strip()}'.")
    return owner, repo


def key_for(owner: str, repo: str) -> str:
    return f"{owner}{KEY_SEPARATOR}{repo}"


def make_cache_key(url: str) -> str:
    """Return the cache key for *url*, or ``""`` when it is not cacheable."""
    try:
        owner, repo = parse_repo_url(url)
    except ValueError:
        return ""
    return key_for(owner, repo)
