"""
Search predicate, result ordering, and hostname expansion.

Ordering is a documented total order so equal inputs always give equal
output, whatever order the engines finished in:

    engines:  personal first, then name (case-folded, then raw)
    secrets:  match rank, personal first, full name (case-folded, then raw)

The match rank of a secret is the index of the first search term equal to
its name (case-insensitive). Search terms from expand_domain() run from most
to least specific, so "mail.example.com" outranks "example.com"; secrets
that only matched as substrings rank after every exact match.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from vaultpass.vault.models import Secret, SecretEngine

# co, com, gov, blog | co.uk, com.br, gov.us, blog.br
_BARE_TLD = re.compile(r"^[a-z]{2,4}(\.[a-z]{2})?$", re.IGNORECASE)


def normalize_terms(terms: str | Sequence[str] | None) -> list[str]:
    """Usable search terms: non-empty, non-blank strings."""
    if terms is None:
        return []
    if isinstance(terms, str):
        terms = [terms]
    return [t for t in terms if isinstance(t, str) and t.strip()]


def text_match(terms: str | Sequence[str] | None, name: str | None, case_sensitive: bool = False) -> bool:
    """True when ``name`` contains any term, or when there is nothing to match."""
    usable = normalize_terms(terms)
    if not usable:
        return True
    if not name:
        return False
    if not case_sensitive:
        name = name.lower()
        usable = [t.lower() for t in usable]
    return any(t in name for t in usable)


def match_rank(secret: Secret, terms: Sequence[str]) -> int:
    name = secret.name.casefold()
    for i, term in enumerate(terms):
        if term.casefold() == name:
            return i
    return len(terms)


def sort_engines(engines: Iterable[SecretEngine]) -> list[SecretEngine]:
    return sorted(engines, key=lambda e: (not e.is_personal, e.name.casefold(), e.name))


def sort_secrets(secrets: Iterable[Secret], terms: str | Sequence[str] | None = None) -> list[Secret]:
    usable = normalize_terms(terms)
    return sorted(
        secrets,
        key=lambda s: (
            match_rank(s, usable),
            not s.is_personal,
            s.full_name.casefold(),
            s.full_name,
        ),
    )


def remove_subdomain(host: str) -> str:
    """Drop the left-most label; "" when only a registrable domain would remain.

    >>> remove_subdomain("sub1.domain.com.br")
    'domain.com.br'
    >>> remove_subdomain("domain.com.br")
    ''
    """
    labels = host.split(".")
    if len(labels) <= 2:
        return ""
    parent = ".".join(labels[1:])
    if _BARE_TLD.match(parent):
        return ""
    return parent


def expand_domain(host: str) -> list[str]:
    """["a.b.example.com", "b.example.com", "example.com"] for "a.b.example.com"."""
    results = []
    while host:
        results.append(host)
        host = remove_subdomain(host)
    return results
