"""
Ranking of server-offered candidates against parsed Accept-* headers.

Each dimension follows the same rules:

- Without candidates, the header's own tokens with q > 0 are returned,
  most preferred first. An absent header gives the dimension's wildcard
  ("*/*" for media types, "*" otherwise).
- With candidates, each candidate takes the q-value of its most specific
  matching header entry. Candidates matched by nothing, or whose best match
  has q=0, are not acceptable. When the header is absent every candidate is
  acceptable and the caller's order is kept.

Ties are broken by the candidate's position in the caller's list, so the
server's own order of preference decides between equally weighted options.
"""
from collections.abc import Callable, Sequence
from typing import TypeVar

from accepts.headers import HeaderEntry
from accepts.mediatype import MediaType, matches, parse_media_type

T = TypeVar("T")

# Returns the specificity of a match, or None when the entry does not apply.
Matcher = Callable[[HeaderEntry, T], int | None]


def _ranked_tokens(
    entries: list[HeaderEntry] | None, by_specificity: bool, absent: str
) -> list[str]:
    # An absent header accepts anything, spelled as the dimension's wildcard
    if entries is None:
        return [absent]
    accepted = [e for e in entries if e.q > 0]
    accepted.sort(key=lambda e: (-e.q, -e.specificity if by_specificity else 0, e.order))
    return [e.token for e in accepted]


def _best_match(
    entries: list[HeaderEntry], candidate: T, match: Matcher
) -> tuple[float, int] | None:
    """
    Finds the entry governing a candidate: the most specific one, then the
    one with most parameters, then the highest q, then the earliest.
    Returns its (q, specificity), or None if the candidate is not acceptable.
    """
    best: tuple[float, int] | None = None
    best_key: tuple[int, int, float, int] | None = None
    for entry in entries:
        specificity = match(entry, candidate)
        if specificity is None:
            continue
        key = (specificity, len(entry.params), entry.q, -entry.order)
        if best_key is None or key > best_key:
            best_key = key
            best = (entry.q, specificity)

    # An explicit q=0 rejects the candidate even if a wildcard would accept it
    if best is None or best[0] <= 0:
        return None
    return best


def rank(
    entries: list[HeaderEntry] | None,
    candidates: Sequence[T | None],
    match: Matcher,
    by_specificity: bool = False,
) -> list[int]:
    """
    Ranks candidates and returns their indices, most preferred first.
    None candidates (unusable input) are never selected.
    """
    if entries is None:
        return [i for i, c in enumerate(candidates) if c is not None]

    ranked: list[tuple[float, int, int]] = []
    for index, candidate in enumerate(candidates):
        if candidate is None:
            continue
        best = _best_match(entries, candidate, match)
        if best is None:
            continue
        q, specificity = best
        ranked.append((-q, -specificity if by_specificity else 0, index))

    ranked.sort()
    return [index for _, _, index in ranked]


def match_media_type(entry: HeaderEntry, candidate: MediaType) -> int | None:
    result = matches(entry, candidate)
    return result.specificity if result.matched else None


def match_token(entry: HeaderEntry, candidate: str) -> int | None:
    """Exact, case-insensitive token match, or the "*" wildcard."""
    if entry.token == "*":
        return 0
    if entry.token.lower() == candidate.strip().lower():
        return 1
    return None


def match_language(entry: HeaderEntry, candidate: str) -> int | None:
    """
    Language ranges match the exact tag, tags sharing their primary subtag
    ("en" covers "en-US" and "en-US" covers "en"), or anything for "*".
    """
    if entry.token == "*":
        return 0
    accepted = entry.token.lower()
    offered = candidate.strip().lower()
    if accepted == offered:
        return 3
    if accepted == offered.split("-")[0]:
        return 2
    if accepted.split("-")[0] == offered:
        return 1
    return None


def with_implicit_identity(entries: list[HeaderEntry]) -> list[HeaderEntry]:
    """
    Adds "identity;q=1" unless the header names identity itself or
    rejects everything unlisted with "*;q=0".
    """
    if any(e.token.lower() == "identity" for e in entries):
        return entries
    if any(e.token == "*" and e.q <= 0 for e in entries):
        return entries
    order = entries[-1].order + 1 if entries else 0
    return [*entries, HeaderEntry("identity", 1.0, 1, order)]


def _select(candidates: Sequence[str], indices: list[int]) -> list[str]:
    return [candidates[i] for i in indices]


def preferred_media_types(
    entries: list[HeaderEntry] | None, candidates: Sequence[str] | None = None
) -> list[str]:
    if not candidates:
        return _ranked_tokens(entries, by_specificity=True, absent="*/*")
    if entries is None:
        return list(candidates)
    parsed = [parse_media_type(c) for c in candidates]
    return _select(candidates, rank(entries, parsed, match_media_type, by_specificity=True))


def preferred_encodings(
    entries: list[HeaderEntry] | None, candidates: Sequence[str] | None = None
) -> list[str]:
    if not candidates:
        return _ranked_tokens(entries, by_specificity=False, absent="*")
    if entries is None:
        return list(candidates)
    return _select(candidates, rank(with_implicit_identity(entries), candidates, match_token))


def preferred_charsets(
    entries: list[HeaderEntry] | None, candidates: Sequence[str] | None = None
) -> list[str]:
    if not candidates:
        return _ranked_tokens(entries, by_specificity=False, absent="*")
    return _select(candidates, rank(entries, candidates, match_token))


def preferred_languages(
    entries: list[HeaderEntry] | None, candidates: Sequence[str] | None = None
) -> list[str]:
    if not candidates:
        return _ranked_tokens(entries, by_specificity=False, absent="*")
    return _select(candidates, rank(entries, candidates, match_language))
