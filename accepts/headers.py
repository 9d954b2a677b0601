"""
HTTP Accept-* header parsing utilities.

Every Accept-style header is a comma separated list of items, each item a
token followed by optional ``;key=value`` parameters. The ``q`` parameter
carries the client's preference weight; the others are kept as metadata.
"""
import logging
import math
from typing import NamedTuple

logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 1.0  # Default q-factor is 1.0 per RFC

Params = tuple[tuple[str, str], ...]


class HeaderEntry(NamedTuple):
    token: str
    q: float
    specificity: int
    order: int
    params: Params = ()


def parse_params(components: list[str]) -> dict[str, str]:
    """
    Parses ``key=value`` parameter strings into a dict with lower-cased keys.
    Quoted values are unquoted. Parameters without ``=`` are ignored.
    """
    params: dict[str, str] = {}
    for param in components:
        key, sep, value = param.partition("=")
        key = key.strip().lower()
        if not sep or not key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        params[key] = value
    return params


def parse_quality(value: str | None) -> float | None:
    """
    Converts a raw q-value to a float in [0, 1].
    Out of range values are clamped; unparseable values give None.
    """
    if value is None:
        return DEFAULT_QUALITY
    try:
        q_val = float(value)
    except ValueError:
        return None
    if math.isnan(q_val):
        return None
    return min(max(q_val, 0.0), 1.0)


def parse_part(part: str, order: int) -> HeaderEntry | None:
    """
    Parses a single item of an Accept-* header (e.g., "gzip;q=0.8").
    Returns a HeaderEntry or None if the item is invalid.

    The specificity is 1 for a concrete token and 0 for the "*" wildcard;
    media ranges refine it in ``accepts.mediatype``.
    """
    part = part.strip()
    if not part:
        return None

    components = part.split(";")
    token = components[0].strip()
    if not token:
        logger.debug("Dropping accept item without a token: %r", part)
        return None

    # A bare "q" without a value is a truncated q-value
    if any(c.strip().lower() == "q" for c in components[1:]):
        logger.debug("Dropping accept item with truncated q-value: %r", part)
        return None

    params = parse_params(components[1:])
    q_val = parse_quality(params.pop("q", None))
    if q_val is None:
        logger.debug("Dropping accept item with malformed q-value: %r", part)
        return None

    specificity = 0 if token == "*" else 1
    return HeaderEntry(token, q_val, specificity, order, tuple(params.items()))


def parse_header(value: str | None) -> list[HeaderEntry] | None:
    """
    Parses a whole Accept-* header value.

    Returns None when the header is absent, which callers must treat
    differently from a present header that yields no entries.
    """
    if value is None:
        return None

    entries: list[HeaderEntry] = []
    for order, part_str in enumerate(value.split(",")):
        parsed = parse_part(part_str, order)
        if parsed:
            entries.append(parsed)
    return entries
