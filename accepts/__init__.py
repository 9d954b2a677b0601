"""
HTTP content negotiation for the Accept, Accept-Encoding, Accept-Charset
and Accept-Language request headers.
"""
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from starlette.datastructures import Headers

from accepts.headers import HeaderEntry, parse_header
from accepts.mediatype import Lookup, classify, parse_accept, resolve
from accepts.mime import lookup as default_lookup
from accepts.negotiator import (
    match_media_type,
    preferred_charsets,
    preferred_encodings,
    preferred_languages,
    preferred_media_types,
    rank,
)

__all__ = ["Accepts", "HeaderEntry", "default_lookup"]

logger = logging.getLogger(__name__)

NEGOTIATED_HEADERS = ("accept", "accept-encoding", "accept-charset", "accept-language")


def _snapshot(headers: Mapping[str, str]) -> dict[str, str]:
    """
    Copies the negotiation headers out of a mapping. Keys are matched
    case-insensitively; repeated headers are joined with ",".
    """
    if hasattr(headers, "getlist"):
        values = {
            name: ", ".join(headers.getlist(name))
            for name in NEGOTIATED_HEADERS
            if name in headers
        }
    else:
        values = {}
        for key, value in headers.items():
            name = key.lower()
            if name in NEGOTIATED_HEADERS:
                values[name] = f"{values[name]}, {value}" if name in values else value
    return values


class Accepts:
    """
    Content negotiation for a single request.

    Each method takes the representations the server can produce and returns
    the one the client prefers as a one-item list, or an empty list when none
    is acceptable (respond with 406 Not Acceptable). Called without
    candidates, a method returns everything the client accepts, most
    preferred first.

    Examples:

        # Accept: text/*;q=.5, application/json
        accepts.types(["html", "json"])
        # => ["json"]

        # Accept-Language: en;q=0.8, es, pt
        accepts.languages()
        # => ["es", "pt", "en"]
    """

    def __init__(self, headers: Mapping[str, str], lookup: Lookup = default_lookup) -> None:
        self._headers = _snapshot(headers)
        self._lookup = lookup

    @classmethod
    def from_scope(cls, scope: dict[str, Any], lookup: Lookup = default_lookup) -> "Accepts":
        """
        Builds an Accepts for an ASGI HTTP connection scope.
        """
        return cls(Headers(scope=scope), lookup=lookup)

    def _header(self, name: str) -> str | None:
        return self._headers.get(name)

    def types(self, types: Sequence[str] | None = None) -> list[str]:
        """
        Returns the best of the given media types or extensions, such as
        "application/json", "json" or ["json", "html", "text/plain"].
        The winning candidate is returned as given.
        """
        accept = parse_accept(self._header("accept"))

        # no types, return all requested types
        if not types:
            return preferred_media_types(accept)

        # no accept header, return first given type
        if accept is None:
            return [types[0]]

        media_types = []
        for candidate in types:
            media_type = resolve(classify(candidate), self._lookup)
            if media_type is None:
                logger.debug("Ignoring unresolvable type candidate %r", candidate)
            media_types.append(media_type)

        ranked = rank(accept, media_types, match_media_type, by_specificity=True)
        return [types[ranked[0]]] if ranked else []

    def encodings(self, encodings: Sequence[str] | None = None) -> list[str]:
        """
        Returns accepted encodings or the best fit among `encodings`.

        Given `Accept-Encoding: gzip, deflate`, ``encodings()`` returns
        ["gzip", "deflate"]. "identity" is acceptable unless the header
        rejects it.
        """
        entries = parse_header(self._header("accept-encoding"))
        return self._best(preferred_encodings(entries, encodings), encodings)

    def charsets(self, charsets: Sequence[str] | None = None) -> list[str]:
        """
        Returns accepted charsets or the best fit among `charsets`.

        Given `Accept-Charset: utf-8, iso-8859-1;q=0.2, utf-7;q=0.5`,
        ``charsets()`` returns ["utf-8", "utf-7", "iso-8859-1"].
        """
        entries = parse_header(self._header("accept-charset"))
        return self._best(preferred_charsets(entries, charsets), charsets)

    def languages(self, languages: Sequence[str] | None = None) -> list[str]:
        """
        Returns accepted languages or the best fit among `languages`.

        Given `Accept-Language: en;q=0.8, es, pt`, ``languages()`` returns
        ["es", "pt", "en"].
        """
        entries = parse_header(self._header("accept-language"))
        return self._best(preferred_languages(entries, languages), languages)

    @staticmethod
    def _best(preferred: list[str], candidates: Sequence[str] | None) -> list[str]:
        if not candidates:
            return preferred
        return preferred[:1]
