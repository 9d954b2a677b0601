"""
Media type parsing and media-range matching for the Accept header.
"""
import logging
from collections.abc import Callable
from typing import NamedTuple

from accepts.headers import HeaderEntry, Params, parse_header, parse_params

logger = logging.getLogger(__name__)

# Parameter values compared without regard to case.
CASE_INSENSITIVE_PARAMS = frozenset({"charset"})

# Specificity of a media range, "*/*" < "type/*" < "type/subtype".
ANY_TYPE = 0
ANY_SUBTYPE = 1
EXACT = 2

Lookup = Callable[[str], str | None]


class MediaType(NamedTuple):
    type: str
    subtype: str
    params: Params = ()

    @property
    def full_type(self) -> str:
        return f"{self.type}/{self.subtype}"


class Extension(NamedTuple):
    name: str


class Match(NamedTuple):
    matched: bool
    specificity: int


NO_MATCH = Match(False, -1)


def parse_media_type(value: str) -> MediaType | None:
    """
    Parses "type/subtype;key=value" into a MediaType.
    Type, subtype and parameter keys are lower-cased.
    """
    components = value.split(";")
    full_type = components[0].strip().lower()
    type_, sep, subtype = full_type.partition("/")
    type_, subtype = type_.strip(), subtype.strip()
    if not sep or not type_ or not subtype or "/" in subtype:
        return None
    params = parse_params(components[1:])
    params.pop("q", None)
    return MediaType(type_, subtype, tuple(params.items()))


def classify(candidate: str) -> Extension | MediaType | None:
    """
    Decides once whether a candidate names a file extension or a media type.
    Returns None for a media type that does not parse.
    """
    if "/" in candidate:
        return parse_media_type(candidate)
    name = candidate.strip().lstrip(".")
    return Extension(name) if name else None


def resolve(candidate: Extension | MediaType | None, lookup: Lookup) -> MediaType | None:
    if candidate is None or isinstance(candidate, MediaType):
        return candidate
    mime = lookup(candidate.name)
    if not mime:
        logger.debug("No media type known for extension %r", candidate.name)
        return None
    return parse_media_type(mime)


def media_range_specificity(token: str) -> int | None:
    type_, _, subtype = token.partition("/")
    if type_ == "*":
        return ANY_TYPE if subtype == "*" else None
    return ANY_SUBTYPE if subtype == "*" else EXACT


def parse_accept(value: str | None) -> list[HeaderEntry] | None:
    """
    Parses an Accept header into media ranges.

    Tokens are normalized to lower-case "type/subtype" and carry the range's
    specificity. A lone "*" (sent by some Java clients) is read as "*/*";
    anything else without a "/" is dropped.
    """
    entries = parse_header(value)
    if entries is None:
        return None

    ranges: list[HeaderEntry] = []
    for entry in entries:
        token = "*/*" if entry.token == "*" else entry.token
        media_range = parse_media_type(token)
        specificity = media_range_specificity(media_range.full_type) if media_range else None
        if specificity is None:
            logger.debug("Dropping malformed media range: %r", entry.token)
            continue
        ranges.append(entry._replace(token=media_range.full_type, specificity=specificity))
    return ranges


def _param_equal(key: str, expected: str, actual: str | None) -> bool:
    if actual is None:
        return False
    if key in CASE_INSENSITIVE_PARAMS:
        return expected.lower() == actual.lower()
    return expected == actual


def matches(pattern: HeaderEntry, candidate: MediaType) -> Match:
    """
    Checks a media range from the Accept header against a concrete media type.

    "*/*" matches anything, "type/*" any subtype of type, and "type/subtype"
    only itself. Every parameter on the range must be present on the
    candidate with an equal value.
    """
    type_, _, subtype = pattern.token.partition("/")

    if pattern.specificity == EXACT:
        if (type_, subtype) != (candidate.type, candidate.subtype):
            return NO_MATCH
    elif pattern.specificity == ANY_SUBTYPE:
        if type_ != candidate.type:
            return NO_MATCH

    candidate_params = dict(candidate.params)
    for key, value in pattern.params:
        if not _param_equal(key, value, candidate_params.get(key)):
            return NO_MATCH

    return Match(True, pattern.specificity)
