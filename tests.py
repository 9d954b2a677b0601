"""Main tests for accepts.

The request-level tests drive a small Starlette app through TestClient,
negotiating the response representation per request.
"""

import functools

import pytest

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route
from starlette.testclient import TestClient

from accepts import Accepts, default_lookup
from accepts.headers import HeaderEntry, parse_header, parse_part
from accepts.mediatype import (
    Extension,
    MediaType,
    classify,
    matches,
    parse_accept,
    parse_media_type,
    resolve,
)
from accepts.negotiator import (
    preferred_charsets,
    preferred_encodings,
    preferred_languages,
    preferred_media_types,
)


@pytest.fixture
def test_client_factory(anyio_backend_name, anyio_backend_options):
    return functools.partial(
        TestClient,
        backend=anyio_backend_name,
        backend_options=anyio_backend_options,
    )


def negotiating_app():
    def homepage(request: Request):
        accepts = Accepts(request.headers)
        type_ = accepts.types(["json", "html"])
        if type_ == ["json"]:
            return JSONResponse({"hello": "world!"})
        if type_ == ["html"]:
            return Response("<b>hello, world!</b>", media_type="text/html")
        # the fallback is text/plain
        return PlainTextResponse("hello, world!")

    def strict(request: Request):
        accepts = Accepts.from_scope(request.scope)
        if not accepts.types(["json"]):
            return PlainTextResponse("Not Acceptable", status_code=406)
        return JSONResponse({"hello": "world!"})

    return Starlette(routes=[Route("/", homepage), Route("/strict", strict)])


# --- Quality-value parser ---


def test_parse_part_defaults():
    assert parse_part("gzip", 0) == HeaderEntry("gzip", 1.0, 1, 0)
    assert parse_part(" * ", 3) == HeaderEntry("*", 1.0, 0, 3)


@pytest.mark.parametrize(
    "part, expected_q",
    [
        ("gzip;q=0.8", 0.8),
        ("gzip; q = .5", 0.5),
        ("gzip;Q=0.3", 0.3),
        # Out of range values are clamped
        ("gzip;q=1.5", 1.0),
        ("gzip;q=-1", 0.0),
        ("gzip;q=0", 0.0),
    ],
)
def test_parse_part_quality(part, expected_q):
    assert parse_part(part, 0).q == expected_q


@pytest.mark.parametrize(
    "part", ["", "  ", ";q=0.5", "gzip;q=foo", "gzip;q=nan", "gzip;q=", "gzip;q", "gzip; Q ;level=1"]
)
def test_parse_part_invalid(part):
    assert parse_part(part, 0) is None


def test_parse_part_keeps_params():
    entry = parse_part('text/html; Level=1; charset="utf-8"; q=0.7', 0)
    assert entry.token == "text/html"
    assert entry.q == 0.7
    assert entry.params == (("level", "1"), ("charset", "utf-8"))


def test_parse_header_absent_vs_empty():
    assert parse_header(None) is None
    assert parse_header("") == []


def test_parse_header_drops_malformed_items():
    entries = parse_header("gzip;q=oops, , deflate;q=0.5, br")
    assert [(e.token, e.q, e.order) for e in entries] == [
        ("deflate", 0.5, 2),
        ("br", 1.0, 3),
    ]


def test_parse_header_drops_truncated_quality():
    entries = parse_header("gzip;q, br;q=, deflate;q=0.5")
    assert [(e.token, e.q) for e in entries] == [("deflate", 0.5)]


# --- Media types ---


@pytest.mark.parametrize(
    "value, expected",
    [
        ("application/json", MediaType("application", "json")),
        ("Text/HTML; Charset=UTF-8", MediaType("text", "html", (("charset", "UTF-8"),))),
        ("text/plain;q=0.5", MediaType("text", "plain")),
        ("text", None),
        ("text/", None),
        ("/html", None),
        ("a/b/c", None),
    ],
)
def test_parse_media_type(value, expected):
    assert parse_media_type(value) == expected


def test_classify():
    assert classify("json") == Extension("json")
    assert classify(".html") == Extension("html")
    assert classify("text/html") == MediaType("text", "html")
    assert classify("text/") is None
    assert classify("") is None


def test_resolve_uses_lookup():
    assert resolve(Extension("json"), default_lookup) == MediaType("application", "json")
    assert resolve(Extension("nope"), lambda ext: None) is None
    assert resolve(MediaType("text", "html"), lambda ext: None) == MediaType("text", "html")


def test_default_lookup():
    assert default_lookup("html") == "text/html"
    assert default_lookup(".PNG") == "image/png"
    assert default_lookup("definitely-not-an-extension") is None
    assert default_lookup("") is None


def test_parse_accept_specificity():
    entries = parse_accept("*/*;q=0.1, text/*;q=0.5, Text/HTML, *, text")
    assert [(e.token, e.specificity) for e in entries] == [
        ("*/*", 0),
        ("text/*", 1),
        ("text/html", 2),
        ("*/*", 0),
    ]
    assert parse_accept(None) is None
    assert parse_accept("*/html") == []


@pytest.mark.parametrize(
    "pattern, candidate, matched, specificity",
    [
        ("*/*", "image/png", True, 0),
        ("text/*", "text/html", True, 1),
        ("text/*", "application/json", False, -1),
        ("text/html", "text/html", True, 2),
        ("text/html", "text/plain", False, -1),
        # parameters on the range must be carried by the candidate
        ("text/html;level=1", "text/html;level=1", True, 2),
        ("text/html;level=1", "text/html;level=2", False, -1),
        ("text/html;level=1", "text/html", False, -1),
        ("text/*;charset=utf-8", "text/plain;charset=UTF-8", True, 1),
        ("text/html;level=a", "text/html;level=A", False, -1),
    ],
)
def test_matches(pattern, candidate, matched, specificity):
    (entry,) = parse_accept(pattern)
    assert matches(entry, parse_media_type(candidate)) == (matched, specificity)


# --- Negotiation engine ---


def test_media_types_without_candidates():
    entries = parse_accept("text/*;q=0.5, */*;q=0.1, application/json, text/html;q=0.5, image/png;q=0")
    assert preferred_media_types(entries) == ["application/json", "text/html", "text/*", "*/*"]


def test_media_types_with_candidates():
    entries = parse_accept("text/*;q=0.5, application/json")
    assert preferred_media_types(entries, ["text/html", "application/json"]) == [
        "application/json",
        "text/html",
    ]
    assert preferred_media_types(entries, ["image/png"]) == []


def test_media_types_more_specific_range_wins():
    # text/html is rejected even though text/* accepts it
    entries = parse_accept("text/*, text/html;q=0")
    assert preferred_media_types(entries, ["text/html", "text/plain"]) == ["text/plain"]

    entries = parse_accept("text/html;level=1;q=0.2, text/html;q=0.9")
    assert preferred_media_types(entries, ["text/html", "text/html;level=1"]) == [
        "text/html",
        "text/html;level=1",
    ]


def test_media_types_specificity_breaks_quality_ties():
    entries = parse_accept("text/*, application/json")
    assert preferred_media_types(entries, ["text/html", "application/json"]) == [
        "application/json",
        "text/html",
    ]


@pytest.mark.parametrize(
    "negotiate, wildcard",
    [
        (preferred_media_types, "*/*"),
        (preferred_encodings, "*"),
        (preferred_charsets, "*"),
        (preferred_languages, "*"),
    ],
)
def test_absent_header_accepts_all_candidates(negotiate, wildcard):
    candidates = ["b", "a", "c"]
    assert negotiate(None, candidates) == candidates
    # without candidates the client accepts anything, unlike an empty header
    assert negotiate(None) == [wildcard]
    assert negotiate([]) == []


@pytest.mark.parametrize(
    "negotiate, header, candidates",
    [
        (preferred_media_types, "text/html;q=0, */*;q=0", ["text/html", "image/png"]),
        (preferred_encodings, "gzip;q=0, *;q=0", ["gzip", "br", "identity"]),
        (preferred_charsets, "utf-8;q=0, *;q=0", ["utf-8", "latin1"]),
        (preferred_languages, "en;q=0, *;q=0", ["en", "fr"]),
    ],
)
def test_all_rejected(negotiate, header, candidates):
    entries = parse_accept(header) if negotiate is preferred_media_types else parse_header(header)
    assert negotiate(entries, candidates) == []
    assert negotiate(entries) == []


@pytest.mark.parametrize(
    "accept_encoding, candidates, expected",
    [
        # 1. header order is kept for equal q-factors
        ("gzip, deflate", None, ["gzip", "deflate"]),
        ("deflate;q=0.5, gzip", None, ["gzip", "deflate"]),
        # 2. server order breaks ties between equally weighted candidates
        ("gzip, br", ["br", "gzip"], ["br", "gzip"]),
        # 3. identity is implicitly acceptable at q=1
        ("gzip;q=0.5", ["gzip", "identity"], ["identity", "gzip"]),
        ("", ["gzip", "identity"], ["identity"]),
        # 4. ... unless explicitly forbidden
        ("gzip, identity;q=0", ["identity", "gzip"], ["gzip"]),
        ("gzip, *;q=0", ["identity", "gzip"], ["gzip"]),
        ("identity;q=0.5, *;q=0", ["identity", "gzip"], ["identity"]),
        # 5. wildcard covers anything unlisted, explicit q=0 shadows it
        ("zstd;q=0, *;q=0.5", ["zstd", "gzip"], ["gzip"]),
        ("br;q=1.0, *;q=0.5", ["gzip", "br"], ["br", "gzip"]),
        # 6. matching is case-insensitive
        ("GZIP", ["gzip"], ["gzip"]),
    ],
)
def test_encodings(accept_encoding, candidates, expected):
    assert preferred_encodings(parse_header(accept_encoding), candidates) == expected


def test_implicit_identity_not_listed_without_candidates():
    assert preferred_encodings(parse_header("gzip")) == ["gzip"]


def test_charsets():
    entries = parse_header("utf-8, iso-8859-1;q=0.2, utf-7;q=0.5")
    assert preferred_charsets(entries) == ["utf-8", "utf-7", "iso-8859-1"]
    assert preferred_charsets(entries, ["ISO-8859-1", "utf-7"]) == ["utf-7", "ISO-8859-1"]
    assert preferred_charsets(entries, ["utf-16"]) == []
    assert preferred_charsets(parse_header("*;q=0.1, utf-8"), ["utf-16", "utf-8"]) == [
        "utf-8",
        "utf-16",
    ]


@pytest.mark.parametrize(
    "accept_language, candidates, expected",
    [
        ("en;q=0.8, es, pt", None, ["es", "pt", "en"]),
        ("en;q=0.8, es, pt", ["en", "pt"], ["pt", "en"]),
        # a language range covers its regional variants and vice versa
        ("en", ["en-US", "fr"], ["en-US"]),
        ("en-GB", ["fr", "en"], ["en"]),
        # the exact tag takes precedence over a prefix match
        ("en;q=0.5, en-US;q=0.1", ["en-US", "en-GB"], ["en-GB", "en-US"]),
        ("fr-CA;q=0.9, *;q=0.1", ["de", "fr-ca"], ["fr-ca", "de"]),
        ("en-US", ["en-GB"], []),
    ],
)
def test_languages(accept_language, candidates, expected):
    assert preferred_languages(parse_header(accept_language), candidates) == expected


def test_result_is_subsequence_of_candidates():
    candidates = ["text/html", "application/json", "image/png", "text/plain"]
    entries = parse_accept("text/*;q=0.5, image/*;q=0.9, application/xml")
    result = preferred_media_types(entries, candidates)
    assert set(result) <= set(candidates)
    assert result == ["image/png", "text/html", "text/plain"]


def test_candidates_are_not_mutated():
    candidates = ["gzip", "br"]
    preferred_encodings(parse_header("br"), candidates)
    assert candidates == ["gzip", "br"]


# --- Accepts ---


@pytest.mark.parametrize(
    "accept, types, expected",
    [
        ("text/html", ["html"], ["html"]),
        ("text/html", ["json", "html"], ["html"]),
        ("text/*, application/json", ["html"], ["html"]),
        ("text/*, application/json", ["text/html"], ["text/html"]),
        ("text/*, application/json", ["json", "text"], ["json"]),
        ("text/*, application/json", ["application/json"], ["application/json"]),
        ("text/*, application/json", ["image/png"], []),
        ("text/*, application/json", ["png"], []),
        ("text/*;q=.5, application/json", ["html", "json"], ["json"]),
        ("text/*;q=.5, application/json", ["image/png"], []),
        # unresolvable or malformed candidates are ignored
        ("*/*", ["nope-ext", "text/", "json"], ["json"]),
        ("", ["json"], []),
    ],
)
def test_types(accept, types, expected):
    assert Accepts({"accept": accept}).types(types) == expected


def test_types_without_accept_header():
    accepts = Accepts({})
    assert accepts.types(["json", "html"]) == ["json"]
    assert accepts.types(["nope-ext"]) == ["nope-ext"]
    assert accepts.types() == ["*/*"]


def test_types_without_candidates():
    accepts = Accepts({"Accept": "text/*;q=.5, application/json"})
    assert accepts.types() == ["application/json", "text/*"]
    assert accepts.types([]) == ["application/json", "text/*"]


def test_types_custom_lookup():
    table = {"feed": "application/atom+xml"}
    accepts = Accepts({"accept": "application/atom+xml"}, lookup=table.get)
    assert accepts.types(["json", "feed"]) == ["feed"]


def test_encodings_charsets_languages():
    accepts = Accepts(
        {
            "Accept-Encoding": "gzip, deflate",
            "Accept-Charset": "utf-8, iso-8859-1;q=0.2, utf-7;q=0.5",
            "Accept-Language": "en;q=0.8, es, pt",
        }
    )
    assert accepts.encodings() == ["gzip", "deflate"]
    assert accepts.encodings(["br", "deflate", "gzip"]) == ["deflate"]
    assert accepts.encodings(["br"]) == []
    assert accepts.charsets() == ["utf-8", "utf-7", "iso-8859-1"]
    assert accepts.charsets(["iso-8859-1", "utf-7"]) == ["utf-7"]
    assert accepts.languages() == ["es", "pt", "en"]
    assert accepts.languages(["en", "pt"]) == ["pt"]
    assert accepts.languages(["de"]) == []


def test_absent_headers_pick_first_candidate():
    accepts = Accepts({})
    assert accepts.encodings(["br", "gzip"]) == ["br"]
    assert accepts.charsets(["utf-8"]) == ["utf-8"]
    assert accepts.languages(["fr", "en"]) == ["fr"]
    assert accepts.encodings() == ["*"]
    assert accepts.charsets() == ["*"]
    assert accepts.languages() == ["*"]


def test_absent_header_differs_from_rejecting_header():
    rejecting = Accepts(
        {"accept-encoding": "*;q=0", "accept-charset": "*;q=0", "accept-language": "*;q=0"}
    )
    assert rejecting.encodings() == []
    assert rejecting.charsets() == []
    assert rejecting.languages() == []
    assert Accepts({}).languages() == ["*"]


def test_accepts_is_idempotent():
    accepts = Accepts({"accept": "text/*;q=0.5, application/json", "accept-language": "en, fr"})
    for _ in range(2):
        assert accepts.types(["html", "json"]) == ["json"]
        assert accepts.languages(["fr", "en"]) == ["fr"]


def test_types_does_not_mutate_candidates():
    accepts = Accepts({"accept": "text/*;q=0.5, application/json"})
    candidates = ["nope-ext", "html", "text/", "application/json", ".png"]
    expected = list(candidates)
    assert accepts.types(candidates) == ["application/json"]
    assert candidates == expected
    assert accepts.types(candidates) == ["application/json"]
    assert candidates == expected


def test_accepts_snapshots_headers():
    headers = {"accept": "application/json"}
    accepts = Accepts(headers)
    headers["accept"] = "text/html"
    assert accepts.types(["html", "json"]) == ["json"]


def test_accepts_from_scope_joins_repeated_headers():
    scope = {
        "type": "http",
        "headers": [
            (b"accept", b"image/png;q=0.5"),
            (b"accept", b"application/json"),
        ],
    }
    accepts = Accepts.from_scope(scope)
    assert accepts.types() == ["application/json", "image/png"]
    assert accepts.types(["png"]) == ["png"]


@pytest.mark.parametrize(
    "accept, expected_type, expected_body",
    [
        ("application/json", "application/json", '{"hello":"world!"}'),
        ("text/html", "text/html", "<b>hello, world!</b>"),
        ("text/*;q=.5, application/json", "application/json", '{"hello":"world!"}'),
        ("image/png", "text/plain", "hello, world!"),
    ],
)
def test_negotiated_responses(test_client_factory, accept, expected_type, expected_body):
    client = test_client_factory(negotiating_app())
    response = client.get("/", headers={"accept": accept})
    assert response.status_code == 200
    assert response.headers["Content-Type"].startswith(expected_type)
    assert response.text == expected_body


def test_not_acceptable_response(test_client_factory):
    client = test_client_factory(negotiating_app())
    response = client.get("/strict", headers={"accept": "text/html"})
    assert response.status_code == 406

    response = client.get("/strict", headers={"accept": "*/*"})
    assert response.status_code == 200
    assert response.json() == {"hello": "world!"}
