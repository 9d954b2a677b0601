"""
Negotiates JSON, HTML or plain text per request.

Serve with any ASGI server, e.g. ``uvicorn example.server:app``.
"""
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from accepts import Accepts


def homepage(request: Request) -> Response:
    type_ = Accepts(request.headers).types(["json", "html"])
    if type_ == ["json"]:
        return JSONResponse({"hello": "world!"})
    if type_ == ["html"]:
        return Response("<b>hello, world!</b>", media_type="text/html")
    # the fallback is text/plain, so no need to specify it above
    return PlainTextResponse("hello, world!")


app = Starlette(routes=[Route("/", homepage)])
