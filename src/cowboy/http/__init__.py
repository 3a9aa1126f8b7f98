"""
=============================================================================
HTTP LAYER
=============================================================================

    raw bytes ──► RequestParser ──► HTTPRequest ──► RequestContext
                                                        │
                                     Router.dispatch ◄──┘
                                                        │
    raw bytes ◄── HTTPResponse.to_bytes ◄── ResponseBuilder.to_response

=============================================================================
"""

from .forms import FormData, FormFile, SearchParams, parse_multipart, parse_urlencoded
from .request import HTTPRequest, RequestParser, parse_request
from .context import BodyExtractors, Parsed, RequestContext, Unparsed
from .response import HTTPResponse, ResponseBuilder, format_http_date, reason_phrase
from .router import ALL_METHODS, Route, Router, compile_pattern, tidy_path


__all__ = [
    # Forms
    "FormData",
    "FormFile",
    "SearchParams",
    "parse_multipart",
    "parse_urlencoded",

    # Native request
    "HTTPRequest",
    "RequestParser",
    "parse_request",

    # Request context
    "RequestContext",
    "BodyExtractors",
    "Unparsed",
    "Parsed",

    # Response
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "reason_phrase",

    # Routing
    "Router",
    "Route",
    "ALL_METHODS",
    "compile_pattern",
    "tidy_path",
]
