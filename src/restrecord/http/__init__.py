"""HTTP boundary: transport protocol, responses, httpx transport and routes.

Usage:
    from restrecord.http import HttpxTransport, ProxyResponse, RequestDescriptor
"""

from restrecord.http.protocol import RequestDescriptor, Response, Transport
from restrecord.http.responses import HttpResponse, ProxyResponse
from restrecord.http.routes import (
    DEFAULT_ROUTE_PARAMETER_PATTERN,
    PatternRouteResolver,
    RouteResolver,
)
from restrecord.http.transport import HttpxTransport

__all__ = [
    "RequestDescriptor",
    "Response",
    "Transport",
    "HttpResponse",
    "ProxyResponse",
    "HttpxTransport",
    "PatternRouteResolver",
    "RouteResolver",
    "DEFAULT_ROUTE_PARAMETER_PATTERN",
]
