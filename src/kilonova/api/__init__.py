"""Request pipeline for the Kilonova web API."""

from kilonova.api.dispatcher import Dispatcher
from kilonova.api.endpoints import AuthPolicy, Encoding, Endpoint
from kilonova.api.request_builder import RequestBuilder
from kilonova.api.transport import RawResponse, Transport

__all__ = [
    "AuthPolicy",
    "Dispatcher",
    "Encoding",
    "Endpoint",
    "RawResponse",
    "RequestBuilder",
    "Transport",
]
