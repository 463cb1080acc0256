"""
touchpoint/dispatch: outbound message/call dispatch.
"""

from touchpoint.dispatch.base import ActionDispatcher
from touchpoint.dispatch.uri_dispatcher import UriDispatcher, build_uri

__all__ = [
    "ActionDispatcher",
    "UriDispatcher",
    "build_uri",
]
