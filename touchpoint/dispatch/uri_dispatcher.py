"""
touchpoint/dispatch/uri_dispatcher.py
Dispatches by opening an sms: or tel: URI with the platform handler.
On a phone or a desktop with a dialer registered, that opens the
messaging or calling app prefilled with the number.
"""

from __future__ import annotations

import logging
import webbrowser
from typing import Callable, Optional
from urllib.parse import quote

from touchpoint.dispatch.base import ActionDispatcher
from touchpoint.models.record import PreferredAction
from touchpoint.validation import normalize_channel

logger = logging.getLogger(__name__)

URI_SCHEMES = {
    PreferredAction.MESSAGE: 'sms',
    PreferredAction.CALL:    'tel',
}


def build_uri(channel: str, action: PreferredAction) -> str:
    if action not in URI_SCHEMES:
        raise ValueError(f"No dispatch URI for action: {action}")
    return f"{URI_SCHEMES[action]}:{quote(normalize_channel(channel), safe='+')}"


class UriDispatcher(ActionDispatcher):

    def __init__(self, opener: Optional[Callable[[str], object]] = None):
        self.opener = opener or webbrowser.open

    def dispatch(self, channel: str, action: PreferredAction) -> None:
        try:
            uri = build_uri(channel, action)
            opened = self.opener(uri)
        except Exception as e:
            logger.warning(f"{action.value} dispatch failed: {e}")
            return
        if opened is False:
            logger.warning(f"No handler accepted the {action.value} request")
        else:
            logger.info(f"{action.value} dispatched")
