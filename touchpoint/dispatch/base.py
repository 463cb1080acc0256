"""
touchpoint/dispatch/base.py
Abstract base class for action dispatchers.
To add a new backend: subclass ActionDispatcher and implement dispatch().
"""

from abc import ABC, abstractmethod

from touchpoint.models.record import PreferredAction


class ActionDispatcher(ABC):
    """
    Hands a message or call off to the OS layer. Fire-and-forget:
    the tracker offers the reset prompt whatever happens here, and
    never learns whether the person was actually reached.
    """

    @abstractmethod
    def dispatch(self, channel: str, action: PreferredAction) -> None:
        """
        Start the external action for channel.
        Never raises. Catch internally and log.
        Only called for MESSAGE and CALL; MEET_UP has no dispatch.
        """
        ...
