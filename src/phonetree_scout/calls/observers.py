"""
Observer capability used by the call registry.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ObserverTransport(Protocol):
    """Anything that can receive dashboard events for one call.

    `try_send` must not block: it either hands the message to the transport
    and returns True, or drops it and returns False.
    """

    def is_open(self) -> bool:
        ...

    def try_send(self, message: str) -> bool:
        ...
