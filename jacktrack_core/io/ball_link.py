"""
BLE link collaborator contract.

The registry asks the link to connect/disconnect; the link later reports
the outcome through DeviceRegistry.on_connect_confirmed /
on_connect_failed / on_disconnect_confirmed. Pairing and GATT details live
entirely on the other side of this interface.
"""

import logging
from typing import List, Protocol, Tuple

logger = logging.getLogger(__name__)


class BallLink(Protocol):
    """Transport used by DeviceRegistry to reach physical balls."""

    def request_connect(self, ball_id: str) -> None:
        ...

    def request_disconnect(self, ball_id: str) -> None:
        ...


class NullBallLink:
    """
    Link that performs no I/O and records every request.

    Used when outcomes are injected by the caller (tests, simulation).
    """

    def __init__(self):
        self.requests: List[Tuple[str, str]] = []

    def request_connect(self, ball_id: str) -> None:
        logger.debug(f"connect requested: {ball_id}")
        self.requests.append(("connect", ball_id))

    def request_disconnect(self, ball_id: str) -> None:
        logger.debug(f"disconnect requested: {ball_id}")
        self.requests.append(("disconnect", ball_id))

    def requested(self, action: str) -> List[str]:
        """Ball ids for one action ('connect' or 'disconnect'), in order."""
        return [ball_id for kind, ball_id in self.requests if kind == action]
