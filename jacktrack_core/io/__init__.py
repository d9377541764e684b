"""
I/O Module: External collaborator contracts.

- BallLink: BLE transport asked to connect/disconnect balls
- RoundStore: persistence for saved rounds (with CSV export)

Reference implementations (NullBallLink, InMemoryRoundStore) perform no
real I/O and are used by tests and the demo runner.
"""

from .ball_link import BallLink, NullBallLink
from .round_store import RoundStore, InMemoryRoundStore, EXPORT_FIELDS

__all__ = [
    'BallLink',
    'NullBallLink',
    'RoundStore',
    'InMemoryRoundStore',
    'EXPORT_FIELDS',
]
