"""
Session module exports.
"""

from sessions.base import SessionStore
from sessions.memory import InMemorySessionStore
from sessions.types import Session

__all__ = [
    "Session",
    "SessionStore",
    "InMemorySessionStore",
]
