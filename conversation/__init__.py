"""
Conversation module exports.
"""

from conversation.orchestrator import ConversationOrchestrator, build_ask_request
from conversation.reaper import InactivityReaper

__all__ = [
    "ConversationOrchestrator",
    "InactivityReaper",
    "build_ask_request",
]
