"""
Session state for willknow.

Holds per-conversation continuation tokens and server-held histories in memory.
"""

from willknow.session.state import ConversationState, SessionStore

__all__ = ["ConversationState", "SessionStore"]
