"""
Exchange logging for willknow.

Provides JSONL logging of chat exchanges for debugging and analysis.
"""

from willknow.logging.conversation_logger import ConversationLogger

__all__ = ["ConversationLogger"]
