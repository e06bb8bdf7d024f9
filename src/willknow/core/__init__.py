"""
Core turn loop and chat exchange logic for willknow.
"""

from willknow.core.chat import ChatRequest, ChatService, NoModelConfiguredError
from willknow.core.conversation import (
    ConversationCallbacks,
    ConversationProcessor,
    ConversationResult,
    ToolCallDisplay,
)
from willknow.core.events import EventEmitter, ProgressEvent, TextCollector
from willknow.core.prompts import build_system_prompt, xml_escape

__all__ = [
    # Chat entry points
    "ChatRequest",
    "ChatService",
    "NoModelConfiguredError",
    # Turn loop
    "ConversationCallbacks",
    "ConversationProcessor",
    "ConversationResult",
    "ToolCallDisplay",
    # Events
    "EventEmitter",
    "ProgressEvent",
    "TextCollector",
    # Prompts
    "build_system_prompt",
    "xml_escape",
]
