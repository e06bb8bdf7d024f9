"""Collaborator services (subagents): discovery and delegation."""

from willknow.subagents.client import (
    SubAgentCapability,
    SubAgentClient,
    SubAgentError,
    SubAgentInfo,
    SubAgentReply,
)

__all__ = [
    "SubAgentCapability",
    "SubAgentClient",
    "SubAgentError",
    "SubAgentInfo",
    "SubAgentReply",
]
