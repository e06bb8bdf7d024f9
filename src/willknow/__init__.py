"""
willknow - streaming tool-orchestration backend

Lets an upstream LLM delegate sub-tasks to collaborator services (subagents)
and read capability bundles (skills) on demand, while streaming progress
events back to the caller.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("willknow")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)

from willknow.config import Settings  # noqa: E402

__all__ = ["__version__", "__version_info__", "Settings"]
