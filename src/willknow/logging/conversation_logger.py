"""
JSONL exchange log.

A single process-wide file records every exchange the service runs. Lines are
self-describing JSON objects; conversations are told apart by their
``conversation_id`` field, so ``jq 'select(.conversation_id == "c1")'``
recovers one conversation.
"""

import datetime as _datetime
import json as _json
import logging as _logging
import os as _os
import pathlib as _pathlib
import typing as _typing

_logger = _logging.getLogger(__name__)

DEFAULT_LOG_DIR = "/tmp/willknow-logs"

PRIVATE_DIR_MODE = 0o700


def _now() -> str:
    return _datetime.datetime.now().isoformat()


def _resolve_log_path(
    log_dir: _pathlib.Path | str | None,
    log_file: _pathlib.Path | str | None,
    private_mode: bool,
    run_id: str,
) -> _pathlib.Path:
    """Pick the log file location, creating its directory."""
    if log_file:
        path = _pathlib.Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    directory = _pathlib.Path(log_dir or DEFAULT_LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    if private_mode:
        _os.chmod(directory, PRIVATE_DIR_MODE)
    return directory / f"willknow_{run_id}.jsonl"


class ConversationLogger:
    """
    Append-only JSONL recorder for chat exchanges.

    Event types written by the service:

    ==================  ================================================
    session_start       run id, provider and model of the default model
    user_message        text that opened an exchange
    tools_loaded        tool names offered to the model for an exchange
    tool_call           tool name, input and call id requested by the model
    tool_result         result text fed back to the model
    assistant_message   final assistant text of an exchange
    error               message of an exchange-aborting failure
    session_end         number of events written
    ==================  ================================================

    Every line also carries ``timestamp`` and a running ``event_number``.
    A disabled logger accepts every call and writes nothing.
    """

    def __init__(
        self,
        *,
        log_dir: _pathlib.Path | str | None = None,
        log_file: _pathlib.Path | str | None = None,
        private_mode: bool = True,
        provider: str = "unknown",
        model: str = "unknown",
        enabled: bool = True,
    ) -> None:
        """
        Args:
            log_dir: Directory for auto-named log files (default: /tmp/willknow-logs).
            log_file: Explicit log file; takes precedence over ``log_dir``.
            private_mode: Restrict ``log_dir`` to its owner (drwx------).
            provider: Provider recorded in the session_start line.
            model: Model recorded in the session_start line.
            enabled: When False nothing is created or written.
        """
        self._enabled = enabled
        self._run_id = _datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        self._written = 0
        self._stream: _typing.TextIO | None = None
        self._path: _pathlib.Path | None = None

        if not enabled:
            return

        self._path = _resolve_log_path(log_dir, log_file, private_mode, self._run_id)
        self._stream = self._path.open("w", encoding="utf-8")
        self._append("session_start", session_id=self._run_id, provider=provider, model=model)

    @property
    def file_path(self) -> _pathlib.Path | None:
        """Where events go, or None when disabled."""
        return self._path

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _append(self, event_type: str, **fields: _typing.Any) -> None:
        if self._stream is None:
            return

        self._written += 1
        record = {
            "timestamp": _now(),
            "event_number": self._written,
            "event_type": event_type,
        }
        record.update(fields)
        line = _json.dumps(record, default=str, ensure_ascii=False)
        try:
            self._stream.write(line + "\n")
            self._stream.flush()
        except OSError as e:
            _logger.debug("Dropped %s log line: %s", event_type, e)

    # -- exchange events ----------------------------------------------------

    def log_user_message(self, conversation_id: str, content: str) -> None:
        self._append("user_message", conversation_id=conversation_id, content=content)

    def log_assistant_message(self, conversation_id: str, content: str) -> None:
        self._append("assistant_message", conversation_id=conversation_id, content=content)

    def log_tool_call(
        self,
        conversation_id: str,
        tool_name: str,
        tool_input: dict[str, _typing.Any],
        tool_id: str | None = None,
    ) -> None:
        """Record a tool invocation as requested by the model."""
        self._append(
            "tool_call",
            conversation_id=conversation_id,
            tool_name=tool_name,
            tool_input=tool_input,
            tool_id=tool_id,
        )

    def log_tool_result(
        self,
        conversation_id: str,
        tool_name: str,
        success: bool,
        content: str,
        tool_id: str | None = None,
    ) -> None:
        """Record the text returned to the model for a tool call."""
        self._append(
            "tool_result",
            conversation_id=conversation_id,
            tool_name=tool_name,
            success=success,
            content=content,
            tool_id=tool_id,
        )

    def log_error(self, conversation_id: str, error: str) -> None:
        self._append("error", conversation_id=conversation_id, error=error)

    def log_event(self, event_type: str, **kwargs: _typing.Any) -> None:
        """Record an event type not covered by the helpers above."""
        self._append(event_type, **kwargs)

    # -- lifecycle ----------------------------------------------------------

    def close(self) -> None:
        """Write session_end and release the file. Safe to call twice."""
        if self._stream is None:
            return
        self._append("session_end", total_events=self._written)
        stream, self._stream = self._stream, None
        stream.close()

    def __enter__(self) -> "ConversationLogger":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: _typing.Any,
    ) -> None:
        if exc_type is not None:
            self._append("error", error=str(exc_val), exception=exc_type.__name__)
        self.close()
