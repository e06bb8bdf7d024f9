"""
Turn loop for willknow.

One exchange alternates model calls and tool dispatch until the model
answers without requesting a tool, or the turn budget runs out. Progress is
reported through ConversationCallbacks so the same loop serves the streaming
HTTP surface, the channel entry point and the CLI.
"""

import abc as _abc
import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import willknow.api.base as api_base
import willknow.api.types as api_types
import willknow.constants as _constants
import willknow.logging as willknow_logging
import willknow.tools.base as tools_base
import willknow.tools.registry as tools_registry

_logger = _logging.getLogger(__name__)


@_dataclasses.dataclass(frozen=True)
class ToolCallDisplay:
    """A resolved tool invocation, as reported to callbacks."""

    tool_name: str
    tool_id: str
    display_name: str
    """Who is being called (subagent name, or the tool name)."""

    summary: str
    """The instruction being sent, in human-readable form."""

    input: dict[str, _typing.Any]


@_dataclasses.dataclass
class ConversationResult:
    """Result of running the turn loop for one exchange."""

    response_text: str
    """All assistant text produced during the exchange, concatenated."""

    messages: list[api_types.Message]
    """Full history after the exchange (input history plus new messages)."""

    turns: int
    """Number of model calls made."""

    tool_uses: list[api_types.ToolUseBlock] = _dataclasses.field(default_factory=list)
    """Tool uses requested by the model, in dispatch order."""

    tool_results: list[tools_base.ToolResult] = _dataclasses.field(default_factory=list)
    """One result per tool use, same order."""

    budget_exhausted: bool = False
    """True if the loop stopped because max_turns was reached."""

    stop_reason: str | None = None
    """Stop reason reported with the last model response."""


class ConversationCallbacks(_abc.ABC):
    """
    Abstract callbacks for turn loop progress.

    Different surfaces (SSE stream, channel reply, CLI) implement these to
    control how progress is delivered.
    """

    @_abc.abstractmethod
    async def on_text_delta(self, text: str) -> None:
        """Called for each response text fragment, as soon as it is parsed.

        Args:
            text: The response text delta.
        """
        ...

    @_abc.abstractmethod
    async def on_tool_call(self, tool_call: ToolCallDisplay) -> None:
        """Called just before a resolved tool is executed.

        Args:
            tool_call: The invocation about to run.
        """
        ...

    @_abc.abstractmethod
    async def on_tool_result(
        self,
        tool_call: ToolCallDisplay,
        result: tools_base.ToolResult,
    ) -> None:
        """Called after a resolved tool finishes, successfully or not.

        Args:
            tool_call: The invocation that ran.
            result: Its result (failures included).
        """
        ...


class ConversationProcessor:
    """
    Runs the turn loop against one provider and one tool registry.

    The processor never inspects the provider type; everything it needs
    comes through LLMProvider.stream().
    """

    def __init__(
        self,
        provider: api_base.LLMProvider,
        callbacks: ConversationCallbacks,
        *,
        tool_registry: tools_registry.ToolRegistry | None = None,
        max_tokens: int = _constants.DEFAULT_MAX_TOKENS,
        max_turns: int = _constants.DEFAULT_MAX_TURNS,
        logger: willknow_logging.ConversationLogger | None = None,
        conversation_id: str = "",
    ) -> None:
        """
        Initialize the conversation processor.

        Args:
            provider: LLM provider instance.
            callbacks: Progress callbacks.
            tool_registry: Tools offered to the model (None to disable tools).
            max_tokens: Maximum tokens per model response.
            max_turns: Maximum model calls per exchange.
            logger: Exchange logger instance.
            conversation_id: Conversation key, for logging.
        """
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self._provider = provider
        self._callbacks = callbacks
        self._tool_registry = tool_registry
        self._max_tokens = max_tokens
        self._max_turns = max_turns
        self._logger = logger
        self._conversation_id = conversation_id

    def _get_tools_for_api(self) -> list[api_types.Tool] | None:
        if self._tool_registry is None or len(self._tool_registry) == 0:
            return None
        return self._tool_registry.to_api_tools()

    async def process_streaming(
        self,
        messages: list[api_types.Message],
        system_prompt: str | None = None,
    ) -> ConversationResult:
        """
        Run the turn loop for one exchange.

        Args:
            messages: History ending with the new user message. Not mutated.
            system_prompt: Optional system preamble.

        Returns:
            ConversationResult with the response and updated history.

        Raises:
            ProviderAPIError: If the upstream fails; the exchange is aborted.
            httpx.HTTPError: On upstream transport failure.
        """
        tools = self._get_tools_for_api()
        working_messages = list(messages)
        response_text = ""
        stop_reason: str | None = None
        all_tool_uses: list[api_types.ToolUseBlock] = []
        all_tool_results: list[tools_base.ToolResult] = []
        turn = 0

        while turn < self._max_turns:
            turn += 1
            assistant: api_types.Message | None = None

            async for event in self._provider.stream(
                working_messages,
                system=system_prompt,
                tools=tools,
                max_tokens=self._max_tokens,
            ):
                if event.type == "text_delta" and event.text:
                    response_text += event.text
                    await self._callbacks.on_text_delta(event.text)
                elif event.type == "message_stop":
                    assistant = event.message
                    stop_reason = event.stop_reason

            if assistant is None:
                assistant = api_types.Message(role="assistant", content=())
            working_messages.append(assistant)

            tool_uses = assistant.tool_uses
            if not tool_uses:
                return ConversationResult(
                    response_text=response_text,
                    messages=working_messages,
                    turns=turn,
                    tool_uses=all_tool_uses,
                    tool_results=all_tool_results,
                    stop_reason=stop_reason,
                )

            # Sequential, in the order the model emitted them
            result_blocks: list[api_types.ContentBlock] = []
            for tool_use in tool_uses:
                result = await self._execute_tool(tool_use)
                all_tool_uses.append(tool_use)
                all_tool_results.append(result)
                result_blocks.append(
                    api_types.ToolResultBlock(
                        tool_use_id=tool_use.id,
                        content=result.to_content(),
                    )
                )
            working_messages.append(api_types.Message(role="user", content=tuple(result_blocks)))

        _logger.info(
            "Turn budget of %d exhausted (conversation %s)",
            self._max_turns,
            self._conversation_id or "-",
        )
        return ConversationResult(
            response_text=response_text,
            messages=working_messages,
            turns=turn,
            tool_uses=all_tool_uses,
            tool_results=all_tool_results,
            budget_exhausted=True,
            stop_reason=stop_reason,
        )

    async def _execute_tool(self, tool_use: api_types.ToolUseBlock) -> tools_base.ToolResult:
        """Execute a single tool call. Never raises for tool failures."""
        tool = self._tool_registry.get(tool_use.name) if self._tool_registry else None
        if tool is None:
            _logger.warning("Model requested unknown tool %r", tool_use.name)
            result = tools_base.ToolResult(
                success=False,
                output="",
                error=_constants.TOOL_NOT_FOUND_MESSAGE,
            )
            self._log_tool_result(tool_use, result)
            return result

        display = ToolCallDisplay(
            tool_name=tool.name,
            tool_id=tool_use.id,
            display_name=tool.display_name,
            summary=tool.describe_input(tool_use.input),
            input=tool_use.input,
        )
        if self._logger:
            self._logger.log_tool_call(
                self._conversation_id,
                tool_name=tool_use.name,
                tool_input=tool_use.input,
                tool_id=tool_use.id,
            )
        await self._callbacks.on_tool_call(display)

        try:
            result = await tool.execute(tool_use.input)
        except Exception as e:
            _logger.warning("Tool %s failed: %s", tool_use.name, e, exc_info=True)
            result = tools_base.ToolResult(
                success=False,
                output="",
                error=f"{_constants.TOOL_CALL_FAILED_PREFIX}{e}",
            )

        self._log_tool_result(tool_use, result)
        await self._callbacks.on_tool_result(display, result)
        return result

    def _log_tool_result(
        self,
        tool_use: api_types.ToolUseBlock,
        result: tools_base.ToolResult,
    ) -> None:
        if self._logger:
            self._logger.log_tool_result(
                self._conversation_id,
                tool_name=tool_use.name,
                success=result.success,
                content=result.to_content(),
                tool_id=tool_use.id,
            )
