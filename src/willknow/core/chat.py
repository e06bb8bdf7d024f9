"""
Chat exchange entry points.

ChatService wires configuration, session state, subagent discovery, skills
and the turn loop together. Two surfaces sit on top of it:

- stream_chat() / start_exchange(): caller-held history, progress events
  streamed as they happen (the HTTP SSE surface and the CLI)
- handle_message(): server-held history per chat id, one text reply
  (bot-platform style channels)
"""

from __future__ import annotations

import asyncio as _asyncio
import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import httpx as _httpx

import willknow.api.base as api_base
import willknow.api.factory as api_factory
import willknow.api.types as api_types
import willknow.config as config
import willknow.constants as _constants
import willknow.core.conversation as conversation
import willknow.core.events as events
import willknow.core.prompts as prompts
import willknow.logging as willknow_logging
import willknow.session as session
import willknow.skills as skills
import willknow.subagents as subagents
import willknow.tools as tools

_logger = _logging.getLogger(__name__)

ProviderFactory = _typing.Callable[..., api_base.LLMProvider]


class NoModelConfiguredError(ValueError):
    """Raised when an exchange is requested but no model is configured."""

    def __init__(self) -> None:
        super().__init__("No model configured")


@_dataclasses.dataclass
class ChatRequest:
    """One chat exchange request with caller-held history."""

    message: str
    """The new user message."""

    conversation_id: str | None = None
    """Conversation key for continuation tokens (default: "default")."""

    history: list[dict[str, _typing.Any]] = _dataclasses.field(default_factory=list)
    """Prior messages as ``{role, content}`` dicts; content is a string or block list."""

    def build_messages(self) -> list[api_types.Message]:
        """
        History plus the new user message, in the intermediate representation.

        Raises:
            ValueError: If a history entry is malformed.
        """
        messages = [api_types.Message.from_dict(entry) for entry in self.history]
        messages.append(api_types.Message.user_text(self.message))
        return messages


class ChatService:
    """
    Runs chat exchanges.

    Every exchange rediscovers subagents, rebuilds the tool registry and
    creates a fresh provider, so configuration edits take effect on the
    next exchange. Exchanges on the same conversation id are serialized.
    """

    def __init__(
        self,
        settings: config.Settings,
        *,
        sessions: session.SessionStore | None = None,
        skill_registry: skills.SkillRegistry | None = None,
        subagent_client: subagents.SubAgentClient | None = None,
        provider_factory: ProviderFactory | None = None,
        http_client: _httpx.AsyncClient | None = None,
        logger: willknow_logging.ConversationLogger | None = None,
    ) -> None:
        """
        Initialize the chat service.

        Args:
            settings: Effective configuration.
            sessions: Session store (default: in-memory, bounded by settings).
            skill_registry: Skills (default: built from settings).
            subagent_client: Subagent client (default: timeouts from settings).
            provider_factory: Callable building a provider from a ModelConfig.
            http_client: Shared HTTP client handed to providers (tests inject
                a mock transport here).
            logger: Exchange logger (default: per settings.logging).
        """
        self._settings = settings
        if sessions is None:
            sessions = session.SessionStore(max_conversations=settings.session.max_conversations)
        self._sessions = sessions
        if skill_registry is None:
            skill_registry = skills.SkillRegistry.from_config(settings.skills, settings.skill_dirs)
        self._skills = skill_registry
        self._subagent_client = subagent_client or subagents.SubAgentClient(
            discovery_timeout=settings.timeouts.discovery,
            delegation_timeout=settings.timeouts.delegation,
            http_client=http_client,
        )
        self._provider_factory = provider_factory or api_factory.create_provider
        self._http_client = http_client
        self._logger = logger or self._create_logger()
        self._tasks: set[_asyncio.Task[None]] = set()

    def _create_logger(self) -> willknow_logging.ConversationLogger | None:
        log_config = self._settings.logging
        if not log_config.enabled:
            return None
        model = self._settings.get_default_model()
        return willknow_logging.ConversationLogger(
            log_dir=log_config.dir,
            private_mode=log_config.private,
            provider=model.provider if model else "unknown",
            model=model.model if model else "unknown",
        )

    @property
    def settings(self) -> config.Settings:
        return self._settings

    @property
    def sessions(self) -> session.SessionStore:
        return self._sessions

    @property
    def skills(self) -> skills.SkillRegistry:
        return self._skills

    def resolve_model(self) -> config.ModelConfig:
        """
        The model selection used for new exchanges.

        Raises:
            NoModelConfiguredError: If no model is configured.
        """
        model = self._settings.get_default_model()
        if model is None:
            raise NoModelConfiguredError()
        return model

    # =========================================================================
    # Streaming exchanges (caller-held history)
    # =========================================================================

    def start_exchange(self, request: ChatRequest) -> events.EventEmitter:
        """
        Validate a request and start its exchange in a background task.

        The task keeps running if the caller stops reading events.

        Args:
            request: The chat request.

        Returns:
            Emitter to iterate for progress events.

        Raises:
            NoModelConfiguredError: If no model is configured.
            ValueError: If the request history is malformed.
        """
        model = self.resolve_model()
        messages = request.build_messages()
        emitter = events.EventEmitter()
        conversation_id = request.conversation_id or _constants.DEFAULT_CONVERSATION_ID

        task = _asyncio.create_task(
            self._run_streaming_exchange(conversation_id, model, messages, emitter),
            name=f"willknow-exchange-{conversation_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return emitter

    async def stream_chat(self, request: ChatRequest) -> _typing.AsyncIterator[events.ProgressEvent]:
        """
        Run an exchange and yield its progress events.

        Raises:
            NoModelConfiguredError: If no model is configured.
            ValueError: If the request history is malformed.
        """
        emitter = self.start_exchange(request)
        async for event in emitter:
            yield event

    async def _run_streaming_exchange(
        self,
        conversation_id: str,
        model: config.ModelConfig,
        messages: list[api_types.Message],
        emitter: events.EventEmitter,
    ) -> None:
        async with self._sessions.hold(conversation_id) as state:
            if self._logger:
                self._logger.log_user_message(conversation_id, messages[-1].text)
            try:
                result = await self._run_turn_loop(state, model, messages, emitter)
            except Exception as e:
                _logger.exception("Exchange failed (conversation %s)", conversation_id)
                if self._logger:
                    self._logger.log_error(conversation_id, str(e))
                emitter.finish_error(str(e))
                return

            if self._logger:
                self._logger.log_assistant_message(conversation_id, result.response_text)
            emitter.finish_done()

    # =========================================================================
    # Channel exchanges (server-held history)
    # =========================================================================

    async def handle_message(self, chat_id: str, text: str) -> str:
        """
        Run an exchange for a channel chat and return the reply text.

        History is kept server-side per chat id and bounded by
        ``session.history_limit``. On failure the user message is rolled
        back so the history stays well-formed.

        Args:
            chat_id: Channel chat identifier (also the conversation key).
            text: Incoming user text.

        Returns:
            The assistant's text, ``"(no response)"`` if there was none, or
            ``"Processing failed: <error>"``.
        """
        try:
            model = self.resolve_model()
        except NoModelConfiguredError as e:
            return f"{_constants.PROCESSING_FAILED_PREFIX}{e}"

        async with self._sessions.hold(chat_id) as state:
            user_message = api_types.Message.user_text(text)
            state.history.append(user_message)
            if self._logger:
                self._logger.log_user_message(chat_id, text)

            collector = events.TextCollector()
            try:
                await self._run_turn_loop(state, model, list(state.history), collector)
            except Exception as e:
                _logger.exception("Channel exchange failed (chat %s)", chat_id)
                state.history.pop()
                if self._logger:
                    self._logger.log_error(chat_id, str(e))
                return f"{_constants.PROCESSING_FAILED_PREFIX}{e}"

            reply = collector.text
            if reply:
                state.history.append(
                    api_types.Message(role="assistant", content=(api_types.TextBlock(text=reply),))
                )
            else:
                # Keep user/assistant alternation intact
                state.history.pop()
            state.trim_history(self._settings.session.history_limit)

            if self._logger:
                self._logger.log_assistant_message(chat_id, reply)
            return reply or _constants.NO_RESPONSE_TEXT

    # =========================================================================
    # Shared
    # =========================================================================

    async def _run_turn_loop(
        self,
        state: session.ConversationState,
        model: config.ModelConfig,
        messages: list[api_types.Message],
        callbacks: conversation.ConversationCallbacks,
    ) -> conversation.ConversationResult:
        provider = self._provider_factory(
            model,
            connect_timeout=self._settings.timeouts.upstream_connect,
            http_client=self._http_client,
        )
        try:
            subagent_tools = await self._subagent_client.load_tools(
                self._settings.get_enabled_subagents(), state
            )
            registry = tools.build_tool_registry(subagent_tools, self._skills)
            if self._logger:
                self._logger.log_event(
                    "tools_loaded",
                    conversation_id=state.conversation_id,
                    tools=registry.list_names(),
                )
            system_prompt = prompts.build_system_prompt(self._skills.enabled())

            processor = conversation.ConversationProcessor(
                provider,
                callbacks,
                tool_registry=registry,
                max_tokens=self._settings.behavior.max_tokens,
                max_turns=self._settings.behavior.max_turns,
                logger=self._logger,
                conversation_id=state.conversation_id,
            )
            return await processor.process_streaming(messages, system_prompt)
        finally:
            await provider.close()

    async def wait_for_exchanges(self) -> None:
        """Wait for every background exchange to finish."""
        if self._tasks:
            await _asyncio.gather(*self._tasks, return_exceptions=True)

    async def aclose(self) -> None:
        """Finish running exchanges and release resources."""
        await self.wait_for_exchanges()
        await self._subagent_client.close()
        if self._logger:
            self._logger.close()
