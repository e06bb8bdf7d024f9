"""
HTTP client for collaborator services (subagents).

A subagent exposes two endpoints under its base URL:

- ``GET  /willknow/info`` returns ``{name, description, capabilities}``
- ``POST /willknow/chat`` takes ``{message, session_id?}`` and returns
  ``{message, session_id?}``

The session id is an opaque continuation token: echoing it back lets the
subagent resume its own context for the same conversation.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import httpx as _httpx

import willknow.config.types as config_types
import willknow.constants as _constants

if _typing.TYPE_CHECKING:
    import willknow.session.state as state
    import willknow.tools.subagent as subagent_tool

_logger = _logging.getLogger(__name__)


class SubAgentError(Exception):
    """Raised when discovery or delegation against a subagent fails."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@_dataclasses.dataclass(frozen=True)
class SubAgentCapability:
    """One advertised capability of a subagent."""

    name: str
    description: str = ""


@_dataclasses.dataclass(frozen=True)
class SubAgentInfo:
    """Discovery response of a subagent."""

    name: str
    description: str = ""
    capabilities: tuple[SubAgentCapability, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, _typing.Any]) -> SubAgentInfo:
        """
        Raises:
            ValueError: If a field has the wrong JSON type.
        """
        for key in ("name", "description"):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ValueError(f"'{key}' must be a string")
        raw_capabilities = data.get("capabilities")
        if raw_capabilities is None:
            raw_capabilities = []
        if not isinstance(raw_capabilities, list):
            raise ValueError("'capabilities' must be a list")

        capabilities = tuple(
            SubAgentCapability(
                name=str(cap.get("name", "")),
                description=str(cap.get("description", "")),
            )
            for cap in raw_capabilities
            if isinstance(cap, dict)
        )
        return cls(
            name=data.get("name") or "",
            description=data.get("description") or "",
            capabilities=capabilities,
        )


@_dataclasses.dataclass(frozen=True)
class SubAgentReply:
    """Delegation response of a subagent."""

    message: str
    session_id: str | None = None


class SubAgentClient:
    """
    Discovers and invokes subagents over HTTP.

    One client can serve any number of subagents; per-request timeouts
    bound discovery and delegation separately.
    """

    def __init__(
        self,
        *,
        discovery_timeout: float = _constants.DEFAULT_DISCOVERY_TIMEOUT,
        delegation_timeout: float = _constants.DEFAULT_DELEGATION_TIMEOUT,
        http_client: _httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            discovery_timeout: Seconds allowed for a discovery request.
            delegation_timeout: Seconds allowed for a delegation request.
            http_client: Pre-built client (tests inject a mock transport here).
        """
        self._discovery_timeout = discovery_timeout
        self._delegation_timeout = delegation_timeout
        self._owns_client = http_client is None
        self._client = http_client or _httpx.AsyncClient()

    async def discover(self, url: str, auth: config_types.SubAgentAuth) -> SubAgentInfo:
        """
        Fetch a subagent's self-description.

        Args:
            url: Subagent base URL (no trailing slash).
            auth: Authentication settings.

        Returns:
            Parsed discovery response.

        Raises:
            SubAgentError: On timeout, transport error, non-2xx, bad JSON, or
                a malformed body.
        """
        data = await self._request(
            "GET",
            f"{url}{_constants.SUBAGENT_DISCOVERY_PATH}",
            auth=auth,
            timeout=self._discovery_timeout,
            action="discovery",
        )
        try:
            return SubAgentInfo.from_dict(data)
        except ValueError as e:
            raise SubAgentError(f"Subagent discovery returned a malformed body: {url}: {e}") from e

    async def invoke(
        self,
        url: str,
        auth: config_types.SubAgentAuth,
        message: str,
        session_id: str | None = None,
    ) -> SubAgentReply:
        """
        Delegate an instruction to a subagent.

        Args:
            url: Subagent base URL (no trailing slash).
            auth: Authentication settings.
            message: Natural-language instruction.
            session_id: Continuation token from the previous call, if any.

        Returns:
            The subagent's answer and its new continuation token.

        Raises:
            SubAgentError: On timeout, transport error, non-2xx, or bad JSON.
        """
        body: dict[str, _typing.Any] = {"message": message}
        if session_id:
            body["session_id"] = session_id

        data = await self._request(
            "POST",
            f"{url}{_constants.SUBAGENT_DELEGATION_PATH}",
            auth=auth,
            timeout=self._delegation_timeout,
            action="delegation",
            json=body,
        )
        returned = data.get("session_id")
        return SubAgentReply(
            message=str(data.get("message") or ""),
            session_id=str(returned) if returned else None,
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        auth: config_types.SubAgentAuth,
        timeout: float,
        action: str,
        json: dict[str, _typing.Any] | None = None,
    ) -> dict[str, _typing.Any]:
        headers = {"Content-Type": "application/json", **auth.headers()}
        try:
            response = await self._client.request(
                method, url, headers=headers, json=json, timeout=timeout
            )
        except _httpx.TimeoutException as e:
            raise SubAgentError(f"Subagent {action} timed out after {timeout}s: {url}") from e
        except _httpx.HTTPError as e:
            raise SubAgentError(f"Subagent {action} failed: {e}") from e

        if not response.is_success:
            raise SubAgentError(
                f"Subagent {action} failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SubAgentError(f"Subagent {action} returned invalid JSON: {url}") from e
        if not isinstance(data, dict):
            raise SubAgentError(f"Subagent {action} returned a non-object: {url}")
        return data

    def build_tool(
        self,
        config: config_types.SubAgentConfig,
        info: SubAgentInfo,
        conversation: state.ConversationState,
    ) -> subagent_tool.SubAgentTool:
        """Wrap a discovered subagent as a tool bound to one conversation."""
        import willknow.tools.subagent as subagent_tool

        return subagent_tool.SubAgentTool(
            config=config,
            info=info,
            client=self,
            conversation=conversation,
        )

    async def load_tools(
        self,
        configs: list[config_types.SubAgentConfig],
        conversation: state.ConversationState,
    ) -> list[subagent_tool.SubAgentTool]:
        """
        Discover each enabled subagent and build its tool.

        A subagent that fails discovery is logged and left out; the others
        are unaffected.

        Args:
            configs: Configured subagents, in order.
            conversation: Conversation whose continuation tokens the tools use.

        Returns:
            Tools for the subagents that answered discovery.
        """
        tools: list[subagent_tool.SubAgentTool] = []
        for config in configs:
            if not config.enabled:
                continue
            try:
                info = await self.discover(config.url, config.auth)
            except SubAgentError as e:
                _logger.warning("Skipping subagent %s (%s): %s", config.id, config.url, e)
                continue
            tools.append(self.build_tool(config, info, conversation))
        return tools

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_client:
            await self._client.aclose()
