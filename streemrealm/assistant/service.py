"""Claude build assistant.

Wraps the Anthropic Messages API. Each message is sent with a system prompt
refreshed from the live snapshot, the recent conversation and the four build
tools. Tool calls in the reply are run through the ToolDispatcher and their
results are appended to the assistant's text.
"""

from __future__ import annotations

import logging
from typing import Any

from anthropic import APIError, AsyncAnthropic

from streemrealm.assistant.tools import TOOL_SCHEMA, ToolDispatcher
from streemrealm.config import ClaudeConfig
from streemrealm.models import ChatRole, ChatTurn
from streemrealm.storage.local_store import ChatHistoryStore
from streemrealm.sync.reconciler import Reconciler
from streemrealm.sync.snapshot import Snapshot

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are the TEAM STREEM REALM Build Assistant - a helpful AI that manages Dad's epic Minecraft mega-build project!

Your personality:
- Enthusiastic about Minecraft and the build project
- Supportive and encouraging
- Uses appropriate Minecraft terminology and occasional emojis
- Keeps responses concise but informative

You have access to the Airtable database through these tools:
- log_session: Record a new build session with blocks placed, duration, mood, and notes
- update_zone: Change zone status, visibility, or teaser message
- get_stats: Retrieve current project statistics
- toggle_visibility: Show/hide zones or structures from the kids

Current project context (refreshed each message):
- Total zones: {zone_count}
- Zones complete: {complete_count}
- Total blocks placed: {blocks_placed}
- Total blocks planned: {blocks_planned}
- Overall progress: {progress}%

When the user wants to log a session, ask for:
1. How many blocks were placed
2. How long they built (minutes)
3. Which zone(s) they worked on
4. Their mood (Master Builder 🏆, On Fire 🔥, Brick by Brick 🧱, Creeper Problems 😤, Mined Out 😴)
5. Any notes for the kids (optional)

Always confirm actions before executing them.
"""


class AssistantError(Exception):
    """The build assistant could not produce a reply."""


class AssistantConfigError(AssistantError):
    """No Claude API key is configured."""


def build_system_prompt(snapshot: Snapshot) -> str:
    """Fill the system prompt with the snapshot's current numbers."""
    stats = snapshot.stats
    return SYSTEM_PROMPT.format(
        zone_count=stats.zone_count,
        complete_count=stats.completed_zones,
        blocks_placed=stats.total_blocks_placed,
        blocks_planned=stats.total_blocks_planned,
        progress=f"{stats.overall_progress * 100:.1f}",
    )


def to_api_messages(turns: list[ChatTurn], window: int) -> list[dict[str, str]]:
    """Last ``window`` turns as Messages API payload.

    The API wants the conversation to open with a user message, so leading
    assistant turns left over from the window cut are dropped.
    """
    recent = [t for t in turns if t.content.strip()][-window:] if window > 0 else []
    while recent and recent[0].role != ChatRole.USER:
        recent.pop(0)
    return [{"role": t.role.value, "content": t.content} for t in recent]


def _block_field(block: Any, name: str) -> Any:
    if isinstance(block, dict):
        return block.get(name)
    return getattr(block, name, None)


class BuildAssistant:
    """Chat with Claude about the build; tool calls go through the Reconciler.

    Usage:
        assistant = BuildAssistant(reconciler, ChatHistoryStore(path), api_key=key)
        turn = await assistant.send_message("Log 120 blocks, 45 minutes, on fire")
    """

    def __init__(
        self,
        reconciler: Reconciler,
        history: ChatHistoryStore,
        api_key: str | None = None,
        model: str = ClaudeConfig.model,
        max_tokens: int = ClaudeConfig.max_tokens,
        history_window: int = ClaudeConfig.history_window,
        client: AsyncAnthropic | None = None,
    ):
        self.reconciler = reconciler
        self.history = history
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.history_window = history_window
        self.dispatcher = ToolDispatcher(reconciler)
        self._client = client

    @classmethod
    def from_config(
        cls,
        config: ClaudeConfig,
        reconciler: Reconciler,
        history: ChatHistoryStore,
        client: AsyncAnthropic | None = None,
    ) -> BuildAssistant:
        return cls(
            reconciler,
            history,
            api_key=config.api_key,
            model=config.model,
            max_tokens=config.max_tokens,
            history_window=config.history_window,
            client=client,
        )

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            if not self.api_key:
                raise AssistantConfigError(
                    "Claude API key not configured. Set ANTHROPIC_API_KEY or run "
                    "`streemrealm set-token --claude`."
                )
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    def build_system_prompt(self, snapshot: Snapshot | None = None) -> str:
        return build_system_prompt(snapshot or self.reconciler.snapshot)

    async def send_message(self, text: str) -> ChatTurn:
        """Send a user message and return the assistant's reply turn.

        The user turn is persisted before the request so it survives an API
        failure; the assistant turn is persisted once the reply is complete.

        Raises:
            AssistantConfigError: If no API key is configured
            AssistantError: If the Messages API call fails
        """
        client = self._get_client()

        turns = self.history.append(ChatTurn(role=ChatRole.USER, content=text))

        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=self.build_system_prompt(),
                messages=to_api_messages(turns, self.history_window),
                tools=TOOL_SCHEMA,
            )
        except APIError as e:
            logger.error("assistant_request_failed: %s", e)
            raise AssistantError(f"Claude API error: {e}") from e

        reply = await self._render_reply(response.content)
        turn = ChatTurn(role=ChatRole.ASSISTANT, content=reply)
        self.history.append(turn)
        return turn

    async def _render_reply(self, blocks: list[Any]) -> str:
        parts: list[str] = []
        for block in blocks:
            kind = _block_field(block, "type")
            if kind == "text":
                parts.append(_block_field(block, "text") or "")
            elif kind == "tool_use":
                result = await self.dispatcher.dispatch(
                    _block_field(block, "name") or "",
                    _block_field(block, "input") or {},
                )
                parts.append(f"\n\n{result}")
        return "".join(parts)

    def clear_history(self) -> None:
        self.history.clear()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
