"""
LLM client wrapper.

One CoachClient is built at application startup and handed to every coach
function, so there is a single place that knows about the Anthropic SDK,
model names and error classification.

Usage:
    from grindproof.ai.client import CoachClient

    client = CoachClient.from_config()
    text = await client.generate(system_prompt, "Analyze this data: ...")
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import anthropic

from grindproof.config import get_secret, get_section
from grindproof.errors import LLMError


logger = logging.getLogger(__name__)


@dataclass
class ToolCall:
    id: str
    name: str
    input: dict[str, Any]


@dataclass
class CoachReply:
    """One model turn: any text, any requested tool calls, and the raw content blocks."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    content: list[dict[str, Any]] = field(default_factory=list)
    stop_reason: str | None = None


def classify_error(error: Exception) -> LLMError:
    """Map SDK exceptions to LLMError kinds (quota, configuration, other)."""
    if isinstance(error, LLMError):
        return error
    message = str(error)
    if (
        isinstance(error, anthropic.RateLimitError)
        or "quota" in message.lower()
        or "RESOURCE_EXHAUSTED" in message
    ):
        return LLMError(f"LLM quota exceeded: {message}", kind="quota")
    if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return LLMError(f"LLM configuration error: {message}", kind="configuration")
    if "api key" in message.lower() or "invalid" in message.lower():
        return LLMError(f"LLM configuration error: {message}", kind="configuration")
    return LLMError(f"LLM request failed: {message}")


class CoachClient:
    """Thin async wrapper over the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str | None,
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = anthropic.AsyncAnthropic(api_key=api_key) if api_key else None

    @classmethod
    def from_config(cls) -> "CoachClient":
        ai_config = get_section("ai")
        api_key = get_secret("ANTHROPIC_API_KEY")
        if not api_key:
            logger.warning("ANTHROPIC_API_KEY not set; AI features will be unavailable")
        return cls(
            api_key=api_key,
            model=ai_config.get("model", "claude-sonnet-4-20250514"),
            max_tokens=ai_config.get("max_tokens", 2048),
            temperature=ai_config.get("temperature", 0.7),
        )

    @property
    def available(self) -> bool:
        return self._client is not None

    def _require_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            raise LLMError("ANTHROPIC_API_KEY not set", kind="configuration")
        return self._client

    async def generate(
        self,
        system: str,
        prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Single-turn completion returning the concatenated text blocks."""
        client = self._require_client()
        try:
            message = await client.messages.create(
                model=self.model,
                max_tokens=max_tokens or self.max_tokens,
                temperature=self.temperature if temperature is None else temperature,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            raise classify_error(e) from e

        return "".join(block.text for block in message.content if block.type == "text").strip()

    async def respond(
        self,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> CoachReply:
        """One conversational turn, possibly requesting tool calls."""
        client = self._require_client()
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": system,
            "messages": messages,
        }
        if tools:
            kwargs["tools"] = tools
        try:
            message = await client.messages.create(**kwargs)
        except Exception as e:
            raise classify_error(e) from e

        reply = CoachReply(stop_reason=message.stop_reason)
        texts = []
        for block in message.content:
            if block.type == "text":
                texts.append(block.text)
                reply.content.append({"type": "text", "text": block.text})
            elif block.type == "tool_use":
                reply.tool_calls.append(ToolCall(id=block.id, name=block.name, input=dict(block.input)))
                reply.content.append(
                    {"type": "tool_use", "id": block.id, "name": block.name, "input": dict(block.input)}
                )
        reply.text = "".join(texts).strip()
        return reply
