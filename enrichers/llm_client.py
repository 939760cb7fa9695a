"""
Chat-completion transport.

Contract: an ordered list of {"role": "system"|"user"|"assistant", "content"}
messages plus a temperature in, one text blob out. Two hosted backends:

  DeepSeekClient  deepseek-chat through the OpenAI-compatible endpoint
                  (openai SDK); used by every analysis with a fallback payload
  ClaudeClient    alternate hosted model (anthropic SDK); used by the lead
                  enrichment endpoint, which reports a missing key to the caller
"""
import logging
from typing import Optional, Protocol

import anthropic
from openai import OpenAI, OpenAIError

import config

logger = logging.getLogger(__name__)

ChatMessage = dict[str, str]


class LLMError(RuntimeError):
    """The completion service could not be reached or returned an error."""


class LLMNotConfigured(LLMError):
    """The API key for the completion service is not set."""


class CompletionClient(Protocol):
    def complete(self, messages: list[ChatMessage], temperature: float = 0.7) -> str:
        ...


class DeepSeekClient:
    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 model: Optional[str] = None, max_tokens: Optional[int] = None):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.max_tokens = max_tokens

    @property
    def configured(self) -> bool:
        return bool(self.api_key or config.DEEPSEEK_API_KEY)

    def complete(self, messages: list[ChatMessage], temperature: float = 0.7) -> str:
        api_key = self.api_key or config.DEEPSEEK_API_KEY
        if not api_key:
            raise LLMNotConfigured("DEEPSEEK_API_KEY not set")

        client = OpenAI(api_key=api_key, base_url=self.base_url or config.DEEPSEEK_BASE_URL)
        try:
            response = client.chat.completions.create(
                model=self.model or config.DEEPSEEK_MODEL,
                messages=messages,
                temperature=temperature,
                max_tokens=self.max_tokens or config.DEEPSEEK_MAX_TOKENS,
            )
        except OpenAIError as e:
            raise LLMError(f"DeepSeek API error: {e}") from e

        if not response.choices:
            return ""
        content = response.choices[0].message.content or ""
        logger.debug(f"Raw DeepSeek response: {content!r}")
        return content


class ClaudeClient:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 max_tokens: int = 1000):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens

    @property
    def configured(self) -> bool:
        return bool(self.api_key or config.ANTHROPIC_API_KEY)

    def complete(self, messages: list[ChatMessage], temperature: float = 0.7) -> str:
        api_key = self.api_key or config.ANTHROPIC_API_KEY
        if not api_key:
            raise LLMNotConfigured("ANTHROPIC_API_KEY not set")

        # Anthropic takes the system prompt separately from the turns
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        turns = [m for m in messages if m["role"] != "system"]

        client = anthropic.Anthropic(api_key=api_key)
        kwargs = {
            "model": self.model or config.ANTHROPIC_MODEL,
            "max_tokens": self.max_tokens,
            "temperature": temperature,
            "messages": turns,
        }
        if system:
            kwargs["system"] = system
        try:
            message = client.messages.create(**kwargs)
        except anthropic.APIError as e:
            raise LLMError(f"Claude API error: {e}") from e

        content = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        ).strip()
        logger.debug(f"Raw Claude response: {content!r}")
        return content
