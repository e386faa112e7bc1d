import logging
import re
from typing import Any, Optional

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from walkquest.core.config import settings
from walkquest.core.exceptions import GenerationError

logger = logging.getLogger(__name__)

# ```json ... ``` or ``` ... ```, optional language tag after the opening fence
CODE_FENCE_PATTERN = re.compile(r"```[a-zA-Z0-9_-]*[ \t]*\n?(.*?)```", re.DOTALL)
# Unbalanced fences: a lone opening fence (with tag) or a lone closing one
LEADING_FENCE_PATTERN = re.compile(r"^```[a-zA-Z0-9_-]*[ \t]*\n?")
TRAILING_FENCE_PATTERN = re.compile(r"\n?```$")


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    match = CODE_FENCE_PATTERN.search(cleaned)
    if match:
        return match.group(1).strip()

    cleaned = LEADING_FENCE_PATTERN.sub("", cleaned)
    cleaned = TRAILING_FENCE_PATTERN.sub("", cleaned)
    return cleaned.strip()


class LLMService:
    """Text completion against the configured provider."""

    def __init__(self, provider: Optional[str] = None, client: Optional[Any] = None):
        self.provider = provider or settings.LLM_PROVIDER

        if client is not None:
            self.client = client
        elif self.provider == "anthropic":
            self.client = AsyncAnthropic(
                api_key=settings.ANTHROPIC_API_KEY,
                timeout=settings.LLM_TIMEOUT_SECONDS,
            )
        elif self.provider == "openai":
            self.client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.LLM_TIMEOUT_SECONDS,
            )
        else:
            raise ValueError(f"Unsupported LLM provider: {self.provider}")

    async def generate(self, prompt: str) -> str:
        try:
            if self.provider == "anthropic":
                response = await self.client.messages.create(
                    model=settings.LLM_MODEL,
                    max_tokens=settings.LLM_MAX_TOKENS,
                    temperature=settings.LLM_TEMPERATURE,
                    messages=[{"role": "user", "content": prompt}],
                )
                content = response.content[0].text if response.content else ""
            else:
                kwargs = {}
                if settings.LLM_JSON_MODE:
                    kwargs["response_format"] = {"type": "json_object"}
                response = await self.client.chat.completions.create(
                    model=settings.LLM_MODEL,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=settings.LLM_TEMPERATURE,
                    max_tokens=settings.LLM_MAX_TOKENS,
                    **kwargs,
                )
                content = response.choices[0].message.content if response.choices else ""
        except Exception as e:
            logger.error(f"LLM request failed ({self.provider}): {e}")
            raise GenerationError(f"LLM request failed: {e}") from e

        if not content or not content.strip():
            raise GenerationError("No response from LLM", raw_text=content)

        logger.debug(f"Raw LLM response length: {len(content)} chars")
        return content


_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
