"""
LLM Adapter
Unified text-generation client over an OpenAI-compatible gateway or Gemini.

One prompt in, the complete reply text out. No streaming, no retries and
no provider fallback: a failed call surfaces as UpstreamError.
"""
import os
import logging
from typing import Optional

from wardrobe_service.config.llm_config import get_llm_config, ActiveLLMConfig
from wardrobe_service.core.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Text-generation client for the configured provider.

    Usage:
        client = LLMClient()
        text = await client.generate_text(prompt)
    """

    def __init__(self, config: Optional[ActiveLLMConfig] = None):
        self.config = config or get_llm_config()
        self._openai_client = None
        self._openai_key: Optional[str] = None

    @property
    def provider(self) -> str:
        return self.config.provider.value

    @property
    def model(self) -> str:
        return self.config.model

    def _api_key(self) -> str:
        """Read the provider credential. Checked on every call, before any network I/O."""
        api_key = os.getenv(self.config.api_key_env)
        if not api_key:
            raise ConfigurationError(f"{self.config.api_key_env} is not configured")
        return api_key

    async def generate_text(self, prompt: str) -> str:
        """
        Send a single user prompt and return the buffered reply.

        Raises:
            ConfigurationError: Credential missing (no request attempted)
            UpstreamError: Provider or transport failure
        """
        api_key = self._api_key()

        try:
            if self.config.is_gemini():
                return await self._generate_gemini(api_key, prompt)
            return await self._generate_openai(api_key, prompt)
        except Exception as e:
            logger.error(f"LLM call failed [{self.provider}/{self.model}]: {e}")
            raise UpstreamError(str(e)) from e

    def _init_openai(self, api_key: str):
        """Build the gateway client once; rebuilt only if the credential changes."""
        if self._openai_client is None or self._openai_key != api_key:
            from openai import AsyncOpenAI
            self._openai_client = AsyncOpenAI(api_key=api_key, base_url=self.config.base_url, max_retries=0)
            self._openai_key = api_key
        return self._openai_client

    async def _generate_openai(self, api_key: str, prompt: str) -> str:
        """Generate using an OpenAI-compatible chat completions endpoint."""
        client = self._init_openai(api_key)

        response = await client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def _generate_gemini(self, api_key: str, prompt: str) -> str:
        """Generate using Gemini."""
        import google.generativeai as genai

        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(self.model)

        response = await model.generate_content_async(
            prompt,
            generation_config={
                "temperature": self.config.temperature,
                "max_output_tokens": self.config.max_tokens,
            },
        )
        return response.text or ""


# ==================== SINGLETON INSTANCE ====================

_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get the shared LLM client."""
    global _client
    if _client is None:
        _client = LLMClient()
    return _client


def reset_llm_client():
    """Reset the shared client (for testing)."""
    global _client
    _client = None
