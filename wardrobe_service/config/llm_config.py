"""
LLM Configuration Module
Model-agnostic config for the outfit suggestion model.

Environment Variables:
    - WARDROBE_LLM_PROVIDER: "openai" | "gemini" (default: openai)
    - WARDROBE_LLM_MODEL: Override default model (optional)
    - WARDROBE_LLM_BASE_URL: OpenAI-compatible gateway URL (optional)
    - WARDROBE_LLM_TEMPERATURE / WARDROBE_LLM_MAX_TOKENS

Credentials are NOT part of this config. They are read from the
environment at call time (WARDROBE_LLM_API_KEY or GEMINI_API_KEY).
"""
import os
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


# ==================== ENUMS ====================

class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    GEMINI = "gemini"


# ==================== PROVIDER DEFAULTS ====================

@dataclass
class OpenAIConfig:
    """OpenAI-compatible gateway defaults."""
    default_model: str = "gpt-4o-mini"
    api_key_env: str = "WARDROBE_LLM_API_KEY"
    temperature: float = 0.7
    max_tokens: int = 1000


@dataclass
class GeminiConfig:
    """Gemini defaults."""
    default_model: str = "gemini-2.5-flash"
    api_key_env: str = "GEMINI_API_KEY"
    temperature: float = 0.7
    max_tokens: int = 1000


# ==================== ACTIVE CONFIG ====================

@dataclass
class ActiveLLMConfig:
    """Active LLM configuration."""
    provider: LLMProvider
    model: str
    api_key_env: str
    temperature: float
    max_tokens: int
    base_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ActiveLLMConfig":
        """Resolve configuration from environment variables."""
        provider_str = os.getenv("WARDROBE_LLM_PROVIDER", "openai").lower()

        if provider_str == "gemini":
            provider = LLMProvider.GEMINI
            defaults = GeminiConfig()
        else:
            provider = LLMProvider.OPENAI
            defaults = OpenAIConfig()

        config = cls(
            provider=provider,
            model=os.getenv("WARDROBE_LLM_MODEL", defaults.default_model),
            api_key_env=defaults.api_key_env,
            temperature=float(os.getenv("WARDROBE_LLM_TEMPERATURE", str(defaults.temperature))),
            max_tokens=int(os.getenv("WARDROBE_LLM_MAX_TOKENS", str(defaults.max_tokens))),
            base_url=os.getenv("WARDROBE_LLM_BASE_URL") or None,
        )

        logger.info(f"LLM Config: provider={provider.value}, model={config.model}")
        return config

    def is_openai(self) -> bool:
        return self.provider == LLMProvider.OPENAI

    def is_gemini(self) -> bool:
        return self.provider == LLMProvider.GEMINI

    def to_dict(self) -> dict:
        return {
            "provider": self.provider.value,
            "model": self.model,
            "base_url": self.base_url,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "credential_configured": bool(os.getenv(self.api_key_env)),
        }


# ==================== SINGLETON INSTANCE ====================

_llm_config: Optional[ActiveLLMConfig] = None


def get_llm_config() -> ActiveLLMConfig:
    """Get active LLM configuration."""
    global _llm_config
    if _llm_config is None:
        _llm_config = ActiveLLMConfig.from_env()
    return _llm_config


def reset_llm_config():
    """Reset config (for testing)."""
    global _llm_config
    _llm_config = None
