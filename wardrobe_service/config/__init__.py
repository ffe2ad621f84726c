# Config module
from wardrobe_service.config.settings import get_settings, reload_settings, Settings
from wardrobe_service.config.llm_config import (
    LLMProvider,
    OpenAIConfig,
    GeminiConfig,
    ActiveLLMConfig,
    get_llm_config,
    reset_llm_config,
)
