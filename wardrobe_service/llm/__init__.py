# LLM module
from wardrobe_service.llm.llm_adapter import LLMClient, get_llm_client, reset_llm_client
