"""Factory pattern for creating completion client instances."""

from app.adapters.llm.base import AbstractCompletionClient
from app.adapters.llm.openai_client import OpenAIClient
from app.core.config import LLMSettings
from app.core.errors import ConfigAppError

# Providers speaking the OpenAI chat completions protocol, with their defaults
PROVIDER_BASE_URLS: dict[str, str | None] = {
    "openai": None,
    "groq": "https://api.groq.com/openai/v1",
}


def create_completion_client(llm_settings: LLMSettings) -> AbstractCompletionClient:
    """Factory function to instantiate completion clients based on provider.

    Validates provider-specific requirements and routes to appropriate client.

    Args:
        llm_settings: Provider, model and credentials.

    Returns:
        AbstractCompletionClient: Configured completion client instance.

    Raises:
        ConfigAppError: If provider-specific requirements are not met.
    """
    provider = llm_settings.provider.lower()

    if provider not in PROVIDER_BASE_URLS:
        raise ConfigAppError(
            code="llm_unknown_provider",
            message=(
                f"Unknown LLM provider: '{provider}'. "
                f"Supported providers: {', '.join(sorted(PROVIDER_BASE_URLS))}"
            ),
            details={"setting": "LLM_PROVIDER"},
        )

    if not llm_settings.api_key:
        raise ConfigAppError(
            code="llm_missing_api_key",
            message=f"{provider} provider requires LLM_API_KEY environment variable",
            details={"setting": "LLM_API_KEY"},
        )

    return OpenAIClient(
        api_key=llm_settings.api_key,
        model=llm_settings.model,
        base_url=llm_settings.base_url or PROVIDER_BASE_URLS[provider],
        timeout_seconds=llm_settings.timeout_seconds,
        temperature=llm_settings.temperature,
        max_tokens=llm_settings.max_tokens,
    )
