from typing import Any, Dict

from azure.identity.aio import get_bearer_token_provider
from openai import AsyncAzureOpenAI

from ..credentials import AzureCredentials, COGNITIVE_SERVICES_SCOPE
from ...utils.error_handler import ProviderException, ConfigurationException


def build_azure_client(config: Dict[str, Any]) -> AsyncAzureOpenAI:
    """Create an Azure OpenAI client using managed identity or an API key."""
    endpoint = config.get("endpoint")
    if not endpoint:
        raise ConfigurationException("Azure OpenAI endpoint is required")

    api_version = config.get("api_version", "2024-08-01-preview")
    timeout = config.get("timeout", 200)
    max_retries = config.get("max_retries", 2)

    try:
        if config.get("use_managed_identity", False):
            token_provider = get_bearer_token_provider(
                AzureCredentials.get_async_credentials(),
                COGNITIVE_SERVICES_SCOPE
            )
            return AsyncAzureOpenAI(
                api_version=api_version,
                azure_endpoint=endpoint,
                azure_ad_token_provider=token_provider,
                max_retries=max_retries,
                timeout=timeout
            )

        api_key = config.get("api_key")
        if not api_key:
            raise ConfigurationException("Azure OpenAI API key is required when managed identity is disabled")

        return AsyncAzureOpenAI(
            api_version=api_version,
            azure_endpoint=endpoint,
            api_key=api_key,
            max_retries=max_retries,
            timeout=timeout
        )
    except ConfigurationException:
        raise
    except Exception as e:
        raise ProviderException(f"Failed to initialize Azure OpenAI client: {e}") from e


def deployment_for(config: Dict[str, Any], model: str) -> str:
    """Azure routes requests by deployment name; fall back to the model id."""
    return config.get("deployment_name") or model
