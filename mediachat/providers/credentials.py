"""
Centralized Azure credentials management for the Azure OpenAI providers.
"""

from azure.identity.aio import (
    DefaultAzureCredential as AsyncDefaultAzureCredential,
    AzureCliCredential as AsyncAzureCliCredential,
    ChainedTokenCredential as AsyncChainedTokenCredential
)

COGNITIVE_SERVICES_SCOPE = "https://cognitiveservices.azure.com/.default"


class AzureCredentials:
    """Centralized credential management for Azure services."""

    @staticmethod
    def get_async_credentials():
        """
        Get credentials for Azure OpenAI (async version).
        Uses ChainedTokenCredential to try CLI first, then fallback to DefaultAzureCredential.

        Returns:
            AsyncChainedTokenCredential with CLI and DefaultAzureCredential
        """
        return AsyncChainedTokenCredential(
            AsyncAzureCliCredential(),
            AsyncDefaultAzureCredential()
        )
