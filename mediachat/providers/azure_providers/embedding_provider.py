from typing import Any, Dict

from ..openai_providers.embedding_provider import OpenAIEmbeddingProvider
from .client import build_azure_client, deployment_for


class AzureEmbeddingProvider(OpenAIEmbeddingProvider):
    """Azure OpenAI embedding provider implementation."""

    def _initialize_client(self):
        return build_azure_client(self.config)

    def _request_options(self) -> Dict[str, Any]:
        options = super()._request_options()
        options["model"] = deployment_for(self.config, options["model"])
        return options
