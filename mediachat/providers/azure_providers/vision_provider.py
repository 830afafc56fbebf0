from ..openai_providers.vision_provider import OpenAIVisionProvider
from .client import build_azure_client, deployment_for


class AzureVisionProvider(OpenAIVisionProvider):
    """Azure OpenAI vision provider implementation."""

    def _initialize_client(self):
        return build_azure_client(self.config)

    def _request_model(self, model: str) -> str:
        return deployment_for(self.config, model)
