from ..openai_providers.llm_provider import OpenAILLMProvider
from .client import build_azure_client, deployment_for


class AzureLLMProvider(OpenAILLMProvider):
    """Azure OpenAI LLM provider implementation.

    Request shaping is shared with the OpenAI provider; the model family is
    still taken from ``model_name`` while the request targets the deployment.
    """

    def _initialize_client(self):
        return build_azure_client(self.config)

    def _request_model(self, model: str) -> str:
        return deployment_for(self.config, model)
