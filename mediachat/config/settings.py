from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, PrivateAttr, field_validator
from typing import List, Optional
from dotenv import load_dotenv, find_dotenv
from loguru import logger

MIN_INTERVAL_SECONDS = 1
MAX_INTERVAL_SECONDS = 60

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant for videos. You have access to the video's transcript, "
    "snapshots, and metadata, as well as a list of other videos on the platform. When answering "
    "questions, reference specific timestamps when relevant. Be concise but informative. If you "
    "mention a specific moment, include the timestamp in format [0:00]."
)

DEFAULT_FRAME_PROMPT = (
    "Describe what you see in this video frame concisely. Focus on key visual elements, "
    "text, people, actions, and context."
)


def clamp_seconds(value, default: int, name: str) -> int:
    """Clamp an interval setting into 1..60 seconds, warning instead of failing."""
    try:
        seconds = int(float(value))
    except (TypeError, ValueError):
        logger.warning(f"Invalid {name} {value!r}, using default: {default} seconds")
        return default

    if seconds < MIN_INTERVAL_SECONDS:
        logger.warning(f"{name} {seconds} is below the minimum, using {MIN_INTERVAL_SECONDS} seconds")
        return MIN_INTERVAL_SECONDS
    if seconds > MAX_INTERVAL_SECONDS:
        logger.warning(f"{name} {seconds} is too large, capping at maximum: {MAX_INTERVAL_SECONDS} seconds")
        return MAX_INTERVAL_SECONDS
    return seconds


class LLMConfig(BaseSettings):
    """LLM provider configuration."""

    provider: str = Field(default="openai")
    model_name: str = Field(default="gpt-4.1-mini")
    api_key: Optional[str] = Field(default=None)
    endpoint: Optional[str] = Field(default=None)
    deployment_name: Optional[str] = Field(default=None)
    api_version: str = Field(default="2024-08-01-preview")
    use_managed_identity: bool = Field(default=False)
    timeout: int = Field(default=200)
    max_retries: int = Field(default=2)
    temperature: float = Field(default=0.7)

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )


class EmbeddingConfig(BaseSettings):
    """Embedding provider configuration."""

    provider: str = Field(default="openai")
    model_name: str = Field(default="text-embedding-3-small")
    dimensions: int = Field(default=1536)
    api_key: Optional[str] = Field(default=None)
    endpoint: Optional[str] = Field(default=None)
    deployment_name: Optional[str] = Field(default=None)
    api_version: str = Field(default="2024-08-01-preview")
    use_managed_identity: bool = Field(default=False)
    timeout: int = Field(default=200)
    max_retries: int = Field(default=2)

    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )


class VisionConfig(BaseSettings):
    """Frame description (vision model) configuration."""

    enabled: bool = Field(default=True)
    provider: str = Field(default="openai")
    model_name: Optional[str] = Field(default=None)
    max_tokens: int = Field(default=150)
    prompt: str = Field(default=DEFAULT_FRAME_PROMPT)

    model_config = SettingsConfigDict(
        env_prefix="VISION_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )


class StoreConfig(BaseSettings):
    """Embedding store configuration. Without a database URL the key-value fallback is used."""

    database_url: Optional[str] = Field(default=None)
    data_dir: str = Field(default="mediachat_data")
    embedding_dim: int = Field(default=1536)
    history_cap: int = Field(default=100)
    usage_cap: int = Field(default=1000)
    echo: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )


class CatalogConfig(BaseSettings):
    """Host catalog (video platform) configuration."""

    provider: str = Field(default="peertube")
    base_url: str = Field(default="http://localhost:9000")
    api_token: Optional[str] = Field(default=None)
    timeout: int = Field(default=30)
    preferred_caption_language: str = Field(default="en")

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )


class IngestionConfig(BaseSettings):
    """Ingestion pipeline configuration: intervals, retry ceilings and frame extraction."""

    auto_process: bool = Field(default=True)
    frame_interval: int = Field(default=5)
    segment_duration: int = Field(default=30)
    readiness_retry_delays: List[float] = Field(default_factory=lambda: [30, 60, 120, 300, 600])
    transcript_retry_delay: float = Field(default=60)
    transcript_max_retries: int = Field(default=5)
    media_url_retries: int = Field(default=3)
    media_url_retry_delay: float = Field(default=10)
    ffmpeg_path: str = Field(default="ffmpeg")
    frame_timeout: float = Field(default=60)

    model_config = SettingsConfigDict(
        env_prefix="INGESTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )

    @field_validator("frame_interval", mode="before")
    @classmethod
    def _clamp_frame_interval(cls, value):
        return clamp_seconds(value, default=5, name="frame interval")

    @field_validator("segment_duration", mode="before")
    @classmethod
    def _clamp_segment_duration(cls, value):
        return clamp_seconds(value, default=30, name="segment duration")


class ChatConfig(BaseSettings):
    """Chat answering configuration."""

    enabled: bool = Field(default=True)
    model: Optional[str] = Field(default=None)
    max_tokens: int = Field(default=1000)
    temperature: float = Field(default=0.7)
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    top_k: int = Field(default=5)
    max_frames: int = Field(default=10)
    related_limit: int = Field(default=10)
    history_limit: int = Field(default=20)
    history_page_size: int = Field(default=50)
    max_context_chars: int = Field(default=12000)
    cost_per_1k_tokens: float = Field(default=0.0)
    admin_token: Optional[str] = Field(default=None)

    model_config = SettingsConfigDict(
        env_prefix="CHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)
    enable_json: bool = Field(default=False)
    enable_file_logging: bool = Field(default=False)
    max_file_size: str = Field(default="10 MB")
    retention_days: int = Field(default=7)

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )


class MediaChatConfig(BaseSettings):
    """Main configuration class."""

    app_name: str = Field(default="mediachat")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    model_config = SettingsConfigDict(
        env_prefix="MEDIACHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )

    # Cached section configurations, built on first access
    _llm: Optional[LLMConfig] = PrivateAttr(default=None)
    _embedding: Optional[EmbeddingConfig] = PrivateAttr(default=None)
    _vision: Optional[VisionConfig] = PrivateAttr(default=None)
    _store: Optional[StoreConfig] = PrivateAttr(default=None)
    _catalog: Optional[CatalogConfig] = PrivateAttr(default=None)
    _ingestion: Optional[IngestionConfig] = PrivateAttr(default=None)
    _chat: Optional[ChatConfig] = PrivateAttr(default=None)
    _logging: Optional[LoggingConfig] = PrivateAttr(default=None)

    def __init__(self, **kwargs):
        # Force load environment variables before initializing
        load_dotenv(find_dotenv())
        super().__init__(**kwargs)

    def with_sections(self, **sections) -> "MediaChatConfig":
        """Replace section configurations, e.g. ``with_sections(ingestion=IngestionConfig(...))``."""
        for name, section in sections.items():
            if not hasattr(self, f"_{name}"):
                raise AttributeError(f"Unknown configuration section: {name}")
            setattr(self, f"_{name}", section)
        return self

    @property
    def llm(self) -> LLMConfig:
        if self._llm is None:
            self._llm = LLMConfig()
        return self._llm

    @property
    def embedding(self) -> EmbeddingConfig:
        if self._embedding is None:
            embedding = EmbeddingConfig()
            # Azure and OpenAI deployments usually share one key and endpoint
            if embedding.api_key is None:
                embedding.api_key = self.llm.api_key
            if embedding.endpoint is None:
                embedding.endpoint = self.llm.endpoint
            self._embedding = embedding
        return self._embedding

    @property
    def vision(self) -> VisionConfig:
        if self._vision is None:
            vision = VisionConfig()
            if vision.model_name is None:
                vision.model_name = self.llm.model_name
            self._vision = vision
        return self._vision

    @property
    def store(self) -> StoreConfig:
        if self._store is None:
            self._store = StoreConfig(embedding_dim=self.embedding.dimensions)
        return self._store

    @property
    def catalog(self) -> CatalogConfig:
        if self._catalog is None:
            self._catalog = CatalogConfig()
        return self._catalog

    @property
    def ingestion(self) -> IngestionConfig:
        if self._ingestion is None:
            self._ingestion = IngestionConfig()
        return self._ingestion

    @property
    def chat(self) -> ChatConfig:
        if self._chat is None:
            chat = ChatConfig()
            if chat.model is None:
                chat.model = self.llm.model_name
            self._chat = chat
        return self._chat

    @property
    def logging(self) -> LoggingConfig:
        if self._logging is None:
            self._logging = LoggingConfig()
        return self._logging
