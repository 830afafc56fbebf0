"""Shared fixtures wiring the fakes into a service context."""

import pytest

from mediachat.config.settings import (
    CatalogConfig,
    ChatConfig,
    EmbeddingConfig,
    IngestionConfig,
    LLMConfig,
    MediaChatConfig,
    StoreConfig,
    VisionConfig,
)
from mediachat.models import RelatedItem
from mediachat.pipeline.scheduler import VirtualClockScheduler
from mediachat.service import MediaChatService
from mediachat.service_context import ServiceContext
from mediachat.store.local_store import LocalKeyValueStore

from .fakes import (
    CAPTION_URL,
    INTRO_VTT,
    FakeCatalog,
    FakeFrameExtractor,
    FakeLLM,
    FakeVision,
    HashingEmbedding,
)


@pytest.fixture
def config(tmp_path) -> MediaChatConfig:
    return MediaChatConfig().with_sections(
        llm=LLMConfig(api_key="test-key", model_name="gpt-4o-mini"),
        embedding=EmbeddingConfig(api_key="test-key", dimensions=64),
        vision=VisionConfig(model_name="gpt-4o-mini"),
        store=StoreConfig(data_dir=str(tmp_path / "data"), embedding_dim=64),
        catalog=CatalogConfig(base_url="http://catalog.test"),
        ingestion=IngestionConfig(
            frame_interval=20,
            segment_duration=30,
            readiness_retry_delays=[30, 60, 120, 300, 600],
            transcript_retry_delay=60,
            transcript_max_retries=5,
            media_url_retries=2,
            media_url_retry_delay=0,
        ),
        chat=ChatConfig(model="gpt-4o-mini", admin_token="secret", cost_per_1k_tokens=0.5),
    )


@pytest.fixture
def store() -> LocalKeyValueStore:
    return LocalKeyValueStore(data_dir=None, history_cap=100, usage_cap=1000)


@pytest.fixture
def scheduler() -> VirtualClockScheduler:
    return VirtualClockScheduler()


@pytest.fixture
def embedding() -> HashingEmbedding:
    return HashingEmbedding()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def vision() -> FakeVision:
    return FakeVision()


@pytest.fixture
def catalog() -> FakeCatalog:
    catalog = FakeCatalog()
    catalog.caption_content[CAPTION_URL] = INTRO_VTT
    catalog.related = [
        RelatedItem(id="v2", title="Advanced usage", description="Deep dive", channel_name="Main channel"),
        RelatedItem(id="v3", title="Release notes", description=None, channel_name=None),
    ]
    return catalog


@pytest.fixture
def frame_extractor() -> FakeFrameExtractor:
    return FakeFrameExtractor()


@pytest.fixture
def context(config, store, llm, embedding, catalog, frame_extractor, scheduler, vision) -> ServiceContext:
    return ServiceContext(
        config=config,
        store=store,
        llm=llm,
        embedding=embedding,
        catalog=catalog,
        frame_extractor=frame_extractor,
        scheduler=scheduler,
        vision=vision,
    )


@pytest.fixture
def service(context) -> MediaChatService:
    return MediaChatService(context)
