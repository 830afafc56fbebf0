import asyncio

import pytest

from mediachat.exceptions import ResourceNotFoundException
from mediachat.models import AssetState, ProcessingStatus
from mediachat.pipeline.frames import frame_timestamps
from mediachat.pipeline.orchestrator import INTERRUPTED_MESSAGE, TRANSCODING_TIMEOUT_MESSAGE

from .fakes import CAPTION_URL, make_asset


def _event_statuses(record):
    return [event.status.value for event in record.events]


async def _process(service, scheduler, asset_id="v1"):
    service.orchestrator.submit(asset_id)
    await scheduler.run_all()
    return await service.context.store.get_processing_record(asset_id)


def test_frame_timestamps_stay_below_duration():
    assert frame_timestamps(60, 20) == [0.0, 20.0, 40.0]
    assert frame_timestamps(61, 20) == [0.0, 20.0, 40.0, 60.0]
    assert frame_timestamps(0, 5) == []


async def test_happy_path(service, scheduler, catalog, store, frame_extractor):
    catalog.add_asset(make_asset())

    record = await _process(service, scheduler)

    assert record.status == ProcessingStatus.COMPLETED
    assert _event_statuses(record) == ["pending", "processing", "completed"]
    assert record.processed_at is not None
    assert record.error_message is None

    chunks = await store.list_chunks("v1")
    assert [(c.start_time, c.end_time, c.text) for c in chunks] == [
        (0.0, 30.0, "intro talk intro talk"),
        (30.0, 45.0, "intro talk"),
    ]
    assert all(len(c.embedding) == 64 for c in chunks)

    frames = await store.list_frames("v1")
    assert [f.timestamp for f in frames] == [0.0, 20.0, 40.0]
    assert all(f.description.startswith("a slide") for f in frames)
    assert frame_extractor.calls[0]["media_url"] == "http://catalog.test/v1-720.mp4"
    assert not service.orchestrator.is_active("v1")


async def test_waits_for_transcoding_then_fails(service, scheduler, catalog, store, frame_extractor):
    catalog.add_asset(make_asset(state=AssetState.TO_TRANSCODE))

    service.orchestrator.submit("v1")
    await scheduler.advance(0)

    record = await store.get_processing_record("v1")
    assert record.status == ProcessingStatus.PENDING
    assert record.error_message == "Waiting for transcoding (attempt 1)"
    assert scheduler.pending_delays() == [30]

    await scheduler.run_all()

    record = await store.get_processing_record("v1")
    assert record.status == ProcessingStatus.ERROR
    assert record.error_message == TRANSCODING_TIMEOUT_MESSAGE
    assert scheduler.now == 30 + 60 + 120 + 300 + 600
    assert frame_extractor.calls == []


async def test_processes_once_transcoding_finishes(service, scheduler, catalog, store):
    asset = catalog.add_asset(make_asset(state=AssetState.TO_TRANSCODE))

    service.orchestrator.submit("v1")
    await scheduler.advance(0)
    asset.state = AssetState.PUBLISHED
    await scheduler.advance(30)

    record = await store.get_processing_record("v1")
    assert record.status == ProcessingStatus.COMPLETED
    assert _event_statuses(record) == ["pending", "pending", "processing", "completed"]
    assert scheduler.pending == 0


async def test_polls_for_captions_while_processing(service, scheduler, catalog, store):
    catalog.add_asset(make_asset(captions=False))

    service.orchestrator.submit("v1")
    await scheduler.advance(0)

    record = await store.get_processing_record("v1")
    assert record.status == ProcessingStatus.PROCESSING
    assert service.orchestrator.is_active("v1")
    assert scheduler.pending_delays() == [60]
    assert len(await store.list_frames("v1")) == 3

    catalog.add_asset(make_asset(captions=True))
    await scheduler.advance(60)

    record = await store.get_processing_record("v1")
    assert record.status == ProcessingStatus.COMPLETED
    assert len(await store.list_chunks("v1")) == 2
    assert not service.orchestrator.is_active("v1")


async def test_completes_without_transcript_after_retries(service, scheduler, catalog, store):
    catalog.add_asset(make_asset(captions=False))

    record = await _process(service, scheduler)

    assert record.status == ProcessingStatus.COMPLETED
    assert _event_statuses(record) == ["pending", "processing", "completed"]
    assert scheduler.now == 5 * 60
    assert await store.list_chunks("v1") == []


async def test_update_hook_fetches_late_transcript(service, scheduler, catalog, store):
    catalog.add_asset(make_asset(captions=False))
    await _process(service, scheduler)

    catalog.add_asset(make_asset(captions=True))
    assert await service.on_asset_updated("v1") is True
    await scheduler.run_all()

    assert len(await store.list_chunks("v1")) == 2
    # a transcript is already stored now
    assert await service.on_asset_updated("v1") is False


async def test_reprocess_is_idempotent(service, scheduler, catalog, store, embedding, frame_extractor):
    catalog.add_asset(make_asset())
    await _process(service, scheduler)
    chunks_before = await store.list_chunks("v1")
    frames_before = await store.list_frames("v1")
    embedding_calls = len(embedding.calls)

    report = await service.trigger_reprocess("v1")
    assert report.status == "completed"
    await scheduler.run_all()

    record = await store.get_processing_record("v1")
    assert _event_statuses(record) == ["pending", "processing", "completed"] * 2
    assert await store.list_chunks("v1") == chunks_before
    assert await store.list_frames("v1") == frames_before
    assert len(embedding.calls) == embedding_calls
    assert len(frame_extractor.calls) == 1


async def test_concurrent_enqueue_is_coalesced(service, catalog, store):
    catalog.add_asset(make_asset())

    results = await asyncio.gather(
        service.orchestrator.enqueue("v1"),
        service.orchestrator.enqueue("v1"),
    )

    assert sorted(results) == [False, True]
    record = await store.get_processing_record("v1")
    assert _event_statuses(record) == ["pending", "processing", "completed"]


async def test_enqueue_while_waiting_for_captions_is_coalesced(service, scheduler, catalog, store):
    catalog.add_asset(make_asset(captions=False))
    service.orchestrator.submit("v1")
    await scheduler.advance(0)

    assert await service.orchestrator.enqueue("v1") is False

    record = await store.get_processing_record("v1")
    assert _event_statuses(record) == ["pending", "processing"]


async def test_failure_keeps_captured_frames(service, scheduler, catalog, store, embedding):
    catalog.add_asset(make_asset())
    embedding.fail = True

    record = await _process(service, scheduler)

    assert record.status == ProcessingStatus.ERROR
    assert record.error_message == "embedding service unavailable"
    assert record.processed_at is None
    assert len(await store.list_frames("v1")) == 3
    assert not service.orchestrator.is_active("v1")

    embedding.fail = False
    record = await _process(service, scheduler)
    assert record.status == ProcessingStatus.COMPLETED
    assert _event_statuses(record)[-4:] == ["error", "pending", "processing", "completed"]


async def test_frame_extraction_failure_marks_error(service, scheduler, catalog, frame_extractor):
    catalog.add_asset(make_asset())
    frame_extractor.error = RuntimeError("ffmpeg missing")

    record = await _process(service, scheduler)

    assert record.status == ProcessingStatus.ERROR
    assert record.error_message == "ffmpeg missing"


async def test_vision_failure_leaves_frame_undescribed(service, scheduler, catalog, store, vision, frame_extractor):
    catalog.add_asset(make_asset())
    vision.fail_calls = {2}

    record = await _process(service, scheduler)

    assert record.status == ProcessingStatus.COMPLETED
    frames = {f.timestamp: f for f in await store.list_frames("v1")}
    assert frames[20.0].description is None
    assert frames[20.0].image_ref.endswith("snapshot-20.jpg")
    assert frames[0.0].description and frames[40.0].description

    # a later run only revisits the undescribed frame
    await _process(service, scheduler)
    assert frame_extractor.calls[-1]["timestamps"] == [20.0]
    assert (await store.frames_in_range("v1", 20.0, 20.0))[0].description is not None


async def test_missing_media_url_skips_frames(service, scheduler, catalog, store, frame_extractor):
    catalog.add_asset(make_asset(files=False))

    record = await _process(service, scheduler)

    assert record.status == ProcessingStatus.COMPLETED
    assert frame_extractor.calls == []
    assert await store.list_frames("v1") == []
    assert len(await store.list_chunks("v1")) == 2
    # one load for readiness and one more per media URL retry
    assert catalog.get_calls == 2


async def test_unknown_asset_is_an_error(service, scheduler, store):
    record = await _process(service, scheduler, asset_id="nope")

    assert record.status == ProcessingStatus.ERROR
    assert record.error_message == "Asset nope not found in catalog"


async def test_stale_processing_record_is_interrupted(service, scheduler, catalog, store):
    catalog.add_asset(make_asset())
    await store.set_processing_status("v1", ProcessingStatus.PENDING)
    await store.set_processing_status("v1", ProcessingStatus.PROCESSING)

    record = await _process(service, scheduler)

    assert _event_statuses(record) == ["pending", "processing", "error", "pending", "processing", "completed"]
    assert record.events[2].message == INTERRUPTED_MESSAGE


async def test_delete_hook_removes_data_and_cancels_retries(service, scheduler, catalog, store, context):
    catalog.add_asset(make_asset(captions=False))
    service.orchestrator.submit("v1")
    await scheduler.advance(0)
    snapshot_dir = context.snapshots_root / "v1"
    assert snapshot_dir.exists()

    await service.on_asset_deleted("v1")
    calls = catalog.get_calls
    await scheduler.run_all()

    assert not snapshot_dir.exists()
    assert await store.get_processing_record("v1") is None
    assert await store.list_frames("v1") == []
    assert catalog.get_calls == calls
    assert not service.orchestrator.is_active("v1")


async def test_upload_hook_respects_auto_process(service, scheduler, config, catalog):
    catalog.add_asset(make_asset())
    config.ingestion.auto_process = False

    assert await service.on_asset_uploaded("v1") is False
    assert scheduler.pending == 0

    config.ingestion.auto_process = True
    assert await service.on_asset_uploaded("v1") is True
    assert scheduler.pending == 1


async def test_trigger_unknown_asset(service):
    with pytest.raises(ResourceNotFoundException):
        await service.trigger_reprocess("nope")


async def test_reprocess_drops_stale_chunks(service, scheduler, catalog, store, embedding):
    catalog.add_asset(make_asset())
    await _process(service, scheduler)

    catalog.caption_content[CAPTION_URL] = "WEBVTT\n\n00:00:00.000 --> 00:00:05.000\nwelcome\n"
    await _process(service, scheduler)

    chunks = await store.list_chunks("v1")
    assert [(c.index, c.text, c.end_time) for c in chunks] == [(0, "welcome", 30.0)]
    assert embedding.calls[-1] == ["welcome"]


def _numbered_captions(count: int) -> str:
    cues = []
    for i in range(count):
        start = i * 30
        cues.append(
            f"{start // 3600:02d}:{start % 3600 // 60:02d}:{start % 60:02d}.000 --> "
            f"{start // 3600:02d}:{start % 3600 // 60:02d}:{start % 60 + 5:02d}.000\nline {i}\n"
        )
    return "WEBVTT\n\n" + "\n".join(cues)


async def test_embedding_resumes_after_failed_batch(service, scheduler, catalog, store, embedding):
    catalog.add_asset(make_asset(duration=3000, files=False))
    catalog.caption_content[CAPTION_URL] = _numbered_captions(100)
    embedding.fail_batches = {2}

    record = await _process(service, scheduler)

    assert record.status == ProcessingStatus.ERROR
    chunks = await store.list_chunks("v1")
    assert len(chunks) == 100
    assert sum(1 for c in chunks if c.embedding is not None) == 64
    calls_before = len(embedding.calls)

    record = await _process(service, scheduler)

    assert record.status == ProcessingStatus.COMPLETED
    new_calls = embedding.calls[calls_before:]
    assert sum(len(batch) for batch in new_calls) == 36
    assert all(c.embedding is not None for c in await store.list_chunks("v1"))


async def test_delete_during_frame_capture_discards_the_run(service, catalog, store, frame_extractor, context):
    catalog.add_asset(make_asset())
    frame_extractor.gate = asyncio.Event()

    run = asyncio.create_task(service.orchestrator.enqueue("v1"))
    while not frame_extractor.calls:
        await asyncio.sleep(0)

    await service.on_asset_deleted("v1")
    frame_extractor.gate.set()

    assert await run is True
    assert await store.get_processing_record("v1") is None
    assert await store.list_chunks("v1") == []
    assert await store.list_frames("v1") == []
    assert not (context.snapshots_root / "v1").exists()
    assert not service.orchestrator.is_active("v1")
