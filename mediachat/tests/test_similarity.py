import pytest

from mediachat.models import Chunk
from mediachat.store.similarity import cosine_similarity, rank_by_similarity


def _chunk(index, embedding):
    return Chunk(asset_id="v1", index=index, start_time=index * 30.0, end_time=index * 30.0 + 30, text=f"c{index}",
                 embedding=embedding)


def test_cosine_similarity_basics():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)


def test_cosine_similarity_degenerate_inputs_are_zero():
    assert cosine_similarity([0, 0], [1, 1]) == 0.0
    assert cosine_similarity([1, 2, 3], [1, 2]) == 0.0
    assert cosine_similarity([], []) == 0.0
    assert cosine_similarity(None, [1.0]) == 0.0


def test_rank_orders_by_similarity_then_index():
    chunks = [
        _chunk(0, [0.0, 1.0]),
        _chunk(1, [1.0, 0.0]),
        _chunk(2, [2.0, 0.0]),
        _chunk(3, [1.0, 1.0]),
    ]
    matches = rank_by_similarity([1.0, 0.0], chunks, 3)

    assert [m.chunk.index for m in matches] == [1, 2, 3]
    assert matches[0].similarity == pytest.approx(1.0)
    assert matches[2].similarity == pytest.approx(0.7071, abs=1e-4)


def test_rank_returns_all_when_k_exceeds_count():
    chunks = [_chunk(0, [1.0, 0.0]), _chunk(1, [0.0, 1.0]), _chunk(2, None)]

    assert len(rank_by_similarity([1.0, 0.0], chunks, 10)) == 2
    assert rank_by_similarity([1.0, 0.0], chunks, 0) == []
