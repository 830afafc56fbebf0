import math
from typing import Iterable, List, Optional, Sequence

import numpy as np

from ..models import Chunk, ChunkMatch


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """Cosine similarity in [-1, 1]; 0.0 for missing, empty, zero or mismatched vectors."""
    if a is None or b is None:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.ndim != 1 or va.shape != vb.shape or va.size == 0:
        return 0.0

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    value = float(np.dot(va, vb) / (norm_a * norm_b))
    return value if math.isfinite(value) else 0.0


def rank_by_similarity(query: Sequence[float], chunks: Iterable[Chunk], k: int) -> List[ChunkMatch]:
    """Brute-force top-k over chunks that carry an embedding."""
    if k <= 0:
        return []

    matches = [
        ChunkMatch(chunk=chunk, similarity=cosine_similarity(query, chunk.embedding))
        for chunk in chunks
        if chunk.embedding is not None
    ]
    matches.sort(key=lambda match: (-match.similarity, match.chunk.index))
    return matches[:k]
