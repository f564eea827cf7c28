"""Vector similarity"""

from typing import Sequence

import numpy as np


def cosine_similarity(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors

    Vectors of different length, or with zero magnitude, have similarity 0.
    """
    a = np.asarray(vector_a, dtype=float)
    b = np.asarray(vector_b, dtype=float)
    if a.shape != b.shape or a.size == 0:
        return 0.0

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    # Floating point drift can land just outside [-1, 1]
    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


def cosine_similarities(query_vector: Sequence[float], candidate_vectors: np.ndarray) -> np.ndarray:
    """
    Cosine similarity of a query against each row of a candidate matrix

    Args:
        query_vector: Query embedding
        candidate_vectors: 2-D array, one embedding per row, same width as the query

    Returns:
        1-D array of similarities; rows (or a query) with zero magnitude score 0
    """
    query = np.asarray(query_vector, dtype=float)
    candidates = np.asarray(candidate_vectors, dtype=float)
    if candidates.ndim != 2 or candidates.shape[0] == 0:
        return np.zeros(0)
    if query.size == 0 or candidates.shape[1] != query.size:
        return np.zeros(candidates.shape[0])

    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        return np.zeros(candidates.shape[0])

    cand_norms = np.linalg.norm(candidates, axis=1)
    dots = candidates @ query
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(cand_norms > 0, dots / (cand_norms * query_norm), 0.0)
    return np.clip(scores, -1.0, 1.0)
