from typing import List, Sequence

import numpy as np


def mean_pool(token_embeddings) -> List[float]:
    """
    Average per-token vectors into one vector: out[f] = mean over tokens of token[f].

    Accepts (tokens, features) or the (1, tokens, features) shape that
    feature-extraction pipelines return for a single input.
    """
    arr = np.asarray(token_embeddings, dtype=np.float64)
    if arr.ndim == 3 and arr.shape[0] == 1:
        arr = arr[0]
    if arr.ndim != 2 or arr.shape[0] == 0 or arr.shape[1] == 0:
        raise ValueError(f"expected a non-empty (tokens, features) array, got shape {arr.shape}")
    return arr.mean(axis=0).tolist()


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    1 - cosine similarity, the same measure as pgvector's `<=>`.
    Zero vectors are treated as maximally distant from everything.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    na = np.linalg.norm(a)
    nb = np.linalg.norm(b)
    if na == 0.0 or nb == 0.0:
        return 1.0

    return float(1.0 - np.dot(a, b) / (na * nb))
