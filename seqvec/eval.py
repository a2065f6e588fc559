from typing import Dict, List, Optional, Tuple

import numpy as np

# Vector queries: cosine similarity, k nearest neighbours, analogy (a - b + c = ?).


def l2_normalize(X: np.ndarray, axis: int = -1) -> np.ndarray:
    """L2-normalize array along the given axis (zero vectors get divisor 1).

    Args:
        X: Input array.
        axis: Axis along which to normalize. Defaults to -1.

    Returns:
        Normalized array, same shape as X.
    """
    norm = np.linalg.norm(X, axis=axis, keepdims=True)
    norm = np.where(norm > 0, norm, 1.0)
    return X / norm


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity between two vectors (flattened).

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        Scalar in [-1, 1]; 0.0 if either vector is all zeros.
    """
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / denom, -1.0, 1.0))


def nearest(
    embeddings: np.ndarray,
    labels: List[str],
    index: int,
    k: int = 10,
) -> List[Tuple[str, float]]:
    """k nearest neighbours (cosine) of row index, excluding itself.

    Args:
        embeddings: (V, D) embedding matrix.
        labels: Label of each row.
        index: Query row.
        k: Number of neighbours. Defaults to 10.

    Returns:
        List of (label, similarity), most similar first.
    """
    E = l2_normalize(embeddings, axis=1)
    sims = np.dot(E, E[index])
    sims[index] = -2.0  # exclude self
    order = np.argsort(-sims)[: min(k, len(labels) - 1)]
    return [(labels[j], float(sims[j])) for j in order]


def analogy(
    embeddings: np.ndarray,
    label_to_index: Dict[str, int],
    labels: List[str],
    a: str,
    b: str,
    c: str,
    k: int = 1,
) -> Optional[List[str]]:
    """Solve "a is to b as c is to ?" via vector offset; return k nearest (excluding a, b, c).

    Args:
        embeddings: (V, D) embedding matrix.
        label_to_index: Mapping label -> row.
        labels: Label of each row.
        a: First element of analogy.
        b: Second element.
        c: Third element.
        k: Number of nearest neighbours to return. Defaults to 1.

    Returns:
        List of k nearest labels, or None if any of a, b, c is unknown.
    """
    for w in (a, b, c):
        if w not in label_to_index:
            return None
    ia, ib, ic = label_to_index[a], label_to_index[b], label_to_index[c]
    vec = embeddings[ib] - embeddings[ia] + embeddings[ic]
    E = l2_normalize(embeddings, axis=1)
    sims = np.dot(E, l2_normalize(vec))
    for idx in (ia, ib, ic):
        sims[idx] = -2.0
    return [labels[j] for j in np.argsort(-sims)[:k]]
