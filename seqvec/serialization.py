import logging
from typing import Dict, List, Tuple

import numpy as np

from seqvec.errors import ElementNotFoundError
from seqvec.eval import analogy, cosine_similarity, nearest

# Persistence in the word2vec text format: "<V> <D>" header, then "label v1 ... vD" per
# line, rows in vocabulary index order. Labels must not contain whitespace.

logger = logging.getLogger(__name__)


class WordVectors:
    """Static, read-only vectors loaded from disk; same queries as a trained model.

    Attributes:
        labels (List[str]): Label of each row.
        vectors (np.ndarray): (V, D) matrix.
    """

    def __init__(self, labels: List[str], vectors: np.ndarray):
        if len(labels) != vectors.shape[0]:
            raise ValueError(f"{len(labels)} labels for {vectors.shape[0]} vectors")
        self.labels = list(labels)
        self.vectors = vectors
        self.label_to_index: Dict[str, int] = {w: i for i, w in enumerate(self.labels)}

    def has_word(self, label: str) -> bool:
        return label in self.label_to_index

    def get_word_vector(self, label: str) -> np.ndarray:
        try:
            return self.vectors[self.label_to_index[label]]
        except KeyError:
            raise ElementNotFoundError(label) from None

    def similarity(self, label_a: str, label_b: str) -> float:
        return cosine_similarity(self.get_word_vector(label_a), self.get_word_vector(label_b))

    def words_nearest(self, label: str, n: int = 10) -> List[Tuple[str, float]]:
        if label not in self.label_to_index:
            raise ElementNotFoundError(label)
        return nearest(self.vectors, self.labels, self.label_to_index[label], k=n)

    def analogy(self, a: str, b: str, c: str, k: int = 1) -> List[str]:
        """Labels d such that a is to b as c is to d.

        Raises:
            ElementNotFoundError: If a, b or c is unknown.
        """
        for w in (a, b, c):
            if w not in self.label_to_index:
                raise ElementNotFoundError(w)
        return analogy(self.vectors, self.label_to_index, self.labels, a, b, c, k=k)

    def __len__(self) -> int:
        return len(self.labels)


def write_word_vectors(model, path: str) -> str:
    """Write a trained model's vectors in word2vec text format.

    Args:
        model: SequenceVectors (or WordVectors) exposing vocabulary labels and vectors.
        path: Output file path.

    Returns:
        The path written.
    """
    if isinstance(model, WordVectors):
        labels, vectors = model.labels, model.vectors
    else:
        labels, vectors = model.vocab_labels(), model.lookup_table.vectors()
    V, D = vectors.shape
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"{V} {D}\n")
        for label, vec in zip(labels, vectors):
            f.write(label + " " + " ".join(repr(float(x)) for x in vec) + "\n")
    logger.info("Wrote %d vectors of length %d to %s", V, D, path)
    return path


def read_word_vectors(path: str) -> WordVectors:
    """Load vectors written by write_word_vectors.

    Args:
        path: File in word2vec text format.

    Returns:
        WordVectors instance.

    Raises:
        ValueError: If the header or any row is malformed.
    """
    with open(path, encoding="utf-8") as f:
        header = f.readline().split()
        if len(header) != 2:
            raise ValueError(f"Bad header in {path}: expected '<count> <dim>'")
        V, D = int(header[0]), int(header[1])
        labels: List[str] = []
        vectors = np.zeros((V, D), dtype=np.float64)
        for lineno, line in enumerate(f, start=2):
            parts = line.rstrip("\n").split(" ")
            if not line.strip():
                continue
            if len(parts) != D + 1:
                raise ValueError(f"{path}:{lineno}: expected {D + 1} fields, got {len(parts)}")
            if len(labels) >= V:
                raise ValueError(f"{path}: more than {V} rows")
            vectors[len(labels)] = np.asarray(parts[1:], dtype=np.float64)
            labels.append(parts[0])
    if len(labels) != V:
        raise ValueError(f"{path}: header says {V} rows, found {len(labels)}")
    return WordVectors(labels, vectors)
