import logging
from typing import Optional

import numpy as np

from seqvec.errors import ConfigurationError, ElementNotFoundError
from seqvec.vocab import VocabCache

# In-memory weight tables: syn0 (element vectors), syn1 (hierarchical softmax inner
# nodes), syn1neg (negative sampling outputs), plus optional AdaGrad accumulators.

logger = logging.getLogger(__name__)


def negative_sampling_distribution(counts: np.ndarray, power: float = 0.75) -> np.ndarray:
    """Unigram distribution raised to power and normalized (Mikolov et al.: power=0.75).

    Args:
        counts: 1D array of vocabulary counts.
        power: Exponent for counts; 0.75 is standard. Defaults to 0.75.

    Returns:
        1D array of probabilities (sum 1), same length as counts.
    """
    probs = np.power(np.maximum(counts, 1e-10), power)
    probs /= probs.sum()
    return probs


class InMemoryLookupTable:
    """One dense vector per vocabulary element, allocated by reset_weights().

    Attributes:
        vocab (VocabCache): Elements the table is sized for.
        vector_length (int): Embedding dimension D.
        lr (float): Learning rate the table was configured with.
        use_adagrad (bool): Whether AdaGrad accumulators are kept.
        negative (int): Negative samples per positive; 0 means no syn1neg.
        syn0 (Optional[np.ndarray]): Element vectors, shape (V, D).
        syn1 (Optional[np.ndarray]): Inner-node vectors, shape (max(V - 1, 1), D).
        syn1neg (Optional[np.ndarray]): Output vectors for negative sampling, shape (V, D).
        neg_probs (Optional[np.ndarray]): Negative sampling distribution, shape (V,).
    """

    def __init__(
        self,
        vocab: VocabCache,
        vector_length: int,
        lr: float = 0.025,
        use_adagrad: bool = False,
        negative: int = 0,
        seed: int = 0,
    ):
        if vector_length <= 0:
            raise ConfigurationError(f"vector_length must be > 0, got {vector_length}")
        if lr <= 0:
            raise ConfigurationError(f"lr must be > 0, got {lr}")
        self.vocab = vocab
        self.vector_length = vector_length
        self.lr = lr
        self.use_adagrad = use_adagrad
        self.negative = negative
        self.seed = seed
        self.syn0: Optional[np.ndarray] = None
        self.syn1: Optional[np.ndarray] = None
        self.syn1neg: Optional[np.ndarray] = None
        self.neg_probs: Optional[np.ndarray] = None
        self.hist_syn0: Optional[np.ndarray] = None
        self.hist_syn1: Optional[np.ndarray] = None
        self.hist_syn1neg: Optional[np.ndarray] = None

    @property
    def layer_size(self) -> int:
        return self.vector_length

    def reset_weights(self, reset: bool = True) -> None:
        """(Re-)initialize the tables for the current vocabulary.

        syn0 is uniform in [-0.5/D, 0.5/D]; output tables start at zero.

        Args:
            reset: Reinitialize everything. When False only tables that are missing or no
                longer match the vocabulary size are allocated. Defaults to True.
        """
        V = self.vocab.num_words()
        D = self.vector_length
        rng = np.random.default_rng(self.seed)
        if reset or self.syn0 is None or self.syn0.shape[0] != V:
            self.syn0 = ((rng.random((V, D)) - 0.5) / D).astype(np.float64)
            self.syn1 = np.zeros((max(V - 1, 1), D), dtype=np.float64)
            if self.negative > 0:
                self.syn1neg = np.zeros((V, D), dtype=np.float64)
            if self.use_adagrad:
                self.hist_syn0 = np.zeros_like(self.syn0)
                self.hist_syn1 = np.zeros_like(self.syn1)
                if self.syn1neg is not None:
                    self.hist_syn1neg = np.zeros_like(self.syn1neg)
        if self.negative > 0:
            self.make_table()
        logger.info("Lookup table reset: %d x %d", V, D)

    def make_table(self) -> None:
        V = self.vocab.num_words()
        counts = np.array(
            [self.vocab.word_at_index(i).frequency for i in range(V)], dtype=np.float64
        )
        self.neg_probs = negative_sampling_distribution(counts)

    def sample_negatives(self, rng: np.random.Generator, shape) -> np.ndarray:
        return rng.choice(len(self.neg_probs), size=shape, p=self.neg_probs)

    def vector(self, label: str) -> Optional[np.ndarray]:
        """Vector for label, or None when the label is not in the vocabulary."""
        idx = self.vocab.index_of(label)
        if idx < 0 or self.syn0 is None:
            return None
        return self.syn0[idx]

    def vector_or_raise(self, label: str) -> np.ndarray:
        vec = self.vector(label)
        if vec is None:
            raise ElementNotFoundError(label)
        return vec

    def vectors(self) -> np.ndarray:
        if self.syn0 is None:
            raise ConfigurationError("Lookup table has no weights; call reset_weights() first")
        return self.syn0
