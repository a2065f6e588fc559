import logging
from typing import Iterable, Iterator, List, Optional, Tuple

import numpy as np

from seqvec.config import VectorsConfiguration
from seqvec.elements import Sequence
from seqvec.errors import ConfigurationError, ElementNotFoundError
from seqvec.eval import cosine_similarity, nearest
from seqvec.learning import LearningAlgorithm, elements_algorithm, sequence_algorithm
from seqvec.lookup import InMemoryLookupTable
from seqvec.vocab import VocabCache, VocabConstructor

# SequenceVectors: ties a replayable sequence source, vocabulary and lookup table
# together, runs the epoch/batch/iteration loop, and answers similarity queries.

logger = logging.getLogger(__name__)


def _batches(sequences: Iterable[Sequence], batch_size: int) -> Iterator[List[Sequence]]:
    batch: List[Sequence] = []
    for seq in sequences:
        batch.append(seq)
        if len(batch) >= batch_size:
            yield batch
            batch = []
    if batch:
        yield batch


class SequenceVectors:
    """Learns one vector per sequence element (and optionally per sequence label).

    Attributes:
        config (VectorsConfiguration): Options, fixed for the lifetime of the model.
        iterator: Replayable source of Sequences; every iter() is one epoch.
        vocab (Optional[VocabCache]): Vocabulary; built in fit() when config.reset_model.
        lookup_table (Optional[InMemoryLookupTable]): Weights; built in fit() when
            config.reset_model.
        elements_learning_algorithm (LearningAlgorithm): Used when config.train_elements.
        sequence_learning_algorithm (LearningAlgorithm): Used when config.train_sequences.
    """

    def __init__(
        self,
        config: VectorsConfiguration,
        iterator: Iterable[Sequence],
        vocab: Optional[VocabCache] = None,
        lookup_table: Optional[InMemoryLookupTable] = None,
        elements_learning_algorithm: Optional[LearningAlgorithm] = None,
        sequence_learning_algorithm: Optional[LearningAlgorithm] = None,
    ):
        self.config = config
        self.iterator = iterator
        self.vocab = vocab
        self.lookup_table = lookup_table
        self.elements_learning_algorithm = elements_learning_algorithm or elements_algorithm(
            config.elements_learning_algorithm
        )
        self.sequence_learning_algorithm = sequence_learning_algorithm or sequence_algorithm(
            config.sequence_learning_algorithm
        )

    def build_vocab(self) -> None:
        """Build vocabulary and lookup table from the iterator (reset_model path)."""
        cfg = self.config
        cache = self.vocab if self.vocab is not None else VocabCache()
        constructor = VocabConstructor(cache).add_source(self.iterator, cfg.min_word_frequency)
        self.vocab = constructor.build_joint_vocabulary(
            reset_counters=True, build_huffman_tree=cfg.use_hierarchic_softmax
        )
        self.lookup_table = InMemoryLookupTable(
            self.vocab,
            cfg.layers_size,
            lr=cfg.learning_rate,
            use_adagrad=cfg.use_adagrad,
            negative=cfg.negative,
            seed=cfg.seed,
        )
        self.lookup_table.reset_weights(True)

    def _check_model(self) -> None:
        if self.vocab is None or self.lookup_table is None:
            raise ConfigurationError(
                "reset_model=False requires both a vocabulary and a lookup table"
            )
        if self.vocab.num_words() == 0:
            raise ConfigurationError("Vocabulary is empty; nothing to train")
        if self.lookup_table.vocab is not self.vocab:
            raise ConfigurationError("Lookup table was built for a different vocabulary")
        syn0 = self.lookup_table.syn0
        if syn0 is None or syn0.shape[0] != self.vocab.num_words():
            raise ConfigurationError(
                "Lookup table rows do not match the vocabulary; call reset_weights()"
            )
        cfg = self.config
        if syn0.shape[1] != cfg.layers_size:
            raise ConfigurationError(
                f"Lookup table vectors have length {syn0.shape[1]}, "
                f"configuration asks for {cfg.layers_size}"
            )
        if self.lookup_table.use_adagrad != cfg.use_adagrad:
            raise ConfigurationError(
                f"Lookup table was built with use_adagrad={self.lookup_table.use_adagrad}, "
                f"configuration has use_adagrad={cfg.use_adagrad}"
            )
        if not np.isclose(self.lookup_table.lr, cfg.learning_rate):
            raise ConfigurationError(
                f"Lookup table was built with lr={self.lookup_table.lr}, "
                f"configuration has learning_rate={cfg.learning_rate}"
            )

    def fit(self) -> List[dict]:
        """Train for config.epochs passes over the iterator.

        Learning rate decays linearly from learning_rate to min_learning_rate over the
        expected number of words (vocabulary occurrences x epochs x iterations).

        Returns:
            List of dicts with keys "epoch", "step", "loss", "lr" (one per batch).

        Raises:
            ConfigurationError: If the vocabulary/lookup table are missing, inconsistent
                with each other, or built with a different vector length, learning rate
                or AdaGrad setting than the configuration.
        """
        cfg = self.config
        logger.debug("Configuration: %s", cfg.to_dict())
        if cfg.reset_model:
            self.build_vocab()
        self._check_model()

        algorithms: List[LearningAlgorithm] = []
        if cfg.train_elements:
            algorithms.append(self.elements_learning_algorithm)
        if cfg.train_sequences:
            algorithms.append(self.sequence_learning_algorithm)
        for algo in algorithms:
            algo.configure(self.vocab, self.lookup_table, cfg)

        rng = np.random.default_rng(cfg.seed)
        total_words = max(1.0, self.vocab.total_word_occurrences) * cfg.epochs * cfg.iterations
        words_processed = 0
        history: List[dict] = []
        step = 0
        lr = cfg.learning_rate
        logger.info(
            "Training: %d epochs, batch %d, iterations %d, algorithms %s",
            cfg.epochs,
            cfg.batch_size,
            cfg.iterations,
            ", ".join(a.name for a in algorithms),
        )
        for epoch in range(cfg.epochs):
            logger.info("Epoch %d/%d", epoch + 1, cfg.epochs)
            epoch_loss, epoch_examples = 0.0, 0
            for batch in _batches(self.iterator, cfg.batch_size):
                # Only vocabulary words count towards total_words
                batch_words = sum(
                    self.vocab.contains_word(e.label) for seq in batch for e in seq
                )
                for _ in range(cfg.iterations):
                    lr = max(
                        cfg.min_learning_rate,
                        cfg.learning_rate * (1.0 - words_processed / (total_words + 1)),
                    )
                    loss, examples = 0.0, 0
                    for algo in algorithms:
                        algo_loss, algo_examples = algo.learn_batch(batch, lr, rng)
                        loss += algo_loss
                        examples += algo_examples
                    words_processed += batch_words
                    step += 1
                    mean_loss = loss / examples if examples else 0.0
                    history.append({"epoch": epoch, "step": step, "loss": mean_loss, "lr": lr})
                    epoch_loss += loss
                    epoch_examples += examples
            logger.info(
                "Epoch %d done: mean loss %.4f over %d examples, lr %.6f",
                epoch + 1,
                epoch_loss / epoch_examples if epoch_examples else 0.0,
                epoch_examples,
                lr,
            )
        return history

    def has_word(self, label: str) -> bool:
        return self.vocab is not None and self.vocab.contains_word(label)

    def get_word_vector(self, label: str) -> np.ndarray:
        """Vector for label.

        Raises:
            ElementNotFoundError: If label is not in the vocabulary.
        """
        if not self.has_word(label) or self.lookup_table is None:
            raise ElementNotFoundError(label)
        return self.lookup_table.vector_or_raise(label)

    def similarity(self, label_a: str, label_b: str) -> float:
        """Cosine similarity between two elements, in [-1, 1].

        Raises:
            ElementNotFoundError: If either label is not in the vocabulary.
        """
        return cosine_similarity(self.get_word_vector(label_a), self.get_word_vector(label_b))

    def words_nearest(self, label: str, n: int = 10) -> List[Tuple[str, float]]:
        """Up to n (label, similarity) pairs closest to label, the label itself excluded."""
        idx = self.vocab.index_of(label) if self.vocab is not None else -1
        if idx < 0:
            raise ElementNotFoundError(label)
        return nearest(self.lookup_table.vectors(), self.vocab_labels(), idx, k=n)

    def vocab_labels(self) -> List[str]:
        return [self.vocab.word_at_index(i).label for i in range(self.vocab.num_words())]
