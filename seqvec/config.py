from dataclasses import asdict, dataclass, replace
from typing import Any, Dict

from seqvec.errors import ConfigurationError

# Model options, fixed before training. Defaults follow the classic word2vec setup:
# hierarchical softmax on, no negative sampling, window 5, lr 0.025 decaying to 1e-4.

ELEMENTS_ALGORITHMS = ("skipgram", "cbow")
SEQUENCE_ALGORITHMS = ("dbow",)


@dataclass(frozen=True)
class VectorsConfiguration:
    """Flat set of options read by SequenceVectors and its learning algorithms.

    Validated on construction; raises ConfigurationError for any invalid combination.

    Attributes:
        min_word_frequency (int): Elements seen fewer times are dropped (internal vocab only).
        layers_size (int): Embedding vector length.
        learning_rate (float): Initial learning rate.
        min_learning_rate (float): Floor for the linear learning rate decay.
        use_adagrad (bool): Per-weight AdaGrad scaling instead of plain SGD.
        batch_size (int): Number of sequences per training batch.
        iterations (int): Passes over each batch.
        epochs (int): Passes over the whole corpus.
        window (int): Half-window size for context sampling.
        negative (int): Negative samples per positive; 0 disables negative sampling.
        use_hierarchic_softmax (bool): Train through the Huffman tree.
        sampling (float): Frequent-element subsampling threshold; 0 disables it.
        reset_model (bool): Build vocabulary and lookup table inside fit().
        train_elements (bool): Learn element (word) vectors.
        train_sequences (bool): Learn sequence-label vectors.
        elements_learning_algorithm (str): "skipgram" or "cbow".
        sequence_learning_algorithm (str): "dbow".
        seed (int): Seed for weight init, subsampling and negative sampling.
    """

    min_word_frequency: int = 5
    layers_size: int = 200
    learning_rate: float = 0.025
    min_learning_rate: float = 1e-4
    use_adagrad: bool = False
    batch_size: int = 512
    iterations: int = 1
    epochs: int = 1
    window: int = 5
    negative: int = 0
    use_hierarchic_softmax: bool = True
    sampling: float = 0.0
    reset_model: bool = True
    train_elements: bool = True
    train_sequences: bool = False
    elements_learning_algorithm: str = "skipgram"
    sequence_learning_algorithm: str = "dbow"
    seed: int = 0

    def __post_init__(self):
        if not (self.train_elements or self.train_sequences):
            raise ConfigurationError(
                "At least one of train_elements / train_sequences must be enabled"
            )
        for name in ("layers_size", "batch_size"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be > 0, got {getattr(self, name)}")
        if self.learning_rate <= 0:
            raise ConfigurationError(f"learning_rate must be > 0, got {self.learning_rate}")
        if self.min_learning_rate < 0:
            raise ConfigurationError(
                f"min_learning_rate must be >= 0, got {self.min_learning_rate}"
            )
        for name in ("min_word_frequency", "iterations", "epochs", "window"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.negative < 0:
            raise ConfigurationError(f"negative must be >= 0, got {self.negative}")
        if self.sampling < 0:
            raise ConfigurationError(f"sampling must be >= 0, got {self.sampling}")
        if not self.use_hierarchic_softmax and self.negative == 0:
            raise ConfigurationError(
                "Enable hierarchical softmax or set negative > 0; nothing to train otherwise"
            )
        if self.elements_learning_algorithm not in ELEMENTS_ALGORITHMS:
            raise ConfigurationError(
                f"Unknown elements learning algorithm: {self.elements_learning_algorithm}. "
                f"Use one of {', '.join(ELEMENTS_ALGORITHMS)}."
            )
        if self.sequence_learning_algorithm not in SEQUENCE_ALGORITHMS:
            raise ConfigurationError(
                f"Unknown sequence learning algorithm: {self.sequence_learning_algorithm}. "
                f"Use one of {', '.join(SEQUENCE_ALGORITHMS)}."
            )

    def with_overrides(self, **kwargs: Any) -> "VectorsConfiguration":
        """Return a validated copy with the given fields replaced."""
        return replace(self, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
