import heapq
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from seqvec.elements import Sequence, VocabWord
from seqvec.errors import ConfigurationError

# Vocabulary: frequency counting over sequence sources, min-count filtering, index
# assignment by frequency, Huffman codes for hierarchical softmax.

logger = logging.getLogger(__name__)


class VocabCache:
    """Label -> VocabWord store shared by the lookup table and the trainer.

    Attributes:
        total_word_occurrences (float): Sum of the frequencies of all elements.
        total_sequences (int): Sequences seen while building.
    """

    def __init__(self):
        self._words: Dict[str, VocabWord] = {}
        self._by_index: List[VocabWord] = []
        self.total_word_occurrences = 0.0
        self.total_sequences = 0

    def add_token(self, word: VocabWord) -> VocabWord:
        """Insert word, or add its frequency to the existing element with the same label."""
        existing = self._words.get(word.label)
        if existing is not None:
            existing.increment(word.frequency)
            return existing
        self._words[word.label] = word
        return word

    def contains_word(self, label: str) -> bool:
        return label in self._words

    def word_for(self, label: str) -> Optional[VocabWord]:
        return self._words.get(label)

    def index_of(self, label: str) -> int:
        word = self._words.get(label)
        return word.index if word is not None else -1

    def word_at_index(self, index: int) -> VocabWord:
        return self._by_index[index]

    def word_frequency(self, label: str) -> float:
        word = self._words.get(label)
        return word.frequency if word is not None else 0.0

    def vocab_words(self) -> List[VocabWord]:
        return list(self._words.values())

    def words(self) -> List[str]:
        return list(self._words.keys())

    def num_words(self) -> int:
        return len(self._words)

    def update_indexes(self) -> None:
        """Assign indices 0..V-1 by descending frequency (ties keep insertion order)."""
        ordered = sorted(self._words.values(), key=lambda w: -w.frequency)
        for i, word in enumerate(ordered):
            word.index = i
        self._by_index = ordered

    def clear(self) -> None:
        self._words.clear()
        self._by_index = []
        self.total_word_occurrences = 0.0
        self.total_sequences = 0

    def __len__(self) -> int:
        return len(self._words)

    def __contains__(self, label: str) -> bool:
        return label in self._words


def build_huffman_codes(words: List[VocabWord]) -> int:
    """Assign Huffman codes and inner-node points to each word (word2vec style).

    Leaves are the words by index; inner nodes are numbered 0..V-2 with the root at V-2.
    codes[k] is the branch taken at inner node points[k], root first.

    Args:
        words: Vocabulary elements, indexed 0..V-1.

    Returns:
        Maximum code length.
    """
    V = len(words)
    if V == 0:
        return 0
    if V == 1:
        # Single element: one inner node so the path is never empty
        words[0].codes = [0]
        words[0].points = [0]
        return 1
    heap: List[Tuple[float, int, int]] = [(w.frequency, w.index, w.index) for w in words]
    heapq.heapify(heap)
    parent = [0] * (2 * V - 1)
    binary = [0] * (2 * V - 1)
    next_id = V
    while len(heap) > 1:
        c1, _, n1 = heapq.heappop(heap)
        c2, _, n2 = heapq.heappop(heap)
        parent[n1] = next_id
        parent[n2] = next_id
        binary[n2] = 1
        heapq.heappush(heap, (c1 + c2, next_id, next_id))
        next_id += 1
    root = next_id - 1
    max_len = 0
    for w in words:
        codes: List[int] = []
        points: List[int] = []
        node = w.index
        while node != root:
            codes.append(binary[node])
            points.append(parent[node] - V)
            node = parent[node]
        w.codes = codes[::-1]
        w.points = points[::-1]
        max_len = max(max_len, len(codes))
    return max_len


class VocabConstructor:
    """Builds a VocabCache from one or more sequence sources.

    Each source has its own min_count; sequence labels are kept regardless of count.
    """

    def __init__(self, target_cache: Optional[VocabCache] = None):
        self.cache = target_cache if target_cache is not None else VocabCache()
        self.sources: List[Tuple[Iterable[Sequence], int]] = []

    def add_source(self, iterator: Iterable[Sequence], min_count: int) -> "VocabConstructor":
        if min_count < 1:
            raise ConfigurationError(f"min_count must be >= 1, got {min_count}")
        self.sources.append((iterator, min_count))
        return self

    def build_joint_vocabulary(
        self, reset_counters: bool = False, build_huffman_tree: bool = True
    ) -> VocabCache:
        """Count every source once and merge the surviving elements into the cache.

        Args:
            reset_counters: Clear the target cache before counting. Defaults to False.
            build_huffman_tree: Assign Huffman codes after indexing. Defaults to True.

        Returns:
            The target VocabCache.

        Raises:
            ConfigurationError: If no source was added.
        """
        if not self.sources:
            raise ConfigurationError("No sources added to VocabConstructor")
        if reset_counters:
            self.cache.clear()

        for source, min_count in self.sources:
            counts: Dict[str, float] = {}
            labels: Dict[str, float] = {}
            n_sequences = 0
            for seq in source:
                n_sequences += 1
                for element in seq:
                    counts[element.label] = counts.get(element.label, 0.0) + element.frequency
                if seq.label is not None:
                    labels[seq.label.label] = labels.get(seq.label.label, 0.0) + 1.0
            kept = 0
            for label, count in counts.items():
                if count < min_count:
                    continue
                self.cache.add_token(VocabWord(label, frequency=count))
                self.cache.total_word_occurrences += count
                kept += 1
            for label, count in labels.items():
                self.cache.add_token(VocabWord(label, frequency=count, is_label=True))
            self.cache.total_sequences += n_sequences
            logger.info(
                "Source scanned: %d sequences, %d distinct elements, %d kept (min_count=%d)",
                n_sequences,
                len(counts),
                kept,
                min_count,
            )

        self.cache.update_indexes()
        if build_huffman_tree:
            max_len = build_huffman_codes(
                [self.cache.word_at_index(i) for i in range(self.cache.num_words())]
            )
            logger.debug("Huffman tree built, max code length %d", max_len)
        logger.info("Vocabulary size: %d", self.cache.num_words())
        return self.cache
