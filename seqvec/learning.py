import logging
from typing import List, Optional, Tuple

import numpy as np

from seqvec.config import VectorsConfiguration
from seqvec.elements import Sequence
from seqvec.errors import ConfigurationError
from seqvec.lookup import InMemoryLookupTable
from seqvec.vocab import VocabCache

# Learning algorithms: SkipGram / CBOW for elements, DBOW for sequence labels. Each trains
# through hierarchical softmax and/or negative sampling, batched in NumPy, SGD or AdaGrad.
# Deltas below are ascent directions on log-likelihood (word2vec's g), applied as W += lr * d.

logger = logging.getLogger(__name__)

# (input, target) pairs per update step; rows hit several times in a step get the mean delta
PAIRS_PER_STEP = 256


def _sigmoid(x: np.ndarray) -> np.ndarray:
    """Numerically stable sigmoid; clips input to avoid overflow in exp.

    Args:
        x: Input array (any shape).

    Returns:
        Sigmoid of x, same shape; values in (0, 1).
    """
    x = np.clip(x, -500.0, 500.0)
    return 1.0 / (1.0 + np.exp(-x))


def _log_sigmoid(x: np.ndarray) -> np.ndarray:
    """Log of sigmoid: -softplus(-x), computed in a numerically stable way.

    Args:
        x: Input array (any shape).

    Returns:
        log(sigmoid(x)), same shape as x.
    """
    x = np.clip(x, -500.0, 500.0)
    return np.minimum(x, 0) - np.log(1.0 + np.exp(-np.abs(x)))


def hierarchic_softmax_step(
    v: np.ndarray,
    codes: np.ndarray,
    points: np.ndarray,
    mask: np.ndarray,
    syn1: np.ndarray,
) -> Tuple[float, np.ndarray, np.ndarray]:
    """Loss and ascent deltas for hierarchical softmax over padded Huffman paths.

    Args:
        v: Input vectors, shape (B, D).
        codes: Huffman codes of the targets, shape (B, L), padded with 0.
        points: Inner-node ids of the targets, shape (B, L), padded with 0.
        mask: 1.0 on real path entries, 0.0 on padding, shape (B, L).
        syn1: Inner-node table.

    Returns:
        Tuple of (loss, d_v, d_u). loss is summed over the batch; d_v is (B, D) for the
        inputs and d_u is (B, L, D) for syn1[points].
    """
    u = syn1[points]  # (B, L, D)
    f = np.einsum("bld,bd->bl", u, v)
    # code 0 means "go left" with target probability sigmoid(f)
    sign = 1.0 - 2.0 * codes
    loss = float(-(_log_sigmoid(sign * f) * mask).sum())
    g = (1.0 - codes - _sigmoid(f)) * mask  # (B, L)
    d_v = np.einsum("bl,bld->bd", g, u)
    d_u = g[:, :, np.newaxis] * v[:, np.newaxis, :]
    return loss, d_v, d_u


def negative_sampling_step(
    v: np.ndarray,
    targets: np.ndarray,
    negatives: np.ndarray,
    syn1neg: np.ndarray,
) -> Tuple[float, np.ndarray, np.ndarray, np.ndarray]:
    """Loss and ascent deltas for negative sampling.

    Score for (input, target) is syn1neg[target] @ v. Loss is -log(sigmoid(score_pos)) -
    sum over negatives of log(sigmoid(-score_neg)). Negatives equal to the target are
    ignored.

    Args:
        v: Input vectors, shape (B, D).
        targets: Positive target ids, shape (B,).
        negatives: Negative ids, shape (B, K).
        syn1neg: Output table.

    Returns:
        Tuple of (loss, d_v, rows, d_u) with rows (B, K + 1) the syn1neg rows touched and
        d_u (B, K + 1, D) their deltas.
    """
    rows = np.concatenate([targets[:, np.newaxis], negatives], axis=1)  # (B, K+1)
    labels = np.zeros(rows.shape, dtype=np.float64)
    labels[:, 0] = 1.0
    mask = np.ones(rows.shape, dtype=np.float64)
    mask[:, 1:] = negatives != targets[:, np.newaxis]

    u = syn1neg[rows]  # (B, K+1, D)
    f = np.einsum("bkd,bd->bk", u, v)
    loss_pos = -_log_sigmoid(f[:, 0]).sum()
    loss_neg = -(_log_sigmoid(-f[:, 1:]) * mask[:, 1:]).sum()
    g = (labels - _sigmoid(f)) * mask
    d_v = np.einsum("bk,bkd->bd", g, u)
    d_u = g[:, :, np.newaxis] * v[:, np.newaxis, :]
    return float(loss_pos + loss_neg), d_v, rows, d_u


def apply_update(
    table: np.ndarray,
    history: Optional[np.ndarray],
    rows: np.ndarray,
    delta: np.ndarray,
    lr: float,
    weights: Optional[np.ndarray] = None,
) -> None:
    """Scatter deltas into table rows, averaging rows that appear more than once.

    Args:
        table: Weight table updated in place, shape (N, D).
        history: AdaGrad accumulator of the same shape, or None for plain SGD.
        rows: Row ids, any shape.
        delta: Deltas, shape rows.shape + (D,).
        lr: Learning rate.
        weights: Optional 0/1 weights with shape rows.shape; zero entries are skipped.
    """
    D = table.shape[1]
    flat_rows = rows.reshape(-1)
    flat_delta = delta.reshape(-1, D)
    if weights is not None:
        keep = weights.reshape(-1) > 0
        flat_rows = flat_rows[keep]
        flat_delta = flat_delta[keep]
    if flat_rows.size == 0:
        return
    uniq, inverse = np.unique(flat_rows, return_inverse=True)
    acc = np.zeros((len(uniq), D), dtype=table.dtype)
    np.add.at(acc, inverse, flat_delta)
    hits = np.bincount(inverse, minlength=len(uniq)).astype(table.dtype)
    acc /= hits[:, np.newaxis]
    if history is not None:
        history[uniq] += acc**2
        table[uniq] += lr * acc / (np.sqrt(history[uniq]) + 1e-10)
    else:
        table[uniq] += lr * acc


class LearningAlgorithm:
    """Shared plumbing: vocabulary lookup, subsampling, output-layer updates."""

    name = "base"

    def __init__(self):
        self.vocab: Optional[VocabCache] = None
        self.table: Optional[InMemoryLookupTable] = None
        self.config: Optional[VectorsConfiguration] = None
        self._codes: Optional[np.ndarray] = None
        self._points: Optional[np.ndarray] = None
        self._code_mask: Optional[np.ndarray] = None
        self._keep_prob: Optional[np.ndarray] = None

    def configure(
        self, vocab: VocabCache, table: InMemoryLookupTable, config: VectorsConfiguration
    ) -> None:
        """Bind to a vocabulary and lookup table; precompute padded Huffman paths."""
        if table.syn0 is None:
            raise ConfigurationError("Lookup table has no weights; call reset_weights() first")
        if config.negative > 0 and table.syn1neg is None:
            raise ConfigurationError(
                "negative > 0 but the lookup table has no negative sampling weights; "
                "build it with the same negative value"
            )
        self.vocab = vocab
        self.table = table
        self.config = config
        V = vocab.num_words()
        words = [vocab.word_at_index(i) for i in range(V)]

        if config.use_hierarchic_softmax:
            if any(not w.codes for w in words):
                raise ConfigurationError(
                    "Hierarchical softmax needs Huffman codes; build the vocabulary with "
                    "build_huffman_tree=True"
                )
            L = max(len(w.codes) for w in words)
            self._codes = np.zeros((V, L), dtype=np.float64)
            self._points = np.zeros((V, L), dtype=np.int64)
            self._code_mask = np.zeros((V, L), dtype=np.float64)
            for w in words:
                n = len(w.codes)
                self._codes[w.index, :n] = w.codes
                self._points[w.index, :n] = w.points
                self._code_mask[w.index, :n] = 1.0

        if config.sampling > 0:
            freqs = np.array([w.frequency for w in words], dtype=np.float64)
            total = max(vocab.total_word_occurrences, 1.0)
            keep = np.sqrt(config.sampling / np.clip(freqs / total, 1e-12, None))
            self._keep_prob = np.minimum(keep, 1.0)
        else:
            self._keep_prob = None
        logger.debug(
            "%s configured: V=%d, hs=%s, negative=%d, sampling=%g",
            self.name,
            V,
            config.use_hierarchic_softmax,
            config.negative,
            config.sampling,
        )

    def sequence_indices(self, seq: Sequence, rng: np.random.Generator) -> np.ndarray:
        """Vocabulary ids of the sequence's elements, OOV dropped, subsampled if enabled."""
        ids = [self.vocab.index_of(e.label) for e in seq]
        ids = np.array([i for i in ids if i >= 0], dtype=np.int64)
        if self._keep_prob is not None and ids.size:
            ids = ids[rng.random(ids.size) < self._keep_prob[ids]]
        return ids

    def _output_layer(
        self, v: np.ndarray, targets: np.ndarray, lr: float, rng: np.random.Generator
    ) -> Tuple[float, np.ndarray]:
        """Update syn1 / syn1neg for targets given inputs v; return loss and d_v."""
        table = self.table
        loss = 0.0
        d_v = np.zeros_like(v)
        if self.config.use_hierarchic_softmax:
            points = self._points[targets]
            mask = self._code_mask[targets]
            hs_loss, hs_dv, hs_du = hierarchic_softmax_step(
                v, self._codes[targets], points, mask, table.syn1
            )
            apply_update(table.syn1, table.hist_syn1, points, hs_du, lr, weights=mask)
            loss += hs_loss
            d_v += hs_dv
        if self.config.negative > 0:
            negatives = table.sample_negatives(rng, (len(targets), self.config.negative))
            ns_loss, ns_dv, rows, ns_du = negative_sampling_step(
                v, targets, negatives, table.syn1neg
            )
            apply_update(table.syn1neg, table.hist_syn1neg, rows, ns_du, lr)
            loss += ns_loss
            d_v += ns_dv
        return loss, d_v

    def train_pairs(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        lr: float,
        rng: np.random.Generator,
    ) -> float:
        """Skip-gram style updates: syn0[inputs] predicts targets. Returns summed loss."""
        total = 0.0
        for start in range(0, len(inputs), PAIRS_PER_STEP):
            inp = inputs[start : start + PAIRS_PER_STEP]
            tgt = targets[start : start + PAIRS_PER_STEP]
            v = self.table.syn0[inp]
            loss, d_v = self._output_layer(v, tgt, lr, rng)
            apply_update(self.table.syn0, self.table.hist_syn0, inp, d_v, lr)
            total += loss
        return total

    def learn_batch(
        self, sequences: List[Sequence], lr: float, rng: np.random.Generator
    ) -> Tuple[float, int]:
        """Train on a batch of sequences.

        Args:
            sequences: Batch of sequences.
            lr: Current learning rate.
            rng: Random generator for windows, subsampling and negatives.

        Returns:
            Tuple of (summed loss, number of training examples).
        """
        raise NotImplementedError


def _reduced_window(window: int, rng: np.random.Generator) -> int:
    # word2vec draws b in [0, window) and uses window - b on each side
    return window - int(rng.integers(0, window))


class SkipGram(LearningAlgorithm):
    """Each element predicts the elements around it within a (randomly reduced) window."""

    name = "skipgram"

    def skipgram_pairs(
        self, ids: np.ndarray, rng: np.random.Generator
    ) -> Tuple[List[int], List[int]]:
        centers: List[int] = []
        contexts: List[int] = []
        n = len(ids)
        for pos in range(n):
            w = _reduced_window(self.config.window, rng)
            start = max(0, pos - w)
            end = min(n, pos + w + 1)
            for j in range(start, end):
                if j == pos:
                    continue
                centers.append(ids[pos])
                contexts.append(ids[j])
        return centers, contexts

    def learn_batch(self, sequences, lr, rng):
        centers: List[int] = []
        contexts: List[int] = []
        for seq in sequences:
            c, p = self.skipgram_pairs(self.sequence_indices(seq, rng), rng)
            centers.extend(c)
            contexts.extend(p)
        if not centers:
            return 0.0, 0
        inputs = np.array(centers, dtype=np.int64)
        targets = np.array(contexts, dtype=np.int64)
        return self.train_pairs(inputs, targets, lr, rng), len(inputs)


class CBOW(LearningAlgorithm):
    """Mean of the context vectors predicts the center element."""

    name = "cbow"

    def learn_batch(self, sequences, lr, rng):
        W = self.config.window
        context_rows: List[List[int]] = []
        centers: List[int] = []
        for seq in sequences:
            ids = self.sequence_indices(seq, rng)
            n = len(ids)
            for pos in range(n):
                w = _reduced_window(W, rng)
                ctx = [ids[j] for j in range(max(0, pos - w), min(n, pos + w + 1)) if j != pos]
                if not ctx:
                    continue
                context_rows.append(ctx)
                centers.append(ids[pos])
        if not centers:
            return 0.0, 0

        total = 0.0
        for start in range(0, len(centers), PAIRS_PER_STEP):
            chunk = context_rows[start : start + PAIRS_PER_STEP]
            tgt = np.array(centers[start : start + PAIRS_PER_STEP], dtype=np.int64)
            ctx = np.zeros((len(chunk), 2 * W), dtype=np.int64)
            mask = np.zeros((len(chunk), 2 * W), dtype=np.float64)
            for i, row in enumerate(chunk):
                ctx[i, : len(row)] = row
                mask[i, : len(row)] = 1.0
            counts = mask.sum(axis=1, keepdims=True)
            v = np.einsum("bc,bcd->bd", mask, self.table.syn0[ctx]) / counts
            loss, d_v = self._output_layer(v, tgt, lr, rng)
            d_ctx = np.broadcast_to(d_v[:, np.newaxis, :], ctx.shape + (d_v.shape[1],))
            apply_update(self.table.syn0, self.table.hist_syn0, ctx, d_ctx, lr, weights=mask)
            total += loss
        return total, len(centers)


class DBOW(LearningAlgorithm):
    """Distributed bag of words: the sequence label vector predicts every element."""

    name = "dbow"

    def learn_batch(self, sequences, lr, rng):
        inputs: List[int] = []
        targets: List[int] = []
        for seq in sequences:
            if seq.label is None:
                continue
            label_idx = self.vocab.index_of(seq.label.label)
            if label_idx < 0:
                continue
            ids = self.sequence_indices(seq, rng)
            inputs.extend([label_idx] * len(ids))
            targets.extend(ids.tolist())
        if not inputs:
            return 0.0, 0
        inputs_arr = np.array(inputs, dtype=np.int64)
        targets_arr = np.array(targets, dtype=np.int64)
        return self.train_pairs(inputs_arr, targets_arr, lr, rng), len(inputs_arr)


ELEMENTS_LEARNING_ALGORITHMS = {"skipgram": SkipGram, "cbow": CBOW}
SEQUENCE_LEARNING_ALGORITHMS = {"dbow": DBOW}


def elements_algorithm(name: str) -> LearningAlgorithm:
    """New instance of a validated VectorsConfiguration.elements_learning_algorithm."""
    return ELEMENTS_LEARNING_ALGORITHMS[name]()


def sequence_algorithm(name: str) -> LearningAlgorithm:
    """New instance of a validated VectorsConfiguration.sequence_learning_algorithm."""
    return SEQUENCE_LEARNING_ALGORITHMS[name]()
