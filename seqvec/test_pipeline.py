import numpy as np
import pytest

from seqvec.config import ELEMENTS_ALGORITHMS, SEQUENCE_ALGORITHMS, VectorsConfiguration
from seqvec.errors import ConfigurationError, ElementNotFoundError
from seqvec.iterators import (
    AbstractSequenceIterator,
    BasicLineIterator,
    CollectionLineIterator,
    SentenceTransformer,
)
from seqvec.learning import ELEMENTS_LEARNING_ALGORITHMS, SEQUENCE_LEARNING_ALGORITHMS
from seqvec.lookup import InMemoryLookupTable, negative_sampling_distribution
from seqvec.run import DEFAULT_CORPUS
from seqvec.tokenization import CommonPreprocessor, DefaultTokenizerFactory, LowCasePreProcessor
from seqvec.vocab import VocabCache, VocabConstructor

# Unit tests for the data side: tokenization, iterators, vocabulary, lookup table, config.


def _sequences(lines, label_template=None):
    factory = DefaultTokenizerFactory(CommonPreprocessor())
    transformer = SentenceTransformer(CollectionLineIterator(lines), factory, label_template)
    return AbstractSequenceIterator(transformer)


def test_common_preprocessor_strips_punctuation_and_digits():
    pre = CommonPreprocessor()
    assert pre.pre_process("Hello,") == "hello"
    assert pre.pre_process("(It's)") == "its"
    assert pre.pre_process("3rd") == "rd"
    assert pre.pre_process("42.") == ""


def test_tokenizer_drops_empty_tokens():
    factory = DefaultTokenizerFactory(CommonPreprocessor())
    tokenizer = factory.create("It was 42 days , ok ?")
    assert tokenizer.get_tokens() == ["it", "was", "days", "ok"]
    assert tokenizer.count_tokens() == 4


def test_tokenizer_without_preprocessor_keeps_case():
    assert DefaultTokenizerFactory().create("The Day").get_tokens() == ["The", "Day"]


def test_preprocessor_is_pluggable():
    factory = DefaultTokenizerFactory()
    factory.set_token_pre_processor(LowCasePreProcessor())
    assert factory.create("The Day, 2").get_tokens() == ["the", "day,", "2"]


def test_line_iterator_is_restartable(tmp_path):
    path = tmp_path / "corpus.txt"
    path.write_text("first line\nsecond line\n", encoding="utf-8")
    it = BasicLineIterator(str(path))
    assert list(it) == ["first line", "second line"]
    assert list(it) == ["first line", "second line"]


def test_line_iterator_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        BasicLineIterator(str(tmp_path / "nope.txt"))


def test_line_iterator_surfaces_decode_errors(tmp_path):
    path = tmp_path / "broken.txt"
    path.write_bytes(b"ok\n\xff\xfe bad\n")
    it = BasicLineIterator(str(path))
    with pytest.raises(UnicodeDecodeError):
        list(it)
    # A failed pass leaves nothing open; the next pass starts over and fails the same way
    with pytest.raises(UnicodeDecodeError):
        list(it)


def test_sentence_transformer_skips_empty_lines_and_labels_sequences():
    seqs = list(_sequences(["The day", "", "...", "the night"], label_template="SENT_{}"))
    assert [s.labels() for s in seqs] == [["the", "day"], ["the", "night"]]
    assert [s.sequence_id for s in seqs] == [0, 1]
    assert [s.label.label for s in seqs] == ["SENT_0", "SENT_1"]
    assert all(s.label.is_label for s in seqs)


def test_sequence_iterator_replays_same_sequences():
    it = _sequences(["a b c", "c d"])
    first = [s.labels() for s in it]
    second = [s.labels() for s in it]
    assert first == second == [["a", "b", "c"], ["c", "d"]]


def test_vocab_min_frequency_filter():
    lines = ["apple banana"] * 3 + ["cherry apple"]
    cache = VocabConstructor().add_source(_sequences(lines), 2).build_joint_vocabulary()
    assert cache.contains_word("apple") and cache.contains_word("banana")
    assert not cache.contains_word("cherry")
    assert cache.word_frequency("apple") == 4
    assert cache.word_frequency("banana") == 3
    assert cache.total_word_occurrences == 7
    # Most frequent first
    assert cache.index_of("apple") == 0
    assert cache.word_at_index(1).label == "banana"


def test_vocab_counts_are_deterministic():
    lines = ["x y z", "y z", "z"]
    a = VocabConstructor().add_source(_sequences(lines), 1).build_joint_vocabulary()
    b = VocabConstructor().add_source(_sequences(lines), 1).build_joint_vocabulary()
    assert {w: a.word_frequency(w) for w in a.words()} == {w: b.word_frequency(w) for w in b.words()}


def test_vocab_keeps_sequence_labels_regardless_of_count():
    lines = ["a b", "a c"]
    cache = (
        VocabConstructor()
        .add_source(_sequences(lines, label_template="DOC_{}"), 2)
        .build_joint_vocabulary()
    )
    assert cache.contains_word("a")
    assert not cache.contains_word("b")
    assert cache.contains_word("DOC_0") and cache.word_for("DOC_0").is_label


def test_vocab_reset_counters():
    cache = VocabCache()
    constructor = VocabConstructor(cache).add_source(_sequences(["a a"]), 1)
    constructor.build_joint_vocabulary()
    constructor.build_joint_vocabulary()
    assert cache.word_frequency("a") == 4
    constructor.build_joint_vocabulary(reset_counters=True)
    assert cache.word_frequency("a") == 2


def test_vocab_constructor_requires_source():
    with pytest.raises(ConfigurationError):
        VocabConstructor().build_joint_vocabulary()
    with pytest.raises(ConfigurationError):
        VocabConstructor().add_source(_sequences(["a"]), 0)


def test_huffman_codes_are_prefix_free():
    lines = ["a a a a a b b b c c d"]
    cache = VocabConstructor().add_source(_sequences(lines), 1).build_joint_vocabulary()
    words = [cache.word_at_index(i) for i in range(cache.num_words())]
    V = len(words)
    codes = ["".join(map(str, w.codes)) for w in words]
    for w in words:
        assert len(w.codes) == len(w.points) > 0
        assert all(0 <= p <= V - 2 for p in w.points)
        # Root first
        assert w.points[0] == V - 2
    for i, ci in enumerate(codes):
        for j, cj in enumerate(codes):
            if i != j:
                assert not cj.startswith(ci)
    assert len(words[0].codes) <= len(words[-1].codes)


def test_reset_weights_allocates_one_vector_per_element():
    cache = VocabConstructor().add_source(_sequences(["a b c", "a b", "a"]), 1).build_joint_vocabulary()
    D = 16
    table = InMemoryLookupTable(cache, D, negative=3, seed=1)
    table.reset_weights(True)
    assert table.syn0.shape == (cache.num_words(), D)
    assert np.all(np.abs(table.syn0) <= 0.5 / D)
    assert table.syn1.shape == (cache.num_words() - 1, D)
    assert table.syn1neg.shape == (cache.num_words(), D)
    for label in cache.words():
        assert table.vector(label).shape == (D,)
    assert table.vector("zzz") is None
    with pytest.raises(ElementNotFoundError):
        table.vector_or_raise("zzz")


def test_reset_weights_is_seeded():
    cache = VocabConstructor().add_source(_sequences(["a b c"]), 1).build_joint_vocabulary()
    t1 = InMemoryLookupTable(cache, 8, seed=7)
    t2 = InMemoryLookupTable(cache, 8, seed=7)
    t1.reset_weights()
    t2.reset_weights()
    np.testing.assert_array_equal(t1.syn0, t2.syn0)


def test_reset_weights_false_keeps_existing_weights():
    cache = VocabConstructor().add_source(_sequences(["a b c"]), 1).build_joint_vocabulary()
    table = InMemoryLookupTable(cache, 8)
    table.reset_weights(True)
    table.syn0 += 1.0
    before = table.syn0.copy()
    table.reset_weights(False)
    np.testing.assert_array_equal(table.syn0, before)


def test_lookup_table_rejects_bad_sizes():
    with pytest.raises(ConfigurationError):
        InMemoryLookupTable(VocabCache(), 0)
    with pytest.raises(ConfigurationError):
        InMemoryLookupTable(VocabCache(), 10, lr=0.0)


def test_negative_sampling_distribution():
    counts = np.array([10.0, 1.0, 100.0])
    probs = negative_sampling_distribution(counts, power=0.75)
    assert np.isclose(probs.sum(), 1.0)
    assert np.all(probs > 0)
    assert probs[2] > probs[0] > probs[1]  # higher count -> higher prob


@pytest.mark.parametrize(
    "overrides",
    [
        {"train_elements": False, "train_sequences": False},
        {"layers_size": 0},
        {"batch_size": -1},
        {"learning_rate": 0.0},
        {"min_word_frequency": 0},
        {"epochs": 0},
        {"iterations": 0},
        {"negative": -1},
        {"use_hierarchic_softmax": False, "negative": 0},
        {"elements_learning_algorithm": "glove"},
        {"sampling": -0.1},
    ],
)
def test_configuration_validation(overrides):
    with pytest.raises(ConfigurationError):
        VectorsConfiguration(**overrides)


def test_configuration_names_match_registered_algorithms():
    assert set(ELEMENTS_ALGORITHMS) == set(ELEMENTS_LEARNING_ALGORITHMS)
    assert set(SEQUENCE_ALGORITHMS) == set(SEQUENCE_LEARNING_ALGORITHMS)


def test_configuration_overrides_are_validated():
    cfg = VectorsConfiguration()
    assert cfg.with_overrides(layers_size=50).layers_size == 50
    assert cfg.layers_size == 200
    with pytest.raises(ValueError):
        cfg.with_overrides(train_elements=False)


def test_bundled_corpus_has_day_and_night():
    factory = DefaultTokenizerFactory(CommonPreprocessor())
    seqs = AbstractSequenceIterator(SentenceTransformer(BasicLineIterator(DEFAULT_CORPUS), factory))
    cache = VocabConstructor().add_source(seqs, 5).build_joint_vocabulary()
    assert cache.word_frequency("day") >= 5
    assert cache.word_frequency("night") >= 5
