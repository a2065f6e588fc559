import argparse
import logging
import os

from seqvec.config import VectorsConfiguration
from seqvec.iterators import AbstractSequenceIterator, BasicLineIterator, SentenceTransformer
from seqvec.lookup import InMemoryLookupTable
from seqvec.sequencevectors import SequenceVectors
from seqvec.serialization import write_word_vectors
from seqvec.tokenization import CommonPreprocessor, DefaultTokenizerFactory
from seqvec.vocab import VocabCache, VocabConstructor

# Entry point: learn vectors for the words of raw_sentences.txt and log day/night
# similarity. Usage: python -m seqvec.run [--file path] [--save vectors.txt]

logger = logging.getLogger(__name__)

DEFAULT_CORPUS = os.path.join(os.path.dirname(__file__), "data", "raw_sentences.txt")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_model(args: argparse.Namespace) -> SequenceVectors:
    """Wire line source -> tokenizer -> sequences -> vocabulary -> lookup table -> model."""
    underlying_iterator = BasicLineIterator(args.file)

    tokenizer_factory = DefaultTokenizerFactory()
    tokenizer_factory.set_token_pre_processor(CommonPreprocessor())
    transformer = SentenceTransformer(underlying_iterator, tokenizer_factory)
    sequence_iterator = AbstractSequenceIterator(transformer)

    # Vocabulary built up front; with --reset-model fit() would build its own instead
    vocab_cache = VocabCache()
    constructor = VocabConstructor(vocab_cache).add_source(sequence_iterator, args.min_count)
    constructor.build_joint_vocabulary(reset_counters=False, build_huffman_tree=True)

    lookup_table = InMemoryLookupTable(
        vocab_cache,
        args.dim,
        lr=args.lr,
        use_adagrad=args.adagrad,
        negative=args.negatives,
        seed=args.seed,
    )
    lookup_table.reset_weights(True)

    config = VectorsConfiguration(
        min_word_frequency=args.min_count,
        layers_size=args.dim,
        learning_rate=args.lr,
        use_adagrad=args.adagrad,
        batch_size=args.batch_size,
        iterations=args.iterations,
        epochs=args.epochs,
        window=args.window,
        negative=args.negatives,
        reset_model=args.reset_model,
        train_elements=True,
        train_sequences=False,
        elements_learning_algorithm=args.algorithm,
        seed=args.seed,
    )
    return SequenceVectors(
        config, sequence_iterator, vocab=vocab_cache, lookup_table=lookup_table
    )


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Learn word vectors from a line-per-sentence file")
    ap.add_argument("--file", type=str, default=DEFAULT_CORPUS, help="One sentence per line")
    ap.add_argument("--min-count", type=int, default=5)
    ap.add_argument("--dim", type=int, default=150)
    ap.add_argument("--lr", type=float, default=0.025)
    ap.add_argument("--adagrad", action="store_true", help="Use AdaGrad instead of SGD")
    ap.add_argument("--batch-size", type=int, default=250, help="Sequences per batch")
    ap.add_argument("--iterations", type=int, default=1, help="Passes over each batch")
    ap.add_argument("--epochs", type=int, default=1)
    ap.add_argument("--window", type=int, default=5)
    ap.add_argument("--negatives", type=int, default=0, help="0 = hierarchical softmax only")
    ap.add_argument("--algorithm", choices=("skipgram", "cbow"), default="skipgram")
    ap.add_argument(
        "--reset-model", action="store_true", help="Rebuild vocabulary inside fit()"
    )
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--save", type=str, default=None, help="Write vectors (word2vec text)")
    ap.add_argument("--nearest", type=int, default=0, help="Log N neighbours of day/night")
    return ap.parse_args(argv)


def main(argv=None) -> float:
    """Train on the corpus and log the day/night similarity; returns the score."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    args = parse_args(argv)

    vectors = build_model(args)
    vectors.fit()

    # Similarity goes through labels only; label uniqueness is up to the data source
    sim = vectors.similarity("day", "night")
    logger.info("Day/night similarity: %s", sim)

    if args.nearest > 0:
        for word in ("day", "night"):
            neighbours = vectors.words_nearest(word, args.nearest)
            logger.info(
                "Nearest to %s: %s", word, ", ".join(f"{w}({s:.3f})" for w, s in neighbours)
            )
    if args.save:
        write_word_vectors(vectors, args.save)
    return sim


if __name__ == "__main__":
    main()
