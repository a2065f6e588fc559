from seqvec.config import VectorsConfiguration
from seqvec.elements import Sequence, VocabWord
from seqvec.errors import ConfigurationError, ElementNotFoundError, SeqVecError
from seqvec.iterators import (
    AbstractSequenceIterator,
    BasicLineIterator,
    CollectionLineIterator,
    SentenceTransformer,
)
from seqvec.learning import CBOW, DBOW, SkipGram
from seqvec.lookup import InMemoryLookupTable
from seqvec.sequencevectors import SequenceVectors
from seqvec.serialization import WordVectors, read_word_vectors, write_word_vectors
from seqvec.tokenization import CommonPreprocessor, DefaultTokenizerFactory
from seqvec.vocab import VocabCache, VocabConstructor

# Sequence vectors in pure NumPy: learn embeddings for the elements of line-delimited
# sequences (words of sentences) with skip-gram / CBOW, and sequence labels with DBOW.

__all__ = [
    "AbstractSequenceIterator",
    "BasicLineIterator",
    "CBOW",
    "CollectionLineIterator",
    "CommonPreprocessor",
    "ConfigurationError",
    "DBOW",
    "DefaultTokenizerFactory",
    "ElementNotFoundError",
    "InMemoryLookupTable",
    "SentenceTransformer",
    "SeqVecError",
    "Sequence",
    "SequenceVectors",
    "SkipGram",
    "VectorsConfiguration",
    "VocabCache",
    "VocabConstructor",
    "VocabWord",
    "WordVectors",
    "read_word_vectors",
    "write_word_vectors",
]
