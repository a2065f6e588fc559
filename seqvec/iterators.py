import logging
import os
from typing import Iterable, Iterator, List, Optional

from seqvec.elements import Sequence, VocabWord
from seqvec.tokenization import DefaultTokenizerFactory

# Lazy, restartable sources: lines -> sequences of VocabWords. Every iter() call is a
# fresh pass; files are reopened rather than rewound.

logger = logging.getLogger(__name__)


class BasicLineIterator:
    """Lines of a text file, one sentence per line.

    Each pass opens the file in a with-block so the handle is released even if reading
    fails part-way.

    Attributes:
        path (str): Corpus path.
        encoding (str): File encoding.
    """

    def __init__(self, path: str, encoding: str = "utf-8"):
        """Remember the corpus location.

        Args:
            path: Path to the corpus file.
            encoding: Text encoding. Defaults to "utf-8".

        Raises:
            FileNotFoundError: If path does not exist.
        """
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Corpus file not found: {path}")
        self.path = path
        self.encoding = encoding

    def __iter__(self) -> Iterator[str]:
        logger.debug("Reading lines from %s", self.path)
        with open(self.path, encoding=self.encoding) as f:
            for line in f:
                yield line.rstrip("\r\n")


class CollectionLineIterator:
    """Same contract as BasicLineIterator over lines already in memory."""

    def __init__(self, lines: Iterable[str]):
        self.lines: List[str] = list(lines)

    def __iter__(self) -> Iterator[str]:
        return iter(self.lines)


class SentenceTransformer:
    """Turn lines into Sequences of VocabWords using a tokenizer factory.

    Attributes:
        iterator: Restartable line source.
        tokenizer_factory (DefaultTokenizerFactory): Tokenizer for each line.
        label_template (Optional[str]): If set, e.g. "SENT_{}", every sequence gets a label
            element formatted with its sequence id.
    """

    def __init__(
        self,
        iterator: Iterable[str],
        tokenizer_factory: Optional[DefaultTokenizerFactory] = None,
        label_template: Optional[str] = None,
    ):
        self.iterator = iterator
        self.tokenizer_factory = tokenizer_factory or DefaultTokenizerFactory()
        self.label_template = label_template

    def transform(self, line: str, sequence_id: int = 0) -> Sequence:
        """Convert one line into a Sequence (possibly empty).

        Args:
            line: Raw sentence.
            sequence_id: Id stored on the sequence (and used for its label).

        Returns:
            Sequence with one fresh VocabWord per token.
        """
        seq = Sequence(sequence_id=sequence_id)
        for token in self.tokenizer_factory.create(line).get_tokens():
            seq.add_element(VocabWord(token))
        if self.label_template is not None:
            seq.label = VocabWord(self.label_template.format(sequence_id), is_label=True)
        return seq

    def __iter__(self) -> Iterator[Sequence]:
        sequence_id = 0
        for line in self.iterator:
            seq = self.transform(line, sequence_id)
            if seq.is_empty():
                continue
            yield seq
            sequence_id += 1


class AbstractSequenceIterator:
    """Replayable sequence source for multi-epoch training.

    Wraps any iterable of Sequences whose __iter__ starts a new pass (a transformer, or a
    plain list).
    """

    def __init__(self, source: Iterable[Sequence]):
        self.source = source

    def __iter__(self) -> Iterator[Sequence]:
        return iter(self.source)
