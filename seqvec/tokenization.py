import re
from typing import Callable, Iterator, List, Optional

# Tokenization: whitespace split plus a pluggable per-token preprocessing policy.

TokenPreProcess = Callable[[str], str]

_PUNCT_DIGITS = re.compile(r"[\d.:,\"'()\[\]|/?!;]+")


class CommonPreprocessor:
    """Strip digits and common punctuation, then lower-case."""

    def pre_process(self, token: str) -> str:
        return _PUNCT_DIGITS.sub("", token).lower()

    def __call__(self, token: str) -> str:
        return self.pre_process(token)


class LowCasePreProcessor:
    def pre_process(self, token: str) -> str:
        return token.lower()

    def __call__(self, token: str) -> str:
        return self.pre_process(token)


class Tokenizer:
    """Tokens of a single line, already preprocessed.

    Attributes:
        tokens (List[str]): Non-empty tokens in order.
    """

    def __init__(self, text: str, preprocessor: Optional[TokenPreProcess] = None):
        """Split text on whitespace and run every token through preprocessor.

        Args:
            text: Raw line.
            preprocessor: Callable applied per token; tokens that end up empty are dropped.
                Defaults to None (tokens kept as-is).
        """
        raw = text.split()
        if preprocessor is not None:
            raw = [preprocessor(t) for t in raw]
        self.tokens: List[str] = [t for t in raw if t]

    def get_tokens(self) -> List[str]:
        return list(self.tokens)

    def count_tokens(self) -> int:
        return len(self.tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(self.tokens)


class DefaultTokenizerFactory:
    """Creates whitespace Tokenizers sharing one preprocessing policy."""

    def __init__(self, preprocessor: Optional[TokenPreProcess] = None):
        self.preprocessor = preprocessor

    def set_token_pre_processor(self, preprocessor: Optional[TokenPreProcess]) -> None:
        self.preprocessor = preprocessor

    def create(self, text: str) -> Tokenizer:
        return Tokenizer(text, self.preprocessor)
