from dataclasses import dataclass, field
from typing import Iterator, List, Optional

# Sequence elements and sequences. Anything with a label and an index can be trained;
# VocabWord is the element used for text.


@dataclass
class VocabWord:
    """One vocabulary element.

    Attributes:
        label (str): Unique identity of the element; all queries go through it.
        frequency (float): Occurrence count accumulated during vocabulary construction.
        index (int): Row in the lookup table, -1 until the vocabulary assigns one.
        codes (List[int]): Huffman code (0/1 per tree level) for hierarchical softmax.
        points (List[int]): Inner-node ids along the Huffman path, same length as codes.
        is_label (bool): True for sequence labels (trained by sequence algorithms only).
    """

    label: str
    frequency: float = 1.0
    index: int = -1
    codes: List[int] = field(default_factory=list)
    points: List[int] = field(default_factory=list)
    is_label: bool = False

    def increment(self, by: float = 1.0) -> None:
        self.frequency += by


class Sequence:
    """Ordered elements derived from one input unit (one sentence here).

    Attributes:
        elements (List[VocabWord]): Elements in order of appearance.
        sequence_id (int): Running id assigned by the transformer.
        label (Optional[VocabWord]): Sequence label element, if the source provides one.
    """

    def __init__(
        self,
        elements: Optional[List[VocabWord]] = None,
        sequence_id: int = 0,
        label: Optional[VocabWord] = None,
    ):
        self.elements = list(elements) if elements is not None else []
        self.sequence_id = sequence_id
        self.label = label

    def add_element(self, element: VocabWord) -> None:
        self.elements.append(element)

    def labels(self) -> List[str]:
        return [e.label for e in self.elements]

    def is_empty(self) -> bool:
        return not self.elements

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[VocabWord]:
        return iter(self.elements)

    def __repr__(self) -> str:
        label = self.label.label if self.label is not None else None
        return f"Sequence(id={self.sequence_id}, label={label!r}, elements={self.labels()!r})"
