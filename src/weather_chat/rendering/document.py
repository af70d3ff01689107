"""
Structured document produced from an assistant reply.
"""
from dataclasses import dataclass
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class InlineSpan:
    text: str
    emphasized: bool = False


Spans = Tuple[InlineSpan, ...]


@dataclass(frozen=True)
class Row:
    """One row of a section, optionally split into a bold label and the rest."""
    spans: Spans
    label: Optional[str] = None


@dataclass(frozen=True)
class Section:
    """A titled group of rows, e.g. one city's forecast."""
    title: str
    rows: Tuple[Row, ...] = ()
    qualifier: Optional[str] = None


@dataclass(frozen=True)
class Heading:
    text: str


@dataclass(frozen=True)
class Paragraph:
    spans: Spans


@dataclass(frozen=True)
class BulletList:
    """A run of consecutive ``- `` items."""
    items: Tuple[Spans, ...]


@dataclass(frozen=True)
class LabeledLine:
    """A lettered sub-item such as ``a. Light rain``."""
    marker: str
    spans: Spans


Unit = Union[Section, Heading, Paragraph, BulletList, LabeledLine]


@dataclass(frozen=True)
class StructuredDocument:
    units: Tuple[Unit, ...] = ()

    @property
    def sections(self) -> Tuple[Section, ...]:
        return tuple(unit for unit in self.units if isinstance(unit, Section))

    @property
    def is_empty(self) -> bool:
        return not self.units
