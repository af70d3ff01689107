"""
Rendering of streamed assistant text into display structure.
"""
from .document import (
    BulletList,
    Heading,
    InlineSpan,
    LabeledLine,
    Paragraph,
    Row,
    Section,
    StructuredDocument,
)
from .renderer import render, parse_inline
from .markdown import to_markdown

__all__ = [
    "render",
    "parse_inline",
    "to_markdown",
    "StructuredDocument",
    "Section",
    "Row",
    "Heading",
    "Paragraph",
    "BulletList",
    "LabeledLine",
    "InlineSpan",
]
