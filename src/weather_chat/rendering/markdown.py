"""Markdown presentation of a StructuredDocument for chat bubbles."""
from typing import List

from .document import (
    BulletList,
    Heading,
    LabeledLine,
    Paragraph,
    Section,
    Spans,
    StructuredDocument,
    Unit,
)


def spans_to_markdown(spans: Spans) -> str:
    return "".join(f"**{span.text}**" if span.emphasized else span.text for span in spans)


def _section_to_markdown(section: Section) -> str:
    title = f"**{section.title}**"
    if section.qualifier:
        title += f" · _{section.qualifier}_"
    lines = [title, ""]
    for row in section.rows:
        text = spans_to_markdown(row.spans)
        if row.label:
            text = f"**{row.label}:** {text}".rstrip()
        lines.append(f"- {text}")
    return "\n".join(lines)


def _unit_to_markdown(unit: Unit) -> str:
    if isinstance(unit, Section):
        return _section_to_markdown(unit)
    if isinstance(unit, Heading):
        return f"### {unit.text}"
    if isinstance(unit, BulletList):
        return "\n".join(f"- {spans_to_markdown(item)}" for item in unit.items)
    if isinstance(unit, LabeledLine):
        return f"&nbsp;&nbsp;&nbsp;&nbsp;**{unit.marker}** {spans_to_markdown(unit.spans)}".rstrip()
    if isinstance(unit, Paragraph):
        return spans_to_markdown(unit.spans)
    raise TypeError(f"Unsupported unit: {type(unit).__name__}")


def to_markdown(document: StructuredDocument) -> str:
    """Render the document as Markdown, one blank line between units."""
    blocks: List[str] = [_unit_to_markdown(unit) for unit in document.units]
    return "\n\n".join(block for block in blocks if block)
