"""
Structured renderer for streamed assistant replies.

``render`` is a pure function of the whole reply so far. It is re-run from
scratch after every fragment; nothing is patched incrementally.
"""
from typing import List, Optional
import re

from .document import (
    BulletList,
    Heading,
    InlineSpan,
    LabeledLine,
    Paragraph,
    Row,
    Section,
    Spans,
    StructuredDocument,
    Unit,
)

_LABEL = r"[^\W\d_](?:[^\W\d_]|[ .,'()&/-])*?"

# "Mumbai — Now:" / "- Delhi – Tomorrow: 32C"
DASH_TITLE_RE = re.compile(rf"^-?\s*(?P<label>{_LABEL})\s*[—–]\s*(?P<rest>.*)$")
# "Delhi Tomorrow:" with nothing after the colon
COLON_TITLE_RE = re.compile(rf"^-?\s*(?P<label>{_LABEL})\s*:\s*$")

ROW_LABEL_RE = re.compile(r"^\s*(?P<label>[^\W\d_](?:[^\W\d_]|[ ()/'-])*?)\s*:\s*(?P<rest>.*)$")
BULLET_RE = re.compile(r"^-(?:\s+|$)")
LETTER_ITEM_RE = re.compile(r"^(?P<marker>[a-z]\.)(?:\s+(?P<rest>.*))?$")
EMPHASIS_RE = re.compile(r"(\*\*[^*]+\*\*)")
BLANK_RUN_RE = re.compile(r"\n{3,}")


def parse_inline(text: str) -> Spans:
    """Split text into plain and ``**emphasized**`` spans (non-nesting)."""
    spans = []
    for part in EMPHASIS_RE.split(text):
        if not part:
            continue
        if EMPHASIS_RE.fullmatch(part):
            spans.append(InlineSpan(part[2:-2], emphasized=True))
        else:
            spans.append(InlineSpan(part))
    return tuple(spans)


def normalize(text: str) -> List[str]:
    text = text.replace("\r", "")
    text = BLANK_RUN_RE.sub("\n\n", text)
    return text.split("\n")


class _OpenSection:
    def __init__(self, title: str, qualifier: Optional[str] = None):
        self.title = title
        self.qualifier = qualifier
        self.rows: List[str] = []

    def close(self) -> Section:
        return Section(
            title=self.title,
            rows=tuple(_build_row(text) for text in _clean_rows(self.rows)),
            qualifier=self.qualifier,
        )


def _match_title(line: str) -> Optional[_OpenSection]:
    match = DASH_TITLE_RE.match(line)
    if match:
        section = _OpenSection(" ".join(match.group("label").split()))
        rest = match.group("rest").strip()
        if rest.endswith(":") and ":" not in rest[:-1]:
            section.qualifier = rest[:-1].strip() or None
        elif rest:
            section.rows.append(rest)
        return section
    match = COLON_TITLE_RE.match(line)
    if match:
        return _OpenSection(" ".join(match.group("label").split()))
    return None


def _clean_rows(rows: List[str]) -> List[str]:
    cleaned = (row.replace("\\n", " ").strip() for row in rows)
    return [row for row in cleaned if row]


def _build_row(text: str) -> Row:
    match = ROW_LABEL_RE.match(text)
    if match:
        return Row(spans=parse_inline(match.group("rest")), label=match.group("label").strip())
    return Row(spans=parse_inline(text))


def _parse_flat(lines: List[str]) -> List[Unit]:
    units: List[Unit] = []
    items: List[Spans] = []

    def flush_list():
        if items:
            units.append(BulletList(tuple(items)))
            items.clear()

    for line in lines:
        stripped = line.strip()
        if not stripped:
            flush_list()
            continue
        if len(stripped) > 4 and stripped.startswith("**") and stripped.endswith("**") and "**" not in stripped[2:-2]:
            flush_list()
            units.append(Heading(stripped[2:-2].strip()))
            continue
        letter = LETTER_ITEM_RE.match(stripped)
        if letter:
            flush_list()
            units.append(LabeledLine(letter.group("marker"), parse_inline(letter.group("rest") or "")))
            continue
        if stripped.startswith("- "):
            items.append(parse_inline(stripped[2:].strip()))
            continue
        flush_list()
        units.append(Paragraph(parse_inline(stripped)))

    flush_list()
    return units


def render(full_text: str) -> StructuredDocument:
    """Derive the display structure of the reply received so far."""
    preamble: List[str] = []
    sections: List[Section] = []
    current: Optional[_OpenSection] = None

    for raw in normalize(full_text):
        line = raw.strip()
        if current is None and not line:
            preamble.append(raw)
            continue
        if not line:
            continue
        opened = _match_title(line)
        if opened is not None:
            if current is not None:
                sections.append(current.close())
            current = opened
        elif current is not None:
            current.rows.append(BULLET_RE.sub("", line))
        else:
            preamble.append(raw)

    if current is not None:
        sections.append(current.close())

    # Text ahead of the first section keeps its flat shape
    return StructuredDocument(units=tuple(_parse_flat(preamble)) + tuple(sections))
