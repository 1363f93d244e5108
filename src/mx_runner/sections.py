"""Typed task sections extracted from markdown documents."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from .logging import get_logger
from .query import DocumentQueryEngine, sections_with_code

log = get_logger("sections")


@dataclass(frozen=True)
class CodeBlock:
    """A fenced code block.

    Attributes:
        lang: Declared fence language; empty blocks are never executed.
        code: Block body without fence markers.
    """

    lang: str
    code: str


@dataclass
class Section:
    """A task: one heading and the code blocks nested under it.

    Attributes:
        title: Heading text.
        level: Heading depth (1-6).
        codes: Code blocks in document order.
        description: Prose after the heading, trimmed, if any.
    """

    title: str
    level: int
    codes: list[CodeBlock] = field(default_factory=list)
    description: str | None = None


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _as_level(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and 1 <= value <= 6:
        return value
    return None


def _code_blocks(value: Any) -> list[CodeBlock]:
    if not isinstance(value, list):
        return []
    return [
        CodeBlock(lang=_as_str(item.get("lang")) or "", code=_as_str(item.get("code")) or "")
        for item in value
        if isinstance(item, dict)
    ]


def section_from_record(record: Any, default_level: int) -> Section | None:
    """Convert a query record into a Section.

    Missing or mistyped fields fall back to defaults. Returns None when the
    record is not a mapping.
    """
    if not isinstance(record, dict):
        return None

    level = _as_level(record.get("level"))
    return Section(
        title=_as_str(record.get("title")) or "",
        level=level if level is not None else default_level,
        codes=_code_blocks(record.get("codes")),
        description=_as_str(record.get("description")),
    )


def sections_from_records(records: Iterable[Any], default_level: int) -> list[Section]:
    sections = []
    for record in records:
        section = section_from_record(record, default_level)
        if section is None:
            log.debug("dropping malformed record", record_type=type(record).__name__)
            continue
        sections.append(section)
    return sections


def extract_sections(
    markdown: str,
    heading_level: int,
    engine: DocumentQueryEngine | None = None,
) -> list[Section]:
    """Extract task sections from markdown text.

    Args:
        markdown: Raw document text.
        heading_level: Heading depth that marks a task.
        engine: Query engine to use (a fresh one by default).

    Returns:
        Sections in document order.

    Raises:
        MarkdownError: If the document cannot be parsed.
        QueryError: If the section query fails.
    """
    engine = engine or DocumentQueryEngine()
    query = sections_with_code(heading_level)
    nodes = engine.parse(markdown)
    records = engine.eval(query, nodes)
    return sections_from_records(records, heading_level)


def find_section(sections: Sequence[Section], title: str) -> Section | None:
    """First section whose title equals ``title`` exactly."""
    return next((s for s in sections if s.title == title), None)
