"""Document query engine.

Parses markdown into a flat sequence of generic nodes with markdown-it-py
and evaluates queries over them. Query results are plain dictionaries;
``mx_runner.sections`` turns them into typed sections.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.token import Token

from .errors import MarkdownError, MxError, QueryError
from .logging import get_logger

log = get_logger("query")

Record = dict[str, Any]

HEADING = "heading"
CODE = "code"
TEXT = "text"


@dataclass(frozen=True)
class Node:
    """A block-level markdown element.

    Attributes:
        kind: "heading", "code" or "text".
        value: Plain heading text, code body, or paragraph text.
        depth: Heading depth (1-6), 0 for other kinds.
        lang: Code fence language, empty when undeclared.
    """

    kind: str
    value: str = ""
    depth: int = 0
    lang: str = ""


def _inline_text(token: Token | None) -> str:
    """Plain text of an inline token, markup stripped."""
    if token is None or token.type != "inline":
        return ""
    if not token.children:
        return token.content
    parts: list[str] = []
    for child in token.children:
        if child.type in ("text", "code_inline", "html_inline"):
            parts.append(child.content)
        elif child.type in ("softbreak", "hardbreak"):
            parts.append(" ")
        elif child.type == "image":
            parts.append(child.content)
    return "".join(parts).strip()


def _fence_lang(info: str) -> str:
    words = info.split()
    return words[0] if words else ""


def _code_body(content: str) -> str:
    # The closing fence line contributes one newline that is not part of the code
    return content[:-1] if content.endswith("\n") else content


def parse_markdown(text: str) -> list[Node]:
    """Parse markdown into headings, code blocks and paragraphs, in order.

    Raises:
        MarkdownError: If the input is not text or cannot be parsed.
    """
    if not isinstance(text, str):
        raise MarkdownError(f"Failed to parse markdown: expected text, got {type(text).__name__}")

    try:
        tokens = MarkdownIt("commonmark").parse(text)
    except Exception as e:
        raise MarkdownError(f"Failed to parse markdown: {e}") from e

    nodes: list[Node] = []
    for i, token in enumerate(tokens):
        following = tokens[i + 1] if i + 1 < len(tokens) else None
        if token.type == "heading_open":
            nodes.append(Node(HEADING, _inline_text(following), depth=int(token.tag[1])))
        elif token.type == "fence":
            nodes.append(Node(CODE, _code_body(token.content), lang=_fence_lang(token.info)))
        elif token.type == "code_block":
            nodes.append(Node(CODE, _code_body(token.content)))
        elif token.type == "paragraph_open":
            nodes.append(Node(TEXT, _inline_text(following)))
    return nodes


@dataclass(frozen=True)
class SectionsWithCode:
    """Group nodes into one record per heading at ``level``.

    A section runs until the next heading at the same or a shallower depth,
    so code under deeper sub-headings stays with its task. Headings before
    the first task heading are ignored.
    """

    level: int

    def evaluate(self, nodes: Sequence[Node]) -> list[Record]:
        records: list[Record] = []
        current: Record | None = None
        description: list[str] = []
        in_description = False

        def close() -> None:
            if current is not None:
                text = "\n".join(description).strip()
                if text:
                    current["description"] = text

        for node in nodes:
            if node.kind == HEADING:
                if node.depth <= self.level:
                    close()
                    current = None
                    description = []
                if node.depth == self.level:
                    current = {"title": node.value, "level": node.depth, "codes": []}
                    records.append(current)
                    in_description = True
                else:
                    in_description = False
                continue

            if current is None:
                continue
            if node.kind == CODE:
                current["codes"].append({"lang": node.lang, "code": node.value})
                in_description = False
            elif node.kind == TEXT and in_description:
                description.append(node.value)

        close()
        return records


def sections_with_code(level: int) -> SectionsWithCode:
    """Build the section query for a heading level.

    Raises:
        QueryError: If ``level`` is not a heading depth.
    """
    if isinstance(level, bool) or not isinstance(level, int) or not 1 <= level <= 6:
        raise QueryError(f"Failed to build section query: invalid heading level {level!r}")
    return SectionsWithCode(level)


class DocumentQueryEngine:
    """Parses documents and evaluates queries over their nodes."""

    def parse(self, text: str) -> list[Node]:
        return parse_markdown(text)

    def eval(self, query: SectionsWithCode, nodes: Sequence[Node]) -> list[Record]:
        """Evaluate ``query`` over ``nodes``.

        Raises:
            QueryError: If evaluation fails.
        """
        try:
            records = query.evaluate(nodes)
        except MxError:
            raise
        except Exception as e:
            raise QueryError(f"Failed to execute query: {e}") from e
        log.debug("query evaluated", query=type(query).__name__, records=len(records))
        return records
