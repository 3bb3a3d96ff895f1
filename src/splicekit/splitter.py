"""Document splitter: carve rendered text into (metadata, body) documents."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

from .exceptions import MalformedDocumentError, SpliceKitError
from .frontmatter import decode as decode_frontmatter
from .models import Document, Metadata

logger = logging.getLogger(__name__)

DELIMITER = "---"

Decoder = Callable[[str], Metadata]


def is_delimiter(line: str) -> bool:
    """Whether ``line`` is a document delimiter (trailing whitespace allowed)."""
    return line.rstrip() == DELIMITER


def normalize_body(lines: list[str]) -> str:
    """Drop surrounding blank lines and end a non-empty body with one newline."""
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    if start == end:
        return ""
    return "\n".join(lines[start:end]) + "\n"


def split(rendered: str, decode: Decoder = decode_frontmatter) -> Iterator[Document]:
    """Lazily split rendered template output into documents.

    Each document is a metadata block between two delimiter lines followed by
    a body running up to the next delimiter or the end of the text. A
    delimiter is a line holding only `---`, though trailing whitespace after
    it is tolerated. The first document may omit its opening delimiter.

    Args:
        rendered: Fully rendered template text
        decode: Frontmatter decoder producing ``Metadata``

    Yields:
        Documents in the order they appear

    Raises:
        MalformedDocumentError: If a metadata block is never closed
        SchemaError: If a metadata block fails decoding
    """
    lines = rendered.replace("\r\n", "\n").split("\n")
    total = len(lines)
    pos = 0
    while pos < total and not lines[pos].strip():
        pos += 1
    if pos == total:
        return

    index = 0
    # A headerless first document starts its metadata right here.
    opened_at = pos
    if is_delimiter(lines[pos]):
        pos += 1

    while True:
        header_start = pos
        while pos < total and not is_delimiter(lines[pos]):
            pos += 1
        if pos == total:
            msg = f"Document {index} has no closing delimiter"
            raise MalformedDocumentError(
                msg,
                details={"document": index, "line": opened_at + 1},
            )
        header = "\n".join(lines[header_start:pos])
        pos += 1

        body_start = pos
        while pos < total and not is_delimiter(lines[pos]):
            pos += 1

        try:
            metadata = decode(header)
        except SpliceKitError as e:
            e.with_context(document=index, line=opened_at + 1)
            raise

        logger.debug("Split document %d targeting %s", index, metadata.target_path)
        yield Document(
            index=index,
            metadata=metadata,
            body=normalize_body(lines[body_start:pos]),
        )

        if pos == total:
            return
        index += 1
        opened_at = pos
        pos += 1
        # A dangling delimiter at the very end opens nothing.
        if all(not line.strip() for line in lines[pos:]):
            return
