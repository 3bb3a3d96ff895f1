"""Injection engine: compute new file text from current text and a directive.

Everything here is a pure function of its arguments. Reading and writing the
target file is the orchestrator's job.
"""

from __future__ import annotations

import logging
import re
from enum import Enum

from .exceptions import InvalidPatternError
from .models import (
    After,
    AfterAll,
    AfterLast,
    Append,
    Before,
    BeforeAll,
    BeforeLast,
    InjectionDirective,
    Prepend,
    RemoveLines,
    Replace,
    ReplaceAll,
)

logger = logging.getLogger(__name__)


class MatchPosition(str, Enum):
    """Which matching lines an anchored insertion acts on."""

    FIRST = "first"
    LAST = "last"
    ALL = "all"


class InsertionPoint(str, Enum):
    """Side of the anchor that receives the content."""

    BEFORE = "before"
    AFTER = "after"


_INSERTIONS: dict[type, tuple[MatchPosition, InsertionPoint]] = {
    Before: (MatchPosition.FIRST, InsertionPoint.BEFORE),
    BeforeLast: (MatchPosition.LAST, InsertionPoint.BEFORE),
    BeforeAll: (MatchPosition.ALL, InsertionPoint.BEFORE),
    After: (MatchPosition.FIRST, InsertionPoint.AFTER),
    AfterLast: (MatchPosition.LAST, InsertionPoint.AFTER),
    AfterAll: (MatchPosition.ALL, InsertionPoint.AFTER),
}


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile an author-supplied regex.

    Raises:
        InvalidPatternError: If the pattern is not a valid regular expression
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        msg = f"Invalid pattern {pattern!r}: {e}"
        raise InvalidPatternError(msg, details={"pattern": pattern}) from e


def split_lines(text: str) -> tuple[list[str], list[str]]:
    """Split text into line bodies and the terminator each line carried.

    Terminators are ``"\\r\\n"`` or ``"\\n"``; the last line's is empty when
    the text does not end with a newline.
    """
    if not text:
        return [], []
    lines: list[str] = []
    endings: list[str] = []
    parts = text.split("\n")
    for part in parts[:-1]:
        if part.endswith("\r"):
            lines.append(part[:-1])
            endings.append("\r\n")
        else:
            lines.append(part)
            endings.append("\n")
    if parts[-1]:
        lines.append(parts[-1])
        endings.append("")
    return lines, endings


def join_lines(lines: list[str], endings: list[str]) -> str:
    return "".join(line + ending for line, ending in zip(lines, endings))


def default_ending(endings: list[str]) -> str:
    """Terminator for lines that have none of their own: the file's first."""
    return next((ending for ending in endings if ending), "\n")


def fit_content(content: str, ending: str) -> str:
    """Give multi-line content the terminator of the line it lands next to."""
    return content.replace("\r\n", "\n").replace("\n", ending)


def is_uniform_crlf(text: str) -> bool:
    """Whether every newline in ``text`` is part of a ``\\r\\n`` pair."""
    return "\r\n" in text and text.count("\r\n") == text.count("\n")


def matching_indexes(
    lines: list[str],
    regex: re.Pattern[str],
    position: MatchPosition,
) -> list[int]:
    """Indexes of the lines an insertion should act on, in ascending order."""
    hits = [i for i, line in enumerate(lines) if regex.search(line)]
    if not hits:
        return []
    if position == MatchPosition.FIRST:
        return hits[:1]
    if position == MatchPosition.LAST:
        return hits[-1:]
    return hits


def insert_content_at_positions(
    text: str,
    content: str,
    inline: bool,
    regex: re.Pattern[str],
    position: MatchPosition,
    point: InsertionPoint,
) -> str:
    """Insert ``content`` next to the selected lines matching ``regex``.

    Matches are located once in the unmodified text, so content inserted by
    this call is never itself treated as an anchor. Every existing line keeps
    its own terminator; a new line takes the terminator of its anchor.

    Args:
        text: Current file text
        content: Fragment to insert
        inline: Insert within the matched line rather than as a new line
        regex: Compiled anchor pattern
        position: Which matching lines to use
        point: Before or after the anchor

    Returns:
        Text with content inserted, or ``text`` itself when nothing matches
    """
    lines, endings = split_lines(text)
    targets = matching_indexes(lines, regex, position)
    if not targets:
        logger.debug("Anchor %r matched nothing", regex.pattern)
        return text

    eol = default_ending(endings)
    if inline:
        for i in targets:
            match = regex.search(lines[i])
            cut = match.start() if point == InsertionPoint.BEFORE else match.end()
            lines[i] = lines[i][:cut] + fit_content(content, endings[i] or eol) + lines[i][cut:]
        return join_lines(lines, endings)

    # Walk backwards so earlier indexes stay valid after each insert.
    for i in reversed(targets):
        ending = endings[i]
        if point == InsertionPoint.BEFORE:
            lines.insert(i, fit_content(content, ending or eol))
            endings.insert(i, ending or eol)
        else:
            # The anchor gains a terminator if it was the unterminated last line.
            endings[i] = ending or eol
            lines.insert(i + 1, fit_content(content, ending or eol))
            endings.insert(i + 1, ending)
    return join_lines(lines, endings)


def _prepend(text: str, content: str) -> str:
    lines, endings = split_lines(text)
    if not lines:
        return content
    ending = endings[0] or default_ending(endings)
    return fit_content(content, ending) + ending + text


def _append(text: str, content: str) -> str:
    lines, endings = split_lines(text)
    if not lines:
        return content
    if endings[-1]:
        return text + fit_content(content, endings[-1]) + endings[-1]
    eol = default_ending(endings)
    return text + eol + fit_content(content, eol)


def _remove_lines(text: str, regex: re.Pattern[str]) -> str:
    lines, endings = split_lines(text)
    kept = [
        (line, ending)
        for line, ending in zip(lines, endings)
        if not regex.search(line)
    ]
    if len(kept) == len(lines):
        return text
    if kept and not endings[-1]:
        kept[-1] = (kept[-1][0], "")
    return "".join(line + ending for line, ending in kept)


def _replace(text: str, content: str, regex: re.Pattern[str], count: int) -> str:
    # Only a uniformly CRLF file is matched with plain "\n" line breaks.
    crlf = is_uniform_crlf(text)
    if crlf:
        text = text.replace("\r\n", "\n")
    # Literal substitution: backslashes in content are not group references.
    result = regex.sub(lambda _m: content, text, count=count)
    return result.replace("\n", "\r\n") if crlf else result


def apply(current_text: str, directive: InjectionDirective) -> str:
    """Apply one injection directive to ``current_text``.

    The result is deterministic. Anchors that match nothing and a matching
    ``skip_if`` both return the input unchanged. Lines the directive does not
    touch keep their original terminators, even in files mixing ``\\n`` and
    ``\\r\\n``.

    Args:
        current_text: Current contents of the target file
        directive: Injection directive to apply

    Returns:
        New contents of the target file

    Raises:
        InvalidPatternError: If the anchor or guard pattern does not compile
    """
    if is_skipped(current_text, directive):
        logger.debug("skip_if %r matched, leaving text as is", directive.skip_if)
        return current_text

    placement = directive.placement
    content = directive.content
    text = current_text

    if isinstance(placement, Prepend):
        result = _prepend(text, content)
    elif isinstance(placement, Append):
        result = _append(text, content)
    elif type(placement) in _INSERTIONS:
        position, point = _INSERTIONS[type(placement)]
        result = insert_content_at_positions(
            text,
            content,
            directive.inline,
            compile_pattern(placement.pattern),
            position,
            point,
        )
    elif isinstance(placement, RemoveLines):
        result = _remove_lines(text, compile_pattern(placement.pattern))
    elif isinstance(placement, Replace):
        result = _replace(text, content, compile_pattern(placement.pattern), count=1)
    elif isinstance(placement, ReplaceAll):
        result = _replace(text, content, compile_pattern(placement.pattern), count=0)
    else:
        msg = f"Unsupported placement: {placement!r}"
        raise TypeError(msg)

    return current_text if result == current_text else result


def is_skipped(current_text: str, directive: InjectionDirective) -> bool:
    """Whether the directive's ``skip_if`` guard matches ``current_text``.

    The guard sees ``\\r\\n`` line breaks as plain ``\\n``.
    """
    if directive.skip_if is None:
        return False
    return bool(compile_pattern(directive.skip_if).search(current_text.replace("\r\n", "\n")))
