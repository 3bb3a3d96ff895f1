"""Tests for the injection engine."""

import re

import pytest

from splicekit.engine import (
    InsertionPoint,
    MatchPosition,
    apply,
    insert_content_at_positions,
    is_skipped,
)
from splicekit.exceptions import InvalidPatternError
from splicekit.models import (
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

STRUCTS = """
pub struct Hello1 {}
pub struct Hello2 {}
"""


def directive(placement, content="// New content", **kwargs) -> InjectionDirective:
    """Build a directive targeting a dummy file."""
    return InjectionDirective(
        target_file="src/lib.rs",
        content=content,
        placement=placement,
        **kwargs,
    )


class TestInsertContentAtPositions:
    """Test line-granular and inline insertion around anchors."""

    @pytest.mark.parametrize(
        ("position", "point", "expected"),
        [
            (
                MatchPosition.ALL,
                InsertionPoint.AFTER,
                "\npub struct Hello1 {}\n// New content\npub struct Hello2 {}\n// New content\n",
            ),
            (
                MatchPosition.ALL,
                InsertionPoint.BEFORE,
                "\n// New content\npub struct Hello1 {}\n// New content\npub struct Hello2 {}\n",
            ),
            (
                MatchPosition.FIRST,
                InsertionPoint.AFTER,
                "\npub struct Hello1 {}\n// New content\npub struct Hello2 {}\n",
            ),
            (
                MatchPosition.FIRST,
                InsertionPoint.BEFORE,
                "\n// New content\npub struct Hello1 {}\npub struct Hello2 {}\n",
            ),
            (
                MatchPosition.LAST,
                InsertionPoint.BEFORE,
                "\npub struct Hello1 {}\n// New content\npub struct Hello2 {}\n",
            ),
            (
                MatchPosition.LAST,
                InsertionPoint.AFTER,
                "\npub struct Hello1 {}\npub struct Hello2 {}\n// New content\n",
            ),
        ],
    )
    def test_new_line_insertion(
        self,
        position: MatchPosition,
        point: InsertionPoint,
        expected: str,
    ) -> None:
        """Test content lands on its own line next to the chosen anchors."""
        result = insert_content_at_positions(
            STRUCTS,
            "// New content",
            False,
            re.compile("Hello"),
            position,
            point,
        )
        assert result == expected

    @pytest.mark.parametrize(
        ("position", "point", "expected"),
        [
            (
                MatchPosition.FIRST,
                InsertionPoint.BEFORE,
                "\npub struct HelloWorld1 {}\npub struct World2 {}\n",
            ),
            (
                MatchPosition.LAST,
                InsertionPoint.BEFORE,
                "\npub struct World1 {}\npub struct HelloWorld2 {}\n",
            ),
            (
                MatchPosition.ALL,
                InsertionPoint.BEFORE,
                "\npub struct HelloWorld1 {}\npub struct HelloWorld2 {}\n",
            ),
        ],
    )
    def test_inline_before(
        self,
        position: MatchPosition,
        point: InsertionPoint,
        expected: str,
    ) -> None:
        """Test inline content is placed at the start of the match."""
        text = "\npub struct World1 {}\npub struct World2 {}\n"
        result = insert_content_at_positions(
            text, "Hello", True, re.compile("World"), position, point,
        )
        assert result == expected

    @pytest.mark.parametrize(
        ("position", "expected"),
        [
            (MatchPosition.FIRST, "\npub struct HelloWorld1 {}\npub struct Hello2 {}\n"),
            (MatchPosition.LAST, "\npub struct Hello1 {}\npub struct HelloWorld2 {}\n"),
            (MatchPosition.ALL, "\npub struct HelloWorld1 {}\npub struct HelloWorld2 {}\n"),
        ],
    )
    def test_inline_after(self, position: MatchPosition, expected: str) -> None:
        """Test inline content is placed at the end of the match."""
        result = insert_content_at_positions(
            STRUCTS, "World", True, re.compile("Hello"), position, InsertionPoint.AFTER,
        )
        assert result == expected

    def test_before_first_without_trailing_newline(self) -> None:
        """Test a text without a final newline does not gain one."""
        text = "\npub struct Hello2 {\n}"
        result = insert_content_at_positions(
            text,
            "// New content",
            False,
            re.compile("Hello"),
            MatchPosition.FIRST,
            InsertionPoint.BEFORE,
        )
        assert result == "\n// New content\npub struct Hello2 {\n}"

    def test_no_match_returns_input(self) -> None:
        """Test an anchor that matches nothing leaves the text alone."""
        result = insert_content_at_positions(
            STRUCTS,
            "x",
            False,
            re.compile("Goodbye"),
            MatchPosition.ALL,
            InsertionPoint.AFTER,
        )
        assert result is STRUCTS


class TestApplyPlacements:
    """Test every placement variant through ``apply``."""

    def test_prepend(self) -> None:
        """Test prepend adds a new first line."""
        assert apply("a\nb\n", directive(Prepend(), "top")) == "top\na\nb\n"

    def test_append(self) -> None:
        """Test append adds a new last line before the trailing newline."""
        assert apply("a\nb\n", directive(Append(), "bottom")) == "a\nb\nbottom\n"

    def test_append_without_trailing_newline(self) -> None:
        """Test append keeps the absence of a trailing newline."""
        assert apply("a\nb", directive(Append(), "bottom")) == "a\nb\nbottom"

    def test_prepend_and_append_on_empty_text(self) -> None:
        """Test empty files receive just the content."""
        assert apply("", directive(Prepend(), "only")) == "only"
        assert apply("", directive(Append(), "only")) == "only"

    def test_before_uses_first_match(self) -> None:
        """Test Before anchors to the first matching line."""
        result = apply(STRUCTS, directive(Before(pattern="Hello")))
        assert result == "\n// New content\npub struct Hello1 {}\npub struct Hello2 {}\n"

    def test_before_last_uses_last_match(self) -> None:
        """Test BeforeLast anchors to the last matching line."""
        result = apply(STRUCTS, directive(BeforeLast(pattern="Hello")))
        assert result == "\npub struct Hello1 {}\n// New content\npub struct Hello2 {}\n"

    def test_after_last_uses_last_match(self) -> None:
        """Test AfterLast anchors to the last matching line."""
        result = apply(STRUCTS, directive(AfterLast(pattern="Hello")))
        assert result == "\npub struct Hello1 {}\npub struct Hello2 {}\n// New content\n"

    def test_inline_after(self) -> None:
        """Test inline after appends within the matched line."""
        result = apply("Hello\n", directive(After(pattern="Hello"), "World", inline=True))
        assert result == "HelloWorld\n"

    def test_block_after(self) -> None:
        """Test non-inline after inserts a separate line."""
        result = apply("Hello\n", directive(After(pattern="Hello"), "World"))
        assert result == "Hello\nWorld\n"

    def test_multiline_content_inserted_as_block(self) -> None:
        """Test content spanning several lines stays together."""
        text = "fn main() {\n}\n"
        result = apply(text, directive(Before(pattern=r"^\}"), "    a();\n    b();"))
        assert result == "fn main() {\n    a();\n    b();\n}\n"

    def test_escaped_pattern_characters(self) -> None:
        """Test authors can anchor on escaped regex metacharacters."""
        text = "routes = [\n]\n"
        result = apply(text, directive(Before(pattern=r"^\]"), '    "users",'))
        assert result == 'routes = [\n    "users",\n]\n'

    def test_remove_lines(self) -> None:
        """Test every matching line is deleted and content is ignored."""
        text = "keep 1\nDelete this line\nkeep 2\n"
        result = apply(text, directive(RemoveLines(pattern="Delete this line"), ""))
        assert result == "keep 1\nkeep 2\n"

    def test_remove_lines_all_matches(self) -> None:
        """Test RemoveLines is not limited to the first match."""
        text = "x = 1  # debug\ny = 2\nz = 3  # debug\n"
        result = apply(text, directive(RemoveLines(pattern="# debug"), "ignored"))
        assert result == "y = 2\n"

    def test_replace_changes_first_only(self) -> None:
        """Test Replace substitutes exactly the first occurrence."""
        text = "foo bar foo\nfoo\n"
        result = apply(text, directive(Replace(pattern="foo"), "baz"))
        assert result == "baz bar foo\nfoo\n"
        assert result.count("foo") == 2

    def test_replace_all_changes_every_occurrence(self) -> None:
        """Test ReplaceAll substitutes all occurrences."""
        text = "foo bar foo\nfoo\n"
        result = apply(text, directive(ReplaceAll(pattern="foo"), "baz"))
        assert result == "baz bar baz\nbaz\n"

    def test_replace_spans_lines(self) -> None:
        """Test Replace works across the whole text, not per line."""
        text = "start\n// BEGIN\nold\n// END\nend\n"
        result = apply(text, directive(Replace(pattern=r"// BEGIN\n.*?\n// END"), "new"))
        assert result == "start\nnew\nend\n"

    def test_replace_content_is_literal(self) -> None:
        """Test backslashes in content are not treated as group references."""
        result = apply("path = X\n", directive(Replace(pattern="X"), r"C:\new\1"))
        assert result == "path = C:\\new\\1\n"


class TestApplyInvariants:
    """Test properties that hold across placements."""

    @pytest.mark.parametrize(
        "placement",
        [
            Before(pattern="nonexistent"),
            BeforeLast(pattern="nonexistent"),
            BeforeAll(pattern="nonexistent"),
            After(pattern="nonexistent"),
            AfterLast(pattern="nonexistent"),
            AfterAll(pattern="nonexistent"),
            Replace(pattern="nonexistent"),
            ReplaceAll(pattern="nonexistent"),
            RemoveLines(pattern="nonexistent"),
        ],
    )
    def test_absent_anchor_is_noop(self, placement) -> None:
        """Test anchors that match nothing return the text unchanged."""
        assert apply(STRUCTS, directive(placement)) == STRUCTS

    def test_skip_if_guard_is_idempotent(self) -> None:
        """Test applying a guarded directive twice equals applying it once."""
        guarded = directive(
            After(pattern="^mod "),
            "mod users;",
            skip_if="mod users;",
        )
        once = apply("mod posts;\n", guarded)
        twice = apply(once, guarded)
        assert once == "mod posts;\nmod users;\n"
        assert twice == once

    def test_skip_if_applies_to_every_variant(self) -> None:
        """Test skip_if short-circuits even whole-text replacements."""
        guarded = directive(ReplaceAll(pattern="a"), "b", skip_if="marker")
        assert apply("a a marker\n", guarded) == "a a marker\n"

    def test_is_skipped(self) -> None:
        """Test the guard helper mirrors apply's decision."""
        guarded = directive(Append(), "x", skip_if="x")
        assert is_skipped("a\nx\n", guarded)
        assert not is_skipped("a\n", guarded)
        assert not is_skipped("a\n", directive(Append(), "x"))

    @pytest.mark.parametrize("placement_cls", [BeforeAll, AfterAll])
    def test_all_variants_anchor_to_original_text(self, placement_cls) -> None:
        """Test inserted content that itself matches is never re-anchored."""
        text = "item\nother\nitem\nitem\n"
        result = apply(text, directive(placement_cls(pattern="item"), "item copy"))
        lines = result.splitlines()
        assert lines.count("item copy") == 3
        assert [line for line in lines if line != "item copy"] == text.splitlines()

    def test_crlf_is_preserved(self) -> None:
        """Test Windows line endings survive an injection."""
        result = apply("a\r\nb\r\n", directive(After(pattern="^a$"), "x"))
        assert result == "a\r\nx\r\nb\r\n"

    def test_crlf_multiline_content(self) -> None:
        """Test multi-line content follows a CRLF file's line endings."""
        result = apply("a\r\nb\r\n", directive(Before(pattern="^b$"), "x\ny"))
        assert result == "a\r\nx\r\ny\r\nb\r\n"

    @pytest.mark.parametrize(
        ("placement", "content", "expected"),
        [
            (After(pattern="^a$"), "new", "a\r\nnew\r\nb\nc\n"),
            (Before(pattern="^b$"), "new", "a\r\nnew\nb\nc\n"),
            (Append(), "new", "a\r\nb\nc\nnew\n"),
            (Prepend(), "new", "new\r\na\r\nb\nc\n"),
            (RemoveLines(pattern="^b$"), "", "a\r\nc\n"),
            (ReplaceAll(pattern="c"), "z", "a\r\nb\nz\n"),
        ],
    )
    def test_mixed_line_endings_untouched(self, placement, content, expected) -> None:
        """Test lines a directive does not touch keep their own terminators."""
        assert apply("a\r\nb\nc\n", directive(placement, content)) == expected

    def test_after_unterminated_last_line(self) -> None:
        """Test inserting after a last line without a newline keeps it unterminated."""
        result = apply("a\r\nb", directive(After(pattern="^b$"), "x"))
        assert result == "a\r\nb\r\nx"

    def test_remove_unterminated_last_line(self) -> None:
        """Test removing the last line keeps the text unterminated."""
        assert apply("a\nb", directive(RemoveLines(pattern="^b$"), "")) == "a"

    @pytest.mark.parametrize(
        "placement",
        [
            Before(pattern="("),
            RemoveLines(pattern="[unclosed"),
            Replace(pattern="*bad"),
        ],
    )
    def test_invalid_pattern_raises(self, placement) -> None:
        """Test a pattern that does not compile is an error, not a skip."""
        with pytest.raises(InvalidPatternError) as exc_info:
            apply(STRUCTS, directive(placement))
        assert exc_info.value.details["pattern"] == placement.pattern

    def test_invalid_skip_if_raises(self) -> None:
        """Test a broken guard pattern is reported too."""
        with pytest.raises(InvalidPatternError):
            apply(STRUCTS, directive(Append(), skip_if="(?P<"))
