"""Core data models for SpliceKit generation and injection."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    """Immutable value object parsed once per render and then discarded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Prepend(_Frozen):
    """Insert content as the new first line."""

    kind: Literal["prepend"] = "prepend"


class Append(_Frozen):
    """Insert content as the new last line."""

    kind: Literal["append"] = "append"


class _Anchored(_Frozen):
    pattern: str = Field(..., description="Regular expression locating the anchor")


class Before(_Anchored):
    """Insert before the first line matching ``pattern``."""

    kind: Literal["before"] = "before"


class BeforeLast(_Anchored):
    """Insert before the last line matching ``pattern``."""

    kind: Literal["before_last"] = "before_last"


class BeforeAll(_Anchored):
    """Insert before every line matching ``pattern``."""

    kind: Literal["before_all"] = "before_all"


class After(_Anchored):
    """Insert after the first line matching ``pattern``."""

    kind: Literal["after"] = "after"


class AfterLast(_Anchored):
    """Insert after the last line matching ``pattern``."""

    kind: Literal["after_last"] = "after_last"


class AfterAll(_Anchored):
    """Insert after every line matching ``pattern``."""

    kind: Literal["after_all"] = "after_all"


class RemoveLines(_Anchored):
    """Delete every line matching ``pattern``."""

    kind: Literal["remove_lines"] = "remove_lines"


class Replace(_Anchored):
    """Substitute the first match of ``pattern`` across the whole text."""

    kind: Literal["replace"] = "replace"


class ReplaceAll(_Anchored):
    """Substitute every match of ``pattern`` across the whole text."""

    kind: Literal["replace_all"] = "replace_all"


Placement = Annotated[
    Union[
        Prepend,
        Append,
        Before,
        BeforeLast,
        BeforeAll,
        After,
        AfterLast,
        AfterAll,
        RemoveLines,
        Replace,
        ReplaceAll,
    ],
    Field(discriminator="kind"),
]

# Frontmatter keys that select a placement; bool keys take no pattern.
PLACEMENT_KEYS: dict[str, type[_Frozen]] = {
    "prepend": Prepend,
    "append": Append,
    "before": Before,
    "before_last": BeforeLast,
    "before_all": BeforeAll,
    "after": After,
    "after_last": AfterLast,
    "after_all": AfterAll,
    "remove_lines": RemoveLines,
    "replace": Replace,
    "replace_all": ReplaceAll,
}
FLAG_PLACEMENTS = frozenset({"prepend", "append"})


class InjectionDirective(_Frozen):
    """One injection rule: where to put ``content`` inside ``target_file``."""

    target_file: str = Field(..., alias="into", description="File to modify")
    content: str = Field(..., description="Fragment to insert or substitute")
    placement: Placement = Field(..., description="Anchor and placement variant")
    inline: bool = Field(
        default=False,
        description="Place content inside the matched line instead of on a new line",
    )
    skip_if: str | None = Field(
        default=None,
        description="Pattern that turns the directive into a no-op when it matches",
    )

    def patterns(self) -> list[str]:
        """Every regex the directive carries."""
        found = []
        pattern = getattr(self.placement, "pattern", None)
        if pattern is not None:
            found.append(pattern)
        if self.skip_if is not None:
            found.append(self.skip_if)
        return found


class Metadata(_Frozen):
    """Decoded frontmatter of one document."""

    target_path: str = Field(..., alias="to", description="Output path for the body")
    injections: tuple[InjectionDirective, ...] = Field(
        default=(),
        description="Injection directives applied in listed order",
    )
    skip_exists: bool = Field(
        default=False,
        description="Skip the document when target_path already exists",
    )
    skip_glob: str | None = Field(
        default=None,
        description="Skip the document when this glob matches any path",
    )
    message: str | None = Field(default=None, description="Message to report")

    @property
    def overwrite(self) -> bool:
        """Whether generating the body may replace an existing file."""
        return not self.skip_exists


class Document(_Frozen):
    """A (metadata, body) pair carved out of rendered text."""

    index: int
    metadata: Metadata
    body: str


class DocumentAction(str, Enum):
    """What happened to a document's body target."""

    ADDED = "added"
    OVERWRITTEN = "overwritten"
    SKIPPED = "skipped"


class InjectionAction(str, Enum):
    """What happened to an injection target."""

    INJECTED = "injected"
    UNCHANGED = "unchanged"
    SKIPPED_IF = "skipped_if"


class InjectionReport(BaseModel):
    """Outcome of a single injection directive."""

    index: int
    target_file: str
    action: InjectionAction


class DocumentReport(BaseModel):
    """Outcome of one document: body write plus its injections."""

    index: int
    target_path: str
    action: DocumentAction
    message: str | None = None
    injections: list[InjectionReport] = Field(default_factory=list)


class GenerationReport(BaseModel):
    """Everything a ``generate`` call did, in processing order."""

    documents: list[DocumentReport] = Field(default_factory=list)
    dry_run: bool = False

    @property
    def messages(self) -> list[str]:
        """Messages of documents that were not skipped."""
        return [
            d.message
            for d in self.documents
            if d.message and d.action != DocumentAction.SKIPPED
        ]

    @property
    def written_paths(self) -> list[str]:
        """Paths whose content was (or in a dry run would be) written."""
        paths: list[str] = []
        for doc in self.documents:
            if doc.action == DocumentAction.SKIPPED:
                continue
            paths.append(doc.target_path)
            paths.extend(
                inj.target_file
                for inj in doc.injections
                if inj.action == InjectionAction.INJECTED
            )
        return paths
