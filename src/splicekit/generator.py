"""Generation orchestrator: render, split, write bodies, run injections."""

from __future__ import annotations

import glob
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from . import engine
from .config import GeneratorConfig
from .exceptions import RenderError, SpliceKitError, TargetMissingError
from .frontmatter import decode as decode_frontmatter
from .fs import FileSystem, LocalFileSystem, OverlayFileSystem
from .models import (
    Document,
    DocumentAction,
    DocumentReport,
    GenerationReport,
    InjectionAction,
    InjectionDirective,
    InjectionReport,
)
from .rendering import JinjaRenderer, Renderer
from .splitter import Decoder, split

logger = logging.getLogger(__name__)


class Generator:
    """Turns templates into generated files and injections.

    Nothing is retained between ``generate`` calls; the target files on disk
    are the only state. Each injection is a separate read-modify-write with
    no locking, so concurrent external edits to the same file during a call
    can be lost.
    """

    def __init__(
        self,
        config: GeneratorConfig | None = None,
        fs: FileSystem | None = None,
        renderer: Renderer | None = None,
        decode: Decoder = decode_frontmatter,
    ) -> None:
        """Initialize generator.

        Args:
            config: Generator settings, defaults to the current directory
            fs: Filesystem capability, defaults to the local disk
            renderer: Template renderer, defaults to Jinja2 with case filters
            decode: Frontmatter decoder
        """
        self.config = config or GeneratorConfig()
        self.fs = fs or LocalFileSystem()
        self.renderer = renderer or JinjaRenderer(strict=self.config.strict_variables)
        self.decode = decode

    @classmethod
    def with_working_dir(cls, working_dir: Path, **kwargs: Any) -> Generator:
        """Create a generator resolving relative paths against ``working_dir``."""
        config = GeneratorConfig(working_dir=Path(working_dir))
        return cls(config=config, **kwargs)

    def add_template(self, name: str, template_text: str) -> None:
        """Register a named template with the renderer."""
        add = getattr(self.renderer, "add_template", None)
        if add is None:
            msg = f"Renderer {type(self.renderer).__name__} does not support named templates"
            raise RenderError(msg, details={"template": name})
        add(name, template_text)

    def generate(
        self,
        template_text: str,
        variables: Mapping[str, Any] | None = None,
    ) -> GenerationReport:
        """Render ``template_text`` and apply every document it produces.

        Args:
            template_text: Raw template with frontmatter and body
            variables: Template variables, layered over configured defaults

        Returns:
            Report of every body write and injection

        Raises:
            SpliceKitError: Any error in the taxonomy, with locating details
        """
        logger.debug("input: %r", template_text)
        rendered = self.renderer.render(template_text, self.merge_variables(variables))
        return self.process(rendered)

    def generate_named(
        self,
        name: str,
        variables: Mapping[str, Any] | None = None,
    ) -> GenerationReport:
        """Render a registered template by name and apply it."""
        render_named = getattr(self.renderer, "render_named", None)
        if render_named is None:
            msg = f"Renderer {type(self.renderer).__name__} does not support named templates"
            raise RenderError(msg, details={"template": name})
        return self.process(render_named(name, self.merge_variables(variables)))

    def process(self, rendered: str) -> GenerationReport:
        """Split already-rendered text and apply each document."""
        logger.debug("rendered: %r", rendered)

        # Decode every document up front so a broken one cannot leave a
        # half-applied run behind.
        documents = list(split(rendered, self.decode))

        fs: FileSystem = OverlayFileSystem(self.fs) if self.config.dry_run else self.fs
        report = GenerationReport(dry_run=self.config.dry_run)
        for document in documents:
            report.documents.append(self._process_document(document, fs))
        return report

    def resolve(self, path: str) -> Path:
        """Resolve a frontmatter path against the working directory."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.config.working_dir / candidate

    def merge_variables(self, variables: Mapping[str, Any] | None) -> dict[str, Any]:
        return {**self.config.variables, **(variables or {})}

    def _skip_reason(self, document: Document, fs: FileSystem) -> str | None:
        metadata = document.metadata
        if metadata.skip_exists and fs.exists(self.resolve(metadata.target_path)):
            return "exists"
        if metadata.skip_glob:
            matches = glob.glob(
                metadata.skip_glob,
                root_dir=str(self.config.working_dir),
                recursive=True,
            )
            if matches:
                return f"glob {metadata.skip_glob!r} matched"
        return None

    def _process_document(self, document: Document, fs: FileSystem) -> DocumentReport:
        metadata = document.metadata
        target = self.resolve(metadata.target_path)

        reason = self._skip_reason(document, fs)
        if reason is not None:
            logger.info("Skipped %s (%s)", target, reason)
            return DocumentReport(
                index=document.index,
                target_path=str(target),
                action=DocumentAction.SKIPPED,
                message=metadata.message,
            )

        action = DocumentAction.OVERWRITTEN if fs.exists(target) else DocumentAction.ADDED
        try:
            fs.write_text(target, document.body)
        except SpliceKitError as e:
            e.with_context(document=document.index, path=str(target))
            raise
        logger.info("%s %s", action.value.capitalize(), target)

        injections = [
            self._inject(document.index, i, directive, fs)
            for i, directive in enumerate(metadata.injections)
        ]
        return DocumentReport(
            index=document.index,
            target_path=str(target),
            action=action,
            message=metadata.message,
            injections=injections,
        )

    def _inject(
        self,
        document_index: int,
        index: int,
        directive: InjectionDirective,
        fs: FileSystem,
    ) -> InjectionReport:
        target = self.resolve(directive.target_file)
        context = {"document": document_index, "directive": index, "path": str(target)}

        if not fs.exists(target):
            msg = f"Cannot inject into {directive.target_file}: file does not exist"
            raise TargetMissingError(msg, details=context)

        try:
            current = fs.read_text(target)
            if engine.is_skipped(current, directive):
                logger.debug("Directive %d skipped for %s: skip_if matched", index, target)
                action = InjectionAction.SKIPPED_IF
            else:
                updated = engine.apply(current, directive)
                if updated == current:
                    action = InjectionAction.UNCHANGED
                else:
                    fs.write_text(target, updated)
                    action = InjectionAction.INJECTED
                    logger.info("Injected into %s", target)
        except SpliceKitError as e:
            e.with_context(**context)
            raise

        return InjectionReport(index=index, target_file=str(target), action=action)
