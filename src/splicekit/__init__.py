"""SpliceKit: template-driven file generation and pattern-anchored injection."""

from collections.abc import Mapping
from typing import Any

__version__ = "0.1.0"
__author__ = "SpliceKit Contributors"
__description__ = "Template-driven file generation and pattern-anchored injection"

from .config import GeneratorConfig
from .engine import apply
from .generator import Generator
from .models import GenerationReport, InjectionDirective, Metadata
from .splitter import split

__all__ = [
    "GenerationReport",
    "Generator",
    "GeneratorConfig",
    "InjectionDirective",
    "Metadata",
    "apply",
    "generate",
    "split",
]


def generate(
    template_text: str,
    variables: Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> GenerationReport:
    """Render ``template_text`` with ``variables`` using a default ``Generator``."""
    return Generator(**kwargs).generate(template_text, variables)
