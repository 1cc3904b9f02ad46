"""Jinja2 template manager for user-facing message bodies."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent


class TemplateManager:
    """Loads and renders ``*.j2`` templates from a directory."""

    def __init__(self, templates_dir: Optional[Path] = None) -> None:
        self.templates_dir = Path(templates_dir) if templates_dir else TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            undefined=StrictUndefined,
            autoescape=False,
        )

    def render(self, name: str, **context: Any) -> str:
        """Render ``<name>.j2`` with the given context.

        Raises:
            TemplateNotFound: If no such template exists
        """
        try:
            template = self.env.get_template(f"{name}.j2")
        except TemplateNotFound:
            logger.error(f"Template '{name}' not found in {self.templates_dir}")
            raise
        return template.render(**context)


_template_manager: Optional[TemplateManager] = None


def get_template_manager() -> TemplateManager:
    """Get global template manager instance"""
    global _template_manager
    if _template_manager is None:
        _template_manager = TemplateManager()
    return _template_manager


def render_template(name: str, **context: Any) -> str:
    return get_template_manager().render(name, **context)
