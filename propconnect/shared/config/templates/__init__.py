"""Message templates for PropConnect using Jinja2."""

from propconnect.shared.config.templates.manager import TemplateManager, get_template_manager, render_template

__all__ = ["TemplateManager", "render_template", "get_template_manager"]
