"""
Template renderers for staticserve.

Renderers turn the source of an embedded template into response text. The
default renderer uses Jinja2 configured with ERB-style delimiters.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from jinja2 import Environment, StrictUndefined, TemplateError

from core.errors import RenderError
from feeds.rss import fetch_items

logger = logging.getLogger(__name__)


class Renderer(ABC):
    """
    Abstract base class for template renderers.

    All renderers must implement the render method and report every failure
    as RenderError.
    """

    @abstractmethod
    def render(self, source: str, context: Optional[Dict[str, Any]] = None) -> str:
        """
        Render a template.

        Args:
            source: Template source text
            context: Names visible to the template

        Returns:
            str: Rendered output

        Raises:
            RenderError: If the template cannot be compiled or evaluated
        """
        pass


class Jinja2Renderer(Renderer):
    """
    Jinja2 renderer speaking ERB-style tags.

    <%= expr %> interpolates, <% stmt %> runs control flow
    (<% for item in items %>...<% endfor %>) and <%# ... %> is a comment.
    Output is not escaped and undefined names raise.
    """

    def __init__(self, template_globals: Optional[Dict[str, Any]] = None):
        self.environment = Environment(
            block_start_string="<%",
            block_end_string="%>",
            variable_start_string="<%=",
            variable_end_string="%>",
            comment_start_string="<%#",
            comment_end_string="%>",
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )
        self.environment.globals["rss_items"] = fetch_items
        if template_globals:
            self.environment.globals.update(template_globals)

    def render(self, source: str, context: Optional[Dict[str, Any]] = None) -> str:
        try:
            template = self.environment.from_string(source)
            return template.render(context or {})
        except TemplateError as e:
            raise RenderError(f"Template error: {e}") from e
        except Exception as e:
            # Functions called from a template can raise anything
            raise RenderError(f"{type(e).__name__} while rendering: {e}") from e
