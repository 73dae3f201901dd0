"""
Template handler registry.

Binds file extensions to a response content type and the renderer that turns
the file into the response body.
"""

import logging
from typing import Dict, List, Optional

from core.errors import HandlerError
from core.mime import normalize_extension
from templating.renderer import Renderer

logger = logging.getLogger(__name__)


class TemplateHandler:
    """A rendering step bound to one file extension."""

    def __init__(self, extension: str, content_type: str, renderer: Renderer):
        self.extension = extension
        self.content_type = content_type
        self.renderer = renderer

    def conflicts_with(self, other: "TemplateHandler") -> bool:
        return self.content_type != other.content_type or self.renderer is not other.renderer

    def __repr__(self):
        return f"TemplateHandler(extension={self.extension!r}, content_type={self.content_type!r})"


class HandlerRegistry:
    """
    Registry of template handlers keyed by normalized extension.

    Registration happens at startup; lookups happen concurrently from request
    threads and never mutate the registry.
    """

    def __init__(self):
        self._handlers: Dict[str, TemplateHandler] = {}

    def register(self, extension: str, content_type: str, renderer: Renderer) -> TemplateHandler:
        """
        Bind an extension to a content type and renderer.

        Args:
            extension: File extension, with or without the leading dot
            content_type: Content type declared for rendered responses
            renderer: Renderer applied to the file source

        Returns:
            TemplateHandler: The registered (or already identical) handler

        Raises:
            HandlerError: If the extension is empty or already bound differently
        """
        key = normalize_extension(extension)
        if not key:
            raise HandlerError("Template handler extension must not be empty")
        if not content_type:
            raise HandlerError(f"Template handler for .{key} needs a content type")

        handler = TemplateHandler(key, content_type, renderer)
        existing = self._handlers.get(key)
        if existing is not None:
            if existing.conflicts_with(handler):
                raise HandlerError(f"Extension .{key} is already bound to {existing!r}")
            return existing

        self._handlers[key] = handler
        logger.info("Registered template handler for .%s (%s)", key, content_type)
        return handler

    def lookup(self, filename: str) -> Optional[TemplateHandler]:
        """Get the handler for a file name, if its extension is registered."""
        _, dot, extension = filename.rpartition(".")
        if not dot:
            return None
        return self._handlers.get(extension.lower())

    def get(self, extension: str) -> Optional[TemplateHandler]:
        return self._handlers.get(normalize_extension(extension))

    def extensions(self) -> List[str]:
        return list(self._handlers.keys())
