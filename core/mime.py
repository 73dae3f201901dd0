"""
Content type lookup for served files.
"""

import mimetypes
from pathlib import Path
from typing import Dict, Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def normalize_extension(extension: str) -> str:
    """Lowercase an extension and drop its leading dot: '.ERB' -> 'erb'."""
    return extension.strip().lstrip(".").lower()


def content_type_for(path: Path, overrides: Optional[Dict[str, str]] = None) -> str:
    """
    Get the content type for a file.

    Args:
        path: File being served
        overrides: Extension -> content type mapping checked first

    Returns:
        str: Content type, application/octet-stream when unknown
    """
    extension = normalize_extension(path.suffix)
    if overrides and extension in overrides:
        return overrides[extension]

    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or DEFAULT_CONTENT_TYPE
