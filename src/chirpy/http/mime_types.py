"""
MIME type detection for the file server.

Browsers decide what to do with a response from its Content-Type, not from
the URL. A stylesheet served as ``application/octet-stream`` is ignored, and
an HTML page served as ``text/plain`` shows up as source. The file server
under ``/app/`` therefore looks every file's extension up here.

Text types get a ``charset`` parameter; binary types do not.
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    # Documents and code the browser renders or executes
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".wasm": "application/wasm",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Media
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Downloads
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* and image/* types that are really text
_TEXTUAL_NON_TEXT_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Return the MIME type for a file name, based on its extension.

    >>> get_mime_type("assets/logo.PNG")
    'image/png'
    >>> get_mime_type("notes.unknown")
    'application/octet-stream'
    """
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """True when the MIME type carries text and should declare a charset."""
    return mime_type.startswith("text/") or mime_type in _TEXTUAL_NON_TEXT_TYPES


def get_content_type(path: Union[str, Path], charset: str = "utf-8") -> str:
    """
    Return a full Content-Type header value for a file.

    >>> get_content_type("index.html")
    'text/html; charset=utf-8'
    >>> get_content_type("logo.png")
    'image/png'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
