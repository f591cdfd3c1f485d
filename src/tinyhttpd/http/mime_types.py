"""
=============================================================================
CONTENT TYPES FOR SERVED FILES
=============================================================================

Every file response carries a Content-Type derived from nothing but the
file's extension. There is no content sniffing and no lookup in the host's
/etc/mime.types: the table below is the whole truth, so the same file gets
the same header on every machine the daemon runs on.

    index.html   ──► ".html" ──► text/html; charset=utf-8
    logo.PNG     ──► ".png"  ──► image/png
    Makefile     ──► ""      ──► application/octet-stream
    backup.xyz   ──► ".xyz"  ──► application/octet-stream

Text-like types are announced with an explicit utf-8 charset. Binary types
are announced bare.

=============================================================================
"""

import os
from typing import Dict


DEFAULT_CONTENT_TYPE = "application/octet-stream"

TEXT_CHARSET = "utf-8"


# Types a browser renders as text. These get "; charset=utf-8".
_TEXT_TYPES: Dict[str, str] = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".text": "text/plain",
    ".log": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".json": "application/json",
    ".map": "application/json",
    ".xml": "text/xml",
    ".svg": "image/svg+xml",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
}

# Everything else is announced without a charset.
_BINARY_TYPES: Dict[str, str] = {
    # images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".ico": "image/vnd.microsoft.icon",
    ".bmp": "image/bmp",
    # fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    # audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    # documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".7z": "application/x-7z-compressed",
    ".wasm": "application/wasm",
}


def _build_table() -> Dict[str, str]:
    table = {ext: f"{mime}; charset={TEXT_CHARSET}" for ext, mime in _TEXT_TYPES.items()}
    table.update(_BINARY_TYPES)
    return table


# Extension (lowercase, with the dot) -> full Content-Type header value.
CONTENT_TYPES: Dict[str, str] = _build_table()


def content_type_for(path: str) -> str:
    """
    Content-Type header value for a file name or path.

    The extension is matched case-insensitively. Names without an
    extension, dotfiles (".bashrc") and unknown extensions all map to
    application/octet-stream.

    Examples:
        >>> content_type_for("/srv/www/index.html")
        'text/html; charset=utf-8'
        >>> content_type_for("photo.JPG")
        'image/jpeg'
        >>> content_type_for("README")
        'application/octet-stream'
    """
    _, extension = os.path.splitext(os.path.basename(path))
    return CONTENT_TYPES.get(extension.lower(), DEFAULT_CONTENT_TYPE)
