"""
=============================================================================
MIME TYPE LOOKUP
=============================================================================

Maps a file extension to the value sent in the Content-Type header.

    GET /img/logo.png HTTP/1.1
                 ────
                  │
                  └── ".png" ──► MIME_TYPES ──► "image/png"

The lookup is keyed purely by extension. The server never sniffs file
content, so a PNG renamed to ".txt" is served as text/plain.

Unknown extensions (and files without one) fall back to
application/octet-stream, which tells a browser "binary data, offer to
save it" rather than guessing.

=============================================================================
"""

from typing import Optional


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are lowercase extensions including the leading dot.
#
# =============================================================================

MIME_TYPES = {
    # Documents and text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".xml": "application/xml",
    ".json": "application/json",
    ".map": "application/json",     # source maps
    ".pdf": "application/pdf",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Archives and binaries
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".wasm": "application/wasm",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(extension: str, default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file extension.

    Args:
        extension: Extension with its leading dot, any case (".HTML" works).
                   An empty string means "no extension".
        default: Returned for unmapped extensions. Falls back to
                 DEFAULT_MIME_TYPE when not given.

    Returns:
        The MIME type string.

    Examples:
        >>> get_mime_type(".css")
        'text/css'

        >>> get_mime_type(".PNG")
        'image/png'

        >>> get_mime_type(".xyz")
        'application/octet-stream'
    """
    return MIME_TYPES.get(extension.lower(), default or DEFAULT_MIME_TYPE)
