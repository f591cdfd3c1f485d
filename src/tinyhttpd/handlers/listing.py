"""
Directory listing page.

Renders the immediate children of a directory as a small HTML document:

    <!DOCTYPE html>
    <html><head><meta charset="utf-8"><title>Directory Listing of /docs</title></head>
    <body><h1>Directory Listing of /docs</h1><ul>
    <li><a href="/docs/guide.txt">guide.txt</a></li>
    </ul></body></html>

File names come from disk and may contain anything a file system allows,
including "<", "&" and quotes. Link text is HTML-escaped. Link targets are
percent-encoded first and then attribute-escaped, so a file named
'"><script>' is shown as text and cannot break out of the href.
"""

from typing import Iterable
from urllib.parse import quote
import html
import posixpath


def link_target(request_path: str, name: str) -> str:
    """
    URL path of a child entry, percent-encoded.

    The request path is joined with the name as-is, so "/" and "a" give
    "/a", and "/docs" and "a" give "/docs/a". Directories get no trailing
    slash.
    """
    target = posixpath.join(request_path, name)
    return quote(target, safe="/", errors="surrogateescape")


def render_listing(request_path: str, names: Iterable[str]) -> str:
    """
    Build the listing document for `request_path` with one link per name.

    Names are listed in the order given. Returns the document as text; the
    caller encodes it as UTF-8 and uses that length as Content-Length.
    """
    # Undecodable file names show with a replacement character
    shown_path = html.escape(_printable(request_path))
    title = f"Directory Listing of {shown_path}"

    items = []
    for name in names:
        href = html.escape(link_target(request_path, name), quote=True)
        text = html.escape(_printable(name))
        items.append(f'<li><a href="{href}">{text}</a></li>')

    return (
        "<!DOCTYPE html>\n"
        f'<html><head><meta charset="utf-8"><title>{title}</title></head>\n'
        f"<body><h1>{title}</h1><ul>\n"
        + "".join(item + "\n" for item in items)
        + "</ul></body></html>\n"
    )


def _printable(text: str) -> str:
    return text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")
