"""HTML documents for directory listings, file details and missing paths."""

import datetime
import html
import os
from typing import List, Optional
from urllib.parse import quote

from .request import RequestPath
from .resolver import DirectoryEntry


SIZE_UNITS = ['KiB', 'MiB', 'GiB', 'TiB', 'PiB', 'EiB']
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

DIR_GLYPH = "\U0001F4C1"   # 📁
FILE_GLYPH = "\U0001F4C4"  # 📄

BASE_STYLE = """
        body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 40px; }
        a { color: #0366d6; text-decoration: none; }
        a:hover { text-decoration: underline; }"""

LISTING_STYLE = BASE_STYLE + """
        .container { max-width: 1200px; margin: 0 auto; }
        .header { background: #f8f9fa; padding: 20px; border-radius: 8px; margin-bottom: 20px; }
        .breadcrumb { margin-bottom: 20px; }
        table { width: 100%; border-collapse: collapse; }
        th, td { padding: 12px; text-align: left; border-bottom: 1px solid #ddd; }
        th { background: #f8f9fa; }
        tr:hover { background: #f5f5f5; }"""

DETAIL_STYLE = BASE_STYLE + """
        .file-info { background: #f8f9fa; padding: 20px; border-radius: 8px; }
        .back-link { margin-bottom: 20px; }"""

ERROR_STYLE = BASE_STYLE + """
        .error { color: #dc3545; }"""


def format_size(num_bytes: int) -> str:
    """
    Human-readable size in binary (1024-based) units.

    Args:
        num_bytes: Size in bytes

    Returns:
        "512 B", "2.0 KiB", "1.5 MiB", ...
    """
    if num_bytes < 1024:
        return f"{num_bytes} B"

    size = float(num_bytes)
    for unit in SIZE_UNITS:
        size /= 1024.0
        if size < 1024.0 or unit == SIZE_UNITS[-1]:
            return f"{size:.1f} {unit}"


def format_timestamp(timestamp: float) -> str:
    """Local time as YYYY-MM-DD HH:MM:SS."""
    return datetime.datetime.fromtimestamp(timestamp).strftime(TIMESTAMP_FORMAT)


def _text(name: str) -> str:
    # Undecodable filenames arrive with surrogate escapes; show them replaced.
    clean = name.encode('utf-8', 'surrogateescape').decode('utf-8', 'replace')
    return html.escape(clean)


def _href(url_path: str) -> str:
    return html.escape(quote(os.fsencode(url_path), safe='/'))


def _breadcrumb(request_path: RequestPath) -> str:
    crumbs = ['<a href="/">Root</a>']
    current = RequestPath()
    for segment in request_path.segments:
        current = current.child(segment)
        crumbs.append(f'<a href="{_href(current.url_path)}">{_text(segment)}</a>')
    return " / ".join(crumbs)


def _entry_row(request_path: RequestPath, entry: DirectoryEntry) -> str:
    link = _href(request_path.child(entry.name).url_path)
    glyph = DIR_GLYPH if entry.is_dir else FILE_GLYPH
    size = "-" if entry.is_dir else format_size(entry.size)
    return (
        f'<tr><td><a href="{link}">{glyph} {_text(entry.name)}</a></td>'
        f'<td>{size}</td><td>{format_timestamp(entry.modified)}</td></tr>'
    )


def render_listing(request_path: RequestPath, entries: List[DirectoryEntry]) -> str:
    """
    Render a directory listing.

    Entries are rendered in the order given; the resolver hands them over
    already sorted (directories first, then by name).

    Args:
        request_path: Path of the directory being listed
        entries: Immediate children of the directory

    Returns:
        Complete HTML document
    """
    rows = []
    if not request_path.is_root:
        parent = _href(request_path.parent.url_path)
        rows.append(f'<tr><td><a href="{parent}">{DIR_GLYPH} ..</a></td><td>-</td><td>-</td></tr>')
    rows.extend(_entry_row(request_path, entry) for entry in entries)

    title = _text(request_path.url_path)
    body_rows = "\n                ".join(rows)

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>File Browser - {title}</title>
    <style>{LISTING_STYLE}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>File Browser</h1>
            <div class="breadcrumb">{_breadcrumb(request_path)}</div>
        </div>
        <table>
            <thead>
                <tr><th>Name</th><th>Size</th><th>Modified</th></tr>
            </thead>
            <tbody>
                {body_rows}
            </tbody>
        </table>
    </div>
</body>
</html>
"""


def render_file_details(name: str, size: int, modified: Optional[float]) -> str:
    """Render the metadata page for a single file. A modified of None shows as "-"."""
    name = _text(name)
    modified_text = "-" if modified is None else format_timestamp(modified)
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>File Info - {name}</title>
    <style>{DETAIL_STYLE}
    </style>
</head>
<body>
    <div class="back-link">
        <a href="javascript:history.back()">← Back</a>
    </div>
    <div class="file-info">
        <h2>{FILE_GLYPH} {name}</h2>
        <p>Size: {format_size(size)}</p>
        <p>Modified: {modified_text}</p>
    </div>
</body>
</html>
"""


NOT_FOUND_PAGE = f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Error - Path Not Found</title>
    <style>{ERROR_STYLE}
    </style>
</head>
<body>
    <h1 class="error">404 - Path Not Found</h1>
    <p>The requested path could not be found.</p>
    <a href="/">Return to Home</a>
</body>
</html>
"""


def render_not_found() -> str:
    return NOT_FOUND_PAGE
