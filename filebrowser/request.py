"""
Request path decoding.

Turns the raw bytes read from a client socket into a RequestPath: the
root-relative, percent-decoded sequence of path segments the client asked for.
Nothing here ever fails; anything that cannot be understood becomes the root.
"""

import os
import re
from typing import NamedTuple, Tuple
from urllib.parse import unquote, urlsplit


class RequestPath(NamedTuple):
    """Rooted, normalized path made of decoded segments."""

    segments: Tuple[str, ...] = ()

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def name(self) -> str:
        return self.segments[-1] if self.segments else ""

    @property
    def url_path(self) -> str:
        return "/" + "/".join(self.segments)

    @property
    def parent(self) -> "RequestPath":
        return RequestPath(self.segments[:-1])

    def child(self, name: str) -> "RequestPath":
        return RequestPath(self.segments + (name,))


ROOT = RequestPath()


def _separator_pattern() -> str:
    separators = {'/', os.sep}
    if os.altsep:
        separators.add(os.altsep)
    return '[' + ''.join(re.escape(sep) for sep in sorted(separators)) + ']'


def extract_target(request_data: bytes) -> str:
    """
    Pull the request target out of the request line.

    Args:
        request_data: Raw bytes received from the client

    Returns:
        Second whitespace-delimited token of the first line, or "/" if absent
    """
    request_text = request_data.decode('utf-8', errors='replace')
    lines = request_text.splitlines()
    if not lines:
        return '/'

    parts = lines[0].split()
    if len(parts) < 2:
        return '/'
    return parts[1]


def decode_path(target: str) -> RequestPath:
    """
    Percent-decode a request target into a RequestPath confined to the root.

    Query strings, fragments and an absolute-form "scheme://host" prefix are
    dropped before decoding, so an encoded "%3F" stays part of the name.
    "." segments are ignored and ".." never climbs above the root. The
    platform's own separators also split segments, and drive prefixes
    ("C:") are dropped, so no segment can re-anchor a later path join.

    Args:
        target: Request target as sent by the client

    Returns:
        Normalized RequestPath
    """
    raw_path = target.split('#', 1)[0].split('?', 1)[0]
    if not raw_path.startswith('/') and '://' in raw_path:
        try:
            raw_path = urlsplit(raw_path).path
        except ValueError:
            # e.g. an unbalanced "[" in the authority part
            raw_path = '/'

    decoded = unquote(raw_path.lstrip('/'), encoding='utf-8', errors='replace')

    segments = []
    for segment in re.split(_separator_pattern(), decoded):
        if segment in ('', '.'):
            continue
        if os.path.splitdrive(segment)[0]:
            continue
        if segment == '..':
            if segments:
                segments.pop()
            continue
        segments.append(segment)

    return RequestPath(tuple(segments))


def parse_request_path(request_data: bytes) -> RequestPath:
    """Decode the path a raw request asks for."""
    return decode_path(extract_target(request_data))
