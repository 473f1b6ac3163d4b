"""HTTP response framing."""

from typing import NamedTuple, Tuple


CONTENT_TYPE = "text/html; charset=utf-8"


class HttpResponse(NamedTuple):
    status_code: int
    status_text: str
    headers: Tuple[Tuple[str, str], ...]
    body: bytes

    def to_bytes(self) -> bytes:
        """Serialize status line, headers, blank line and body."""
        status_line = f"HTTP/1.1 {self.status_code} {self.status_text}\r\n"
        headers = "".join(f"{key}: {value}\r\n" for key, value in self.headers)
        return (status_line + headers + "\r\n").encode('ascii') + self.body


def frame_response(document: str) -> HttpResponse:
    """
    Wrap a rendered HTML document in a 200 response.

    Content-Length counts encoded bytes, not characters.

    Args:
        document: Rendered HTML

    Returns:
        HttpResponse ready to be written
    """
    body = document.encode('utf-8', errors='replace')
    headers = (
        ('Content-Type', CONTENT_TYPE),
        ('Content-Length', str(len(body))),
    )
    return HttpResponse(200, 'OK', headers, body)
