import os
import threading

import pytest

from filebrowser.server import FileBrowserServer


FIXED_MTIME = 1700000000.0


class FakeSocket:
    """Stand-in for a connected client socket."""

    def __init__(self, data=b"", recv_error=None, send_error=None):
        self.data = data
        self.recv_error = recv_error
        self.send_error = send_error
        self.recv_sizes = []
        self.sent = []
        self.timeout = None
        self.closed = False

    def settimeout(self, timeout):
        self.timeout = timeout

    def recv(self, size):
        self.recv_sizes.append(size)
        if self.recv_error:
            raise self.recv_error
        return self.data[:size]

    def sendall(self, data):
        if self.send_error:
            raise self.send_error
        self.sent.append(data)

    def close(self):
        self.closed = True


def split_response(raw):
    """Split raw response bytes into (status line, headers dict, body bytes)."""
    head, body = raw.split(b"\r\n\r\n", 1)
    lines = head.decode("ascii").split("\r\n")
    headers = {}
    for line in lines[1:]:
        key, value = line.split(":", 1)
        headers[key.strip().lower()] = value.strip()
    return lines[0], headers, body


@pytest.fixture
def browse_root(tmp_path):
    """Root with notes.txt (2048 bytes) and an empty photos/ directory."""
    notes = tmp_path / "notes.txt"
    notes.write_bytes(b"x" * 2048)
    os.utime(notes, (FIXED_MTIME, FIXED_MTIME))
    (tmp_path / "photos").mkdir()
    return tmp_path


@pytest.fixture
def server(browse_root):
    return FileBrowserServer("127.0.0.1", 0, str(browse_root))


@pytest.fixture
def running_server(browse_root):
    srv = FileBrowserServer("127.0.0.1", 0, str(browse_root), read_timeout=5)
    srv.bind()
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield srv
    srv.stop()
    thread.join(timeout=5)
