"""
File Browser HTTP Server

Serves a read-only, browsable view of a directory tree over plain HTTP:
- Directories render as an HTML table (directories first, then files)
- Files render as a metadata page (size, modification time)
- Anything else renders a "path not found" page

Each accepted connection is handled by its own thread: one read, one
response, then the connection is closed. Connection threads share nothing
but the read-only filesystem resolver.
"""

import logging
import os
import signal
import socket
import sys
import threading
import time
from typing import Optional, Tuple

from .config import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_READ_TIMEOUT, ConfigError, parse_args
from .render import render_file_details, render_listing, render_not_found
from .request import parse_request_path
from .resolver import Directory, File, FileSystemResolver, ResolvedTarget
from .response import frame_response


BUFFER_SIZE = 4096
LISTEN_BACKLOG = 50
ACCEPT_ERROR_BACKOFF = 0.5

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(threadName)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_file: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Configure the "FileBrowser" logger.

    Console output always goes to stdout; a file handler is added when
    log_file is given. Calling this again does not add duplicate handlers.

    Args:
        log_file: Optional path of a log file (parent directory is created)
        level: Logging level for the logger and its handlers

    Returns:
        The configured logger
    """
    logger = logging.getLogger("FileBrowser")
    logger.setLevel(level)
    # Prevent duplicate logs
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_path = os.path.abspath(log_file)
        existing = [
            h for h in logger.handlers
            if isinstance(h, logging.FileHandler) and h.baseFilename == log_path
        ]
        if not existing:
            log_dir = os.path.dirname(log_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


class FileBrowserServer:
    """
    Thread-per-connection HTTP server exposing a directory for browsing.
    """

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, root: str = "/",
                 read_timeout: float = DEFAULT_READ_TIMEOUT):
        """
        Initialize the server with configuration parameters.

        Args:
            host: Server host address (default: 127.0.0.1)
            port: Server port number, 0 for any free port (default: 8080)
            root: Directory to expose (default: /)
            read_timeout: Seconds to wait for a client's request (default: 30)
        """
        self.host = host
        self.port = port
        self.read_timeout = read_timeout
        self.resolver = FileSystemResolver(root)
        self.server_socket = None
        self.running = False
        self.logger = logging.getLogger("FileBrowser.server")

        self.logger.info(f"File Browser initialized: {host}:{port}, root={self.resolver.root}")

    @property
    def root(self) -> str:
        return self.resolver.root

    def bind(self):
        """Create the listening socket and record the port actually bound."""
        self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server_socket.bind((self.host, self.port))
        self.server_socket.listen(LISTEN_BACKLOG)

        self.host, self.port = self.server_socket.getsockname()[:2]
        self.running = True
        self.logger.info(f"File Browser running on http://{self.host}:{self.port}")

    def serve_forever(self):
        """
        Accept connections until stop() is called.

        Every connection is handed to a new daemon thread; the loop never
        waits for one to finish.
        """
        while self.running:
            try:
                client_socket, client_address = self.server_socket.accept()
            except OSError as e:
                if not self.running:
                    break
                self.logger.error(f"Error accepting connection: {e}")
                # persistent errors such as EMFILE would otherwise spin
                time.sleep(ACCEPT_ERROR_BACKOFF)
                continue

            self.logger.info(f"New connection: {client_address[0]}:{client_address[1]}")

            thread = threading.Thread(
                target=self.handle_connection,
                args=(client_socket, client_address),
                name=f"Conn-{client_address[0]}:{client_address[1]}",
                daemon=True,
            )
            try:
                thread.start()
            except RuntimeError as e:
                self.logger.error(f"Could not start handler thread: {e}")
                client_socket.close()

    def start(self):
        """Bind the listening socket and serve until stopped."""
        try:
            self.bind()
            self.serve_forever()
        except Exception as e:
            self.logger.error(f"Failed to start server: {e}")
            raise
        finally:
            self.stop()

    def stop(self):
        """Stop accepting connections. Running connection threads finish on their own."""
        if self.running:
            self.logger.info("Stopping File Browser...")
        self.running = False

        if self.server_socket:
            # shutdown() wakes a thread blocked in accept()
            try:
                self.server_socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self.server_socket.close()

    def handle_connection(self, client_socket: socket.socket, client_address: Tuple):
        """
        Serve exactly one request on a connection, then close it.

        Args:
            client_socket: Client socket connection
            client_address: Client address tuple (host, port)
        """
        connection_id = f"{client_address[0]}:{client_address[1]}"

        try:
            try:
                client_socket.settimeout(self.read_timeout)
                request_data = client_socket.recv(BUFFER_SIZE)
            except OSError as e:
                self.logger.error(f"Failed to read from {connection_id}: {e}")
                return

            if not request_data:
                self.logger.info(f"Connection closed by peer: {connection_id}")
                return

            try:
                response = self.build_response(request_data)
            except Exception:
                self.logger.exception(f"Error building response for {connection_id}")
                return

            try:
                client_socket.sendall(response)
            except OSError as e:
                self.logger.error(f"Failed to write to {connection_id}: {e}")

        finally:
            try:
                client_socket.close()
            except OSError:
                pass

    def build_response(self, request_data: bytes) -> bytes:
        """
        Run the request pipeline: decode, resolve, render, frame.

        Args:
            request_data: Raw bytes read from the client

        Returns:
            Complete HTTP response bytes
        """
        request_path = parse_request_path(request_data)
        target = self.resolver.resolve(request_path)
        self.logger.info(f"GET {request_path.url_path} -> {type(target).__name__}")
        return frame_response(self.render(target)).to_bytes()

    def render(self, target: ResolvedTarget) -> str:
        """Render the HTML document matching a resolved target."""
        if isinstance(target, Directory):
            return render_listing(target.request_path, target.entries)
        if isinstance(target, File):
            return render_file_details(target.name, target.size, target.modified)
        return render_not_found()


def main(argv=None):
    """
    Main entry point for the file browser.
    Parses command line arguments and starts the server.
    """
    if argv is None:
        argv = sys.argv[1:]

    try:
        config = parse_args(argv)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

    setup_logging(config.log_file)

    server = FileBrowserServer(config.host, config.port, config.root, config.read_timeout)

    def _signal_handler(signum, frame):
        server.logger.info(f"Received signal {signum}, shutting down...")
        server.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        print("Press Ctrl+C to stop the server")
        server.start()
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
