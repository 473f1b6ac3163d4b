"""
Command line and environment configuration.

Usage: filebrowser [port] [host] [root]
"""

import os
from typing import List, Mapping, NamedTuple, Optional


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_ROOT = "/"
DEFAULT_READ_TIMEOUT = 30.0


class ConfigError(ValueError):
    """Invalid command line or environment setting."""


class ServerConfig(NamedTuple):
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    root: str = DEFAULT_ROOT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    log_file: Optional[str] = None


def parse_args(argv: List[str], environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """
    Build the server configuration from positional arguments.

    Args:
        argv: Arguments after the program name: [port] [host] [root]
        environ: Environment mapping (default: os.environ). Reads
            FILEBROWSER_LOG_FILE and FILEBROWSER_READ_TIMEOUT.

    Returns:
        Validated ServerConfig

    Raises:
        ConfigError: If any value is invalid
    """
    if environ is None:
        environ = os.environ

    if len(argv) > 3:
        raise ConfigError("Usage: filebrowser [port] [host] [root]")

    port = DEFAULT_PORT
    host = DEFAULT_HOST
    root = DEFAULT_ROOT

    if len(argv) >= 1:
        try:
            port = int(argv[0])
        except ValueError:
            raise ConfigError("Port must be an integer")

    if len(argv) >= 2:
        host = argv[1]

    if len(argv) >= 3:
        root = argv[2]

    # 0 asks the OS for any free port
    if not (0 <= port <= 65535):
        raise ConfigError("Port must be between 0 and 65535 (0 picks any free port)")

    if not os.path.isdir(root):
        raise ConfigError(f"Root must be an existing directory: {root}")

    read_timeout = DEFAULT_READ_TIMEOUT
    timeout_setting = environ.get("FILEBROWSER_READ_TIMEOUT")
    if timeout_setting:
        try:
            read_timeout = float(timeout_setting)
        except ValueError:
            raise ConfigError("FILEBROWSER_READ_TIMEOUT must be a number")
        if not (0 < read_timeout < float('inf')):
            raise ConfigError("FILEBROWSER_READ_TIMEOUT must be positive")

    log_file = environ.get("FILEBROWSER_LOG_FILE") or None

    return ServerConfig(
        host=host,
        port=port,
        root=os.path.abspath(root),
        read_timeout=read_timeout,
        log_file=log_file,
    )
