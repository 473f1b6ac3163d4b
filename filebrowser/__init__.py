"""Minimal HTTP file browser: directory listings and file details over plain HTTP."""

from .request import RequestPath, decode_path, extract_target, parse_request_path
from .resolver import Directory, DirectoryEntry, File, FileSystemResolver, Missing
from .response import HttpResponse, frame_response
from .server import FileBrowserServer, main, setup_logging

__version__ = "1.0.0"
