"""
Local filesystem integration: file access and directory change events.
"""

from .local import LocalFileSystem
from .watcher import PollingDirectoryWatcher

__all__ = ["LocalFileSystem", "PollingDirectoryWatcher"]
