"""Upload backends: the remote store and an in-process stand-in."""

from chunkpilot.backends.base import UploadBackend
from chunkpilot.backends.http import HttpUploadBackend
from chunkpilot.backends.memory import InMemoryUploadBackend

__all__ = ["UploadBackend", "HttpUploadBackend", "InMemoryUploadBackend"]
