"""
Artifact writers.

A writer persists rendered artifacts. ``FileSystemWriter`` writes below an
output directory (absolute artifact paths, used by the in-place splice, are
written where they point). ``MemoryWriter`` keeps everything in a dict, for
dry runs and tests.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from ..domain.models import Artifact


logger = logging.getLogger(__name__)


class ArtifactWriter(ABC):
    """Destination for rendered artifacts. Implementations must be thread-safe."""

    @abstractmethod
    def write(self, artifact: Artifact) -> str:
        """Persist one artifact and return where it went."""
        pass


class FileSystemWriter(ArtifactWriter):
    """Writes artifacts to disk."""

    def __init__(self, output_dir):
        self.output_dir = Path(output_dir)

    def resolve(self, path: str) -> Path:
        # Joining an absolute path keeps it unchanged
        return self.output_dir / path

    def write(self, artifact: Artifact) -> str:
        target = self.resolve(artifact.path)
        target.parent.mkdir(parents=True, exist_ok=True)

        with open(target, "w", encoding="utf-8", newline="") as f:
            f.write(artifact.content)

        logger.debug(f"Generated file: {target}")
        return str(target)


class MemoryWriter(ArtifactWriter):
    """Collects artifacts in memory, keyed by path."""

    def __init__(self):
        self.files: Dict[str, str] = {}
        self._lock = threading.Lock()

    def write(self, artifact: Artifact) -> str:
        with self._lock:
            self.files[artifact.path] = artifact.content
        return artifact.path

    def get(self, path: str) -> Optional[str]:
        with self._lock:
            return self.files.get(path)


class PathLockRegistry:
    """Hands out one lock per output path; in-place rewrites hold it across read, render and write."""

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, path) -> threading.Lock:
        key = os.path.normpath(os.path.abspath(str(path)))
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock
