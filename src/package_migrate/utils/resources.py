"""Tracking and cleanup of temporary filesystem resources."""

import atexit
import shutil
import signal
import threading
from pathlib import Path
from typing import List, Set, Union

from loguru import logger

PathLike = Union[str, Path]


class ResourceTracker:
    """Registry of temporary paths that must be removed before the process exits.

    One tracker is created at the entry point and passed to every component
    that allocates temporary files or directories. ``release_all`` runs on
    normal interpreter exit and on SIGINT/SIGTERM once ``install_handlers``
    has been called.
    """

    def __init__(self):
        self._paths: Set[Path] = set()
        # Reentrant: the signal handler may run while the main thread holds it
        self._lock = threading.RLock()
        self._handlers_installed = False
        self.logger = logger.bind(component='ResourceTracker')

    def track(self, path: PathLike) -> PathLike:
        """Register a path for cleanup.

        Args:
            path: File or directory path

        Returns:
            The same path, unchanged
        """
        with self._lock:
            self._paths.add(Path(path))
        return path

    def is_tracked(self, path: PathLike) -> bool:
        with self._lock:
            return Path(path) in self._paths

    @property
    def tracked_paths(self) -> List[Path]:
        with self._lock:
            return sorted(self._paths)

    def release(self, path: PathLike) -> None:
        """Remove a path from disk and stop tracking it.

        Errors are logged, never raised.

        Args:
            path: File or directory path
        """
        target = Path(path)
        with self._lock:
            self._paths.discard(target)

        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
            self.logger.debug(f'Removed {target}')
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f'Failed to remove {target}: {e}')

    def release_all(self) -> None:
        """Release every tracked path."""
        with self._lock:
            # Children first so parents are removed after their contents
            paths = sorted(self._paths, key=lambda p: len(p.parts), reverse=True)

        if paths:
            self.logger.debug(f'Cleaning up {len(paths)} tracked resources')

        for path in paths:
            self.release(path)

    def install_handlers(self) -> None:
        """Run ``release_all`` on interpreter exit and on SIGINT/SIGTERM."""
        if self._handlers_installed:
            return

        atexit.register(self.release_all)

        def handle_signal(signum, frame):
            self.logger.info(f'Received signal {signum}, cleaning up temporary files')
            self.release_all()
            if signum == signal.SIGINT:
                raise KeyboardInterrupt
            raise SystemExit(128 + signum)

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)
        self._handlers_installed = True
