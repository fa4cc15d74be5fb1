"""Per-version temporary workspaces."""

import re
import shutil
from pathlib import Path

from ..utils.resources import ResourceTracker

_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def workspace_name(package_name: str, reference: str) -> str:
    """Filesystem-safe directory name for one package version."""
    raw = f'{package_name}-{reference}'
    return _UNSAFE_CHARS.sub('_', raw).strip('._') or 'workspace'


class Workspace:
    """A temporary directory owned by one version transfer."""

    def __init__(self, path: Path, tracker: ResourceTracker):
        self.path = path
        self.tracker = tracker

    @classmethod
    def create(
        cls, base_dir: Path, package_name: str, reference: str, tracker: ResourceTracker
    ) -> 'Workspace':
        """Create an empty workspace, discarding leftovers from earlier runs.

        Args:
            base_dir: Per-run temporary directory
            package_name: Package being migrated
            reference: Version, digest or tag
            tracker: Resource tracker the directory is registered with
        """
        workspace = cls(Path(base_dir) / workspace_name(package_name, reference), tracker)
        workspace.reset()
        return workspace

    def reset(self) -> None:
        """Remove everything in the workspace and recreate it empty."""
        if self.path.exists():
            shutil.rmtree(self.path)
        self.path.mkdir(parents=True)
        self.tracker.track(self.path)

    def release(self) -> None:
        self.tracker.release(self.path)

    def __truediv__(self, other) -> Path:
        return self.path / other

    def __repr__(self) -> str:
        return f'Workspace({str(self.path)!r})'
