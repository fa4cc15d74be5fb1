"""Package, version and reference models."""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PackageKind(str, Enum):
    """Package families supported by the migration.

    The values are the package types used by the hosting API.
    """

    NPM = 'npm'
    NUGET = 'nuget'
    CONTAINER = 'container'


class Package(BaseModel):
    """A package discovered in the source organization."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description='Package name, unique per org and kind')
    kind: Optional[PackageKind] = Field(
        default=None, alias='type', description='Package kind'
    )
    repository: Optional[str] = Field(
        default=None, description='Name of the linked repository'
    )

    @field_validator('kind', mode='before')
    @classmethod
    def normalize_kind(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v

    @field_validator('repository', mode='before')
    @classmethod
    def flatten_repository(cls, v):
        """Accept the API's ``{"name": ...}`` repository object."""
        if isinstance(v, dict):
            v = v.get('name')
        return v or None

    def to_payload(self) -> Dict[str, Any]:
        """Serialize in the discovery payload shape."""
        return {
            'name': self.name,
            'type': self.kind.value if self.kind else None,
            'repository': {'name': self.repository} if self.repository else None,
        }


class PackageVersion(BaseModel):
    """One published version of a package as returned by the API."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = Field(default=None, description='Version ID')
    name: str = Field(..., description='Version string or content digest')
    metadata: Dict[str, Any] = Field(default_factory=dict, description='Version metadata')

    @field_validator('metadata', mode='before')
    @classmethod
    def default_metadata(cls, v):
        return v or {}

    @property
    def tags(self) -> List[str]:
        """Container tags attached to this digest."""
        container = self.metadata.get('container') or {}
        return list(container.get('tags') or [])


class VersionReference(BaseModel):
    """One unit of transfer work: a version, or a container digest or tag."""

    model_config = ConfigDict(frozen=True)

    reference: str
    is_digest: bool = False

    @property
    def separator(self) -> str:
        return '@' if self.is_digest else ':'

    @property
    def reference_type(self) -> str:
        return 'digest' if self.is_digest else 'tag'

    def __str__(self) -> str:
        return self.reference


def parse_packages_input(payload: str, kind: Optional[PackageKind] = None) -> List[Package]:
    """Parse the JSON package list produced by discovery.

    Args:
        payload: JSON array of ``{name, type, repository}`` objects
        kind: Keep only entries of this kind (untyped entries are kept too)

    Returns:
        Parsed packages

    Raises:
        ValueError: If the payload is not a JSON array of package objects
    """
    try:
        items = json.loads(payload)
    except ValueError as e:
        raise ValueError(f'Failed to parse packages input: {e}')

    if not isinstance(items, list):
        label = f' for {kind.value} migration' if kind else ''
        raise ValueError(f'Packages input is not an array{label}')

    packages = [Package.model_validate(item) for item in items]

    if kind is not None:
        packages = [pkg for pkg in packages if pkg.kind in (None, kind)]

    return packages
