"""Per-package results and the aggregate migration report."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .package import PackageKind

NO_VERSIONS_REASON = 'No versions found'


class PackageResult(BaseModel):
    """Outcome of migrating every version of one package."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    package: str = Field(..., description='Package name')
    succeeded: int = Field(default=0, ge=0, description='Versions migrated')
    failed: int = Field(default=0, ge=0, description='Versions that failed')
    skipped: bool = Field(default=False, description='Package was not attempted')
    reason: Optional[str] = Field(default=None, description='Skip reason')

    # Container packages only
    digests_succeeded: Optional[int] = Field(default=None, alias='digestsSucceeded')
    digests_failed: Optional[int] = Field(default=None, alias='digestsFailed')
    tags_succeeded: Optional[int] = Field(default=None, alias='tagsSucceeded')
    tags_failed: Optional[int] = Field(default=None, alias='tagsFailed')

    @model_validator(mode='after')
    def check_counts(self) -> 'PackageResult':
        if self.skipped and (self.succeeded or self.failed):
            raise ValueError('Skipped packages cannot have version counts')

        if self.has_reference_counts:
            if self.succeeded != (self.digests_succeeded or 0) + (self.tags_succeeded or 0):
                raise ValueError('succeeded must equal digests + tags succeeded')
            if self.failed != (self.digests_failed or 0) + (self.tags_failed or 0):
                raise ValueError('failed must equal digests + tags failed')
        return self

    @property
    def has_reference_counts(self) -> bool:
        return self.digests_succeeded is not None

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed

    @classmethod
    def skip(cls, package: str, reason: str = NO_VERSIONS_REASON, container: bool = False):
        counters = {}
        if container:
            counters = dict(
                digests_succeeded=0, digests_failed=0, tags_succeeded=0, tags_failed=0
            )
        return cls(package=package, skipped=True, reason=reason, **counters)

    def to_output(self) -> Dict[str, Any]:
        """Machine-readable form with camelCase container counters."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def summary_line(self) -> str:
        if self.skipped:
            return f'{self.package}: SKIPPED ({self.reason or "No reason provided"})'

        line = (
            f'{self.package}: {self.succeeded} versions succeeded, '
            f'{self.failed} versions failed'
        )
        if self.has_reference_counts:
            digests_total = (self.digests_succeeded or 0) + (self.digests_failed or 0)
            tags_total = (self.tags_succeeded or 0) + (self.tags_failed or 0)
            line += (
                f' ({self.digests_succeeded} of {digests_total} digests, '
                f'{self.tags_succeeded} of {tags_total} tags)'
            )
        return line


class RunOutcome(str, Enum):
    """Overall disposition of a migration run."""

    NOTHING_TO_DO = 'nothing_to_do'
    SUCCESS = 'success'
    PARTIAL_FAILURE = 'partial_failure'
    HARD_FAILURE = 'hard_failure'


class AggregateReport(BaseModel):
    """All package results of one run plus derived totals."""

    kind: PackageKind
    results: List[PackageResult] = Field(default_factory=list)

    @property
    def total_packages(self) -> int:
        return len(self.results)

    @property
    def total_succeeded(self) -> int:
        return sum(r.succeeded for r in self.results)

    @property
    def total_failed(self) -> int:
        return sum(r.failed for r in self.results)

    @property
    def skipped_packages(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    def reference_totals(self) -> Optional[Dict[str, int]]:
        """Digest and tag totals; None unless this is a container report."""
        if self.kind != PackageKind.CONTAINER:
            return None
        return {
            'digests_succeeded': sum(r.digests_succeeded or 0 for r in self.results),
            'digests_failed': sum(r.digests_failed or 0 for r in self.results),
            'tags_succeeded': sum(r.tags_succeeded or 0 for r in self.results),
            'tags_failed': sum(r.tags_failed or 0 for r in self.results),
        }

    @property
    def outcome(self) -> RunOutcome:
        if not self.results:
            return RunOutcome.NOTHING_TO_DO
        if self.total_failed > 0 and self.total_succeeded == 0:
            return RunOutcome.HARD_FAILURE
        if self.total_failed > 0:
            return RunOutcome.PARTIAL_FAILURE
        return RunOutcome.SUCCESS

    @property
    def exit_code(self) -> int:
        return 1 if self.outcome == RunOutcome.HARD_FAILURE else 0

    def to_output(self) -> List[Dict[str, Any]]:
        return [r.to_output() for r in self.results]

    def statistics(self) -> List[tuple]:
        rows = [
            ('Total Packages', self.total_packages),
            ('Versions Succeeded', self.total_succeeded),
            ('Versions Failed', self.total_failed),
            ('Packages Skipped', self.skipped_packages),
        ]
        references = self.reference_totals()
        if references is not None:
            rows.extend(
                [
                    ('Digests Succeeded', references['digests_succeeded']),
                    ('Digests Failed', references['digests_failed']),
                    ('Tags Succeeded', references['tags_succeeded']),
                    ('Tags Failed', references['tags_failed']),
                ]
            )
        return rows

    def text_summary(self) -> str:
        if not self.results:
            return f'No {self.kind.value} packages to migrate'
        lines = ['Migration completed. Summary:']
        lines.extend(r.summary_line() for r in self.results)
        return '\n'.join(lines)
