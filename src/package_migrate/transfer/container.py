"""Container image transfer by digest and by tag."""

from typing import List, Optional

from ..api.exceptions import ToolError
from ..models.context import ContainerSettings
from ..models.package import PackageVersion, VersionReference
from ..tools.skopeo import skopeo_copy
from .base import TransferPipeline
from .workspace import Workspace


def parse_versions(versions: List[PackageVersion]) -> List[VersionReference]:
    """Expand container versions into digest and tag references.

    Each version contributes its digest followed by every tag it carries.
    """
    references: List[VersionReference] = []
    for version in versions:
        references.append(VersionReference(reference=version.name, is_digest=True))
        references.extend(
            VersionReference(reference=tag, is_digest=False) for tag in version.tags
        )
    return references


def build_image_reference(
    registry: str, org: str, package_name: str, reference: VersionReference
) -> str:
    """Fully qualified ``docker://`` image reference."""
    return f'docker://{registry}/{org}/{package_name}{reference.separator}{reference}'


class ContainerTransferPipeline(TransferPipeline):
    """Copies container images registry to registry with skopeo.

    Copy failures are logged by category and reported as False. skopeo
    retries on its own, so failures are not raised back to the caller.
    """

    requires_workspace = False

    @property
    def settings(self) -> ContainerSettings:
        return self.context.settings

    def references(self, versions: List[PackageVersion]) -> List[VersionReference]:
        references = parse_versions(versions)
        digests = sum(1 for r in references if r.is_digest)
        self.logger.info(
            f'Total references to migrate: {len(references)} '
            f'({digests} digests, {len(references) - digests} tags)'
        )
        return references

    async def transfer_one(
        self,
        package_name: str,
        reference: VersionReference,
        workspace: Optional[Workspace],
        repository: Optional[str] = None,
    ) -> bool:
        source = self.context.source
        target = self.context.target
        label = f'{package_name}{reference.separator}{reference}'

        source_image = build_image_reference(
            source.registry_url, source.org, package_name, reference
        )
        target_image = build_image_reference(
            target.registry_url, target.org, package_name, reference
        )

        self.logger.info(f'Migrating {label} ({reference.reference_type})')
        self.logger.debug(f'Source image: {source_image}')
        self.logger.debug(f'Target image: {target_image}')

        try:
            await skopeo_copy(
                self.runner,
                self.settings.skopeo_image,
                source_image,
                target_image,
                source.token,
                target.token,
                retry_times=self.settings.retry_times,
            )
        except ToolError as e:
            details = self.runner.mask(e.stderr or str(e)).strip()
            if e.is_unauthorized:
                self.logger.error(f'Failed to authenticate with registry for {label}')
                self.logger.error(f'Error details: {details}')
            elif e.is_not_found:
                self.logger.warning(f'Image not found: {label}')
                self.logger.warning(f'Error details: {details}')
            else:
                self.logger.error(f'Skopeo command failed for {label}')
                self.logger.error(f'Error details: {details}')
            return False

        self.logger.info(f'Successfully migrated {label}')
        return True
