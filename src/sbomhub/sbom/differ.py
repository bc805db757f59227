"""SBOM diff engine comparing two component inventories."""

import logging
from typing import Iterable, Optional

from sbomhub.lookup import NullLookup, VulnerabilityLookup
from sbomhub.models import Component, ValidationError, Vulnerability
from sbomhub.sbom.identity import IdentityMode, normalize
from sbomhub.sbom.models import (
    DiffComponent,
    DiffResult,
    DiffUpdated,
    DiffVulnerability,
    SBOMSnapshot,
)

logger = logging.getLogger(__name__)


class SBOMDiffer:
    """Compute added, removed and updated components between two snapshots.

    Vulnerability annotations come from the supplied lookup; the differ
    itself performs no I/O and keeps no state between calls.
    """

    def __init__(
        self,
        lookup: Optional[VulnerabilityLookup] = None,
        mode: IdentityMode = IdentityMode.NAME,
    ) -> None:
        """Initialize the differ.

        Args:
            lookup: Source of vulnerabilities per component version.
            mode: Identity matching mode.
        """
        self.lookup = lookup or NullLookup()
        self.mode = mode

    def diff(self, base: Iterable[Component], target: Iterable[Component]) -> DiffResult:
        """Compare a base inventory with a target inventory.

        Args:
            base: Components of the older snapshot.
            target: Components of the newer snapshot.

        Returns:
            DiffResult with partitions sorted by identity key.
        """
        base_map = self._index(base)
        target_map = self._index(target)
        cache: dict[tuple[str, str], list[Vulnerability]] = {}

        result = DiffResult()
        new_vuln_seen: set[tuple[str, str, str]] = set()

        for key in sorted(target_map.keys() - base_map.keys()):
            component = target_map[key]
            vulns = self._vulnerabilities(key, component, cache)
            result.added.append(
                DiffComponent(
                    name=component.name,
                    version=component.version,
                    license=component.license,
                    vulnerabilities=vulns,
                )
            )
            self._collect_new(result, key, component, vulns, set(), new_vuln_seen)

        for key in sorted(base_map.keys() - target_map.keys()):
            component = base_map[key]
            result.removed.append(
                DiffComponent(
                    name=component.name,
                    version=component.version,
                    license=component.license,
                )
            )

        for key in sorted(base_map.keys() & target_map.keys()):
            old = base_map[key]
            new = target_map[key]
            if old.version.strip() == new.version.strip():
                continue

            old_vulns = self._vulnerabilities(key, old, cache)
            new_vulns = self._vulnerabilities(key, new, cache)
            new_keys = {v.cve_key for v in new_vulns}
            old_keys = {v.cve_key for v in old_vulns}

            fixed: list[str] = []
            fixed_keys: set[str] = set()
            for vuln in old_vulns:
                if vuln.cve_key in new_keys or vuln.cve_key in fixed_keys:
                    continue
                fixed_keys.add(vuln.cve_key)
                fixed.append(vuln.id)

            result.updated.append(
                DiffUpdated(
                    name=old.name,
                    old_version=old.version,
                    new_version=new.version,
                    vulnerabilities_fixed=sorted(fixed),
                )
            )
            self._collect_new(result, key, new, new_vulns, old_keys, new_vuln_seen)

        result.new_vulnerabilities.sort(key=lambda v: (v.component, v.version, v.cve_id))

        logger.debug(
            f"SBOM diff: {result.added_count} added, {result.removed_count} removed, "
            f"{result.updated_count} updated, {result.new_vulnerabilities_count} new vulnerabilities"
        )
        return result

    def diff_snapshots(self, base: SBOMSnapshot, target: SBOMSnapshot) -> DiffResult:
        """Compare two snapshots of the same project.

        Raises:
            ValidationError: If the snapshots belong to different projects.
        """
        if base.project_id != target.project_id:
            raise ValidationError(
                "project_id",
                target.project_id,
                f"snapshots belong to different projects: {base.project_id!r} != {target.project_id!r}",
            )
        return self.diff(base.components, target.components)

    def _index(self, components: Iterable[Component]) -> dict[str, Component]:
        """Map identity key to component; later duplicates replace earlier ones."""
        index: dict[str, Component] = {}
        for component in components:
            key = normalize(component, self.mode)
            if key in index:
                logger.debug(f"Duplicate identity {key!r} in snapshot, keeping last entry")
            index[key] = component
        return index

    def _vulnerabilities(
        self,
        key: str,
        component: Component,
        cache: dict[tuple[str, str], list[Vulnerability]],
    ) -> list[Vulnerability]:
        cache_key = (key, component.version.strip())
        if cache_key not in cache:
            cache[cache_key] = list(self.lookup.lookup(component))
        return cache[cache_key]

    def _collect_new(
        self,
        result: DiffResult,
        key: str,
        component: Component,
        vulns: list[Vulnerability],
        already_flagged: set[str],
        seen: set[tuple[str, str, str]],
    ) -> None:
        """Record vulnerabilities of a new component version not flagged before."""
        for vuln in vulns:
            if vuln.cve_key in already_flagged:
                continue
            dedupe_key = (vuln.cve_key, key, component.version.strip())
            if dedupe_key in seen:
                continue
            seen.add(dedupe_key)
            result.new_vulnerabilities.append(
                DiffVulnerability(
                    cve_id=vuln.id,
                    severity=vuln.severity.value,
                    component=component.name,
                    version=component.version,
                )
            )


def diff(
    base: Iterable[Component],
    target: Iterable[Component],
    lookup: Optional[VulnerabilityLookup] = None,
    mode: IdentityMode = IdentityMode.NAME,
) -> DiffResult:
    """Convenience wrapper around ``SBOMDiffer.diff``."""
    return SBOMDiffer(lookup=lookup, mode=mode).diff(base, target)
