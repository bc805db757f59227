"""Data models for SBOM snapshots and diff results."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sbomhub.models import Component, Vulnerability


class SBOMFormat(Enum):
    """Formats an SBOM snapshot can originate from."""

    CYCLONEDX = "cyclonedx"
    SPDX = "spdx"


@dataclass(frozen=True)
class SBOMSnapshot:
    """An append-only, ordered component set of one project."""

    project_id: str
    version: int
    components: tuple[Component, ...] = ()
    format: SBOMFormat = SBOMFormat.CYCLONEDX
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[str] = None


@dataclass
class DiffComponent:
    """An added or removed component."""

    name: str
    version: str
    license: str = ""
    vulnerabilities: list[Vulnerability] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        data: dict = {"name": self.name, "version": self.version}
        if self.license:
            data["license"] = self.license
        if self.vulnerabilities:
            data["vulnerabilities"] = [v.to_dict() for v in self.vulnerabilities]
        return data


@dataclass
class DiffUpdated:
    """A component whose version changed between snapshots."""

    name: str
    old_version: str
    new_version: str
    vulnerabilities_fixed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        data: dict = {
            "name": self.name,
            "old_version": self.old_version,
            "new_version": self.new_version,
        }
        if self.vulnerabilities_fixed:
            data["vulnerabilities_fixed"] = list(self.vulnerabilities_fixed)
        return data


@dataclass
class DiffVulnerability:
    """A vulnerability introduced by the target snapshot."""

    cve_id: str
    severity: str
    component: str
    version: str

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "cve_id": self.cve_id,
            "severity": self.severity,
            "component": self.component,
            "version": self.version,
        }


@dataclass
class DiffResult:
    """Result of comparing two component inventories."""

    added: list[DiffComponent] = field(default_factory=list)
    removed: list[DiffComponent] = field(default_factory=list)
    updated: list[DiffUpdated] = field(default_factory=list)
    new_vulnerabilities: list[DiffVulnerability] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    @property
    def new_vulnerabilities_count(self) -> int:
        return len(self.new_vulnerabilities)

    @property
    def is_empty(self) -> bool:
        """True when the two inventories are equivalent."""
        return not (self.added or self.removed or self.updated)

    def to_dict(self) -> dict:
        """Convert to the diff API response shape."""
        return {
            "summary": {
                "added_count": self.added_count,
                "removed_count": self.removed_count,
                "updated_count": self.updated_count,
                "new_vulnerabilities_count": self.new_vulnerabilities_count,
            },
            "added": [c.to_dict() for c in self.added],
            "removed": [c.to_dict() for c in self.removed],
            "updated": [u.to_dict() for u in self.updated],
            "new_vulnerabilities": [v.to_dict() for v in self.new_vulnerabilities],
        }
