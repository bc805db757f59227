"""Shared data models for components and vulnerabilities."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ValidationError(ValueError):
    """Input rejected at the boundary, naming the offending field."""

    def __init__(self, field: str, value: Any = None, message: Optional[str] = None) -> None:
        self.field = field
        self.value = value
        if message is None:
            message = f"invalid value for '{field}': {value!r}"
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to the structured 'invalid input' payload."""
        return {
            "error": "invalid_input",
            "field": self.field,
            "message": self.message,
        }


class Severity(Enum):
    """Vulnerability severity levels."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_cvss(cls, score: Optional[float]) -> "Severity":
        """Convert CVSS score to severity level."""
        if score is None:
            return cls.UNKNOWN
        if score >= 9.0:
            return cls.CRITICAL
        if score >= 7.0:
            return cls.HIGH
        if score >= 4.0:
            return cls.MEDIUM
        return cls.LOW

    @classmethod
    def parse(cls, value: "str | Severity", field: str = "severity") -> "Severity":
        """Parse a severity string case-insensitively.

        Raises:
            ValidationError: If the value is not a known severity.
        """
        if isinstance(value, Severity):
            return value
        if not isinstance(value, str):
            raise ValidationError(field, value)
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValidationError(field, value) from None

    @property
    def order(self) -> int:
        """Sort order (lower = more severe)."""
        return _SEVERITY_ORDER[self]


_SEVERITY_ORDER = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
    Severity.UNKNOWN: 4,
}

# Severities that carry SLO targets and analytics buckets
RATED_SEVERITIES = (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW)


@dataclass(frozen=True)
class Component:
    """A component entry of an SBOM snapshot.

    Components are immutable: a newer snapshot supersedes them, it never
    edits them.
    """

    name: str
    version: str = ""
    type: str = "library"
    license: str = ""
    purl: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Component":
        """Create a component from a dictionary.

        Accepts the plain inventory shape (``license``) as well as the
        CycloneDX ``licenses`` list and SPDX ``versionInfo`` /
        ``licenseConcluded`` keys.

        Raises:
            ValidationError: If the name is missing or blank.
        """
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name", name, "component name is required")

        version = data.get("version", data.get("versionInfo", "")) or ""
        return cls(
            name=name,
            version=str(version),
            type=data.get("type") or "library",
            license=_extract_license(data),
            purl=data.get("purl") or _spdx_purl(data),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "version": self.version,
            "type": self.type,
            "license": self.license,
            "purl": self.purl,
        }


def _extract_license(data: dict) -> str:
    if data.get("license"):
        return str(data["license"])

    # CycloneDX: [{"license": {"id": "MIT"}}, {"expression": "..."}]
    licenses = data.get("licenses") or []
    if not isinstance(licenses, list):
        raise ValidationError("licenses", licenses, "licenses must be a list")
    for index, entry in enumerate(licenses):
        if not isinstance(entry, dict):
            continue
        if entry.get("expression"):
            return str(entry["expression"])
        lic = entry.get("license") or {}
        if isinstance(lic, str):
            return lic
        if not isinstance(lic, dict):
            raise ValidationError(
                f"licenses[{index}].license", lic, "license must be an object or a string"
            )
        if lic.get("id") or lic.get("name"):
            return str(lic.get("id") or lic.get("name"))

    concluded = data.get("licenseConcluded")
    if concluded and concluded not in ("NOASSERTION", "NONE"):
        return concluded
    return ""


def _spdx_purl(data: dict) -> Optional[str]:
    for ref in data.get("externalRefs", []) or []:
        if isinstance(ref, dict) and ref.get("referenceType") == "purl":
            return ref.get("referenceLocator")
    return None


@dataclass(frozen=True)
class Vulnerability:
    """A vulnerability record affecting a component version.

    Read-only reference data supplied by a lookup (catalog or OSV).
    """

    id: str
    severity: Severity = Severity.UNKNOWN
    cvss_score: Optional[float] = None
    epss_score: Optional[float] = None
    title: str = ""
    fixed_version: Optional[str] = None
    references: tuple[str, ...] = field(default_factory=tuple)

    @property
    def cve_key(self) -> str:
        """Case-insensitive comparison key for the identifier."""
        return self.id.strip().upper()

    @classmethod
    def from_dict(cls, data: dict) -> "Vulnerability":
        """Create from dictionary, deriving severity from CVSS when absent."""
        vuln_id = data.get("cve_id") or data.get("id")
        if not isinstance(vuln_id, str) or not vuln_id.strip():
            raise ValidationError("cve_id", vuln_id, "vulnerability id is required")

        cvss = data.get("cvss_score")
        cvss = float(cvss) if cvss is not None else None
        severity_raw = data.get("severity")
        severity = Severity.parse(severity_raw) if severity_raw else Severity.from_cvss(cvss)
        epss = data.get("epss_score")

        return cls(
            id=vuln_id,
            severity=severity,
            cvss_score=cvss,
            epss_score=float(epss) if epss is not None else None,
            title=data.get("title", ""),
            fixed_version=data.get("fixed_version"),
            references=tuple(data.get("references", [])),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "cve_id": self.id,
            "severity": self.severity.value,
            "cvss_score": self.cvss_score,
            "epss_score": self.epss_score,
            "title": self.title,
            "fixed_version": self.fixed_version,
            "references": list(self.references),
        }
