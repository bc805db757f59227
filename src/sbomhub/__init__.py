"""sbomhub - SBOM diffing, SSVC triage and remediation analytics."""

__version__ = "0.3.0"

from sbomhub.models import Component, Severity, ValidationError, Vulnerability
from sbomhub.sbom import diff
from sbomhub.ssvc import decide
from sbomhub.analytics import aggregate

__all__ = [
    "__version__",
    "aggregate",
    "decide",
    "diff",
    "Component",
    "Severity",
    "ValidationError",
    "Vulnerability",
]
