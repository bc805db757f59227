"""SBOM snapshot comparison module."""

from sbomhub.sbom.differ import SBOMDiffer, diff
from sbomhub.sbom.identity import IdentityMode, normalize, normalize_name, normalize_purl
from sbomhub.sbom.loader import components_from_document, load_components
from sbomhub.sbom.models import (
    DiffComponent,
    DiffResult,
    DiffUpdated,
    DiffVulnerability,
    SBOMFormat,
    SBOMSnapshot,
)

__all__ = [
    "DiffComponent",
    "DiffResult",
    "DiffUpdated",
    "DiffVulnerability",
    "IdentityMode",
    "SBOMDiffer",
    "SBOMFormat",
    "SBOMSnapshot",
    "components_from_document",
    "diff",
    "load_components",
    "normalize",
    "normalize_name",
    "normalize_purl",
]
