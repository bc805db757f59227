"""Read component inventories from JSON files."""

import json
from pathlib import Path

from sbomhub.models import Component, ValidationError
from sbomhub.sbom.models import SBOMFormat


def detect_format(document: dict) -> SBOMFormat:
    """Guess the originating format of a component document."""
    if "spdxVersion" in document or "packages" in document:
        return SBOMFormat.SPDX
    return SBOMFormat.CYCLONEDX


def components_from_document(document: "dict | list") -> list[Component]:
    """Extract components from a decoded JSON document.

    Accepts a bare list of components, a CycloneDX-shaped object with a
    ``components`` list, or an SPDX-shaped object with a ``packages`` list.
    Entries are taken as-is, in document order.

    Raises:
        ValidationError: If the document has no component list or an entry
            has no name.
    """
    if isinstance(document, list):
        entries = document
        field_name = "components"
    elif isinstance(document, dict):
        if detect_format(document) is SBOMFormat.SPDX:
            entries = document.get("packages", [])
            field_name = "packages"
        else:
            entries = document.get("components", [])
            field_name = "components"
    else:
        raise ValidationError("components", type(document).__name__, "expected an object or a list")

    if not isinstance(entries, list):
        raise ValidationError(field_name, type(entries).__name__, f"'{field_name}' must be a list")

    components = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValidationError(f"{field_name}[{index}]", entry, "component must be an object")
        try:
            components.append(Component.from_dict(entry))
        except ValidationError as e:
            raise ValidationError(f"{field_name}[{index}].{e.field}", e.value, e.message) from e

    return components


def load_components(path: Path) -> list[Component]:
    """Load components from a JSON file."""
    content = Path(path).read_text(encoding="utf-8")
    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValidationError("document", str(path), f"{path} is not valid JSON: {e}") from e
    return components_from_document(document)
