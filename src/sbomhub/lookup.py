"""Vulnerability lookups consumed by the diff engine."""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol

from sbomhub.models import Component, ValidationError, Vulnerability

logger = logging.getLogger(__name__)


class VulnerabilityLookup(Protocol):
    """Returns the vulnerabilities affecting one component version."""

    def lookup(self, component: Component) -> list[Vulnerability]:
        ...


class NullLookup:
    """Lookup that knows no vulnerabilities."""

    def lookup(self, component: Component) -> list[Vulnerability]:
        return []


class StaticVulnerabilityLookup:
    """In-memory vulnerability catalog keyed by (name, version).

    Names are matched case-insensitively; versions are matched after
    trimming whitespace.
    """

    def __init__(
        self,
        entries: Optional[dict[tuple[str, str], Iterable[Vulnerability]]] = None,
    ) -> None:
        self._entries: dict[tuple[str, str], list[Vulnerability]] = {}
        for (name, version), vulns in (entries or {}).items():
            for vuln in vulns:
                self.add(name, version, vuln)

    def add(self, name: str, version: str, vulnerability: Vulnerability) -> None:
        """Register a vulnerability for a component version."""
        key = self._key(name, version)
        self._entries.setdefault(key, []).append(vulnerability)

    def lookup(self, component: Component) -> list[Vulnerability]:
        return list(self._entries.get(self._key(component.name, component.version), []))

    def __len__(self) -> int:
        return sum(len(v) for v in self._entries.values())

    @staticmethod
    def _key(name: str, version: str) -> tuple[str, str]:
        return (name.strip().lower(), (version or "").strip())

    @classmethod
    def from_records(cls, records: list[dict]) -> "StaticVulnerabilityLookup":
        """Build a catalog from flat records.

        Each record names ``component`` and ``version`` plus the
        vulnerability fields understood by ``Vulnerability.from_dict``.
        """
        catalog = cls()
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise ValidationError(f"vulnerabilities[{index}]", record, "record must be an object")
            name = record.get("component")
            if not isinstance(name, str) or not name.strip():
                raise ValidationError(f"vulnerabilities[{index}].component", name)
            catalog.add(name, str(record.get("version", "")), Vulnerability.from_dict(record))
        return catalog

    @classmethod
    def from_file(cls, path: Path) -> "StaticVulnerabilityLookup":
        """Load a catalog from a JSON file.

        The file holds either a list of records or an object with a
        ``vulnerabilities`` list.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValidationError("vulnerabilities", str(path), f"{path} is not valid JSON: {e}") from e
        if isinstance(data, dict):
            data = data.get("vulnerabilities", [])
        if not isinstance(data, list):
            raise ValidationError("vulnerabilities", type(data).__name__, "expected a list of records")

        catalog = cls.from_records(data)
        logger.debug(f"Loaded {len(catalog)} vulnerability records from {path}")
        return catalog
