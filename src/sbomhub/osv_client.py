"""OSV API client for vulnerability database queries."""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, Optional
from urllib.parse import unquote

import httpx

from sbomhub.models import Component, Severity, Vulnerability

logger = logging.getLogger(__name__)

# PURL type to OSV ecosystem
PURL_ECOSYSTEMS = {
    "pypi": "PyPI",
    "npm": "npm",
    "maven": "Maven",
    "nuget": "NuGet",
    "composer": "Packagist",
    "golang": "Go",
    "cargo": "crates.io",
    "gem": "RubyGems",
    "hex": "Hex",
    "pub": "Pub",
}


@dataclass
class CacheEntry:
    """Cache entry with TTL."""

    data: Any
    expires_at: float


def purl_to_package(purl: str) -> Optional[tuple[str, str]]:
    """Convert a package URL to an OSV (ecosystem, name) pair.

    Returns None for package types OSV does not index.
    """
    if not purl or not purl.startswith("pkg:"):
        return None

    body = purl[4:].split("#", 1)[0].split("?", 1)[0]
    purl_type, _, path = body.partition("/")
    ecosystem = PURL_ECOSYSTEMS.get(purl_type.lower())
    if ecosystem is None or not path:
        return None

    # Drop the version, keeping '@' of npm scopes
    at = path.rfind("@")
    if at > 0:
        path = path[:at]
    parts = [unquote(p) for p in path.split("/") if p]

    if ecosystem == "Maven" and len(parts) >= 2:
        return ecosystem, f"{parts[-2]}:{parts[-1]}"
    if ecosystem == "npm" and len(parts) >= 2:
        scope = parts[0] if parts[0].startswith("@") else f"@{parts[0]}"
        return ecosystem, f"{scope}/{parts[1]}"
    return ecosystem, "/".join(parts)


class OSVClient:
    """Client for the OSV (Open Source Vulnerabilities) API.

    Implements the vulnerability lookup used by the SBOM differ.

    Documentation: https://google.github.io/osv.dev/api/
    """

    BASE_URL = "https://api.osv.dev/v1"
    BATCH_SIZE = 1000  # Max queries per batch request

    def __init__(
        self,
        timeout: float = 30.0,
        cache_ttl: int = 300,
        base_url: Optional[str] = None,
        default_ecosystem: Optional[str] = None,
    ) -> None:
        """Initialize the OSV client.

        Args:
            timeout: HTTP request timeout in seconds.
            cache_ttl: Cache time-to-live in seconds.
            base_url: Override for the API root.
            default_ecosystem: Ecosystem for components without a purl;
                such components are skipped when None.
        """
        self._client = httpx.Client(timeout=timeout)
        self._cache: dict[str, CacheEntry] = {}
        self.cache_ttl = cache_ttl
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.default_ecosystem = default_ecosystem

    def lookup(self, component: Component) -> list[Vulnerability]:
        """Return vulnerabilities affecting a component version."""
        package = self._package_for(component)
        if package is None or not component.version.strip():
            return []
        ecosystem, name = package
        return self.query_package(name, component.version.strip(), ecosystem)

    def prefetch(self, components: Iterable[Component]) -> int:
        """Warm the cache for many components with batch queries.

        Returns:
            Number of package versions queried.
        """
        by_ecosystem: dict[str, list[tuple[str, str]]] = {}
        for component in components:
            package = self._package_for(component)
            if package is None or not component.version.strip():
                continue
            ecosystem, name = package
            by_ecosystem.setdefault(ecosystem, []).append((name, component.version.strip()))

        count = 0
        for ecosystem, packages in by_ecosystem.items():
            self.query_batch(packages, ecosystem)
            count += len(packages)
        return count

    def query_package(
        self, package: str, version: str, ecosystem: str = "PyPI"
    ) -> list[Vulnerability]:
        """Query vulnerabilities for a single package.

        Args:
            package: Package name.
            version: Package version.
            ecosystem: Package ecosystem (default: PyPI).

        Returns:
            List of vulnerabilities affecting this package version.
        """
        cache_key = self._cache_key(package, version, ecosystem)
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        payload = {
            "package": {"name": package, "ecosystem": ecosystem},
            "version": version,
        }

        try:
            response = self._client.post(f"{self.base_url}/query", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"OSV query failed for {ecosystem}/{package}@{version}: {e}")
            return []

        vulns = self._parse_vulnerabilities(data.get("vulns", []), package)
        self._set_cached(cache_key, vulns)

        return vulns

    def query_batch(
        self,
        packages: list[tuple[str, str]],
        ecosystem: str = "PyPI",
    ) -> dict[tuple[str, str], list[Vulnerability]]:
        """Query vulnerabilities for multiple packages at once.

        Args:
            packages: List of (package_name, version) tuples.
            ecosystem: Package ecosystem (default: PyPI).

        Returns:
            Dict mapping (normalized_name, version) to list of vulnerabilities.
        """
        results: dict[tuple[str, str], list[Vulnerability]] = {}

        if not packages:
            return results

        # Check cache first
        uncached_packages = []
        for name, version in packages:
            normalized = self._normalize_name(name)
            cached = self._get_cached(self._cache_key(name, version, ecosystem))
            if cached is not None:
                results[(normalized, version)] = cached
            else:
                uncached_packages.append((name, version))

        if not uncached_packages:
            return results

        queries = [
            {"package": {"name": name, "ecosystem": ecosystem}, "version": version}
            for name, version in uncached_packages
        ]

        for i in range(0, len(queries), self.BATCH_SIZE):
            batch = queries[i : i + self.BATCH_SIZE]
            batch_packages = uncached_packages[i : i + self.BATCH_SIZE]

            try:
                response = self._client.post(
                    f"{self.base_url}/querybatch",
                    json={"queries": batch},
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPError as e:
                logger.warning(f"OSV batch query failed ({len(batch)} packages): {e}")
                continue

            for idx, result in enumerate(data.get("results", [])):
                if idx >= len(batch_packages):
                    break

                name, version = batch_packages[idx]

                # Batch API only returns IDs, fetch full vulnerability data
                full_vulns = []
                for vuln_id in [v.get("id") for v in result.get("vulns", []) if v.get("id")]:
                    vuln_data = self.get_vulnerability(vuln_id)
                    if vuln_data:
                        full_vulns.append(vuln_data)

                vulns = self._parse_vulnerabilities(full_vulns, name)
                results[(self._normalize_name(name), version)] = vulns
                self._set_cached(self._cache_key(name, version, ecosystem), vulns)

        return results

    def get_vulnerability(self, vuln_id: str) -> Optional[dict[str, Any]]:
        """Get details for a specific vulnerability.

        Args:
            vuln_id: Vulnerability ID (e.g., CVE-2021-1234, GHSA-xxxx).

        Returns:
            Vulnerability details or None if not found.
        """
        cache_key = f"vuln:{vuln_id}"
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        try:
            response = self._client.get(f"{self.base_url}/vulns/{vuln_id}")
            response.raise_for_status()
            data = response.json()
            self._set_cached(cache_key, data)
            return data
        except httpx.HTTPError as e:
            logger.warning(f"OSV lookup of {vuln_id} failed: {e}")
            return None

    def _package_for(self, component: Component) -> Optional[tuple[str, str]]:
        if component.purl:
            return purl_to_package(component.purl)
        if self.default_ecosystem:
            return self.default_ecosystem, component.name
        return None

    def _parse_vulnerabilities(
        self, vulns: list[dict[str, Any]], package: str
    ) -> list[Vulnerability]:
        """Parse OSV vulnerability data into Vulnerability objects."""
        result = []

        for vuln in vulns:
            # Prefer the CVE alias over the OSV ID
            vuln_id = vuln.get("id", "")
            aliases = vuln.get("aliases", [])
            cve_id = next((a for a in aliases if a.startswith("CVE-")), vuln_id)

            result.append(
                Vulnerability(
                    id=cve_id,
                    severity=self._get_severity(vuln),
                    cvss_score=self._get_cvss_score(vuln),
                    title=vuln.get("summary", "Unknown vulnerability"),
                    fixed_version=self._get_fixed_version(vuln, package),
                    references=tuple(
                        ref.get("url", "") for ref in vuln.get("references", [])
                    ),
                )
            )

        return result

    def _get_severity(self, vuln: dict[str, Any]) -> Severity:
        """Extract severity from vulnerability data."""
        score = self._get_cvss_score(vuln)
        if score is not None:
            return Severity.from_cvss(score)

        db_specific = vuln.get("database_specific", {})
        severity_str = db_specific.get("severity", "").upper()
        if severity_str == "MODERATE":
            return Severity.MEDIUM
        if severity_str in ("CRITICAL", "HIGH", "MEDIUM", "LOW"):
            return Severity(severity_str)

        return Severity.UNKNOWN

    def _get_cvss_score(self, vuln: dict[str, Any]) -> Optional[float]:
        """Extract a numeric CVSS v3 score; vector strings yield None."""
        for sev in vuln.get("severity", []):
            if sev.get("type") == "CVSS_V3":
                score_str = sev.get("score", "")
                if not score_str or score_str.startswith("CVSS:"):
                    return None
                try:
                    return float(score_str)
                except ValueError:
                    return None
        return None

    def _get_fixed_version(
        self, vuln: dict[str, Any], package: str
    ) -> Optional[str]:
        """Extract fixed version from vulnerability data."""
        for affected in vuln.get("affected", []):
            pkg = affected.get("package", {})
            if pkg.get("name", "").lower() == package.lower():
                for range_info in affected.get("ranges", []):
                    for event in range_info.get("events", []):
                        if "fixed" in event:
                            return event["fixed"]
        return None

    def _normalize_name(self, name: str) -> str:
        """Normalize package name for cache key matching."""
        return name.lower().replace("-", "_").replace(".", "_")

    def _cache_key(self, package: str, version: str, ecosystem: str) -> str:
        """Generate cache key for a package query."""
        key_str = f"{ecosystem}:{self._normalize_name(package)}:{version}"
        return hashlib.sha256(key_str.encode()).hexdigest()[:16]

    def _get_cached(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        entry = self._cache.get(key)
        if entry is None:
            return None
        if time.time() > entry.expires_at:
            del self._cache[key]
            return None
        return entry.data

    def _set_cached(self, key: str, value: Any) -> None:
        """Set value in cache with TTL."""
        self._cache[key] = CacheEntry(
            data=value,
            expires_at=time.time() + self.cache_ttl,
        )

    def clear_cache(self) -> None:
        """Clear the vulnerability cache."""
        self._cache.clear()

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "OSVClient":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
