"""Component identity keys used to match components across snapshots."""

import re
from enum import Enum

from sbomhub.models import Component, ValidationError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


class IdentityMode(Enum):
    """How two components are recognised as the same identity."""

    NAME = "name"  # exact name
    NORMALIZED = "normalized"  # case/punctuation-insensitive name
    PURL = "purl"  # package URL without version, name fallback

    @classmethod
    def parse(cls, value: "str | IdentityMode") -> "IdentityMode":
        """Parse an identity mode name."""
        if isinstance(value, IdentityMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError("identity_mode", value) from None


def normalize_name(name: str) -> str:
    """Lowercase a name and collapse runs of non-alphanumerics to one space.

    >>> normalize_name("@angular/core")
    'angular core'
    """
    name = _NON_ALNUM.sub(" ", name.strip().lower())
    return name.strip()


def normalize_purl(purl: str) -> str:
    """Lowercase a package URL and strip its ``@version``, qualifiers and subpath."""
    purl = purl.strip().lower().split("#", 1)[0].split("?", 1)[0]
    # Version follows '@' in the last path segment
    at = purl.find("@", purl.rfind("/") + 1)
    if at > 0:
        return purl[:at]
    return purl


def normalize(component: Component, mode: IdentityMode = IdentityMode.NAME) -> str:
    """Return the identity key of a component.

    Version never takes part in the key: a version change of the same
    identity is an update, not a new component.
    """
    if mode is IdentityMode.NAME:
        return component.name
    if mode is IdentityMode.PURL and component.purl and component.purl.strip():
        return normalize_purl(component.purl)
    return normalize_name(component.name)
