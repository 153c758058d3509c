"""Role -> permission table.

The table is an immutable value built once at start-up and handed to the
identity resolver. The tenant-owner override is not encoded here; see
``services.access.guard.resolve_permissions``.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional

from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Role
from src.vetcore.errors import ConfigurationError

logger = logging.getLogger("vetcore.access")


class RoleProfile:
    """Read-only mapping of role to its permission set."""

    def __init__(self, entries: Mapping[Role, Iterable[Permission]]) -> None:
        self._entries: Mapping[Role, FrozenSet[Permission]] = MappingProxyType(
            {Role(role): frozenset(perms) for role, perms in entries.items()}
        )

    def permissions_for(self, role: Role) -> Optional[FrozenSet[Permission]]:
        """Return the configured set, or None when the role has no entry."""

        return self._entries.get(role)

    def __contains__(self, role: object) -> bool:
        return role in self._entries

    def __repr__(self) -> str:
        return f"RoleProfile(roles={sorted(r.value for r in self._entries)})"


_CLINICIAN = (
    Permission.VIEW_PRACTICE_STATISTICS,
    Permission.VIEW_TEAM_MEMBERS,
    Permission.CREATE_MONITORING_PLAN,
    Permission.EDIT_MONITORING_PLAN,
    Permission.VIEW_MONITORING_PLAN,
    Permission.SHARE_MONITORING_PLAN,
    Permission.CREATE_PATIENT,
    Permission.EDIT_PATIENT,
    Permission.VIEW_PATIENT,
    Permission.CREATE_SYMPTOM,
    Permission.EDIT_SYMPTOM,
    Permission.VIEW_SYMPTOM,
    Permission.DELETE_SYMPTOM,
    Permission.RECORD_OBSERVATION,
    Permission.VIEW_REPORTS,
    Permission.EXPORT_REPORTS,
)

_TECHNICIAN = (
    Permission.VIEW_TEAM_MEMBERS,
    Permission.VIEW_MONITORING_PLAN,
    Permission.SHARE_MONITORING_PLAN,
    Permission.VIEW_PATIENT,
    Permission.EDIT_PATIENT,
    Permission.VIEW_SYMPTOM,
    Permission.RECORD_OBSERVATION,
    Permission.VIEW_REPORTS,
    Permission.EXPORT_REPORTS,
)

_ASSISTANT = (
    Permission.VIEW_TEAM_MEMBERS,
    Permission.VIEW_MONITORING_PLAN,
    Permission.VIEW_PATIENT,
    Permission.VIEW_SYMPTOM,
    Permission.RECORD_OBSERVATION,
    Permission.VIEW_REPORTS,
)

_FRONT_DESK = (
    Permission.VIEW_TEAM_MEMBERS,
    Permission.VIEW_MONITORING_PLAN,
    Permission.CREATE_PATIENT,
    Permission.EDIT_PATIENT,
    Permission.VIEW_PATIENT,
    Permission.VIEW_SYMPTOM,
    Permission.VIEW_REPORTS,
)

# The owner has no entry on purpose: its effective set comes from the
# override rule, not from the table.
DEFAULT_ROLE_PROFILE = RoleProfile(
    {
        Role.CLINICIAN: _CLINICIAN,
        Role.TECHNICIAN: _TECHNICIAN,
        Role.ASSISTANT: _ASSISTANT,
        Role.FRONT_DESK: _FRONT_DESK,
    }
)


def load_role_profile(path: Optional[Path] = None) -> RoleProfile:
    """Load the role table from a JSON file, or return the built-in one.

    The file maps role names to lists of permission values, e.g.
    ``{"CLINICIAN": ["create_patient", "view_patient"]}``. Unknown role or
    permission names are a deployment defect and raise ConfigurationError.
    """

    if path is None:
        return DEFAULT_ROLE_PROFILE

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Cannot read role profile from {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError("Role profile must be a JSON object of role -> permission list")

    entries = {}
    for role_name, perm_names in raw.items():
        try:
            role = Role(role_name)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown role in role profile: {role_name!r}") from exc
        if not isinstance(perm_names, list):
            raise ConfigurationError(f"Permissions for {role_name} must be a list")
        try:
            entries[role] = [Permission(name) for name in perm_names]
        except ValueError as exc:
            raise ConfigurationError(f"Unknown permission for {role_name}: {exc}") from exc

    logger.info("loaded role profile", extra={"path": str(path), "roles": len(entries)})
    return RoleProfile(entries)
