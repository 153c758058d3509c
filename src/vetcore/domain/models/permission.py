from __future__ import annotations

from enum import Enum


class Permission(str, Enum):
    """Closed set of capability tags checked by the permission guard."""

    # Practice management
    MANAGE_PRACTICE_SETTINGS = "manage_practice_settings"
    VIEW_PRACTICE_STATISTICS = "view_practice_statistics"

    # Team management
    INVITE_TEAM_MEMBERS = "invite_team_members"
    MANAGE_TEAM_ROLES = "manage_team_roles"
    VIEW_TEAM_MEMBERS = "view_team_members"

    # Monitoring plans
    CREATE_MONITORING_PLAN = "create_monitoring_plan"
    EDIT_MONITORING_PLAN = "edit_monitoring_plan"
    VIEW_MONITORING_PLAN = "view_monitoring_plan"
    DELETE_MONITORING_PLAN = "delete_monitoring_plan"
    SHARE_MONITORING_PLAN = "share_monitoring_plan"

    # Patients
    CREATE_PATIENT = "create_patient"
    EDIT_PATIENT = "edit_patient"
    VIEW_PATIENT = "view_patient"
    DELETE_PATIENT = "delete_patient"

    # Observation templates and observations
    CREATE_SYMPTOM = "create_symptom"
    EDIT_SYMPTOM = "edit_symptom"
    VIEW_SYMPTOM = "view_symptom"
    DELETE_SYMPTOM = "delete_symptom"
    RECORD_OBSERVATION = "record_observation"

    # Reporting
    VIEW_REPORTS = "view_reports"
    EXPORT_REPORTS = "export_reports"

    # Subscriptions
    MANAGE_SUBSCRIPTIONS = "manage_subscriptions"


ALL_PERMISSIONS = frozenset(Permission)
