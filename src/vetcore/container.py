from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.vetcore.config import Settings, settings
from src.vetcore.infra.db.bootstrap import Repositories, create_repositories
from src.vetcore.services.access.role_profiles import RoleProfile, load_role_profile
from src.vetcore.services.identity.service import IdentityResolver
from src.vetcore.services.monitoring_plans.service import MonitoringPlanService
from src.vetcore.services.observations.service import ObservationService
from src.vetcore.services.patients.service import PatientService
from src.vetcore.services.practices.service import PracticeService
from src.vetcore.services.subscriptions.service import SubscriptionService
from src.vetcore.services.team.service import TeamService
from src.vetcore.services.templates.bootstrap import TemplateBootstrap
from src.vetcore.services.templates.service import TemplateService

logger = logging.getLogger("vetcore.container")


@dataclass
class ServiceContainer:
    repositories: Repositories
    role_profile: RoleProfile
    identity: IdentityResolver
    practices: PracticeService
    subscriptions: SubscriptionService
    team: TeamService
    plans: MonitoringPlanService
    patients: PatientService
    templates: TemplateService
    bootstrap: TemplateBootstrap
    observations: ObservationService


def build_services(
    repositories: Repositories,
    *,
    role_profile: Optional[RoleProfile] = None,
    config: Optional[Settings] = None,
) -> ServiceContainer:
    """Wire every service over one repository set."""

    # Imported here because security depends on this module for get_services.
    from src.vetcore.security import JwtTokenVerifier

    config = config or settings
    role_profile = role_profile or load_role_profile(config.role_profile_path)
    repos = repositories

    bootstrap = TemplateBootstrap(repos.templates, repos.plans)
    return ServiceContainer(
        repositories=repos,
        role_profile=role_profile,
        identity=IdentityResolver(
            JwtTokenVerifier(config.jwt_secret_key, config.jwt_algorithm),
            repos.principals,
            repos.tenants,
            role_profile,
        ),
        practices=PracticeService(repos.tenants, repos.principals, config.trial_period_days),
        subscriptions=SubscriptionService(repos.tenants, repos.plans, config.trial_period_days),
        team=TeamService(repos.principals),
        plans=MonitoringPlanService(repos.plans, repos.templates, repos.patients),
        patients=PatientService(repos.patients),
        templates=TemplateService(repos.templates, repos.plans, repos.observations),
        bootstrap=bootstrap,
        observations=ObservationService(
            repos.observations, repos.templates, repos.plans, repos.patients, bootstrap
        ),
    )


_services: Optional[ServiceContainer] = None


def get_services() -> ServiceContainer:
    """Return the process-wide container, building it on first use."""

    global _services
    if _services is None:
        _services = build_services(create_repositories())
        logger.info("service container built")
    return _services


def set_services(services: Optional[ServiceContainer]) -> None:
    """Replace the process-wide container; tests pass a fresh one per case."""

    global _services
    _services = services
