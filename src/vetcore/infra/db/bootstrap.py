from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.vetcore.config import settings
from src.vetcore.errors import ConfigurationError
from src.vetcore.infra.db.inmemory import (
    InMemoryMonitoringPlanRepository,
    InMemoryObservationRepository,
    InMemoryObservationTemplateRepository,
    InMemoryPatientRepository,
    InMemoryPrincipalRepository,
    InMemoryStore,
    InMemoryTenantRepository,
)
from src.vetcore.infra.db.models import Base
from src.vetcore.infra.db.repositories import (
    MonitoringPlanRepository,
    ObservationRepository,
    ObservationTemplateRepository,
    PatientRepository,
    PrincipalRepository,
    TenantRepository,
)
from src.vetcore.infra.db.session import create_sqlalchemy_engine, create_sqlalchemy_session_factory
from src.vetcore.infra.db.sql_patients import SqlPatientRepository
from src.vetcore.infra.db.sql_plans import SqlMonitoringPlanRepository
from src.vetcore.infra.db.sql_templates import SqlObservationRepository, SqlObservationTemplateRepository
from src.vetcore.infra.db.sql_tenants import SqlPrincipalRepository, SqlTenantRepository


logger = logging.getLogger("vetcore.infra.db")


@dataclass
class Repositories:
    tenants: TenantRepository
    principals: PrincipalRepository
    plans: MonitoringPlanRepository
    templates: ObservationTemplateRepository
    observations: ObservationRepository
    patients: PatientRepository


def create_inmemory_repositories(store: Optional[InMemoryStore] = None) -> Repositories:
    store = store or InMemoryStore()
    return Repositories(
        tenants=InMemoryTenantRepository(store),
        principals=InMemoryPrincipalRepository(store),
        plans=InMemoryMonitoringPlanRepository(store),
        templates=InMemoryObservationTemplateRepository(store),
        observations=InMemoryObservationRepository(store),
        patients=InMemoryPatientRepository(store),
    )


def init_sql_repositories(database_url: Optional[str] = None) -> Repositories:
    """Build SQL-backed repositories and create missing tables.

    Table creation stands in for migrations and is safe to run repeatedly.
    """

    db_url = database_url or settings.database_url
    if not db_url:
        raise ConfigurationError("DATABASE_URL must be set when SQL repositories are enabled")

    engine = create_sqlalchemy_engine(db_url)
    Base.metadata.create_all(engine)
    session_factory = create_sqlalchemy_session_factory(engine)
    logger.info("sql repositories initialised", extra={"dialect": engine.dialect.name})

    return Repositories(
        tenants=SqlTenantRepository(session_factory),
        principals=SqlPrincipalRepository(session_factory),
        plans=SqlMonitoringPlanRepository(session_factory),
        templates=SqlObservationTemplateRepository(session_factory),
        observations=SqlObservationRepository(session_factory),
        patients=SqlPatientRepository(session_factory),
    )


def create_repositories() -> Repositories:
    """Pick the repository backend from settings."""

    if settings.use_sql_repos:
        return init_sql_repositories()
    return create_inmemory_repositories()
