from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from src.vetcore.tenancy import get_current_tenant

logger = logging.getLogger("audit")


@dataclass
class AuditEvent:
    """Structured representation of an audit event.

    Keeps the payload to identifiers and outcomes. Observation values and
    free-text notes never end up here.
    """

    timestamp: str
    action: str
    resource_type: str
    outcome: str = "success"
    resource_id: Optional[str] = None
    tenant_id: Optional[str] = None
    subject: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


class AuditService:
    def log_event(
        self,
        *,
        action: str,
        resource_type: str,
        outcome: str = "success",
        resource_id: Optional[str] = None,
        subject: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log a structured audit event.

        - `action`: high-level verb, e.g. "authorize", "activate", "change_role".
        - `resource_type`: coarse type, e.g. "monitoring_plan", "principal".
        - `outcome`: "success" or "denied".
        - `resource_id`: stable identifier (UUID string) when available.
        - `subject`: principal id of the caller. Inferred from the request
          context when omitted.
        - `extra`: optional small dict of non-PHI metadata (tier, counts).
        """

        if subject is None:
            from src.vetcore.security import get_current_subject

            subject = get_current_subject()

        tenant_id = get_current_tenant()
        event = AuditEvent(
            timestamp=datetime.now(timezone.utc).isoformat(),
            action=action,
            resource_type=resource_type,
            outcome=outcome,
            resource_id=resource_id,
            tenant_id=str(tenant_id) if tenant_id is not None else None,
            subject=subject,
            extra=extra,
        )

        try:
            logger.info(json.dumps(asdict(event)))
        except TypeError:
            # Something in extra is not JSON serializable; keep the event
            # and drop the metadata.
            safe_event = asdict(event)
            safe_event["extra"] = None
            logger.info(json.dumps(safe_event))


audit_service = AuditService()
