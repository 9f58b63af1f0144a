"""
Audit trail side-channel

Events are emitted as structured records on the ``app.audit`` logger.
Persistence belongs to whatever handler is attached there; a failing
handler never propagates into the operation being audited.
"""
import logging
from typing import Any, Dict, Optional

from app.utils.clock import utcnow

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("app.audit")


class AuditService:

    def record(
        self,
        action: str,
        resource: str,
        resource_id: Any,
        user_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        status: str = "success",
    ) -> None:
        entry = {
            "action": action,
            "resource": resource,
            "resource_id": str(resource_id) if resource_id is not None else None,
            "user_id": str(user_id) if user_id is not None else None,
            "details": details or {},
            "ip_address": ip_address,
            "user_agent": user_agent,
            "status": status,
            "timestamp": utcnow().isoformat(),
        }
        try:
            audit_logger.info(f"{action} {resource} {entry['resource_id']}", extra={"audit": entry})
        except Exception as e:
            logger.error(f"Audit log error: {str(e)}")


# Global instance
audit_service = AuditService()
