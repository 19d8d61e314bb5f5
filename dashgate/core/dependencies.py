"""FastAPI Depends() helpers that bundle request metadata for auditing.

``require_actor`` / ``require_admin_actor`` wrap the auth dependencies and
add the client metadata the audit recorder stores alongside every entry.
``get_audit_recorder`` hands out the recorder instance owned by the app.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from .auth import Principal, require_admin, require_auth


@dataclass(frozen=True)
class RequestActor:
    """The Principal performing a request plus where it came from."""

    principal: Principal
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    route: Optional[str] = None
    method: Optional[str] = None

    @property
    def user_id(self) -> int:
        return self.principal.user_id

    @property
    def admin_id(self) -> Optional[int]:
        return self.principal.user_id if self.principal.is_admin else None


def client_ip(request: Request) -> str:
    """Best-effort client address, honouring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "unknown"


def actor_for(request: Request, principal: Principal) -> RequestActor:
    return RequestActor(
        principal=principal,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        route=request.url.path,
        method=request.method,
    )


def require_actor(request: Request, principal: Principal = Depends(require_auth)) -> RequestActor:
    return actor_for(request, principal)


def require_admin_actor(request: Request, principal: Principal = Depends(require_admin)) -> RequestActor:
    return actor_for(request, principal)


def get_audit_recorder(request: Request):
    """The process-wide AuditRecorder created at startup (see main.py)."""
    return request.app.state.audit_recorder
