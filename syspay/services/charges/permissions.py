"""Permission gate for charge endpoints.

Capabilities live in the auth service; this module only decides which ones
to ask for and in what order.
"""

from enum import Enum
from typing import Mapping, Protocol, Sequence

from syspay.common.config import settings
from syspay.common.errors import PermissionDeniedError
from syspay.common.metrics import permission_denials_total
from syspay.services.auth.access import ADMIN_ROLE
from syspay.services.charges.schemas import ChargeFilters

_DENIED_MESSAGES = {
    "create": "not allowed to create charges",
    "list": "not allowed to view charges",
    "listAll": "not allowed to view charges",
    "update": "not allowed to update charges",
}


class PermissionOracle(Protocol):
    def user_has_permission(
        self, user_id: str, permissions: Mapping[str, Sequence[str]], role: str | None = None
    ) -> bool: ...


class ReadAccess(str, Enum):
    ADMIN = "ADMIN"
    OWNER = "OWNER"
    DENIED = "DENIED"


def _deny(action: str, message: str | None = None) -> PermissionDeniedError:
    permission_denials_total.labels(service=settings.service_name, permission=f"payment:{action}").inc()
    return PermissionDeniedError(message or _DENIED_MESSAGES[action])


def require_permission(oracle: PermissionOracle, principal_id: str, action: str) -> None:
    """Raise 403 unless the principal holds `payment:<action>`."""

    if not oracle.user_has_permission(principal_id, {"payment": [action]}):
        raise _deny(action)


def resolve_read_access(oracle: PermissionOracle, principal_id: str) -> ReadAccess:
    """Ordered decision list: admin scope first, then owner scope."""

    if oracle.user_has_permission(principal_id, {"payment": ["listAll"]}, role=ADMIN_ROLE):
        return ReadAccess.ADMIN
    if oracle.user_has_permission(principal_id, {"payment": ["list"]}):
        return ReadAccess.OWNER
    return ReadAccess.DENIED


def authorize_charge_read(access: ReadAccess, principal_id: str, owner_id: str | None = None) -> None:
    """Check one charge read; call with `owner_id=None` before loading the charge.

    DENIED fails without looking at ownership at all.
    """

    if access is ReadAccess.ADMIN:
        return
    if access is ReadAccess.OWNER and (owner_id is None or owner_id == principal_id):
        return
    raise _deny("list", "not allowed to view this charge")


def scope_list_filters(oracle: PermissionOracle, principal_id: str, filters: ChargeFilters) -> ChargeFilters:
    """Admins list anything; `payment:list` holders only their own charges."""

    if oracle.user_has_permission(principal_id, {"payment": ["listAll"]}):
        return filters
    if oracle.user_has_permission(principal_id, {"payment": ["list"]}):
        if filters.user_id is not None and filters.user_id != principal_id:
            raise _deny("listAll", "not allowed to view other users' charges")
        return ChargeFilters(
            user_id=principal_id,
            status=filters.status,
            payment_method=filters.payment_method,
            limit=filters.limit,
            offset=filters.offset,
        )
    raise _deny("list")
