"""HTTP routes for charges."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from syspay.common.config import settings
from syspay.common.metrics import charge_requests_total
from syspay.common.responses import ApiListResponse, ApiResponse
from syspay.services.auth.dependencies import (
    bind_principal,
    get_auth_service,
    get_charge_service,
    get_current_session,
)
from syspay.services.auth.models import AuthSession
from syspay.services.auth.service import AuthService
from syspay.services.charges.models import PaymentMethod
from syspay.services.charges.permissions import (
    authorize_charge_read,
    require_permission,
    resolve_read_access,
    scope_list_filters,
)
from syspay.services.charges.schemas import (
    ChargeCreateRequest,
    ChargeFilters,
    ChargeResponse,
    ChargeStatusUpdate,
)
from syspay.services.charges.service import ChargeService
from syspay.services.charges.state_machine import ChargeStatus

router = APIRouter(prefix="/charges", tags=["charges"])


def _count(operation: str) -> None:
    charge_requests_total.labels(service=settings.service_name, operation=operation).inc()


def requires(action: str):
    """Dependency enforcing `payment:<action>` before the body is validated."""

    def check(
        session: AuthSession = Depends(get_current_session),
        auth: AuthService = Depends(get_auth_service),
    ) -> AuthSession:
        require_permission(auth, session.user_id, action)
        return session

    return check


@router.post("", status_code=201, response_model=ApiResponse[ChargeResponse])
def create_charge(
    req: ChargeCreateRequest,
    session: AuthSession = Depends(requires("create")),
    charges: ChargeService = Depends(get_charge_service),
):
    """Create a charge; a reused idempotency key is a 409."""

    bind_principal(session)
    _count("create")
    return ApiResponse[ChargeResponse].success("charge created successfully", charges.create(req))


@router.get("", response_model=ApiListResponse[ChargeResponse])
def list_charges(
    user_id: UUID | None = Query(default=None, alias="userId"),
    status: ChargeStatus | None = Query(default=None),
    payment_method: PaymentMethod | None = Query(default=None, alias="paymentMethod"),
    limit: int | None = Query(default=None, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    session: AuthSession = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
    charges: ChargeService = Depends(get_charge_service),
):
    principal_id = bind_principal(session)
    _count("list")
    filters = ChargeFilters(
        user_id=str(user_id) if user_id else None,
        status=status,
        payment_method=payment_method,
        limit=limit,
        offset=offset,
    )
    filters = scope_list_filters(auth, principal_id, filters)
    return ApiListResponse[ChargeResponse].success("charges retrieved successfully", charges.find_all(filters))


@router.get("/{charge_id}", response_model=ApiResponse[ChargeResponse])
def get_charge(
    charge_id: UUID,
    session: AuthSession = Depends(get_current_session),
    auth: AuthService = Depends(get_auth_service),
    charges: ChargeService = Depends(get_charge_service),
):
    """Admins read any charge, `payment:list` holders only their own."""

    principal_id = bind_principal(session)
    _count("get")
    access = resolve_read_access(auth, principal_id)
    authorize_charge_read(access, principal_id)
    charge = charges.find_one(str(charge_id))
    authorize_charge_read(access, principal_id, charge.user_id)
    return ApiResponse[ChargeResponse].success("charge retrieved successfully", charge)


@router.patch("/{charge_id}/status", response_model=ApiResponse[ChargeResponse])
def update_charge_status(
    charge_id: UUID,
    req: ChargeStatusUpdate,
    session: AuthSession = Depends(requires("update")),
    charges: ChargeService = Depends(get_charge_service),
):
    bind_principal(session)
    _count("update_status")
    return ApiResponse[ChargeResponse].success(
        "charge status updated successfully", charges.update_status(str(charge_id), req.status)
    )
