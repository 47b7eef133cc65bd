"""FastAPI dependencies resolving services and the calling session."""

from fastapi import Depends, Request

from syspay.common.config import settings
from syspay.common.logging import user_id_ctx
from syspay.services.auth.models import AuthSession
from syspay.services.auth.service import AuthService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_charge_service(request: Request):
    return request.app.state.charge_service


def session_token_from(request: Request) -> str | None:
    """Session cookie first, then `Authorization: Bearer <token>`."""

    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def get_current_session(
    request: Request, auth: AuthService = Depends(get_auth_service)
) -> AuthSession:
    """401 unless the request carries a live session."""

    session = auth.get_session(session_token_from(request))
    # Read back by the exception handlers, which run outside this worker thread.
    request.state.user_id = session.user_id
    return session


def bind_principal(session: AuthSession) -> str:
    # Binds the log context for the rest of this endpoint call.
    user_id_ctx.set(session.user_id)
    return session.user_id
