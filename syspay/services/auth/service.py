"""Auth service: accounts, sessions and capability checks.

The HTTP layer and the charge module talk to this object only through its
public methods, so it can be swapped for an external identity provider
without touching callers.
"""

from datetime import datetime, timedelta, timezone
from typing import Mapping, Sequence

from sqlalchemy import asc, desc, func, select

from syspay.common.config import settings
from syspay.common.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from syspay.common.logging import logger
from syspay.services.auth.access import ADMIN_ROLE, USER_ROLE, role_has_permissions
from syspay.services.auth.models import AuthSession, User
from syspay.services.auth.schemas import (
    CreateUserRequest,
    ListUsersQuery,
    SignInRequest,
    SignUpRequest,
    UpdateUserRequest,
)
from syspay.services.auth.security import hash_password, new_session_token, verify_password

_COLUMNS = {
    "name": User.name,
    "email": User.email,
    "document": User.document,
    "phoneNumber": User.phone_number,
    "createdAt": User.created_at,
    "updatedAt": User.updated_at,
    "banned": User.banned,
    "emailVerified": User.email_verified,
    "role": User.role,
}
_BOOLEAN_FIELDS = {"banned", "emailVerified"}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(
        "invalid filter value",
        errors=[{"field": "filterValue", "message": "expected true or false", "code": "INVALID_FILTER"}],
    )


class AuthService:
    """Owns user accounts and login sessions."""

    def __init__(
        self,
        session_factory,
        session_ttl_seconds: int = settings.session_expires_in_seconds,
        remember_me_ttl_seconds: int = settings.session_remember_me_seconds,
    ) -> None:
        self.session_factory = session_factory
        self.session_ttl = timedelta(seconds=session_ttl_seconds)
        self.remember_me_ttl = timedelta(seconds=remember_me_ttl_seconds)

    def _ensure_unique(
        self, db, email: str | None, document: str | None, exclude_id: str | None = None
    ) -> None:
        """Reject duplicate email/document before insert; the unique indexes stay authoritative."""

        checks = [("email", User.email, email), ("document", User.document, document)]
        for field, column, value in checks:
            if value is None:
                continue
            stmt = select(User.id).where(column == value)
            if exclude_id is not None:
                stmt = stmt.where(User.id != exclude_id)
            if db.execute(stmt).first() is not None:
                raise ConflictError(
                    f"{field} already in use",
                    errors=[
                        {"field": field, "message": f"{field} already in use", "code": "UNIQUE_CONSTRAINT_VIOLATION"}
                    ],
                )

    def _open_session(
        self, db, user: User, remember_me: bool, ip_address: str | None, user_agent: str | None
    ) -> AuthSession:
        ttl = self.remember_me_ttl if remember_me else self.session_ttl
        session = AuthSession(
            token=new_session_token(),
            user_id=user.id,
            expires_at=datetime.now(timezone.utc) + ttl,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        session.user = user
        db.add(session)
        return session

    def _new_user(self, req: SignUpRequest | CreateUserRequest, role: str) -> User:
        return User(
            name=req.name.strip(),
            email=req.email.lower(),
            password_hash=hash_password(req.password),
            role=role,
            document=req.document,
            phone_number=req.phone_number,
            image=str(req.image) if req.image else None,
            email_verified=False,
            banned=False,
        )

    def sign_up(
        self, req: SignUpRequest, ip_address: str | None = None, user_agent: str | None = None
    ) -> AuthSession:
        """Register a `user` account and sign it in immediately."""

        with self.session_factory() as db:
            self._ensure_unique(db, req.email.lower(), req.document)
            user = self._new_user(req, USER_ROLE)
            db.add(user)
            db.flush()
            session = self._open_session(db, user, req.remember_me, ip_address, user_agent)
            db.commit()
            logger.info("user registered user_id=%s", user.id)
            return session

    def sign_in(
        self, req: SignInRequest, ip_address: str | None = None, user_agent: str | None = None
    ) -> AuthSession:
        with self.session_factory() as db:
            user = db.execute(select(User).where(User.email == req.email.lower())).scalar_one_or_none()
            if user is None or not verify_password(req.password, user.password_hash):
                raise AuthenticationError("invalid email or password")
            if user.banned:
                raise PermissionDeniedError("user is banned")
            session = self._open_session(db, user, req.remember_me, ip_address, user_agent)
            db.commit()
            return session

    def sign_out(self, token: str) -> None:
        with self.session_factory() as db:
            session = db.execute(select(AuthSession).where(AuthSession.token == token)).scalar_one_or_none()
            if session is not None:
                db.delete(session)
                db.commit()

    def get_session(self, token: str | None) -> AuthSession:
        """Resolve a token to a live session with its user loaded."""

        if not token:
            raise AuthenticationError("not authenticated")
        with self.session_factory() as db:
            session = db.execute(select(AuthSession).where(AuthSession.token == token)).scalar_one_or_none()
            if session is None:
                raise AuthenticationError("invalid or expired session")
            if _as_utc(session.expires_at) <= datetime.now(timezone.utc):
                db.delete(session)
                db.commit()
                raise AuthenticationError("invalid or expired session")
            if session.user.banned:
                raise PermissionDeniedError("user is banned")
            return session

    def get_user(self, user_id: str) -> User | None:
        with self.session_factory() as db:
            return db.get(User, user_id)

    def user_has_permission(
        self, user_id: str, permissions: Mapping[str, Sequence[str]], role: str | None = None
    ) -> bool:
        """Does `user_id` hold every requested action?

        When `role` is given the user must also currently hold that role.
        """

        user = self.get_user(user_id)
        if user is None or user.banned:
            return False
        if role is not None and user.role != role:
            return False
        return role_has_permissions(user.role, permissions)

    def create_user(self, actor_id: str, req: CreateUserRequest, role: str = USER_ROLE) -> User:
        """Admin-side account creation without opening a session."""

        if not self.user_has_permission(actor_id, {"user": ["create"]}):
            raise PermissionDeniedError("not allowed to create users")
        with self.session_factory() as db:
            self._ensure_unique(db, req.email.lower(), req.document)
            user = self._new_user(req, role)
            db.add(user)
            db.commit()
            logger.info("user created by admin user_id=%s role=%s", user.id, role)
            return user

    def update_user(self, user_id: str, req: UpdateUserRequest) -> User:
        with self.session_factory() as db:
            user = db.get(User, user_id)
            if user is None:
                raise NotFoundError("user")
            self._ensure_unique(db, None, req.document, exclude_id=user_id)
            if req.name is not None:
                user.name = req.name.strip()
            if req.image is not None:
                user.image = str(req.image)
            if req.document is not None:
                user.document = req.document
            if req.phone_number is not None:
                user.phone_number = req.phone_number
            db.commit()
            return user

    def delete_user(self, user_id: str, password: str) -> None:
        """Delete the account after password confirmation; its sessions go with it."""

        with self.session_factory() as db:
            user = db.get(User, user_id)
            if user is None:
                raise NotFoundError("user")
            if not verify_password(password, user.password_hash):
                raise ValidationError(
                    "invalid password",
                    errors=[{"field": "password", "message": "invalid password", "code": "INVALID_PASSWORD"}],
                )
            db.delete(user)
            db.commit()
            logger.info("user deleted user_id=%s", user_id)

    def list_users(self, actor_id: str, query: ListUsersQuery) -> tuple[list[User], int]:
        """Admin listing with search, filter, sort and offset pagination.

        Returns one page plus the number of users matching the filters.
        """

        if not self.user_has_permission(actor_id, {"user": ["list"]}, role=ADMIN_ROLE):
            raise PermissionDeniedError("not allowed to list users")

        stmt = select(User)
        if query.search_value and query.search_field:
            column = func.lower(_COLUMNS[query.search_field])
            value = query.search_value.lower()
            if query.search_operator == "startsWith":
                stmt = stmt.where(column.startswith(value, autoescape=True))
            elif query.search_operator == "endsWith":
                stmt = stmt.where(column.endswith(value, autoescape=True))
            elif query.search_operator == "equals":
                stmt = stmt.where(column == value)
            else:
                stmt = stmt.where(column.contains(value, autoescape=True))

        if query.filter_field and query.filter_value is not None:
            column = _COLUMNS[query.filter_field]
            value = _parse_bool(query.filter_value) if query.filter_field in _BOOLEAN_FIELDS else query.filter_value
            op = query.filter_operator
            if op == "contains":
                stmt = stmt.where(func.lower(column).contains(str(value).lower(), autoescape=True))
            elif op == "ne":
                stmt = stmt.where(column != value)
            elif op == "lt":
                stmt = stmt.where(column < value)
            elif op == "lte":
                stmt = stmt.where(column <= value)
            elif op == "gt":
                stmt = stmt.where(column > value)
            elif op == "gte":
                stmt = stmt.where(column >= value)
            else:
                stmt = stmt.where(column == value)

        with self.session_factory() as db:
            total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
            order = desc if query.sort_direction == "desc" else asc
            sort_column = _COLUMNS[query.sort_by] if query.sort_by else User.created_at
            rows = db.execute(
                stmt.order_by(order(sort_column), User.id).offset(query.offset).limit(query.limit)
            ).scalars().all()
            return list(rows), total

    def ensure_admin(self, email: str | None, password: str | None, name: str = "Administrator") -> None:
        """Bootstrap the first admin account from configuration."""

        if not email or not password:
            return
        with self.session_factory() as db:
            existing = db.execute(select(User).where(User.email == email.lower())).scalar_one_or_none()
            if existing is not None:
                if existing.role != ADMIN_ROLE:
                    logger.warning("configured admin email belongs to a non-admin account user_id=%s", existing.id)
                return
            db.add(
                User(
                    name=name,
                    email=email.lower(),
                    password_hash=hash_password(password),
                    role=ADMIN_ROLE,
                    email_verified=True,
                    banned=False,
                )
            )
            db.commit()
            logger.info("bootstrap admin account created")
