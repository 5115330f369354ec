from dataclasses import dataclass
from typing import AsyncGenerator
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import async_session_maker
from app.core.security import decode_access_token
from app.core.exceptions import AppException
from app.models.user import User
from app.models.provider import CarProvider
from app.models.enums import Role


bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller: who they are and which role the token grants."""
    caller_id: UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin

    @property
    def is_provider(self) -> bool:
        return self.role == Role.provider


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def get_auth_context(
    db: AsyncSession = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthContext:
    """
    Resolve the bearer token into an AuthContext.
    Users and admins live in the users table, providers in car_providers;
    the token's role decides which table must hold the caller.
    """
    if credentials is None or not credentials.credentials:
        AppException().raise_401("Not authenticated")
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        AppException().raise_401("Could not validate credentials")

    subject = payload.get("sub")
    role_value = payload.get("role")
    if subject is None or role_value is None:
        AppException().raise_401("Could not validate credentials")

    try:
        caller_id = UUID(str(subject))
        role = Role(role_value)
    except (ValueError, TypeError):
        AppException().raise_401("Could not validate credentials")

    if role == Role.provider:
        provider = await db.get(CarProvider, caller_id)
        if provider is None:
            AppException().raise_401("Could not validate credentials")
        return AuthContext(caller_id=caller_id, role=role)

    user = await db.get(User, caller_id)
    if user is None:
        AppException().raise_401("Could not validate credentials")
    # A user token cannot claim admin rights the account does not have
    if role == Role.admin and user.role != Role.admin.value:
        AppException().raise_403("Not an admin user")
    return AuthContext(caller_id=caller_id, role=role)


async def get_current_customer(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """Callers that own a user account (users and admins)."""
    if auth.role not in (Role.user, Role.admin):
        AppException().raise_403("This action requires a user account")
    return auth


async def get_current_admin(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_admin:
        AppException().raise_403("Not an admin user")
    return auth


async def get_current_provider(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_provider:
        AppException().raise_403("This action requires a provider account")
    return auth
