"""API dependencies for dependency injection."""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from crmhub.config import settings
from crmhub.models.database import async_session_maker
from crmhub.models.user import PlanType, User
from crmhub.repositories.user_repo import UserRepository

# API Key security scheme
api_key_header = APIKeyHeader(name=settings.api_key_header, auto_error=False)


def api_error(status_code: int, error: str, message: str, **extra) -> HTTPException:
    """HTTPException whose detail carries a machine-readable code."""
    return HTTPException(
        status_code=status_code,
        detail={"error": error, "message": message, **extra},
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that outlives the request."""
    return async_session_maker


async def get_current_user(
    api_key: Annotated[str | None, Security(api_key_header)],
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the API key to an active user."""
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthorized", "message": "Missing API key"},
            headers={"WWW-Authenticate": "ApiKey"},
        )

    repo = UserRepository(db)
    key = await repo.get_api_key(api_key)
    if not key or not key.is_active or key.is_expired or not key.user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthorized", "message": "Invalid API key"},
            headers={"WWW-Authenticate": "ApiKey"},
        )

    await repo.touch_api_key(key)
    return key.user


def require_plan(plan: PlanType):
    """Dependency that admits users on ``plan`` or a higher tier."""

    async def check_plan(user: Annotated[User, Depends(get_current_user)]) -> User:
        if user.plan_type.level < plan.level:
            raise api_error(
                status.HTTP_403_FORBIDDEN,
                "subscription_required",
                f"This feature requires a {plan.value} subscription or higher",
                required_plan=plan.value,
                current_plan=user.plan_type.value,
            )
        return user

    return check_plan


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
ImportUser = Annotated[User, Depends(require_plan(PlanType(settings.import_required_plan)))]
