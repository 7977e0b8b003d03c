"""User, API key and workspace lookups."""

import hashlib
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from crmhub.config import settings
from crmhub.models.user import ApiKey, PlanType, User
from crmhub.models.workspace import Workspace


def hash_api_key(api_key: str) -> str:
    """Salted SHA-256 of an API key, as stored in ``api_keys.key_hash``."""
    return hashlib.sha256(f"{settings.api_key_salt}{api_key}".encode()).hexdigest()


class UserRepository:
    """Repository for users, their API keys and workspaces."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        email: str,
        full_name: str | None = None,
        plan_type: PlanType = PlanType.FREE,
    ) -> User:
        """Create a user."""
        user = User(email=email, full_name=full_name, plan_type=plan_type, is_active=True)

        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)

        return user

    async def create_api_key(self, user_id: UUID, api_key: str, name: str) -> ApiKey:
        """Store the hash of ``api_key`` for ``user_id``."""
        key = ApiKey(
            user_id=user_id,
            key_hash=hash_api_key(api_key),
            key_prefix=api_key[:10],
            name=name,
            is_active=True,
        )

        self.db.add(key)
        await self.db.flush()

        return key

    async def get_api_key(self, api_key: str) -> ApiKey | None:
        """Look up an API key (with its user) by the raw key."""
        result = await self.db.execute(
            select(ApiKey)
            .options(selectinload(ApiKey.user))
            .where(ApiKey.key_hash == hash_api_key(api_key))
        )
        return result.scalar_one_or_none()

    async def touch_api_key(self, key: ApiKey) -> None:
        """Record key usage."""
        key.last_used_at = datetime.now(timezone.utc)
        await self.db.flush()

    async def create_workspace(self, owner_id: UUID, name: str) -> Workspace:
        """Create a workspace owned by ``owner_id``."""
        workspace = Workspace(owner_id=owner_id, name=name)

        self.db.add(workspace)
        await self.db.flush()
        await self.db.refresh(workspace)

        return workspace

    async def get_workspace(self, workspace_id: UUID) -> Workspace | None:
        """Get a workspace by ID."""
        result = await self.db.execute(
            select(Workspace).where(Workspace.id == workspace_id)
        )
        return result.scalar_one_or_none()
