"""User lookups used by authentication and user administration."""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.repositories.base import TenantRepository
from easybill.storage.models import User


class UserRepository(TenantRepository[User]):
    model = User

    async def by_username(self, username: str) -> Optional[User]:
        return await self.first(User.username == username)

    async def by_email(self, email: str) -> Optional[User]:
        return await self.first(func.lower(User.email) == email.lower())


class UserDirectory:
    """Cross-tenant user lookups for login and uniqueness checks.

    Login may arrive without a tenant, so these queries deliberately ignore
    tenant boundaries. Nothing here returns data to a client directly.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _one(self, *criteria) -> Optional[User]:
        stmt = select(User).where(*criteria).limit(1).execution_options(skip_tenant_filter=True)
        return (await self.session.execute(stmt)).scalars().first()

    async def by_id(self, user_id: str) -> Optional[User]:
        return await self._one(User.id == user_id)

    async def by_username(self, username: str, tenant_id: Optional[str] = None) -> Optional[User]:
        if tenant_id:
            return await self._one(User.username == username, User.tenant_id == tenant_id)
        return await self._one(User.username == username)

    async def by_email(self, email: str) -> Optional[User]:
        return await self._one(func.lower(User.email) == email.lower())

    async def username_taken(self, username: str) -> bool:
        return await self.by_username(username) is not None

    async def email_taken(self, email: str) -> bool:
        return await self.by_email(email) is not None
