"""User profile and tenant user administration."""

from typing import List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import Role, UserStatus
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError, UnauthorizedError, ValidationError
from easybill.observability.logging import get_logger
from easybill.repositories.users import UserDirectory, UserRepository
from easybill.schemas.auth import ChangePasswordRequest, UpdateProfileRequest
from easybill.security.passwords import hash_password, verify_password
from easybill.storage.models import User


logger = get_logger(__name__)


class UserService:

    def __init__(self, session: AsyncSession, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id
        self.users = UserRepository(session, tenant_id)

    async def get(self, user_id: str) -> User:
        user = await self.users.get(user_id)
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        return user

    async def list_users(self, page: int = 0, size: int = 20) -> Tuple[List[User], int]:
        return await self.users.list_page(
            offset=page * size, limit=size, order_by=(User.username,)
        )

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> User:
        user = await self.get(user_id)
        changes = request.model_dump(exclude_unset=True)

        new_email = changes.get("email")
        if new_email and new_email.lower() != user.email.lower():
            if await UserDirectory(self.session).email_taken(new_email):
                raise BusinessError(ErrorCodes.EMAIL_EXISTS, "Email '%s' is already registered", new_email)

        for key, value in changes.items():
            setattr(user, key, value)
        return await self.users.save(user)

    async def change_password(self, user_id: str, request: ChangePasswordRequest) -> None:
        user = await self.get(user_id)
        if not verify_password(request.current_password, user.password_hash):
            raise UnauthorizedError("Current password is incorrect")
        if request.current_password == request.new_password:
            raise ValidationError(
                "New password must differ from the current password",
                field_errors={"new_password": "must differ from current password"},
            )
        user.password_hash = hash_password(request.new_password)
        await self.users.save(user)
        logger.info("Password changed", user_id=user.id)

    async def update_status(self, user_id: str, status: UserStatus) -> User:
        user = await self.get(user_id)
        user.status = status.value
        if status == UserStatus.ACTIVE:
            user.failed_login_attempts = 0
            user.account_locked_until = None
        return await self.users.save(user)

    async def add_role(self, user_id: str, role: Role) -> User:
        if role == Role.SUPER_ADMIN:
            raise ValidationError("Platform roles cannot be granted to tenant users")
        user = await self.get(user_id)
        if role.value not in (user.roles or []):
            # Reassign so the JSON column is flagged as modified
            user.roles = [*(user.roles or []), role.value]
        return await self.users.save(user)

    async def remove_role(self, user_id: str, role: Role) -> User:
        user = await self.get(user_id)
        user.roles = [r for r in (user.roles or []) if r != role.value]
        return await self.users.save(user)

    async def delete(self, user_id: str, acting_user_id: str) -> None:
        if user_id == acting_user_id:
            raise ValidationError("Users cannot delete their own account")
        await self.users.delete(await self.get(user_id))
