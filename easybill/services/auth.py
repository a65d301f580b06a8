# ==== AUTHENTICATION SERVICE ==== #

"""
Login, registration, self-service onboarding and token refresh.

Accounts lock for ``ACCOUNT_LOCK_MINUTES`` after ``MAX_FAILED_LOGIN_ATTEMPTS``
consecutive wrong passwords. Usernames and e-mail addresses are unique
across the platform so that login without a tenant is unambiguous.
"""

import datetime as dt
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import Role, SubscriptionPlan, UserStatus
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError, UnauthorizedError
from easybill.observability.logging import get_logger, log_business_event
from easybill.observability.metrics import auth_failures_total
from easybill.observability.tracing import get_tracer
from easybill.repositories.tenants import TenantRecordRepository
from easybill.repositories.users import UserDirectory, UserRepository
from easybill.schemas.auth import (
    LoginRequest,
    LoginResponse,
    OnboardRequest,
    RegisterRequest,
    UserInfo,
)
from easybill.schemas.tenant import TenantRequest
from easybill.security.passwords import hash_password, verify_password
from easybill.security.tokens import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from easybill.services.tenants import TenantService, generate_slug
from easybill.settings import settings
from easybill.storage.models import User, utcnow
from easybill.tenancy.context import tenant_scope


logger = get_logger(__name__)
tracer = get_tracer(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


def check_account_status(user: User, now: Optional[dt.datetime] = None) -> None:
    """Reject inactive, locked and temporarily locked accounts.

    An expired temporary lock is cleared in place.

    Raises:
        UnauthorizedError: ACCOUNT_INACTIVE or ACCOUNT_LOCKED
    """
    now = now or utcnow()
    if user.status == UserStatus.INACTIVE.value:
        raise UnauthorizedError("Account is inactive", ErrorCodes.ACCOUNT_INACTIVE)
    if user.status == UserStatus.LOCKED.value:
        raise UnauthorizedError("Account is locked", ErrorCodes.ACCOUNT_LOCKED)
    if user.account_locked_until is not None:
        if user.account_locked_until > now:
            raise UnauthorizedError(
                "Account is temporarily locked. Try again later", ErrorCodes.ACCOUNT_LOCKED
            )
        user.account_locked_until = None
        user.failed_login_attempts = 0


class AuthService:
    """Authentication flows for tenant users."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.directory = UserDirectory(session)

    # ==== LOGIN ==== #

    async def login(self, request: LoginRequest, tenant_id: Optional[str] = None) -> LoginResponse:
        """
        Authenticate a user by username or e-mail and issue tokens.

        Args:
            request (LoginRequest): Credentials
            tenant_id (Optional[str]): Tenant resolved for the request, if any

        Returns:
            LoginResponse: Access and refresh tokens with user details

        Raises:
            UnauthorizedError: Unknown user, bad password or blocked account
        """
        tenant_id = tenant_id or request.tenant_id

        with tracer.start_as_current_span("auth_login") as span:
            span.set_attribute("tenant_scoped", bool(tenant_id))

            if tenant_id:
                user = await self.directory.by_username(request.username, tenant_id)
            else:
                user = await self.directory.by_username(request.username)
                if user is None:
                    user = await self.directory.by_email(request.username)

            if user is None:
                auth_failures_total.labels(reason="unknown_user").inc()
                raise UnauthorizedError(INVALID_CREDENTIALS)

            with tenant_scope(user.tenant_id):
                check_account_status(user)

                if not verify_password(request.password, user.password_hash):
                    await self._register_failed_attempt(user)
                    raise UnauthorizedError(INVALID_CREDENTIALS)

                user.failed_login_attempts = 0
                user.account_locked_until = None
                user.last_login = utcnow()
                await self.session.flush()

            span.set_attribute("user_id", user.id)
            logger.info("User logged in", user_id=user.id, user_tenant=user.tenant_id)
            return self.issue_tokens(user)

    async def _register_failed_attempt(self, user: User) -> None:
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        auth_failures_total.labels(reason="bad_password").inc()

        if user.failed_login_attempts >= settings.MAX_FAILED_LOGIN_ATTEMPTS:
            user.account_locked_until = utcnow() + dt.timedelta(minutes=settings.ACCOUNT_LOCK_MINUTES)
            logger.warning(
                "Account locked after repeated failed logins",
                user_id=user.id,
                attempts=user.failed_login_attempts,
            )

        # The failure must persist even though the request ends in an error
        await self.session.commit()

    # ==== REGISTRATION ==== #

    async def register(self, request: RegisterRequest, tenant_id: Optional[str] = None) -> UserInfo:
        """Register a ROLE_USER account in an existing tenant."""
        tenant_id = tenant_id or request.tenant_id
        if not tenant_id:
            raise BusinessError(ErrorCodes.INVALID_REQUEST, "Tenant is required for registration")

        tenant = await TenantRecordRepository(self.session).get(tenant_id)
        if tenant is None:
            raise ResourceNotFoundError("Tenant", tenant_id, ErrorCodes.TENANT_NOT_FOUND)

        await self._ensure_unique(request.username, request.email)

        with tenant_scope(tenant.id):
            users = UserRepository(self.session, tenant.id)
            if tenant.max_users is not None and await users.count() >= tenant.max_users:
                raise BusinessError(
                    ErrorCodes.USER_LIMIT_REACHED,
                    "Tenant has reached its limit of %s users",
                    tenant.max_users,
                )

            user = await users.add(User(
                username=request.username,
                email=request.email,
                password_hash=hash_password(request.password),
                first_name=request.first_name,
                last_name=request.last_name,
                phone=request.phone,
                status=UserStatus.ACTIVE.value,
                roles=[Role.USER.value],
                failed_login_attempts=0,
            ))

        log_business_event("user_registered", tenant.id, user_id=user.id)
        return UserInfo.model_validate(user)

    async def _ensure_unique(self, username: str, email: str) -> None:
        if await self.directory.username_taken(username):
            raise BusinessError(ErrorCodes.USERNAME_EXISTS, "Username '%s' is already taken", username)
        if await self.directory.email_taken(email):
            raise BusinessError(ErrorCodes.EMAIL_EXISTS, "Email '%s' is already registered", email)

    # ==== ONBOARDING ==== #

    async def onboard(self, request: OnboardRequest) -> LoginResponse:
        """
        Create a tenant and its first administrator in one step.

        Args:
            request (OnboardRequest): Business and administrator details

        Returns:
            LoginResponse: Tokens for the new administrator
        """
        with tracer.start_as_current_span("auth_onboard") as span:
            slug = generate_slug(request.tenant_name)
            span.set_attribute("slug", slug)

            await self._ensure_unique(request.admin_username, request.admin_email)

            tenant = await TenantService(self.session).create(TenantRequest(
                name=request.tenant_name,
                slug=slug,
                description=f"Business Type: {request.business_type or 'Retail'}",
                plan=SubscriptionPlan.BASIC,
                contact_email=request.admin_email,
                contact_phone=request.contact_phone,
                address=request.address,
                city=request.city,
                state=request.state,
                country=request.country or "India",
                postal_code=request.postal_code,
                tax_number=request.gstin,
                max_users=5,
                max_stores=1,
            ))

            with tenant_scope(tenant.id):
                admin = await UserRepository(self.session, tenant.id).add(User(
                    username=request.admin_username,
                    email=request.admin_email,
                    password_hash=hash_password(request.admin_password),
                    first_name=request.admin_first_name,
                    last_name=request.admin_last_name,
                    phone=request.contact_phone,
                    status=UserStatus.ACTIVE.value,
                    roles=[Role.ADMIN.value, Role.USER.value],
                    failed_login_attempts=0,
                    last_login=utcnow(),
                ))

            log_business_event("tenant_onboarded", tenant.id, admin_user_id=admin.id, slug=slug)
            return self.issue_tokens(admin)

    # ==== TOKENS ==== #

    async def refresh(self, refresh_token: str) -> LoginResponse:
        """Exchange a refresh token for a new access token.

        The refresh token itself is returned unchanged.
        """
        claims = decode_token(refresh_token)
        if claims.get("type") != REFRESH_TOKEN:
            raise UnauthorizedError("Invalid token type", ErrorCodes.INVALID_TOKEN)

        user = await self.directory.by_id(claims.get("sub", ""))
        if user is None:
            raise UnauthorizedError("User not found", ErrorCodes.INVALID_TOKEN)
        check_account_status(user)

        return self.issue_tokens(user, refresh_token=refresh_token)

    @staticmethod
    def issue_tokens(user: User, refresh_token: Optional[str] = None) -> LoginResponse:
        roles = list(user.roles or [])
        return LoginResponse(
            access_token=create_access_token(user.id, user.tenant_id, roles, user.username),
            refresh_token=refresh_token or create_refresh_token(user.id),
            token_type="Bearer",
            expires_in=settings.ACCESS_TOKEN_TTL_SECONDS,
            user=UserInfo.model_validate(user),
        )
