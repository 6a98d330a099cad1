"""Account operations: registration, verification, authentication, reset and CRUD.

Registration and forgot-password never reveal whether an address is known.
Emails are sent after the state change is committed; a failed send is logged
and does not undo the change.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from userhub.config import Settings
from userhub.models import User, UserRead, UserUpdate
from userhub.services.email import EmailService
from userhub.services.errors import DuplicateEmail, InvalidCredentials, NotFound
from userhub.services.passwords import hash_password, verify_password
from userhub.services.tokens import Clock, TokenLifecycle, utcnow

logger = logging.getLogger(__name__)


class AccountService:
    """Orchestrates the token lifecycle, the users table and outbound email."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        email: EmailService,
        clock: Clock = utcnow,
    ):
        self.session = session
        self.settings = settings
        self.email = email
        self.clock = clock
        self.tokens = TokenLifecycle(session, settings, clock=clock)

    async def register(self, email: str, username: str, password: str) -> None:
        """Create an unverified account and send its verification token.

        If the address is already registered, the owner gets an
        "already registered" email instead and the caller sees the same success.
        """
        if await self._find_by_email(email):
            await self._notify_already_registered(email)
            return

        user = User(
            email=email,
            username=username,
            password_hash=await self._hash(password),
        )
        token = await self.tokens.issue_verification_token(user)

        try:
            await self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same address
            await self.session.rollback()
            await self._notify_already_registered(email)
            return

        logger.info(f"Registered user {user.id}")
        sent = await self.email.send_verification_email(to=email, token=token)
        if not sent:
            logger.warning(f"Verification email to user {user.id} was not delivered")

    async def create(
        self, email: str, username: str, password: str, verified: bool = False
    ) -> UserRead:
        """Create a user directly, surfacing duplicate addresses.

        Unverified users get a verification token that can be delivered later.
        """
        if await self._find_by_email(email):
            raise DuplicateEmail(f'Email "{email}" is already taken')

        user = User(
            email=email,
            username=username,
            password_hash=await self._hash(password),
        )
        if verified:
            user.verified_at = self.clock()
        else:
            await self.tokens.issue_verification_token(user)

        self.session.add(user)
        await self._commit_unique(email)
        return UserRead.model_validate(user)

    async def verify_email(self, token: str) -> None:
        await self.tokens.consume_verification_token(token)

    async def authenticate(self, email: str, password: str) -> tuple[UserRead, str]:
        """Check credentials and issue a session token.

        Raises:
            InvalidCredentials: unknown email or wrong password
        """
        user = await self._find_by_email(email)
        if not user or not await verify_password(password, user.password_hash):
            raise InvalidCredentials()

        token = self.tokens.issue_session_token(user.id)
        return UserRead.model_validate(user), token

    async def forgot_password(self, email: str) -> None:
        """Open a password reset for the address, if it belongs to anyone."""
        user = await self._find_by_email(email)
        if not user:
            logger.debug("Password reset requested for unknown address")
            return

        token, _expires_at = await self.tokens.issue_reset_token(user)
        await self.session.commit()

        sent = await self.email.send_password_reset_email(
            to=user.email,
            token=token,
            valid_hours=self.settings.reset_token_expiration_hours,
        )
        if not sent:
            logger.warning(f"Password reset email to user {user.id} was not delivered")

    async def validate_reset_token(self, token: str) -> None:
        await self.tokens.validate_reset_token(token)

    async def reset_password(self, token: str, password: str) -> None:
        """Replace the password of the reset token's owner and close the reset."""
        # Reject unknown tokens before paying for a hash
        await self.tokens.validate_reset_token(token)
        password_hash = await self._hash(password)
        await self.tokens.consume_reset_token(token, password_hash)

    async def get_by_id(self, user_id: str) -> UserRead:
        return UserRead.model_validate(await self._get_user(user_id))

    async def get_all(self) -> list[UserRead]:
        result = await self.session.execute(select(User).order_by(User.email))
        return [UserRead.model_validate(user) for user in result.scalars().all()]

    async def update(self, user_id: str, params: UserUpdate) -> UserRead:
        """Apply a partial update.

        Raises:
            NotFound: no such user
            DuplicateEmail: the new email belongs to another user
        """
        user = await self._get_user(user_id)
        changes = params.changes()

        new_email = changes.get("email")
        if new_email and new_email != user.email:
            stmt = select(User.id).where(User.email == new_email, User.id != user.id)
            result = await self.session.execute(stmt)
            if result.scalar_one_or_none() is not None:
                raise DuplicateEmail(f'Email "{new_email}" is already taken')
            user.email = new_email

        if "username" in changes:
            user.username = changes["username"]
        if "password" in changes:
            user.password_hash = await self._hash(changes["password"])

        self.session.add(user)
        await self._commit_unique(user.email)
        await self.session.refresh(user)
        return UserRead.model_validate(user)

    async def delete(self, user_id: str) -> None:
        user = await self._get_user(user_id)
        await self.session.delete(user)
        await self.session.commit()
        logger.info(f"Deleted user {user_id}")

    async def _get_user(self, user_id: str) -> User:
        user = await self.session.get(User, user_id)
        if not user:
            raise NotFound()
        return user

    async def _find_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def _hash(self, password: str) -> str:
        return await hash_password(password, rounds=self.settings.bcrypt_rounds)

    async def _commit_unique(self, email: str) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateEmail(f'Email "{email}" is already taken') from e

    async def _notify_already_registered(self, email: str) -> None:
        sent = await self.email.send_already_registered_email(to=email)
        if not sent:
            logger.warning("Already-registered email was not delivered")
