"""Account registration and login."""

import asyncio
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.passwords import KEY_LENGTH, SALT_BYTES, SEPARATOR, hash_password, verify_password
from auth.tokens import SessionTokenEngine
from core.errors import (
    InvalidCredentials,
    InvalidToken,
    InvalidUsername,
    UsernameTaken,
    WeakPassword,
)
from models import Account

logger = logging.getLogger(__name__)

# Well-formed stand-in checked when the username is unknown, so a miss costs
# the same scrypt derivation as a wrong password
_UNKNOWN_USER_HASH = f"{'0' * SALT_BYTES * 2}{SEPARATOR}{'0' * KEY_LENGTH * 2}"


class AccountService:
    """Creates accounts and issues session tokens for them."""

    def __init__(
        self,
        session: AsyncSession,
        engine: SessionTokenEngine,
        username_min_length: int = 3,
        password_min_length: int = 8,
    ) -> None:
        self.session = session
        self.engine = engine
        self.username_min_length = username_min_length
        self.password_min_length = password_min_length

    async def get_by_username(self, username: str) -> Optional[Account]:
        stmt = select(Account).where(Account.username == username)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, account_id: str) -> Account:
        """Load an account by id; a token for a vanished account is invalid."""
        account = await self.session.get(Account, account_id)
        if account is None:
            raise InvalidToken()
        return account

    async def register(self, username: str, password: str) -> tuple[Account, str]:
        """Create an account and return it with a fresh session token."""
        username = username.strip()
        if len(username) < self.username_min_length:
            raise InvalidUsername(
                f"Username must be at least {self.username_min_length} characters"
            )
        if len(password) < self.password_min_length:
            raise WeakPassword(
                f"Password must be at least {self.password_min_length} characters"
            )

        if await self.get_by_username(username) is not None:
            raise UsernameTaken()

        password_hash = await asyncio.to_thread(hash_password, password)
        account = Account(username=username, password_hash=password_hash)
        self.session.add(account)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent registration
            raise UsernameTaken() from e

        logger.info("Registered account %s", account.id)
        return account, self.engine.issue(account.id)

    async def login(self, username: str, password: str) -> tuple[Account, str]:
        """Check credentials and return the account with a session token."""
        username = username.strip()
        if not username or not password:
            raise InvalidCredentials("Username and password are required")

        account = await self.get_by_username(username)
        stored = account.password_hash if account is not None else _UNKNOWN_USER_HASH
        matches = await asyncio.to_thread(verify_password, password, stored)
        if account is None or not matches:
            logger.info("Failed login for username %r", username)
            raise InvalidCredentials()

        return account, self.engine.issue(account.id)
