"""User service: Telegram sign-in and wallet management."""

from __future__ import annotations

import structlog

from tonedu.errors import InvalidInputError, NotFoundError
from tonedu.ledger.service import LedgerService
from tonedu.rewards.referral_codes import generate_unique_referral_code
from tonedu.store.base import EntityStore
from tonedu.store.entities import User, UserCreate

logger = structlog.get_logger()


class UserService:
    def __init__(self, store: EntityStore, ledger: LedgerService) -> None:
        self.store = store
        self.ledger = ledger

    async def get_user(self, user_id: int) -> User:
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def telegram_login(self, telegram_id: str, display_name: str, username: str) -> tuple[User, bool]:
        """
        Get the user for a Telegram account, creating it on first sign-in.

        Returns:
            Tuple of (user, created) where created is True if a new user was made.

        Raises:
            InvalidInputError: If a required field is blank or the username
                belongs to another Telegram account.
        """
        if not telegram_id or not display_name or not username:
            raise InvalidInputError("Missing required fields")

        user = await self.store.get_user_by_telegram_id(telegram_id)
        if user is not None:
            return user, False
        if await self.store.get_user_by_username(username) is not None:
            raise InvalidInputError("Username already taken")

        async with self.store.transaction():
            referral_code = await generate_unique_referral_code(self.store)
            user = await self.store.create_user(
                UserCreate(
                    telegram_id=telegram_id,
                    username=username,
                    display_name=display_name,
                    referral_code=referral_code,
                )
            )
        logger.info("user_created", user_id=user.id, telegram_id=telegram_id, method="telegram")
        return user, True

    async def update_wallet(self, user_id: int, wallet_address: str) -> User:
        """Set the payout address after validating it against the ledger network."""
        address = (wallet_address or "").strip()
        if not address:
            raise InvalidInputError("Missing wallet address")
        if not self.ledger.is_valid_address(address):
            raise InvalidInputError("Invalid TON wallet address")
        user = await self.get_user(user_id)

        async with self.store.transaction():
            updated = await self.store.update_user(user_id, wallet_address=address)
        if updated is None:
            raise NotFoundError("User not found")
        logger.info(
            "wallet_updated",
            user_id=user_id,
            had_previous=user.wallet_address is not None,
        )
        return updated
