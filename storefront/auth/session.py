"""
Customer auth session.

Signs customers in and out against the commerce backend, keeps the token
for the storefront session, and hands the guest cart over to the customer
after sign-in.
"""
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from storefront.db import get_redis, StorageKeys, TTL
from storefront.errors import CommerceError, ERROR_LOGIN_FAILED, ERROR_REGISTER_FAILED
from storefront.logging import get_logger, sanitize_id_for_logging, sanitize_string_for_logging
from storefront.services.notifications import CartNotifier

logger = get_logger(__name__)


class Customer(BaseModel):
    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    created_at: Optional[str] = None

    class Config:
        extra = "ignore"


class AuthResult(BaseModel):
    success: bool
    error: Optional[str] = None


class AuthSession:
    """Customer sign-in state of one storefront session."""

    def __init__(
        self,
        client,
        cart_manager,
        session_id: str,
        redis_client: Any = None,
        notifier: Optional[CartNotifier] = None,
    ):
        self.client = client
        self.cart_manager = cart_manager
        self.session_id = session_id
        self._redis = redis_client
        self.notifier = notifier or CartNotifier()
        self.customer: Optional[Customer] = None
        self.loading = True

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    @property
    def is_authenticated(self) -> bool:
        return self.customer is not None

    @property
    def _token_key(self) -> str:
        return StorageKeys.auth_token_key(self.session_id)

    async def _store_token(self, token: str) -> None:
        self.client.set_auth_token(token)
        try:
            await self.redis.set(self._token_key, token, ex=TTL.AUTH_TOKEN)
        except Exception as e:
            logger.warning(f"Failed to persist auth token: {e}")

    async def _drop_token(self) -> None:
        self.client.set_auth_token(None)
        try:
            await self.redis.delete(self._token_key)
        except Exception as e:
            logger.warning(f"Failed to clear auth token: {e}")

    async def restore(self) -> Optional[Customer]:
        """Resume a previous sign-in from the persisted token."""
        try:
            try:
                token = await self.redis.get(self._token_key)
            except Exception as e:
                logger.warning(f"Failed to read auth token: {e}")
                token = None
            if token:
                self.client.set_auth_token(token)
                await self.refresh_customer()
                self.cart_manager.set_authenticated(self.is_authenticated)
        finally:
            self.loading = False
        return self.customer

    async def refresh_customer(self) -> Optional[Customer]:
        """Reload the signed-in customer; any failure means signed out."""
        try:
            self.customer = Customer.model_validate(await self.client.retrieve_customer())
        except (CommerceError, ValidationError) as e:
            logger.info(f"No customer session: {e}")
            self.customer = None
        return self.customer

    async def _after_sign_in(self) -> None:
        await self.refresh_customer()
        # Best effort; the manager only turns authenticated when the cart was handed over
        if not await self.cart_manager.transfer_to_customer():
            logger.info("Guest cart not transferred, cart stays a guest cart")

    async def login(self, email: str, password: str) -> AuthResult:
        try:
            await self._store_token(await self.client.login(email, password))
        except CommerceError as e:
            logger.warning(f"Login failed for {sanitize_string_for_logging(email)}: {e}")
            return AuthResult(success=False, error=e.backend_message or ERROR_LOGIN_FAILED)

        await self._after_sign_in()
        if self.customer:
            logger.info(f"Customer {sanitize_id_for_logging(self.customer.id)} signed in")
            self.notifier.welcome(self.customer.first_name or self.customer.email)
        return AuthResult(success=True)

    async def register(self, email: str, password: str, first_name: str, last_name: str) -> AuthResult:
        """
        Create a customer account and sign it in.

        The backend keeps identities and customer records apart: after
        registering and signing in, the customer record is created
        explicitly. A record that already exists is not an error.
        """
        try:
            await self.client.register(email, password)
            await self._store_token(await self.client.login(email, password))
        except CommerceError as e:
            logger.warning(f"Registration failed: {e}")
            return AuthResult(success=False, error=e.backend_message or ERROR_REGISTER_FAILED)

        try:
            await self.client.create_customer({"first_name": first_name, "last_name": last_name, "email": email})
        except CommerceError as e:
            logger.info(f"Customer record not created (may already exist): {e}")

        await self._after_sign_in()
        self.notifier.welcome_new(first_name)
        return AuthResult(success=True)

    async def logout(self) -> None:
        """Sign out. Local state is cleared even if the backend call fails."""
        name = self.customer.first_name if self.customer else ""
        try:
            await self.client.logout()
        except CommerceError as e:
            logger.warning(f"Backend logout failed: {e}")
        await self._drop_token()
        self.customer = None
        self.cart_manager.set_authenticated(False)
        if name:
            self.notifier.goodbye(name)
