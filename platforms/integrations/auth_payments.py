"""Authentication and payment integrations.

Provides interfaces for:
- Clerk: User authentication, organizations and sessions
- Stripe: Customers, products, subscriptions and payments
"""
from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional

from ..transform import to_form_data
from .base import BEARER, BaseClient


def _sign(secret: str, timestamp: Any, payload: bytes) -> str:
    signed_content = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed_content, hashlib.sha256).hexdigest()


def _matches(candidate: str, expected: str) -> bool:
    return hmac.compare_digest(candidate.encode(), expected.encode())


# ==============================================================================
# Clerk Integration
# ==============================================================================


@dataclass
class ClerkClient(BaseClient):
    """Clerk authentication integration.

    Environment variables:
        CLERK_API_KEY: Secret key (sk_...)
        CLERK_WEBHOOK_SECRET: Webhook signing secret
        CLERK_ENABLED: Set to 'true' to enable
    """

    DISPLAY_NAME: ClassVar[str] = "Clerk"
    BASE_URL: ClassVar[str] = "https://api.clerk.com/v1"
    ENV_PREFIX: ClassVar[str] = "CLERK"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "v1", "rate_limit_per_minute": 500, **BEARER}

    name: str = "clerk"

    # Users

    async def list_users(
        self,
        limit: int = 10,
        offset: int = 0,
        email_address: Optional[List[str]] = None,
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """List users."""
        query: Dict[str, Any] = {"limit": limit, "offset": offset, "order_by": order_by}
        if email_address:
            query["email_address"] = ",".join(email_address)
        response = await self.http.get("/users", query)
        return response.data

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/users/{user_id}")
        return response.data

    async def create_user(
        self,
        email_address: List[str],
        password: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        username: Optional[str] = None,
        public_metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create a new user."""
        body: Dict[str, Any] = {"email_address": email_address}
        if password:
            body["password"] = password
        if first_name:
            body["first_name"] = first_name
        if last_name:
            body["last_name"] = last_name
        if username:
            body["username"] = username
        if public_metadata:
            body["public_metadata"] = public_metadata
        response = await self.http.post("/users", body)
        return response.data

    async def update_user(self, user_id: str, **changes: Any) -> Dict[str, Any]:
        response = await self.http.patch(f"/users/{user_id}", changes)
        return response.data

    async def delete_user(self, user_id: str) -> Dict[str, Any]:
        response = await self.http.delete(f"/users/{user_id}")
        return response.data

    async def ban_user(self, user_id: str) -> Dict[str, Any]:
        response = await self.http.post(f"/users/{user_id}/ban")
        return response.data

    async def unban_user(self, user_id: str) -> Dict[str, Any]:
        response = await self.http.post(f"/users/{user_id}/unban")
        return response.data

    # Organizations

    async def list_organizations(self, limit: int = 10, offset: int = 0, query: Optional[str] = None) -> Dict[str, Any]:
        response = await self.http.get("/organizations", {"limit": limit, "offset": offset, "query": query})
        data = response.data or {}
        return {"data": data.get("data", []), "totalCount": data.get("total_count", 0)}

    async def create_organization(
        self,
        name: str,
        created_by: str,
        slug: Optional[str] = None,
        max_allowed_memberships: Optional[int] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": name, "created_by": created_by}
        if slug:
            body["slug"] = slug
        if max_allowed_memberships is not None:
            body["max_allowed_memberships"] = max_allowed_memberships
        response = await self.http.post("/organizations", body)
        return response.data

    # Sessions

    async def list_sessions(
        self,
        user_id: Optional[str] = None,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        response = await self.http.get(
            "/sessions",
            {"user_id": user_id, "client_id": client_id, "status": status},
        )
        return response.data

    async def revoke_session(self, session_id: str) -> Dict[str, Any]:
        response = await self.http.post(f"/sessions/{session_id}/revoke")
        return response.data

    async def verify_token(self, token: str) -> Dict[str, Any]:
        """Verify a session token and return its claims."""
        response = await self.http.post("/tokens/verify", {"token": token})
        return response.data

    def verify_webhook(self, payload: bytes, signature: str, timestamp: str) -> bool:
        """Verify an HMAC-SHA256 webhook signature over ``timestamp.payload``."""
        secret = self.config.credentials.webhook_secret
        if not secret:
            return False
        return _matches(signature, _sign(secret, timestamp, payload))

    def health_check(self) -> Dict[str, Any]:
        result = super().health_check()
        result["webhook_configured"] = bool(self.config.credentials.webhook_secret)
        return result


# ==============================================================================
# Stripe Integration
# ==============================================================================


@dataclass
class StripeClient(BaseClient):
    """Stripe payments integration.

    Environment variables:
        STRIPE_API_KEY: Secret key (sk_...)
        STRIPE_WEBHOOK_SECRET: Webhook signing secret (whsec_...)
        STRIPE_ENABLED: Set to 'true' to enable

    Request bodies are sent form-encoded, nested values flattened with
    :func:`to_form_data`.
    """

    DISPLAY_NAME: ClassVar[str] = "Stripe"
    BASE_URL: ClassVar[str] = "https://api.stripe.com/v1"
    ENV_PREFIX: ClassVar[str] = "STRIPE"
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {"version": "v1", "rate_limit_per_minute": 100, **BEARER}

    WEBHOOK_TOLERANCE: ClassVar[int] = 300

    name: str = "stripe"

    async def _form(self, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = await self.http.post(path, form=to_form_data(data or {}))
        return response.data

    async def _list(self, path: str, query: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.http.get(path, query)
        data = response.data or {}
        return {"data": data.get("data", []), "hasMore": bool(data.get("has_more"))}

    # Customers

    async def list_customers(
        self,
        limit: int = 10,
        email: Optional[str] = None,
        starting_after: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._list(
            "/customers",
            {"limit": limit, "email": email, "starting_after": starting_after},
        )

    async def get_customer(self, customer_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/customers/{customer_id}")
        return response.data

    async def create_customer(
        self,
        email: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Create a Stripe customer."""
        return await self._form(
            "/customers",
            {"email": email, "name": name, "description": description, "metadata": metadata},
        )

    async def update_customer(self, customer_id: str, **changes: Any) -> Dict[str, Any]:
        return await self._form(f"/customers/{customer_id}", changes)

    async def delete_customer(self, customer_id: str) -> Dict[str, Any]:
        response = await self.http.delete(f"/customers/{customer_id}")
        return response.data

    # Products & prices

    async def list_products(self, active: Optional[bool] = None, limit: int = 10) -> Dict[str, Any]:
        return await self._list("/products", {"active": active, "limit": limit})

    async def create_product(
        self,
        name: str,
        description: Optional[str] = None,
        active: Optional[bool] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        return await self._form(
            "/products",
            {"name": name, "description": description, "active": active, "metadata": metadata},
        )

    async def list_prices(
        self,
        product: Optional[str] = None,
        active: Optional[bool] = None,
        limit: int = 10,
    ) -> Dict[str, Any]:
        return await self._list("/prices", {"product": product, "active": active, "limit": limit})

    async def create_price(
        self,
        product: str,
        unit_amount: int,
        currency: str = "usd",
        recurring: Optional[Dict[str, Any]] = None,
        nickname: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a price; pass ``recurring={"interval": "month"}`` for subscriptions."""
        return await self._form(
            "/prices",
            {
                "product": product,
                "unit_amount": unit_amount,
                "currency": currency,
                "recurring": recurring,
                "nickname": nickname,
            },
        )

    # Subscriptions

    async def list_subscriptions(
        self,
        customer: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 10,
    ) -> Dict[str, Any]:
        return await self._list("/subscriptions", {"customer": customer, "status": status, "limit": limit})

    async def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        response = await self.http.get(f"/subscriptions/{subscription_id}")
        return response.data

    async def cancel_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Cancel a subscription immediately."""
        response = await self.http.delete(f"/subscriptions/{subscription_id}")
        return response.data

    # Payments

    async def create_payment_intent(
        self,
        amount: int,
        currency: str = "usd",
        customer: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Create a payment intent. *amount* is in the smallest currency unit."""
        return await self._form(
            "/payment_intents",
            {
                "amount": amount,
                "currency": currency,
                "customer": customer,
                "description": description,
                "metadata": metadata,
            },
        )

    async def list_invoices(
        self,
        customer: Optional[str] = None,
        subscription: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 10,
    ) -> Dict[str, Any]:
        return await self._list(
            "/invoices",
            {"customer": customer, "subscription": subscription, "status": status, "limit": limit},
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
        tolerance: Optional[int] = None,
        now: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Verify a ``Stripe-Signature`` header and return the decoded event.

        The header may carry several ``v1`` entries while a secret is being
        rotated; one match is enough.
        """
        secret = self.config.credentials.webhook_secret
        if not secret:
            return {"ok": False, "error": "Webhook secret not configured"}

        tolerance = self.WEBHOOK_TOLERANCE if tolerance is None else tolerance
        timestamp: Optional[int] = None
        signatures: List[str] = []
        try:
            for item in signature.split(","):
                key, value = item.strip().split("=", 1)
                if key == "t":
                    timestamp = int(value)
                elif key == "v1":
                    signatures.append(value)
        except ValueError:
            return {"ok": False, "error": "Malformed signature header"}
        if timestamp is None:
            return {"ok": False, "error": "Malformed signature header"}

        current = time.time() if now is None else now
        if abs(current - timestamp) > tolerance:
            return {"ok": False, "error": "Timestamp outside tolerance"}

        expected = _sign(secret, timestamp, payload)
        if not any(_matches(candidate, expected) for candidate in signatures):
            return {"ok": False, "error": "Invalid signature"}

        try:
            return {"ok": True, "event": json.loads(payload)}
        except ValueError:
            return {"ok": False, "error": "Payload is not valid JSON"}

    def health_check(self) -> Dict[str, Any]:
        result = super().health_check()
        result["webhook_configured"] = bool(self.config.credentials.webhook_secret)
        return result


__all__ = ["ClerkClient", "StripeClient"]
