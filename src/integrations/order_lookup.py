"""
Order lookup against the manufacturer fleet API.
Falls back to a placeholder record on any failure.
"""

import time
from datetime import date
from typing import Callable, Optional

import requests

from src.errors import PermissionDenied, error_for_status
from src.schemas.models import OrderData
from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="ORDERS")

# Refresh tokens slightly before they expire
TOKEN_EXPIRY_MARGIN_SECONDS = 30


def placeholder_order(order_number: str) -> OrderData:
    """Fixed record used when the order cannot be looked up."""
    return OrderData(
        order_number=order_number,
        vin="7SAYGDEF*NF123456",
        vehicle_model="Model Y Long Range",
        vehicle_color="Pearl White Multi-Coat",
        customer_name="Tesla Customer",
        customer_email="customer@example.com",
        sales_rep_email=config.default_sales_rep_email,
        delivery_date=date.today().isoformat(),
        is_placeholder=True,
    )


class OrderLookupService:
    """Client-credentials OAuth client for order details. Tokens are cached until expiry."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ):
        self.logger = logger
        self.session = session or requests.Session()
        self._clock = clock
        self.client_id = client_id or config.order_client_id
        self.client_secret = client_secret or config.order_client_secret
        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _ensure_token(self) -> str:
        if self._access_token and self._clock() < self._token_expiry:
            return self._access_token

        if not self.configured:
            raise PermissionDenied("Order API credentials not configured")

        response = self.session.post(
            config.order_auth_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            timeout=config.api_timeout,
        )
        if response.status_code != 200:
            raise error_for_status(response.status_code, details="order API token request")

        token_data = response.json()
        self._access_token = token_data["access_token"]
        expires_in = float(token_data.get("expires_in", 0))
        self._token_expiry = self._clock() + max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
        self.logger.debug(f"Order API token acquired (expires in {expires_in:.0f}s)")
        return self._access_token

    def _fetch(self, order_number: str) -> OrderData:
        token = self._ensure_token()
        response = self.session.get(
            f"{config.order_api_url.rstrip('/')}/{order_number}",
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            timeout=config.api_timeout,
        )
        if response.status_code != 200:
            raise error_for_status(response.status_code, details=f"order {order_number}")

        data = response.json()
        return OrderData(
            order_number=data.get("order_number") or order_number,
            vin=data["vehicle_vin"],
            vehicle_model=data.get("vehicle_model", ""),
            vehicle_color=data.get("vehicle_color", ""),
            customer_name=data.get("customer_name", ""),
            customer_email=data.get("customer_email"),
            sales_rep_email=data.get("sales_rep_email") or config.default_sales_rep_email,
            delivery_date=data.get("delivery_date"),
        )

    def get_order(self, order_number: str) -> OrderData:
        """
        Look up vehicle and customer details for an order.

        Args:
            order_number: Order identifier

        Returns:
            OrderData; a placeholder record when credentials are missing or the lookup fails
        """
        if not self.configured:
            self.logger.info(f"Order API not configured, using placeholder for {order_number}")
            return placeholder_order(order_number)

        try:
            order = self._fetch(order_number)
            self.logger.info(f"✓ Order {order_number} resolved: {order.vehicle_model} ({order.vin})")
            return order
        except Exception as e:
            self.logger.warning(f"Order lookup failed for {order_number}, using placeholder: {e}")
            return placeholder_order(order_number)

    def health_check(self):
        if not self.configured:
            return True, "Not configured (placeholder records)"
        try:
            self._ensure_token()
            return True, "Token acquired"
        except Exception as e:
            return False, str(e)
