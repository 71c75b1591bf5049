import hashlib
import hmac
import logging
import secrets
import string
from typing import Any, Dict, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

UNIQUE_ID_ALPHABET = string.ascii_uppercase + string.digits
UNIQUE_ID_LENGTH = 8

# Longest relative expiration Paymob accepts for an intention (36 days).
MAX_EXPIRATION_SECONDS = 3110400

# Transaction callback fields, in the order Paymob concatenates them.
HMAC_FIELDS = [
    "amount_cents",
    "created_at",
    "currency",
    "error_occured",
    "has_parent_transaction",
    "id",
    "integration_id",
    "is_3d_secure",
    "is_auth",
    "is_capture",
    "is_refunded",
    "is_standalone_payment",
    "is_voided",
    "order.id",
    "owner",
    "pending",
    "source_data.pan",
    "source_data.sub_type",
    "source_data.type",
    "success",
]


class PaymobAPIError(Exception):
    """Raised when Paymob rejects a request or cannot be reached."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


def generate_unique_payment_id(length: int = UNIQUE_ID_LENGTH) -> str:
    return "".join(secrets.choice(UNIQUE_ID_ALPHABET) for _ in range(length))


def _lookup(obj: Dict[str, Any], dotted: str):
    value: Any = obj
    for part in dotted.split("."):
        if not isinstance(value, dict):
            # "order" may arrive as a bare id rather than an object
            return value if part == "id" else None
        value = value.get(part)
    return value


def _hmac_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def calculate_hmac(obj: Dict[str, Any], secret: str) -> str:
    message = "".join(_hmac_value(_lookup(obj, field)) for field in HMAC_FIELDS)
    return hmac.new(secret.encode(), message.encode(), hashlib.sha512).hexdigest()


def verify_hmac(obj: Dict[str, Any], received: Optional[str], secret: Optional[str] = None) -> bool:
    secret = secret if secret is not None else settings.PAYMOB_HMAC_SECRET
    if not received or not secret or not isinstance(obj, dict):
        return False
    expected = calculate_hmac(obj, secret)
    return hmac.compare_digest(expected, str(received).lower())


class PaymobClient:
    """
    Thin client for the Paymob Accept REST API.

    Intentions authenticate with the secret key. Refund, void and capture go
    through the legacy acceptance API and need a short-lived bearer token
    obtained from the API key on every call.
    """

    def __init__(self, api_url=None, secret_key=None, public_key=None, api_key=None, timeout=None):
        self.api_url = (api_url or settings.PAYMOB_API_URL).rstrip("/")
        self.secret_key = secret_key if secret_key is not None else settings.PAYMOB_SECRET_KEY
        self.public_key = public_key if public_key is not None else settings.PAYMOB_PUBLIC_KEY
        self.api_key = api_key if api_key is not None else settings.PAYMOB_API_KEY
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT

    def _post(self, endpoint: str, payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        url = f"{self.api_url}{endpoint}"
        try:
            response = requests.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json", **headers},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Paymob request failed: POST {url} - {e}")
            raise PaymobAPIError(f"Paymob request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            detail = body.get("detail") or body.get("message") if isinstance(body, dict) else None
            logger.error(f"Paymob API error {response.status_code} on {endpoint}: {body}")
            raise PaymobAPIError(
                detail or f"Paymob API error ({response.status_code})",
                status_code=response.status_code,
                payload=body,
            )
        return body

    def create_intention(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._post("/v1/intention/", payload, {"Authorization": f"Token {self.secret_key}"})

    def checkout_url(self, client_secret: str) -> str:
        return f"{self.api_url}/unifiedcheckout/?publicKey={self.public_key}&clientSecret={client_secret}"

    def auth_token(self) -> str:
        body = self._post("/api/auth/tokens", {"api_key": self.api_key}, {})
        token = body.get("token")
        if not token:
            raise PaymobAPIError("Paymob authentication failed", payload=body)
        return token

    def _bearer(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.auth_token()}"}

    def refund(self, transaction_id, amount_cents: int) -> Dict[str, Any]:
        return self._post(
            "/api/acceptance/void_refund/refund",
            {"transaction_id": transaction_id, "amount_cents": amount_cents},
            self._bearer(),
        )

    def void(self, transaction_id) -> Dict[str, Any]:
        return self._post(
            "/api/acceptance/void_refund/void", {"transaction_id": transaction_id}, self._bearer()
        )

    def capture(self, transaction_id, amount_cents: int) -> Dict[str, Any]:
        return self._post(
            "/api/acceptance/capture",
            {"transaction_id": transaction_id, "amount_cents": amount_cents},
            self._bearer(),
        )
