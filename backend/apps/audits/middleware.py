"""
x402 payment gate for metered endpoints.

Requests to a gated path must carry an `X-PAYMENT` header (base64-encoded
JSON payment payload). Without one, or when the configured facilitator
rejects it, the request is answered with 402 and the payment requirements,
and never reaches the view. Settlement is left to the facilitator.
"""
import base64
import binascii
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

import requests
from django.conf import settings
from django.http import HttpRequest, HttpResponse, JsonResponse

from apps.common.exceptions import PaymentRequired

logger = logging.getLogger(__name__)

X402_VERSION = 1
PAYMENT_HEADER = 'X-PAYMENT'
USDC_DECIMALS = 6


def price_to_atomic_units(price: str, decimals: int = USDC_DECIMALS) -> str:
    """'$0.50' -> '500000' for a 6-decimal token."""
    try:
        amount = Decimal(str(price).strip().lstrip('$'))
    except InvalidOperation as e:
        raise ValueError(f"Invalid X402 price: {price!r}") from e
    return str(int(amount * (10 ** decimals)))


def decode_payment_header(header: str) -> dict:
    """Decode the base64 JSON payload carried in X-PAYMENT."""
    try:
        payload = json.loads(base64.b64decode(header, validate=True))
    except (binascii.Error, ValueError) as e:
        raise PaymentRequired('Invalid X-PAYMENT header') from e
    if not isinstance(payload, dict):
        raise PaymentRequired('Invalid X-PAYMENT header')
    return payload


class PaymentGateMiddleware:
    """Answers 402 for unpaid requests to settings.X402_PROTECTED_PATHS."""

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        if not settings.X402_ENABLED or not self._is_protected(request.path):
            return self.get_response(request)

        requirements = self.payment_requirements(request)
        header = request.headers.get(PAYMENT_HEADER)
        try:
            if not header:
                raise PaymentRequired()
            self.verify(decode_payment_header(header), requirements)
        except PaymentRequired as e:
            logger.info(
                "payment_required",
                extra={'path': request.path, 'reason': str(e.detail)},
            )
            return JsonResponse(
                {
                    'x402Version': X402_VERSION,
                    'error': str(e.detail),
                    'accepts': [requirements],
                },
                status=PaymentRequired.status_code,
            )
        except requests.exceptions.RequestException:
            logger.exception("payment_facilitator_unreachable")
            return JsonResponse({'error': 'Payment facilitator unavailable.'}, status=502)

        return self.get_response(request)

    @staticmethod
    def _is_protected(path: str) -> bool:
        return any(path.startswith(prefix) for prefix in settings.X402_PROTECTED_PATHS)

    @staticmethod
    def payment_requirements(request: HttpRequest) -> dict:
        """The single 'exact' scheme requirement advertised for this request."""
        return {
            'scheme': 'exact',
            'network': settings.X402_NETWORK,
            'maxAmountRequired': price_to_atomic_units(settings.X402_PRICE),
            'resource': request.build_absolute_uri(request.path),
            'description': settings.X402_DESCRIPTION,
            'mimeType': 'text/event-stream',
            'payTo': settings.X402_PAY_TO,
            'maxTimeoutSeconds': settings.X402_MAX_TIMEOUT_SECONDS,
            'asset': settings.X402_ASSET,
        }

    @staticmethod
    def verify(payment: dict, requirements: dict, facilitator_url: Optional[str] = None) -> None:
        """
        Ask the facilitator whether `payment` satisfies `requirements`.

        With no facilitator configured, a well-formed header is accepted.

        Raises:
            PaymentRequired: if the facilitator reports the payment invalid
            requests.RequestException: if the facilitator cannot be reached
        """
        facilitator_url = facilitator_url or settings.X402_FACILITATOR_URL
        if not facilitator_url:
            return
        response = requests.post(
            f"{facilitator_url.rstrip('/')}/verify",
            json={
                'x402Version': X402_VERSION,
                'paymentPayload': payment,
                'paymentRequirements': requirements,
            },
            timeout=settings.X402_FACILITATOR_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        verdict = response.json()
        if not isinstance(verdict, dict):
            raise PaymentRequired('Payment verification failed')
        if not verdict.get('isValid'):
            raise PaymentRequired(verdict.get('invalidReason') or 'Payment verification failed')
