"""
Payment Service
Handles Stripe Checkout sessions and webhook verification
"""

import json
import logging
from typing import Any, Dict, List, Optional
import stripe

from studio_booking.services.errors import (
    ConfigurationError,
    CouponError,
    PaymentServiceError,
    WebhookSignatureError,
)

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_PLACEHOLDER = '{CHECKOUT_SESSION_ID}'


class PaymentService:
    """Service for handling payment operations"""

    def __init__(self, config):
        """
        Initialize payment service with configuration

        Args:
            config: Flask app config object
        """
        self.stripe_secret_key = config.get('STRIPE_SECRET_KEY') or ''
        self.webhook_secret = config.get('STRIPE_WEBHOOK_SECRET')
        self.success_url = config.get('SUCCESS_URL')
        self.cancel_url = config.get('CANCEL_URL')

        if self.stripe_secret_key:
            stripe.api_key = self.stripe_secret_key
        else:
            logger.warning("Stripe secret key not configured")

    @property
    def is_configured(self) -> bool:
        return bool(self.stripe_secret_key)

    @property
    def key_mode(self) -> str:
        """'live', 'test' or 'none' depending on the configured key"""
        if not self.stripe_secret_key:
            return 'none'
        return 'live' if self.stripe_secret_key.startswith('sk_live_') else 'test'

    def _success_url(self) -> str:
        url = self.success_url
        if CHECKOUT_SESSION_PLACEHOLDER in url or '?' in url:
            return url
        return f"{url}?session_id={CHECKOUT_SESSION_PLACEHOLDER}"

    def ensure_configured(self) -> None:
        if not self.is_configured:
            raise ConfigurationError(
                'Payments are not configured',
                detail='Stripe key missing. Set STRIPE_SECRET_KEY (or STRIPE_SECRET_KEY_TEST).'
            )
        if not self.success_url or not self.cancel_url:
            raise ConfigurationError(
                'Payments are not configured',
                detail='Checkout redirect URLs missing. Set SUCCESS_URL and CANCEL_URL.'
            )

    def resolve_promotion_code(self, code: str) -> str:
        """
        Look up an active Stripe promotion code

        Args:
            code: Customer-facing coupon code

        Returns:
            Stripe promotion code ID

        Raises:
            CouponError: If the code is unknown or inactive
            PaymentServiceError: If Stripe cannot be reached
        """
        self.ensure_configured()
        try:
            result = stripe.PromotionCode.list(code=code, active=True, limit=1)
        except stripe.StripeError as e:
            logger.error(f"Stripe error looking up promotion code: {str(e)}")
            raise PaymentServiceError(
                'Payment provider error',
                detail='Could not verify the coupon code. Please try again.'
            )

        if not result.data:
            raise CouponError('Invalid coupon code', detail=f"Coupon code '{code}' is not valid.")
        return result.data[0].id

    def create_checkout_session(
        self,
        line_items: List[Dict[str, Any]],
        metadata: Dict[str, str],
        customer_email: Optional[str] = None,
        promotion_code_id: Optional[str] = None
    ) -> Dict:
        """
        Create a Stripe Checkout session

        Args:
            line_items: Stripe ``price_data`` line items
            metadata: Flat booking metadata attached to the session
            customer_email: Pre-filled email for the receipt
            promotion_code_id: Stripe promotion code to apply

        Returns:
            Dict with sessionId and checkoutUrl

        Raises:
            ConfigurationError: If Stripe is not configured
            PaymentServiceError: If session creation fails
        """
        self.ensure_configured()

        session_params = {
            'mode': 'payment',
            'line_items': line_items,
            'success_url': self._success_url(),
            'cancel_url': self.cancel_url,
            'metadata': metadata,
            'payment_intent_data': {'metadata': metadata},
        }

        if customer_email:
            session_params['customer_email'] = customer_email

        if promotion_code_id:
            session_params['discounts'] = [{'promotion_code': promotion_code_id}]

        try:
            session = stripe.checkout.Session.create(**session_params)
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session: {str(e)}")
            raise PaymentServiceError(
                'Checkout error',
                detail='Could not create the checkout session. Please try again.'
            )

        logger.info(f"Created checkout session: {session.id}")

        return {
            'sessionId': session.id,
            'checkoutUrl': session.url
        }

    def handle_webhook(self, payload: bytes, signature: str) -> Dict:
        """
        Verify a Stripe webhook and return the event

        Args:
            payload: Raw request body
            signature: Stripe signature header

        Returns:
            The event as plain JSON data

        Raises:
            ConfigurationError: If no webhook secret is configured
            WebhookSignatureError: If verification fails
        """
        if not self.webhook_secret:
            raise ConfigurationError(
                'Webhooks are not configured',
                detail='Set STRIPE_WEBHOOK_SECRET to receive payment events.'
            )

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.error(f"Webhook signature verification failed: {str(e)}")
            raise WebhookSignatureError('Invalid webhook signature')
        except ValueError as e:
            logger.error(f"Webhook payload could not be parsed: {str(e)}")
            raise WebhookSignatureError('Invalid webhook payload')

        event = json.loads(payload)
        logger.info(f"Received webhook event: {event.get('type')}")
        return event
