"""
Booking Service

Runs the quote, hold and checkout flows end to end. Each flow returns an
``Ok`` or ``Err`` value instead of raising, so routes can tell a rule
violation from a slot conflict or a payment-provider failure.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from studio_booking.services.errors import BookingError, BookingValidationError
from studio_booking.services.holds import Hold, HoldManager
from studio_booking.services.line_items import LineItemProjector, Projection
from studio_booking.services.normalizer import NormalizedBooking, normalize_booking
from studio_booking.services.payment import PaymentService
from studio_booking.services.pricing import DEFAULT_PRICING, PricingConfig, Quote, QuoteCalculator
from studio_booking.services.validation import (
    STAGE_CHECKOUT,
    STAGE_HOLD,
    STAGE_QUOTE,
    BookingRuleValidator,
    BookingRules,
)
from studio_booking.utils.clock import utc_now
from studio_booking.utils.money import to_json_number
from studio_booking.utils.result import Err, Ok, Result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    session_id: str
    checkout_url: str
    quote: Quote
    projection: Projection
    hold_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'checkoutUrl': self.checkout_url,
            'sessionId': self.session_id,
            'totals': self.quote.to_dict()
        }


class BookingService:
    """Quote, hold and checkout flows"""

    def __init__(
        self,
        hold_manager: HoldManager,
        payment_service: Optional[PaymentService] = None,
        pricing: PricingConfig = DEFAULT_PRICING,
        rules: BookingRules = BookingRules(),
        clock: Callable[[], datetime] = utc_now
    ):
        self.pricing = pricing
        self.rules = rules
        self.hold_manager = hold_manager
        self.payment_service = payment_service
        self.calculator = QuoteCalculator(pricing)
        self.validator = BookingRuleValidator(rules, pricing, clock)
        self.projector = LineItemProjector(pricing)

    @classmethod
    def from_app(cls, app) -> 'BookingService':
        """Build a service from the Flask app's config and shared hold manager"""
        state = app.extensions['studio_booking']
        return cls(
            hold_manager=state['hold_manager'],
            payment_service=PaymentService(app.config),
            pricing=state['pricing'],
            rules=state['rules'],
            clock=state['clock']
        )

    def normalize(self, raw: Mapping[str, Any]) -> NormalizedBooking:
        return normalize_booking(raw, self.pricing)

    def room_for(self, booking: NormalizedBooking) -> str:
        return booking.room or self.rules.default_room

    def quote(self, raw: Mapping[str, Any]) -> Result[Quote]:
        """Validate and price a booking; scheduling fields are optional here"""
        booking = self.normalize(raw)
        validation = self.validator.validate(booking, STAGE_QUOTE)
        if not validation.ok:
            return Err(validation.to_error())
        return Ok(self.calculator.compute_quote(booking))

    def place_hold(self, raw: Mapping[str, Any]) -> Result[Hold]:
        booking = self.normalize(raw)
        validation = self.validator.validate(booking, STAGE_HOLD)
        if not validation.ok:
            return Err(validation.to_error())
        try:
            hold = self.hold_manager.create_hold(
                self.room_for(booking), booking.date, booking.start_time, booking.hours
            )
        except BookingError as e:
            return Err(e)
        return Ok(hold)

    def cancel_hold(self, hold_id: str) -> bool:
        return self.hold_manager.cancel_hold(hold_id)

    def availability(self, raw: Mapping[str, Any]) -> Result[Dict[str, Any]]:
        """Slot grid for one room and date; the date must itself be bookable"""
        booking = self.normalize(raw)
        if not booking.date:
            return Err(BookingValidationError(
                'Please choose a date for your session.',
                violations=[{'field': 'date', 'message': 'Please choose a date for your session.'}]
            ))
        validation = self.validator.validate(booking, STAGE_QUOTE)
        if not validation.ok:
            return Err(validation.to_error())

        room = self.room_for(booking)
        return Ok({
            'room': room,
            'date': booking.date,
            'hours': to_json_number(booking.hours),
            'slots': self.hold_manager.availability(room, booking.date, booking.hours)
        })

    def checkout(self, raw: Mapping[str, Any]) -> Result[CheckoutResult]:
        """
        Create a Stripe Checkout session for a booking

        The hold, when one is presented, is consumed only after Stripe has
        returned a session; a failed session leaves it in place for a retry.
        """
        booking = self.normalize(raw)
        validation = self.validator.validate(booking, STAGE_CHECKOUT)
        if not validation.ok:
            return Err(validation.to_error())

        quote = self.calculator.compute_quote(booking)
        room = self.room_for(booking)
        payment = self.payment_service

        try:
            payment.ensure_configured()

            if booking.hold_id:
                self.hold_manager.verify_hold(
                    booking.hold_id, room, booking.date, booking.start_time, booking.hours
                )
            else:
                self.hold_manager.ensure_slot_free(room, booking.date, booking.start_time, booking.hours)

            promotion_code_id = None
            if booking.coupon_code:
                promotion_code_id = payment.resolve_promotion_code(booking.coupon_code)

            projection = self.projector.project(
                quote,
                booking,
                extra_metadata={'room': room, 'holdId': booking.hold_id}
            )
            session = payment.create_checkout_session(
                line_items=LineItemProjector.to_stripe(projection.line_items, self.pricing.currency),
                metadata=projection.metadata,
                customer_email=booking.email or None,
                promotion_code_id=promotion_code_id
            )
        except BookingError as e:
            logger.warning(f"Checkout failed ({e.code}): {e.detail}")
            return Err(e)

        if booking.hold_id:
            self.hold_manager.consume_hold(booking.hold_id)

        return Ok(CheckoutResult(
            session_id=session['sessionId'],
            checkout_url=session['checkoutUrl'],
            quote=quote,
            projection=projection,
            hold_id=booking.hold_id or None
        ))
