"""
Line-item projection
Maps a quote onto Stripe Checkout line items and session metadata
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from studio_booking.services.normalizer import NormalizedBooking
from studio_booking.services.pricing import DEFAULT_PRICING, PricingConfig, Quote, QuoteComponent
from studio_booking.utils.money import to_cents, to_json_number

# Stripe metadata limits
METADATA_MAX_KEYS = 50
METADATA_MAX_VALUE_LENGTH = 500


@dataclass(frozen=True)
class LineItem:
    """One charge submitted to the payment provider"""
    label: str
    unit_amount_cents: int
    quantity: int
    description: Optional[str] = None

    @property
    def amount_cents(self) -> int:
        return self.unit_amount_cents * self.quantity

    def to_stripe(self, currency: str = 'usd') -> Dict[str, Any]:
        product_data = {'name': self.label}
        if self.description:
            product_data['description'] = self.description
        return {
            'price_data': {
                'currency': currency,
                'unit_amount': self.unit_amount_cents,
                'product_data': product_data
            },
            'quantity': self.quantity
        }


@dataclass(frozen=True)
class Projection:
    line_items: Tuple[LineItem, ...]
    metadata: Dict[str, str]

    @property
    def total_cents(self) -> int:
        return sum(item.amount_cents for item in self.line_items)


def _flag(value: bool) -> str:
    return 'true' if value else 'false'


def _metadata_value(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return _flag(value)
    if isinstance(value, Decimal):
        value = to_json_number(value)
    return str(value)[:METADATA_MAX_VALUE_LENGTH]


class LineItemProjector:
    """Project quotes into payment line items plus fulfillment metadata"""

    def __init__(self, pricing: PricingConfig = DEFAULT_PRICING):
        self.pricing = pricing

    def project(self, quote: Quote, booking: Optional[NormalizedBooking] = None,
                extra_metadata: Optional[Dict[str, Any]] = None) -> Projection:
        """
        Build line items and metadata for a quote

        Args:
            quote: Computed quote
            booking: Booking the quote was computed from (defaults to quote.booking)
            extra_metadata: Additional keys (e.g. the consumed hold id)

        Returns:
            Projection whose line items sum to the quote total in cents
        """
        booking = booking or quote.booking
        line_items = [self._line_item(component) for component in quote.components]
        line_items = [item for item in line_items if item.amount_cents > 0]

        metadata = self.build_metadata(quote, booking)
        for key, value in (extra_metadata or {}).items():
            metadata[key] = _metadata_value(value)

        if len(metadata) > METADATA_MAX_KEYS:
            raise ValueError(f"Booking metadata has {len(metadata)} keys; Stripe allows {METADATA_MAX_KEYS}")

        return Projection(line_items=tuple(line_items), metadata=metadata)

    def _line_item(self, component: QuoteComponent) -> LineItem:
        quantity = component.quantity
        if quantity == quantity.to_integral_value() and quantity >= 1:
            return LineItem(
                label=component.label,
                unit_amount_cents=to_cents(component.unit_amount),
                quantity=int(quantity),
                description=component.description
            )
        # Fractional quantities (e.g. 2.5 hours) are charged as one line
        return LineItem(
            label=component.label,
            unit_amount_cents=to_cents(component.amount),
            quantity=1,
            description=component.description
        )

    def build_metadata(self, quote: Quote, booking: NormalizedBooking) -> Dict[str, str]:
        """Flat string map holding everything the fulfillment webhook needs"""
        fields = {
            'customerName': booking.name,
            'email': booking.email,
            'phone': booking.phone,
            'date': booking.date,
            'startTime': booking.start_time,
            'room': booking.room,
            'hours': quote.hours,
            'mode': quote.mode.value,
            'engineerChoice': booking.engineer_choice,
            'engineerName': booking.engineer_name,
            'extraCameras': booking.extra_cameras,
            'peopleOnCamera': booking.people_on_camera,
            'totalCams': quote.total_cams,
            'postProduction': '' if booking.post_production is None else booking.post_production,
            'postProductionCams': quote.post_production_cams,
            'isFirstTime': booking.is_first_time,
            'couponCode': booking.coupon_code,
            'notes': booking.notes,
            'baseSubtotal': quote.breakdown.base_subtotal,
            'engineerSubtotal': quote.breakdown.engineer_subtotal,
            'extrasSession': quote.breakdown.extras_session,
            'postProd': quote.breakdown.post_prod,
            'total': quote.total,
            'totalCents': to_cents(quote.total),
            'pricingVersion': quote.pricing_version
        }
        for addon in self.pricing.addons:
            fields[addon.key] = booking.has_addon(addon.key)
        return {key: _metadata_value(value) for key, value in fields.items()}

    @staticmethod
    def to_stripe(line_items: List[LineItem], currency: str = 'usd') -> List[Dict[str, Any]]:
        return [item.to_stripe(currency) for item in line_items]
