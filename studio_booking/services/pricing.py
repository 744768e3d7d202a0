"""
Pricing Service
Rate table and quote calculation for studio sessions
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from studio_booking.utils.money import format_hours, to_json_number


class SessionMode(Enum):
    """Studio session modes"""
    ONE_CAMERA = "ONE_CAMERA"
    AUDIO_ONLY = "AUDIO_ONLY"
    MUSIC = "MUSIC"

    @property
    def label(self) -> str:
        return self.value.replace('_', ' ')


class PostProductionPolicy(Enum):
    """How the post-production fee scales with cameras to edit"""
    TIERED = "tiered"  # first camera premium, then a flat step per camera
    LINEAR = "linear"  # same rate for every camera


class ExtraCameraPolicy(Enum):
    """How extra cameras are charged per session"""
    PER_CAMERA = "per_camera"
    FLAT = "flat"  # one fee regardless of the count


@dataclass(frozen=True)
class ModeRate:
    hourly_rate: Decimal
    included_cameras: int


@dataclass(frozen=True)
class AddOn:
    """Flat per-session add-on, keyed by its request flag"""
    key: str
    label: str
    fee: Decimal


def _frozen(mapping: Dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class PricingConfig:
    """
    Immutable rate table

    Built once and handed to the calculator and projector. Alternate tables
    (other policies, other rates) are made with ``replace`` or
    ``from_mapping`` instead of mutating module state.
    """
    version: str
    mode_rates: Mapping[SessionMode, ModeRate]
    engineer_hourly_rate: Decimal
    addons: Tuple[AddOn, ...]
    extra_camera_policy: ExtraCameraPolicy = ExtraCameraPolicy.PER_CAMERA
    extra_camera_fee: Decimal = Decimal('25.00')
    extra_camera_flat_fee: Decimal = Decimal('100.00')
    post_production_policy: PostProductionPolicy = PostProductionPolicy.TIERED
    post_first_camera_fee: Decimal = Decimal('200.00')
    post_additional_camera_fee: Decimal = Decimal('50.00')
    post_per_camera_rate: Decimal = Decimal('100.00')
    max_post_cameras: int = 4
    min_hours: Decimal = Decimal('1')
    max_hours: Decimal = Decimal('6')
    first_time_min_hours: Decimal = Decimal('2')
    hours_increment: Decimal = Decimal('0.5')
    currency: str = 'usd'
    default_mode: SessionMode = SessionMode.ONE_CAMERA

    def mode_rate(self, mode: SessionMode) -> ModeRate:
        return self.mode_rates.get(mode) or self.mode_rates[self.default_mode]

    def hours_floor(self, is_first_time: bool) -> Decimal:
        if is_first_time:
            return max(self.min_hours, self.first_time_min_hours)
        return self.min_hours

    def extra_cameras_fee(self, count: int) -> Decimal:
        if count <= 0:
            return Decimal('0')
        if self.extra_camera_policy is ExtraCameraPolicy.FLAT:
            return self.extra_camera_flat_fee
        return self.extra_camera_fee * count

    def post_production_fee(self, cams_to_edit: int) -> Decimal:
        """Fee for editing ``cams_to_edit`` camera feeds; zero cameras is always free"""
        if cams_to_edit <= 0:
            return Decimal('0')
        cams = min(cams_to_edit, self.max_post_cameras)
        if self.post_production_policy is PostProductionPolicy.LINEAR:
            return self.post_per_camera_rate * cams
        return self.post_first_camera_fee + self.post_additional_camera_fee * (cams - 1)

    def with_policies(
        self,
        post_production: Optional[PostProductionPolicy] = None,
        extra_cameras: Optional[ExtraCameraPolicy] = None
    ) -> 'PricingConfig':
        return replace(
            self,
            post_production_policy=post_production or self.post_production_policy,
            extra_camera_policy=extra_cameras or self.extra_camera_policy
        )

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any], base: Optional['PricingConfig'] = None) -> 'PricingConfig':
        """
        Build a rate table from Flask-style configuration

        Args:
            config: Mapping with POST_PRODUCTION_POLICY / EXTRA_CAMERA_POLICY
            base: Table to start from (defaults to DEFAULT_PRICING)

        Raises:
            ValueError: If a policy name is unknown
        """
        base = base or DEFAULT_PRICING
        post_name = str(config.get('POST_PRODUCTION_POLICY') or base.post_production_policy.value)
        extra_name = str(config.get('EXTRA_CAMERA_POLICY') or base.extra_camera_policy.value)
        return base.with_policies(
            post_production=PostProductionPolicy(post_name.strip().lower()),
            extra_cameras=ExtraCameraPolicy(extra_name.strip().lower())
        )

    def to_dict(self) -> Dict[str, Any]:
        """Public rate card"""
        return {
            'version': self.version,
            'currency': self.currency,
            'modes': [
                {
                    'mode': mode.value,
                    'label': mode.label,
                    'hourlyRate': to_json_number(rate.hourly_rate),
                    'includedCameras': rate.included_cameras
                }
                for mode, rate in self.mode_rates.items()
            ],
            'engineerHourlyRate': to_json_number(self.engineer_hourly_rate),
            'addons': [
                {'key': addon.key, 'label': addon.label, 'fee': to_json_number(addon.fee)}
                for addon in self.addons
            ],
            'extraCameras': {
                'policy': self.extra_camera_policy.value,
                'fee': to_json_number(
                    self.extra_camera_flat_fee
                    if self.extra_camera_policy is ExtraCameraPolicy.FLAT
                    else self.extra_camera_fee
                )
            },
            'postProduction': {
                'policy': self.post_production_policy.value,
                'maxCameras': self.max_post_cameras,
                'tiers': {
                    str(cams): to_json_number(self.post_production_fee(cams))
                    for cams in range(0, self.max_post_cameras + 1)
                }
            },
            'hours': {
                'min': to_json_number(self.min_hours),
                'max': to_json_number(self.max_hours),
                'firstTimeMin': to_json_number(self.first_time_min_hours),
                'increment': to_json_number(self.hours_increment)
            }
        }


DEFAULT_PRICING = PricingConfig(
    version='2024-06',
    mode_rates=_frozen({
        SessionMode.ONE_CAMERA: ModeRate(hourly_rate=Decimal('55.00'), included_cameras=1),
        SessionMode.AUDIO_ONLY: ModeRate(hourly_rate=Decimal('45.00'), included_cameras=0),
        SessionMode.MUSIC: ModeRate(hourly_rate=Decimal('50.00'), included_cameras=0),
    }),
    engineer_hourly_rate=Decimal('20.00'),
    addons=(
        AddOn('remoteGuest', 'Remote guest', Decimal('10.00')),
        AddOn('teleprompter', 'Teleprompter', Decimal('25.00')),
        AddOn('adClips5', '5 ad clips', Decimal('75.00')),
        AddOn('mediaSdOrUsb', 'Media on SD card / USB', Decimal('50.00')),
    ),
)


@dataclass(frozen=True)
class QuoteComponent:
    """One priced component of a quote"""
    key: str
    label: str
    unit_amount: Decimal
    quantity: Decimal
    description: Optional[str] = None

    @property
    def amount(self) -> Decimal:
        return self.unit_amount * self.quantity


@dataclass(frozen=True)
class QuoteBreakdown:
    base_subtotal: Decimal
    engineer_subtotal: Decimal
    extras_session: Decimal
    post_prod: Decimal

    @property
    def total(self) -> Decimal:
        return self.base_subtotal + self.engineer_subtotal + self.extras_session + self.post_prod

    def to_dict(self) -> Dict[str, Any]:
        return {
            'baseSubtotal': to_json_number(self.base_subtotal),
            'engineerSubtotal': to_json_number(self.engineer_subtotal),
            'extrasSession': to_json_number(self.extras_session),
            'postProd': to_json_number(self.post_prod)
        }


@dataclass(frozen=True)
class Quote:
    """Price breakdown for a normalized booking"""
    booking: Any  # NormalizedBooking
    hours: Decimal
    mode: SessionMode
    total_cams: int
    post_production_cams: int
    breakdown: QuoteBreakdown
    total: Decimal
    components: Tuple[QuoteComponent, ...]
    pricing_version: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'breakdown': self.breakdown.to_dict(),
            'total': to_json_number(self.total),
            'totalCams': self.total_cams,
            'hours': to_json_number(self.hours),
            'mode': self.mode.value,
            'postProductionCams': self.post_production_cams
        }


class QuoteCalculator:
    """Turn a normalized booking into a deterministic price breakdown"""

    def __init__(self, pricing: PricingConfig = DEFAULT_PRICING):
        self.pricing = pricing

    def resolve_post_production_cams(self, booking) -> int:
        """
        Cameras to edit

        An explicit count (including 0) is used as given; an absent count
        falls back to the priced camera count. Both are capped.
        """
        if booking.post_production is not None:
            cams = booking.post_production
        else:
            cams = self.pricing.mode_rate(booking.mode).included_cameras + booking.extra_cameras
        return max(0, min(cams, self.pricing.max_post_cameras))

    def compute_quote(self, booking) -> Quote:
        """
        Compute the quote for a booking

        Args:
            booking: NormalizedBooking, or a raw request mapping

        Returns:
            Quote whose total equals the sum of its breakdown
        """
        from studio_booking.services.normalizer import NormalizedBooking, normalize_booking

        if not isinstance(booking, NormalizedBooking):
            booking = normalize_booking(booking or {}, self.pricing)

        pricing = self.pricing
        mode_rate = pricing.mode_rate(booking.mode)
        hours = booking.hours
        components = []

        # 1. Base session
        base_subtotal = mode_rate.hourly_rate * hours
        components.append(QuoteComponent(
            key='base',
            label=f"Studio booking ({booking.mode.label})",
            unit_amount=mode_rate.hourly_rate,
            quantity=hours,
            description=format_hours(hours)
        ))

        # 2. Engineer
        engineer_subtotal = Decimal('0')
        if booking.wants_engineer:
            engineer_subtotal = pricing.engineer_hourly_rate * hours
            components.append(QuoteComponent(
                key='engineer',
                label='Studio Engineer',
                unit_amount=pricing.engineer_hourly_rate,
                quantity=hours,
                description=booking.engineer_name or None
            ))

        # 3. Per-session extras
        extras_session = Decimal('0')
        extra_cams_fee = pricing.extra_cameras_fee(booking.extra_cameras)
        if extra_cams_fee > 0:
            extras_session += extra_cams_fee
            if pricing.extra_camera_policy is ExtraCameraPolicy.FLAT:
                unit, quantity = extra_cams_fee, Decimal('1')
            else:
                unit, quantity = pricing.extra_camera_fee, Decimal(booking.extra_cameras)
            components.append(QuoteComponent(
                key='extraCameras',
                label=f"Extra camera{'s' if booking.extra_cameras != 1 else ''} ({booking.extra_cameras})",
                unit_amount=unit,
                quantity=quantity
            ))

        for addon in pricing.addons:
            if addon.key in booking.addons:
                extras_session += addon.fee
                components.append(QuoteComponent(
                    key=addon.key,
                    label=addon.label,
                    unit_amount=addon.fee,
                    quantity=Decimal('1')
                ))

        # 4. Post-production
        post_cams = self.resolve_post_production_cams(booking)
        post_prod = pricing.post_production_fee(post_cams)
        if post_prod > 0:
            components.append(QuoteComponent(
                key='postProduction',
                label=f"Post-production ({post_cams} cam{'' if post_cams == 1 else 's'})",
                unit_amount=post_prod,
                quantity=Decimal('1')
            ))

        # 5. Reported cameras; informational only
        priced_cams = mode_rate.included_cameras + booking.extra_cameras
        total_cams = max(priced_cams, booking.people_on_camera or 0)

        breakdown = QuoteBreakdown(
            base_subtotal=base_subtotal,
            engineer_subtotal=engineer_subtotal,
            extras_session=extras_session,
            post_prod=post_prod
        )

        return Quote(
            booking=booking,
            hours=hours,
            mode=booking.mode,
            total_cams=total_cams,
            post_production_cams=post_cams,
            breakdown=breakdown,
            total=breakdown.total,
            components=tuple(components),
            pricing_version=pricing.version
        )
