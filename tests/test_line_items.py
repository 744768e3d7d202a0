import pytest
from studio_booking.services.line_items import LineItemProjector
from studio_booking.services.normalizer import normalize_booking
from studio_booking.services.pricing import DEFAULT_PRICING, QuoteCalculator
from studio_booking.utils.money import to_cents


@pytest.fixture
def projector():
    return LineItemProjector(DEFAULT_PRICING)


def _quote(payload):
    return QuoteCalculator(DEFAULT_PRICING).compute_quote(normalize_booking(payload))


def test_hourly_items_use_hours_as_quantity(projector):
    quote = _quote({'hours': 2, 'engineerChoice': 'any', 'postProduction': 0})
    projection = projector.project(quote)

    assert [(item.label, item.unit_amount_cents, item.quantity) for item in projection.line_items] == [
        ('Studio booking (ONE CAMERA)', 5500, 2),
        ('Studio Engineer', 2000, 2),
    ]
    assert projection.total_cents == 15000


def test_fractional_hours_become_single_line(projector):
    quote = _quote({'hours': 2.5, 'engineerChoice': 'none', 'postProduction': 0})
    projection = projector.project(quote)

    item = projection.line_items[0]
    assert item.quantity == 1
    assert item.unit_amount_cents == 13750
    assert item.description == '2.5 hours'


@pytest.mark.parametrize('payload', [
    {'hours': 3, 'mode': 'AUDIO_ONLY', 'engineerChoice': 'none', 'teleprompter': True, 'postProduction': 1},
    {'hours': 1.5, 'extraCameras': 3, 'remoteGuest': True, 'adClips5': True},
    {'hours': 5.5, 'mode': 'MUSIC', 'mediaSdOrUsb': True, 'postProduction': 4},
])
def test_line_items_sum_to_quote_total(projector, payload):
    quote = _quote(payload)
    projection = projector.project(quote)

    assert projection.total_cents == to_cents(quote.total)


def test_zero_post_production_has_no_line(projector):
    projection = projector.project(_quote({'hours': 2, 'extraCameras': 2, 'postProduction': 0}))

    labels = [item.label for item in projection.line_items]
    assert labels == ['Studio booking (ONE CAMERA)', 'Studio Engineer', 'Extra cameras (2)']


def test_post_production_line_label(projector):
    projection = projector.project(_quote({'hours': 1, 'extraCameras': 1}))

    assert projection.line_items[-1].label == 'Post-production (2 cams)'
    assert projection.line_items[-1].unit_amount_cents == 25000


def test_metadata_is_flat_strings(projector):
    quote = _quote({
        'hours': 3,
        'mode': 'AUDIO_ONLY',
        'engineerChoice': 'none',
        'teleprompter': True,
        'postProduction': 1,
        'date': '2025-06-05',
        'startTime': '10:00',
        'notes': 'n' * 600,
        'customer': {'name': 'Jordan Lee', 'email': 'jordan@example.com', 'phone': '555-0100'}
    })
    metadata = projector.project(quote).metadata

    assert all(isinstance(value, str) for value in metadata.values())
    assert all(len(value) <= 500 for value in metadata.values())
    assert len(metadata) <= 50
    assert metadata['customerName'] == 'Jordan Lee'
    assert metadata['mode'] == 'AUDIO_ONLY'
    assert metadata['teleprompter'] == 'true'
    assert metadata['remoteGuest'] == 'false'
    assert metadata['postProduction'] == '1'
    assert metadata['total'] == '360'
    assert metadata['totalCents'] == '36000'
    assert metadata['peopleOnCamera'] == ''


def test_metadata_keeps_absent_post_production_empty(projector):
    metadata = projector.project(_quote({'hours': 2})).metadata

    assert metadata['postProduction'] == ''
    assert metadata['postProductionCams'] == '1'


def test_extra_metadata_is_merged(projector):
    projection = projector.project(_quote({'hours': 2}), extra_metadata={'room': 'Studio', 'holdId': 'hold_abc'})

    assert projection.metadata['room'] == 'Studio'
    assert projection.metadata['holdId'] == 'hold_abc'


def test_too_many_metadata_keys(projector):
    extra = {f"key{i}": 'x' for i in range(40)}

    with pytest.raises(ValueError):
        projector.project(_quote({'hours': 2}), extra_metadata=extra)


def test_to_stripe_shape(projector):
    projection = projector.project(_quote({'hours': 2, 'engineerChoice': 'none', 'postProduction': 0}))

    assert LineItemProjector.to_stripe(projection.line_items, 'usd') == [{
        'price_data': {
            'currency': 'usd',
            'unit_amount': 5500,
            'product_data': {'name': 'Studio booking (ONE CAMERA)', 'description': '2 hours'}
        },
        'quantity': 2
    }]
