from conftest import BOOKING_DATE, SUNDAY_DATE


def _hold(client, **overrides):
    payload = {'room': 'Studio', 'date': BOOKING_DATE, 'startTime': '10:00', 'hours': 2}
    payload.update(overrides)
    return client.post('/public/hold', json=payload)


def test_services_lists_rate_card(client):
    response = client.get('/public/services')

    assert response.status_code == 200
    data = response.json
    assert data['pricing']['engineerHourlyRate'] == 20
    assert data['pricing']['postProduction']['tiers']['1'] == 200
    assert data['rooms'] == ['Studio']
    assert data['engineers'] == ['Alex', 'Sam']
    assert data['schedule']['openingTime'] == '10:00'
    assert data['schedule']['closedWeekdays'] == [7]


def test_create_hold(client):
    response = _hold(client)

    assert response.status_code == 201
    assert response.json['holdId'].startswith('hold_')
    assert response.json['startTime'] == '10:00'
    assert response.json['hours'] == 2
    assert 'expiresAt' in response.json


def test_overlapping_hold_conflicts(client):
    assert _hold(client).status_code == 201

    response = _hold(client, startTime='11:00')

    assert response.status_code == 409
    assert response.json['code'] == 'HOLD_CONFLICT'
    assert response.json['error'] == 'Time slot unavailable'


def test_hold_requires_start_time(client):
    response = _hold(client, startTime='')

    assert response.status_code == 400
    assert response.json['violations'][0]['field'] == 'startTime'


def test_first_time_hold_needs_two_hours(client):
    response = _hold(client, hours=1, isFirstTime=True)

    assert response.status_code == 400
    assert response.json['error'] == 'First-time bookings require at least 2 hours.'


def test_cancel_hold(client):
    hold_id = _hold(client).json['holdId']

    first = client.post('/public/hold/cancel', json={'holdId': hold_id})
    second = client.post('/public/hold/cancel', json={'holdId': hold_id})

    assert first.json == {'cancelled': True}
    assert second.json == {'cancelled': False}
    assert _hold(client).status_code == 201


def test_cancel_hold_requires_id(client):
    response = client.post('/public/hold/cancel', json={})

    assert response.status_code == 400
    assert response.json['code'] == 'VALIDATION_ERROR'


def test_availability(client, busy_calendar):
    _hold(client)
    busy_calendar.add('Studio', BOOKING_DATE, '15:00', '16:00')

    response = client.get(f'/public/availability?date={BOOKING_DATE}&hours=2')

    assert response.status_code == 200
    assert response.json['room'] == 'Studio'
    slots = {slot['startTime']: slot['available'] for slot in response.json['slots']}
    assert slots['10:00'] is False
    assert slots['12:00'] is True
    assert slots['13:30'] is False
    assert slots['16:00'] is True


def test_availability_requires_date(client):
    response = client.get('/public/availability')

    assert response.status_code == 400
    assert response.json['violations'][0]['field'] == 'date'


def test_availability_on_closed_day(client):
    response = client.get(f'/public/availability?date={SUNDAY_DATE}')

    assert response.status_code == 400
    assert response.json['error'] == 'The studio is closed on Sundays.'
