from flask import request

from studio_booking.services.errors import BookingValidationError


def get_json_object():
    """
    Request body as a dict

    An empty body reads as ``{}`` so every field falls back to its default.

    Raises:
        BookingValidationError: If the body is not a JSON object
    """
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data():
            raise BookingValidationError('Bad Request', detail='Request body must be valid JSON.')
        return {}
    if not isinstance(data, dict):
        raise BookingValidationError('Bad Request', detail='Request body must be a JSON object.')
    return data
