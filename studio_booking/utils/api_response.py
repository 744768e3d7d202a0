from flask import jsonify


class APIResponse:
    """Standardized API response format"""

    @staticmethod
    def success(data=None, status_code=200):
        """Success response; the payload is returned as-is"""
        return jsonify(data if data is not None else {'ok': True}), status_code

    @staticmethod
    def error(message, detail=None, code='BAD_REQUEST', status_code=400, violations=None):
        """Error response"""
        response = {
            'error': message,
            'detail': detail or message,
            'code': code
        }
        if violations:
            response['violations'] = violations
        return jsonify(response), status_code

    @staticmethod
    def from_error(error):
        """Render a BookingError with its own status code"""
        return jsonify(error.to_dict()), error.status_code

    @staticmethod
    def validation_error(message, violations=None):
        """Validation error response"""
        return APIResponse.error(message, code='VALIDATION_ERROR', violations=violations)
