import logging
from flask import Flask
from flask_cors import CORS
from config import Config
from studio_booking.extensions import init_booking_state


def create_app(config_class=Config, hold_store=None, busy_calendar=None, clock=None):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.json.sort_keys = app.config.get('JSON_SORT_KEYS', False)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Initialize extensions
    init_booking_state(app, hold_store=hold_store, busy_calendar=busy_calendar, clock=clock)
    CORS(app, origins=app.config.get('CORS_ORIGIN', '*'))

    # Register Blueprints
    from studio_booking.api import api_bp
    from studio_booking.api.public import public_bp
    from studio_booking.api.payments import payment_bp
    app.register_blueprint(api_bp)
    app.register_blueprint(public_bp)
    app.register_blueprint(payment_bp)

    return app
