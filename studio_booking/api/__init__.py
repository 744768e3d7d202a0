# Routes package
from flask import Blueprint

api_bp = Blueprint('api', __name__)

from studio_booking.api import diagnostics, quotes, checkout
