from flask import Blueprint

api_bp = Blueprint('api', __name__)
health_bp = Blueprint('health', __name__)

from medsearch.api import routes  # noqa: E402,F401
