from flask import Blueprint

api_v1_bp = Blueprint('api_v1', __name__, url_prefix='/api/v1')

# Import API endpoints to register them
from . import users, buckets, income, expenses, recurring, distribution, rollover
