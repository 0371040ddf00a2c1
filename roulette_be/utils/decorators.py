from functools import wraps
from flask import jsonify, current_app

from roulette_be.error_codes import ErrorCodes

def feature_flag_required(flag_name):
    """
    Decorator to enable/disable routes based on a feature flag in Flask app config.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_app.config.get(flag_name, False):
                # 404 so a disabled game looks like it does not exist
                return jsonify({
                    'status': False,
                    'error_code': ErrorCodes.NOT_FOUND,
                    'status_message': 'This feature is not currently available.'
                }), 404
            return f(*args, **kwargs)
        return decorated_function
    return decorator
