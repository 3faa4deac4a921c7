from functools import wraps
from flask import abort, current_app
from flask_jwt_extended import verify_jwt_in_request
from pizzeria.services.policy import has_permissions


def require_permissions(*codes: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if not has_permissions(*codes):
                abort(403, description='Missing permission')
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_store_open(fn):
    """Run the store gate before a purchase-path handler; closed stores get 403 with the contact message."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        gate = current_app.extensions['store_gate']
        gate.reconcile_if_stale()
        decision = gate.check_interaction()
        if not decision:
            abort(403, description=decision.message)
        return fn(*args, **kwargs)
    return wrapper
