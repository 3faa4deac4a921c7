from flask import Blueprint, request, abort, current_app
from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity
from pizzeria.services.credentials import StaffDirectory, issue_token, revoke_token

auth_bp = Blueprint('auth', __name__)


def _directory() -> StaffDirectory:
    directory = current_app.extensions.get('staff_directory')
    if directory is None:
        directory = StaffDirectory(current_app.config)
        current_app.extensions['staff_directory'] = directory
    return directory


@auth_bp.post('/login')
def login():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        abort(400, description='JSON object required')
    username = data.get('username'); password = data.get('password')
    if not username or not password:
        abort(400, description='username & password required')
    if not isinstance(username, str) or not isinstance(password, str):
        abort(400, description='username & password must be strings')
    token = issue_token(_directory(), username, password)
    if token is None:
        current_app.logger.warning('Failed staff login for %s', username)
        abort(401, description='invalid credentials')
    return {'access_token': token}


@auth_bp.get('/me')
@jwt_required()
def me():
    claims = get_jwt()
    return {
        'username': get_jwt_identity(),
        'role': claims.get('role'),
        'actor': claims.get('actor'),
        'perms': claims.get('perms', []),
    }


@auth_bp.post('/logout')
@jwt_required()
def logout():
    revoke_token(get_jwt())
    return {'revoked': True}
