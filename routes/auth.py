"""Account API routes: registration, login, dashboard and profile settings."""

from __future__ import annotations

import re
from typing import Any, Mapping

from flask import Blueprint, jsonify

from routes.api_utils import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    current_user_id,
    handle_api_errors,
    json_body,
    require_auth,
)
from users.auth import hash_password, verify_password
from users.store import public_user

auth_blueprint = Blueprint("auth", __name__)

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
NEW_PASSWORD_MIN_LENGTH = 8

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide the account store and token signer used by the auth endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"auth routes missing context value: {key}")
    return _context[key]


def _text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else ""


def _normalize_email(value: str) -> str:
    return value.lower()


def _check_username(username: str, message: str) -> None:
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise BadRequestError(message)


def _current_user() -> dict[str, Any]:
    user = _ctx('find_user')(current_user_id())
    if user is None:
        raise NotFoundError('User not found')
    return user


@auth_blueprint.route('/api/auth/register', methods=['POST'])
@handle_api_errors
def api_register():
    payload = json_body()
    username = _text(payload, 'username')
    email = _normalize_email(_text(payload, 'email'))
    password = payload.get('password')
    if not username or not email or not isinstance(password, str) or not password:
        raise BadRequestError('All fields are required')
    _check_username(username, 'Username must be 3-50 characters')
    if not _EMAIL_PATTERN.match(email):
        raise BadRequestError('Invalid email format')
    if len(password) < PASSWORD_MIN_LENGTH:
        raise BadRequestError('Password must be at least 6 characters')
    if _ctx('email_exists')(email):
        raise ConflictError('Email already registered')
    if _ctx('username_exists')(username):
        raise ConflictError('Username already taken')

    user_id = _ctx('create_user')(username, email, hash_password(password))
    token = _ctx('tokens').issue(user_id, email)
    return (
        jsonify(
            {
                'message': 'User registered successfully',
                'token': token,
                'user': {'id': user_id, 'username': username, 'email': email},
            }
        ),
        201,
    )


@auth_blueprint.route('/api/auth/login', methods=['POST'])
@handle_api_errors
def api_login():
    payload = json_body()
    email = _normalize_email(_text(payload, 'email'))
    password = payload.get('password')
    if not email or not password:
        raise BadRequestError('Email and password are required')

    user = _ctx('find_user_by_email')(email)
    if user is None or not verify_password(password, user['password_hash']):
        raise UnauthorizedError('Invalid email or password')

    return jsonify(
        {
            'message': 'Login successful',
            'token': _ctx('tokens').issue(user['id'], user['email']),
            'user': public_user(user),
        }
    )


@auth_blueprint.route('/api/auth/dashboard')
@handle_api_errors
@require_auth
def api_dashboard():
    user = _current_user()
    dashboard = _ctx('dashboard')(user['id'])
    return jsonify({'user': public_user(user, with_created=True), **dashboard})


@auth_blueprint.route('/api/auth/profile', methods=['PUT'])
@handle_api_errors
@require_auth
def api_update_profile():
    username = _text(json_body(), 'username')
    _check_username(username, 'Username must be 3-50 characters')

    user = _current_user()
    if username != user['username'] and _ctx('username_exists')(username):
        raise ConflictError('Username already taken')

    _ctx('update_username')(user['id'], username)
    return jsonify({'message': 'Profile updated successfully', 'username': username})


@auth_blueprint.route('/api/auth/password', methods=['PUT'])
@handle_api_errors
@require_auth
def api_update_password():
    payload = json_body()
    new_password = payload.get('newPassword')
    if not isinstance(new_password, str) or len(new_password) < NEW_PASSWORD_MIN_LENGTH:
        raise BadRequestError('New password must be at least 8 characters')

    user = _current_user()
    if not verify_password(payload.get('currentPassword'), user['password_hash']):
        raise UnauthorizedError('Current password is incorrect')

    _ctx('update_password_hash')(user['id'], hash_password(new_password))
    return jsonify({'message': 'Password updated successfully'})


@auth_blueprint.route('/api/auth/account', methods=['DELETE'])
@handle_api_errors
@require_auth
def api_delete_account():
    if not _ctx('delete_user')(current_user_id()):
        raise NotFoundError('User not found')
    return jsonify({'message': 'Account deleted successfully'})


__all__ = ["auth_blueprint", "configure"]
