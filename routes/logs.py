"""Play session log API routes."""

from __future__ import annotations

import math
from typing import Any, Mapping

from flask import Blueprint, jsonify

from helpers import _coerce_positive_id, _parse_iso_date
from routes.api_utils import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    current_user_id,
    handle_api_errors,
    json_body,
    require_auth,
    require_id,
)

logs_blueprint = Blueprint("logs", __name__)

LOG_TITLE_MAX_LENGTH = 255

# Request body key -> logs column.
_BODY_FIELDS = {
    'title': 'title',
    'platformId': 'platform_id',
    'timePlayed': 'time_played',
    'startDate': 'start_date',
    'endDate': 'end_date',
    'review': 'review',
}

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide the log store and catalog helpers used by the log endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"logs routes missing context value: {key}")
    return _context[key]


def _parse_title(value: Any) -> str:
    title = value.strip() if isinstance(value, str) else ""
    if not title:
        raise BadRequestError('Log title is required')
    if len(title) > LOG_TITLE_MAX_LENGTH:
        raise BadRequestError(f'Log title must be at most {LOG_TITLE_MAX_LENGTH} characters')
    return title


def _parse_minutes(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise BadRequestError('timePlayed must be a number of minutes')
    if not math.isfinite(value) or value < 0 or value != int(value):
        raise BadRequestError('timePlayed must be a non-negative whole number of minutes')
    return int(value)


def _parse_date(value: Any, key: str) -> str | None:
    try:
        return _parse_iso_date(value)
    except ValueError as exc:
        raise BadRequestError(f'{key} must be an ISO date (YYYY-MM-DD)') from exc


def _parse_review(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise BadRequestError('review must be text')
    return value.strip() or None


def _parse_platform(value: Any) -> int | None:
    if value is None or value == "":
        return None
    platform_id = _coerce_positive_id(value)
    if platform_id is None:
        raise BadRequestError('Invalid platform ID')
    return platform_id


def _parse_fields(payload: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
    """Map request keys onto validated ``logs`` column values.

    With ``partial`` only the keys present in ``payload`` are returned, so
    an explicit ``null`` clears an optional column.
    """

    parsers = {
        'title': _parse_title,
        'platformId': _parse_platform,
        'timePlayed': _parse_minutes,
        'startDate': lambda value: _parse_date(value, 'startDate'),
        'endDate': lambda value: _parse_date(value, 'endDate'),
        'review': _parse_review,
    }
    fields = {}
    for key, column in _BODY_FIELDS.items():
        if partial and key not in payload:
            continue
        fields[column] = parsers[key](payload.get(key))
    return fields


def _check_date_order(start_date: str | None, end_date: str | None) -> None:
    # ISO dates compare correctly as text.
    if start_date and end_date and end_date < start_date:
        raise BadRequestError('endDate cannot be before startDate')


def _ensure_platform(platform_id: int | None, platform_name: Any) -> None:
    if platform_id is None:
        return
    name = platform_name.strip() if isinstance(platform_name, str) else ""
    if name:
        _ctx('upsert_platform')(platform_id, name)
    elif not _ctx('platform_exists')(platform_id):
        raise BadRequestError('Unknown platform; include platformName to register it')


def _owned_log(log_id: int) -> dict[str, Any]:
    log = _ctx('get_log')(log_id)
    if log is None:
        raise NotFoundError('Log not found')
    if log['user_id'] != current_user_id():
        raise ForbiddenError('Access denied')
    return log


@logs_blueprint.route('/api/logs/game/<int:game_id>')
@handle_api_errors
@require_auth
def api_game_logs(game_id: int):
    return jsonify(_ctx('logs_for_game')(current_user_id(), game_id))


@logs_blueprint.route('/api/logs', methods=['POST'])
@handle_api_errors(upstream_message='Failed to create log')
@require_auth
def api_create_log():
    payload = json_body()
    game_id = require_id(payload.get('gameId'), 'Game ID is required')
    fields = _parse_fields(payload, partial=False)
    _check_date_order(fields['start_date'], fields['end_date'])

    if not _ctx('ensure_game')(game_id):
        raise NotFoundError('Game not found in IGDB')
    _ensure_platform(fields['platform_id'], payload.get('platformName'))

    log_id = _ctx('create_log')(current_user_id(), game_id, fields)
    return jsonify({'message': 'Log created successfully', 'logId': log_id}), 201


@logs_blueprint.route('/api/logs/<int:log_id>', methods=['PUT'])
@handle_api_errors
@require_auth
def api_update_log(log_id: int):
    payload = json_body()
    changes = _parse_fields(payload, partial=True)
    log = _owned_log(log_id)
    _check_date_order(
        changes.get('start_date', log['start_date']),
        changes.get('end_date', log['end_date']),
    )
    _ensure_platform(changes.get('platform_id'), payload.get('platformName'))

    _ctx('update_log')(log_id, changes)
    return jsonify({'message': 'Log updated successfully'})


@logs_blueprint.route('/api/logs/<int:log_id>', methods=['DELETE'])
@handle_api_errors
@require_auth
def api_delete_log(log_id: int):
    _owned_log(log_id)
    _ctx('delete_log')(log_id)
    return jsonify({'message': 'Log deleted successfully'})


__all__ = ["configure", "logs_blueprint"]
