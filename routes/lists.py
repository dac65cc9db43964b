"""Custom game list API routes."""

from __future__ import annotations

from typing import Any, Mapping

from flask import Blueprint, jsonify

from lists.store import LIST_NAME_MAX_LENGTH
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

lists_blueprint = Blueprint("lists", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide the list store and catalog helpers used by the list endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"lists routes missing context value: {key}")
    return _context[key]


def _require_owner(list_id: int) -> None:
    # Unknown lists and lists of other users are indistinguishable to the caller.
    if not _ctx('list_owned_by')(list_id, current_user_id()):
        raise ForbiddenError('Access denied')


def _list_name(value: Any, *, required: bool) -> str | None:
    if value is None and not required:
        return None
    name = value.strip() if isinstance(value, str) else ""
    if not name:
        raise BadRequestError('List name is required')
    if len(name) > LIST_NAME_MAX_LENGTH:
        raise BadRequestError(f'List name must be at most {LIST_NAME_MAX_LENGTH} characters')
    return name


def _description(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise BadRequestError('Description must be text')
    return value.strip()


@lists_blueprint.route('/api/lists', methods=['POST'])
@handle_api_errors
@require_auth
def api_create_list():
    payload = json_body()
    name = _list_name(payload.get('name'), required=True)
    description = _description(payload.get('description')) or ""
    list_id = _ctx('create_list')(current_user_id(), name, description)
    return jsonify({'message': 'List created', 'listId': list_id}), 201


@lists_blueprint.route('/api/lists', methods=['GET'])
@handle_api_errors
@require_auth
def api_my_lists():
    return jsonify(_ctx('user_lists')(current_user_id()))


@lists_blueprint.route('/api/lists/<int:list_id>', methods=['GET'])
@handle_api_errors
@require_auth
def api_list_details(list_id: int):
    _require_owner(list_id)
    details = _ctx('get_list')(list_id)
    if details is None:
        raise NotFoundError('List not found')
    return jsonify(details)


@lists_blueprint.route('/api/lists/<int:list_id>', methods=['PUT'])
@handle_api_errors
@require_auth
def api_update_list(list_id: int):
    payload = json_body()
    name = _list_name(payload.get('name'), required=False)
    description = _description(payload.get('description'))
    if name is None and description is None:
        raise BadRequestError('Nothing to update')
    _require_owner(list_id)
    _ctx('update_list')(list_id, name=name, description=description)
    return jsonify({'message': 'List updated successfully'})


@lists_blueprint.route('/api/lists/<int:list_id>', methods=['DELETE'])
@handle_api_errors
@require_auth
def api_delete_list(list_id: int):
    _require_owner(list_id)
    _ctx('delete_list')(list_id)
    return jsonify({'message': 'List deleted successfully'})


@lists_blueprint.route('/api/lists/<int:list_id>/game', methods=['POST'])
@lists_blueprint.route('/api/lists/<int:list_id>/games', methods=['POST'])
@handle_api_errors(upstream_message='Failed to add game to list')
@require_auth
def api_add_game_to_list(list_id: int):
    game_id = require_id(json_body().get('igdbId'), 'igdbId is required')
    _require_owner(list_id)
    if not _ctx('ensure_game')(game_id):
        raise NotFoundError('Game not found in IGDB')
    _ctx('add_game')(list_id, game_id)
    return jsonify({'message': 'Game added to list'})


@lists_blueprint.route('/api/lists/<int:list_id>/game/<int:game_id>', methods=['DELETE'])
@handle_api_errors
@require_auth
def api_remove_game_from_list(list_id: int, game_id: int):
    _require_owner(list_id)
    if not _ctx('remove_game')(list_id, game_id):
        raise NotFoundError('Game not in list')
    return jsonify({'message': 'Game removed from list'})


__all__ = ["configure", "lists_blueprint"]
