"""Game catalog and collection API routes."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, jsonify, request

from collection.store import is_valid_rating, is_valid_status
from routes.api_utils import (
    BadRequestError,
    NotFoundError,
    current_user_id,
    handle_api_errors,
    json_body,
    require_auth,
    require_id,
)

games_blueprint = Blueprint("games", __name__)

DEFAULT_SEARCH_LIMIT = 10

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide the services required by the game endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"games routes missing context value: {key}")
    return _context[key]


def _parse_limit(value: str | None) -> int:
    if value is None or not value.strip():
        return DEFAULT_SEARCH_LIMIT
    try:
        limit = int(value)
    except ValueError as exc:
        raise BadRequestError("limit must be an integer") from exc
    if limit <= 0:
        raise BadRequestError("limit must be positive")
    return limit


@games_blueprint.route('/api/health')
def api_health():
    igdb_enabled: Callable[[], bool] = _ctx('igdb_enabled')
    return jsonify({'status': 'ok', 'igdb_enabled': bool(igdb_enabled())})


@games_blueprint.route('/api/games/search')
@handle_api_errors(upstream_message='Failed to search games')
def api_search_games():
    query = (request.args.get('q') or '').strip()
    if not query:
        raise BadRequestError('Search query required')
    limit = _parse_limit(request.args.get('limit'))

    local_games = _ctx('search_local')(query)
    if local_games:
        return jsonify({'source': 'database', 'games': local_games})

    records = _ctx('search_remote')(query, limit)
    return jsonify({'source': 'igdb', 'games': [record.to_dict() for record in records]})


@games_blueprint.route('/api/games/<int:game_id>')
@handle_api_errors(upstream_message='Failed to get game details')
def api_game_details(game_id: int):
    if _ctx('game_exists')(game_id):
        return jsonify({'source': 'database', 'game': _ctx('get_game')(game_id)})

    record = _ctx('fetch_details')(game_id)
    if record is None:
        raise NotFoundError('Game not found')

    _ctx('store_game')(record)
    return jsonify({'source': 'igdb', 'game': _ctx('get_game')(game_id)})


def _store_on_demand(game_id: int) -> None:
    if not _ctx('ensure_game')(game_id):
        raise NotFoundError('Game not found in IGDB')


@games_blueprint.route('/api/games', methods=['GET'])
@handle_api_errors
@require_auth
def api_user_collection():
    status = request.args.get('status') or None
    if status is not None and not is_valid_status(status):
        raise BadRequestError('Invalid status value')
    return jsonify(_ctx('list_collection')(current_user_id(), status))


@games_blueprint.route('/api/games/collection', methods=['POST'])
@handle_api_errors(upstream_message='Failed to add game to collection')
@require_auth
def api_add_to_collection():
    payload = json_body()
    status = payload.get('status')
    if not status:
        raise BadRequestError('Status is required to add game to collection')
    if not is_valid_status(status):
        raise BadRequestError('Invalid status value')
    game_id = require_id(
        payload.get('igdbId'), 'igdbId is required to add game to collection'
    )

    _store_on_demand(game_id)
    _ctx('add_to_collection')(current_user_id(), game_id, status)
    return jsonify({'message': 'Game added to collection', 'status': status})


@games_blueprint.route('/api/games/<int:game_id>/status')
@handle_api_errors
@require_auth
def api_collection_status(game_id: int):
    return jsonify({'status': _ctx('get_status')(current_user_id(), game_id)})


@games_blueprint.route('/api/games/<int:game_id>', methods=['DELETE'])
@handle_api_errors
@require_auth
def api_remove_from_collection(game_id: int):
    if not _ctx('remove_from_collection')(current_user_id(), game_id):
        raise NotFoundError('Game not in collection')
    return jsonify({'message': 'Game removed from collection'})


@games_blueprint.route('/api/games/<int:game_id>/rating/user', methods=['GET'])
@handle_api_errors
@require_auth
def api_user_rating(game_id: int):
    return jsonify({'rating': _ctx('get_user_rating')(current_user_id(), game_id)})


@games_blueprint.route('/api/games/<int:game_id>/rating/user', methods=['PUT'])
@handle_api_errors
@require_auth
def api_change_user_rating(game_id: int):
    rating = json_body().get('rating')
    if not is_valid_rating(rating):
        raise BadRequestError('Rating must be a number between 0 and 5')
    if not _ctx('set_user_rating')(current_user_id(), game_id, rating):
        raise NotFoundError('Game not in collection')
    return jsonify({'message': 'User rating updated successfully', 'rating': rating})


@games_blueprint.route('/api/games/<int:game_id>/rating')
@handle_api_errors
@require_auth
def api_game_rating(game_id: int):
    return jsonify({'rating': _ctx('get_rating')(game_id)})


@games_blueprint.route('/api/games/<int:game_id>/rating/counts')
@handle_api_errors
@require_auth
def api_game_rating_counts(game_id: int):
    return jsonify({'counts': _ctx('rating_counts')(game_id)})


@games_blueprint.route('/api/games/trending')
@handle_api_errors
@require_auth
def api_trending_games():
    return jsonify(_ctx('trending')())


@games_blueprint.route('/api/games/profile/stats')
@handle_api_errors
@require_auth
def api_profile_stats():
    return jsonify(_ctx('profile_stats')(current_user_id()))


__all__ = ["configure", "games_blueprint"]
