"""Flask application factory and service client initialization."""
from __future__ import annotations

from functools import partial

from flask import Flask

import config as app_config
from collection import stats as collection_stats
from collection import store as collection_store
from db import utils as db_utils
from games import lookup as games_lookup
from games import store as games_store
from igdb.client import IGDBClient
from init import configure_logging, initialize_app
from lists import store as lists_store
from playlogs import store as playlogs_store
from routes import auth as routes_auth
from routes import games as routes_games
from routes import lists as routes_lists
from routes import logs as routes_logs
from users import store as users_store
from users.auth import AuthTokenSigner


def build_igdb_client() -> IGDBClient:
    return IGDBClient(
        client_id=app_config.TWITCH_CLIENT_ID,
        client_secret=app_config.TWITCH_CLIENT_SECRET,
        user_agent=app_config.IGDB_USER_AGENT,
        max_page_size=app_config.IGDB_MAX_PAGE_SIZE,
        timeout=app_config.IGDB_REQUEST_TIMEOUT_SECONDS,
    )


def build_database(dsn: str | None = None) -> db_utils.DatabaseEngine:
    return db_utils.build_engine_from_dsn(
        dsn or app_config.DB_DSN,
        timeout=app_config.DB_CONNECT_TIMEOUT_SECONDS,
    )


def build_auth_tokens(secret_key: str) -> AuthTokenSigner:
    return AuthTokenSigner(secret_key, max_age=app_config.AUTH_TOKEN_MAX_AGE_SECONDS)


def configure_blueprints(
    flask_app: Flask,
    *,
    db: db_utils.DatabaseEngine,
    igdb_client: IGDBClient,
    igdb_enabled: bool,
    auth_tokens: AuthTokenSigner,
) -> None:
    """Wire services into the route modules and register their blueprints."""

    ensure_game = partial(games_store.ensure_game_stored, db, igdb_client.get_game_details)

    routes_games.configure(
        {
            'igdb_enabled': lambda: igdb_enabled,
            'game_exists': partial(games_lookup.game_exists, db),
            'get_game': partial(games_lookup.get_game_by_id, db),
            'search_local': partial(games_lookup.search_games_in_database, db),
            'store_game': partial(games_store.store_game_metadata, db),
            'search_remote': igdb_client.search_games,
            'fetch_details': igdb_client.get_game_details,
            'ensure_game': ensure_game,
            'add_to_collection': partial(collection_store.add_game_to_collection, db),
            'get_status': partial(collection_store.get_game_status, db),
            'remove_from_collection': partial(collection_store.remove_game_from_collection, db),
            'list_collection': partial(collection_store.get_user_games, db),
            'get_user_rating': partial(collection_store.get_user_rating, db),
            'set_user_rating': partial(collection_store.set_user_rating, db),
            'get_rating': partial(collection_store.get_average_rating, db),
            'rating_counts': partial(collection_store.get_rating_counts, db),
            'trending': partial(collection_stats.get_trending_games, db),
            'profile_stats': partial(collection_stats.get_profile_stats, db),
        }
    )
    routes_auth.configure(
        {
            'tokens': auth_tokens,
            'create_user': partial(users_store.create_user, db),
            'find_user': partial(users_store.find_user_by_id, db),
            'find_user_by_email': partial(users_store.find_user_by_email, db),
            'email_exists': partial(users_store.email_exists, db),
            'username_exists': partial(users_store.username_exists, db),
            'update_username': partial(users_store.update_username, db),
            'update_password_hash': partial(users_store.update_password_hash, db),
            'delete_user': partial(users_store.delete_user, db),
            'dashboard': partial(collection_stats.get_dashboard, db),
        }
    )
    routes_lists.configure(
        {
            'ensure_game': ensure_game,
            'create_list': partial(lists_store.create_list, db),
            'user_lists': partial(lists_store.get_user_lists, db),
            'get_list': partial(lists_store.get_list_by_id, db),
            'list_owned_by': partial(lists_store.list_owned_by, db),
            'update_list': partial(lists_store.update_list, db),
            'delete_list': partial(lists_store.delete_list, db),
            'add_game': partial(lists_store.add_game_to_list, db),
            'remove_game': partial(lists_store.remove_game_from_list, db),
        }
    )
    routes_logs.configure(
        {
            'ensure_game': ensure_game,
            'upsert_platform': partial(games_store.upsert_platform, db),
            'platform_exists': partial(games_lookup.platform_exists, db),
            'logs_for_game': partial(playlogs_store.get_logs_by_game, db),
            'create_log': partial(playlogs_store.create_log, db),
            'get_log': partial(playlogs_store.get_log, db),
            'update_log': partial(playlogs_store.update_log, db),
            'delete_log': partial(playlogs_store.delete_log, db),
        }
    )

    for blueprint in (
        routes_games.games_blueprint,
        routes_auth.auth_blueprint,
        routes_lists.lists_blueprint,
        routes_logs.logs_blueprint,
    ):
        if blueprint.name not in flask_app.blueprints:
            flask_app.register_blueprint(blueprint)


def create_app(
    *,
    db: db_utils.DatabaseEngine | None = None,
    igdb_client: IGDBClient | None = None,
    auth_tokens: AuthTokenSigner | None = None,
    setup_logging: bool = True,
) -> Flask:
    """Return a configured Flask application instance."""

    flask_app = Flask(__name__)
    flask_app.secret_key = app_config.APP_SECRET_KEY
    if setup_logging:
        configure_logging(flask_app)

    database = db or build_database()
    client = igdb_client or build_igdb_client()
    tokens = auth_tokens or build_auth_tokens(flask_app.secret_key)
    igdb_enabled = initialize_app(database)

    flask_app.extensions['backlog_db'] = database
    flask_app.extensions['igdb_client'] = client
    flask_app.extensions['auth_tokens'] = tokens
    configure_blueprints(
        flask_app,
        db=database,
        igdb_client=client,
        igdb_enabled=igdb_enabled,
        auth_tokens=tokens,
    )
    return flask_app


__all__ = [
    "build_auth_tokens",
    "build_database",
    "build_igdb_client",
    "configure_blueprints",
    "create_app",
]
