from sqlalchemy import text

from games.store import store_game_metadata, upsert_platform
from playlogs.store import create_log, get_log

from tests.app_helpers import (
    FakeOpener,
    count_rows,
    igdb_game_payload,
    load_app,
    login_user,
    token_payload,
)


def _setup(tmp_path, opener=None):
    app, db = load_app(tmp_path, opener)
    user_id, headers = login_user(app, db)
    store_game_metadata(
        db, igdb_game_payload(1, name='Hades', platforms=[(6, 'PC (Microsoft Windows)')])
    )
    return app, db, user_id, headers


def test_create_log_and_list_by_game(tmp_path):
    app, db, user_id, headers = _setup(tmp_path)
    client = app.test_client()

    created = client.post(
        '/api/logs',
        json={
            'gameId': 1,
            'title': 'First escape',
            'platformId': 6,
            'timePlayed': 120,
            'startDate': '2024-02-01',
            'endDate': '2024-02-03T21:00:00Z',
            'review': 'Great run',
        },
        headers=headers,
    )
    logs = client.get('/api/logs/game/1', headers=headers)

    assert created.status_code == 201
    log_id = created.get_json()['logId']
    [log] = logs.get_json()
    assert log['id'] == log_id
    assert log['title'] == 'First escape'
    assert log['platform_name'] == 'PC (Microsoft Windows)'
    assert log['time_played'] == 120
    assert log['start_date'] == '2024-02-01'
    assert log['end_date'] == '2024-02-03'
    assert log['review'] == 'Great run'
    db.dispose()


def test_create_log_validates_body(tmp_path):
    app, db, user_id, headers = _setup(tmp_path)
    client = app.test_client()

    cases = [
        ({'title': 'No game'}, 'Game ID is required'),
        ({'gameId': 1}, 'Log title is required'),
        ({'gameId': 1, 'title': 'x', 'timePlayed': -5},
         'timePlayed must be a non-negative whole number of minutes'),
        ({'gameId': 1, 'title': 'x', 'startDate': '02/01/2024'},
         'startDate must be an ISO date (YYYY-MM-DD)'),
        ({'gameId': 1, 'title': 'x', 'startDate': '2024-03-01', 'endDate': '2024-02-01'},
         'endDate cannot be before startDate'),
        ({'gameId': 1, 'title': 'x', 'platformId': 99},
         'Unknown platform; include platformName to register it'),
    ]
    for body, message in cases:
        response = client.post('/api/logs', json=body, headers=headers)
        assert response.status_code == 400
        assert response.get_json() == {'error': message}

    assert count_rows(db, 'logs') == 0
    db.dispose()


def test_create_log_registers_named_platform(tmp_path):
    app, db, user_id, headers = _setup(tmp_path)
    client = app.test_client()

    response = client.post(
        '/api/logs',
        json={'gameId': 1, 'title': 'Handheld', 'platformId': 130, 'platformName': 'Nintendo Switch'},
        headers=headers,
    )

    assert response.status_code == 201
    [log] = client.get('/api/logs/game/1', headers=headers).get_json()
    assert log['platform_name'] == 'Nintendo Switch'
    assert log['time_played'] == 0
    db.dispose()


def test_create_log_fetches_missing_game(tmp_path):
    opener = FakeOpener([token_payload(), [igdb_game_payload(1942, name='The Witcher 3')]])
    app, db, user_id, headers = _setup(tmp_path, opener)
    client = app.test_client()

    response = client.post('/api/logs', json={'gameId': 1942, 'title': 'Velen'}, headers=headers)

    assert response.status_code == 201
    assert count_rows(db, 'games') == 2
    app.extensions['igdb_client'].token_cache.invalidate()
    db.dispose()


def test_create_log_for_unknown_game(tmp_path):
    opener = FakeOpener([token_payload(), []])
    app, db, user_id, headers = _setup(tmp_path, opener)
    client = app.test_client()

    response = client.post('/api/logs', json={'gameId': 404, 'title': 'Ghost'}, headers=headers)

    assert response.status_code == 404
    assert response.get_json() == {'error': 'Game not found in IGDB'}
    app.extensions['igdb_client'].token_cache.invalidate()
    db.dispose()


def test_logs_are_scoped_to_the_user(tmp_path):
    app, db, user_id, headers = _setup(tmp_path)
    other_id, other_headers = login_user(app, db, 'other')
    create_log(db, user_id, 1, {'title': 'Mine'})
    client = app.test_client()

    response = client.get('/api/logs/game/1', headers=other_headers)

    assert response.status_code == 200
    assert response.get_json() == []
    db.dispose()


def test_update_log_changes_only_given_fields(tmp_path):
    app, db, user_id, headers = _setup(tmp_path)
    log_id = create_log(
        db, user_id, 1, {'title': 'Run', 'time_played': 30, 'review': 'Fun', 'platform_id': 6}
    )
    client = app.test_client()

    response = client.put(
        f'/api/logs/{log_id}', json={'timePlayed': 75, 'review': None}, headers=headers
    )

    assert response.status_code == 200
    log = get_log(db, log_id)
    assert log['title'] == 'Run'
    assert log['time_played'] == 75
    assert log['review'] is None
    assert log['platform_id'] == 6
    db.dispose()


def test_update_log_checks_dates_against_stored_values(tmp_path):
    app, db, user_id, headers = _setup(tmp_path)
    log_id = create_log(db, user_id, 1, {'title': 'Run', 'start_date': '2024-05-10'})
    client = app.test_client()

    response = client.put(f'/api/logs/{log_id}', json={'endDate': '2024-05-01'}, headers=headers)

    assert response.status_code == 400
    assert response.get_json() == {'error': 'endDate cannot be before startDate'}
    db.dispose()


def test_update_and_delete_require_ownership(tmp_path):
    app, db, user_id, headers = _setup(tmp_path)
    other_id, other_headers = login_user(app, db, 'other')
    log_id = create_log(db, user_id, 1, {'title': 'Mine'})
    client = app.test_client()

    update = client.put(f'/api/logs/{log_id}', json={'title': 'Stolen'}, headers=other_headers)
    delete = client.delete(f'/api/logs/{log_id}', headers=other_headers)
    missing = client.delete('/api/logs/999', headers=headers)

    assert update.status_code == 403
    assert delete.status_code == 403
    assert missing.status_code == 404
    assert missing.get_json() == {'error': 'Log not found'}
    assert get_log(db, log_id)['title'] == 'Mine'
    db.dispose()


def test_delete_log(tmp_path):
    app, db, user_id, headers = _setup(tmp_path)
    log_id = create_log(db, user_id, 1, {'title': 'Run'})
    client = app.test_client()

    response = client.delete(f'/api/logs/{log_id}', headers=headers)

    assert response.status_code == 200
    assert count_rows(db, 'logs') == 0
    db.dispose()


def test_deleting_platform_keeps_logs(tmp_path):
    app, db, user_id, headers = _setup(tmp_path)
    upsert_platform(db, 130, 'Nintendo Switch')
    log_id = create_log(db, user_id, 1, {'title': 'Run', 'platform_id': 130})
    with db.sa_connection() as conn:
        conn.execute(text('DELETE FROM platforms WHERE id = 130'))
        conn.commit()

    log = get_log(db, log_id)

    assert log is not None
    assert log['platform_id'] is None
    db.dispose()
