from datetime import timedelta

from conftest import correct_answer, deal, submit
from neurolink import db
from neurolink.models import DailyProfile, PlayerProfile, utcnow


def _profile(user_id, score, tier='T1'):
    db.session.add(PlayerProfile(user_id=user_id, name=user_id, score=score, tier=tier, streak=0, session_zone=0))


def test_lookup_missing_profile(client):
    res = client.get('/api/profiles/ghost')
    assert res.status_code == 404


def test_lookup_hides_pin(client):
    client.post('/api/profiles/pin', json={'userId': 'alice', 'pin': '1234'})
    body = client.get('/api/profiles/alice').get_json()
    assert body['secured'] is True
    assert 'pin' not in body and 'pin_hash' not in body


def test_set_pin_validates_digits(client):
    for pin in ('123', '12345', 'abcd', 1234):
        res = client.post('/api/profiles/pin', json={'userId': 'alice', 'pin': pin})
        assert res.status_code == 400


def test_changing_pin_requires_login(flask_app):
    owner = flask_app.test_client()
    other = flask_app.test_client()
    assert owner.post('/api/profiles/pin', json={'userId': 'alice', 'pin': '1234'}).status_code == 200

    res = other.post('/api/profiles/pin', json={'userId': 'alice', 'pin': '9999'})
    assert res.status_code == 401
    assert res.get_json()['error'] == 'unauthenticated'

    assert owner.post('/api/profiles/login', json={'userId': 'alice', 'pin': '0000'}).status_code == 401
    assert owner.post('/api/profiles/login', json={'userId': 'alice', 'pin': '1234'}).status_code == 200
    assert owner.post('/api/profiles/pin', json={'userId': 'alice', 'pin': '9999'}).status_code == 200
    assert db.session.get(PlayerProfile, 'alice').check_pin('9999')


def test_sync_ignores_server_owned_fields(client):
    data = deal(client)
    submit(client, 'alice', correct_answer(data), 200, data['sessionSalt'])

    res = client.post('/api/profiles/sync', json={
        'userId': 'alice',
        'profileData': {
            'score': 999999,
            'tier': 'T6',
            'history': [450, 440],
            'sessionZone': 3,
            'name': 'Alice',
        },
    })
    assert res.status_code == 200
    body = res.get_json()
    assert body['score'] == 1950
    assert body['tier'] == 'T2'
    assert body['name'] == 'Alice'
    assert body['session_zone'] == 3
    assert body['profile'] == {'history': [450, 440]}


def test_sync_secured_profile_requires_login(flask_app):
    owner = flask_app.test_client()
    owner.post('/api/profiles/pin', json={'userId': 'alice', 'pin': '1234'})
    stranger = flask_app.test_client()
    res = stranger.post('/api/profiles/sync', json={'userId': 'alice', 'profileData': {'history': []}})
    assert res.status_code == 401

    owner.post('/api/profiles/login', json={'userId': 'alice', 'pin': '1234'})
    res = owner.post('/api/profiles/sync', json={'userId': 'alice', 'profileData': {'history': [1]}})
    assert res.status_code == 200
    owner.post('/api/profiles/logout')
    res = owner.post('/api/profiles/sync', json={'userId': 'alice', 'profileData': {'history': [2]}})
    assert res.status_code == 401


def test_leaderboard_orders_and_caps(flask_app, client):
    flask_app.config['LEADERBOARD_FETCH_SIZE'] = 2
    _profile('a', 100.0)
    _profile('b', 300.0, 'T3')
    _profile('c', 200.0)
    db.session.commit()

    results = client.get('/api/leaderboard?count=10').get_json()['results']
    assert [r['name'] for r in results] == ['b', 'c']
    assert [r['rank'] for r in results] == [1, 2]
    assert results[0]['tier'] == 'T3'
    assert results[0]['secured'] is False


def test_daily_leaderboard_drops_stale_rows(client):
    db.session.add(DailyProfile(user_id='fresh', mode='DAILY_DEATH', day='2026-10-18', score=500.0, tier='T1', rounds=3))
    db.session.add(DailyProfile(user_id='old', mode='DAILY_DEATH', day='2026-10-16', score=900.0, tier='T1', rounds=3,
                                updated_at=utcnow() - timedelta(hours=30)))
    db.session.add(DailyProfile(user_id='casual', mode='DAILY_CASUAL', day='2026-10-18', score=700.0, tier='T1', rounds=1))
    db.session.commit()

    results = client.get('/api/leaderboard?mode=daily_death').get_json()['results']
    assert [r['name'] for r in results] == ['fresh']


def test_daily_rows_match_standard_shape(client):
    client.post('/api/profiles/sync', json={'userId': 'alice', 'profileData': {'name': 'Alice'}})
    client.post('/api/profiles/pin', json={'userId': 'alice', 'pin': '1234'})
    data = deal(client)
    submit(client, 'alice', correct_answer(data), 380, data['sessionSalt'], mode='DAILY_CASUAL')

    daily = client.get('/api/leaderboard?mode=DAILY_CASUAL').get_json()['results']
    assert daily[0]['name'] == 'Alice'
    assert daily[0]['speed'] == 380
    assert daily[0]['secured'] is True
    standard = client.get('/api/leaderboard').get_json()['results']
    assert set(standard[0]) <= set(daily[0])


def test_leaderboard_rejects_bad_query(client):
    assert client.get('/api/leaderboard?mode=RANKED').status_code == 400
    assert client.get('/api/leaderboard?count=zero').status_code == 400
    assert client.get('/api/leaderboard?count=0').status_code == 400
