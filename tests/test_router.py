from datetime import datetime, timedelta, timezone

from database import TournamentORM


async def _create(api, names, code='123'):
    return await api.post('/api/tournaments', json={'accessCode': code, 'playerNames': names})


async def test_create_tournament(api, names):
    resp = await _create(api, names)
    assert resp.status_code == 200
    data = resp.json()
    assert data['accessCode'] == '123'
    assert data['currentRound'] == 1
    assert data['isFinalized'] is False
    assert len(data['players']) == 8
    assert len(data['matches']) == 14


async def test_create_rejects_bad_roster(api, names):
    resp = await _create(api, names[:7])
    assert resp.status_code == 400
    resp = await _create(api, names[:7] + ['Alice'])
    assert resp.status_code == 400
    resp = await api.post('/api/tournaments', json={'accessCode': ' ', 'playerNames': names})
    assert resp.status_code == 400


async def test_single_active_tournament(api, names):
    first = (await _create(api, names)).json()

    resp = await _create(api, names, code='456')
    assert resp.status_code == 409
    assert resp.json()['detail'] == 'active_tournament_exists'

    resp = await api.post(f"/api/tournaments/{first['id']}/finalize")
    assert resp.status_code == 200
    assert resp.json()['isFinalized'] is True

    resp = await _create(api, names, code='456')
    assert resp.status_code == 200


async def test_active_lookup(api, names):
    resp = await api.get('/api/tournaments/active')
    assert resp.json() == {'active': False, 'tournament': None}

    t = (await _create(api, names)).json()
    resp = await api.get('/api/tournaments/active')
    assert resp.json() == {'active': True, 'tournament': {'id': t['id'], 'accessCode': '123'}}


async def test_lookup_by_id_and_code(api, names):
    t = (await _create(api, names)).json()

    resp = await api.get(f"/api/tournaments/{t['id']}")
    assert resp.status_code == 200
    assert resp.json()['id'] == t['id']

    resp = await api.get('/api/tournaments/by-code/123')
    assert resp.json()['id'] == t['id']

    assert (await api.get('/api/tournaments/missing')).status_code == 404
    assert (await api.get('/api/tournaments/by-code/999')).status_code == 404


async def test_score_flow(api, names):
    t = (await _create(api, names)).json()
    url = f"/api/tournaments/{t['id']}/score"

    resp = await api.post(url, json={'matchId': 1, 'scoreA': 21, 'scoreB': 15})
    assert resp.status_code == 200
    assert resp.json()['currentRound'] == 1

    resp = await api.post(url, json={'matchId': 2, 'scoreA': 17, 'scoreB': 21})
    data = resp.json()
    assert data['currentRound'] == 2
    assert data['matches'][1]['winnerTeam'] == 'B'
    players = {p['id']: p for p in data['players']}
    assert players[8]['scores'][0] == 21
    assert players[3]['totalScore'] == 21

    resp = await api.post(url, json={'matchId': 1, 'scoreA': 21, 'scoreB': 20, 'isEdit': True})
    assert resp.json()['currentRound'] == 2


async def test_score_errors(api, names):
    t = (await _create(api, names)).json()
    url = f"/api/tournaments/{t['id']}/score"

    resp = await api.post(url, json={'matchId': 1, 'scoreA': 22, 'scoreB': 15})
    assert resp.status_code == 400
    resp = await api.post(url, json={'matchId': 42, 'scoreA': 21, 'scoreB': 15})
    assert resp.status_code == 404
    resp = await api.post('/api/tournaments/missing/score', json={'matchId': 1, 'scoreA': 21, 'scoreB': 15})
    assert resp.status_code == 404

    await api.post(f"/api/tournaments/{t['id']}/finalize")
    resp = await api.post(url, json={'matchId': 1, 'scoreA': 21, 'scoreB': 15})
    assert resp.status_code == 409


async def test_ranking_endpoint(api, names):
    t = (await _create(api, names)).json()
    await api.post(f"/api/tournaments/{t['id']}/score", json={'matchId': 1, 'scoreA': 21, 'scoreB': 15})

    ranked = (await api.get(f"/api/tournaments/{t['id']}/ranking")).json()
    assert [p['rank'] for p in ranked] == [1, 1, 3, 3, 5, 5, 5, 5]
    assert {p['id'] for p in ranked[:2]} == {8, 1}


async def test_rename_players(api, names):
    t = (await _create(api, names)).json()
    url = f"/api/tournaments/{t['id']}/players"

    renamed = ['Ann', 'Ben', 'Cat', 'Dan', 'Eli', 'Fay', 'Gus', 'Hal']
    resp = await api.post(url, json={'playerNames': renamed})
    assert [p['name'] for p in resp.json()['players']] == renamed

    resp = await api.post(url, json={'playerNames': ['Ann'] * 8})
    assert resp.status_code == 400


async def test_history_and_delete(api, names):
    t = (await _create(api, names)).json()
    await api.post(f"/api/tournaments/{t['id']}/score", json={'matchId': 1, 'scoreA': 21, 'scoreB': 15})
    await api.post(f"/api/tournaments/{t['id']}/finalize")

    history = (await api.get('/api/tournaments/history')).json()
    assert [h['id'] for h in history] == [t['id']]
    assert history[0]['players'][0]['totalScore'] == 21
    assert history[0]['players'][0]['rank'] == 1

    resp = await api.delete(f"/api/tournaments/{t['id']}")
    assert resp.status_code == 204
    assert (await api.delete(f"/api/tournaments/{t['id']}")).status_code == 404
    assert (await api.get('/api/tournaments/history')).json() == []


async def test_active_lookup_expires_old_tournament(api, session_factory, names):
    t = (await _create(api, names)).json()
    await api.post(f"/api/tournaments/{t['id']}/score", json={'matchId': 1, 'scoreA': 21, 'scoreB': 7})

    async with session_factory() as session:
        t_orm = await session.get(TournamentORM, t['id'])
        t_orm.created_at = datetime.now(timezone.utc) - timedelta(hours=25)
        await session.commit()

    resp = await api.get('/api/tournaments/active')
    assert resp.json() == {'active': False, 'tournament': None}

    old = (await api.get(f"/api/tournaments/{t['id']}")).json()
    assert old['isFinalized'] is True
    assert old['players'][1]['totalScore'] == 7

    resp = await _create(api, names, code='456')
    assert resp.status_code == 200
