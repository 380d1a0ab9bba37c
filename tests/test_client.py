import pytest

from relay.client import TournamentClient
from tournament.exceptions import JoinTimeout, TournamentFinalized


async def test_join_receives_creator_snapshot(connect, tournament):
    organizer = TournamentClient(connect())
    await organizer.create(tournament)
    echo = await organizer.connection.receive_json()
    assert echo['event'] == 'tournament:sync'

    viewer = TournamentClient(connect(), join_timeout=1)
    joined = await viewer.join('123')
    assert joined == tournament
    assert viewer.revision == 1


async def test_join_unknown_code_times_out(connect):
    viewer = TournamentClient(connect(), join_timeout=0.05)
    with pytest.raises(JoinTimeout) as exc_info:
        await viewer.join('nope')
    assert exc_info.value.access_code == 'nope'


async def test_submit_score_syncs_other_clients(connect, tournament):
    organizer = TournamentClient(connect())
    await organizer.create(tournament)
    await organizer.connection.receive_json()
    viewer = TournamentClient(connect(), join_timeout=1)
    await viewer.join('123')

    await organizer.submit_score(1, 21, 15)
    result = await organizer.submit_score(2, 19, 21)
    assert result.accepted
    assert organizer.tournament.current_round == 2

    # Two syncs and two toasts, in order
    for _ in range(4):
        viewer.handle(await viewer.connection.receive_json())

    assert viewer.tournament == organizer.tournament
    assert viewer.revision == 3
    assert [t['matchId'] for t in viewer.toasts] == [1, 2]
    assert viewer.toasts[1]['scoreB'] == 21

    # The organizer only sees its own syncs
    for _ in range(2):
        assert (await organizer.connection.receive_json())['event'] == 'tournament:sync'
    assert organizer.connection.inbox.empty()


async def test_rejected_score_is_not_published(connect, tournament):
    organizer = TournamentClient(connect())
    await organizer.create(tournament)
    await organizer.connection.receive_json()

    result = await organizer.submit_score(1, 21, 21)
    assert not result.accepted
    assert result.reason == 'invalid_score'
    assert organizer.connection.inbox.empty()
    assert organizer.tournament is tournament


async def test_finalized_snapshot_refuses_scores(connect, tournament):
    tournament.is_finalized = True
    organizer = TournamentClient(connect())
    await organizer.create(tournament)
    with pytest.raises(TournamentFinalized):
        await organizer.submit_score(1, 21, 10)


async def test_sync_replaces_local_copy(connect, tournament):
    client = TournamentClient(connect())
    client.handle({'event': 'tournament:sync', 'data': tournament.to_dict(), 'revision': 7})
    assert client.tournament == tournament
    assert client.revision == 7

    client.handle({'event': 'something-else', 'data': {}})
    assert client.tournament == tournament
