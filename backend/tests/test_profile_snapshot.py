import json
from datetime import date, datetime, timezone

from neurolink.engine.profile import PlayerState, TrainerContext, check_daily_streak
from neurolink.engine.session_tracker import SessionSummary
from neurolink.engine.snapshot import SnapshotStore
from neurolink.rules import Tier


def _summary():
    return SessionSummary(datetime(2026, 10, 18, tzinfo=timezone.utc).isoformat(), 600_000, 30, 80, 450, 300, 12, 'stable')


def test_select_creates_player():
    ctx = TrainerContext()
    assert ctx.player is None
    player = ctx.select('alice')
    assert ctx.player is player
    assert player.tier is Tier.T1
    assert player.history == [450]
    assert ctx.select('alice') is player


def test_histories_are_bounded():
    player = PlayerState(name='alice')
    for i in range(600):
        player.record_speed(400 - i % 50)
        player.record_result(True, 300.0, '2026-10-18')
    assert len(player.history) == 500
    assert len(player.results_history) == 500


def test_sessions_bounded_and_blocks_counted():
    player = PlayerState(name='alice')
    for _ in range(105):
        player.add_session(_summary())
    assert len(player.sessions) == 100
    assert player.total_sessions == 105
    assert player.training_block == 15


def test_daily_streak():
    player = PlayerState(name='alice')
    check_daily_streak(player, date(2026, 10, 1))
    assert player.daily_streak == 1
    check_daily_streak(player, date(2026, 10, 1))
    assert player.daily_streak == 1
    check_daily_streak(player, date(2026, 10, 2))
    assert player.daily_streak == 2
    check_daily_streak(player, date(2026, 10, 5))
    assert player.daily_streak == 1


def test_daily_mode_streaks_expire():
    player = PlayerState(name='alice', daily_casual_streak=4, daily_casual_date='2026-10-17',
                         daily_death_streak=3, daily_death_date='2026-10-15')
    check_daily_streak(player, date(2026, 10, 18))
    assert player.daily_casual_streak == 4
    assert player.daily_death_streak == 0


def test_context_dict_round_trip():
    ctx = TrainerContext()
    player = ctx.select('alice')
    player.tier = Tier.T4
    player.score = 5100
    player.add_session(_summary())
    ctx.select('bob')

    restored = TrainerContext.from_dict(json.loads(json.dumps(ctx.to_dict())))
    assert restored.current_user == 'bob'
    assert restored.users['alice'].tier is Tier.T4
    assert restored.users['alice'].sessions == [_summary()]
    assert restored.to_dict() == ctx.to_dict()


def test_snapshot_save_and_load(tmp_path):
    store = SnapshotStore(tmp_path / 'neurolink.json')
    assert store.load() is None

    ctx = TrainerContext()
    ctx.select('alice').score = 777
    store.save(ctx)
    loaded = store.load()
    assert loaded.player.score == 777


def test_tampered_snapshot_is_ignored(tmp_path):
    path = tmp_path / 'neurolink.json'
    store = SnapshotStore(path)
    ctx = TrainerContext()
    ctx.select('alice')
    store.save(ctx)

    doc = json.loads(path.read_text())
    doc['data']['users']['alice']['score'] = 999999
    path.write_text(json.dumps(doc))
    assert store.load() is None


def test_corrupt_snapshot_is_ignored(tmp_path):
    path = tmp_path / 'neurolink.json'
    path.write_text('{not json')
    assert SnapshotStore(path).load() is None


def test_snapshot_key_matters(tmp_path):
    path = tmp_path / 'neurolink.json'
    ctx = TrainerContext()
    ctx.select('alice')
    SnapshotStore(path, key=b'one').save(ctx)
    assert SnapshotStore(path, key=b'two').load() is None
