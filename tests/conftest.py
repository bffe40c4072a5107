"""
Shared pytest fixtures for league tracker tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip the end-to-end API flow
"""
import pytest
import sys
import os
import tempfile

# Keep the data directory created when the app is imported out of the working tree
os.environ.setdefault('LEAGUE_DATA_DIR', tempfile.mkdtemp(prefix='league-tests-'))

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from league.models import (
    Player, Team, TournamentData, GOALKEEPER, DEFENDER, MIDFIELDER, FORWARD, STATUS_ACTIVE, STATUS_DRAFT,
)
from league.ledger import add_event
from league.schedule import generate_group_schedule


@pytest.fixture
def players():
    """Eight registered players, two per position."""
    return [
        Player(id='gk1', name='Alice', position=GOALKEEPER),
        Player(id='gk2', name='Bruno', position=GOALKEEPER),
        Player(id='df1', name='Carla', position=DEFENDER),
        Player(id='df2', name='Diego', position=DEFENDER),
        Player(id='mf1', name='Elena', position=MIDFIELDER),
        Player(id='mf2', name='Felipe', position=MIDFIELDER),
        Player(id='fw1', name='Gabi', position=FORWARD),
        Player(id='fw2', name='Hugo', position=FORWARD),
    ]


@pytest.fixture
def draft_tournament():
    """A 4-team draft with two players per team."""
    return TournamentData(
        id='t-draft',
        name='Draft Night',
        status=STATUS_DRAFT,
        team_count=4,
        teams=[
            Team(id='team-1', name='Team 1', player_ids=['gk1', 'fw1']),
            Team(id='team-2', name='Team 2', player_ids=['gk2', 'fw2']),
            Team(id='team-3', name='Team 3', player_ids=['df1', 'mf1']),
            Team(id='team-4', name='Team 4', player_ids=['df2', 'mf2']),
        ],
        created_at=1767225600000,  # 2026-01-01 UTC
    )


@pytest.fixture
def active_tournament(draft_tournament):
    """The draft above with its group schedule generated."""
    draft_tournament.status = STATUS_ACTIVE
    draft_tournament.matches = generate_group_schedule([t.id for t in draft_tournament.teams])
    return draft_tournament


@pytest.fixture
def five_team_tournament():
    teams = [Team(id=f'team-{n}', name=f'Team {n}', player_ids=[f'p{n}']) for n in range(1, 6)]
    return TournamentData(
        id='t-five',
        name='Five Team Night',
        status=STATUS_ACTIVE,
        team_count=5,
        teams=teams,
        matches=generate_group_schedule([t.id for t in teams]),
        created_at=1767225600000,
    )


@pytest.fixture
def score():
    """Record goals for a match through the event ledger."""
    def _score(match, home_goals, away_goals):
        for _ in range(home_goals):
            add_event(match, 'goal', match.home_team_id, f'{match.home_team_id}-scorer')
        for _ in range(away_goals):
            add_event(match, 'goal', match.away_team_id, f'{match.away_team_id}-scorer')
        return match
    return _score


@pytest.fixture
def play_group(score):
    """Finish every group match; the team with the lower strength index wins 1-0.

    `order` lists team ids strongest first.
    """
    def _play(tournament, order):
        strength = {team_id: idx for idx, team_id in enumerate(order)}
        for match in tournament.matches:
            if match.phase != 'group':
                continue
            if strength[match.home_team_id] < strength[match.away_team_id]:
                score(match, 1, 0)
            else:
                score(match, 0, 1)
            match.finished = True
        return tournament
    return _play


@pytest.fixture
def client():
    """Create a Flask test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point every data file of the app at a temporary directory."""
    import app as app_module
    from filelock import FileLock

    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    monkeypatch.setattr(app_module, 'PLAYERS_FILE', str(tmp_path / 'players.yaml'))
    monkeypatch.setattr(app_module, 'CURRENT_TOURNAMENT_FILE', str(tmp_path / 'current_tournament.yaml'))
    monkeypatch.setattr(app_module, 'HISTORY_FILE', str(tmp_path / 'history.yaml'))
    monkeypatch.setattr(app_module, 'SETTINGS_FILE', str(tmp_path / 'settings.yaml'))
    monkeypatch.setattr(app_module, '_data_lock', FileLock(str(tmp_path / '.lock'), timeout=10))
    return tmp_path
