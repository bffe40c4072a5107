"""
Flask web application for the League Tracker.

Serves a JSON API over the league core and persists players, the current
tournament and the archive as YAML files under DATA_DIR.
"""
import os
import logging
import yaml
from datetime import datetime, timezone
from filelock import FileLock
from flask import Flask, request, jsonify
from league.models import Player, TournamentData, POSITIONS, TEAM_COUNTS
from league.ledger import add_event, remove_event, set_goalkeeper, set_penalties, event_summary, goalkeeper_options
from league.progression import finish_match, tournament_phase, champion_team_id
from league.roster import (
    create_draft, change_team_count, add_player, update_player, delete_player, assign_player,
    remove_player_from_team, rename_team, unassigned_players, start_tournament, archive_tournament,
    sorted_history, rename_archived, delete_archived,
)
from league.standings import calculate_standings
from league.statistics import (
    SCOPE_ANNUAL, tournament_set, filter_by_month, available_months, general_ranking,
    position_ranking, top_goalkeepers, scorer_leaderboard, assist_leaderboard, champion_tally,
    tournament_summary,
)

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('LEAGUE_DATA_DIR', os.path.join(BASE_DIR, 'data'))
os.makedirs(DATA_DIR, exist_ok=True)

PLAYERS_FILE = os.path.join(DATA_DIR, 'players.yaml')
CURRENT_TOURNAMENT_FILE = os.path.join(DATA_DIR, 'current_tournament.yaml')
HISTORY_FILE = os.path.join(DATA_DIR, 'history.yaml')
SETTINGS_FILE = os.path.join(DATA_DIR, 'settings.yaml')
_data_lock = FileLock(os.path.join(DATA_DIR, '.lock'), timeout=10)

if not app.debug:
    app.logger.setLevel(logging.INFO)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def get_default_settings():
    """Return default settings."""
    return {
        'league_name': 'Thursday Night League',
        'tournament_name': 'League Night',
        'default_team_count': 4,
        'team_name_template': 'Team {n}',
    }


def load_settings():
    """Load settings from YAML file, merging with defaults."""
    defaults = get_default_settings()
    if not os.path.exists(SETTINGS_FILE):
        return defaults
    try:
        with open(SETTINGS_FILE, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse {SETTINGS_FILE}: {e}')
        return defaults
    if not data:
        return defaults
    return {**defaults, **data}


# ---------------------------------------------------------------------------
# Persistence
#
# Loaders fall back to empty values on missing or broken files. Savers return
# a success flag instead of raising so the API can report storage failures.
# ---------------------------------------------------------------------------

def _load_yaml(path, default):
    if not os.path.exists(path):
        return default
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return default
    if not isinstance(data, type(default)):
        return default
    return data


def _save_yaml(path, data) -> bool:
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        tmp_path = path + '.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True)
        os.replace(tmp_path, path)
        return True
    except OSError as e:
        app.logger.error(f'Failed to write {path}: {e}')
        return False


def load_players() -> list:
    """Load the player registry."""
    data = _load_yaml(PLAYERS_FILE, {})
    return [Player.from_dict(p) for p in data.get('players', [])]


def save_players(players: list) -> bool:
    return _save_yaml(PLAYERS_FILE, {'players': [p.to_dict() for p in players]})


def load_current_tournament():
    """Load the current tournament, or None."""
    data = _load_yaml(CURRENT_TOURNAMENT_FILE, {})
    tournament = data.get('tournament')
    return TournamentData.from_dict(tournament) if tournament else None


def save_current_tournament(tournament) -> bool:
    """Replace the whole current tournament document (None clears it)."""
    if tournament is None:
        if os.path.exists(CURRENT_TOURNAMENT_FILE):
            try:
                os.remove(CURRENT_TOURNAMENT_FILE)
            except OSError as e:
                app.logger.error(f'Failed to clear {CURRENT_TOURNAMENT_FILE}: {e}')
                return False
        return True
    return _save_yaml(CURRENT_TOURNAMENT_FILE, {'tournament': tournament.to_dict()})


def load_history() -> list:
    """Load archived tournaments."""
    data = _load_yaml(HISTORY_FILE, {})
    history = data.get('tournaments', [])
    if not isinstance(history, list):
        return []
    return [TournamentData.from_dict(t) for t in history]


def save_history(history: list) -> bool:
    return _save_yaml(HISTORY_FILE, {'tournaments': [t.to_dict() for t in history]})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error(message, status=400):
    return jsonify({'success': False, 'error': message}), status


def _storage_error():
    return _error('Failed to save data', 500)


def _player_names(players):
    return {p.id: p.name for p in players}


def _with_names(rows, players):
    """Attach player names to statistic rows. Unknown ids render as '???'."""
    names = _player_names(players)
    return [{**row, 'name': names.get(row['player_id'], '???')} for row in rows]


def _tournament_payload(tournament):
    payload = tournament.to_dict()
    payload['phase'] = tournament_phase(tournament)
    payload['championTeamId'] = champion_team_id(tournament)
    return payload


def _require_current():
    tournament = load_current_tournament()
    if tournament is None:
        return None, _error('No current tournament', 404)
    return tournament, None


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------

@app.route('/api/players', methods=['GET'])
def api_players():
    players = load_players()
    return jsonify({'players': [p.to_dict() for p in sorted(players, key=lambda p: p.name.lower())],
                    'positions': list(POSITIONS)})


@app.route('/api/players', methods=['POST'])
def api_add_player():
    data = request.get_json() or {}
    with _data_lock:
        players = load_players()
        ok, result = add_player(players, data.get('name', ''), data.get('position', ''))
        if not ok:
            return _error(result)
        if not save_players(players):
            return _storage_error()
    app.logger.info(f'Player added: {result.name} ({result.position})')
    return jsonify({'success': True, 'player': result.to_dict()})


@app.route('/api/players/<player_id>', methods=['PUT'])
def api_update_player(player_id):
    data = request.get_json() or {}
    with _data_lock:
        players = load_players()
        ok, message = update_player(players, player_id, data.get('name', ''), data.get('position', ''))
        if not ok:
            return _error(message, 404 if message == 'Player not found.' else 400)
        if not save_players(players):
            return _storage_error()
    return jsonify({'success': True})


@app.route('/api/players/<player_id>', methods=['DELETE'])
def api_delete_player(player_id):
    with _data_lock:
        players = load_players()
        previous_players = list(players)
        tournament = load_current_tournament()
        removed, tournament_changed = delete_player(players, tournament, player_id)
        if not removed:
            return _error('Player not found.', 404)
        if not save_players(players):
            return _storage_error()
        if tournament_changed and not save_current_tournament(tournament):
            # Registry and rosters change together
            if not save_players(previous_players):
                app.logger.error(f'Failed to restore {PLAYERS_FILE} after a failed roster update')
            return _storage_error()
    app.logger.info(f'Player deleted: {player_id}')
    return jsonify({'success': True, 'rosters_updated': tournament_changed})


# ---------------------------------------------------------------------------
# Current tournament: draft and teams
# ---------------------------------------------------------------------------

@app.route('/api/tournament', methods=['GET'])
def api_tournament():
    tournament = load_current_tournament()
    if tournament is None:
        return jsonify({'tournament': None})
    players = load_players()
    return jsonify({
        'tournament': _tournament_payload(tournament),
        'unassigned': {pos: [p.to_dict() for p in group]
                       for pos, group in unassigned_players(tournament, players).items()},
    })


@app.route('/api/tournament/draft', methods=['POST'])
def api_create_draft():
    """Create a draft, or resize the existing one (rosters are reset)."""
    data = request.get_json() or {}
    settings = load_settings()
    team_count = data.get('team_count', settings['default_team_count'])
    try:
        team_count = int(team_count)
    except (TypeError, ValueError):
        return _error('Team count must be 4 or 5.')
    if team_count not in TEAM_COUNTS:
        return _error('Team count must be 4 or 5.')

    with _data_lock:
        tournament = load_current_tournament()
        if tournament is None:
            tournament = create_draft(team_count, data.get('name') or settings['tournament_name'],
                                      settings['team_name_template'])
        else:
            ok, result = change_team_count(tournament, team_count, settings['team_name_template'])
            if not ok:
                return _error(result)
            tournament = result
        if not save_current_tournament(tournament):
            return _storage_error()
    return jsonify({'success': True, 'tournament': _tournament_payload(tournament)})


@app.route('/api/teams/<team_id>/players', methods=['POST'])
def api_assign_player(team_id):
    data = request.get_json() or {}
    player_id = data.get('player_id', '')
    with _data_lock:
        tournament, error = _require_current()
        if error:
            return error
        if player_id not in _player_names(load_players()):
            return _error('Player not found.', 404)
        ok, message = assign_player(tournament, team_id, player_id)
        if not ok:
            return _error(message)
        if not save_current_tournament(tournament):
            return _storage_error()
    return jsonify({'success': True, 'message': message})


@app.route('/api/teams/<team_id>/players/<player_id>', methods=['DELETE'])
def api_remove_player_from_team(team_id, player_id):
    with _data_lock:
        tournament, error = _require_current()
        if error:
            return error
        ok, message = remove_player_from_team(tournament, team_id, player_id)
        if not ok:
            return _error(message)
        if not save_current_tournament(tournament):
            return _storage_error()
    return jsonify({'success': True})


@app.route('/api/teams/<team_id>', methods=['PUT'])
def api_rename_team(team_id):
    data = request.get_json() or {}
    with _data_lock:
        tournament, error = _require_current()
        if error:
            return error
        ok, message = rename_team(tournament, team_id, data.get('name', ''))
        if not ok:
            return _error(message)
        if not save_current_tournament(tournament):
            return _storage_error()
    return jsonify({'success': True})


@app.route('/api/tournament/start', methods=['POST'])
def api_start_tournament():
    with _data_lock:
        tournament, error = _require_current()
        if error:
            return error
        ok, message = start_tournament(tournament)
        if not ok:
            return _error(message)
        if not save_current_tournament(tournament):
            return _storage_error()
    app.logger.info(f'Tournament started: {tournament.name} ({len(tournament.matches)} group matches)')
    return jsonify({'success': True, 'tournament': _tournament_payload(tournament)})


@app.route('/api/tournament/archive', methods=['POST'])
def api_archive_tournament():
    """Move the current tournament into the archive."""
    with _data_lock:
        tournament, error = _require_current()
        if error:
            return error
        history = load_history()
        previous_history = list(history)
        archived = archive_tournament(tournament, history)
        if not save_history(history):
            return _storage_error()
        if not save_current_tournament(None):
            # A tournament is never both current and archived
            if not save_history(previous_history):
                app.logger.error(f'Failed to restore {HISTORY_FILE} after a failed archive')
            return _storage_error()
    app.logger.info(f'Tournament archived: {archived.name}')
    return jsonify({'success': True, 'tournament': archived.to_dict()})


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------

def _load_match(match_id):
    """Return (tournament, match, error_response)."""
    tournament, error = _require_current()
    if error:
        return None, None, error
    match = tournament.get_match(match_id)
    if match is None:
        return tournament, None, _error('Match not found.', 404)
    return tournament, match, None


@app.route('/api/matches/<match_id>', methods=['GET'])
def api_match(match_id):
    tournament, match, error = _load_match(match_id)
    if error:
        return error
    players = load_players()
    return jsonify({
        'match': match.to_dict(),
        'events': event_summary(match, tournament, players),
        'home_team': tournament.team_name(match.home_team_id),
        'away_team': tournament.team_name(match.away_team_id),
        'goalkeeper_options': {
            'home': [p.to_dict() for p in goalkeeper_options(tournament, players, match.home_team_id)],
            'away': [p.to_dict() for p in goalkeeper_options(tournament, players, match.away_team_id)],
        },
    })


@app.route('/api/matches/<match_id>/events', methods=['POST'])
def api_add_event(match_id):
    data = request.get_json() or {}
    minute = data.get('minute')
    if minute is not None:
        try:
            minute = int(minute)
        except (TypeError, ValueError):
            return _error('Minute must be a number.')
    with _data_lock:
        tournament, match, error = _load_match(match_id)
        if error:
            return error
        ok, result = add_event(match, data.get('type', ''), data.get('team_id', ''),
                               data.get('player_id', ''), minute)
        if not ok:
            return _error(result)
        if not save_current_tournament(tournament):
            return _storage_error()
    return jsonify({'success': True, 'event': result.to_dict(), 'match': match.to_dict()})


@app.route('/api/matches/<match_id>/events/<event_id>', methods=['DELETE'])
def api_remove_event(match_id, event_id):
    with _data_lock:
        tournament, match, error = _load_match(match_id)
        if error:
            return error
        ok, message = remove_event(match, event_id)
        if not ok:
            return _error(message, 404)
        if not save_current_tournament(tournament):
            return _storage_error()
    return jsonify({'success': True, 'match': match.to_dict()})


@app.route('/api/matches/<match_id>/goalkeepers', methods=['POST'])
def api_set_goalkeepers(match_id):
    data = request.get_json() or {}
    with _data_lock:
        tournament, match, error = _load_match(match_id)
        if error:
            return error
        for side in ('home', 'away'):
            if side in data:
                ok, message = set_goalkeeper(match, side, data[side])
                if not ok:
                    return _error(message)
        if not save_current_tournament(tournament):
            return _storage_error()
    return jsonify({'success': True, 'match': match.to_dict()})


def _parse_penalty(value):
    """Whole numbers only: ints or digit strings. Raises ValueError otherwise."""
    if value is None or value == '':
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f'Invalid penalty score: {value!r}')
    return int(value)


@app.route('/api/matches/<match_id>/penalties', methods=['POST'])
def api_set_penalties(match_id):
    data = request.get_json() or {}
    try:
        penalty_home = _parse_penalty(data.get('home'))
        penalty_away = _parse_penalty(data.get('away'))
    except (TypeError, ValueError):
        return _error('Penalty scores must be numbers.')
    with _data_lock:
        tournament, match, error = _load_match(match_id)
        if error:
            return error
        ok, message = set_penalties(match, penalty_home, penalty_away)
        if not ok:
            return _error(message)
        if not save_current_tournament(tournament):
            return _storage_error()
    return jsonify({'success': True, 'match': match.to_dict()})


@app.route('/api/matches/<match_id>/finish', methods=['POST'])
def api_finish_match(match_id):
    """Close a match and create the next playoff fixtures when a phase completes."""
    data = request.get_json() or {}
    try:
        penalty_home = _parse_penalty(data.get('penalty_home'))
        penalty_away = _parse_penalty(data.get('penalty_away'))
    except (TypeError, ValueError):
        return _error('Penalty scores must be numbers.')
    with _data_lock:
        tournament, match, error = _load_match(match_id)
        if error:
            return error
        ok, message = finish_match(tournament, match_id, penalty_home, penalty_away)
        if not ok:
            return _error(message)
        if not save_current_tournament(tournament):
            return _storage_error()
    app.logger.info(f'Match {match_id} finished ({message})')
    return jsonify({'success': True, 'message': message, 'tournament': _tournament_payload(tournament)})


# ---------------------------------------------------------------------------
# Standings and statistics
# ---------------------------------------------------------------------------

@app.route('/api/standings', methods=['GET'])
def api_standings():
    tournament = load_current_tournament()
    if tournament is None:
        return jsonify({'standings': []})
    return jsonify({'standings': calculate_standings(tournament), 'phase': tournament_phase(tournament)})


@app.route('/api/rankings', methods=['GET'])
def api_rankings():
    """General ranking, leaderboards and titles for the current or annual scope."""
    scope = request.args.get('scope', SCOPE_ANNUAL)
    players = load_players()
    current = load_current_tournament()
    history = load_history()
    tournaments = tournament_set(current, history, scope)
    all_tournaments = tournament_set(current, history, SCOPE_ANNUAL)
    return jsonify({
        'scope': scope,
        'general': _with_names(general_ranking(tournaments, players), players),
        'top_scorers': _with_names(scorer_leaderboard(tournaments), players),
        'top_assists': _with_names(assist_leaderboard(tournaments), players),
        'top_goalkeepers': _with_names(top_goalkeepers(all_tournaments, players), players),
        'champions': _with_names(champion_tally(history), players),
    })


@app.route('/api/rankings/monthly', methods=['GET'])
def api_monthly_ranking():
    players = load_players()
    current = load_current_tournament()
    history = load_history()
    months = available_months(current, history)
    month = request.args.get('month') or datetime.now(timezone.utc).strftime('%Y-%m')
    position = request.args.get('position', POSITIONS[0])
    if position not in POSITIONS:
        return _error(f'Invalid position: {position}')
    tournaments = filter_by_month(tournament_set(current, history, SCOPE_ANNUAL), month)
    return jsonify({
        'month': month,
        'months': months,
        'position': position,
        'ranking': _with_names(position_ranking(tournaments, players, position), players),
    })


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

@app.route('/api/history', methods=['GET'])
def api_history():
    history = sorted_history(load_history())
    return jsonify({'tournaments': [{
        'id': t.id,
        'name': t.name,
        'team_count': t.team_count,
        'created_at': t.created_at,
        'finished_at': t.finished_at,
        'champion': t.team_name(champion_team_id(t)) if champion_team_id(t) else None,
    } for t in history]})


@app.route('/api/history/<tournament_id>', methods=['GET'])
def api_history_summary(tournament_id):
    tournament = next((t for t in load_history() if t.id == tournament_id), None)
    if tournament is None:
        return _error('Tournament not found.', 404)
    players = load_players()
    summary = tournament_summary(tournament)
    for key in ('top_scorers', 'top_assists', 'cards'):
        summary[key] = _with_names(summary[key], players)
    summary['standings'] = calculate_standings(tournament)
    summary['teams'] = [t.to_dict() for t in tournament.teams]
    return jsonify(summary)


@app.route('/api/history/<tournament_id>', methods=['PUT'])
def api_rename_history(tournament_id):
    data = request.get_json() or {}
    with _data_lock:
        history = load_history()
        ok, message = rename_archived(history, tournament_id, data.get('name', ''))
        if not ok:
            return _error(message, 404 if message == 'Tournament not found.' else 400)
        if not save_history(history):
            return _storage_error()
    return jsonify({'success': True})


@app.route('/api/history/<tournament_id>', methods=['DELETE'])
def api_delete_history(tournament_id):
    with _data_lock:
        history = load_history()
        ok, message = delete_archived(history, tournament_id)
        if not ok:
            return _error(message, 404)
        if not save_history(history):
            return _storage_error()
    app.logger.info(f'Archived tournament deleted: {tournament_id}')
    return jsonify({'success': True})


if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
