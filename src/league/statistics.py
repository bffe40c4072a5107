"""
Player statistics across one or many tournaments.

Two attribution modes share the same outcome rules:
- roster attribution (general_ranking): every player on a team's roster gets
  the team's result, once per finished match.
- assignment attribution (goalkeeper_ranking): only the player assigned as
  goalkeeper of a side gets that side's result.
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from league.models import GOALKEEPER, PHASE_FINAL, PHASE_SEMI, STATUS_FINISHED, Player, TournamentData
from league.progression import champion_team_id, final_winner
from league.standings import DRAW_POINTS, WIN_POINTS

SCOPE_CURRENT = 'current'
SCOPE_ANNUAL = 'annual'


def tournament_set(current: Optional[TournamentData], history: Iterable[TournamentData],
                   scope: str = SCOPE_ANNUAL) -> List[TournamentData]:
    """Current tournament only, or all archived tournaments plus the current one."""
    if scope == SCOPE_CURRENT:
        tournaments = [current]
    else:
        tournaments = list(history) + [current]
    return [t for t in tournaments if t is not None]


def month_key(tournament: TournamentData) -> str:
    """'YYYY-MM' of the finish time, falling back to the creation time (UTC)."""
    timestamp = tournament.finished_at or tournament.created_at or 0
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).strftime('%Y-%m')


def filter_by_month(tournaments: Iterable[TournamentData], key: str) -> List[TournamentData]:
    return [t for t in tournaments if month_key(t) == key]


def available_months(current: Optional[TournamentData], history: Iterable[TournamentData],
                     today: Optional[datetime] = None) -> List[str]:
    """Months with archived tournaments plus the current month, newest first."""
    today = today or datetime.now(timezone.utc)
    months = {today.strftime('%Y-%m')}
    months.update(month_key(t) for t in history)
    return sorted(months, reverse=True)


# -- Outcome based rankings ---------------------------------------------------

def _new_row(player_id: str) -> Dict:
    return {
        'player_id': player_id,
        'points': 0,
        'matches': 0,
        'wins': 0,
        'draws': 0,
        'losses': 0,
        'goals_for': 0,
        'goals_against': 0,
    }


def _credit(stats: Dict[str, Dict], player_id: str, scored: int, conceded: int):
    row = stats.setdefault(player_id, _new_row(player_id))
    row['matches'] += 1
    row['goals_for'] += scored
    row['goals_against'] += conceded
    if scored > conceded:
        row['points'] += WIN_POINTS
        row['wins'] += 1
    elif scored < conceded:
        row['losses'] += 1
    else:
        row['points'] += DRAW_POINTS
        row['draws'] += 1


def ranking_sort_key(row: Dict):
    """points desc -> wins desc -> goal_diff desc -> matches asc."""
    return (-row['points'], -row['wins'], -row['goal_diff'], row['matches'])


def _finalize(stats: Dict[str, Dict], players: Optional[List[Player]] = None) -> List[Dict]:
    rows = list(stats.values())
    if players is not None:
        names = {p.id: p for p in players}
        rows = [r for r in rows if r['player_id'] in names]
    for row in rows:
        row['goal_diff'] = row['goals_for'] - row['goals_against']
        row['performance'] = round(row['points'] / (row['matches'] * WIN_POINTS) * 100) if row['matches'] else 0
    return sorted(rows, key=ranking_sort_key)


def general_ranking(tournaments: Iterable[TournamentData], players: List[Player]) -> List[Dict]:
    """
    Roster attribution ranking.

    A player is credited once per finished match their team plays, whether or
    not they took part. Players no longer in the registry are left out.
    """
    stats = {}
    for tournament in tournaments:
        rosters = {team.id: team.player_ids for team in tournament.teams}
        for match in tournament.matches:
            if not match.finished:
                continue
            for pid in rosters.get(match.home_team_id, []):
                _credit(stats, pid, match.home_score, match.away_score)
            for pid in rosters.get(match.away_team_id, []):
                _credit(stats, pid, match.away_score, match.home_score)
    return _finalize(stats, players)


def goalkeeper_ranking(tournaments: Iterable[TournamentData], players: Optional[List[Player]] = None) -> List[Dict]:
    """
    Assignment attribution ranking.

    Only the keeper assigned to a side is credited, regardless of the roster
    the keeper belongs to.
    """
    stats = {}
    for tournament in tournaments:
        for match in tournament.matches:
            if not match.finished:
                continue
            if match.home_goalkeeper_id:
                _credit(stats, match.home_goalkeeper_id, match.home_score, match.away_score)
            if match.away_goalkeeper_id:
                _credit(stats, match.away_goalkeeper_id, match.away_score, match.home_score)
    return _finalize(stats, players)


def position_ranking(tournaments: Iterable[TournamentData], players: List[Player], position: str) -> List[Dict]:
    """Positional table: keepers by assignment, everyone else by roster."""
    tournaments = list(tournaments)
    if position == GOALKEEPER:
        rows = goalkeeper_ranking(tournaments, players)
    else:
        rows = general_ranking(tournaments, players)
    positions = {p.id: p.position for p in players}
    return [r for r in rows if positions.get(r['player_id']) == position]


def top_goalkeepers(tournaments: Iterable[TournamentData], players: List[Player]) -> List[Dict]:
    """All-time keeper ranking limited to players registered as goalkeepers."""
    return position_ranking(tournaments, players, GOALKEEPER)


# -- Event counts -------------------------------------------------------------

def event_counts(tournaments: Iterable[TournamentData]) -> Dict[str, Dict]:
    """Per-player goals, assists and cards over every match of the set."""
    stats = {}
    for tournament in tournaments:
        for match in tournament.matches:
            for event in match.events:
                row = stats.setdefault(event.player_id, {
                    'player_id': event.player_id, 'goals': 0, 'assists': 0, 'yellow': 0, 'red': 0,
                })
                if event.type == 'goal':
                    row['goals'] += 1
                elif event.type == 'assist':
                    row['assists'] += 1
                elif event.type in ('yellow', 'red'):
                    row[event.type] += 1
    return stats


def _leaderboard(counts: Dict[str, Dict], field: str, limit: Optional[int]) -> List[Dict]:
    rows = [{'player_id': pid, 'count': row[field]} for pid, row in counts.items() if row[field] > 0]
    rows.sort(key=lambda r: -r['count'])
    top = max((r['count'] for r in rows), default=0)
    top = max(top, 1)
    for row in rows:
        row['ratio'] = row['count'] / top
    return rows[:limit] if limit else rows


def scorer_leaderboard(tournaments: Iterable[TournamentData], limit: Optional[int] = None) -> List[Dict]:
    return _leaderboard(event_counts(tournaments), 'goals', limit)


def assist_leaderboard(tournaments: Iterable[TournamentData], limit: Optional[int] = None) -> List[Dict]:
    return _leaderboard(event_counts(tournaments), 'assists', limit)


# -- Titles -------------------------------------------------------------------

def champion_tally(history: Iterable[TournamentData]) -> List[Dict]:
    """
    Titles per player over finished archived tournaments.

    Every player on the champion's roster gets one title. Finals that are
    not resolved yet contribute nothing.
    """
    titles = {}
    for tournament in history:
        if tournament.status != STATUS_FINISHED:
            continue
        final = next((m for m in tournament.matches if m.phase == PHASE_FINAL and m.finished), None)
        if final is None:
            continue
        winner = tournament.get_team(final_winner(final))
        if winner is None:
            continue
        for pid in winner.player_ids:
            titles[pid] = titles.get(pid, 0) + 1

    rows = [{'player_id': pid, 'titles': count} for pid, count in titles.items() if count > 0]
    return sorted(rows, key=lambda r: -r['titles'])


def tournament_summary(tournament: TournamentData, top: int = 5) -> Dict:
    """Match sheet of one tournament: champion, playoff results, leaders and cards."""
    counts = event_counts([tournament])
    cards = [
        {'player_id': pid, 'yellow': row['yellow'], 'red': row['red']}
        for pid, row in counts.items() if row['yellow'] or row['red']
    ]
    cards.sort(key=lambda r: (-r['red'], -r['yellow']))
    final = next((m for m in tournament.matches if m.phase == PHASE_FINAL), None)
    return {
        'id': tournament.id,
        'name': tournament.name,
        'team_count': tournament.team_count,
        'champion_team_id': champion_team_id(tournament),
        'semifinals': [m.to_dict() for m in tournament.matches_in_phase(PHASE_SEMI)],
        'final': final.to_dict() if final else None,
        'top_scorers': _leaderboard(counts, 'goals', top),
        'top_assists': _leaderboard(counts, 'assists', top),
        'cards': cards,
    }
