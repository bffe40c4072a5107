"""
Group phase standings.
"""
from typing import Dict, List

from league.models import PHASE_GROUP, TournamentData

WIN_POINTS = 3
DRAW_POINTS = 1


def _empty_row(team) -> Dict:
    return {
        'team_id': team.id,
        'team': team.name,
        'played': 0,
        'points': 0,
        'wins': 0,
        'draws': 0,
        'losses': 0,
        'goals_for': 0,
        'goals_against': 0,
        'goal_diff': 0,
    }


def standings_sort_key(row: Dict):
    """Ranking: points -> wins -> goal_diff -> goals_for (all descending)."""
    return (-row['points'], -row['wins'], -row['goal_diff'], -row['goals_for'])


def calculate_standings(tournament: TournamentData) -> List[Dict]:
    """
    Reduce the finished group matches of a tournament into a points table.

    Returns one row per team, sorted with standings_sort_key(). Teams still
    tied after the full chain keep their registration order. The same order
    seeds the playoff bracket.
    """
    rows = {team.id: _empty_row(team) for team in tournament.teams}

    for match in tournament.matches:
        if match.phase != PHASE_GROUP or not match.finished:
            continue
        home = rows.get(match.home_team_id)
        away = rows.get(match.away_team_id)
        if home is None or away is None:
            continue

        home['played'] += 1
        away['played'] += 1
        home['goals_for'] += match.home_score
        home['goals_against'] += match.away_score
        away['goals_for'] += match.away_score
        away['goals_against'] += match.home_score

        if match.home_score > match.away_score:
            home['points'] += WIN_POINTS
            home['wins'] += 1
            away['losses'] += 1
        elif match.away_score > match.home_score:
            away['points'] += WIN_POINTS
            away['wins'] += 1
            home['losses'] += 1
        else:
            home['points'] += DRAW_POINTS
            away['points'] += DRAW_POINTS
            home['draws'] += 1
            away['draws'] += 1

    for row in rows.values():
        row['goal_diff'] = row['goals_for'] - row['goals_against']

    return sorted(rows.values(), key=standings_sort_key)


def seed_teams(tournament: TournamentData) -> List[str]:
    """Return team ids in seed order (seed 1 first)."""
    return [row['team_id'] for row in calculate_standings(tournament)]
