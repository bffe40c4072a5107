"""
Match event ledger.

Events are append-only and removable by id only. homeScore/awayScore are a
projection of the goal events and are recomputed after every mutation.
"""
from typing import List, Optional, Tuple

from league.models import (
    EVENT_TYPES, GOALKEEPER, PHASE_FINAL, Match, MatchEvent, Player, TournamentData, new_id,
)


def count_goals(match: Match, team_id: str) -> int:
    return sum(1 for e in match.events if e.type == 'goal' and e.team_id == team_id)


def recompute_score(match: Match) -> Match:
    """Recompute both scores from the goal events."""
    match.home_score = count_goals(match, match.home_team_id)
    match.away_score = count_goals(match, match.away_team_id)
    return match


def add_event(match: Match, event_type: str, team_id: str, player_id: str,
              minute: Optional[int] = None) -> Tuple[bool, object]:
    """Append an event. Returns (True, event) or (False, error message)."""
    if event_type not in EVENT_TYPES:
        return False, f'Unknown event type: {event_type}'
    if match.side_of(team_id) is None:
        return False, 'Team is not playing in this match.'
    if not player_id:
        return False, 'Player is required.'

    event = MatchEvent(id=new_id(), type=event_type, team_id=team_id, player_id=player_id, minute=minute)
    match.events.append(event)
    recompute_score(match)
    return True, event


def remove_event(match: Match, event_id: str) -> Tuple[bool, str]:
    """Remove an event by id."""
    remaining = [e for e in match.events if e.id != event_id]
    if len(remaining) == len(match.events):
        return False, 'Event not found.'
    match.events = remaining
    recompute_score(match)
    return True, 'Event removed.'


def set_goalkeeper(match: Match, side: str, player_id: Optional[str]) -> Tuple[bool, str]:
    """Assign (or clear with None) the goalkeeper of one side.

    The keeper does not have to be on the team roster.
    """
    if side == 'home':
        match.home_goalkeeper_id = player_id or None
    elif side == 'away':
        match.away_goalkeeper_id = player_id or None
    else:
        return False, f'Invalid side: {side}'
    return True, 'Goalkeeper updated.'


def set_penalties(match: Match, penalty_home: Optional[int], penalty_away: Optional[int]) -> Tuple[bool, str]:
    """Record shootout scores. Only finals have penalties."""
    if match.phase != PHASE_FINAL:
        return False, 'Penalties are only recorded for the final.'
    for value in (penalty_home, penalty_away):
        if value is not None and value < 0:
            return False, 'Penalty scores cannot be negative.'
    match.penalty_home = penalty_home
    match.penalty_away = penalty_away
    return True, 'Penalties updated.'


def event_summary(match: Match, tournament: TournamentData, players: List[Player]) -> List[dict]:
    """Events with team and player names resolved for display."""
    names = {p.id: p.name for p in players}
    return [{
        'id': e.id,
        'type': e.type,
        'team': tournament.team_name(e.team_id),
        'player': names.get(e.player_id, '???'),
        'minute': e.minute,
    } for e in match.events]


def goalkeeper_options(tournament: TournamentData, players: List[Player], team_id: str) -> List[Player]:
    """Team roster plus every registered goalkeeper, sorted by name."""
    by_id = {p.id: p for p in players}
    team = tournament.get_team(team_id)
    options = [by_id[pid] for pid in (team.player_ids if team else []) if pid in by_id]
    seen = {p.id for p in options}
    for player in players:
        if player.position == GOALKEEPER and player.id not in seen:
            options.append(player)
            seen.add(player.id)
    return sorted(options, key=lambda p: p.name.lower())
