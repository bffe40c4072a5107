"""
Player registry, team draft and tournament lifecycle.

Mutating functions validate everything before touching state and return
(success, message) so a rejected call leaves the data unchanged.
"""
import copy
from typing import List, Optional, Tuple

from league.models import (
    MAX_PLAYERS_PER_TEAM, POSITIONS, STATUS_ACTIVE, STATUS_DRAFT, STATUS_FINISHED, TEAM_COUNTS,
    Player, Team, TournamentData, new_id, now_ms,
)
from league.schedule import generate_group_schedule

DEFAULT_TOURNAMENT_NAME = 'League Night'
DEFAULT_TEAM_NAME = 'Team {n}'


def create_draft(team_count: int = 4, name: str = DEFAULT_TOURNAMENT_NAME,
                 team_name_template: str = DEFAULT_TEAM_NAME,
                 now: Optional[int] = None) -> TournamentData:
    """Create an empty draft with team ids team-1..team-N."""
    if team_count not in TEAM_COUNTS:
        raise ValueError(f"Unsupported team count: {team_count} (expected 4 or 5)")
    teams = [Team(id=f'team-{n}', name=team_name_template.format(n=n)) for n in range(1, team_count + 1)]
    return TournamentData(
        id=new_id(),
        name=name,
        status=STATUS_DRAFT,
        team_count=team_count,
        teams=teams,
        created_at=now if now is not None else now_ms(),
    )


def change_team_count(tournament: TournamentData, team_count: int,
                      team_name_template: str = DEFAULT_TEAM_NAME) -> Tuple[bool, object]:
    """Replace a draft with a fresh one of a different size. Rosters are reset.

    Returns (True, new_tournament) or (False, message).
    """
    if tournament.status != STATUS_DRAFT:
        return False, 'Team count can only change while the tournament is a draft.'
    if team_count not in TEAM_COUNTS:
        return False, 'Team count must be 4 or 5.'
    if team_count == tournament.team_count:
        return True, tournament
    return True, create_draft(team_count, tournament.name, team_name_template)


# -- Player registry ---------------------------------------------------------

def _validate_player(name: str, position: str) -> Optional[str]:
    if not name or not name.strip():
        return 'Player name is required.'
    if position not in POSITIONS:
        return f'Invalid position: {position}'
    return None


def add_player(players: List[Player], name: str, position: str) -> Tuple[bool, object]:
    """Register a player. Returns (True, player) or (False, message)."""
    error = _validate_player(name, position)
    if error:
        return False, error
    player = Player(id=new_id(), name=name.strip(), position=position)
    players.append(player)
    return True, player


def update_player(players: List[Player], player_id: str, name: str, position: str) -> Tuple[bool, str]:
    """Rename and/or reposition a player."""
    player = next((p for p in players if p.id == player_id), None)
    if player is None:
        return False, 'Player not found.'
    error = _validate_player(name, position)
    if error:
        return False, error
    player.name = name.strip()
    player.position = position
    return True, 'Player updated.'


def delete_player(players: List[Player], tournament: Optional[TournamentData], player_id: str) -> Tuple[bool, bool]:
    """
    Remove a player from the registry.

    Rosters are only cleaned when the current tournament is still a draft;
    active, finished and archived tournaments keep their references.
    Returns (removed_from_registry, tournament_changed).
    """
    before = len(players)
    players[:] = [p for p in players if p.id != player_id]
    removed = len(players) < before

    changed = False
    if tournament is not None and tournament.status == STATUS_DRAFT:
        for team in tournament.teams:
            if player_id in team.player_ids:
                team.player_ids = [pid for pid in team.player_ids if pid != player_id]
                changed = True
    return removed, changed


# -- Team draft ---------------------------------------------------------------

def assign_player(tournament: TournamentData, team_id: str, player_id: str) -> Tuple[bool, str]:
    """Add a player to a team roster (draft only, max 6, one team per player)."""
    if tournament.status != STATUS_DRAFT:
        return False, 'Rosters are locked once the tournament has started.'
    team = tournament.get_team(team_id)
    if team is None:
        return False, 'Team not found.'
    if player_id in team.player_ids:
        return True, 'Player already on this team.'
    if team.is_full:
        return False, f'Maximum of {MAX_PLAYERS_PER_TEAM} players per team.'
    if tournament.team_of_player(player_id) is not None:
        return False, 'Player is already on a team. Remove them first.'
    team.player_ids.append(player_id)
    return True, 'Player added.'


def remove_player_from_team(tournament: TournamentData, team_id: str, player_id: str) -> Tuple[bool, str]:
    if tournament.status != STATUS_DRAFT:
        return False, 'Rosters are locked once the tournament has started.'
    team = tournament.get_team(team_id)
    if team is None:
        return False, 'Team not found.'
    if player_id not in team.player_ids:
        return False, 'Player is not on this team.'
    team.player_ids.remove(player_id)
    return True, 'Player removed.'


def rename_team(tournament: TournamentData, team_id: str, name: str) -> Tuple[bool, str]:
    team = tournament.get_team(team_id)
    if team is None:
        return False, 'Team not found.'
    if not name or not name.strip():
        return False, 'Team name is required.'
    team.name = name.strip()
    return True, 'Team renamed.'


def unassigned_players(tournament: Optional[TournamentData], players: List[Player]) -> dict:
    """Players without a team, grouped by position."""
    assigned = set()
    if tournament is not None:
        for team in tournament.teams:
            assigned.update(team.player_ids)
    grouped = {position: [] for position in POSITIONS}
    for player in players:
        if player.id not in assigned and player.position in grouped:
            grouped[player.position].append(player)
    return grouped


# -- Lifecycle ----------------------------------------------------------------

def start_tournament(tournament: TournamentData) -> Tuple[bool, str]:
    """Generate the group schedule and move the draft to active."""
    if tournament.status != STATUS_DRAFT:
        return False, 'Tournament has already started.'
    if len(tournament.teams) not in TEAM_COUNTS:
        return False, 'Tournament needs 4 or 5 teams.'
    if any(not team.player_ids for team in tournament.teams):
        return False, 'Every team needs at least one player.'
    tournament.matches = generate_group_schedule([team.id for team in tournament.teams])
    tournament.status = STATUS_ACTIVE
    return True, 'Tournament started.'


def archive_tournament(tournament: TournamentData, history: List[TournamentData],
                       now: Optional[int] = None) -> TournamentData:
    """Append a finished copy of the tournament to history and return it.

    The caller clears the current tournament afterwards.
    """
    archived = copy.deepcopy(tournament)
    archived.status = STATUS_FINISHED
    archived.finished_at = now if now is not None else now_ms()
    history.append(archived)
    return archived


def _history_timestamp(tournament: TournamentData) -> int:
    return tournament.finished_at or tournament.created_at or 0


def sorted_history(history: List[TournamentData]) -> List[TournamentData]:
    """Newest first, by finish time falling back to creation time."""
    return sorted(history, key=_history_timestamp, reverse=True)


def rename_archived(history: List[TournamentData], tournament_id: str, name: str) -> Tuple[bool, str]:
    if not name or not name.strip():
        return False, 'Name is required.'
    for tournament in history:
        if tournament.id == tournament_id:
            tournament.name = name.strip()
            return True, 'Tournament renamed.'
    return False, 'Tournament not found.'


def delete_archived(history: List[TournamentData], tournament_id: str) -> Tuple[bool, str]:
    remaining = [t for t in history if t.id != tournament_id]
    if len(remaining) == len(history):
        return False, 'Tournament not found.'
    history[:] = remaining
    return True, 'Tournament deleted.'
