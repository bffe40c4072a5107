"""
Group stage schedule generation.

The pairing order is fixed per team count so that home/away appearances stay
balanced across rounds. Do not replace the tables with a generic round-robin.
"""
from typing import List, Sequence, Tuple

from league.models import Match, PHASE_GROUP, new_id

GROUP_PAIRINGS = {
    4: [(0, 1), (3, 2), (2, 0), (1, 3), (0, 3), (1, 2)],
    5: [(0, 1), (3, 2), (4, 0), (1, 3), (2, 4),
        (3, 0), (2, 1), (4, 3), (0, 2), (1, 4)],
}


def get_pairings(team_count: int) -> List[Tuple[int, int]]:
    """Return the (home_index, away_index) table for a team count."""
    if team_count not in GROUP_PAIRINGS:
        raise ValueError(f"Unsupported team count: {team_count} (expected 4 or 5)")
    return list(GROUP_PAIRINGS[team_count])


def generate_group_schedule(team_ids: Sequence[str]) -> List[Match]:
    """
    Create the group phase fixtures for an ordered list of team ids.

    Round numbers are the 1-based position in the pairing table. Every match
    starts unfinished at 0-0 with an empty event log.
    """
    matches = []
    for idx, (home, away) in enumerate(get_pairings(len(team_ids))):
        matches.append(Match(
            id=new_id(),
            round=idx + 1,
            home_team_id=team_ids[home],
            away_team_id=team_ids[away],
            phase=PHASE_GROUP,
        ))
    return matches
