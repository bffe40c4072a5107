"""
Playoff progression: group -> semifinals -> final.

The tournament phase is never stored. It is inferred from which phases exist
in the match list and whether their matches are finished, so running the
controller again after a transition has fired is a no-op.
"""
import logging
from typing import List, Optional, Tuple

from league.models import (
    Match, TournamentData, PHASE_GROUP, PHASE_SEMI, PHASE_FINAL,
    STATUS_DRAFT, new_id,
)
from league.standings import seed_teams

logger = logging.getLogger(__name__)

SEMI_ROUND = 100
FINAL_ROUND = 200

PHASE_COMPLETE = 'complete'


def _all_finished(matches: List[Match]) -> bool:
    return all(m.finished for m in matches)


def _playoff_match(round_number: int, phase: str, home_team_id: str, away_team_id: str) -> Match:
    return Match(
        id=new_id(),
        round=round_number,
        home_team_id=home_team_id,
        away_team_id=away_team_id,
        phase=phase,
        is_playoff=True,
    )


def semifinal_winner(match: Match) -> str:
    """Higher score wins; a draw goes to the home side (the higher seed)."""
    if match.away_score > match.home_score:
        return match.away_team_id
    return match.home_team_id


def final_winner(match: Match) -> Optional[str]:
    """
    Winner of a final, or None while it cannot be resolved.

    A drawn final is decided on penalties. Missing or level penalty scores
    leave the final unresolved.
    """
    if match.home_score > match.away_score:
        return match.home_team_id
    if match.away_score > match.home_score:
        return match.away_team_id
    if not match.has_penalties() or match.penalty_home == match.penalty_away:
        return None
    return match.home_team_id if match.penalty_home > match.penalty_away else match.away_team_id


def match_winner(match: Match) -> Optional[str]:
    """Winner of a finished match by phase rules. None for draws and open matches."""
    if not match.finished:
        return None
    if match.phase == PHASE_SEMI:
        return semifinal_winner(match)
    if match.phase == PHASE_FINAL:
        return final_winner(match)
    if match.home_score == match.away_score:
        return None
    return match.home_team_id if match.home_score > match.away_score else match.away_team_id


def generate_semifinals(tournament: TournamentData) -> List[Match]:
    """Seed 1 v seed 4 and seed 2 v seed 3, higher seed at home."""
    seeds = seed_teams(tournament)
    if len(seeds) < 4:
        return []
    return [
        _playoff_match(SEMI_ROUND, PHASE_SEMI, seeds[0], seeds[3]),
        _playoff_match(SEMI_ROUND, PHASE_SEMI, seeds[1], seeds[2]),
    ]


def generate_final(tournament: TournamentData) -> List[Match]:
    """Final between the two semifinal winners; seed 1/4 semi winner at home."""
    semis = tournament.matches_in_phase(PHASE_SEMI)
    if len(semis) < 2:
        return []
    return [_playoff_match(FINAL_ROUND, PHASE_FINAL, semifinal_winner(semis[0]), semifinal_winner(semis[1]))]


def advance_tournament(tournament: TournamentData) -> List[Match]:
    """
    Run the progression state machine once.

    New fixtures are appended to tournament.matches and returned. Returns an
    empty list when no transition fires.
    """
    group = tournament.matches_in_phase(PHASE_GROUP)
    semis = tournament.matches_in_phase(PHASE_SEMI)
    finals = tournament.matches_in_phase(PHASE_FINAL)

    new_matches = []
    if group and _all_finished(group) and not semis:
        new_matches = generate_semifinals(tournament)
        if new_matches:
            logger.info(f"Group phase complete for {tournament.name}: created semifinals")
    elif semis and _all_finished(semis) and not finals:
        new_matches = generate_final(tournament)
        if new_matches:
            logger.info(f"Semifinals complete for {tournament.name}: created final")

    tournament.matches.extend(new_matches)
    return new_matches


def tournament_phase(tournament: TournamentData) -> str:
    """Return one of 'draft', 'group', 'semi', 'final', 'complete'."""
    if tournament.status == STATUS_DRAFT or not tournament.matches:
        return STATUS_DRAFT
    finals = tournament.matches_in_phase(PHASE_FINAL)
    if finals:
        if finals[0].finished and final_winner(finals[0]) is not None:
            return PHASE_COMPLETE
        return PHASE_FINAL
    if tournament.matches_in_phase(PHASE_SEMI):
        return PHASE_SEMI
    return PHASE_GROUP


def champion_team_id(tournament: TournamentData) -> Optional[str]:
    """Team id of the champion, None until the final is finished and resolved."""
    final = next((m for m in tournament.matches if m.phase == PHASE_FINAL and m.finished), None)
    if final is None:
        return None
    return final_winner(final)


def finish_match(tournament: TournamentData, match_id: str,
                 penalty_home: Optional[int] = None,
                 penalty_away: Optional[int] = None) -> Tuple[bool, str]:
    """
    Mark a match finished and advance the tournament.

    A drawn final needs both penalty scores, and they must differ. Returns
    (success, message); nothing changes on failure.
    """
    match = tournament.get_match(match_id)
    if match is None:
        return False, 'Match not found.'

    if match.phase == PHASE_FINAL and match.is_draw:
        home_pens = penalty_home if penalty_home is not None else match.penalty_home
        away_pens = penalty_away if penalty_away is not None else match.penalty_away
        if home_pens is None or away_pens is None:
            return False, 'A drawn final needs both penalty scores before it can be closed.'
        if home_pens < 0 or away_pens < 0:
            return False, 'Penalty scores cannot be negative.'
        if home_pens == away_pens:
            return False, 'Penalty shootout cannot end level.'
        match.penalty_home = home_pens
        match.penalty_away = away_pens

    match.finished = True
    new_matches = advance_tournament(tournament)
    if new_matches:
        return True, f'Match finished. {len(new_matches)} new fixture(s) created.'
    return True, 'Match finished.'
