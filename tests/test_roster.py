"""
Unit tests for the player registry, team draft and tournament lifecycle.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from league.models import (
    TournamentData, DEFENDER, FORWARD, MAX_PLAYERS_PER_TEAM, STATUS_ACTIVE, STATUS_DRAFT,
    STATUS_FINISHED,
)
from league.roster import (
    add_player, archive_tournament, assign_player, change_team_count, create_draft, delete_archived,
    delete_player, remove_player_from_team, rename_archived, rename_team, sorted_history, start_tournament,
    unassigned_players, update_player,
)


class TestDraft:
    """Tests for draft creation and resizing."""

    def test_create_draft(self):
        draft = create_draft(5, name='Friday', now=1000)
        assert draft.status == STATUS_DRAFT
        assert draft.team_count == 5
        assert [t.id for t in draft.teams] == ['team-1', 'team-2', 'team-3', 'team-4', 'team-5']
        assert draft.teams[0].name == 'Team 1'
        assert draft.matches == []
        assert draft.created_at == 1000

    def test_create_draft_custom_team_names(self):
        draft = create_draft(4, team_name_template='Squad {n}')
        assert draft.teams[3].name == 'Squad 4'

    def test_create_draft_invalid_count(self):
        with pytest.raises(ValueError):
            create_draft(6)

    def test_change_team_count_resets_rosters(self, draft_tournament):
        ok, resized = change_team_count(draft_tournament, 5)
        assert ok
        assert resized.team_count == 5
        assert all(t.player_ids == [] for t in resized.teams)
        assert resized.id != draft_tournament.id
        assert resized.name == draft_tournament.name

    def test_change_team_count_same_count_is_noop(self, draft_tournament):
        ok, result = change_team_count(draft_tournament, 4)
        assert ok
        assert result is draft_tournament

    def test_change_team_count_after_start(self, active_tournament):
        ok, message = change_team_count(active_tournament, 5)
        assert not ok
        assert 'draft' in message


class TestPlayers:
    """Tests for the player registry."""

    def test_add_player(self):
        players = []
        ok, player = add_player(players, '  Nina ', FORWARD)
        assert ok
        assert player.name == 'Nina'
        assert players == [player]

    @pytest.mark.parametrize('name,position', [('', FORWARD), ('   ', FORWARD), ('Nina', 'Striker')])
    def test_add_player_validation(self, name, position):
        players = []
        ok, _ = add_player(players, name, position)
        assert not ok
        assert players == []

    def test_update_player(self, players):
        ok, _ = update_player(players, 'fw1', 'Gabriela', DEFENDER)
        assert ok
        player = next(p for p in players if p.id == 'fw1')
        assert (player.name, player.position) == ('Gabriela', DEFENDER)

    def test_update_unknown_player(self, players):
        assert update_player(players, 'nope', 'X', FORWARD) == (False, 'Player not found.')

    def test_delete_player_cleans_draft_rosters(self, players, draft_tournament):
        removed, changed = delete_player(players, draft_tournament, 'fw1')
        assert removed and changed
        assert 'fw1' not in [p.id for p in players]
        assert draft_tournament.get_team('team-1').player_ids == ['gk1']

    def test_delete_player_keeps_started_tournament(self, players, active_tournament, score):
        match = active_tournament.matches[0]
        score(match, 1, 0)
        match.events[0].player_id = 'gk1'
        removed, changed = delete_player(players, active_tournament, 'gk1')
        assert removed
        assert not changed
        assert 'gk1' in active_tournament.get_team('team-1').player_ids
        assert match.events[0].player_id == 'gk1'

    def test_delete_player_without_tournament(self, players):
        assert delete_player(players, None, 'gk2') == (True, False)

    def test_delete_unknown_player(self, players, draft_tournament):
        assert delete_player(players, draft_tournament, 'nope') == (False, False)
        assert len(players) == 8


class TestRosters:
    """Tests for roster assignment rules."""

    def test_assign_player(self, draft_tournament):
        ok, _ = assign_player(draft_tournament, 'team-1', 'new')
        assert ok
        assert draft_tournament.get_team('team-1').player_ids[-1] == 'new'

    def test_team_capacity(self):
        draft = create_draft(4)
        for n in range(MAX_PLAYERS_PER_TEAM):
            assert assign_player(draft, 'team-1', f'p{n}')[0]
        before = draft.to_dict()
        ok, message = assign_player(draft, 'team-1', 'p-extra')
        assert not ok
        assert str(MAX_PLAYERS_PER_TEAM) in message
        assert draft.to_dict() == before

    def test_player_on_one_team_only(self, draft_tournament):
        before = draft_tournament.to_dict()
        ok, message = assign_player(draft_tournament, 'team-2', 'fw1')
        assert not ok
        assert 'already' in message
        assert draft_tournament.to_dict() == before

    def test_assign_same_team_twice_is_harmless(self, draft_tournament):
        ok, _ = assign_player(draft_tournament, 'team-1', 'fw1')
        assert ok
        assert draft_tournament.get_team('team-1').player_ids.count('fw1') == 1

    def test_rosters_locked_after_start(self, active_tournament):
        assert not assign_player(active_tournament, 'team-1', 'new')[0]
        assert not remove_player_from_team(active_tournament, 'team-1', 'fw1')[0]

    def test_unknown_team(self, draft_tournament):
        assert assign_player(draft_tournament, 'team-9', 'new') == (False, 'Team not found.')

    def test_remove_player_from_team(self, draft_tournament):
        assert remove_player_from_team(draft_tournament, 'team-1', 'fw1')[0]
        assert draft_tournament.get_team('team-1').player_ids == ['gk1']
        assert not remove_player_from_team(draft_tournament, 'team-1', 'fw1')[0]

    def test_rename_team(self, draft_tournament):
        assert rename_team(draft_tournament, 'team-2', ' Reds ')[0]
        assert draft_tournament.team_name('team-2') == 'Reds'
        assert not rename_team(draft_tournament, 'team-2', '')[0]

    def test_unassigned_players_grouped_by_position(self, players, draft_tournament):
        draft_tournament.get_team('team-4').player_ids = ['df2']
        grouped = unassigned_players(draft_tournament, players)
        assert [p.id for p in grouped['Midfielder']] == ['mf2']
        assert grouped['Goalkeeper'] == []
        assert sum(len(g) for g in grouped.values()) == 1


class TestLifecycle:
    """Tests for starting and archiving tournaments."""

    def test_start_tournament(self, draft_tournament):
        ok, _ = start_tournament(draft_tournament)
        assert ok
        assert draft_tournament.status == STATUS_ACTIVE
        assert len(draft_tournament.matches) == 6
        assert draft_tournament.matches[0].home_team_id == 'team-1'

    def test_start_requires_players_on_every_team(self, draft_tournament):
        draft_tournament.get_team('team-3').player_ids = []
        ok, _ = start_tournament(draft_tournament)
        assert not ok
        assert draft_tournament.status == STATUS_DRAFT
        assert draft_tournament.matches == []

    def test_start_twice(self, draft_tournament):
        start_tournament(draft_tournament)
        matches = list(draft_tournament.matches)
        assert not start_tournament(draft_tournament)[0]
        assert draft_tournament.matches == matches

    def test_archive_tournament(self, active_tournament):
        history = []
        archived = archive_tournament(active_tournament, history, now=5000)
        assert history == [archived]
        assert archived.status == STATUS_FINISHED
        assert archived.finished_at == 5000
        assert archived is not active_tournament
        assert active_tournament.status == STATUS_ACTIVE
        assert len(archived.matches) == len(active_tournament.matches)


class TestHistory:
    """Tests for archive maintenance."""

    @pytest.fixture
    def history(self):
        return [
            TournamentData(id='old', name='Old', status=STATUS_FINISHED, created_at=100, finished_at=200),
            TournamentData(id='new', name='New', status=STATUS_FINISHED, created_at=300, finished_at=900),
            TournamentData(id='unfinished', name='Legacy', status=STATUS_FINISHED, created_at=500),
        ]

    def test_sorted_history_newest_first(self, history):
        assert [t.id for t in sorted_history(history)] == ['new', 'unfinished', 'old']

    def test_rename_archived(self, history):
        assert rename_archived(history, 'old', 'Opening night')[0]
        assert history[0].name == 'Opening night'
        assert rename_archived(history, 'missing', 'X') == (False, 'Tournament not found.')
        assert not rename_archived(history, 'old', '  ')[0]

    def test_delete_archived(self, history):
        assert delete_archived(history, 'old')[0]
        assert [t.id for t in history] == ['new', 'unfinished']
        assert not delete_archived(history, 'old')[0]
