import yaml
import os
import sys
from league.models import TournamentData, Player
from league.schedule import generate_group_schedule
from league.standings import calculate_standings
from league.statistics import general_ranking, scorer_leaderboard


def load_tournament(file_path):
    """Load a tournament document (the 'tournament' key of current_tournament.yaml)."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    data = data.get('tournament', data)
    if not data:
        return None
    return TournamentData.from_dict(data)


def load_players(file_path):
    if not os.path.exists(file_path):
        return []
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    return [Player.from_dict(p) for p in data.get('players', [])]


def print_schedule(tournament):
    matches = tournament.matches or generate_group_schedule([t.id for t in tournament.teams])
    print(f"# {tournament.name}")
    for match in matches:
        home = tournament.team_name(match.home_team_id)
        away = tournament.team_name(match.away_team_id)
        if match.finished:
            print(f"R{match.round} [{match.phase}] {home} {match.home_score} - {match.away_score} {away}")
        else:
            print(f"R{match.round} [{match.phase}] {home} vs {away}")


def print_standings(tournament):
    print()
    print("# Standings")
    print(f"{'Pos':<4}{'Team':<20}{'P':>3}{'W':>3}{'D':>3}{'L':>3}{'GF':>4}{'GA':>4}{'GD':>4}{'Pts':>5}")
    for idx, row in enumerate(calculate_standings(tournament), start=1):
        print(f"{idx:<4}{row['team']:<20}{row['played']:>3}{row['wins']:>3}{row['draws']:>3}"
              f"{row['losses']:>3}{row['goals_for']:>4}{row['goals_against']:>4}{row['goal_diff']:>4}{row['points']:>5}")


def print_leaders(tournament, players):
    names = {p.id: p.name for p in players}
    ranking = general_ranking([tournament], players)
    if ranking:
        print()
        print("# Player ranking")
        for idx, row in enumerate(ranking, start=1):
            print(f"{idx}. {names.get(row['player_id'], '???')} - {row['points']} pts ({row['matches']} matches)")
    scorers = scorer_leaderboard([tournament], limit=5)
    if scorers:
        print()
        print("# Top scorers")
        for row in scorers:
            print(f"{names.get(row['player_id'], '???')}: {row['count']}")


def main():
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)

    # Use command line arguments if provided, otherwise use the default data directory
    tournament_file = sys.argv[1] if len(sys.argv) > 1 else os.path.join(base_dir, 'data', 'current_tournament.yaml')
    players_file = sys.argv[2] if len(sys.argv) > 2 else os.path.join(os.path.dirname(tournament_file), 'players.yaml')

    if not os.path.exists(tournament_file):
        print(f"No tournament found at {tournament_file}")
        return 1

    tournament = load_tournament(tournament_file)
    if tournament is None or len(tournament.teams) not in (4, 5):
        print("Tournament needs 4 or 5 teams.")
        return 1

    print_schedule(tournament)
    print_standings(tournament)
    print_leaders(tournament, load_players(players_file))
    return 0


if __name__ == '__main__':
    sys.exit(main())
