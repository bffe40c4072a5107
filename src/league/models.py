import time
import uuid

GOALKEEPER = 'Goalkeeper'
DEFENDER = 'Defender'
MIDFIELDER = 'Midfielder'
FORWARD = 'Forward'
POSITIONS = (GOALKEEPER, DEFENDER, MIDFIELDER, FORWARD)

EVENT_TYPES = ('goal', 'assist', 'yellow', 'red')

PHASE_GROUP = 'group'
PHASE_SEMI = 'semi'
PHASE_FINAL = 'final'

STATUS_DRAFT = 'draft'
STATUS_ACTIVE = 'active'
STATUS_FINISHED = 'finished'

MAX_PLAYERS_PER_TEAM = 6
TEAM_COUNTS = (4, 5)


def new_id():
    return uuid.uuid4().hex


def now_ms():
    return int(time.time() * 1000)


class Player:
    def __init__(self, id, name, position):
        self.id = id
        self.name = name
        self.position = position

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'position': self.position}

    @classmethod
    def from_dict(cls, data):
        return cls(id=data['id'], name=data.get('name', ''), position=data.get('position', FORWARD))

    def __repr__(self):
        return f"Player(id={self.id}, name={self.name}, position={self.position})"


class Team:
    def __init__(self, id, name, player_ids=None):
        self.id = id
        self.name = name
        self.player_ids = list(player_ids) if player_ids else []

    @property
    def is_full(self):
        return len(self.player_ids) >= MAX_PLAYERS_PER_TEAM

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'playerIds': list(self.player_ids)}

    @classmethod
    def from_dict(cls, data):
        return cls(id=data['id'], name=data.get('name', ''), player_ids=data.get('playerIds') or [])

    def __repr__(self):
        return f"Team(id={self.id}, name={self.name}, player_ids={self.player_ids})"


class MatchEvent:
    def __init__(self, id, type, team_id, player_id, minute=None):
        self.id = id
        self.type = type
        self.team_id = team_id
        self.player_id = player_id
        self.minute = minute  # Optional, not used by any calculation

    def to_dict(self):
        data = {'id': self.id, 'type': self.type, 'teamId': self.team_id, 'playerId': self.player_id}
        if self.minute is not None:
            data['minute'] = self.minute
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            type=data['type'],
            team_id=data.get('teamId'),
            player_id=data.get('playerId'),
            minute=data.get('minute'),
        )

    def __repr__(self):
        return f"MatchEvent(type={self.type}, team_id={self.team_id}, player_id={self.player_id})"


class Match:
    def __init__(self, id, round, home_team_id, away_team_id, phase=PHASE_GROUP,
                 home_score=0, away_score=0, finished=False, events=None,
                 is_playoff=False, penalty_home=None, penalty_away=None,
                 home_goalkeeper_id=None, away_goalkeeper_id=None):
        self.id = id
        self.round = round
        self.home_team_id = home_team_id
        self.away_team_id = away_team_id
        self.phase = phase
        # Scores are a projection of the goal events, see ledger.recompute_score()
        self.home_score = home_score
        self.away_score = away_score
        self.finished = finished
        self.events = list(events) if events else []
        self.is_playoff = is_playoff
        self.penalty_home = penalty_home
        self.penalty_away = penalty_away
        self.home_goalkeeper_id = home_goalkeeper_id
        self.away_goalkeeper_id = away_goalkeeper_id

    @property
    def is_draw(self):
        return self.home_score == self.away_score

    def has_penalties(self):
        return self.penalty_home is not None and self.penalty_away is not None

    def side_of(self, team_id):
        """Return 'home', 'away' or None for a team id."""
        if team_id == self.home_team_id:
            return 'home'
        if team_id == self.away_team_id:
            return 'away'
        return None

    def to_dict(self):
        data = {
            'id': self.id,
            'round': self.round,
            'homeTeamId': self.home_team_id,
            'awayTeamId': self.away_team_id,
            'homeScore': self.home_score,
            'awayScore': self.away_score,
            'finished': self.finished,
            'events': [e.to_dict() for e in self.events],
            'phase': self.phase,
        }
        if self.is_playoff:
            data['isPlayoff'] = True
        optional = {
            'penaltyHome': self.penalty_home,
            'penaltyAway': self.penalty_away,
            'homeGoalkeeperId': self.home_goalkeeper_id,
            'awayGoalkeeperId': self.away_goalkeeper_id,
        }
        for key, value in optional.items():
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data):
        # Scores are bulk-loaded from the snapshot as stored
        return cls(
            id=data['id'],
            round=data.get('round', 0),
            home_team_id=data.get('homeTeamId'),
            away_team_id=data.get('awayTeamId'),
            phase=data.get('phase') or PHASE_GROUP,
            home_score=data.get('homeScore', 0),
            away_score=data.get('awayScore', 0),
            finished=bool(data.get('finished', False)),
            events=[MatchEvent.from_dict(e) for e in data.get('events') or []],
            is_playoff=bool(data.get('isPlayoff', False)),
            penalty_home=data.get('penaltyHome'),
            penalty_away=data.get('penaltyAway'),
            home_goalkeeper_id=data.get('homeGoalkeeperId'),
            away_goalkeeper_id=data.get('awayGoalkeeperId'),
        )

    def __repr__(self):
        return (f"Match(round={self.round}, phase={self.phase}, {self.home_team_id} "
                f"{self.home_score}-{self.away_score} {self.away_team_id}, finished={self.finished})")


class TournamentData:
    def __init__(self, id, name, status=STATUS_DRAFT, team_count=4, teams=None,
                 matches=None, created_at=None, finished_at=None):
        self.id = id
        self.name = name
        self.status = status
        self.team_count = team_count
        self.teams = list(teams) if teams else []
        self.matches = list(matches) if matches else []
        self.created_at = created_at if created_at is not None else now_ms()
        self.finished_at = finished_at

    def get_team(self, team_id):
        return next((t for t in self.teams if t.id == team_id), None)

    def get_match(self, match_id):
        return next((m for m in self.matches if m.id == match_id), None)

    def team_name(self, team_id):
        team = self.get_team(team_id)
        return team.name if team else '???'

    def matches_in_phase(self, phase):
        return [m for m in self.matches if m.phase == phase]

    def team_of_player(self, player_id):
        return next((t for t in self.teams if player_id in t.player_ids), None)

    def to_dict(self):
        data = {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'teamCount': self.team_count,
            'teams': [t.to_dict() for t in self.teams],
            'matches': [m.to_dict() for m in self.matches],
            'createdAt': self.created_at,
        }
        if self.finished_at is not None:
            data['finishedAt'] = self.finished_at
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            status=data.get('status', STATUS_DRAFT),
            team_count=data.get('teamCount', 4),
            teams=[Team.from_dict(t) for t in data.get('teams') or []],
            matches=[Match.from_dict(m) for m in data.get('matches') or []],
            created_at=data.get('createdAt', 0),
            finished_at=data.get('finishedAt'),
        )

    def __repr__(self):
        return f"TournamentData(name={self.name}, status={self.status}, teams={len(self.teams)}, matches={len(self.matches)})"
