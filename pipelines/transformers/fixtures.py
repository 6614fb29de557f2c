"""
Fixture Grouping Transformer

Turns a competition's provider fixtures into gameweeks and matchdays.

Premier League fixtures are grouped by provider matchday. Champions League
fixtures are grouped by (stage, matchday) and numbered sequentially across
stages so gameweeks sort in playing order.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from schemas.provider import ProviderFixture, ProviderTeam
from utils.constants import (
    CHAMPIONS_LEAGUE,
    UCL_LEAGUE_STAGE,
    UCL_STAGE_DISPLAY,
    UCL_STAGE_NUMBER_OFFSET,
    UCL_STAGE_ORDER,
)

UNKNOWN_STAGE_ORDER = 99


@dataclass(frozen=True)
class GameweekWindowPolicy:
    """
    Derives a gameweek's deadline and window end from its kickoff times.

    deadline = earliest kickoff - deadline_offset
    window end = latest kickoff + window_duration
    """

    deadline_offset: timedelta = timedelta(minutes=60)
    window_duration: timedelta = timedelta(minutes=120)

    @classmethod
    def from_settings(cls, settings) -> "GameweekWindowPolicy":
        return cls(
            deadline_offset=timedelta(minutes=settings.deadline_offset_minutes),
            window_duration=timedelta(minutes=settings.window_duration_minutes),
        )

    def deadline_for(self, first_kickoff: datetime) -> datetime:
        return first_kickoff - self.deadline_offset

    def window_end_for(self, last_kickoff: datetime) -> datetime:
        return last_kickoff + self.window_duration


@dataclass
class MatchdayGroup:
    id: str
    day_number: int
    date: date
    fixtures: list[ProviderFixture] = field(default_factory=list)


@dataclass
class FixtureGroup:
    """A gameweek ready to be written, with its matchdays in date order."""

    id: str
    number: int
    name: str
    stage: Optional[str]
    deadline: datetime
    starts_at: datetime
    ends_at: datetime
    matchdays: list[MatchdayGroup] = field(default_factory=list)

    @property
    def fixtures(self) -> list[ProviderFixture]:
        return [f for md in self.matchdays for f in md.fixtures]


def team_code(team: ProviderTeam) -> str:
    """Three-letter code: tla, else the short name's first three letters, else '???'."""
    if team.tla:
        return team.tla
    if team.short_name:
        return team.short_name[:3].upper()
    return "???"


def normalize_stage(stage: Optional[str]) -> Optional[str]:
    """LEAGUE_STAGE_MATCHDAY_n and friends collapse to LEAGUE_STAGE."""
    if stage and stage.startswith(UCL_LEAGUE_STAGE):
        return UCL_LEAGUE_STAGE
    return stage


def ucl_gameweek_name(stage: str, matchday: int, matchdays_in_stage: int) -> str:
    """
    Display name for a Champions League gameweek.

    Examples:
        >>> ucl_gameweek_name("LEAGUE_STAGE", 3, 8)
        'League Phase - MD 3'
        >>> ucl_gameweek_name("LAST_16", 2, 2)
        'Round of 16 - Leg 2'
        >>> ucl_gameweek_name("SEMI_FINALS", 1, 1)
        'Semi-Finals'
    """
    display = UCL_STAGE_DISPLAY.get(stage, stage)
    if stage == "FINAL":
        return display
    if stage == "SEMI_FINALS" and matchdays_in_stage <= 1:
        return display
    if stage == UCL_LEAGUE_STAGE:
        return f"{display} - MD {matchday}"
    return f"{display} - Leg {matchday}"


def _group_key(fixture: ProviderFixture, is_ucl: bool) -> Optional[tuple[Optional[str], int]]:
    """(stage, matchday) for a fixture, or None when it cannot be placed."""
    if is_ucl:
        stage = normalize_stage(fixture.stage)
        if stage == "FINAL" and not fixture.matchday:
            return stage, 1
        if not fixture.matchday or not stage:
            return None
        return stage, fixture.matchday
    if not fixture.matchday:
        return None
    return None, fixture.matchday


def _split_by_date(gameweek_id: str, fixtures: list[ProviderFixture]) -> list[MatchdayGroup]:
    by_date: dict[date, list[ProviderFixture]] = defaultdict(list)
    for fixture in fixtures:
        by_date[fixture.utc_date.date()].append(fixture)

    return [
        MatchdayGroup(
            id=f"{gameweek_id}-day{day_number}",
            day_number=day_number,
            date=day,
            fixtures=by_date[day],
        )
        for day_number, day in enumerate(sorted(by_date), start=1)
    ]


def group_fixtures(
    competition: str,
    season_id: str,
    fixtures: list[ProviderFixture],
    policy: GameweekWindowPolicy,
) -> tuple[list[FixtureGroup], list[ProviderFixture]]:
    """
    Group fixtures into gameweeks.

    Args:
        competition: premier_league or champions_league
        season_id: Owning season id, used as the gameweek id prefix
        fixtures: All provider fixtures of the season
        policy: Deadline and window end derivation

    Returns:
        (gameweeks in playing order, fixtures that could not be placed).
        Gameweeks whose fixtures all have undrawn teams are left out.
        Individual undrawn fixtures stay inside their gameweek and are
        filtered by the writer, so timing and matchday numbering do not
        shift once the draw is made.
    """
    is_ucl = competition == CHAMPIONS_LEAGUE

    buckets: dict[tuple[Optional[str], int], list[ProviderFixture]] = defaultdict(list)
    unplaced: list[ProviderFixture] = []
    for fixture in fixtures:
        key = _group_key(fixture, is_ucl)
        if key is None:
            unplaced.append(fixture)
        else:
            buckets[key].append(fixture)

    def sort_key(key: tuple[Optional[str], int]) -> tuple[int, int]:
        stage, matchday = key
        order = UCL_STAGE_ORDER.get(stage, UNKNOWN_STAGE_ORDER) if is_ucl else 0
        return order, matchday

    keys = sorted(buckets, key=sort_key)

    matchdays_per_stage: dict[Optional[str], int] = defaultdict(int)
    for stage, _ in keys:
        matchdays_per_stage[stage] += 1

    groups: list[FixtureGroup] = []
    for stage, matchday in keys:
        bucket = sorted(buckets[(stage, matchday)], key=lambda f: (f.utc_date, f.id))
        if not any(f.has_teams for f in bucket):
            continue

        if is_ucl:
            number = UCL_STAGE_NUMBER_OFFSET.get(stage, 0) + matchday
            gameweek_id = f"{season_id}-{stage}-gw{matchday}"
            name = ucl_gameweek_name(stage, matchday, matchdays_per_stage[stage])
        else:
            number = matchday
            gameweek_id = f"{season_id}-gw{matchday}"
            name = f"Gameweek {matchday}"

        first_kickoff = bucket[0].utc_date
        last_kickoff = bucket[-1].utc_date
        groups.append(
            FixtureGroup(
                id=gameweek_id,
                number=number,
                name=name,
                stage=stage,
                deadline=policy.deadline_for(first_kickoff),
                starts_at=first_kickoff,
                ends_at=policy.window_end_for(last_kickoff),
                matchdays=_split_by_date(gameweek_id, bucket),
            )
        )

    return groups, unplaced
