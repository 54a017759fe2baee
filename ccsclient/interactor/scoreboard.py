"""Scoreboard and contest state resources.

Both are singletons below a contest (``contests/{id}/scoreboard`` and
``contests/{id}/state``) and are fetched by id with an empty identifier.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

from .codecs import ApiRelTime, ApiTime, Identifier
from .models import ZERO, CCSBaseModel, Resource


class State(Resource):
    """Contest milestones; a milestone that has not happened yet is ``None``."""

    path = 'state'

    started: ApiTime = None
    ended: ApiTime = None
    frozen: ApiTime = None
    thawed: ApiTime = None
    finalized: ApiTime = None
    end_of_updates: ApiTime = None

    @property
    def running(self) -> bool:
        return self.started is not None and self.ended is None


class Score(CCSBaseModel):
    num_solved: int = 0
    total_time: Annotated[int, Field(description='Penalty time in minutes (pass-fail contests).')] = 0
    score: Annotated[float, Field(description='Score for scoring contests.')] = 0.0


class ScoreProblem(CCSBaseModel):
    problem_id: Identifier
    num_judged: int = 0
    num_pending: int = 0
    solved: bool = False
    score: float = 0.0
    time: Annotated[int, Field(description='Minutes into the contest when the problem was solved.')] = 0


class Row(CCSBaseModel):
    rank: int = 0
    team_id: Identifier
    score: Score = Score()
    problems: list[ScoreProblem] = []


class Scoreboard(Resource):
    path = 'scoreboard'
    display_fields = ('event_id', 'time', 'contest_time', 'state')

    event_id: Identifier | None = None
    time: ApiTime = None
    contest_time: ApiRelTime = ZERO
    state: State = State()
    rows: list[Row] = []

    def row_for_team(self, team_id: str) -> Row | None:
        for row in self.rows:
            if row.team_id == team_id:
                return row
        return None


__all__ = ['Row', 'Score', 'ScoreProblem', 'Scoreboard', 'State']
