"""Light-weight helpers to mock a CCS for unit tests."""

from __future__ import annotations

import json
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from pydantic import BaseModel

from .codecs import LocalFileReference
from .models import Clarification, Contest, FileReference, Judgement, Problem, Submission, Team
from .scoreboard import Row, Score, ScoreProblem, Scoreboard, State

MOCK_BASE_URL = 'https://ccs.local/api'


@dataclass(slots=True)
class RecordedCall:
    """Simple container capturing an outgoing request for assertions."""

    method: str
    url: httpx.URL
    headers: httpx.Headers
    content: bytes

    def json(self) -> Any:
        return json.loads(self.content)


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode='json', by_alias=True)
    if isinstance(value, Sequence) and not isinstance(value, str | bytes):
        return [_dump(item) for item in value]
    if isinstance(value, Mapping):
        return dict(value)
    msg = 'Mock payloads must be Pydantic models, dicts, lists, raw str/bytes or (status, payload) tuples.'
    raise TypeError(msg)


def _coerce_payload(value: Any) -> tuple[int, Any]:
    status_code = 200
    payload = value
    if isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], int):
        status_code, payload = value

    if isinstance(payload, str | bytes):
        return status_code, payload
    return status_code, _dump(payload)


def create_mock_transport(
    routes: Mapping[str, Any],
    *,
    prefix: str = '/api/',
) -> tuple[httpx.MockTransport, list[RecordedCall]]:
    """Create an :class:`httpx.MockTransport` returning canned CCS replies.

    ``routes`` maps a path relative to the API root (``'contests/demo/problems'``)
    or a method plus path (``'POST contests/demo/clarifications'``) to a reply.
    A reply is a model, a list of models, plain JSON data, a raw ``str``/``bytes``
    body, or a ``(status, reply)`` tuple.  Unknown paths answer 404.
    """

    responses: MutableMapping[str, tuple[int, Any]] = {key: _coerce_payload(value) for key, value in routes.items()}
    calls: list[RecordedCall] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(
            RecordedCall(method=request.method, url=request.url, headers=httpx.Headers(request.headers), content=request.content)
        )

        path = request.url.path
        if path.startswith(prefix):
            path = path[len(prefix) :]

        status_and_payload = responses.get(f'{request.method} {path}')
        if status_and_payload is None:
            status_and_payload = responses.get(path)
        if status_and_payload is None:
            return httpx.Response(404, json={'code': 404, 'message': f'no mock route for {request.method} {path}'})

        status_code, payload = status_and_payload
        if isinstance(payload, str | bytes):
            return httpx.Response(status_code, content=payload)
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler), calls


_CONTEST_START = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


def make_contest(*, contest_id: str = 'demo', name: str = 'Demo contest') -> Contest:
    return Contest(
        id=contest_id,
        name=name,
        formal_name=f'{name} (formal)',
        start_time=_CONTEST_START,
        duration=timedelta(hours=5),
        scoreboard_freeze_duration=timedelta(hours=1),
    )


def make_problem(*, problem_id: str = 'hello', label: str = 'A', ordinal: int = 0) -> Problem:
    return Problem(id=problem_id, label=label, name=f'Problem {label}', ordinal=ordinal, time_limit=2.0)


def make_team(*, team_id: str = '1', name: str = 'Team One') -> Team:
    return Team(id=team_id, name=name, display_name=name, group_ids=['participants'], organization_id='org1')


def make_submission(
    *,
    submission_id: str = '100',
    problem_id: str = 'hello',
    language_id: str = 'cpp',
    files: LocalFileReference | None = None,
) -> Submission:
    return Submission(
        id=submission_id,
        language_id=language_id,
        problem_id=problem_id,
        team_id='1',
        time=_CONTEST_START + timedelta(minutes=3, seconds=38, milliseconds=749),
        contest_time=timedelta(minutes=3, seconds=38, milliseconds=749),
        files=[FileReference(href=f'contests/demo/submissions/{submission_id}/files', mime='application/zip', data=files)],
    )


def make_judgement(*, judgement_id: str = '200', submission_id: str = '100', verdict: str | None = 'AC') -> Judgement:
    return Judgement(
        id=judgement_id,
        submission_id=submission_id,
        judgement_type_id=verdict,
        start_time=_CONTEST_START + timedelta(minutes=4),
        start_contest_time=timedelta(minutes=4),
        end_time=_CONTEST_START + timedelta(minutes=5) if verdict else None,
        end_contest_time=timedelta(minutes=5) if verdict else timedelta(0),
        max_run_time=0.25 if verdict else None,
    )


def make_clarification(*, clarification_id: str = '300', problem_id: str | None = 'hello', text: str = 'Is n > 0?') -> Clarification:
    return Clarification(
        id=clarification_id,
        from_team_id='1',
        problem_id=problem_id,
        text=text,
        time=_CONTEST_START + timedelta(minutes=10),
        contest_time=timedelta(minutes=10),
    )


def make_state(*, started: bool = True, ended: bool = False) -> State:
    return State(
        started=_CONTEST_START if started else None,
        ended=_CONTEST_START + timedelta(hours=5) if ended else None,
    )


def make_scoreboard(*, team_ids: Sequence[str] = ('1', '2'), problem_id: str = 'hello') -> Scoreboard:
    rows = [
        Row(
            rank=rank,
            team_id=team_id,
            score=Score(num_solved=1 if rank == 1 else 0, total_time=5 if rank == 1 else 0),
            problems=[ScoreProblem(problem_id=problem_id, num_judged=1, solved=rank == 1, time=5 if rank == 1 else 0)],
        )
        for rank, team_id in enumerate(team_ids, start=1)
    ]
    return Scoreboard(
        event_id='ev-42',
        time=_CONTEST_START + timedelta(minutes=30),
        contest_time=timedelta(minutes=30),
        state=make_state(),
        rows=rows,
    )


__all__ = [
    'MOCK_BASE_URL',
    'RecordedCall',
    'create_mock_transport',
    'make_clarification',
    'make_contest',
    'make_judgement',
    'make_problem',
    'make_scoreboard',
    'make_state',
    'make_submission',
    'make_team',
]
