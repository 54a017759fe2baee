"""Typed resources, scalar codecs and HTTP helpers for the CCS REST API."""

from .client import CCSClient
from .codecs import (
    ApiRelTime,
    ApiTime,
    Identifier,
    LocalFileReference,
    Timestamp,
    format_api_time,
    format_rel_time,
    parse_api_time,
    parse_rel_time,
)
from .engine import ApiEngine, response_to_error
from .errors import (
    AuthenticationError,
    CCSClientError,
    DecodeError,
    ErrorKind,
    NotFoundError,
    ServerError,
    StructuralError,
    TransportError,
)
from .mocks import (
    MOCK_BASE_URL,
    RecordedCall,
    create_mock_transport,
    make_clarification,
    make_contest,
    make_judgement,
    make_problem,
    make_scoreboard,
    make_state,
    make_submission,
    make_team,
)
from .models import (
    Account,
    ApiErrorPayload,
    Clarification,
    Contest,
    FileReference,
    Group,
    Judgement,
    JudgementType,
    Language,
    Organization,
    Problem,
    Resource,
    Submission,
    Submittable,
    Team,
)
from .scoreboard import Row, Score, ScoreProblem, Scoreboard, State

__all__ = [
    'MOCK_BASE_URL',
    'Account',
    'ApiEngine',
    'ApiErrorPayload',
    'ApiRelTime',
    'ApiTime',
    'AuthenticationError',
    'CCSClient',
    'CCSClientError',
    'Clarification',
    'Contest',
    'DecodeError',
    'ErrorKind',
    'FileReference',
    'Group',
    'Identifier',
    'Judgement',
    'JudgementType',
    'Language',
    'LocalFileReference',
    'NotFoundError',
    'Organization',
    'Problem',
    'RecordedCall',
    'Resource',
    'Row',
    'Score',
    'ScoreProblem',
    'Scoreboard',
    'ServerError',
    'State',
    'StructuralError',
    'Submission',
    'Submittable',
    'Team',
    'Timestamp',
    'TransportError',
    'create_mock_transport',
    'format_api_time',
    'format_rel_time',
    'make_clarification',
    'make_contest',
    'make_judgement',
    'make_problem',
    'make_scoreboard',
    'make_state',
    'make_submission',
    'make_team',
    'parse_api_time',
    'parse_rel_time',
    'response_to_error',
]
