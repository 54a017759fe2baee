"""Pydantic models describing the resources exposed by the CCS REST API.

Every resource type derives from :class:`Resource`, which is the capability
set the retrieval engine is generic over: a REST collection name
(:attr:`Resource.path`), whether that collection lives below
``contests/{id}/`` (:attr:`Resource.in_contest`), a side-effect-free
:meth:`Resource.decode` and an :meth:`Resource.encode` used for POST bodies.

Field names follow the JSON keys of the CCS specification as implemented by
DOMjudge.  Fields with a default are optional on the wire: they are omitted
from POST bodies while they still hold that default, and unknown keys sent by
newer servers are ignored.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta
from types import NoneType
from typing import Annotated, Any, ClassVar, Self, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_core import PydanticSerializationError

from .codecs import ApiRelTime, ApiTime, Identifier, LocalFileReference, format_api_time, format_rel_time
from .errors import DecodeError

ZERO = timedelta(0)


class CCSBaseModel(BaseModel):
    """Base class shared by all CCS models."""

    model_config = ConfigDict(extra='ignore', populate_by_name=True, frozen=True)

    @model_validator(mode='before')
    @classmethod
    def null_means_default(cls, data: Any) -> Any:
        """Drop ``null`` values of optional fields that cannot hold ``None`` so their default applies."""

        if not isinstance(data, Mapping):
            return data
        defaulted = {
            field.alias or name
            for name, field in cls.model_fields.items()
            if not field.is_required() and not _accepts_none(field.annotation)
        }
        return {key: value for key, value in data.items() if value is not None or key not in defaulted}


def _accepts_none(annotation: Any) -> bool:
    return annotation is None or annotation is NoneType or NoneType in get_args(annotation)


def _render(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, datetime):
        return format_api_time(value) or ''
    if isinstance(value, timedelta):
        return format_rel_time(value)
    if isinstance(value, list | tuple):
        return ', '.join(_render(item) for item in value)
    return str(value)


class Resource(CCSBaseModel):
    """A REST addressable CCS entity."""

    path: ClassVar[str]
    in_contest: ClassVar[bool] = True
    display_fields: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def decode(cls, data: bytes | str | Mapping[str, Any]) -> Self:
        """Build a fresh instance from one JSON object (raw or already parsed)."""

        try:
            if isinstance(data, bytes | bytearray | str):
                return cls.model_validate_json(data)
            return cls.model_validate(data)
        except ValidationError as exc:
            raise DecodeError(f'could not decode {cls.__name__}: {exc}') from exc

    def encode(self) -> bytes:
        try:
            return self.model_dump_json(by_alias=True, exclude_defaults=True).encode()
        except PydanticSerializationError as exc:
            raise DecodeError(f'could not marshal {type(self).__name__}: {exc}') from exc

    def __str__(self) -> str:
        names = self.display_fields or tuple(type(self).model_fields)
        width = max(len(name) for name in names)
        return '\n'.join(f'{name.replace("_", " "):>{width}}: {_render(getattr(self, name))}' for name in names)


class Submittable(Resource):
    """Resource that callers may POST to the CCS."""


class FileReference(CCSBaseModel):
    """Reference to a file attached to a submission."""

    href: Annotated[str | None, Field(description='Location of the file on the CCS.')] = None
    mime: Annotated[str | None, Field(description='Mime type, ``application/zip`` for source bundles.')] = None
    width: int | None = None
    height: int | None = None
    data: Annotated[LocalFileReference | None, Field(description='Inline base64 encoded ZIP with the files.')] = None


class ApiErrorPayload(CCSBaseModel):
    """Error body returned by the CCS alongside a non-2xx status."""

    code: int
    message: str = ''


# -- Contest level ----------------------------------------------------------


class Contest(Resource):
    path = 'contests'
    in_contest = False
    display_fields = ('id', 'name', 'formal_name', 'start_time', 'duration')

    id: Identifier
    name: str
    formal_name: str | None = None
    start_time: Annotated[ApiTime, Field(description='Scheduled start, ``None`` when undecided.')] = None
    duration: ApiRelTime = ZERO
    scoreboard_freeze_duration: Annotated[ApiRelTime, Field(description='Time before the end during which the scoreboard is frozen.')] = ZERO
    countdown_pause_time: Annotated[ApiRelTime, Field(description='Remaining countdown while the start is paused.')] = ZERO


class Problem(Resource):
    path = 'problems'
    display_fields = ('id', 'label', 'name', 'ordinal')

    id: Identifier
    label: str
    name: str
    ordinal: Annotated[int, Field(description='Sort order of the problem within the contest.')] = 0
    rgb: str | None = None
    color: str | None = None
    time_limit: Annotated[float | None, Field(description='Time limit per test case in seconds.')] = None
    test_data_count: int | None = None


class JudgementType(Resource):
    path = 'judgement-types'

    id: Identifier
    name: str
    penalty: Annotated[bool, Field(description='Whether this verdict adds penalty time.')] = False
    solved: Annotated[bool, Field(description='Whether this verdict counts as solving the problem.')] = False


class Language(Resource):
    path = 'languages'

    id: Identifier
    name: str
    entry_point_required: bool = False
    entry_point_name: Annotated[str | None, Field(description='Human readable name of the entry point, e.g. "Main class".')] = None
    extensions: list[str] = []


# -- Submissions and judging ------------------------------------------------


class Submission(Submittable):
    path = 'submissions'
    display_fields = ('id', 'language_id', 'time', 'contest_time', 'team_id', 'problem_id', 'entry_point')

    id: Identifier | None = None
    language_id: Identifier | None = None
    time: ApiTime = None
    contest_time: ApiRelTime = ZERO
    team_id: Identifier | None = None
    problem_id: Identifier | None = None
    entry_point: Annotated[str | None, Field(description='Main class or file for languages that need one.')] = None
    files: Annotated[list[FileReference], Field(description='Source files, normally a single ZIP bundle.')] = []


class Judgement(Resource):
    path = 'judgements'
    display_fields = ('id', 'submission_id', 'judgement_type_id', 'start_contest_time', 'end_contest_time')

    id: Identifier
    submission_id: Identifier
    judgement_type_id: Annotated[Identifier | None, Field(description='Verdict, ``None`` while judging is in progress.')] = None
    start_time: ApiTime = None
    start_contest_time: ApiRelTime = ZERO
    end_time: ApiTime = None
    end_contest_time: ApiRelTime = ZERO
    max_run_time: Annotated[float | None, Field(description='Longest test case run time in seconds.')] = None


class Clarification(Submittable):
    path = 'clarifications'

    id: Identifier | None = None
    from_team_id: Identifier | None = None
    to_team_id: Identifier | None = None
    reply_to_id: Identifier | None = None
    problem_id: Identifier | None = None
    text: str
    time: ApiTime = None
    contest_time: ApiRelTime = ZERO


# -- Participants -----------------------------------------------------------


class Group(Resource):
    path = 'groups'
    display_fields = ('id', 'name', 'type', 'hidden')

    id: Identifier
    icpc_id: str | None = None
    name: str
    type: str | None = None
    hidden: bool = False


class Organization(Resource):
    path = 'organizations'
    display_fields = ('id', 'name', 'formal_name', 'country')

    id: Identifier
    icpc_id: str | None = None
    name: str
    formal_name: str | None = None
    country: Annotated[str | None, Field(description='ISO 3166-1 alpha-3 country code.')] = None
    url: str | None = None
    twitter_hashtag: str | None = None


class Team(Resource):
    path = 'teams'
    display_fields = ('id', 'name', 'display_name')

    id: Identifier
    icpc_id: str | None = None
    name: str
    display_name: str | None = None
    group_ids: list[Identifier] = []
    organization_id: Identifier | None = None


class Account(Resource):
    path = 'accounts'
    display_fields = ('id', 'username', 'type', 'team_id')

    id: Identifier
    username: str
    type: Annotated[str | None, Field(description='Account role: team, judge, admin, analyst or staff.')] = None
    ip: str | None = None
    team_id: Identifier | None = None
    person_id: Identifier | None = None


__all__ = [
    'Account',
    'ApiErrorPayload',
    'CCSBaseModel',
    'Clarification',
    'Contest',
    'FileReference',
    'Group',
    'Judgement',
    'JudgementType',
    'Language',
    'Organization',
    'Problem',
    'Resource',
    'Submission',
    'Submittable',
    'Team',
]
