"""Async contest session on top of :class:`~ccsclient.interactor.engine.ApiEngine`.

:class:`CCSClient` binds a base URL, optional HTTP basic credentials and an
optional contest id, and offers one typed accessor per resource type.  The
accessors are thin: they call the engine and, on failure, re-raise the same
kind of error with a short description of what was being attempted, so
``except NotFoundError`` keeps working while the message says which call
failed.

A client bound to a contest is only ever handed out after the contest was
fetched successfully (see :meth:`CCSClient.connect` and
:meth:`CCSClient.bind`).
"""

from __future__ import annotations

from typing import TypeVar

import httpx

from ..config import Settings
from ..config import settings as default_settings
from .codecs import LocalFileReference
from .engine import ApiEngine, ResourceT
from .errors import CCSClientError
from .models import (
    Account,
    Clarification,
    Contest,
    FileReference,
    Group,
    Judgement,
    JudgementType,
    Language,
    Organization,
    Problem,
    Submission,
    Submittable,
    Team,
)
from .scoreboard import Scoreboard, State

SubmittableT = TypeVar('SubmittableT', bound=Submittable)


class CCSClient:
    """High-level helper for the CCS REST API, optionally bound to one contest."""

    def __init__(
        self,
        base_url: str,
        username: str = '',
        password: str = '',
        *,
        contest_id: str = '',
        insecure: bool = False,
        timeout: float | httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if http_client is not None and transport is not None:
            msg = 'Pass either `transport` or a pre-configured `http_client`, not both.'
            raise ValueError(msg)

        self._base_url = base_url.rstrip('/') + '/'
        self._own_client = http_client is None
        if http_client is None:
            auth = httpx.BasicAuth(username, password) if username and password else None
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=auth,
                verify=not insecure,
                timeout=timeout,
                transport=transport,
            )
        else:
            self._client = http_client
        self._engine = ApiEngine(self._client, contest_id)

    @classmethod
    async def connect(
        cls,
        base_url: str,
        username: str = '',
        password: str = '',
        contest_id: str = '',
        *,
        insecure: bool = False,
        timeout: float | httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> CCSClient:
        """Create a client bound to ``contest_id`` after checking the contest exists.

        If the contest cannot be fetched the client is closed and the error is
        raised, so no unusable client is ever returned.
        """

        client = cls(
            base_url,
            username,
            password,
            contest_id=contest_id,
            insecure=insecure,
            timeout=timeout,
            transport=transport,
        )
        try:
            await client._validate_contest()
        except BaseException:
            # Cancellation included: the half-built client owns its pool.
            await client.aclose()
            raise
        return client

    @classmethod
    async def from_settings(cls, settings: Settings | None = None) -> CCSClient:
        """Build a client from :class:`~ccsclient.config.Settings`, bound when a contest id is configured."""

        settings = settings or default_settings
        if settings.contest_id:
            return await cls.connect(
                settings.base_url,
                settings.username,
                settings.password,
                settings.contest_id,
                insecure=settings.insecure,
                timeout=settings.timeout,
            )
        return cls(
            settings.base_url,
            settings.username,
            settings.password,
            insecure=settings.insecure,
            timeout=settings.timeout,
        )

    async def bind(self, contest_id: str) -> CCSClient:
        """Return a client for ``contest_id`` that shares this client's connections.

        The contest is fetched first; when that fails the error propagates and
        nothing is returned.  ``self`` is left unchanged and keeps ownership of
        the connection pool.
        """

        bound = CCSClient(self._base_url, contest_id=contest_id, http_client=self._client)
        await bound._validate_contest()
        return bound

    async def __aenter__(self) -> CCSClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def contest_id(self) -> str:
        return self._engine.contest_id

    @property
    def engine(self) -> ApiEngine:
        return self._engine

    # -- Contests ---------------------------------------------------------

    async def contests(self) -> list[Contest]:
        return await self._list(Contest, 'could not retrieve contests')

    async def contest_by_id(self, contest_id: str) -> Contest:
        return await self._get(Contest, contest_id, f'could not retrieve contest {contest_id!r}')

    async def contest(self) -> Contest:
        """The contest this client is bound to."""

        return await self.contest_by_id(self._require_contest())

    # -- Contest scoped collections ---------------------------------------

    async def problems(self) -> list[Problem]:
        return await self._list(Problem, 'could not retrieve problems')

    async def problem_by_id(self, problem_id: str) -> Problem:
        return await self._get(Problem, problem_id, f'could not retrieve problem {problem_id!r}')

    async def submissions(self) -> list[Submission]:
        return await self._list(Submission, 'could not retrieve submissions')

    async def submission_by_id(self, submission_id: str) -> Submission:
        return await self._get(Submission, submission_id, f'could not retrieve submission {submission_id!r}')

    async def judgements(self) -> list[Judgement]:
        return await self._list(Judgement, 'could not retrieve judgements')

    async def judgement_by_id(self, judgement_id: str) -> Judgement:
        return await self._get(Judgement, judgement_id, f'could not retrieve judgement {judgement_id!r}')

    async def judgement_types(self) -> list[JudgementType]:
        return await self._list(JudgementType, 'could not retrieve judgement types')

    async def judgement_type_by_id(self, judgement_type_id: str) -> JudgementType:
        return await self._get(JudgementType, judgement_type_id, f'could not retrieve judgement type {judgement_type_id!r}')

    async def clarifications(self) -> list[Clarification]:
        return await self._list(Clarification, 'could not retrieve clarifications')

    async def clarification_by_id(self, clarification_id: str) -> Clarification:
        return await self._get(Clarification, clarification_id, f'could not retrieve clarification {clarification_id!r}')

    async def languages(self) -> list[Language]:
        return await self._list(Language, 'could not retrieve languages')

    async def language_by_id(self, language_id: str) -> Language:
        return await self._get(Language, language_id, f'could not retrieve language {language_id!r}')

    async def groups(self) -> list[Group]:
        return await self._list(Group, 'could not retrieve groups')

    async def group_by_id(self, group_id: str) -> Group:
        return await self._get(Group, group_id, f'could not retrieve group {group_id!r}')

    async def organizations(self) -> list[Organization]:
        return await self._list(Organization, 'could not retrieve organizations')

    async def organization_by_id(self, organization_id: str) -> Organization:
        return await self._get(Organization, organization_id, f'could not retrieve organization {organization_id!r}')

    async def teams(self) -> list[Team]:
        return await self._list(Team, 'could not retrieve teams')

    async def team_by_id(self, team_id: str) -> Team:
        return await self._get(Team, team_id, f'could not retrieve team {team_id!r}')

    async def accounts(self) -> list[Account]:
        return await self._list(Account, 'could not retrieve accounts')

    async def account_by_id(self, account_id: str) -> Account:
        return await self._get(Account, account_id, f'could not retrieve account {account_id!r}')

    # -- Singletons -------------------------------------------------------

    async def account(self) -> Account:
        """The account the credentials belong to."""

        path = self._engine.scoped_path('account')
        try:
            return await self._engine.retrieve_one(Account, path)
        except CCSClientError as exc:
            raise exc.wrap('could not retrieve own account') from exc

    async def scoreboard(self) -> Scoreboard:
        return await self._get(Scoreboard, '', 'could not retrieve scoreboard')

    async def state(self) -> State:
        return await self._get(State, '', 'could not retrieve contest state')

    # -- Generic access ---------------------------------------------------

    async def list_objects(self, model: type[ResourceT]) -> list[ResourceT]:
        return await self._list(model, f'could not retrieve {model.path}')

    async def get_object(self, model: type[ResourceT], object_id: str = '') -> ResourceT:
        return await self._get(model, object_id, f'could not retrieve {model.path} {object_id!r}')

    # -- Posting ----------------------------------------------------------

    async def post_clarification(self, problem_id: str, text: str) -> Clarification:
        clarification = Clarification(problem_id=problem_id or None, text=text)
        return await self._post(Clarification, clarification, 'could not post clarification')

    async def post_submission(
        self,
        problem_id: str,
        language_id: str,
        entry_point: str,
        files: LocalFileReference,
    ) -> Submission:
        submission = Submission(
            problem_id=problem_id,
            language_id=language_id,
            entry_point=entry_point or None,
            files=[FileReference(mime='application/zip', data=files)],
        )
        return await self._post(Submission, submission, 'could not post submission')

    async def submit(self, value: SubmittableT) -> SubmittableT:
        """POST a caller-built value to its own collection and decode the reply as the same type."""

        model = type(value)
        return await self._post(model, value, f'could not submit {model.__name__.lower()}')

    # -- Internal helpers -------------------------------------------------

    def _require_contest(self) -> str:
        if not self.contest_id:
            msg = 'This client is not bound to a contest.'
            raise ValueError(msg)
        return self.contest_id

    async def _validate_contest(self) -> None:
        contest_id = self._require_contest()
        try:
            await self._engine.get_object(Contest, contest_id)
        except CCSClientError as exc:
            raise exc.wrap(f'could not find contest {contest_id!r}') from exc

    async def _list(self, model: type[ResourceT], context: str) -> list[ResourceT]:
        try:
            return await self._engine.list_objects(model)
        except CCSClientError as exc:
            raise exc.wrap(context) from exc

    async def _get(self, model: type[ResourceT], object_id: str, context: str) -> ResourceT:
        try:
            return await self._engine.get_object(model, object_id)
        except CCSClientError as exc:
            raise exc.wrap(context) from exc

    async def _post(self, model: type[ResourceT], value: Submittable, context: str) -> ResourceT:
        try:
            return await self._engine.post_object(model, value)
        except CCSClientError as exc:
            raise exc.wrap(context) from exc


__all__ = ['CCSClient']
