from __future__ import annotations

import asyncio
import base64
import io
import ssl
import zipfile

import httpx
import pytest

from ccsclient.config import Settings
from ccsclient.interactor import (
    MOCK_BASE_URL,
    AuthenticationError,
    CCSClient,
    CCSClientError,
    Clarification,
    DecodeError,
    ErrorKind,
    Judgement,
    LocalFileReference,
    NotFoundError,
    StructuralError,
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


def test_connect_sends_basic_auth(contest_routes) -> None:
    async def scenario() -> None:
        transport, calls = create_mock_transport(contest_routes)

        async with await CCSClient.connect(MOCK_BASE_URL, 'admin', 's3cret', 'demo', transport=transport) as client:
            assert client.contest_id == 'demo'

        expected = 'Basic ' + base64.b64encode(b'admin:s3cret').decode()
        assert calls[0].headers['authorization'] == expected
        assert calls[0].url.path == '/api/contests/demo'

    asyncio.run(scenario())


def test_connect_without_credentials_sends_no_auth(contest_routes) -> None:
    async def scenario() -> None:
        transport, calls = create_mock_transport(contest_routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport):
            pass

        assert 'authorization' not in calls[0].headers

    asyncio.run(scenario())


def test_connect_unknown_contest_fails() -> None:
    async def scenario() -> None:
        transport, calls = create_mock_transport({})

        with pytest.raises(NotFoundError) as excinfo:
            await CCSClient.connect(MOCK_BASE_URL, 'admin', 's3cret', 'nope', transport=transport)

        assert str(excinfo.value).startswith("could not find contest 'nope'")
        assert excinfo.value.status_code == 404
        assert len(calls) == 1

    asyncio.run(scenario())


def test_connect_rejected_credentials(contest_routes) -> None:
    async def scenario() -> None:
        transport, _ = create_mock_transport({'contests/demo': (401, 'Unauthorized')})

        with pytest.raises(AuthenticationError, match='request not authorized'):
            await CCSClient.connect(MOCK_BASE_URL, 'admin', 'wrong', 'demo', transport=transport)

    asyncio.run(scenario())


def test_connect_requires_contest_id() -> None:
    async def scenario() -> None:
        transport, calls = create_mock_transport({})

        with pytest.raises(ValueError, match='not bound to a contest'):
            await CCSClient.connect(MOCK_BASE_URL, transport=transport)

        assert calls == []

    asyncio.run(scenario())


@pytest.mark.parametrize('base_url', ['https://ccs.local/api', 'https://ccs.local/api/', 'https://ccs.local/api///'])
def test_base_url_is_normalized(base_url: str) -> None:
    async def scenario() -> None:
        transport, calls = create_mock_transport({'contests': [make_contest()]})

        async with CCSClient(base_url, transport=transport) as client:
            assert client.base_url == 'https://ccs.local/api/'
            await client.contests()

        assert str(calls[0].url) == 'https://ccs.local/api/contests'

    asyncio.run(scenario())


def _ssl_context(client: CCSClient) -> ssl.SSLContext:
    return client._client._transport._pool._ssl_context


def test_certificates_are_verified_by_default() -> None:
    async def scenario() -> None:
        async with CCSClient('https://ccs.example/api') as client:
            context = _ssl_context(client)
            assert context.verify_mode == ssl.CERT_REQUIRED
            assert context.check_hostname is True

    asyncio.run(scenario())


def test_insecure_disables_certificate_checks() -> None:
    async def scenario() -> None:
        async with CCSClient('https://ccs.example/api', insecure=True) as client:
            context = _ssl_context(client)
            assert context.verify_mode == ssl.CERT_NONE
            assert context.check_hostname is False

    asyncio.run(scenario())


def test_from_settings_passes_insecure_through() -> None:
    async def scenario() -> None:
        settings = Settings(base_url='https://ccs.example/api', insecure=True)

        async with await CCSClient.from_settings(settings) as client:
            assert _ssl_context(client).verify_mode == ssl.CERT_NONE

    asyncio.run(scenario())


def test_cancelled_connect_closes_client(monkeypatch: pytest.MonkeyPatch) -> None:
    async def scenario() -> None:
        started = asyncio.Event()
        closed: list[str] = []
        original_aclose = CCSClient.aclose

        async def recording_aclose(self: CCSClient) -> None:
            closed.append(self.contest_id)
            await original_aclose(self)

        async def stalled(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.Event().wait()
            return httpx.Response(200)

        monkeypatch.setattr(CCSClient, 'aclose', recording_aclose)
        task = asyncio.create_task(CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=httpx.MockTransport(stalled)))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert closed == ['demo']

    asyncio.run(scenario())


def test_client_rejects_transport_and_http_client() -> None:
    with pytest.raises(ValueError, match='not both'):
        CCSClient(MOCK_BASE_URL, transport=httpx.MockTransport(lambda request: httpx.Response(200)), http_client=httpx.AsyncClient())


def test_bind_returns_new_client_and_leaves_original_unbound() -> None:
    async def scenario() -> None:
        transport, calls = create_mock_transport(
            {
                'contests': [make_contest(), make_contest(contest_id='other')],
                'contests/other': make_contest(contest_id='other'),
                'contests/other/problems': [make_problem()],
            }
        )

        async with CCSClient(MOCK_BASE_URL, transport=transport) as client:
            contests = await client.contests()
            bound = await client.bind(contests[1].id)

            assert bound.contest_id == 'other'
            assert client.contest_id == ''
            assert [problem.id for problem in await bound.problems()] == ['hello']

            with pytest.raises(ValueError):
                await client.problems()

        assert [call.url.path for call in calls] == ['/api/contests', '/api/contests/other', '/api/contests/other/problems']

    asyncio.run(scenario())


def test_bind_unknown_contest_fails() -> None:
    async def scenario() -> None:
        transport, _ = create_mock_transport({})

        async with CCSClient(MOCK_BASE_URL, transport=transport) as client:
            with pytest.raises(NotFoundError, match="could not find contest 'missing'"):
                await client.bind('missing')
            assert client.contest_id == ''

    asyncio.run(scenario())


def test_closing_bound_sibling_keeps_shared_pool_open() -> None:
    async def scenario() -> None:
        transport, _ = create_mock_transport({'contests': [make_contest()], 'contests/demo': make_contest()})

        async with CCSClient(MOCK_BASE_URL, transport=transport) as client:
            bound = await client.bind('demo')
            await bound.aclose()

            contests = await client.contests()
            assert [contest.id for contest in contests] == ['demo']

    asyncio.run(scenario())


def test_contest_of_bound_client(contest_routes) -> None:
    async def scenario() -> None:
        transport, _ = create_mock_transport(contest_routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            contest = await client.contest()

        assert contest == make_contest()

    asyncio.run(scenario())


def test_accessor_errors_are_wrapped(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['contests/demo/problems'] = (500, '{"code": 500, "message": "database down"}')
        transport, _ = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            with pytest.raises(CCSClientError) as excinfo:
                await client.problems()

        error = excinfo.value
        assert error.kind is ErrorKind.SERVER
        assert error.status_code == 500
        assert str(error).startswith('could not retrieve problems: invalid status code received: 500')
        assert 'database down (error code 500)' in str(error)
        assert isinstance(error.__cause__, CCSClientError)

    asyncio.run(scenario())


def test_by_id_not_found_is_wrapped(contest_routes) -> None:
    async def scenario() -> None:
        transport, _ = create_mock_transport(contest_routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            with pytest.raises(NotFoundError, match="could not retrieve team '42'"):
                await client.team_by_id('42')

    asyncio.run(scenario())


def test_partial_results_survive_wrapping(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['contests/demo/teams'] = [make_team().model_dump(mode='json'), {'id': '2'}]
        transport, _ = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            with pytest.raises(DecodeError) as excinfo:
                await client.teams()

        assert str(excinfo.value).startswith('could not retrieve teams: element 1 of contests/demo/teams')
        assert excinfo.value.partial == [make_team()]

    asyncio.run(scenario())


def test_structural_error_is_wrapped(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['contests/demo/judgements/7'] = [make_judgement(judgement_id='7'), make_judgement(judgement_id='8')]
        transport, _ = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            with pytest.raises(StructuralError, match="could not retrieve judgement '7': expected exactly 1 object, got 2"):
                await client.judgement_by_id('7')

    asyncio.run(scenario())


@pytest.mark.parametrize(
    ('method', 'object_id', 'path', 'value'),
    [
        ('problem_by_id', 'hello', 'problems/hello', make_problem()),
        ('submission_by_id', '100', 'submissions/100', make_submission()),
        ('judgement_by_id', '200', 'judgements/200', make_judgement()),
        ('clarification_by_id', '300', 'clarifications/300', make_clarification()),
        ('team_by_id', '1', 'teams/1', make_team()),
    ],
)
def test_by_id_accessors(contest_routes, method: str, object_id: str, path: str, value) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes[f'contests/demo/{path}'] = value
        transport, calls = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            result = await getattr(client, method)(object_id)

        assert result == value
        assert calls[-1].url.path == f'/api/contests/demo/{path}'

    asyncio.run(scenario())


def test_singletons(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['contests/demo/account'] = {'id': 'team1', 'username': 'team1', 'type': 'team', 'team_id': '1'}
        routes['contests/demo/scoreboard'] = make_scoreboard()
        routes['contests/demo/state'] = make_state()
        transport, calls = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, 'team1', 'pw', 'demo', transport=transport) as client:
            account = await client.account()
            scoreboard = await client.scoreboard()
            state = await client.state()

        assert account.team_id == '1'
        assert scoreboard.event_id == 'ev-42'
        assert state.running
        assert [call.url.path for call in calls[1:]] == [
            '/api/contests/demo/account',
            '/api/contests/demo/scoreboard',
            '/api/contests/demo/state',
        ]

    asyncio.run(scenario())


def test_own_account_failure_is_wrapped(contest_routes) -> None:
    async def scenario() -> None:
        transport, _ = create_mock_transport(contest_routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            with pytest.raises(NotFoundError, match='could not retrieve own account'):
                await client.account()

    asyncio.run(scenario())


def test_generic_accessors(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['contests/demo/judgements'] = [make_judgement(), make_judgement(judgement_id='201', verdict=None)]
        transport, _ = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            judgements = await client.list_objects(Judgement)

        assert [judgement.judgement_type_id for judgement in judgements] == ['AC', None]

    asyncio.run(scenario())


def test_post_clarification(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['POST contests/demo/clarifications'] = make_clarification(clarification_id='301')
        transport, calls = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            result = await client.post_clarification('hello', 'Is n > 0?')

        assert result.id == '301'
        assert calls[-1].method == 'POST'
        assert calls[-1].json() == {'problem_id': 'hello', 'text': 'Is n > 0?'}

    asyncio.run(scenario())


def test_post_general_clarification_omits_problem(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['POST contests/demo/clarifications'] = make_clarification(problem_id=None)
        transport, calls = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            await client.post_clarification('', 'When does the contest end?')

        assert calls[-1].json() == {'text': 'When does the contest end?'}

    asyncio.run(scenario())


def test_post_submission_uploads_zip_bundle(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['POST contests/demo/submissions'] = make_submission(submission_id='101')
        transport, calls = create_mock_transport(routes)

        bundle = LocalFileReference()
        bundle.add_string('sample.cpp', 'int main() { return 0; }')

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            result = await client.post_submission('hello', 'cpp', '', bundle)

        assert result.id == '101'
        call = calls[-1]
        assert call.url.path == '/api/contests/demo/submissions'
        assert call.headers['content-type'] == 'application/json'
        body = call.json()
        assert body['problem_id'] == 'hello'
        assert body['language_id'] == 'cpp'
        assert 'entry_point' not in body
        assert body['files'][0]['mime'] == 'application/zip'
        with zipfile.ZipFile(io.BytesIO(base64.b64decode(body['files'][0]['data']))) as archive:
            assert archive.namelist() == ['sample.cpp']
            assert archive.read('sample.cpp') == b'int main() { return 0; }'

    asyncio.run(scenario())


def test_post_submission_with_entry_point(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['POST contests/demo/submissions'] = make_submission(language_id='java')
        transport, calls = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            await client.post_submission('hello', 'java', 'Main', LocalFileReference([('Main.java', b'class Main {}')]))

        assert calls[-1].json()['entry_point'] == 'Main'

    asyncio.run(scenario())


def test_submit_posts_to_value_collection(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['POST contests/demo/clarifications'] = make_clarification(clarification_id='302')
        transport, calls = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            reply = await client.submit(Clarification(reply_to_id='300', to_team_id='1', text='Yes.'))

        assert isinstance(reply, Clarification)
        assert reply.id == '302'
        assert calls[-1].json() == {'to_team_id': '1', 'reply_to_id': '300', 'text': 'Yes.'}

    asyncio.run(scenario())


def test_post_failure_is_wrapped(contest_routes) -> None:
    async def scenario() -> None:
        transport, _ = create_mock_transport(contest_routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            with pytest.raises(NotFoundError, match='could not post clarification'):
                await client.post_clarification('hello', 'Anyone there?')

    asyncio.run(scenario())


def test_concurrent_calls_share_one_client(contest_routes) -> None:
    async def scenario() -> None:
        routes = dict(contest_routes)
        routes['contests/demo/problems'] = [make_problem()]
        routes['contests/demo/teams'] = [make_team(), make_team(team_id='2', name='Team Two')]
        routes['contests/demo/scoreboard'] = make_scoreboard()
        transport, calls = create_mock_transport(routes)

        async with await CCSClient.connect(MOCK_BASE_URL, contest_id='demo', transport=transport) as client:
            problems, teams, scoreboard = await asyncio.gather(client.problems(), client.teams(), client.scoreboard())

        assert len(problems) == 1
        assert len(teams) == 2
        assert scoreboard.row_for_team('2') is not None
        assert len(calls) == 4

    asyncio.run(scenario())


def test_from_settings_without_contest_is_unbound() -> None:
    async def scenario() -> None:
        settings = Settings(base_url='https://ccs.example/api', username='admin', password='pw')

        async with await CCSClient.from_settings(settings) as client:
            assert client.contest_id == ''
            assert client.base_url == 'https://ccs.example/api/'

    asyncio.run(scenario())


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv('CCS_BASE_URL', 'https://ccs.example/api')
    monkeypatch.setenv('CCS_USERNAME', 'admin')
    monkeypatch.setenv('CCS_PASSWORD', 'pw')
    monkeypatch.setenv('CCS_CONTEST_ID', 'finals')
    monkeypatch.setenv('CCS_INSECURE', 'yes')
    monkeypatch.setenv('CCS_TIMEOUT', '2.5')

    settings = Settings()

    assert settings.base_url == 'https://ccs.example/api/'
    assert settings.has_credentials
    assert settings.contest_id == 'finals'
    assert settings.insecure is True
    assert settings.timeout == 2.5


def test_settings_defaults() -> None:
    settings = Settings()

    assert settings.base_url == 'http://localhost/api/'
    assert not settings.has_credentials
    assert settings.insecure is False
    assert settings.timeout is None
