import pytest

from apichain.exceptions import ChainExecutionError
from apichain.models import ApiRequest, ChainRequest, LogKind, SessionStatus
from apichain.status import session_status


def test_single_request(server, executor):
    response = executor.run_single(
        ApiRequest(
            method="POST",
            url=f"{server}/users",
            data={"name": "Ann"},
            expect={"status": 201, "contentType": "application/json", "body": {"name": "Ann"}},
        )
    )

    assert response.result.ok is True
    assert response.result.body == {"id": 1, "name": "Ann"}


def test_login_create_fetch(server, executor, store):
    response = executor.run_chain(
        ChainRequest(
            session_id="integration",
            chain=[
                {"name": "login", "method": "POST", "url": f"{server}/login", "extract": {"token": "token"}},
                {
                    "name": "create",
                    "method": "POST",
                    "url": f"{server}/users",
                    "data": {"name": "Bob"},
                    "expect": {"status": 201},
                    "extract": {"userId": "id"},
                },
                {
                    "name": "fetch",
                    "url": f"{server}/users/{{{{create.userId}}}}",
                    "headers": {"Authorization": "Bearer {{login.token}}"},
                    "expect": {"status": 200, "body": {"id": 1, "name": "Bob"}, "bodyRegex": '"name":\\s*"Bob"'},
                },
            ],
        )
    )

    assert [result.ok for result in response.results] == [True, True, True]
    assert store.get("integration").status == SessionStatus.COMPLETED

    status = session_status(store, "integration", filter_by_type="chain-step")
    assert status.summary.successful_requests == 3
    assert status.logs[-1]["request"]["url"] == f"{server}/users/1"


def test_failed_expectation_continues(server, executor):
    response = executor.run_chain(
        ChainRequest(
            chain=[
                {"name": "anonymous", "url": f"{server}/users/1", "expect": {"status": 200}},
                {"name": "text", "url": f"{server}/text", "expect": {"body": "plain pong", "contentType": "text/plain"}},
            ]
        )
    )

    first, second = response.results
    assert first.ok is False
    assert first.status == 401
    assert second.ok is True
    assert second.body == "plain pong"


def test_string_body_and_user_agent(server, executor, settings):
    response = executor.run_single(ApiRequest(method="PUT", url=f"{server}/echo", data="hello"))

    echoed = response.result.body
    assert echoed["method"] == "PUT"
    assert echoed["content_type"] == "text/plain"
    assert echoed["text"] == "hello"
    assert echoed["user_agent"] == settings.user_agent


def test_redirect_not_followed(server, executor):
    response = executor.run_single(ApiRequest(url=f"{server}/redirect", expect={"status": 302}))

    assert response.result.ok is True


def test_unreachable_aborts_chain(server, executor, store):
    with pytest.raises(ChainExecutionError) as exc_info:
        executor.run_chain(
            ChainRequest(
                session_id="unreachable",
                chain=[
                    {"name": "dead", "url": "http://localhost:1/nothing", "expect": {"status": 200}},
                    {"name": "never", "url": f"{server}/text"},
                ],
                timeout=2000,
            )
        )

    assert exc_info.value.step == "dead"

    session = store.get("unreachable")
    assert session.status == SessionStatus.FAILED
    assert [entry.kind for entry in session.logs] == [LogKind.CHAIN_STEP]
