import json
from pathlib import Path

import httpx
import pytest

from apichain.exceptions import ChainExecutionError
from apichain.models import ChainRequest
from apichain.report import ReportFailure, ReportResult, build_report_data, generate_report
from apichain.status import NotFoundResult


def handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "unreachable.invalid":
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(
        200,
        content=b'{"id":7,"token":"secret"}',
        headers={"Content-Type": "application/json", "Location": "/users/7"},
    )


@pytest.fixture
def session_id(make_executor):
    executor = make_executor(handler)
    executor.run_chain(
        ChainRequest(
            session_id="report",
            chain=[
                {"name": "create", "method": "POST", "url": "http://api.local/users?debug=1", "data": {"name": "Ann"}, "expect": {"status": 200}},
                {"name": "fetch", "url": "http://api.local/users/{{create.body.id}}", "expect": {"body": {"id": 7}}},
            ],
        )
    )
    return "report"


def test_json_report(store, settings, session_id):
    result = generate_report(store, session_id, "run/report.json", settings.report_dir, title="Users")

    assert isinstance(result, ReportResult)
    assert result.session_summary.request_count == 2
    assert result.session_summary.success_rate == 1.0
    assert result.report_url.startswith("file://")

    path = settings.report_dir / "run" / "report.json"
    assert result.report_path == str(path.resolve())
    assert result.file_size == path.stat().st_size

    report = json.loads(path.read_text(encoding="utf-8"))
    assert report["title"] == "Users"
    assert report["session"]["sessionId"] == "report"
    assert report["summary"]["totalRequests"] == 2
    assert report["summary"]["successRate"] == 1.0
    assert report["summary"]["validationRate"] == 1.0
    assert [log["kind"] for log in report["logs"]] == ["chain-step", "chain-step", "chain-summary"]
    assert report["logs"][1]["request"]["url"] == "http://api.local/users/7"
    assert report["timing"]["totalRequests"] == 2
    assert report["metadata"]["includeTiming"] is True


def test_json_report_without_payloads(store, session_id):
    report = build_report_data(store, session_id, include_request_data=False, include_response_data=False, include_timing=False)

    text = json.dumps(report)
    assert "secret" not in text
    assert report["logs"][0]["request"]["hasData"] is True
    assert report["logs"][0]["response"]["hasBody"] is True
    assert report["timing"] is None


def test_har_report(store, settings, session_id):
    result = generate_report(store, session_id, "report.har", settings.report_dir)

    assert isinstance(result, ReportResult)
    har = json.loads((settings.report_dir / "report.har").read_text(encoding="utf-8"))
    assert har["log"]["version"] == "1.2"
    assert har["log"]["creator"]["name"] == "apichain"

    entries = har["log"]["entries"]
    assert len(entries) == 2

    first = entries[0]
    assert first["comment"] == "create"
    assert first["request"]["method"] == "POST"
    assert first["request"]["queryString"] == [{"name": "debug", "value": "1"}]
    assert first["request"]["postData"]["text"] == '{"name":"Ann"}'
    assert first["response"]["status"] == 200
    assert first["response"]["content"]["mimeType"] == "application/json"
    assert first["response"]["content"]["text"] == '{"id":7,"token":"secret"}'
    assert first["response"]["redirectURL"] == "/users/7"


def test_har_skips_requests_without_response(store, settings, make_executor):
    executor = make_executor(handler)
    with pytest.raises(ChainExecutionError):
        executor.run_chain(
            ChainRequest(
                session_id="broken",
                chain=[
                    {"name": "ok", "url": "http://api.local/"},
                    {"name": "down", "url": "http://unreachable.invalid/"},
                ],
            )
        )

    generate_report(store, "broken", "broken.har", settings.report_dir)

    har = json.loads((settings.report_dir / "broken.har").read_text(encoding="utf-8"))
    assert [entry["comment"] for entry in har["log"]["entries"]] == ["ok"]


def test_unknown_session(store, settings):
    store.get_or_create("known")

    result = generate_report(store, "missing", "x.json", settings.report_dir)

    assert isinstance(result, NotFoundResult)
    assert result.available_sessions == ["known"]
    assert not (settings.report_dir / "x.json").exists()


def test_write_failure(store, settings, session_id, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    result = generate_report(store, session_id, "report.json", blocker)

    assert isinstance(result, ReportFailure)
    assert result.error.startswith("Failed to generate report:")


def test_absolute_path_stays_under_report_dir(store, settings, session_id, tmp_path):
    outside = tmp_path / "outside" / "escaped.json"

    result = generate_report(store, session_id, str(outside), settings.report_dir)

    assert isinstance(result, ReportResult)
    assert not outside.exists()
    assert Path(result.report_path).is_relative_to(settings.report_dir.resolve())
    assert Path(result.report_path).name == "escaped.json"


def test_parent_traversal_rejected(store, settings, session_id, tmp_path):
    result = generate_report(store, session_id, "../escaped.json", settings.report_dir)

    assert isinstance(result, ReportFailure)
    assert "escapes the report directory" in result.error
    assert not (tmp_path / "escaped.json").exists()
