from unittest.mock import MagicMock

import pytest

from studio_worker.kie import KieClient, ProviderResponse, build_url


class TestBuildUrl:
    def test_joins_path_onto_base(self):
        assert build_url("/api/v1/jobs/createTask", "https://api.kie.ai") == "https://api.kie.ai/api/v1/jobs/createTask"

    def test_adds_missing_slash(self):
        assert build_url("api/v1/x", "https://api.kie.ai/") == "https://api.kie.ai/api/v1/x"

    def test_absolute_url_passes_through(self):
        assert build_url("https://other.host/a?b=1") == "https://other.host/a?b=1"

    def test_doubled_base_is_collapsed(self):
        assert build_url("https://api.kie.aihttps://api.kie.ai/api/v1/x") == "https://api.kie.ai/api/v1/x"

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty_endpoint_raises(self, value):
        with pytest.raises(ValueError):
            build_url(value)


def _http_response(status, body=None, json_error=False):
    response = MagicMock()
    response.status_code = status
    if json_error:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    return response


class TestKieClient:
    def test_create_task_posts_json_with_bearer(self):
        session = MagicMock()
        session.request.return_value = _http_response(200, {"code": 200, "data": {"taskId": "t1"}})
        client = KieClient("secret", session=session, base_url="https://api.kie.ai", timeout=5)

        result = client.create_task("/api/v1/jobs/createTask", {"model": "m"})

        assert result.ok and result.payload["data"]["taskId"] == "t1"
        args, kwargs = session.request.call_args
        assert args == ("POST", "https://api.kie.ai/api/v1/jobs/createTask")
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["json"] == {"model": "m"}
        assert kwargs["timeout"] == 5

    def test_get_task_passes_task_id_as_query(self):
        session = MagicMock()
        session.request.return_value = _http_response(200, {"code": 200, "data": {}})
        client = KieClient("secret", session=session, base_url="https://api.kie.ai")

        client.get_task("/api/v1/jobs/recordInfo", "abc")

        args, kwargs = session.request.call_args
        assert args == ("GET", "https://api.kie.ai/api/v1/jobs/recordInfo")
        assert kwargs["params"] == {"taskId": "abc"}

    def test_non_json_body_is_kept_as_none(self):
        session = MagicMock()
        session.request.return_value = _http_response(502, json_error=True)
        client = KieClient("secret", session=session)

        result = client.create_task("/x", {})

        assert result.status_code == 502
        assert not result.ok
        assert not result.is_json


def test_provider_response_ok_range():
    assert ProviderResponse(204, {}).ok
    assert not ProviderResponse(301, {}).ok
    assert not ProviderResponse(404, {}).ok


def test_without_session_each_call_uses_requests_request(monkeypatch):
    sender = MagicMock(return_value=_http_response(200, {"code": 200, "data": {}}))
    monkeypatch.setattr("studio_worker.kie.requests.request", sender)
    client = KieClient("secret", base_url="https://api.kie.ai")

    client.get_task("/api/v1/jobs/recordInfo", "abc")

    assert client.session is None
    args, kwargs = sender.call_args
    assert args == ("GET", "https://api.kie.ai/api/v1/jobs/recordInfo")
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
