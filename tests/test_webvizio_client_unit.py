import base64
import json

import pytest
import requests

from config import DEFAULT_BASE_URL, WebvizioConfig
from core import GenericFailure, NoProjectSelected, NormalizedApiError, Project, TasksFound
from infrastructure.webvizio import NETWORK_ERROR_MESSAGE, STATUS_MESSAGES, WebvizioClient


class DummyResponse:
    def __init__(self, status_code=200, payload=None, content=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        if content is None:
            content = b"" if payload is None else json.dumps(payload).encode("utf-8")
        self.content = content
        self.text = content.decode("utf-8", errors="replace")

    def json(self):
        return json.loads(self.text)


class DummySession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp

    def get(self, url, **kwargs):
        return self._next("get", url, kwargs)

    def post(self, url, **kwargs):
        return self._next("post", url, kwargs)

    def close(self):
        self.closed = True


def _client(*responses, **cfg):
    session = DummySession(responses)
    config = WebvizioConfig(api_key="secret-key", **cfg)
    return WebvizioClient(config, session=session), session


def test_get_projects_sends_auth_header_and_timeout():
    client, session = _client(DummyResponse(200, [{"uuid": "p-1", "name": "Site"}, {"uuid": "p-2", "name": "App"}]))

    projects = client.get_projects()

    assert projects == [Project("p-1", "Site"), Project("p-2", "App")]
    method, url, kwargs = session.calls[0]
    assert method == "get"
    assert url == DEFAULT_BASE_URL + "projects"
    assert kwargs["headers"]["Authorization"] == "Bearer secret-key"
    assert kwargs["headers"]["Accept"] == "application/json"
    assert kwargs["timeout"] == 30
    assert kwargs["verify"] is True


def test_insecure_config_disables_verification_per_call():
    client, session = _client(DummyResponse(200, []), verify_tls=False)

    client.get_projects()

    assert session.calls[0][2]["verify"] is False


def test_empty_project_list_is_valid():
    client, _ = _client(DummyResponse(200, []))
    assert client.get_projects() == []


def test_empty_body_is_a_failure_even_on_200():
    client, _ = _client(DummyResponse(200, content=b""))

    with pytest.raises(GenericFailure, match="Failed to fetch projects"):
        client.get_projects()


@pytest.mark.parametrize("status", [401, 403, 404, 429, 500])
def test_fixed_status_messages(status):
    body = {"message": "server says no"}
    client, _ = _client(DummyResponse(status, body, reason="Whatever"))

    with pytest.raises(NormalizedApiError) as exc_info:
        client.get_current_project()

    err = exc_info.value
    assert err.code == status
    assert err.message == STATUS_MESSAGES[status]
    assert err.details == body


def test_unauthorized_message_text():
    client, _ = _client(DummyResponse(401, {"error": "bad key"}))

    with pytest.raises(NormalizedApiError) as exc_info:
        client.get_projects()

    assert exc_info.value.message == "Unauthorized: Invalid or missing API key"


@pytest.mark.parametrize(
    "status,body,reason,expected",
    [
        (502, {"message": "Upstream is down"}, "Bad Gateway", "Upstream is down"),
        (418, {"error": "I am a teapot"}, "I'm a teapot", "I am a teapot"),
        (503, None, "Service Unavailable", "HTTP 503: Service Unavailable"),
        (400, None, "", "HTTP 400"),
    ],
)
def test_other_statuses_use_body_or_generic_message(status, body, reason, expected):
    client, _ = _client(DummyResponse(status, body, reason=reason))

    with pytest.raises(NormalizedApiError) as exc_info:
        client.get_projects()

    assert exc_info.value.code == status
    assert exc_info.value.message == expected


def test_non_json_error_body_kept_as_text():
    client, _ = _client(DummyResponse(502, content=b"<html>gateway</html>", reason="Bad Gateway"))

    with pytest.raises(NormalizedApiError) as exc_info:
        client.get_projects()

    assert exc_info.value.details == "<html>gateway</html>"


def test_connection_failure_is_network_error():
    client, _ = _client(requests.ConnectionError("connection refused"))

    with pytest.raises(NormalizedApiError) as exc_info:
        client.get_projects()

    err = exc_info.value
    assert err.code == 0
    assert err.message == NETWORK_ERROR_MESSAGE
    assert err.details == {"originalError": "connection refused"}


def test_timeout_is_network_error():
    client, session = _client(requests.exceptions.ReadTimeout("read timed out (30s)"))

    with pytest.raises(NormalizedApiError) as exc_info:
        client.get_tasks()

    assert exc_info.value.code == 0
    assert session.calls[0][2]["timeout"] == 30


def test_unbuildable_request_is_construction_error():
    client, _ = _client(requests.exceptions.MissingSchema("Invalid URL 'projects': No scheme supplied"))

    with pytest.raises(NormalizedApiError) as exc_info:
        client.get_projects()

    err = exc_info.value
    assert err.code == -1
    assert err.message.startswith("Request Error: Invalid URL")
    assert "originalError" in err.details


def test_set_project_posts_identifier():
    client, session = _client(DummyResponse(200, {"success": True}))

    assert client.set_project("proj-123") is True
    method, url, kwargs = session.calls[0]
    assert method == "post"
    assert url.endswith("/set-project")
    assert kwargs["json"] == {"uuid": "proj-123"}


@pytest.mark.parametrize("payload,expected", [({"success": False}, False), (True, True), (False, False)])
def test_set_project_result_flag(payload, expected):
    client, _ = _client(DummyResponse(200, payload))
    assert client.set_project("proj-123") is expected


def test_set_project_empty_body_fails():
    client, _ = _client(DummyResponse(200, content=b""))

    with pytest.raises(GenericFailure, match="Failed to set project"):
        client.set_project("proj-123")


def test_get_tasks_returns_tasks():
    payload = [
        {
            "uuid": "t-1",
            "number": 12,
            "title": "Fix header",
            "priority": "high",
            "createdAt": "2025-01-02T10:00:00Z",
            "tags": ["ui"],
        }
    ]
    client, _ = _client(DummyResponse(200, payload))

    listing = client.get_tasks()

    assert isinstance(listing, TasksFound)
    assert listing.tasks[0].identifier == "t-1"
    assert listing.tasks[0].number == 12
    assert listing.tasks[0].tags == ("ui",)


def test_get_tasks_without_project_is_sentinel():
    client, _ = _client(DummyResponse(404, {"message": "Project not found"}))

    assert isinstance(client.get_tasks(), NoProjectSelected)


def test_get_tasks_other_not_found_propagates():
    client, _ = _client(DummyResponse(404, {"message": "Route missing"}))

    with pytest.raises(NormalizedApiError) as exc_info:
        client.get_tasks()

    assert exc_info.value.code == 404


def test_task_identifier_is_url_quoted():
    client, session = _client(DummyResponse(200, {"prompt": "Do it"}))

    assert client.get_task_prompt("a/b c") == "Do it"
    assert session.calls[0][1] == DEFAULT_BASE_URL + "task/a%2Fb%20c/prompt"


@pytest.mark.parametrize(
    "method,field,message",
    [
        ("get_task_description", "description", "Failed to get task description"),
        ("get_task_prompt", "prompt", "Failed to get task prompt"),
    ],
)
def test_missing_required_field_fails(method, field, message):
    client, _ = _client(DummyResponse(200, {"other": "x"}))

    with pytest.raises(GenericFailure, match=message):
        getattr(client, method)("t-1")


def test_get_task_description_path():
    client, session = _client(DummyResponse(200, {"description": "Button overlaps"}))

    assert client.get_task_description("t-1") == "Button overlaps"
    assert session.calls[0][1] == DEFAULT_BASE_URL + "task/t-1"


@pytest.mark.parametrize(
    "method,suffix",
    [
        ("get_task_console_logs", "console-logs"),
        ("get_task_network_logs", "network-logs"),
        ("get_task_action_logs", "action-logs"),
        ("get_task_error_logs", "error-logs"),
    ],
)
def test_logs_endpoints(method, suffix):
    client, session = _client(DummyResponse(200, {"prompt": "log line"}), DummyResponse(200, {}))

    assert getattr(client, method)("t-1") == "log line"
    assert getattr(client, method)("t-1") == ""
    assert session.calls[0][1] == DEFAULT_BASE_URL + f"task/t-1/{suffix}"


def test_screenshot_refetches_image_without_credentials():
    image = b"\x89PNG\r\n\x1a\n\x00\x01binary\xff"
    client, session = _client(
        DummyResponse(200, {"screenshot": "https://cdn.example.com/shot.png"}),
        DummyResponse(200, content=image),
    )

    encoded = client.get_task_screenshot("t-1")

    assert base64.b64decode(encoded) == image
    assert len(session.calls) == 2
    method, url, kwargs = session.calls[1]
    assert url == "https://cdn.example.com/shot.png"
    assert "Authorization" not in (kwargs.get("headers") or {})
    assert kwargs["timeout"] == 30


def test_screenshot_without_url_fails_before_second_fetch():
    client, session = _client(DummyResponse(200, {}))

    with pytest.raises(GenericFailure, match="Failed to get task screenshot"):
        client.get_task_screenshot("t-1")
    assert len(session.calls) == 1


def test_screenshot_image_fetch_errors_are_normalized():
    client, _ = _client(
        DummyResponse(200, {"screenshot": "https://cdn.example.com/gone.png"}),
        DummyResponse(404, content=b"", reason="Not Found"),
    )

    with pytest.raises(NormalizedApiError) as exc_info:
        client.get_task_screenshot("t-1")

    assert exc_info.value.code == 404


@pytest.mark.parametrize("payload,expected", [({"success": True}, True), ({"success": False}, False), ({}, None)])
def test_close_task(payload, expected):
    client, session = _client(DummyResponse(200, payload))

    assert client.close_task("t-9") is expected
    assert session.calls[0][0] == "post"
    assert session.calls[0][1] == DEFAULT_BASE_URL + "task/t-9/close"


def test_close_only_owned_session():
    client, session = _client()
    client.close()
    assert session.closed is False
