"""
Unit tests for the authenticated Jira REST client.
"""
import json
from unittest.mock import Mock

import pytest
import requests

from errors import JiraAPIError
from JiraClient import JiraClient


def make_response(status_code=200, payload=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = reason
    response.content = json.dumps(payload).encode() if payload is not None else b""
    if payload is not None:
        response.json.return_value = payload
    else:
        response.json.side_effect = ValueError("No JSON")
    return response


@pytest.fixture
def client():
    jira = JiraClient("https://example.atlassian.net/", "me@example.com", "token")
    jira.session = Mock()
    return jira


@pytest.mark.parametrize(
    "base_url, email, token",
    [("", "me@example.com", "token"), ("https://x", "", "token"), ("https://x", "me@example.com", "")],
)
def test_empty_settings_are_rejected(base_url, email, token):
    with pytest.raises(ValueError):
        JiraClient(base_url, email, token)


def test_session_uses_basic_auth():
    jira = JiraClient("https://example.atlassian.net", "me@example.com", "token")

    assert jira.session.auth.username == "me@example.com"
    assert jira.session.auth.password == "token"
    assert jira.session.headers["Accept"] == "application/json"


def test_get_returns_decoded_json(client):
    client.session.request.return_value = make_response(payload={"key": "PROJ-1"})

    assert client.request("/rest/api/3/issue/PROJ-1") == {"key": "PROJ-1"}

    args, kwargs = client.session.request.call_args
    assert args == ("GET", "https://example.atlassian.net/rest/api/3/issue/PROJ-1")
    assert kwargs["data"] is None
    assert "Content-Type" not in kwargs["headers"]


def test_body_is_sent_as_json(client):
    client.session.request.return_value = make_response(201, {"id": "1"})

    client.request("/rest/api/3/issue", "POST", {"fields": {"summary": "x"}})

    _, kwargs = client.session.request.call_args
    assert kwargs["headers"]["Content-Type"] == "application/json"
    assert json.loads(kwargs["data"]) == {"fields": {"summary": "x"}}


def test_no_content_returns_empty_dict(client):
    client.session.request.return_value = make_response(204, None, "No Content")

    assert client.request("/rest/api/3/issue/PROJ-1", "DELETE") == {}


def test_error_status_raises_with_details(client):
    details = {"errorMessages": ["Issue does not exist"]}
    client.session.request.return_value = make_response(404, details, "Not Found")

    with pytest.raises(JiraAPIError) as exc_info:
        client.request("/rest/api/3/issue/PROJ-9")

    error = exc_info.value
    assert error.status_code == 404
    assert error.details == details
    assert str(error) == f"Jira API error: 404 Not Found - {json.dumps(details)}"


def test_error_without_json_uses_reason(client):
    client.session.request.return_value = make_response(401, None, "Unauthorized")

    with pytest.raises(JiraAPIError, match="Jira API error: 401 Unauthorized - Unauthorized"):
        client.request("/rest/api/3/myself")


def test_transport_failure_raises_jira_error(client):
    client.session.request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(JiraAPIError, match="refused"):
        client.myself()
