import copy
import logging
from typing import Any, Dict, Optional
from unittest.mock import Mock

import pytest
from langchain_core.messages import AIMessage

from AIProvider import AIProvider


class FakeJiraClient:
    """
    Stands in for JiraClient: answers requests from a `(method, endpoint)` table
    and records every call.
    """

    def __init__(self):
        self.routes: Dict[tuple, Any] = {}
        self.calls = []

    def request(self, endpoint, method="GET", body=None, params=None):
        self.calls.append((method, endpoint, body, params))
        key = (method, endpoint)
        if key not in self.routes:
            raise AssertionError(f"Unexpected Jira request: {method} {endpoint}")

        response = self.routes[key]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(body)
        return copy.deepcopy(response)

    def myself(self):
        return self.request("/rest/api/3/myself")

    def bodies(self, method, endpoint):
        return [c[2] for c in self.calls if c[0] == method and c[1] == endpoint]


@pytest.fixture
def jira_client():
    return FakeJiraClient()


@pytest.fixture
def make_issue():
    def _make_issue(
        key: str,
        summary: str = "Summary",
        issue_type: str = "Task",
        status: str = "To Do",
        assignee: Optional[str] = None,
        project: Optional[str] = None,
    ) -> Dict[str, Any]:
        return {
            "key": key,
            "fields": {
                "summary": summary,
                "issuetype": {"name": issue_type},
                "status": {"name": status},
                "priority": {"name": "Medium"},
                "assignee": {"displayName": assignee} if assignee else None,
                "project": {"key": project or key.split("-")[0]},
                "description": None,
            },
        }

    return _make_issue


@pytest.fixture
def fake_ai():
    """An AI provider whose completions are scripted per test."""
    ai = Mock(spec=AIProvider)
    ai.complete.return_value = AIMessage(content="")
    return ai


def tool_call(name: str, args: Dict[str, Any], call_id: str = "call_1") -> Dict[str, Any]:
    return {"name": name, "args": args, "id": call_id, "type": "tool_call"}


@pytest.fixture
def make_tool_call():
    return tool_call


@pytest.fixture(autouse=True)
def restore_logging():
    """Undoes `configure_logging` so log files from one test never outlive it."""
    root = logging.getLogger()
    events = logging.getLogger("events")
    saved = (root.handlers[:], root.level, events.handlers[:], events.propagate)

    yield

    for handler in set(root.handlers + events.handlers) - set(saved[0] + saved[2]):
        handler.close()
    root.handlers, events.handlers = saved[0], saved[2]
    root.setLevel(saved[1])
    events.propagate = saved[3]
