import json
import logging
from datetime import datetime, timedelta, timezone

from ToolSchemas import JiraComment, JiraContext
from utils import (
    configure_logging,
    convert_jira_context_to_text,
    create_enhanced_prompt,
    extract_jira_context,
    log_event,
    replace_iso8601_with_relative,
)


def iso(delta: timedelta) -> str:
    return (datetime.now(timezone.utc) - delta).strftime("%Y-%m-%dT%H:%M:%S.000+0000")


def test_replace_iso8601_with_relative():
    text = f"Created {iso(timedelta(days=3, hours=1))}, updated {iso(timedelta(hours=2, minutes=5))}"

    assert replace_iso8601_with_relative(text) == "Created 3 days ago, updated 2 hours ago"


def test_replace_iso8601_leaves_other_text():
    assert replace_iso8601_with_relative("PROJ-1 is done") == "PROJ-1 is done"


def test_extract_context_from_issue_url():
    context = extract_jira_context("https://acme.atlassian.net/browse/proj-12?focused=1")

    assert context.domain == "acme.atlassian.net"
    assert context.issue_key == "PROJ-12"
    assert context.project_key == "PROJ"


def test_extract_context_from_board_url():
    context = extract_jira_context(
        "https://acme.atlassian.net/jira/software/projects/OPS/boards/7"
    )

    assert context.project_key == "OPS"
    assert context.board_id == "7"
    assert context.issue_key is None


def test_context_text():
    context = JiraContext(
        project_key="PROJ",
        issue_key="PROJ-1",
        issue_summary="Fix login",
        issue_status="Open",
        comments=[JiraComment(text="x" * 120)],
    )

    text = convert_jira_context_to_text(context)

    assert text.startswith("# Current Jira Context\n## Project: PROJ\n## Issue: PROJ-1")
    assert 'Summary: "Fix login"' in text
    assert "This issue has 1 comments." in text
    assert f"- Comment 1: {'x' * 100}..." in text
    assert convert_jira_context_to_text(None) == ""


def test_enhanced_prompt():
    assert create_enhanced_prompt("hello", "") == "hello"
    assert 'User request: "hello"' in create_enhanced_prompt("hello", "# Current Jira Context")


def test_log_event_writes_json_lines(tmp_path):
    configure_logging(str(tmp_path))
    log_event("JIRA_ACTION_REQUEST", action={"actionType": "getIssue"})
    for handler in logging.getLogger("events").handlers:
        handler.flush()

    lines = (tmp_path / "events.log").read_text().splitlines()
    entry = json.loads(lines[-1])
    assert entry["type"] == "JIRA_ACTION_REQUEST"
    assert entry["data"] == {"action": {"actionType": "getIssue"}}
