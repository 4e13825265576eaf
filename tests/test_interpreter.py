"""
Unit tests for turning LLM tool calls into Jira actions.
"""
from unittest.mock import Mock

import pytest
from langchain_core.messages import AIMessage

from CommandInterpreter import CommandInterpreter, tool_call_to_action
from errors import InterpretationError
from JiraTools import JIRA_TOOLS
from MetadataHandler import MetadataHandler
from ToolSchemas import JiraContext


@pytest.fixture
def metadata():
    handler = Mock(spec=MetadataHandler)
    handler.fetch_project_metadata.return_value = None
    return handler


@pytest.fixture
def interpreter(fake_ai, metadata):
    return CommandInterpreter(fake_ai, metadata)


@pytest.mark.parametrize(
    "name, action_type, approve_required",
    [
        ("get_issue", "getIssue", False),
        ("search_issues", "searchIssues", False),
        ("get_project_info", "getProjectInfo", False),
        ("create_issue", "createIssue", True),
        ("add_comment", "addComment", True),
        ("move_to_epic", "moveToEpic", True),
        ("create_subtasks", "createAndLinkSubtasks", True),
        ("create_bug", "createIssue", True),
        ("update_user_story", "updateIssue", True),
    ],
)
def test_tool_names_map_to_actions(name, action_type, approve_required):
    action = tool_call_to_action(name, {"issueKey": "PROJ-1"})

    assert action.action_type == action_type
    assert action.approve_required is approve_required


def test_argument_mappers():
    retype = tool_call_to_action("update_issue_type", {"issueKey": "PROJ-1", "newIssueType": "Bug"})
    delete = tool_call_to_action("delete_issue", {"issueKey": "PROJ-1", "confirmDelete": True})

    assert retype.parameters == {"issueKey": "PROJ-1", "issueType": "Bug"}
    assert delete.parameters == {"issueKey": "PROJ-1"}


def test_unknown_tool_becomes_message():
    action = tool_call_to_action("launch_rocket", {})

    assert action.action_type == "message"
    assert action.parameters == {"message": "I don't know how to perform the action: launch_rocket"}


def test_interpret_command_returns_actions(interpreter, fake_ai, make_tool_call):
    fake_ai.complete.return_value = AIMessage(
        content="Creating it now.",
        tool_calls=[
            make_tool_call("create_issue", {"projectKey": "PROJ", "summary": "Login", "issueType": "Bug"})
        ],
    )

    response = interpreter.interpret_command("create a bug for login")

    assert response["actionType"] == "message"
    assert response["parameters"]["message"] == "Creating it now."
    assert response["parameters"]["actions"] == [
        {
            "actionType": "createIssue",
            "parameters": {"projectKey": "PROJ", "summary": "Login", "issueType": "Bug"},
            "approveRequired": True,
        }
    ]
    _, kwargs = fake_ai.complete.call_args
    assert kwargs["tools"] is JIRA_TOOLS
    assert kwargs["tool_choice"] == "auto"


def test_interpret_command_includes_history_and_context(interpreter, fake_ai):
    history = [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
    ]

    response = interpreter.interpret_command(
        "what is this issue about?",
        JiraContext(issue_key="PROJ-5", issue_summary="Flaky build"),
        history,
    )

    assert response["parameters"] == {"message": "I understood your request.", "actions": []}
    messages = fake_ai.complete.call_args[0][0]
    assert messages[0]["role"] == "system"
    assert messages[1:3] == history
    assert messages[3]["role"] == "user"
    assert "PROJ-5" in messages[3]["content"]
    assert "what is this issue about?" in messages[3]["content"]


def test_project_metadata_replaces_generic_tools(interpreter, fake_ai, metadata):
    project_metadata = {"projectKey": "PROJ", "issueTypes": [{"name": "Bug", "fields": []}]}
    metadata.fetch_project_metadata.return_value = project_metadata
    metadata.update_tools_with_metadata.return_value = ["bug tools"]
    metadata.metadata_summary.return_value = "- Bug"

    interpreter.interpret_command("file a bug", JiraContext(project_key="PROJ"))

    metadata.fetch_project_metadata.assert_called_once_with("PROJ")
    _, kwargs = fake_ai.complete.call_args
    assert kwargs["tools"] == ["bug tools"]
    prompt = fake_ai.complete.call_args[0][0][-1]["content"]
    assert prompt.endswith("Available Jira issue types:\n- Bug")


def test_llm_failure_raises_interpretation_error(interpreter, fake_ai):
    fake_ai.complete.side_effect = RuntimeError("rate limited")

    with pytest.raises(InterpretationError, match="Error interpreting command: rate limited"):
        interpreter.interpret_command("anything")


def test_determine_intent(interpreter, fake_ai):
    fake_ai.complete.return_value = AIMessage(content="You want to create an issue.")

    assert interpreter.determine_intent("make a task") == "You want to create an issue."
    assert fake_ai.complete.call_args[1]["temperature"] == 0.3
