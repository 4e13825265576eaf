"""
Unit tests for the Jira operations built on top of the REST client.
"""
import pytest

from errors import JiraAPIError
from JiraService import JiraService


@pytest.fixture
def jira(jira_client):
    return JiraService(jira_client)


def test_get_issue(jira, jira_client, make_issue):
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-1")] = make_issue("PROJ-1")

    response = jira.get_issue("PROJ-1")

    assert response["success"] is True
    assert response["message"] == "Successfully retrieved issue: PROJ-1"
    assert response["data"]["key"] == "PROJ-1"


def test_search_issues_posts_jql(jira, jira_client, make_issue):
    jira_client.routes[("POST", "/rest/api/3/search/jql")] = {
        "issues": [make_issue("PROJ-1"), make_issue("PROJ-2")]
    }

    response = jira.search_issues("project = PROJ", 5)

    assert response["message"] == "Found 2 issues"
    body = jira_client.bodies("POST", "/rest/api/3/search/jql")[0]
    assert body["jql"] == "project = PROJ"
    assert body["maxResults"] == 5
    assert body["fields"] == ["summary", "status", "issuetype", "priority", "assignee"]


def test_create_issue_builds_fields_and_rereads(jira, jira_client, make_issue):
    jira_client.routes[("POST", "/rest/api/3/issue")] = {"id": "10001", "key": "PROJ-7"}
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-7")] = make_issue("PROJ-7", "New")

    response = jira.create_issue(
        "PROJ",
        "New",
        description="## Details\n- one",
        issue_type="Sub-task",
        priority="High",
        assignee="acc-1",
        parent_key="PROJ-1",
        extra_fields={"labels": ["voice"]},
    )

    assert response["message"] == "Successfully created issue: PROJ-7"
    assert response["data"]["fields"]["summary"] == "New"

    fields = jira_client.bodies("POST", "/rest/api/3/issue")[0]["fields"]
    assert fields["project"] == {"key": "PROJ"}
    assert fields["issuetype"] == {"name": "Sub-task"}
    assert fields["priority"] == {"name": "High"}
    assert fields["assignee"] == {"id": "acc-1"}
    assert fields["parent"] == {"key": "PROJ-1"}
    assert fields["labels"] == ["voice"]
    assert [n["type"] for n in fields["description"]["content"]] == ["heading", "bulletList"]


def test_create_issue_without_description_uses_template(jira, jira_client, make_issue):
    jira_client.routes[("POST", "/rest/api/3/issue")] = {"key": "PROJ-8"}
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-8")] = make_issue("PROJ-8")

    jira.create_issue("PROJ", "Epic work", issue_type="Epic")

    description = jira_client.bodies("POST", "/rest/api/3/issue")[0]["fields"]["description"]
    texts = [
        node["content"][0].get("text")
        for node in description["content"]
        if node["type"] == "heading"
    ]
    assert texts[:2] == ["Epic work", "Epic Overview"]


def test_update_issue_sends_only_given_fields(jira, jira_client, make_issue):
    jira_client.routes[("PUT", "/rest/api/3/issue/PROJ-1")] = {}
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-1")] = make_issue("PROJ-1")

    response = jira.update_issue("PROJ-1", summary="Renamed", issue_type="Bug")

    assert response["success"] is True
    assert response["message"] == "Successfully updated summary, issue type for issue PROJ-1"
    assert jira_client.bodies("PUT", "/rest/api/3/issue/PROJ-1")[0] == {
        "fields": {"summary": "Renamed", "issuetype": {"name": "Bug"}}
    }


def test_update_issue_without_fields(jira, jira_client):
    response = jira.update_issue("PROJ-1")

    assert response == {"success": False, "message": "No fields provided for update", "data": None}
    assert jira_client.calls == []


def test_update_priority(jira, jira_client, make_issue):
    jira_client.routes[("PUT", "/rest/api/3/issue/PROJ-1")] = {}
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-1")] = make_issue("PROJ-1")

    response = jira.update_issue_priority("PROJ-1", "Highest")

    assert response["message"] == "Successfully updated priority for issue PROJ-1 to Highest"
    assert jira_client.bodies("PUT", "/rest/api/3/issue/PROJ-1")[0] == {
        "fields": {"priority": {"name": "Highest"}}
    }


def test_delete_issue_reports_failure_instead_of_raising(jira, jira_client):
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-404")] = JiraAPIError(
        "Jira API error: 404 Not Found", status_code=404
    )

    response = jira.delete_issue("PROJ-404")

    assert response["success"] is False
    assert response["message"] == "Failed to delete issue: Jira API error: 404 Not Found"


def test_delete_issue(jira, jira_client, make_issue):
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-1")] = make_issue("PROJ-1")
    jira_client.routes[("DELETE", "/rest/api/3/issue/PROJ-1")] = {}

    response = jira.delete_issue("PROJ-1")

    assert response["success"] is True
    assert response["message"] == "Successfully deleted issue PROJ-1"


def test_link_to_epic_uses_epic_link_field(jira, jira_client, make_issue):
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-1")] = make_issue("PROJ-1")
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-2")] = make_issue("PROJ-2", issue_type="Epic")
    jira_client.routes[("GET", "/rest/api/3/field")] = [
        {"id": "summary", "name": "Summary"},
        {"id": "customfield_10014", "name": "Epic Link"},
    ]
    jira_client.routes[("PUT", "/rest/api/3/issue/PROJ-1")] = {}

    response = jira.link_issues("PROJ-1", "PROJ-2", "is part of")

    assert response["message"] == "Successfully linked issue PROJ-1 to Epic PROJ-2"
    assert jira_client.bodies("PUT", "/rest/api/3/issue/PROJ-1")[0] == {
        "fields": {"customfield_10014": "PROJ-2"}
    }
    assert response["data"]["targetIssue"]["key"] == "PROJ-2"


def test_standard_link_maps_friendly_names(jira, jira_client, make_issue):
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-1")] = make_issue("PROJ-1")
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-3")] = make_issue("PROJ-3")
    jira_client.routes[("POST", "/rest/api/3/issueLink")] = {}

    response = jira.link_issues("PROJ-1", "PROJ-3", "blocks")

    assert response["message"] == 'Successfully linked issue PROJ-1 to PROJ-3 with type "Blocks"'
    assert jira_client.bodies("POST", "/rest/api/3/issueLink")[0] == {
        "type": {"name": "Blocks"},
        "inwardIssue": {"key": "PROJ-3"},
        "outwardIssue": {"key": "PROJ-1"},
    }


def test_failed_link_falls_back_to_reference_comment(jira, jira_client, make_issue):
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-1")] = make_issue("PROJ-1")
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-3")] = make_issue("PROJ-3")
    jira_client.routes[("POST", "/rest/api/3/issueLink")] = JiraAPIError("no link type")
    jira_client.routes[("POST", "/rest/api/3/issue/PROJ-1/comment")] = {"id": "1"}

    response = jira.link_issues("PROJ-1", "PROJ-3")

    assert response["success"] is True
    assert response["message"].startswith("Could not create a direct link")
    comment = jira_client.bodies("POST", "/rest/api/3/issue/PROJ-1/comment")[0]
    assert "PROJ-3" in comment["body"]["content"][0]["content"][0]["text"]


def test_failed_link_and_comment_raises_original_error(jira, jira_client, make_issue):
    link_error = JiraAPIError("no link type")
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-3")] = make_issue("PROJ-3")
    jira_client.routes[("POST", "/rest/api/3/issueLink")] = link_error
    jira_client.routes[("POST", "/rest/api/3/issue/PROJ-1/comment")] = JiraAPIError("no permission")

    with pytest.raises(JiraAPIError) as exc_info:
        jira.link_issues("PROJ-1", "PROJ-3")

    assert exc_info.value is link_error


def test_add_comment_wraps_text_in_adf(jira, jira_client):
    jira_client.routes[("POST", "/rest/api/3/issue/PROJ-1/comment")] = {"id": "1"}

    response = jira.add_comment("PROJ-1", "Looks good")

    assert response["message"] == "Successfully added comment to issue PROJ-1"
    body = jira_client.bodies("POST", "/rest/api/3/issue/PROJ-1/comment")[0]["body"]
    assert body["type"] == "doc"
    assert body["content"][0]["content"][0]["text"] == "Looks good"


def test_transitions(jira, jira_client):
    jira_client.routes[("GET", "/rest/api/3/issue/PROJ-1/transitions")] = {
        "transitions": [{"id": "31", "name": "Done"}]
    }
    jira_client.routes[("POST", "/rest/api/3/issue/PROJ-1/transitions")] = {}

    assert jira.get_issue_transitions("PROJ-1")["data"]["transitions"][0]["name"] == "Done"
    assert jira.transition_issue("PROJ-1", 31)["success"] is True
    assert jira_client.bodies("POST", "/rest/api/3/issue/PROJ-1/transitions")[0] == {
        "transition": {"id": "31"}
    }


def test_project_users_and_assignment(jira, jira_client):
    jira_client.routes[("GET", "/rest/api/3/user/assignable/search")] = [
        {"accountId": "acc-1", "displayName": "Ada"}
    ]
    jira_client.routes[("PUT", "/rest/api/3/issue/PROJ-1/assignee")] = {}

    users = jira.get_project_users("PROJ")
    response = jira.assign_issue("PROJ-1", "acc-1")

    assert users[0]["displayName"] == "Ada"
    assert jira_client.calls[0][3] == {"project": "PROJ"}
    assert response["message"] == "Successfully assigned issue PROJ-1"
    assert jira_client.bodies("PUT", "/rest/api/3/issue/PROJ-1/assignee")[0] == {
        "accountId": "acc-1"
    }


def test_create_metadata_pages_are_unwrapped(jira, jira_client):
    jira_client.routes[("GET", "/rest/api/3/issue/createmeta/PROJ/issuetypes")] = {
        "values": [{"id": "1", "name": "Bug"}]
    }
    jira_client.routes[("GET", "/rest/api/3/issue/createmeta/PROJ/issuetypes/1")] = {
        "values": [{"key": "summary", "name": "Summary"}]
    }

    assert jira.get_create_metadata_issue_types("PROJ") == {
        "issueTypes": [{"id": "1", "name": "Bug"}]
    }
    assert jira.get_create_field_metadata("PROJ", "1") == {
        "fields": [{"key": "summary", "name": "Summary"}]
    }
