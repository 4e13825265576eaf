from typing import Any, Dict, List, Optional

ISSUE_KEY_DESCRIPTION = "The Jira issue key (e.g., PROJ-123)"
PROJECT_KEY_DESCRIPTION = "The project key (e.g., PROJ)"


def function_tool(
    name: str,
    description: str,
    properties: Dict[str, Any],
    required: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Builds an OpenAI-style function tool definition."""
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required or [],
            },
        },
    }


def string_param(description: str, **extra: Any) -> Dict[str, Any]:
    return {"type": "string", "description": description, **extra}


JIRA_TOOLS: List[Dict[str, Any]] = [
    function_tool(
        "get_issue",
        "Get details of a Jira issue by its key",
        {"issueKey": string_param(ISSUE_KEY_DESCRIPTION)},
        ["issueKey"],
    ),
    function_tool(
        "search_issues",
        "Search for Jira issues using JQL",
        {
            "jql": string_param(
                "JQL query string (e.g., 'project = PROJ AND status = \"In Progress\"')"
            ),
            "maxResults": {
                "type": "number",
                "description": "Maximum number of results to return",
            },
        },
        ["jql"],
    ),
    function_tool(
        "create_issue",
        "Create a new Jira issue",
        {
            "projectKey": string_param(PROJECT_KEY_DESCRIPTION),
            "summary": string_param("Issue summary/title"),
            "description": string_param(
                "Description of the issue. If provided, it will be enhanced to follow "
                "best practices. If not provided, a description will be auto-generated."
            ),
            "issueType": string_param("Type of issue (e.g., Bug, Task, Story)"),
            "parent": string_param("The key of the parent issue for creating subtasks"),
        },
        ["projectKey", "summary", "issueType"],
    ),
    function_tool(
        "update_issue",
        "Update specific fields of an existing Jira issue. Only fields that are "
        "explicitly provided will be updated.",
        {
            "projectKey": string_param(PROJECT_KEY_DESCRIPTION),
            "issueKey": string_param("The key of the issue to update (e.g., PROJ-123)"),
            "summary": string_param(
                "New summary/title for the issue (only updated if provided)"
            ),
            "description": string_param(
                "New description for the issue. Will be enhanced to follow best "
                "practices. (only updated if provided)"
            ),
            "issueType": string_param(
                "New issue type (e.g., Bug, Task, Story) (only updated if provided)"
            ),
            "priority": string_param(
                "New priority (e.g., Highest, High, Medium, Low, Lowest) "
                "(only updated if provided)"
            ),
            "assignee": string_param(
                "Account ID to assign the issue to (only updated if provided)"
            ),
            "parent": string_param("The key of the parent issue for subtasks"),
        },
        ["issueKey"],
    ),
    function_tool(
        "update_issue_type",
        "Update the issue type of an existing Jira issue",
        {
            "issueKey": string_param("The Jira issue key to update"),
            "newIssueType": string_param(
                "The new issue type (e.g., Epic, Story, Task, Bug)"
            ),
        },
        ["issueKey", "newIssueType"],
    ),
    function_tool(
        "delete_issue",
        "Delete a Jira issue by its key",
        {
            "issueKey": string_param(ISSUE_KEY_DESCRIPTION),
            "confirmDelete": {
                "type": "boolean",
                "description": "Confirmation that the issue should be deleted",
            },
        },
        ["issueKey", "confirmDelete"],
    ),
    function_tool(
        "add_comment",
        "Add a comment to a Jira issue",
        {
            "issueKey": string_param(ISSUE_KEY_DESCRIPTION),
            "comment": string_param("The comment text to add to the issue"),
        },
        ["issueKey", "comment"],
    ),
    function_tool(
        "assign_issue",
        "Assign a Jira issue to a user",
        {
            "issueKey": string_param(ISSUE_KEY_DESCRIPTION),
            "accountId": string_param(
                "The account ID of the user to assign the issue to"
            ),
        },
        ["issueKey", "accountId"],
    ),
    function_tool(
        "get_issue_transitions",
        "Get available transitions for a Jira issue",
        {"issueKey": string_param(ISSUE_KEY_DESCRIPTION)},
        ["issueKey"],
    ),
    function_tool(
        "transition_issue",
        "Move a Jira issue to a different status",
        {
            "issueKey": string_param(ISSUE_KEY_DESCRIPTION),
            "transitionId": string_param("The ID of the transition to perform"),
        },
        ["issueKey", "transitionId"],
    ),
    function_tool(
        "get_project_users",
        "Get users associated with a Jira project",
        {"projectKey": string_param(PROJECT_KEY_DESCRIPTION)},
        ["projectKey"],
    ),
    function_tool(
        "get_project_info",
        "Get information about a Jira project",
        {"projectKey": string_param(PROJECT_KEY_DESCRIPTION)},
        ["projectKey"],
    ),
    function_tool(
        "update_issue_priority",
        "Update the priority of a Jira issue",
        {
            "issueKey": string_param(ISSUE_KEY_DESCRIPTION),
            "priority": string_param(
                "The new priority (e.g., Highest, High, Medium, Low, Lowest)"
            ),
        },
        ["issueKey", "priority"],
    ),
    function_tool(
        "link_issues",
        "Link two Jira issues together with a specific relationship type",
        {
            "sourceIssueKey": string_param(
                "The key of the source issue (e.g., PROJ-123)"
            ),
            "targetIssueKey": string_param(
                "The key of the target issue (e.g., PROJ-456)"
            ),
            "linkType": string_param(
                "The type of link between issues (e.g., 'relates to', 'blocks', "
                "'is blocked by', 'is part of', etc.)",
                default="relates to",
            ),
        },
        ["sourceIssueKey", "targetIssueKey"],
    ),
    function_tool(
        "move_to_epic",
        "Move an existing issue to an existing epic",
        {
            "projectKey": string_param(PROJECT_KEY_DESCRIPTION),
            "targetEpicKey": string_param(
                "The key of an existing epic to link issues to"
            ),
            "issueKey": string_param(
                "The issue key to link to the epic (e.g., PROJ-123)"
            ),
        },
        ["projectKey", "targetEpicKey", "issueKey"],
    ),
    function_tool(
        "create_epic_and_link",
        "Create a new epic and optionally link an existing issue to it",
        {
            "projectKey": string_param(PROJECT_KEY_DESCRIPTION),
            "epicSummary": string_param("Summary/title of the new epic"),
            "epicDescription": string_param(
                "Description of the epic. It will be enhanced to follow best practices."
            ),
            "issueKey": string_param(
                "Key of an existing issue to link to the new epic (e.g., PROJ-123)"
            ),
        },
        ["projectKey", "epicSummary"],
    ),
    function_tool(
        "create_subtasks",
        "Create one or more subtasks under a parent issue",
        {
            "projectKey": string_param(PROJECT_KEY_DESCRIPTION),
            "parent": string_param("The key of the parent issue (e.g., PROJ-123)"),
            "subtasks": {
                "type": "array",
                "description": "The subtasks to create",
                "items": {
                    "type": "object",
                    "properties": {
                        "summary": string_param("Subtask summary/title"),
                        "description": string_param("Subtask description"),
                        "assignee": string_param(
                            "Account ID of the user to assign the subtask to"
                        ),
                    },
                    "required": ["summary"],
                },
            },
        },
        ["projectKey", "parent", "subtasks"],
    ),
]
