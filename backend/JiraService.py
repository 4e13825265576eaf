import logging
from typing import Any, Dict, List, Optional, Union

from adf import default_description, format_description, text_paragraph_doc
from JiraClient import JiraClient

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ["summary", "status", "issuetype", "priority", "assignee"]

# Friendly relationship names -> Jira issue link type names
LINK_TYPE_MAP = {
    "is part of": "Relates",
    "has part": "Relates",
    "parent": "Relates",
    "relates to": "Relates",
    "is related to": "Relates",
    "blocks": "Blocks",
    "is blocked by": "Blocked",
}


def result(success: bool, message: str, data: Any = None) -> Dict[str, Any]:
    """Builds the operation result dict returned by every Jira operation."""
    return {"success": success, "message": message, "data": data}


class JiraService:
    """
    The fixed set of Jira operations the assistant can perform.

    Each method maps to one (or a short, fixed sequence of) Jira REST calls.
    Errors from the client propagate as `JiraAPIError` unless stated otherwise.
    """

    def __init__(self, client: JiraClient):
        self.client = client

    # --- issues ---

    def get_issue(self, issue_key: str) -> Dict[str, Any]:
        logger.info(f"Getting issue: {issue_key}")
        issue = self.client.request(f"/rest/api/3/issue/{issue_key}")
        return result(True, f"Successfully retrieved issue: {issue_key}", issue)

    def search_issues(self, jql: str, max_results: int = 10) -> Dict[str, Any]:
        logger.info(f"Searching issues with JQL: {jql}")
        search_result = self.client.request(
            "/rest/api/3/search/jql",
            "POST",
            {"jql": jql, "maxResults": max_results, "fields": SEARCH_FIELDS},
        )
        issues = search_result.get("issues", [])
        return result(True, f"Found {len(issues)} issues", search_result)

    def create_issue(
        self,
        project_key: str,
        summary: str,
        description: Optional[Union[str, Dict[str, Any]]] = None,
        issue_type: str = "Task",
        priority: Optional[str] = None,
        assignee: Optional[str] = None,
        parent_key: Optional[str] = None,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Creates an issue and returns it re-read from Jira.

        A string description is treated as markdown and converted to ADF. Without
        a description, a template for the issue type is used.

        Args:
            project_key: Key of the project to create the issue in.
            summary: Issue title.
            description: Markdown string or ADF document.
            issue_type: Issue type name, e.g. "Task", "Bug", "Sub-task".
            priority: Priority name.
            assignee: Account id of the assignee.
            parent_key: Parent issue key, for subtasks.
            extra_fields: Additional (custom) fields merged into the payload.

        Returns:
            Dict[str, Any]: Operation result holding the created issue.
        """
        logger.info(f"Creating issue in project {project_key}: {summary}")

        fields: Dict[str, Any] = {
            "project": {"key": project_key},
            "summary": summary,
            "issuetype": {"name": issue_type},
        }
        fields["description"] = (
            format_description(description)
            if description
            else default_description(issue_type, summary)
        )
        if priority:
            fields["priority"] = {"name": priority}
        if assignee:
            fields["assignee"] = {"id": assignee}
        if parent_key:
            fields["parent"] = {"key": parent_key}
        if extra_fields:
            fields.update(extra_fields)

        created = self.client.request("/rest/api/3/issue", "POST", {"fields": fields})
        issue = self.get_issue(created["key"])["data"]

        return result(True, f"Successfully created issue: {created['key']}", issue)

    def update_issue(
        self,
        issue_key: str,
        summary: Optional[str] = None,
        description: Optional[Union[str, Dict[str, Any]]] = None,
        issue_type: Optional[str] = None,
        priority: Optional[str] = None,
        assignee: Optional[str] = None,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Updates only the fields that are provided."""
        logger.info(f"Updating issue {issue_key}")

        fields: Dict[str, Any] = {}
        if description:
            fields["description"] = format_description(description)
        if summary is not None:
            fields["summary"] = summary
        if issue_type is not None:
            fields["issuetype"] = {"name": issue_type}
        if priority is not None:
            fields["priority"] = {"name": priority}
        if assignee is not None:
            fields["assignee"] = {"id": assignee}
        if extra_fields:
            fields.update(extra_fields)

        if not fields:
            return result(False, "No fields provided for update")

        self.client.request(f"/rest/api/3/issue/{issue_key}", "PUT", {"fields": fields})

        updated = ", ".join(
            "issue type" if field == "issuetype" else field for field in fields
        )
        issue = self.get_issue(issue_key)["data"]
        return result(True, f"Successfully updated {updated} for issue {issue_key}", issue)

    def update_issue_type(self, issue_key: str, issue_type: str) -> Dict[str, Any]:
        logger.info(f"Updating issue type for {issue_key} to {issue_type}")
        self.client.request(
            f"/rest/api/3/issue/{issue_key}",
            "PUT",
            {"fields": {"issuetype": {"name": issue_type}}},
        )
        issue = self.get_issue(issue_key)["data"]
        return result(
            True,
            f"Successfully updated issue type for {issue_key} to {issue_type}",
            issue,
        )

    def update_issue_priority(self, issue_key: str, priority: str) -> Dict[str, Any]:
        logger.info(f"Updating priority for issue {issue_key} to {priority}")
        self.client.request(
            f"/rest/api/3/issue/{issue_key}",
            "PUT",
            {"fields": {"priority": {"name": priority}}},
        )
        issue = self.get_issue(issue_key)["data"]
        return result(
            True,
            f"Successfully updated priority for issue {issue_key} to {priority}",
            issue,
        )

    def delete_issue(self, issue_key: str) -> Dict[str, Any]:
        """Deletes an issue. Failures are reported in the result, not raised."""
        try:
            logger.info(f"Deleting issue: {issue_key}")
            issue = self.get_issue(issue_key)["data"]
            self.client.request(f"/rest/api/3/issue/{issue_key}", "DELETE")
            return result(True, f"Successfully deleted issue {issue_key}", issue)
        except Exception as e:
            logger.error(f"Error deleting issue {issue_key}: {e}")
            return result(False, f"Failed to delete issue: {e}")

    # --- links ---

    def link_issues(
        self,
        source_issue_key: str,
        target_issue_key: str,
        link_type: str = "relates to",
    ) -> Dict[str, Any]:
        """
        Links two issues.

        Linking to an Epic first tries the Epic Link field; otherwise a standard
        issue link is created. If linking fails, a comment referencing the target
        is added to the source issue instead.
        """
        logger.info(
            f'Linking issue {source_issue_key} to {target_issue_key} with link type "{link_type}"'
        )

        try:
            target = self.client.request(f"/rest/api/3/issue/{target_issue_key}")
            if target["fields"]["issuetype"]["name"] == "Epic":
                epic_result = self._link_issue_to_epic(source_issue_key, target_issue_key)
                if epic_result["success"]:
                    return epic_result

            return self._create_standard_issue_link(
                source_issue_key, target_issue_key, link_type
            )
        except Exception as e:
            logger.error(f"Failed to link issues: {e}")
            return self._create_reference_comment(source_issue_key, target_issue_key, e)

    def _link_pair(self, source_issue_key: str, target_issue_key: str) -> Dict[str, Any]:
        return {
            "sourceIssue": self.get_issue(source_issue_key)["data"],
            "targetIssue": self.get_issue(target_issue_key)["data"],
        }

    def _link_issue_to_epic(self, source_issue_key: str, epic_key: str) -> Dict[str, Any]:
        logger.info(f"Target issue {epic_key} is an Epic")

        try:
            fields = self.client.request("/rest/api/3/field")
            epic_field = next(
                (
                    f
                    for f in fields
                    if f.get("name") in ("Epic Link", "Parent Link")
                    or "Epic" in f.get("name", "")
                ),
                None,
            )

            if epic_field:
                logger.info(f"Found Epic Link field: {epic_field['id']}")
                try:
                    self.client.request(
                        f"/rest/api/3/issue/{source_issue_key}",
                        "PUT",
                        {"fields": {epic_field["id"]: epic_key}},
                    )
                    return result(
                        True,
                        f"Successfully linked issue {source_issue_key} to Epic {epic_key}",
                        self._link_pair(source_issue_key, epic_key),
                    )
                except Exception as e:
                    logger.warning(f"Failed to set Epic Link field: {e}")

            logger.info("Falling back to standard issue link for Epic relationship")
            return result(False, "Epic link field not found or failed to update")
        except Exception as e:
            logger.error(f"Error in link_issue_to_epic: {e}")
            return result(False, f"Failed to link to Epic: {e}")

    def _create_standard_issue_link(
        self, source_issue_key: str, target_issue_key: str, link_type: str
    ) -> Dict[str, Any]:
        mapped = LINK_TYPE_MAP.get(link_type.lower(), link_type)
        logger.info(f'Creating standard issue link with type "{mapped}"')

        self.client.request(
            "/rest/api/3/issueLink",
            "POST",
            {
                "type": {"name": mapped},
                "inwardIssue": {"key": target_issue_key},
                "outwardIssue": {"key": source_issue_key},
            },
        )
        return result(
            True,
            f'Successfully linked issue {source_issue_key} to {target_issue_key} with type "{mapped}"',
            self._link_pair(source_issue_key, target_issue_key),
        )

    def _create_reference_comment(
        self, source_issue_key: str, target_issue_key: str, original_error: Exception
    ) -> Dict[str, Any]:
        try:
            logger.info("Falling back to adding a comment about the relationship")
            self.add_comment(
                source_issue_key,
                f"This issue is related to {target_issue_key}. "
                "Note: Direct linking failed, this is a reference comment.",
            )
            return result(
                True,
                f"Could not create a direct link, but added a comment referencing {target_issue_key}",
                self._link_pair(source_issue_key, target_issue_key),
            )
        except Exception as comment_error:
            logger.error(f"Failed to add reference comment: {comment_error}")
            raise original_error

    # --- comments ---

    def add_comment(self, issue_key: str, comment: str) -> Dict[str, Any]:
        logger.info(f"Adding comment to issue {issue_key}")
        created = self.client.request(
            f"/rest/api/3/issue/{issue_key}/comment",
            "POST",
            {"body": text_paragraph_doc(comment)},
        )
        return result(True, f"Successfully added comment to issue {issue_key}", created)

    # --- transitions ---

    def get_issue_transitions(self, issue_key: str) -> Dict[str, Any]:
        logger.info(f"Getting transitions for issue {issue_key}")
        transitions = self.client.request(f"/rest/api/3/issue/{issue_key}/transitions")
        return result(
            True, f"Retrieved transitions for issue {issue_key}", transitions
        )

    def transition_issue(self, issue_key: str, transition_id: str) -> Dict[str, Any]:
        logger.info(f"Transitioning issue {issue_key} with transition {transition_id}")
        self.client.request(
            f"/rest/api/3/issue/{issue_key}/transitions",
            "POST",
            {"transition": {"id": str(transition_id)}},
        )
        return result(True, f"Successfully transitioned issue {issue_key}")

    # --- users ---

    def get_project_users(self, project_key: str) -> List[Dict[str, Any]]:
        logger.info(f"Getting users for project {project_key}")
        return self.client.request(
            "/rest/api/3/user/assignable/search", params={"project": project_key}
        )

    def assign_issue(self, issue_key: str, account_id: Optional[str]) -> Dict[str, Any]:
        logger.info(f"Assigning issue {issue_key} to user {account_id}")
        self.client.request(
            f"/rest/api/3/issue/{issue_key}/assignee", "PUT", {"accountId": account_id}
        )
        return result(True, f"Successfully assigned issue {issue_key}")

    # --- projects / metadata ---

    def get_project_info(self, project_key: str) -> Dict[str, Any]:
        logger.info(f"Getting project info: {project_key}")
        return self.client.request(f"/rest/api/3/project/{project_key}")

    def get_create_metadata_issue_types(self, project_key: str) -> Dict[str, Any]:
        response = self.client.request(
            f"/rest/api/3/issue/createmeta/{project_key}/issuetypes"
        )
        # the endpoint pages its results under "issueTypes" (older) or "values"
        if "issueTypes" not in response and "values" in response:
            response = {"issueTypes": response["values"]}
        return response

    def get_create_field_metadata(self, project_key: str, issue_type_id: str) -> Dict[str, Any]:
        response = self.client.request(
            f"/rest/api/3/issue/createmeta/{project_key}/issuetypes/{issue_type_id}"
        )
        if "fields" not in response and "values" in response:
            response = {"fields": response["values"]}
        return response
