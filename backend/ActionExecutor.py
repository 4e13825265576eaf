import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from adf import adf_to_markdown, markdown_to_adf
from ContentEnhancer import ContentEnhancer
from JiraService import JiraService, result
from MetadataHandler import MetadataHandler
from ToolSchemas import JiraAction, JiraContext

logger = logging.getLogger(__name__)

# camelCase action parameter -> JiraService keyword argument
ISSUE_PARAMS = {
    "projectKey": "project_key",
    "summary": "summary",
    "description": "description",
    "issueType": "issue_type",
    "priority": "priority",
    "assignee": "assignee",
    "parent": "parent_key",
    "parentKey": "parent_key",
}
IGNORED_PARAMS = ("issueKey", "confirmDelete")


def describe_issue(issue: Dict[str, Any]) -> str:
    """Renders an issue as a few readable lines."""
    fields = issue.get("fields") or {}
    lines = [f"{issue.get('key')}: {fields.get('summary', '')}"]
    for label, field in (
        ("Type", "issuetype"),
        ("Status", "status"),
        ("Priority", "priority"),
    ):
        if fields.get(field):
            lines.append(f"{label}: {fields[field].get('name')}")
    assignee = fields.get("assignee")
    lines.append(f"Assignee: {assignee.get('displayName') if assignee else 'Unassigned'}")

    description = adf_to_markdown(fields.get("description"))
    if description:
        lines.append(f"\nDescription:\n{description}")
    return "\n".join(lines)


def issue_kwargs(
    params: Dict[str, Any], adf_keys: Set[str], for_update: bool = False
) -> Dict[str, Any]:
    """
    Splits camelCase action parameters into JiraService keyword arguments.

    Unknown keys (custom fields from metadata-driven tools) go to `extra_fields`.
    String values of rich-text custom fields are converted to ADF.
    """
    kwargs: Dict[str, Any] = {}
    extra_fields: Dict[str, Any] = {}

    for key, value in params.items():
        if key in IGNORED_PARAMS or value is None:
            continue
        if key in ISSUE_PARAMS:
            kwargs[ISSUE_PARAMS[key]] = value
        elif key in adf_keys and isinstance(value, str):
            extra_fields[key] = markdown_to_adf(value)
        else:
            extra_fields[key] = value

    if for_update:
        kwargs.pop("project_key", None)
        parent_key = kwargs.pop("parent_key", None)
        if parent_key:
            extra_fields["parent"] = {"key": parent_key}

    if extra_fields:
        kwargs["extra_fields"] = extra_fields
    return kwargs


class ActionExecutor:
    """
    Executes Jira actions produced by the command interpreter.

    `execute_action` never raises: failures are returned as
    `{"success": False, "message": "Error executing action: ..."}`.
    """

    def __init__(
        self,
        jira: JiraService,
        enhancer: ContentEnhancer,
        metadata: MetadataHandler,
    ):
        self.jira = jira
        self.enhancer = enhancer
        self.metadata = metadata

        self.handlers: Dict[
            str, Callable[[Dict[str, Any], Optional[JiraContext]], Dict[str, Any]]
        ] = {
            "getIssue": self.get_issue,
            "searchIssues": self.search_issues,
            "createIssue": self.create_issue,
            "updateIssue": self.update_issue,
            "updateIssueType": self.update_issue_type,
            "deleteIssue": self.delete_issue,
            "addComment": self.add_comment,
            "assignIssue": self.assign_issue,
            "getIssueTransitions": self.get_issue_transitions,
            "transitionIssue": self.transition_issue,
            "getProjectUsers": self.get_project_users,
            "getProjectInfo": self.get_project_info,
            "updateIssuePriority": self.update_issue_priority,
            "linkIssues": self.link_issues,
            "moveToEpic": self.move_to_epic,
            "createEpicAndLink": self.create_epic_and_link,
            "createAndLinkSubtasks": self.create_and_link_subtasks,
            "message": self.message,
            "storeContext": self.store_context,
            "error": self.error,
        }

    def execute_action(
        self,
        action: Union[JiraAction, Dict[str, Any]],
        context: Optional[JiraContext] = None,
    ) -> Dict[str, Any]:
        """
        Executes a single action.

        Args:
            action: A JiraAction, or its wire dict (`actionType`, `parameters`).
            context: Current Jira context, used for content enhancement.

        Returns:
            Dict[str, Any]: `{"success", "message", "data"}`.
        """
        try:
            if not isinstance(action, JiraAction):
                action = JiraAction.model_validate(action)

            logger.info(f"Executing action: {action.action_type} {action.parameters}")

            handler = self.handlers.get(action.action_type)
            if handler is None:
                return result(False, f"Unknown action type: {action.action_type}")

            return handler(dict(action.parameters), context)
        except Exception as e:
            logger.error(f"Error executing action: {e}")
            return result(False, f"Error executing action: {e}")

    # --- enhancement ---

    def enhance_params(
        self,
        params: Dict[str, Any],
        context: Optional[JiraContext],
        action: str = "create",
        issue_type: Optional[str] = None,
        summary: Optional[str] = None,
        project_key: Optional[str] = None,
    ) -> Tuple[Dict[str, Any], Set[str]]:
        """
        Improves the rich-text content of create/update parameters.

        With project metadata every rich-text field is enhanced in one go;
        otherwise only the description is. Values that are already ADF
        documents are sent as they are. Any failure keeps the original
        parameters.

        Args:
            params: Action parameters.
            context: Current Jira context.
            action: "create" or "update".
            issue_type: Issue type to use when the parameters do not name one.
            summary: Summary to use when the parameters do not carry one.
            project_key: Project key to use when the parameters do not carry one.

        Returns:
            Tuple[Dict[str, Any], Set[str]]: The parameters and the keys of the
                rich-text fields among them.
        """
        issue_type = params.get("issueType") or issue_type or "Task"
        lookup = {**params, "issueType": issue_type}
        if project_key:
            lookup.setdefault("projectKey", project_key)

        try:
            described = self.metadata.metadata_params(lookup, context, action)
            if described:
                enhanced = self.enhancer.enhance_adf_fields(issue_type, described, context)
                new_params = dict(params)
                adf_keys = set()
                for key, param in enhanced.items():
                    if isinstance(params.get(key), dict):
                        continue
                    if param.get("isADFField") and param.get("value"):
                        new_params[key] = param["value"]
                        adf_keys.add(key)
                return new_params, adf_keys

            if isinstance(params.get("description"), dict):
                return params, set()

            new_params = dict(params)
            new_params["description"] = self.enhancer.enhance_description(
                issue_type,
                params.get("summary") or summary or "",
                params.get("description") or "",
                context,
            )
            return new_params, set()
        except Exception as e:
            logger.error(f"Failed to enhance params: {e}")
            return params, set()

    # --- issues ---

    def get_issue(self, params, context=None):
        response = self.jira.get_issue(params["issueKey"])
        response["message"] = describe_issue(response["data"])
        return response

    def search_issues(self, params, context=None):
        response = self.jira.search_issues(
            params["jql"], int(params.get("maxResults") or 10)
        )
        issues = response["data"].get("issues", [])

        lines = [f"Found {len(issues)} issues"]
        for index, issue in enumerate(issues, start=1):
            fields = issue.get("fields") or {}
            status = (fields.get("status") or {}).get("name", "Unknown")
            lines.append(f"{index}. {issue.get('key')}: {fields.get('summary', '')} ({status})")

        response["message"] = "\n".join(lines)
        return response

    def create_issue(self, params, context=None):
        params, adf_keys = self.enhance_params(params, context, "create")
        response = self.jira.create_issue(**issue_kwargs(params, adf_keys))
        response["message"] += "\n\n" + describe_issue(response["data"])
        return response

    def update_issue(self, params, context=None):
        adf_keys: Set[str] = set()
        if params.get("description"):
            try:
                issue = self.jira.get_issue(params["issueKey"])["data"]
                fields = issue.get("fields") or {}
                params, adf_keys = self.enhance_params(
                    params,
                    context,
                    "update",
                    issue_type=(fields.get("issuetype") or {}).get("name"),
                    summary=fields.get("summary"),
                    project_key=(fields.get("project") or {}).get("key"),
                )
            except Exception as e:
                logger.warning(f"Failed to enhance description: {e}")

        return self.jira.update_issue(
            params["issueKey"], **issue_kwargs(params, adf_keys, for_update=True)
        )

    def update_issue_type(self, params, context=None):
        return self.jira.update_issue_type(params["issueKey"], params["issueType"])

    def update_issue_priority(self, params, context=None):
        return self.jira.update_issue_priority(params["issueKey"], params["priority"])

    def delete_issue(self, params, context=None):
        return self.jira.delete_issue(params["issueKey"])

    # --- comments, assignment, workflow ---

    def add_comment(self, params, context=None):
        return self.jira.add_comment(params["issueKey"], params["comment"])

    def assign_issue(self, params, context=None):
        return self.jira.assign_issue(params["issueKey"], params.get("accountId"))

    def get_issue_transitions(self, params, context=None):
        response = self.jira.get_issue_transitions(params["issueKey"])
        transitions = response["data"].get("transitions", [])

        lines = [f"Available transitions for {params['issueKey']}:", ""]
        for index, transition in enumerate(transitions, start=1):
            lines.append(f"{index}. ID: {transition.get('id')}, Name: {transition.get('name')}")

        response["message"] = "\n".join(lines)
        return response

    def transition_issue(self, params, context=None):
        return self.jira.transition_issue(params["issueKey"], params["transitionId"])

    # --- projects, users ---

    def get_project_users(self, params, context=None):
        users = self.jira.get_project_users(params["projectKey"])

        lines = [f"Users for project {params['projectKey']}:", ""]
        for index, user in enumerate(users, start=1):
            lines.append(
                f"{index}. Name: {user.get('displayName')}, Account ID: {user.get('accountId')}"
            )
        return result(True, "\n".join(lines), users)

    def get_project_info(self, params, context=None):
        project = self.jira.get_project_info(params["projectKey"])

        lines = [f"Project {project.get('key')}: {project.get('name')}"]
        lead = project.get("lead") or {}
        if lead.get("displayName"):
            lines.append(f"Lead: {lead['displayName']}")
        issue_types = [t.get("name") for t in project.get("issueTypes") or []]
        if issue_types:
            lines.append(f"Issue types: {', '.join(issue_types)}")
        if project.get("description"):
            lines.append(f"\n{project['description']}")
        return result(True, "\n".join(lines), project)

    # --- links and compound operations ---

    def link_issues(self, params, context=None):
        return self.jira.link_issues(
            params["sourceIssueKey"],
            params["targetIssueKey"],
            params.get("linkType") or "relates to",
        )

    def move_to_epic(self, params, context=None):
        logger.info(f"Linking issue {params['issueKey']} to epic {params['targetEpicKey']}")
        response = self.jira.link_issues(
            params["issueKey"], params["targetEpicKey"], "is part of"
        )
        return result(
            True,
            f"Successfully linked issue {params['issueKey']} to epic {params['targetEpicKey']}",
            response.get("data"),
        )

    def create_epic_and_link(self, params, context=None):
        """Creates an epic and, if an issue key is given, links the issue to it."""
        summary = params["epicSummary"]
        description = self.enhancer.enhance_description(
            "Epic", summary, params.get("epicDescription") or "", context
        )

        logger.info(f'Creating epic "{summary}" in project {params["projectKey"]}')
        created = self.jira.create_issue(
            params["projectKey"], summary, description=description, issue_type="Epic"
        )
        epic = created.get("data")
        if not created.get("success") or not epic:
            return result(False, "Failed to create epic")

        epic_key = epic["key"]
        issue_key = params.get("issueKey")
        if not issue_key:
            return result(True, f'Successfully created epic {epic_key} "{summary}"', epic)

        try:
            logger.info(f"Linking issue {issue_key} to new epic {epic_key}")
            self.jira.link_issues(issue_key, epic_key, "is part of")
            return result(
                True,
                f'Successfully created epic {epic_key} "{summary}" and linked issue {issue_key} to it',
                epic,
            )
        except Exception as e:
            logger.error(f"Failed to link issue to epic: {e}")
            try:
                self.jira.add_comment(
                    issue_key,
                    f"This issue should be part of Epic {epic_key}. Automatic linking failed.",
                )
            except Exception as comment_error:
                logger.error(f"Failed to add comment: {comment_error}")

            return result(
                True,
                f'Created epic {epic_key} "{summary}" but failed to link issue {issue_key} to it. '
                "A reference comment was added instead.",
                epic,
            )

    def create_and_link_subtasks(self, params, context=None):
        """Creates subtasks under a parent issue, reporting partial failures."""
        parent = params["parent"]
        subtasks: List[Dict[str, Any]] = params.get("subtasks") or []
        logger.info(f"Creating {len(subtasks)} subtasks for parent issue {parent}")

        parent_issue = self.jira.get_issue(parent)["data"]
        project_key = params.get("projectKey") or (
            (parent_issue.get("fields") or {}).get("project") or {}
        ).get("key")

        created: List[str] = []
        failed: List[str] = []

        for subtask in subtasks:
            summary = subtask.get("summary", "")
            try:
                description = subtask.get("description")
                if description:
                    description = self.enhancer.enhance_description(
                        "Sub-task", summary, description, context
                    )

                response = self.jira.create_issue(
                    project_key,
                    summary,
                    description=description or f"Subtask for {parent}",
                    issue_type="Sub-task",
                    parent_key=parent,
                )
                if not response.get("success") or not response.get("data"):
                    failed.append(summary)
                    continue

                key = response["data"]["key"]
                created.append(key)

                if subtask.get("assignee"):
                    try:
                        self.jira.assign_issue(key, subtask["assignee"])
                    except Exception as e:
                        logger.warning(f"Failed to assign subtask {key}: {e}")
            except Exception as e:
                logger.error(f'Error creating subtask "{summary}": {e}')
                failed.append(summary)

        message = ""
        if created:
            message += (
                f"Successfully created {len(created)} subtasks for {parent}: "
                f"{', '.join(created)}. "
            )
        if failed:
            message += f"Failed to create {len(failed)} subtasks: {', '.join(failed)}"

        return result(
            bool(created), message.strip(), {"issues": [{"key": k} for k in created]}
        )

    # --- non-Jira actions ---

    def message(self, params, context=None):
        return result(True, params.get("message", ""))

    def store_context(self, params, context=None):
        return result(True, "Context noted.", {"context": params.get("context")})

    def error(self, params, context=None):
        return result(False, params.get("message") or "An error occurred")
