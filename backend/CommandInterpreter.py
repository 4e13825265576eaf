import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from AIProvider import AIProvider, message_text
from errors import InterpretationError
from JiraTools import JIRA_TOOLS
from MetadataHandler import MetadataHandler
from prompts import jira_system_prompt
from ToolSchemas import JiraAction, JiraContext
from utils import convert_jira_context_to_text, create_enhanced_prompt

logger = logging.getLogger(__name__)

DEFAULT_REPLY = "I understood your request."


def same_args(args: Dict[str, Any]) -> Dict[str, Any]:
    return dict(args)


def issue_type_args(args: Dict[str, Any]) -> Dict[str, Any]:
    return {"issueKey": args.get("issueKey"), "issueType": args.get("newIssueType")}


def issue_key_only(args: Dict[str, Any]) -> Dict[str, Any]:
    return {"issueKey": args.get("issueKey")}


# tool name -> (action type, approval required, argument mapper)
TOOL_ACTIONS: Dict[str, Tuple[str, bool, Callable[[Dict[str, Any]], Dict[str, Any]]]] = {
    "get_issue": ("getIssue", False, same_args),
    "search_issues": ("searchIssues", False, same_args),
    "get_issue_transitions": ("getIssueTransitions", False, same_args),
    "get_project_users": ("getProjectUsers", False, same_args),
    "get_project_info": ("getProjectInfo", False, same_args),
    "create_issue": ("createIssue", True, same_args),
    "update_issue": ("updateIssue", True, same_args),
    "update_issue_type": ("updateIssueType", True, issue_type_args),
    "delete_issue": ("deleteIssue", True, issue_key_only),
    "add_comment": ("addComment", True, same_args),
    "assign_issue": ("assignIssue", True, same_args),
    "transition_issue": ("transitionIssue", True, same_args),
    "update_issue_priority": ("updateIssuePriority", True, same_args),
    "link_issues": ("linkIssues", True, same_args),
    "move_to_epic": ("moveToEpic", True, same_args),
    "create_epic_and_link": ("createEpicAndLink", True, same_args),
    "create_subtasks": ("createAndLinkSubtasks", True, same_args),
}


def tool_call_to_action(name: str, args: Dict[str, Any]) -> JiraAction:
    """
    Maps one LLM tool call onto a Jira action.

    Issue-type specific tools (`create_bug`, `update_story`, ...) map onto the
    generic create/update actions.
    """
    if name in TOOL_ACTIONS:
        action_type, approve_required, mapper = TOOL_ACTIONS[name]
        return JiraAction(
            action_type=action_type,
            parameters=mapper(args),
            approve_required=approve_required,
        )
    if name.startswith("create"):
        return JiraAction(action_type="createIssue", parameters=args, approve_required=True)
    if name.startswith("update"):
        return JiraAction(action_type="updateIssue", parameters=args, approve_required=True)

    return JiraAction(
        action_type="message",
        parameters={"message": f"I don't know how to perform the action: {name}"},
    )


class CommandInterpreter:
    """Turns a user's natural-language request into Jira actions via tool calling."""

    def __init__(self, ai: AIProvider, metadata: MetadataHandler):
        self.ai = ai
        self.metadata = metadata

    def interpret_command(
        self,
        text: str,
        context: Optional[JiraContext] = None,
        chat_history: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Any]:
        """
        Interprets a command and returns a message action carrying the actions.

        Args:
            text: The user's request.
            context: What is known about the Jira page the user is on.
            chat_history: Earlier `{"role", "content"}` messages of the chat.

        Returns:
            Dict[str, Any]: `{"actionType": "message", "parameters": {"message",
                "actions"}}` in wire (camelCase) format.

        Raises:
            InterpretationError: If the LLM call fails.
        """
        try:
            logger.info(f"Interpreting command: {text}")

            context_text = convert_jira_context_to_text(context)
            prompt = create_enhanced_prompt(text, context_text)

            tools = JIRA_TOOLS
            if context and context.project_key:
                project_metadata = self.metadata.fetch_project_metadata(context.project_key)
                if project_metadata:
                    tools = self.metadata.update_tools_with_metadata(tools, project_metadata)
                    summary = self.metadata.metadata_summary(project_metadata)
                    if summary:
                        prompt += f"\n\nAvailable Jira issue types:\n{summary}"

            messages = [
                {"role": "system", "content": jira_system_prompt},
                *(chat_history or []),
                {"role": "user", "content": prompt},
            ]
            logger.debug(f"Enhanced prompt: {prompt}")

            response = self.ai.complete(messages, tools=tools, tool_choice="auto")

            actions = []
            for tool_call in response.tool_calls:
                logger.info(f"Tool call: {tool_call['name']} {tool_call['args']}")
                action = tool_call_to_action(tool_call["name"], tool_call["args"] or {})
                actions.append(action.to_json_dict())

            return {
                "actionType": "message",
                "parameters": {
                    "message": message_text(response) or DEFAULT_REPLY,
                    "actions": actions,
                },
            }
        except Exception as e:
            logger.error(f"Error interpreting command: {e}")
            raise InterpretationError(f"Error interpreting command: {e}") from e

    def determine_intent(self, text: str) -> str:
        """Answers a request with a plain completion, without tools."""
        logger.info(f"Determining intent for text: {text}")
        response = self.ai.complete(
            [
                {"role": "system", "content": jira_system_prompt},
                {"role": "user", "content": text},
            ],
            temperature=0.3,
        )
        return message_text(response)
