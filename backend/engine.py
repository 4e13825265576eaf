import logging
import threading
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import ValidationError

from ActionExecutor import ActionExecutor
from AIProvider import AIProvider, create_ai_client
from ChatStore import ChatManager, ChatStore
from CommandInterpreter import CommandInterpreter
from config import EngineConfig
from ContentEnhancer import ContentEnhancer
from errors import InterpretationError
from JiraClient import JiraClient
from JiraService import JiraService
from MetadataHandler import MetadataHandler
from ToolSchemas import JiraAction, JiraContext
from utils import configure_logging

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


def as_context(context: Union[JiraContext, Dict[str, Any], None]) -> Optional[JiraContext]:
    if context is None or isinstance(context, JiraContext):
        return context
    return JiraContext.model_validate(context)


class Engine:
    """
    The assistant backend: interprets requests, executes Jira actions and keeps
    chat history.

    Components can be injected for testing; by default they are built from the
    config.
    """

    def __init__(
        self,
        config: EngineConfig,
        ai: Optional[AIProvider] = None,
        jira_client: Optional[JiraClient] = None,
        validate_credentials: bool = True,
    ):
        """
        Initializes the engine.

        Args:
            config: Runtime settings.
            ai: AI provider to use instead of the configured one.
            jira_client: Jira client to use instead of the configured one.
            validate_credentials: Whether to check the Jira credentials on a
                background thread.
        """
        self.config = config
        configure_logging(config.logs_dir)

        self.ai = ai or create_ai_client(config.ai_provider, config.ai_api_key, config.ai_model)
        self.jira_client = jira_client or JiraClient(
            config.jira_base_url,
            config.jira_email,
            config.jira_api_token,
            config.jira_timeout,
        )

        self.jira = JiraService(self.jira_client)
        self.metadata = MetadataHandler(self.jira)
        self.enhancer = ContentEnhancer(self.ai)
        self.interpreter = CommandInterpreter(self.ai, self.metadata)
        self.executor = ActionExecutor(self.jira, self.enhancer, self.metadata)
        self.chats = ChatManager(ChatStore(config.data_dir))

        self._validation_thread: Optional[threading.Thread] = None
        if validate_credentials:
            self._validation_thread = threading.Thread(
                target=self.validate_jira_credentials, daemon=True
            )
            self._validation_thread.start()

    def validate_jira_credentials(self) -> bool:
        """Checks the Jira credentials against /myself. Failures are only logged."""
        try:
            user = self.jira_client.myself()
            logger.info(f"Jira credentials validated for {user.get('displayName', 'unknown user')}")
            return True
        except Exception as e:
            logger.warning(f"Could not validate Jira credentials: {e}")
            return False

    # --- AI ---

    def determine_intent(self, text: str) -> str:
        return self.interpreter.determine_intent(text)

    def interpret_command(
        self,
        text: str,
        context: Union[JiraContext, Dict[str, Any], None] = None,
        chat_history: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Any]:
        return self.interpreter.interpret_command(text, as_context(context), chat_history)

    def execute_action(
        self,
        action: Union[JiraAction, Dict[str, Any]],
        context: Union[JiraContext, Dict[str, Any], None] = None,
    ) -> Dict[str, Any]:
        return self.executor.execute_action(action, as_context(context))

    def transcribe_audio(
        self,
        audio: bytes,
        mime_type: str = "audio/webm",
        filename: str = "recording.webm",
    ) -> str:
        if not audio:
            raise ValueError("No audio data provided")
        logger.info(f"Transcribing {len(audio)} bytes of {mime_type} audio")
        return self.ai.transcribe(audio, mime_type, filename)

    # --- Jira ---

    def get_issue(self, issue_key: str) -> Dict[str, Any]:
        return self.jira.get_issue(issue_key)

    def search_issues(self, jql: str, max_results: int = 10) -> Dict[str, Any]:
        return self.jira.search_issues(jql, max_results)

    def delete_issue(self, issue_key: str) -> Dict[str, Any]:
        return self.jira.delete_issue(issue_key)

    def get_project_info(self, project_key: str) -> Dict[str, Any]:
        return self.jira.get_project_info(project_key)

    def get_issue_transitions(self, issue_key: str) -> Dict[str, Any]:
        return self.jira.get_issue_transitions(issue_key)

    # --- chats ---

    def get_chats(self) -> List[Dict[str, Any]]:
        return self.chats.get_chats()

    def get_active_chat(self) -> Dict[str, Any]:
        return self.chats.get_active_chat()

    def create_new_chat(self) -> Dict[str, Any]:
        return self.chats.create_new_chat()

    def clear_chat(self) -> Dict[str, Any]:
        return self.chats.clear_chat()

    def set_active_chat(self, chat_id: str) -> Dict[str, Any]:
        return self.chats.set_active_chat(chat_id)

    def get_messages(self) -> List[Dict[str, Any]]:
        return self.chats.get_messages()

    def add_message(
        self, role: str, content: str, metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return self.chats.add_message(role, content, metadata)

    # --- chat turn ---

    def stream_chat(
        self,
        text: str,
        context: Union[JiraContext, Dict[str, Any], None] = None,
    ) -> Iterator[Dict[str, Any]]:
        """
        Runs one chat turn and yields its events as they happen.

        Read-only actions are executed immediately; actions that change Jira are
        returned as `pending_action` events for the user to approve.

        Yields:
            Dict[str, Any]: Events with `type` "tool_call", "action_result",
                "pending_action", "final" or "error".
        """
        try:
            context = as_context(context)
        except ValidationError as e:
            yield {"type": "error", "error": f"Invalid context: {e}"}
            return

        history = self.chats.history_for_prompt(HISTORY_LIMIT)
        self.chats.add_message("user", text)

        try:
            interpretation = self.interpret_command(text, context, history)
        except InterpretationError as e:
            self.chats.add_message("assistant", str(e), {"error": True})
            yield {"type": "error", "error": str(e)}
            return

        parameters = interpretation["parameters"]
        outputs = [parameters["message"]]
        pending = []

        for action in parameters.get("actions", []):
            yield {
                "type": "tool_call",
                "name": action["actionType"],
                "args": action.get("parameters", {}),
            }

            if action.get("approveRequired"):
                pending.append(action)
                yield {"type": "pending_action", "action": action}
                continue

            action_result = self.execute_action(action, context)
            if action_result.get("message"):
                outputs.append(action_result["message"])
            yield {"type": "action_result", "action": action, "result": action_result}

        output = "\n\n".join(outputs)
        self.chats.add_message(
            "assistant", output, {"pendingActions": pending} if pending else None
        )
        yield {"type": "final", "output": output}
