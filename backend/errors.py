from typing import Any, Optional


class JiraAPIError(Exception):
    """Raised when a Jira REST call fails or returns a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class InterpretationError(Exception):
    """Raised when a command could not be interpreted by the LLM."""


class ChatNotFoundError(KeyError):
    """Raised when a chat id does not exist in the chat store."""

    def __init__(self, chat_id: str):
        super().__init__(chat_id)
        self.chat_id = chat_id

    def __str__(self) -> str:
        return f"Chat with ID {self.chat_id} not found"


class UnsupportedProviderError(ValueError):
    """Raised for AI providers that are unknown or not implemented."""
