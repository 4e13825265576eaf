import base64
import logging
from typing import Any, Dict, List, Optional, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from openai import OpenAI

from config import KNOWN_PROVIDERS
from errors import UnsupportedProviderError

logger = logging.getLogger(__name__)

TRANSCRIPTION_PROMPT = "Generate a transcript of the speech."


def to_langchain_messages(messages: List[Dict[str, str]]) -> List[BaseMessage]:
    """
    Converts `{"role", "content"}` dicts into LangChain messages.

    Args:
        messages: Messages with a role of "system", "user" or "assistant".

    Returns:
        List[BaseMessage]: The converted messages. Unknown roles are sent as
            user messages.
    """
    converted: List[BaseMessage] = []
    for m in messages:
        role = m.get("role")
        content = m.get("content") or ""
        if role == "system":
            converted.append(SystemMessage(content=content))
        elif role == "assistant":
            converted.append(AIMessage(content=content))
        else:
            converted.append(HumanMessage(content=content))
    return converted


def message_text(message: BaseMessage) -> str:
    """Returns the text of a message whose content may be a list of parts."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class AIProvider:
    """
    Chat completion and transcription through a LangChain chat model.

    Subclasses choose the chat model and implement `transcribe`.
    """

    name = ""
    default_model = ""

    def __init__(self, api_key: str, model: Optional[str] = None):
        if not api_key:
            raise ValueError(f"An API key is required for the {self.name} provider")
        self.api_key = api_key
        self.model = model or self.default_model
        self.llm = self.build_chat_model()
        logger.info(f"Using {self.name} provider with model {self.model}")

    def build_chat_model(self) -> BaseChatModel:
        raise NotImplementedError

    def complete(
        self,
        messages: List[Dict[str, str]],
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: Optional[float] = None,
        tool_choice: Union[str, None] = "auto",
    ) -> AIMessage:
        """
        Runs a chat completion.

        Args:
            messages: `{"role", "content"}` dicts, system prompt first.
            tools: OpenAI-style function tool definitions, if any.
            temperature: Sampling temperature override.
            tool_choice: "auto", or the name of a tool the model must call.

        Returns:
            AIMessage: The model's reply; `tool_calls` holds parsed tool calls.
        """
        llm = self.llm
        if temperature is not None:
            llm = llm.model_copy(update={"temperature": temperature})

        runnable = llm.bind_tools(tools, tool_choice=tool_choice) if tools else llm
        return runnable.invoke(to_langchain_messages(messages))

    def transcribe(self, audio: bytes, mime_type: str, filename: str) -> str:
        raise NotImplementedError


class OpenAIProvider(AIProvider):
    name = "openai"
    default_model = "gpt-4-turbo"
    transcription_model = "whisper-1"

    def build_chat_model(self) -> BaseChatModel:
        return ChatOpenAI(model=self.model, api_key=self.api_key)

    def transcribe(self, audio: bytes, mime_type: str, filename: str) -> str:
        client = OpenAI(api_key=self.api_key)
        transcription = client.audio.transcriptions.create(
            model=self.transcription_model,
            file=(filename, audio, mime_type),
        )
        return transcription.text


class GeminiProvider(AIProvider):
    name = "gemini"
    default_model = "gemini-2.0-flash"

    def build_chat_model(self) -> BaseChatModel:
        return ChatGoogleGenerativeAI(model=self.model, google_api_key=self.api_key)

    def transcribe(self, audio: bytes, mime_type: str, filename: str) -> str:
        message = HumanMessage(
            content=[
                {"type": "text", "text": TRANSCRIPTION_PROMPT},
                {
                    "type": "media",
                    "mime_type": mime_type,
                    "data": base64.b64encode(audio).decode("utf-8"),
                },
            ]
        )
        return message_text(self.llm.invoke([message])).strip()


PROVIDERS = {
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
}


def create_ai_client(provider: str, api_key: str, model: Optional[str] = None) -> AIProvider:
    """
    Creates the AI provider for a provider name.

    Raises:
        UnsupportedProviderError: If the provider is unknown or not implemented.
    """
    name = (provider or "").lower()
    if name not in PROVIDERS:
        if name in KNOWN_PROVIDERS:
            raise UnsupportedProviderError(f"{name.capitalize()} adapter not implemented yet")
        raise UnsupportedProviderError(f"Unsupported AI provider: {provider}")
    return PROVIDERS[name](api_key, model)
