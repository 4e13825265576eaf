import html
import json
import logging
import requests
from PIL import Image
import streamlit as st
from requests import Response
from typing import Any, Dict, List, Optional, Tuple
from streamlit.delta_generator import DeltaGenerator

from constants import (
    ACTION_NAME_HUMAN_READABLE,
    ACTIVE_MESSAGES_URL,
    CHAT_URL,
    CLEAR_CHAT_URL,
    CONTEXT_URL,
    DEFAULT_AI_ICON,
    EXECUTE_URL,
    NEW_CHAT_URL,
    TRANSCRIBE_URL,
)


def render_error(msg: str) -> str:
    """
    Wraps an error message string in an HTML <span> element with the class
    'error-msg'. This allows consistent styling of error messages in the UI.

    Args:
        msg: The error message text to be displayed.

    Returns:
        str: An HTML string containing the formatted error message.
    """

    return f'<span class="error-msg">{msg}</span>'


def safe_load_image_icon(path: str, default=DEFAULT_AI_ICON) -> Image.Image | str:
    try:
        return Image.open(path)
    except Exception as e:
        logging.error(
            f"Image icon at path {path} could not be loaded. Falling back to default icon. Error: {e}"
        )
        return default


def load_css(css_file: str) -> None:
    """
    Loads and applies styles from a `.css` file to the streamlit page.

    Args:
        css_file: The path to the CSS file.
    """
    try:
        with open(css_file) as f:
            st.markdown(f"<style>{f.read()}</style>", unsafe_allow_html=True)
    except FileNotFoundError:
        logging.error(f"CSS stylesheet not found: {css_file}")


def init_state() -> None:
    """Initialises the streamlit page's session state variables."""
    defaults = {
        "pending_actions": [],
        "jira_url": "",
        "last_audio_id": None,
        "last_result": None,
        "context": None,
        "context_url": "",
    }
    for key, val in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = val


def fetch_context(url: str) -> Optional[Dict[str, Any]]:
    """
    Asks the backend for the Jira context (project key, issue key, board id) of a
    Jira Cloud page URL. Contexts are cached in the session state per URL.

    Args:
        url: The URL of the Jira page the user is looking at.

    Returns:
        Optional[Dict[str, Any]]: The camelCase context, or None if no URL is set
            or the backend could not be reached.
    """
    url = (url or "").strip()
    if not url:
        return None
    if st.session_state.get("context_url") == url:
        return st.session_state.get("context")

    try:
        response = requests.post(CONTEXT_URL, json={"url": url}, timeout=30)
        response.raise_for_status()
        context = response.json().get("context")
    except requests.RequestException as e:
        logging.error(f"Could not derive Jira context from {url}: {e}")
        return None

    st.session_state.context_url = url
    st.session_state.context = context
    return context


def render_tool_call_json(obj: Dict[str, Any]) -> str:
    """
    Formats a `tool_call` or `action_result` event (streamed back by the Flask
    server) into a HTML string.

    Parameters:
        obj: A dictionary representing a streamed event.

    Returns:
        str: A HTML string with a formatted message describing the event.
    """
    if obj.get("type") == "action_result":
        result = obj.get("result", {})
        badge = "done" if result.get("success") else "failed"
        name = obj.get("action", {}).get("actionType", "unknown")
        return f'<div class="tool-line"><span class="tool-badge">{badge}</span>{html.escape(name)}</div>'

    name = obj.get("name", "unknown")
    if name in ACTION_NAME_HUMAN_READABLE:
        return f'<div class="tool-line">{ACTION_NAME_HUMAN_READABLE[name]}</div>'

    args = html.escape(json.dumps(obj.get("args", {})))
    return f'<div class="tool-line">Calling unknown action: <span class="tool-badge">{html.escape(name)}</span><br>With arguments:<br>{args}</div>'


def format_tool_calls(calls: List[str]) -> str:
    """
    Joins already rendered tool call HTML strings into one block.

    Args:
        calls: Tool calls rendered by `render_tool_call_json`.

    Returns:
        str: The HTML strings separated by newline characters.
    """
    return "\n".join(calls)


def fetch_history() -> List[Dict[str, Any]]:
    """Returns the messages of the backend's active chat, or [] on failure."""
    try:
        response = requests.get(ACTIVE_MESSAGES_URL, timeout=30)
        response.raise_for_status()
        return response.json().get("messages", [])
    except requests.RequestException as e:
        logging.error(f"Could not fetch chat history: {e}")
        return []


def render_chat_history(
    human_icon: Image.Image | str, ai_icon: Image.Image | str
) -> None:
    """
    Renders the persisted conversation between the user and the AI.

    Args:
        human_icon: The avatar icon for user messages. This should either be a string
            containing a single emoji, or a PIL.Image object.
        ai_icon: The avatar icon for AI messages. This should either be a string
            containing a single emoji, or a PIL.Image object.
    """
    for message in fetch_history():
        if message["role"] == "user":
            st.chat_message("human", avatar=human_icon).markdown(message["content"])
        elif message["role"] == "assistant":
            st.chat_message("ai", avatar=ai_icon).markdown(message["content"])


def start_new_chat(clear: bool = False) -> None:
    try:
        requests.post(CLEAR_CHAT_URL if clear else NEW_CHAT_URL, timeout=30)
    except requests.RequestException as e:
        st.error(f"Could not start a new chat: {e}")
    st.session_state.pending_actions = []


def send_request(prompt: str, context: Optional[Dict[str, Any]]) -> requests.Response | str:
    """
    Sends a POST request to the chat endpoint with the given user prompt and the
    current Jira context.

    Args:
        prompt: The user message to be sent to the API.
        context: The Jira context derived from the page URL, if any.

    Returns:
        request.Response | str: The response object from the API if successful, or an
            error message string if the request fails.
    """
    try:
        return requests.post(
            CHAT_URL,
            json={"text": prompt, "context": context},
            stream=True,
            timeout=300,
        )
    except requests.Timeout:
        return render_error("Timeout: The server took too long to respond.")
    except requests.ConnectionError:
        return render_error(
            "Connection failed: Could not establish a connection to the server."
        )
    except requests.RequestException as e:
        return render_error(f"Network error: {html.escape(str(e))}")


def transcribe(audio_file) -> str | None:
    """
    Sends a recorded audio clip to the backend for transcription.

    Args:
        audio_file: The UploadedFile returned by `st.audio_input`.

    Returns:
        str | None: The transcribed text, or None if transcription failed.
    """
    try:
        response = requests.post(
            TRANSCRIBE_URL,
            files={
                "audio": (
                    audio_file.name or "recording.wav",
                    audio_file.getvalue(),
                    audio_file.type or "audio/wav",
                )
            },
            timeout=120,
        )
        response.raise_for_status()
        return response.json().get("text", "")
    except requests.RequestException as e:
        st.error(f"Transcription failed: {e}")
        return None


def process_stream(
    response: Response,
    tools_box: DeltaGenerator,
    final_text_placeholder: DeltaGenerator,
) -> Tuple[str, List[str], List[Dict[str, Any]]]:
    """
    Process a streaming API response and update UI components with tool calls and
    final output.

    Args:
        response: A streaming response object providing NDJSON.
        tools_box: A Streamlit container used to display tool calls as HTML.
        final_text_placeholder: A Streamlit placeholder used to display the model's
            final output message.

    Returns:
        tuple:
            str: The final output text, or a fallback message if no output is produced.
            list: A list of rendered tool call HTML strings.
            list: The actions waiting for the user's approval.
    """
    rendered_tool_calls = []
    pending_actions = []
    out = None

    try:
        for raw in response.iter_lines(decode_unicode=True):
            if not raw:
                continue

            try:
                obj = json.loads(raw)
            except json.JSONDecodeError:
                rendered_tool_calls.append(f'<span class="tool-badge">raw</span>{raw}')
                tools_box.markdown(
                    format_tool_calls(rendered_tool_calls), unsafe_allow_html=True
                )
                continue

            et = obj.get("type")
            if et in ("tool_call", "action_result"):
                rendered_tool_calls.append(render_tool_call_json(obj))
            elif et == "pending_action":
                pending_actions.append(obj["action"])
            elif et == "final":
                out = obj.get("output", "")
                final_text_placeholder.markdown(out or "_(no output)_")
            elif et == "error":
                out = render_error(f"Error: {obj.get('error', 'Unknown error')}")
                final_text_placeholder.markdown(out, unsafe_allow_html=True)

            tools_box.markdown(
                format_tool_calls(rendered_tool_calls), unsafe_allow_html=True
            )
    except requests.ConnectionError:
        if out is None:
            out = render_error("Connection lost while streaming.")
            final_text_placeholder.markdown(out, unsafe_allow_html=True)
    except requests.RequestException as e:
        out = render_error(f"Stream error: {html.escape(str(e))}")
        final_text_placeholder.markdown(out, unsafe_allow_html=True)

    return out or "No final output produced.", rendered_tool_calls, pending_actions


def approve_action(
    action: Dict[str, Any], context: Optional[Dict[str, Any]]
) -> str | None:
    """
    Executes an approved action and records its result in the active chat.

    Args:
        action: The pending action the user approved.
        context: The Jira context of the current page, if any.

    Returns:
        str | None: None once the result is recorded (it then shows up in the chat
            history), otherwise a message to show to the user.
    """
    try:
        response = requests.post(
            EXECUTE_URL, json={"action": action, "context": context}, timeout=300
        )
        response.raise_for_status()
        result = response.json()["result"]
    except requests.RequestException as e:
        return render_error(f"Could not execute action: {html.escape(str(e))}")

    message = result.get("message") or f"Action {action.get('actionType')} executed"
    try:
        recorded = requests.post(
            ACTIVE_MESSAGES_URL,
            json={
                "role": "assistant",
                "content": message,
                "metadata": {"action": action, "success": result.get("success")},
            },
            timeout=30,
        )
        recorded.raise_for_status()
        return None
    except requests.RequestException as e:
        logging.error(f"Could not record action result: {e}")

    return message if result.get("success") else render_error(html.escape(message))
