import json

import streamlit as st

from utils import (
    approve_action,
    fetch_context,
    init_state,
    load_css,
    process_stream,
    render_chat_history,
    safe_load_image_icon,
    send_request,
    start_new_chat,
    transcribe,
)
from constants import ACTION_NAME_HUMAN_READABLE, AI_ICON_FILE, STYLES_FILE, HUMAN_ICON


# --- Page + state setup ---
st.set_page_config(page_title="Jira Voice Assistant")
load_css(STYLES_FILE)

ai_icon = safe_load_image_icon(AI_ICON_FILE)
st.header("Jira Voice Assistant")

init_state()

# --- Sidebar ---
with st.sidebar:
    st.session_state.jira_url = st.text_input(
        "Jira page URL",
        value=st.session_state.jira_url,
        placeholder="https://your-domain.atlassian.net/browse/PROJ-123",
    )
    context = fetch_context(st.session_state.jira_url)
    if context:
        st.caption(
            " · ".join(
                f"{label}: {context[key]}"
                for label, key in (
                    ("Project", "projectKey"),
                    ("Issue", "issueKey"),
                    ("Board", "boardId"),
                )
                if context.get(key)
            )
        )

    col_new, col_clear = st.columns(2)
    if col_new.button("New chat"):
        start_new_chat()
        st.rerun()
    if col_clear.button("Clear chat"):
        start_new_chat(clear=True)
        st.rerun()

# --- Layout ---
history_box = st.container()
live_box = st.container()
pending_box = st.container()
input_box = st.container()

# --- Render history ---
with history_box:
    render_chat_history(HUMAN_ICON, ai_icon)

# --- Input ---
with input_box:
    audio = st.audio_input("Speak a command")
    with st.form("prompt_form", clear_on_submit=True):
        prompt = st.text_area("Prompt", placeholder="Enter your prompt here…")
        send = st.form_submit_button("Send")

if audio is not None and audio.file_id != st.session_state.last_audio_id:
    st.session_state.last_audio_id = audio.file_id
    with st.spinner("Transcribing…"):
        prompt = transcribe(audio)
    send = bool(prompt)

# --- Handle submission ---
if send:
    if not prompt:
        st.warning("Please enter a prompt.")
    else:
        with live_box:
            st.chat_message("human", avatar=HUMAN_ICON).write(prompt)

            with st.chat_message("ai", avatar=ai_icon):
                tools_box = st.expander("Actions", True)
                final_text_placeholder = st.empty()

                with st.spinner("Thinking…"):
                    response = send_request(prompt, context)
                    if isinstance(response, str):  # error
                        final_text_placeholder.markdown(
                            response, unsafe_allow_html=True
                        )
                    else:
                        _, _, pending = process_stream(
                            response, tools_box, final_text_placeholder
                        )
                        st.session_state.pending_actions = pending

# --- Pending actions ---
with pending_box:
    if st.session_state.last_result:
        st.chat_message("ai", avatar=ai_icon).markdown(
            st.session_state.last_result, unsafe_allow_html=True
        )
        st.session_state.last_result = None

    for index, action in enumerate(list(st.session_state.pending_actions)):
        label = ACTION_NAME_HUMAN_READABLE.get(action["actionType"], action["actionType"])
        with st.container(border=True):
            st.markdown(f"**{label}**")
            st.code(json.dumps(action.get("parameters", {}), indent=2), language="json")

            col_approve, col_reject = st.columns(2)
            if col_approve.button("Approve", key=f"approve_{index}"):
                with st.spinner("Executing…"):
                    st.session_state.last_result = approve_action(action, context)
                st.session_state.pending_actions.pop(index)
                st.rerun()
            if col_reject.button("Reject", key=f"reject_{index}"):
                st.session_state.pending_actions.pop(index)
                st.rerun()
