import json
import logging
from typing import Any, Dict

from flask import Flask, Response, jsonify, request, stream_with_context
from flask_cors import CORS

from config import EngineConfig
from errors import ChatNotFoundError, JiraAPIError
from utils import extract_jira_context, log_event, replace_iso8601_with_relative

logger = logging.getLogger(__name__)


def jira_error_response(e: JiraAPIError):
    return jsonify({"error": str(e), "details": e.details}), e.status_code or 500


def create_app(engine) -> Flask:
    """
    Builds the Flask app serving the assistant's HTTP API.

    Args:
        engine: The `Engine` every route delegates to.

    Returns:
        Flask: The configured app.
    """
    app = Flask(__name__)
    CORS(app)

    @app.route("/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify({"status": "ok"}), 200

    # -------------------- AI --------------------

    @app.route("/api/transcribe", methods=["POST"])
    def transcribe():
        audio = request.files.get("audio")
        if audio is None:
            return jsonify({"error": "No audio file provided"}), 400

        data = audio.read()
        if not data:
            return jsonify({"error": "Audio file is empty"}), 400

        log_event(
            "TRANSCRIBE_REQUEST",
            filename=audio.filename,
            mimetype=audio.mimetype,
            size=len(data),
        )
        try:
            text = engine.transcribe_audio(
                data, audio.mimetype or "audio/webm", audio.filename or "recording.webm"
            )
        except Exception as e:
            logger.error(f"Error transcribing audio: {e}")
            log_event("TRANSCRIBE_ERROR", error=str(e))
            return jsonify({"error": f"Failed to transcribe audio: {e}"}), 500

        log_event("TRANSCRIBE_RESPONSE", text=text)
        return jsonify({"text": text}), 200

    @app.route("/api/intent", methods=["POST"])
    def intent():
        data = request.get_json(force=True, silent=True) or {}
        text = data.get("text", "")
        if not text:
            return jsonify({"error": "Missing 'text'"}), 400

        try:
            return jsonify({"intent": engine.determine_intent(text)}), 200
        except Exception as e:
            logger.error(f"Error determining intent: {e}")
            return jsonify({"error": str(e)}), 500

    @app.route("/api/interpret", methods=["POST"])
    def interpret():
        data = request.get_json(force=True, silent=True) or {}
        text = data.get("text", "")
        if not text:
            return jsonify({"error": "Missing 'text'"}), 400

        log_event("INTERPRET_REQUEST", text=text, context=data.get("context"))
        try:
            action = engine.interpret_command(
                text, data.get("context"), data.get("chatHistory")
            )
        except Exception as e:
            logger.error(f"Error interpreting command: {e}")
            log_event("INTERPRET_ERROR", error=str(e))
            error_action = {"actionType": "error", "parameters": {"message": str(e)}}
            return jsonify({"action": error_action}), 500

        log_event("INTERPRET_RESPONSE", action=action)
        return jsonify({"action": action}), 200

    @app.route("/api/execute", methods=["POST"])
    def execute():
        data = request.get_json(force=True, silent=True) or {}
        action = data.get("action")
        if not action:
            return jsonify({"error": "Missing 'action'"}), 400

        log_event("JIRA_ACTION_REQUEST", action=action)
        result = engine.execute_action(action, data.get("context"))
        if result.get("success"):
            log_event("JIRA_ACTION_RESPONSE", result=result)
        else:
            log_event("JIRA_ACTION_ERROR", result=result)
        return jsonify({"result": result}), 200

    @app.route("/api/chat", methods=["POST"])
    def chat():
        """
        Streams a chat turn as NDJSON (newline-delimited JSON).
        Each event is yielded as soon as it happens, followed by a final output object.
        """
        data = request.get_json(force=True, silent=True) or {}
        text = data.get("text", "")
        if not text:
            return jsonify({"error": "Missing 'text'"}), 400

        context = data.get("context")
        log_event("INTERPRET_REQUEST", text=text, context=context)

        @stream_with_context
        def generator():
            try:
                for event in engine.stream_chat(text, context):
                    if event.get("type") == "final":
                        # apply post-processing to final output only
                        event["output"] = replace_iso8601_with_relative(event["output"])
                        log_event("INTERPRET_RESPONSE", output=event["output"])
                    elif event.get("type") == "error":
                        log_event("INTERPRET_ERROR", error=event.get("error"))
                    yield json.dumps(event, default=str) + "\n"
            except Exception as e:
                logger.error(f"Error streaming chat: {e}")
                log_event("INTERPRET_ERROR", error=str(e))
                yield json.dumps({"type": "error", "error": str(e)}) + "\n"

        return Response(generator(), mimetype="application/x-ndjson")

    @app.route("/api/context", methods=["POST"])
    def context_from_url():
        """Derives the Jira context from the URL of the page the user is on."""
        data = request.get_json(force=True, silent=True) or {}
        url = (data.get("url") or "").strip()
        if not url:
            return jsonify({"error": "Missing 'url'"}), 400

        return jsonify({"context": extract_jira_context(url).to_json_dict()}), 200

    # -------------------- Jira --------------------

    @app.route("/api/jira/issue/<issue_key>", methods=["GET"])
    def get_issue(issue_key: str):
        try:
            return jsonify(engine.get_issue(issue_key)), 200
        except JiraAPIError as e:
            return jira_error_response(e)

    @app.route("/api/jira/issue/<issue_key>", methods=["DELETE"])
    def delete_issue(issue_key: str):
        result = engine.delete_issue(issue_key)
        return jsonify(result), 200 if result.get("success") else 500

    @app.route("/api/jira/search", methods=["POST"])
    def search():
        data = request.get_json(force=True, silent=True) or {}
        jql = data.get("jql", "")
        if not jql:
            return jsonify({"error": "Missing 'jql'"}), 400

        try:
            return jsonify(engine.search_issues(jql, int(data.get("maxResults", 10)))), 200
        except JiraAPIError as e:
            return jira_error_response(e)

    @app.route("/api/jira/project/<project_key>", methods=["GET"])
    def get_project(project_key: str):
        try:
            return jsonify(engine.get_project_info(project_key)), 200
        except JiraAPIError as e:
            return jira_error_response(e)

    @app.route("/api/jira/transitions/<issue_key>", methods=["GET"])
    def get_transitions(issue_key: str):
        try:
            return jsonify(engine.get_issue_transitions(issue_key)), 200
        except JiraAPIError as e:
            return jira_error_response(e)

    # -------------------- Chats --------------------

    @app.route("/api/chats", methods=["GET"])
    def get_chats():
        return jsonify({"chats": engine.get_chats()}), 200

    @app.route("/api/chats/new", methods=["POST"])
    def new_chat():
        return jsonify({"chat": engine.create_new_chat()}), 200

    @app.route("/api/chats/active", methods=["GET"])
    def active_chat():
        return jsonify({"chat": engine.get_active_chat()}), 200

    @app.route("/api/chats/clear", methods=["POST"])
    def clear_chat():
        return jsonify({"chat": engine.clear_chat()}), 200

    @app.route("/api/chats/active/messages", methods=["GET"])
    def get_messages():
        return jsonify({"messages": engine.get_messages()}), 200

    @app.route("/api/chats/active/messages", methods=["POST"])
    def add_message():
        data: Dict[str, Any] = request.get_json(force=True, silent=True) or {}
        content = data.get("content", "")
        if not content:
            return jsonify({"error": "Missing 'content'"}), 400

        try:
            message = engine.add_message(
                data.get("role", "user"), content, data.get("metadata")
            )
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        return jsonify({"message": message}), 200

    @app.route("/api/chats/<chat_id>/activate", methods=["POST"])
    def activate_chat(chat_id: str):
        try:
            return jsonify({"chat": engine.set_active_chat(chat_id)}), 200
        except ChatNotFoundError as e:
            return jsonify({"error": str(e)}), 404

    return app


if __name__ == "__main__":
    from engine import Engine

    config = EngineConfig.from_env()
    app = create_app(Engine(config))
    app.run(host=config.host, port=config.port, debug=False)
