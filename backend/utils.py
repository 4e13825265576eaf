import os
import re
import json
import logging
from typing import Any, Optional
from dateutil import parser
from datetime import datetime, timezone

from ToolSchemas import JiraContext

APP_LOG_FILE = "app.log"
EVENTS_LOG_FILE = "events.log"

events_logger = logging.getLogger("events")


def configure_logging(logs_dir: str, level: int = logging.INFO) -> None:
    """
    Configures the root logger to write to the console and to `<logs_dir>/app.log`,
    and the `events` logger to write JSON lines to `<logs_dir>/events.log`.

    Args:
        logs_dir: Directory the log files are written to. Created if missing.
        level: Log level of the root logger.
    """
    os.makedirs(logs_dir, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    file_handler = logging.FileHandler(os.path.join(logs_dir, APP_LOG_FILE))
    file_handler.setFormatter(formatter)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [console_handler, file_handler]

    events_handler = logging.FileHandler(os.path.join(logs_dir, EVENTS_LOG_FILE))
    events_handler.setFormatter(logging.Formatter("%(message)s"))
    events_logger.handlers = [events_handler]
    events_logger.setLevel(logging.INFO)
    events_logger.propagate = False


def log_event(event_type: str, **data: Any) -> None:
    """
    Records a structured event as a single JSON line on the `events` logger.

    Args:
        event_type: Upper-case event name, e.g. "INTERPRET_REQUEST".
        **data: JSON-serializable event payload. Non-serializable values are
            stringified.
    """
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "type": event_type,
        "data": data,
    }
    events_logger.info(json.dumps(entry, default=str))


def replace_iso8601_with_relative(text: str) -> str:
    """
    Given an string that contains one or more ISO 8601 timestamps, this function
    replaces all of those timestamps with their relative time difference compared to
    the current UTC time, and then returns the new string.

    Args:
        text: A string that may contain one or more ISO 8601 timestamps.

    Returns:
        str: The input string with all ISO 8601 timestamps replaced by their relative
            time difference from now.
    """
    iso_pattern = (
        r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?"
    )

    def convert(match):
        ts = match.group()
        try:
            dt = parser.isoparse(ts)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)

            now = datetime.now(timezone.utc)
            seconds = int((now - dt).total_seconds())

            if seconds < 60:
                return f"{seconds} seconds ago"
            elif seconds < 3600:
                return f"{seconds // 60} minutes ago"
            elif seconds < 86400:
                return f"{seconds // 3600} hours ago"
            else:
                return f"{seconds // 86400} days ago"
        except (ValueError, OverflowError):
            logging.error(f"Timestamp {ts} could not be parsed")
            return "Invalid timestamp"

    return re.sub(iso_pattern, convert, text)


def extract_jira_context(url: str) -> JiraContext:
    """
    Derives a JiraContext from the URL of a Jira Cloud page.

    Recognises `/projects/<KEY>`, `/browse/<KEY-N>` and
    `/jira/software/projects/<KEY>/boards/<N>` paths.
    """
    match = re.match(r"^(https?://)?([^/]+)(/[^?#]*)?", url.strip())
    domain = match.group(2) if match else None
    path = (match.group(3) if match else "") or ""

    context = JiraContext(url=url, domain=domain)

    project = re.search(r"/projects/([A-Z0-9]+)", path, re.IGNORECASE)
    if project:
        context.project_key = project.group(1).upper()

    issue = re.search(r"/browse/([A-Z][A-Z0-9]*-[0-9]+)", path, re.IGNORECASE)
    if issue:
        context.issue_key = issue.group(1).upper()
        if not context.project_key:
            context.project_key = context.issue_key.split("-")[0]

    board = re.search(
        r"/jira/software/projects/([A-Z0-9]+)/boards/([0-9]+)", path, re.IGNORECASE
    )
    if board:
        context.project_key = board.group(1).upper()
        context.board_id = board.group(2)

    return context


def _truncate(text: str, limit: int = 100) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def convert_jira_context_to_text(context: Optional[JiraContext]) -> str:
    """
    Renders a JiraContext as a markdown block that the LLM can read.

    Returns:
        str: The rendered context, or an empty string if no context is given.
    """
    if not context:
        return ""

    lines = ["# Current Jira Context"]

    if context.project_key:
        lines.append(f"## Project: {context.project_key}")

    if context.issue_key:
        lines.append(f"## Issue: {context.issue_key}")
        if context.issue_summary:
            lines.append(f'Summary: "{context.issue_summary}"')
        if context.issue_status:
            lines.append(f"Status: {context.issue_status}")
        if context.issue_type:
            lines.append(f"Type: {context.issue_type}")
        if context.assignee:
            lines.append(f"Assignee: {context.assignee}")
        if context.issue_description:
            lines.append(f"\nDescription:\n{context.issue_description}")

        comments = context.comments or []
        if comments:
            lines.append(f"\nThis issue has {len(comments)} comments.")
            if len(comments) <= 3:
                lines.append("Recent comments:")
                for index, comment in enumerate(comments, start=1):
                    lines.append(f"- Comment {index}: {_truncate(comment.text)}")
            else:
                lines.append(f"Most recent comment: {_truncate(comments[-1].text)}")

    if context.board_id:
        lines.append("\n## Board Information")
        lines.append(f"Board ID: {context.board_id}")
        if context.board_type:
            lines.append(f"Board Type: {context.board_type}")

    if context.url:
        lines.append(f"\n## URL\n{context.url}")

    lines.append("\n## Available Actions")
    lines.append("- Create new issues in the current project")
    lines.append("- Update issue details (status, assignee, etc.)")
    lines.append("- Add comments to issues")
    lines.append("- Search for issues by key or criteria")
    lines.append("- Provide information about Jira concepts")

    return "\n".join(lines).strip()


def create_enhanced_prompt(user_message: str, context_text: str) -> str:
    """Wraps the user's message with the rendered Jira context and guidance."""
    if not context_text:
        return user_message

    return (
        f"{context_text}\n\n"
        f'User request: "{user_message}"\n\n'
        "Based on the Jira context above, please interpret the user's request and "
        "determine the appropriate action. If the request is related to the current "
        "Jira context, use that information to provide a more relevant response. "
        "If the user is asking about creating, updating, or managing Jira issues, "
        "consider the current project and board context.\n\n"
        "Important notes for Jira operations:\n"
        "1. When updating issue types, make sure the target type exists in the "
        "project (common types: Task, Story, Bug, Epic)\n"
        "2. When creating subtasks, they must be linked to a parent issue\n"
        "3. Some operations may require specific permissions in Jira\n"
        "4. If an operation fails, provide a helpful error message and suggest "
        "alternatives"
    )
