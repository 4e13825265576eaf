import ast
import json
import logging
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class JiraComment(CamelModel):
    text: str
    author: Optional[str] = None
    created: Optional[str] = None


class JiraContext(CamelModel):
    """What the client knows about the Jira page the user is looking at."""

    url: Optional[str] = None
    domain: Optional[str] = None
    project_key: Optional[str] = None
    issue_key: Optional[str] = None
    issue_summary: Optional[str] = None
    issue_status: Optional[str] = None
    issue_type: Optional[str] = None
    issue_description: Optional[str] = None
    assignee: Optional[str] = None
    board_id: Optional[str] = None
    board_type: Optional[str] = None
    comments: Optional[List[JiraComment]] = None


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class JiraAction(CamelModel):
    """
    A single Jira operation derived from an LLM tool call.

    `parameters` may arrive as a JSON string (or a Python dict-style string) from
    the LLM or from a client, and is parsed into a dict.
    """

    action_type: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    approve_required: bool = False

    @field_validator("parameters", mode="before")
    @classmethod
    def parse_json_string(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, str):
            stripped = v.strip()
            if stripped == "":
                return {}

            # Try JSON first
            try:
                return json.loads(stripped)
            except json.JSONDecodeError:
                # Fallback: Python dict-style string
                try:
                    logging.warning("Falling back to literal_eval for parameters")
                    return ast.literal_eval(stripped)
                except (ValueError, SyntaxError):
                    raise ValueError(f"Invalid parameters string: {stripped}")
        return v
