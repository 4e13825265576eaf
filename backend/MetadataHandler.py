import copy
import json
import logging
from typing import Any, Dict, List, Optional

from adf import adf_to_markdown
from JiraService import JiraService
from prompts import doc_field_description
from ToolSchemas import JiraContext

logger = logging.getLogger(__name__)

# Standard fields already covered by the tool schema or filled automatically
SKIPPED_FIELDS = ("summary", "issuetype", "project", "parent", "reporter", "team")

# Jira schema type -> JSON schema type
SCHEMA_TYPES = {
    "number": "number",
    "integer": "integer",
    "array": "array",
    "boolean": "boolean",
}

SCHEMA_HINTS = {
    "user": " - Use account ID from get_project_users",
    "datetime": " - Use ISO format (YYYY-MM-DDTHH:MM:SS.sssZ)",
    "date": " - Use ISO format (YYYY-MM-DD)",
    "issuelinks": " - Use issue key (e.g., PROJ-123)",
}


def field_key(field: Dict[str, Any]) -> str:
    return field.get("key") or field.get("fieldId")


def is_doc_field(field: Dict[str, Any]) -> bool:
    """True for rich-text fields whose values are ADF documents."""
    schema_type = (field.get("schema") or {}).get("type")
    default = field.get("defaultValue")
    return schema_type == "doc" or (
        isinstance(default, dict) and default.get("type") == "doc"
    )


def allowed_value_label(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        for attr in ("name", "value", "key", "id"):
            if value.get(attr):
                return str(value[attr])
    return str(value)


def allowed_values_details(values: List[Any]) -> str:
    details = []
    for value in values:
        if not isinstance(value, dict):
            continue
        picked = {
            attr: value[attr]
            for attr in ("name", "value", "key", "id", "description")
            if value.get(attr)
        }
        details.append(f"\n```\n{json.dumps(picked)}\n```\n")

    if not details:
        return ""
    return " - Details about allowed values: " + "".join(details)


def field_property(field: Dict[str, Any], action: str) -> Dict[str, Any]:
    """
    Converts one Jira field from createmeta into a JSON-schema tool parameter.

    Args:
        field: Field metadata as returned by the createmeta endpoint.
        action: "create" or "update"; only changes the wording of doc-field hints.

    Returns:
        Dict[str, Any]: The JSON-schema property for the field.
    """
    schema = field.get("schema") or {}
    schema_type = schema.get("type")
    json_type = SCHEMA_TYPES.get(schema_type, "string")

    items_type = schema.get("items", "string")
    items_hint = ""
    if items_type == "issuelinks":
        items_type = "string"
        items_hint = " - Use issue key (e.g., PROJ-123)"

    description = field.get("name", field_key(field))
    if field.get("required"):
        description += " (Required)"
    if schema_type:
        of_items = f" of {items_type}" if schema_type == "array" else ""
        description += f" [{schema_type}{of_items}]"
    description += SCHEMA_HINTS.get(schema_type, "")

    prop: Dict[str, Any] = {"type": json_type, "description": description}
    if field.get("defaultValue") is not None:
        prop["default"] = field["defaultValue"]

    if json_type == "array":
        prop["items"] = {
            "type": "string",
            "description": f"Items of type {items_type}{items_hint}",
        }

    if is_doc_field(field):
        prop["description"] += doc_field_description(field.get("defaultValue"), action)

    if field.get("autoCompleteUrl"):
        prop["description"] += (
            f" - Values can be looked up via API at {field['autoCompleteUrl']}"
        )

    allowed = field.get("allowedValues") or []
    if allowed:
        enum_values = [allowed_value_label(v) for v in allowed]
        target = prop["items"] if json_type == "array" else prop
        target["enum"] = enum_values
        target["description"] += allowed_values_details(allowed)

    return prop


def issue_type_tool(
    base_tool: Dict[str, Any],
    issue_type: Dict[str, Any],
    action: str,
    project_key: str,
) -> Dict[str, Any]:
    """Specialises the generic create/update tool for a single issue type."""
    tool = copy.deepcopy(base_tool)
    function = tool["function"]
    parameters = function["parameters"]
    properties = parameters["properties"]
    required = parameters.setdefault("required", [])

    name = issue_type["name"]
    type_name = "_".join(name.lower().split())
    suffix = f" ({issue_type['description']})" if issue_type.get("description") else ""

    if action == "create":
        function["name"] = f"create_{type_name}"
        function["description"] = f"Create a new {name} in Jira{suffix}"
    else:
        function["name"] = f"update_{type_name}"
        function["description"] = f"Update {name} in Jira{suffix}"

    properties["projectKey"] = {
        "type": "string",
        "description": "The project key (e.g., PROJ)",
        "default": project_key,
    }
    properties["issueType"] = {
        "type": "string",
        "description": "The type of issue",
        "enum": [name],
        "default": name,
    }

    if issue_type.get("subtask"):
        if "parent" not in required:
            required.append("parent")
    else:
        properties.pop("parent", None)

    for field in issue_type.get("fields") or []:
        key = field_key(field)
        if not key or key in SKIPPED_FIELDS:
            continue

        properties[key] = field_property(field, action)
        if field.get("required") and key not in required:
            required.append(key)

    return tool


class MetadataHandler:
    """Fetches project metadata from Jira and turns it into LLM tool schemas."""

    def __init__(self, jira: JiraService):
        self.jira = jira

    def fetch_project_metadata(self, project_key: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Fetches the issue types of a project together with their field metadata.

        An issue type whose fields cannot be fetched is kept with no fields.

        Returns:
            Optional[Dict[str, Any]]: `{"projectKey", "issueTypes"}`, or None if
                no project key is given or the issue types cannot be fetched.
        """
        if not project_key:
            logger.info("No project key provided for metadata fetch")
            return None

        try:
            issue_types = self.jira.get_create_metadata_issue_types(project_key).get(
                "issueTypes", []
            )
        except Exception as e:
            logger.error(f"Error fetching Jira metadata: {e}")
            return None

        logger.info(f"Fetched {len(issue_types)} issue types for project {project_key}")

        metadata: Dict[str, Any] = {"projectKey": project_key, "issueTypes": []}
        for issue_type in issue_types:
            try:
                fields = self.jira.get_create_field_metadata(
                    project_key, issue_type["id"]
                ).get("fields", [])
                logger.info(f"Fetched field metadata for issue type {issue_type['name']}")
            except Exception as e:
                logger.warning(
                    f"Failed to fetch field metadata for issue type {issue_type['name']}: {e}"
                )
                fields = []

            metadata["issueTypes"].append(
                {
                    "id": issue_type["id"],
                    "name": issue_type["name"],
                    "description": issue_type.get("description"),
                    "fields": fields,
                    "subtask": issue_type.get("subtask", False),
                }
            )

        return metadata

    @staticmethod
    def update_tools_with_metadata(
        tools: List[Dict[str, Any]], metadata: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """
        Replaces the generic create/update tools with one pair per issue type.

        The input list is left untouched. Without issue types the generic tools
        are kept.

        Args:
            tools: Tool definitions, including `create_issue` and `update_issue`.
            metadata: Project metadata from `fetch_project_metadata`.

        Returns:
            List[Dict[str, Any]]: The new list of tool definitions.
        """
        updated = copy.deepcopy(tools)

        base_tools = {
            tool["function"]["name"]: tool
            for tool in updated
            if tool["function"]["name"] in ("create_issue", "update_issue")
        }
        updated = [tool for tool in updated if tool["function"]["name"] not in base_tools]

        issue_types = metadata.get("issueTypes") or []
        if not issue_types:
            updated.extend(base_tools.values())
            return updated

        for issue_type in issue_types:
            if "create_issue" in base_tools:
                updated.append(
                    issue_type_tool(
                        base_tools["create_issue"], issue_type, "create", metadata["projectKey"]
                    )
                )
            if "update_issue" in base_tools:
                updated.append(
                    issue_type_tool(
                        base_tools["update_issue"], issue_type, "update", metadata["projectKey"]
                    )
                )

        return updated

    @staticmethod
    def metadata_summary(metadata: Dict[str, Any]) -> str:
        lines = []
        for issue_type in metadata.get("issueTypes") or []:
            line = f"- {issue_type['name']}"
            if issue_type.get("description"):
                line += f": {issue_type['description']}"
            lines.append(line)
        return "\n".join(lines)

    def metadata_params(
        self,
        params: Dict[str, Any],
        context: Optional[JiraContext] = None,
        action: str = "create",
    ) -> Optional[Dict[str, Dict[str, Any]]]:
        """
        Describes action parameters with the field metadata of their issue type.

        Each entry is `{key, fieldName, value, isADFField, template}`. Rich-text
        fields are flagged as ADF fields, and their default value is attached as a
        markdown template. When creating, empty rich-text fields are included too
        so their content can be generated.

        Args:
            params: Action parameters (camelCase keys and Jira field ids).
            context: Current Jira context; supplies the project key if missing.
            action: "create" or "update".

        Returns:
            Optional[Dict[str, Dict[str, Any]]]: The described parameters, or None
                if the metadata or the issue type cannot be found.
        """
        project_key = params.get("projectKey") or (context.project_key if context else None)
        metadata = self.fetch_project_metadata(project_key)
        if not metadata:
            return None

        issue_type_name = (params.get("issueType") or "Task").lower()
        issue_type = next(
            (t for t in metadata["issueTypes"] if t["name"].lower() == issue_type_name),
            None,
        )
        if not issue_type:
            logger.info(f"Issue type {issue_type_name} not found in project {project_key}")
            return None

        fields = {field_key(f): f for f in issue_type.get("fields") or [] if field_key(f)}

        described: Dict[str, Dict[str, Any]] = {}
        for key, value in params.items():
            field = fields.get(key, {})
            adf_field = key == "description" or is_doc_field(field)
            described[key] = {
                "key": key,
                "fieldName": field.get("name", key),
                "value": value if isinstance(value, str) or value is None else json.dumps(value),
                "isADFField": adf_field,
                "template": (adf_to_markdown(field.get("defaultValue")) or None)
                if adf_field
                else None,
            }

        if action == "create":
            for key, field in fields.items():
                if key in described or key in SKIPPED_FIELDS or not is_doc_field(field):
                    continue
                described[key] = {
                    "key": key,
                    "fieldName": field.get("name", key),
                    "value": "",
                    "isADFField": True,
                    "template": adf_to_markdown(field.get("defaultValue")) or None,
                }

        return described
