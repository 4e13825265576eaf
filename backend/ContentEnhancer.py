import copy
import json
import logging
from typing import Any, Dict, List, Optional

from AIProvider import AIProvider, message_text
from prompts import (
    adf_fields_system_prompt,
    adf_formatting_rules,
    description_system_prompt,
    enhance_description_prompt,
    enhance_description_system_prompt,
    enhance_sections,
    generate_description_prompt,
    generate_sections,
    sections_for,
)
from ToolSchemas import JiraContext

logger = logging.getLogger(__name__)

RECENT_MESSAGES = 5
SET_ADF_FIELDS_TOOL = "set_adf_fields"


def context_block(context: Optional[JiraContext]) -> str:
    if not context:
        return ""
    return f"\n\nCurrent context: {json.dumps(context.to_json_dict())}"


def history_block(chat_history: Optional[List[Dict[str, str]]]) -> str:
    if not chat_history:
        return ""
    lines = ["\n\nRecent conversation:"]
    for m in chat_history[-RECENT_MESSAGES:]:
        lines.append(f"- {m.get('role')}: {m.get('content')}")
    return "\n".join(lines)


class ContentEnhancer:
    """Uses the LLM to write and improve rich-text issue content."""

    def __init__(self, ai: AIProvider):
        self.ai = ai

    def generate_description(
        self,
        issue_type: str,
        summary: str,
        context: Optional[JiraContext] = None,
        chat_history: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        """
        Writes a new description for an issue following ticketing best practices.

        Returns:
            str: Markdown description, or a one-line placeholder if the LLM fails.
        """
        prompt = generate_description_prompt.format(issue_type=issue_type, summary=summary)
        prompt += context_block(context)
        prompt += history_block(chat_history)
        prompt += "\n\n" + sections_for(issue_type, generate_sections)

        logger.debug(f"Generated description prompt: {prompt}")

        try:
            response = self.ai.complete(
                [
                    {"role": "system", "content": description_system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.7,
            )
            return message_text(response)
        except Exception as e:
            logger.error(f"Error generating AI description: {e}")
            return f"Description for {issue_type}: {summary}"

    def enhance_description(
        self,
        issue_type: str,
        summary: str,
        original: Optional[str],
        context: Optional[JiraContext] = None,
        chat_history: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        """
        Restructures an existing description while keeping its content.

        An empty description is generated from scratch instead. If the LLM fails
        the original description is returned.
        """
        if not original or not original.strip():
            return self.generate_description(issue_type, summary, context, chat_history)

        prompt = enhance_description_prompt.format(
            issue_type=issue_type, summary=summary, original=original
        )
        prompt += context_block(context)
        prompt += "\n\n" + sections_for(issue_type, enhance_sections)

        logger.debug(f"Generated enhancement prompt: {prompt}")

        try:
            response = self.ai.complete(
                [
                    {"role": "system", "content": enhance_description_system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.5,
            )
            return message_text(response) or original
        except Exception as e:
            logger.error(f"Error enhancing description: {e}")
            return original

    def enhance_adf_fields(
        self,
        issue_type: str,
        params: Dict[str, Dict[str, Any]],
        context: Optional[JiraContext] = None,
        chat_history: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Fills in and improves every rich-text field of an action in one LLM call.

        The model must answer through the `set_adf_fields` tool, whose arguments
        map field keys to markdown content.

        Args:
            issue_type: Issue type name, used to pick section guidance.
            params: Described parameters from `MetadataHandler.metadata_params`.
            context: Current Jira context.
            chat_history: Recent `{"role", "content"}` messages.

        Returns:
            Dict[str, Dict[str, Any]]: A copy of `params` with new values for the
                rich-text fields, or `params` unchanged if the LLM fails.
        """
        adf_fields = [p for p in params.values() if p.get("isADFField")]
        if not adf_fields:
            return params

        values = "\n".join(
            f"- {p['fieldName']}: {p.get('value') or '(empty)'}" for p in params.values()
        )
        fields = "\n".join(
            f'\n{p["fieldName"]} ({p["key"]}):\n"""\n{p.get("value") or "(empty, generate it)"}\n"""'
            for p in adf_fields
        )

        prompt = (
            f"Enhance the following fields for a Jira {issue_type}.\n\n"
            f"Available context and values:\n{values}\n\n"
            f"{adf_formatting_rules}\n"
            f"Fields to enhance:\n{fields}\n"
        )

        templated = [p for p in adf_fields if p.get("template")]
        if templated:
            templates = "\n".join(
                f'\n{p["fieldName"]} template:\n"""\n{p["template"]}\n"""' for p in templated
            )
            prompt += (
                f"\nTemplates to follow:\n{templates}\n\n"
                "Please restructure the content to match these templates exactly, "
                "maintaining all sections and ADF-compatible formatting."
            )

        prompt += context_block(context)
        prompt += history_block(chat_history)
        prompt += "\n\n" + sections_for(issue_type, enhance_sections)

        tool = {
            "type": "function",
            "function": {
                "name": SET_ADF_FIELDS_TOOL,
                "description": "Set values for ADF fields",
                "parameters": {
                    "type": "object",
                    "properties": {
                        p["key"]: {
                            "type": "string",
                            "description": f"Content for {p['fieldName']} field in ADF-compatible markdown format",
                        }
                        for p in adf_fields
                    },
                    "required": [p["key"] for p in adf_fields],
                },
            },
        }

        try:
            response = self.ai.complete(
                [
                    {"role": "system", "content": adf_fields_system_prompt},
                    {"role": "user", "content": prompt},
                ],
                tools=[tool],
                temperature=0.5,
                tool_choice=SET_ADF_FIELDS_TOOL,
            )
        except Exception as e:
            logger.error(f"Error enhancing ADF content: {e}")
            return params

        updated = copy.deepcopy(params)
        for tool_call in response.tool_calls:
            if tool_call["name"] != SET_ADF_FIELDS_TOOL:
                continue
            for key, value in tool_call["args"].items():
                if key in updated and value:
                    updated[key]["value"] = value

        logger.info(f"Enhanced ADF fields: {[p['key'] for p in adf_fields]}")
        return updated
