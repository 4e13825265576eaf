import json

jira_system_prompt = """
# Identity
- You are a Jira assistant, providing expert guidance to help users manage their Jira projects and issues efficiently.
- Analyze the Jira context you are given to deliver the most relevant and accurate response.
- Your primary objective is to use the Jira tools to perform actions directly, rather than simply describing possibilities.

# Instructions

## Available operations
Issue Management:
- get_issue: Get details of a Jira issue by its key
- search_issues: Search for Jira issues using JQL
- create_issue: Create a new Jira issue (Task, Story, Bug, etc.)
- update_issue: Update multiple fields of an existing issue simultaneously
- update_issue_type: Change an issue's type (e.g., from Task to Story)
- delete_issue: Remove an issue from Jira

Comments and Assignment:
- add_comment: Add a comment to a Jira issue
- assign_issue: Assign a Jira issue to a specific user

Status and Workflow:
- get_issue_transitions: Get available status transitions for an issue
- transition_issue: Move an issue to a different status

Linking and Relationships:
- link_issues: Create relationships between issues (relates to, blocks, etc.)
- create_epic_and_link: Create a new epic and link an existing issue to it
- move_to_epic: Move an existing issue to an epic
- create_subtasks: Create subtasks under a parent issue

Priority, Users and Projects:
- update_issue_priority: Change the priority of an issue
- get_project_users: Get users associated with a Jira project
- get_project_info: Get information about a Jira project

## Handling ticket IDs
- Jira ticket IDs are always in the format <PROJECT_KEY>-<NUMBER> (e.g., DE-10).
- Users (especially when speaking) may enter ticket IDs without a hyphen or in lowercase (e.g., "de10" instead of "DE-10"). Normalize them to uppercase and insert the hyphen before the number.

## Multiple steps
- If you need to perform multiple steps, define multiple tool calls in the same message.
- Always use the most appropriate function for the task at hand, and provide clear explanations of what you've done or what information you've found.
"""


description_system_prompt = "You are a Jira expert who writes clear, detailed but short issue descriptions following best practices. Your descriptions are concise yet thorough, providing all necessary information without unnecessary details. You structure information logically with clear headings and bullet points for readability."

enhance_description_system_prompt = "You are a Jira expert who improves issue descriptions while preserving their original content and intent. You restructure and enhance descriptions to follow best practices without changing the core information. You make the description more concise and clear."

adf_fields_system_prompt = "You are a Jira expert who enhances content to be Atlassian Document Format (ADF) compatible. You improve content structure and formatting while preserving the original meaning, ensuring all formatting elements are ADF-compatible. You can enhance multiple related fields at once, maintaining consistency between them and with all available context. You improve the content to be more accurate and complete and fulfill good practices."


generate_description_prompt = """Generate a detailed description for a Jira {issue_type} with the summary: "{summary}".

Following best practices for Jira ticketing:
1. The description should be clear and factual, avoiding ambiguity
2. Include all essential information needed to understand and complete the work
3. Structure the description with clear sections using headings
4. Minimize references to external documents - include the necessary information directly
5. Use screenshots or visual aids when appropriate (mention where they would be helpful)
6. Focus on the "what" not the "how" - describe requirements, not implementation details
7. Acknowledge any uncertainties or open questions that need resolution
"""

enhance_description_prompt = """Enhance the following Jira {issue_type} description for the issue with summary: "{summary}".

Original description:
\"\"\"
{original}
\"\"\"

Please improve this description following these best practices:
1. Preserve all factual information from the original description
2. Structure the content with clear sections using headings
3. Ensure all essential information is included and clearly presented
4. Add any missing sections that would be helpful based on the issue type
5. Format lists as bullet points or numbered steps where appropriate
6. Keep the original intent and meaning intact
"""

adf_formatting_rules = """The content must use Atlassian Document Format (ADF) compatible formatting:
1. Use Markdown-style formatting which will be converted to ADF
2. Headers should use # syntax (e.g., # H1, ## H2)
3. Lists can be bulleted (-) or numbered (1.)
4. Code blocks should use triple backticks
5. Text styling can include **bold**, *italic*, and ~~strikethrough~~
6. Links should use [text](url) format
"""


# Sections a generated description should contain, per issue type
generate_sections = {
    "epic": """For an Epic, include these sections:
- Overview: A high-level summary explaining the purpose of this epic
- Goals: What this epic aims to achieve (business objectives)
- Scope: What's included and what's explicitly out of scope
- Success Criteria: Specific, measurable conditions that define when this epic is complete
- Dependencies: Any other work this epic depends on or that depends on this epic
- Stakeholders: Who has interest in or influence over this epic

Remember that Epics should be treated as "chapters" in your project's story, providing context for the smaller stories and tasks within.""",
    "story": """For a User Story, include these sections:
- User Story Statement: "As a [type of user], I want [goal] so that [benefit]"
- Overview: Brief context about why this story matters
- Acceptance Criteria: Specific, testable conditions that must be met (use bullet points)
- Technical Notes: Any technical considerations that might impact implementation
- Dependencies: Any other stories or tasks this depends on
- Out of Scope: Explicitly state what is NOT included to prevent scope creep

Remember that Stories should be user-centric narratives that deliver specific value to the end-user.""",
    "bug": """For a Bug, include these sections:
- Bug Description: Clear statement of what's happening
- Steps to Reproduce: Numbered list of exact steps to recreate the issue
- Expected Behavior: What should happen when following these steps
- Actual Behavior: What actually happens instead
- Environment: Where this occurs (browser, OS, device, etc.)
- Impact: How this affects users (critical, major, minor)
- Possible Causes: Any initial thoughts on what might be causing this (if known)

Remember that Bug titles should specify the who/what/where/how of the problem.""",
    "task": """For a Task, include these sections:
- Overview: Brief explanation of what this task involves
- Request: Detailed description of what needs to be done
- Acceptance Criteria: Specific conditions that must be met for this task to be complete
- Resources: Any helpful references or documentation
- Dependencies: Any other tasks this depends on
- Notes: Any additional information that might be helpful

Remember that Tasks should have titles that start with a verb (e.g., "Build", "Configure", "Implement").""",
}

# Sections an enhanced description must keep or add, per issue type
enhance_sections = {
    "epic": """For an Epic, ensure these sections are included:
- Overview
- Goals
- Scope
- Success Criteria
- Dependencies (if any)
- Stakeholders (if known)""",
    "story": """For a User Story, ensure these sections are included:
- User Story Statement ("As a [user], I want [goal] so that [benefit]")
- Overview
- Acceptance Criteria
- Technical Notes (if applicable)
- Dependencies (if any)""",
    "bug": """For a Bug, ensure these sections are included:
- Bug Description
- Steps to Reproduce
- Expected Behavior
- Actual Behavior
- Environment
- Impact""",
    "task": """For a Task, ensure these sections are included:
- Overview
- Request details
- Acceptance Criteria
- Dependencies (if any)""",
}


def sections_for(issue_type: str, sections: dict) -> str:
    """Returns the section guidance for an issue type, defaulting to Task."""
    return sections.get((issue_type or "").lower(), sections["task"])


sample_adf_document = {
    "version": 1,
    "type": "doc",
    "content": [
        {
            "type": "paragraph",
            "content": [
                {"type": "text", "text": "Hello "},
                {"type": "text", "text": "world", "marks": [{"type": "strong"}]},
            ],
        }
    ],
}


def doc_field_description(default_value=None, action: str = "create") -> str:
    """
    Builds the tool-parameter hint for a rich-text ("doc") Jira field.

    Args:
        default_value: The field's default ADF value, used as a template if present.
        action: "create" or "update".

    Returns:
        str: A description suffix to append to the field's parameter description.
    """
    description = (
        " - Use Atlassian Document Format JSON object. Example:\n```\n"
        f"{json.dumps(sample_adf_document)}\n```\n"
    )
    if default_value:
        if_requested = "if it was requested" if action == "update" else ""
        description += (
            f" - Use this as a template:\n```\n{json.dumps(default_value)}\n```\n"
            f"Keep the same format, sections, etc. Use template to generate the new value {if_requested}. "
            "If template includes headers or sections make sure to keep them in the new value"
        )
    return description
