AI_ICON_FILE = "./assets/assistant.png"
API_BASE_URL = "http://localhost:8000"
CHAT_URL = f"{API_BASE_URL}/api/chat"
EXECUTE_URL = f"{API_BASE_URL}/api/execute"
TRANSCRIBE_URL = f"{API_BASE_URL}/api/transcribe"
ACTIVE_MESSAGES_URL = f"{API_BASE_URL}/api/chats/active/messages"
NEW_CHAT_URL = f"{API_BASE_URL}/api/chats/new"
CLEAR_CHAT_URL = f"{API_BASE_URL}/api/chats/clear"
CONTEXT_URL = f"{API_BASE_URL}/api/context"
DEFAULT_AI_ICON = "🤖"
HUMAN_ICON = "👤"
STYLES_FILE = "./assets/styles.css"

ACTION_NAME_HUMAN_READABLE = {
    "getIssue": "Getting Jira ticket details",
    "searchIssues": "Searching for Jira tickets",
    "createIssue": "Creating Jira ticket",
    "updateIssue": "Updating Jira ticket",
    "updateIssueType": "Changing the ticket's issue type",
    "deleteIssue": "Deleting Jira ticket",
    "addComment": "Adding comment to Jira ticket",
    "assignIssue": "Assigning Jira ticket",
    "getIssueTransitions": "Getting available transitions for the Jira ticket",
    "transitionIssue": "Moving Jira ticket to a new status",
    "getProjectUsers": "Fetching list of users in the project",
    "getProjectInfo": "Fetching project details",
    "updateIssuePriority": "Changing the ticket's priority",
    "linkIssues": "Linking Jira tickets",
    "moveToEpic": "Moving Jira ticket to an epic",
    "createEpicAndLink": "Creating an epic",
    "createAndLinkSubtasks": "Creating subtasks",
    "message": "Replying",
}
