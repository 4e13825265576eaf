import json
import logging
from typing import Any, Dict, Optional

import requests
from requests.auth import HTTPBasicAuth

from errors import JiraAPIError

logger = logging.getLogger(__name__)


class JiraClient:
    """
    Thin authenticated wrapper around the Jira Cloud REST API.

    Every call goes through `request`, which raises `JiraAPIError` for transport
    failures and non-2xx responses.
    """

    def __init__(self, base_url: str, email: str, api_token: str, timeout: int = 90):
        """
        Initializes the client.

        Args:
            base_url: Jira instance URL (e.g., "https://yourcompany.atlassian.net").
            email: Jira user email used for basic authentication.
            api_token: Jira API token used for basic authentication.
            timeout: Request timeout in seconds.

        Raises:
            ValueError: If any of the connection settings is empty.
        """
        if not base_url:
            raise ValueError("JIRA_BASE_URL cannot be empty")
        if not email:
            raise ValueError("JIRA_EMAIL cannot be empty")
        if not api_token:
            raise ValueError("JIRA_API_TOKEN cannot be empty")

        self.base_url = base_url.rstrip("/")
        self.email = email
        self.timeout = timeout

        self.session = requests.Session()
        self.session.auth = HTTPBasicAuth(email, api_token)
        self.session.headers.update({"Accept": "application/json"})

        logger.info(f"Creating Jira client for {self.base_url}")

    def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Makes an authenticated request to the Jira API.

        Args:
            endpoint: API path, e.g. "/rest/api/3/issue/KEY-123".
            method: HTTP method (GET, POST, PUT, DELETE).
            body: Optional JSON body.
            params: Optional query string parameters.

        Returns:
            The decoded JSON response, or an empty dict for empty responses.

        Raises:
            JiraAPIError: If the request fails or Jira returns an error status.
        """
        url = f"{self.base_url}{endpoint}"
        logger.info(f"Making {method} request to {url}")

        headers = {}
        if body is not None:
            headers["Content-Type"] = "application/json"
            logger.debug(f"Request body: {json.dumps(body)}")

        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                data=json.dumps(body) if body is not None else None,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error in Jira API request: {endpoint}: {e}")
            raise JiraAPIError(f"Jira API error: {e}") from e

        if not response.ok:
            try:
                details = response.json()
                detail_text = json.dumps(details)
                logger.error(f"Jira API error details: {detail_text}")
            except ValueError:
                details = None
                detail_text = response.reason

            message = f"Jira API error: {response.status_code} {response.reason}"
            if detail_text:
                message += f" - {detail_text}"
            raise JiraAPIError(message, status_code=response.status_code, details=details)

        if response.status_code == 204 or not response.content:
            return {}

        data = response.json()
        logger.debug(f"Response: {json.dumps(data)[:2000]}")
        return data

    def myself(self) -> Dict[str, Any]:
        """Returns the user the credentials belong to."""
        return self.request("/rest/api/3/myself")
