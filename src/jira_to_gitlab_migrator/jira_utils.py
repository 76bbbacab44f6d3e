from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any, Final

import requests
from jira import JIRA
from jira.exceptions import JIRAError

from . import utils
from .models import SearchPage

if TYPE_CHECKING:
    from .config import JiraSettings

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "JIRA_TOKEN"  # noqa: S105
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "jira/cli/token"  # noqa: S105
_TEXT_FIELD_TYPE: Final[str] = "com.atlassian.jira.plugin.system.customfieldtypes:textfield"
_TEXT_FIELD_SEARCHER: Final[str] = "com.atlassian.jira.plugin.system.customfieldtypes:textsearcher"


def get_token(pass_path: str | None = None) -> str | None:
    """Get Jira password or API token from pass path, env var JIRA_TOKEN, or default pass location."""
    if pass_path:
        return utils.get_pass_value(pass_path)

    token: str | None = os.environ.get(_TOKEN_ENV_VAR)
    if token:
        return token

    try:
        return utils.get_pass_value(_DEFAULT_TOKEN_PASS_PATH)
    except (ValueError, utils.PassError):
        logger.warning("No Jira token specified nor found")
        return None


def get_client(settings: JiraSettings, password: str | None, timeout: float | None = None) -> JIRA:
    """Get a Jira client using basic authentication."""
    return JIRA(
        server=settings.base_url,
        basic_auth=(settings.username, password or ""),
        options={"verify": settings.strict_ssl},
        timeout=timeout,
    )


def get_download_session(settings: JiraSettings, password: str | None) -> requests.Session:
    """Get a plain HTTP session authenticated against Jira, for attachment downloads."""
    session = requests.Session()
    session.auth = (settings.username, password or "")
    session.verify = settings.strict_ssl
    return session


class JiraSource:
    """SourceTracker backed by the ``jira`` library."""

    _client: JIRA
    _base_url: str

    def __init__(self, client: JIRA, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    def list_custom_fields(self) -> list[dict[str, Any]]:
        return self._client.fields()

    def create_custom_field(self, name: str, description: str) -> dict[str, Any]:
        """Create a free-text custom field and put it on the default screen.

        The ``jira`` library has no wrapper for these endpoints, so the raw
        REST calls go through its authenticated session.
        """
        session = self._client._session  # noqa: SLF001
        payload = {
            "name": name,
            "description": description,
            "type": _TEXT_FIELD_TYPE,
            "searcherKey": _TEXT_FIELD_SEARCHER,
        }
        response = session.post(f"{self._base_url}/rest/api/2/field", data=json.dumps(payload))
        created: dict[str, Any] = response.json()

        try:
            session.post(f"{self._base_url}/rest/api/2/screens/addToDefault/{created['id']}")
        except (JIRAError, requests.RequestException) as e:
            logger.warning(f"Could not add custom field {name} to the default screen: {e}")
        return created

    def search_issues(self, jql: str, start_at: int, max_results: int) -> SearchPage:
        result = self._client.search_issues(jql, startAt=start_at, maxResults=max_results, json_result=True)
        return SearchPage(total=int(result.get("total", 0)), issues=list(result.get("issues", [])))

    def get_issue(self, key: str) -> dict[str, Any]:
        return self._client.issue(key).raw

    def update_issue(self, key: str, fields: dict[str, Any]) -> None:
        self._client.issue(key, fields="summary").update(fields=fields)

    def browse_url(self, key: str) -> str:
        return f"{self._base_url}/browse/{key}"
