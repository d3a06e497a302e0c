"""
Jira API Client

Ticket source collaborator for the analysis core:
- Ticket lookup by key
- Query search with pagination and a simplified-query fallback
- Project history fetch for the historical sync
- Comment posting for match annotations

Every public method treats a failure as "no result": it logs and returns
None, an empty list or False instead of raising.
"""
import asyncio
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from dateutil import parser as date_parser

from ticket_dedup.config import Settings, get_settings
from ticket_dedup.exceptions import TicketSourceError
from ticket_dedup.models.schemas import TicketRecord
from ticket_dedup.services.document import (
    extract_file_paths,
    extract_pr_links,
    flatten_document,
    is_pr_link,
)
from ticket_dedup.utils.logger import get_logger

logger = get_logger(__name__)

SEARCH_FIELDS = [
    "summary", "description", "issuetype", "status", "priority",
    "assignee", "reporter", "project", "labels", "components",
    "created", "updated", "resolutiondate", "resolution", "fixVersions",
]
PR_LINKS_FIELD = "customfield_10144"
MAX_PAGE_SIZE = 100

RETRYABLE_STATUS = (429, 500, 502, 503, 504)
FALLBACK_STATUS = (400, 410)


class JiraClient:
    """
    Jira REST API integration with retry logic and error handling
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.base_url = settings.jira_base_url.rstrip("/")
        self.auth = (settings.jira_username, settings.jira_api_token)
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json"
        }
        self.timeout = 30.0
        self.max_retries = 3

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Make HTTP request with retry logic

        Args:
            method: HTTP method (GET, POST, ...)
            endpoint: API path relative to the base URL
            **kwargs: Additional arguments for httpx

        Returns:
            Response JSON ({} for empty bodies)

        Raises:
            httpx.HTTPStatusError: On HTTP errors after retries
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(
                        method=method,
                        url=url,
                        auth=self.auth,
                        headers=self.headers,
                        **kwargs
                    )
                    response.raise_for_status()
                    if response.status_code == 204 or not response.content:
                        return {}
                    return response.json()

            except httpx.HTTPStatusError as e:
                if e.response.status_code in RETRYABLE_STATUS and attempt < self.max_retries - 1:
                    wait_time = 2 ** attempt
                    logger.warning(
                        f"Jira request failed (attempt {attempt + 1}/{self.max_retries}), "
                        f"retrying in {wait_time}s: {e}"
                    )
                    await asyncio.sleep(wait_time)
                    continue
                raise

        raise TicketSourceError(f"{method} {endpoint} failed after {self.max_retries} attempts")

    async def get_ticket(self, ticket_key: str) -> Optional[TicketRecord]:
        """
        Get full ticket details by key

        Args:
            ticket_key: Ticket key (e.g. "BUG-201")

        Returns:
            TicketRecord, or None if the ticket is missing or Jira is unavailable
        """
        logger.info(f"Fetching ticket {ticket_key}")
        try:
            payload = await self._make_request(
                "GET",
                f"rest/api/3/issue/{ticket_key}",
                params={"fields": "*all"}
            )
            return issue_to_ticket(payload)

        except httpx.HTTPStatusError as e:
            logger.warning(f"Failed to get ticket {ticket_key}: {e.response.status_code}")
            return None
        except (httpx.HTTPError, TicketSourceError, ValueError) as e:
            logger.error(f"Error getting ticket {ticket_key}: {e}")
            return None

    async def search_tickets(
        self,
        query: str,
        max_results: int = 100
    ) -> List[TicketRecord]:
        """
        Search tickets with a JQL query

        On 400/410 (query rejected) one retry is made with a simplified text
        query derived from the original.

        Args:
            query: JQL expression
            max_results: Maximum number of tickets to return

        Returns:
            Matching tickets (empty on failure)
        """
        logger.info(f"Executing JQL query: {query}")
        try:
            return await self._search_pages(query, max_results)

        except httpx.HTTPStatusError as e:
            logger.warning(f"Failed to search tickets with JQL '{query}': {e.response.status_code}")
            if e.response.status_code in FALLBACK_STATUS:
                simple_query = simplify_query(query)
                if simple_query != query:
                    logger.info(f"Attempting fallback search with simpler JQL: {simple_query}")
                    try:
                        return await self._search_pages(simple_query, max_results)
                    except (httpx.HTTPError, TicketSourceError, ValueError) as fallback_error:
                        logger.warning(f"Fallback search also failed: {fallback_error}")
            return []
        except (httpx.HTTPError, TicketSourceError, ValueError) as e:
            logger.error(f"Error searching tickets with JQL '{query}': {e}")
            return []

    async def get_project_tickets(
        self,
        project_key: str,
        max_results: int = 100
    ) -> List[TicketRecord]:
        """Most recent tickets of a project, newest first"""
        return await self.search_tickets(
            f"project = {project_key} ORDER BY created DESC",
            max_results
        )

    async def add_comment(self, ticket_key: str, comment: str) -> bool:
        """
        Add a plain-text comment to a ticket

        Args:
            ticket_key: Ticket key
            comment: Comment text; each line becomes a paragraph

        Returns:
            True if the comment was created
        """
        paragraphs = [
            {"type": "paragraph", "content": [{"type": "text", "text": line}]}
            for line in comment.splitlines() if line.strip()
        ]
        body = {"body": {"type": "doc", "version": 1, "content": paragraphs}}

        try:
            await self._make_request(
                "POST",
                f"rest/api/3/issue/{ticket_key}/comment",
                json=body
            )
            logger.info(f"Successfully added comment to ticket {ticket_key}")
            return True

        except (httpx.HTTPError, TicketSourceError, ValueError) as e:
            logger.warning(f"Failed to add comment to ticket {ticket_key}: {e}")
            return False

    async def ping(self) -> bool:
        """Check that Jira is reachable with the configured credentials"""
        try:
            await self._make_request("GET", "rest/api/3/myself")
            return True
        except (httpx.HTTPError, TicketSourceError, ValueError) as e:
            logger.warning(f"Jira ping failed: {e}")
            return False

    async def _search_pages(self, query: str, max_results: int) -> List[TicketRecord]:
        """Page through /search/jql until max_results tickets or the last page"""
        tickets: List[TicketRecord] = []
        next_page_token: Optional[str] = None

        while len(tickets) < max_results:
            body: Dict[str, Any] = {
                "jql": query,
                "maxResults": min(MAX_PAGE_SIZE, max_results - len(tickets)),
                "fields": SEARCH_FIELDS + [PR_LINKS_FIELD],
            }
            if next_page_token:
                body["nextPageToken"] = next_page_token

            page = await self._make_request("POST", "rest/api/3/search/jql", json=body)
            issues = page.get("issues") or []
            for issue in issues:
                tickets.append(issue_to_ticket(issue))

            next_page_token = page.get("nextPageToken")
            if not issues or page.get("isLast", True) or not next_page_token:
                break

        logger.info(f"Found {len(tickets)} tickets for query: {query}")
        return tickets[:max_results]


def simplify_query(query: str) -> str:
    """
    Reduce a complex text query to a prefix search on summary/description

    Returns the query unchanged when it has no quoted text term.
    """
    match = re.search(r'~\s*"([^"]+)"', query)
    if not match:
        return query
    term = match.group(1).rstrip("*")
    return f'summary ~ "{term}*" OR description ~ "{term}*" ORDER BY updated DESC'


def _parse_date(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return date_parser.isoparse(value) if isinstance(value, str) else value
    except ValueError:
        return date_parser.parse(value)


def _name(value: Any, attribute: str = "name") -> str:
    if isinstance(value, dict):
        return value.get(attribute) or ""
    return ""


def issue_to_ticket(issue: Dict[str, Any]) -> TicketRecord:
    """
    Convert a Jira issue payload to a TicketRecord

    The rich-text description is flattened, file paths are pulled from its
    text and PR links are collected from both the description and the PR
    links custom field.

    Raises:
        TicketSourceError: If the payload has no issue key
    """
    if not isinstance(issue, dict) or not issue.get("key"):
        raise TicketSourceError("Issue payload has no key")

    fields = issue.get("fields") or {}
    description = flatten_document(fields.get("description"))
    pr_field = flatten_document(fields.get(PR_LINKS_FIELD))

    pr_links: List[str] = []
    candidates = (
        [link for link in description.links if is_pr_link(link)]
        + extract_pr_links(description.text)
        + [link for link in pr_field.links if is_pr_link(link)]
        + extract_pr_links(pr_field.text)
    )
    for link in candidates:
        if link not in pr_links:
            pr_links.append(link)

    created = _parse_date(fields.get("created"))
    ticket_data = {
        "ticket_key": issue["key"],
        "title": fields.get("summary") or "",
        "description": description.text,
        "ticket_type": _name(fields.get("issuetype")),
        "status": _name(fields.get("status")),
        "priority": _name(fields.get("priority")),
        "assignee": _name(fields.get("assignee"), "displayName"),
        "reporter": _name(fields.get("reporter"), "displayName"),
        "project_key": _name(fields.get("project"), "key"),
        "labels": fields.get("labels") or [],
        "components": [_name(c) for c in fields.get("components") or [] if _name(c)],
        "affected_files": extract_file_paths(description.text),
        "pull_request_url": pr_links[0] if pr_links else "",
        "pr_links": pr_links,
        "resolution": _name(fields.get("resolution")),
        "fix_versions": [_name(v) for v in fields.get("fixVersions") or [] if _name(v)],
        "updated_date": _parse_date(fields.get("updated")),
        "resolved_date": _parse_date(fields.get("resolutiondate")),
    }
    if created:
        ticket_data["created_date"] = created

    return TicketRecord(**ticket_data)
