"""
Pytest configuration and fixtures
"""
from datetime import datetime, timezone
from typing import Any, Dict

import pytest


@pytest.fixture
def sample_ticket_row() -> Dict[str, Any]:
    """Sample tickets table row"""
    return {
        "ticket_key": "BUG-201",
        "title": "Login button not responding on mobile devices",
        "description": "Tapping the login button on iOS and Android does nothing.",
        "ticket_type": "Bug",
        "status": "Done",
        "priority": "High",
        "assignee": None,
        "reporter": "Sam Roe",
        "project_key": "BUG",
        "labels": ["mobile", "ui"],
        "components": None,
        "affected_files": ["src/auth/Login.cs"],
        "pull_request_url": "https://github.com/acme/web/pull/42",
        "pr_links": ["https://github.com/acme/web/pull/42"],
        "resolution": "Fixed",
        "fix_versions": ["2.4.1"],
        "created_date": "2024-03-01T10:15:00+00:00",
        "updated_date": "2024-03-05T09:00:00+00:00",
        "resolved_date": "2024-03-05T09:00:00+00:00",
        "related_tickets": [],
    }


@pytest.fixture
def sample_webhook_payload() -> Dict[str, Any]:
    """Sample Jira issue_created webhook body"""
    return {
        "timestamp": int(datetime(2024, 3, 1, tzinfo=timezone.utc).timestamp() * 1000),
        "webhookEvent": "jira:issue_created",
        "issue_event_type_name": "issue_created",
        "user": {"displayName": "Sam Roe"},
        "issue": {"id": "10042", "key": "BUG-301", "fields": {"summary": "Login broken"}},
    }
