"""
Shared fixtures for ticket_dedup unit tests
"""
from datetime import datetime, timezone
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from ticket_dedup.models.schemas import SimilarityWeights, TicketRecord


def make_ticket(
    key: str,
    title: str = "",
    description: str = "",
    files: Optional[List[str]] = None,
    labels: Optional[List[str]] = None,
    project: str = "PROJ",
    created: Optional[datetime] = None,
    **extra
) -> TicketRecord:
    """Build a TicketRecord with sensible defaults"""
    return TicketRecord(
        ticket_key=key,
        title=title,
        description=description,
        affected_files=files or [],
        labels=labels or [],
        project_key=project,
        created_date=created or datetime(2024, 1, 1, tzinfo=timezone.utc),
        **extra
    )


@pytest.fixture
def ticket_factory():
    """Factory fixture for TicketRecord instances"""
    return make_ticket


@pytest.fixture
def default_weights() -> SimilarityWeights:
    return SimilarityWeights()


@pytest.fixture
def mock_supabase():
    """Chainable mock Supabase client"""
    client = MagicMock()
    client.table.return_value = client
    client.select.return_value = client
    client.upsert.return_value = client
    client.update.return_value = client
    client.eq.return_value = client
    client.ilike.return_value = client
    client.or_.return_value = client
    client.order.return_value = client
    client.range.return_value = client
    client.limit.return_value = client
    client.execute.return_value = MagicMock(data=[], count=0)
    return client
