"""
Result Merger for ad-hoc ticket search

Combines tickets found in the local store with tickets found live in the
ticket source. Local data wins on key collisions; every hit is tagged with
its provenance instead of overloading the similarity score.
"""
from datetime import datetime, timezone
from typing import List, Sequence, Tuple

from ticket_dedup.models.schemas import (
    LiveTicket,
    PersistedTicket,
    SearchHit,
    TicketRecord,
)
from ticket_dedup.utils.validators import validate_ticket_key

FIELD_QUERIES = {
    "priority": "priority",
    "status": "status",
    "assignee": "assignee",
    "reporter": "reporter",
    "project": "project",
    "type": "issuetype",
    "component": "component",
    "label": "labels",
}


def merge_search_results(
    local: Sequence[TicketRecord],
    live: Sequence[TicketRecord]
) -> List[SearchHit]:
    """
    Union of local and live results, deduplicated by ticket key

    Args:
        local: Tickets from the local store
        live: Tickets from the ticket source (keys already local are dropped)

    Returns:
        Persisted hits first, then live-only hits; each group ordered by
        created date, newest first
    """
    seen_keys = {ticket.ticket_key.casefold() for ticket in local}

    hits: List[SearchHit] = [PersistedTicket(ticket=ticket) for ticket in local]
    for ticket in live:
        key = ticket.ticket_key.casefold()
        if key in seen_keys:
            continue
        seen_keys.add(key)
        hits.append(LiveTicket(ticket=ticket))

    return sorted(hits, key=_hit_sort_key)


def _hit_sort_key(hit: SearchHit) -> Tuple[int, float]:
    created = hit.ticket.created_date
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (0 if isinstance(hit, PersistedTicket) else 1, -created.timestamp())


def build_search_query(search_term: str) -> str:
    """
    Translate a free-form search term into a ticket source query

    - A ticket key ("bug-201") becomes an exact key lookup
    - "field:value" searches that field (priority, status, label, ...)
    - Anything else is a text search over summary, description and comments
    """
    term = search_term.strip()

    if validate_ticket_key(term):
        return f'key = "{term.upper()}"'

    if ":" in term:
        field, value = term.split(":", 1)
        field = field.strip().lower()
        value = value.strip().strip('"')
        if field in FIELD_QUERIES:
            return f'{FIELD_QUERIES[field]} = "{value}"'
        return f'text ~ "{term}"'

    return f'(summary ~ "{term}" OR description ~ "{term}" OR comment ~ "{term}")'
