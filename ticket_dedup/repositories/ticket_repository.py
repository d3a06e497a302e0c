"""
Ticket Repository for CRUD operations on the tickets table

Features:
- One row per ticket key (unique constraint on ticket_key)
- Keys are stored upper-cased and matched exactly, so identity is
  case-insensitive without LIKE wildcards coming into play
- Atomic upserts, so concurrent writers of the same key never duplicate it
- Batch upsert for the historical sync
- Project-scoped and full-corpus pagination, newest first

The Supabase client is synchronous; every query runs in a worker thread so
store calls never block the event loop.

Reads and writes that fail are logged and re-raised as
TicketRepositoryError; a lost write must never go unnoticed.
"""
import asyncio
from typing import Any, Dict, List, Optional

from ticket_dedup.config import get_settings
from ticket_dedup.exceptions import TicketRepositoryError
from ticket_dedup.models.schemas import TicketRecord
from ticket_dedup.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

BULK_BATCH_SIZE = 500
SEARCH_COLUMNS = ("title", "description", "ticket_key")


def normalize_key(ticket_key: str) -> str:
    """Canonical stored form of a ticket key"""
    return (ticket_key or "").strip().upper()


def build_search_filter(search_term: str) -> str:
    """
    PostgREST `or` filter matching the term in any searchable column

    Values are double-quoted so that parentheses, commas and colons in the
    term are taken literally. User-supplied wildcards are dropped.
    """
    term = search_term.strip().replace("%", "").replace("*", "")
    escaped = term.replace("\\", "\\\\").replace('"', '\\"')
    return ",".join(f'{column}.ilike."%{escaped}%"' for column in SEARCH_COLUMNS)


class TicketRepository:
    """Repository for tickets table operations"""

    def __init__(self, supabase_client=None, table_name: Optional[str] = None):
        """
        Initialize repository with Supabase client

        Args:
            supabase_client: Supabase client instance (uses default if None)
            table_name: Table name (uses configured table if None)
        """
        if supabase_client is None:
            from supabase import create_client
            self.client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key or settings.supabase_key
            )
        else:
            self.client = supabase_client

        self.table_name = table_name or settings.tickets_table
        logger.info(f"TicketRepository initialized for table: {self.table_name}")

    @staticmethod
    async def _execute(query) -> Any:
        """Run a built query in a worker thread"""
        return await asyncio.to_thread(query.execute)

    @staticmethod
    def _to_row(ticket: TicketRecord) -> Dict[str, Any]:
        row = ticket.to_row()
        row["ticket_key"] = normalize_key(ticket.ticket_key)
        return row

    async def get_by_key(self, ticket_key: str) -> Optional[TicketRecord]:
        """
        Get a ticket by key (case-insensitive)

        Returns:
            TicketRecord if found, None otherwise
        """
        try:
            response = await self._execute(
                self.client.table(self.table_name)
                .select("*")
                .eq("ticket_key", normalize_key(ticket_key))
                .limit(1)
            )

            if not response.data:
                return None
            return TicketRecord(**response.data[0])

        except Exception as e:
            logger.error(f"Failed to get ticket {ticket_key}: {e}")
            raise TicketRepositoryError(f"get_by_key({ticket_key})", e) from e

    async def get_by_project(
        self,
        project_key: str,
        offset: int = 0,
        limit: int = 100
    ) -> List[TicketRecord]:
        """
        Tickets of one project, newest first

        Args:
            project_key: Project key
            offset: Offset for pagination (default 0)
            limit: Maximum results (default 100)
        """
        try:
            response = await self._execute(
                self.client.table(self.table_name)
                .select("*")
                .eq("project_key", project_key)
                .order("created_date", desc=True)
                .range(offset, offset + limit - 1)
            )

            return [TicketRecord(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Failed to get tickets for project {project_key}: {e}")
            raise TicketRepositoryError(f"get_by_project({project_key})", e) from e

    async def get_all(self, offset: int = 0, limit: int = 100) -> List[TicketRecord]:
        """All tickets, newest first"""
        try:
            response = await self._execute(
                self.client.table(self.table_name)
                .select("*")
                .order("created_date", desc=True)
                .range(offset, offset + limit - 1)
            )

            return [TicketRecord(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Failed to get tickets: {e}")
            raise TicketRepositoryError("get_all", e) from e

    async def search(
        self,
        search_term: str,
        offset: int = 0,
        limit: int = 100
    ) -> List[TicketRecord]:
        """
        Substring search over title, description and ticket key

        Args:
            search_term: Text to look for (case-insensitive)
            offset: Offset for pagination (default 0)
            limit: Maximum results (default 100)
        """
        try:
            response = await self._execute(
                self.client.table(self.table_name)
                .select("*")
                .or_(build_search_filter(search_term))
                .order("created_date", desc=True)
                .range(offset, offset + limit - 1)
            )

            return [TicketRecord(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Failed to search tickets with term '{search_term}': {e}")
            raise TicketRepositoryError(f"search({search_term})", e) from e

    async def upsert(self, ticket: TicketRecord) -> TicketRecord:
        """
        Insert a ticket, or overwrite every field of the existing row

        Returns:
            Stored TicketRecord
        """
        try:
            response = await self._execute(
                self.client.table(self.table_name)
                .upsert(self._to_row(ticket), on_conflict="ticket_key")
            )

            if not response.data:
                raise ValueError(f"Upsert of ticket {ticket.ticket_key} returned no row")

            logger.info(f"Saved ticket: {ticket.ticket_key}")
            return TicketRecord(**response.data[0])

        except Exception as e:
            logger.error(f"Failed to save ticket {ticket.ticket_key}: {e}")
            raise TicketRepositoryError(f"upsert({ticket.ticket_key})", e) from e

    async def bulk_upsert(self, tickets: List[TicketRecord]) -> int:
        """
        Upsert many tickets in batches

        Duplicate keys within the input collapse to the last occurrence.

        Returns:
            Number of distinct tickets written
        """
        unique: Dict[str, Dict[str, Any]] = {}
        for ticket in tickets:
            row = self._to_row(ticket)
            unique[row["ticket_key"]] = row
        rows = list(unique.values())

        try:
            for start in range(0, len(rows), BULK_BATCH_SIZE):
                batch = rows[start:start + BULK_BATCH_SIZE]
                await self._execute(
                    self.client.table(self.table_name)
                    .upsert(batch, on_conflict="ticket_key")
                )

            logger.info(f"Successfully bulk saved {len(rows)} tickets")
            return len(rows)

        except Exception as e:
            logger.error(f"Error bulk saving {len(rows)} tickets: {e}")
            raise TicketRepositoryError(f"bulk_upsert({len(rows)} tickets)", e) from e

    async def count(self) -> int:
        """Total number of stored tickets"""
        try:
            response = await self._execute(
                self.client.table(self.table_name)
                .select("ticket_key", count="exact")
            )

            return response.count or 0

        except Exception as e:
            logger.error(f"Failed to count tickets: {e}")
            raise TicketRepositoryError("count", e) from e

    async def set_related_tickets(self, ticket_key: str, related_keys: List[str]) -> bool:
        """
        Replace the related-tickets list of a ticket

        Returns:
            True if the ticket existed and was updated
        """
        try:
            response = await self._execute(
                self.client.table(self.table_name)
                .update({"related_tickets": list(related_keys)})
                .eq("ticket_key", normalize_key(ticket_key))
            )

            if not response.data:
                logger.warning(f"Ticket {ticket_key} not found for updating related tickets")
                return False

            logger.info(f"Updated related tickets for {ticket_key}: {', '.join(related_keys)}")
            return True

        except Exception as e:
            logger.error(f"Error updating related tickets for {ticket_key}: {e}")
            raise TicketRepositoryError(f"set_related_tickets({ticket_key})", e) from e
