"""External data store access.

The wizard and the webhook handler only need two capabilities from the hosted
database: insert a row and get the generated record back, and select rows by
exact-match filters. ``DataStore`` names that capability; ``SupabaseStore``
implements it on top of the Supabase client.

Every failure coming out of the client (PostgREST errors, transport errors,
timeouts) is re-raised as ``StoreError`` so callers handle a single type.
"""

from typing import Any, Dict, List, Optional, Protocol

import httpx
from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, create_client

from leadcapture.config import Settings
from leadcapture.errors import StoreError


class DataStore(Protocol):
    """Table-level access to the external store."""

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one row and return the stored record, generated ids included."""
        ...

    def select(
        self,
        table: str,
        filters: Dict[str, Any],
        columns: str = "*",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return rows whose columns equal every value in ``filters``."""
        ...


class SupabaseStore:
    """DataStore backed by a Supabase project.

    Args:
        client: A configured Supabase client

    Usage:
        store = SupabaseStore.from_settings(get_settings())
        contact = store.insert("contact", {"email": "lea@exemple.fr"})
    """

    def __init__(self, client: Client):
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseStore":
        """Build a service-role client with a bounded request timeout."""
        options = ClientOptions(postgrest_client_timeout=settings.store_timeout_seconds)
        client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
            options=options,
        )
        return cls(client)

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.table(table).insert(row).execute()
        except APIError as exc:
            raise StoreError(table, "insert", exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            raise StoreError(table, "insert", str(exc) or type(exc).__name__) from exc

        if not response.data:
            raise StoreError(table, "insert", "no record returned")
        return response.data[0]

    def select(
        self,
        table: str,
        filters: Dict[str, Any],
        columns: str = "*",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        query = self._client.table(table).select(columns)
        for column, value in filters.items():
            query = query.eq(column, value)
        if limit is not None:
            query = query.limit(limit)

        try:
            response = query.execute()
        except APIError as exc:
            raise StoreError(table, "select", exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            raise StoreError(table, "select", str(exc) or type(exc).__name__) from exc

        return response.data or []


__all__ = [
    "DataStore",
    "SupabaseStore",
]
