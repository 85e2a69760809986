"""In-memory collaborators for tests.

FakeStore implements the DataStore capability over plain lists and can be
told to fail inserts or selects per table. RecordingSink keeps every tracking
event it receives.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

from leadcapture.errors import StoreError
from leadcapture.events import TrackingEvent

ID_COLUMNS = {"contact": "identifiant", "projets": "projet_id"}

VALID_VALUES: Dict[str, Any] = {
    "prenom": "Léa",
    "nom": "Martin",
    "email": "lea.martin@exemple.fr",
    "telephone": "06 12 34 56 78",
    "age": "26-35 ans",
    "code_postal": "75011",
    "situation": "Salarié(e)",
    "mutuelle_actuelle": "Non, aucune mutuelle",
    "garanties": ["Optique (lunettes, lentilles)", "Dentaire (soins, prothèses)"],
    "budget": "30€ - 50€",
    "delai": "Dans le mois",
}


class FakeStore:
    """DataStore keeping rows in memory."""

    def __init__(self, fail_insert_on=(), fail_select_on=()):
        self.rows: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.fail_insert_on = set(fail_insert_on)
        self.fail_select_on = set(fail_select_on)
        self.on_insert: Optional[Callable[[str, Dict[str, Any]], None]] = None

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(("insert", table, dict(row)))
        if self.on_insert is not None:
            self.on_insert(table, row)
        if table in self.fail_insert_on:
            raise StoreError(table, "insert", "rejected by fake store")
        record = dict(row)
        id_column = ID_COLUMNS.get(table, "id")
        record.setdefault(id_column, len(self.rows[table]) + 1)
        self.rows[table].append(record)
        return record

    def select(self, table, filters, columns="*", limit=None):
        self.calls.append(("select", table, dict(filters)))
        if table in self.fail_select_on:
            raise StoreError(table, "select", "unreachable")
        matches = [r for r in self.rows[table] if all(r.get(k) == v for k, v in filters.items())]
        if columns != "*":
            keep = [c.strip() for c in columns.split(",")]
            matches = [{c: r.get(c) for c in keep} for r in matches]
        return matches[:limit] if limit is not None else matches

    def inserts(self, table: str) -> List[Dict[str, Any]]:
        return [row for kind, name, row in self.calls if kind == "insert" and name == table]

    def insert_order(self) -> List[str]:
        return [name for kind, name, _ in self.calls if kind == "insert"]


class RecordingSink:
    """Tracking sink remembering every event."""

    def __init__(self):
        self.events: List[TrackingEvent] = []

    def __call__(self, event: TrackingEvent) -> None:
        self.events.append(event)

    def names(self) -> List[str]:
        return [e.name.value for e in self.events]

    def named(self, name: str) -> List[TrackingEvent]:
        return [e for e in self.events if e.name.value == name]
