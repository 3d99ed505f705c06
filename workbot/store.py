from __future__ import annotations

import json
import pathlib
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from .config import DATA_FILE
from .models import AttendanceEntry, Holiday, OfficeEvent, Person, UserRecord
from .utils import _log_debug

# The pipeline only reads from the store; writes happen elsewhere.


class AttendanceStore(ABC):
    """Read-only interface the pipeline needs from the attendance database."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[Person]:
        ...

    @abstractmethod
    async def list_active_users(self, limit: Optional[int] = None) -> List[Person]:
        ...

    @abstractmethod
    async def search_active_users(self, pattern: str) -> List[Person]:
        ...

    @abstractmethod
    async def get_favorites(self, user_id: str) -> List[Person]:
        ...

    @abstractmethod
    async def get_entries(self, user_ids: Optional[Iterable[str]],
                          start_date: str, end_date: str) -> List[AttendanceEntry]:
        ...

    @abstractmethod
    async def get_holidays(self, start_date: str, end_date: str) -> List[Holiday]:
        ...

    @abstractmethod
    async def get_events(self, start_date: str, end_date: str) -> List[OfficeEvent]:
        ...


class InMemoryStore(AttendanceStore):

    def __init__(self,
                 users: Optional[List[UserRecord]] = None,
                 entries: Optional[List[AttendanceEntry]] = None,
                 holidays: Optional[List[Holiday]] = None,
                 events: Optional[List[OfficeEvent]] = None) -> None:
        self.users: List[UserRecord] = list(users or [])
        self.entries: List[AttendanceEntry] = list(entries or [])
        self.holidays: List[Holiday] = list(holidays or [])
        self.events: List[OfficeEvent] = list(events or [])

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "InMemoryStore":
        def _load(key: str, model: Any) -> List[Any]:
            items: List[Any] = []
            raw = data.get(key) or []
            if not isinstance(raw, list):
                return items
            for item in raw:
                if not isinstance(item, dict):
                    continue
                try:
                    items.append(model.model_validate(item))
                except Exception as exc:
                    _log_debug(f"[STORE] skipped {key} item: {exc}")
            return items

        return cls(
            users=_load("users", UserRecord),
            entries=_load("entries", AttendanceEntry),
            holidays=_load("holidays", Holiday),
            events=_load("events", OfficeEvent),
        )

    @classmethod
    def from_json(cls, path: pathlib.Path) -> "InMemoryStore":
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except Exception as exc:
            _log_debug(f"[STORE] load failed: {exc}")
            return cls()
        if not isinstance(data, dict):
            return cls()
        return cls.from_payload(data)

    def _active(self) -> List[UserRecord]:
        return [u for u in self.users if u.is_active]

    async def get_user(self, user_id: str) -> Optional[Person]:
        for u in self.users:
            if u.id == user_id:
                return u.as_person()
        return None

    async def list_active_users(self, limit: Optional[int] = None) -> List[Person]:
        people = [u.as_person() for u in self._active()]
        if limit is not None:
            people = people[:limit]
        return people

    async def search_active_users(self, pattern: str) -> List[Person]:
        regex = re.compile(pattern, re.IGNORECASE)
        return [u.as_person() for u in self._active() if regex.search(u.name)]

    async def get_favorites(self, user_id: str) -> List[Person]:
        owner = next((u for u in self.users if u.id == user_id), None)
        if owner is None or not owner.favorites:
            return []
        wanted = set(owner.favorites)
        return [u.as_person() for u in self._active() if u.id in wanted]

    async def get_entries(self, user_ids: Optional[Iterable[str]],
                          start_date: str, end_date: str) -> List[AttendanceEntry]:
        id_filter = set(user_ids) if user_ids is not None else None
        return [
            e for e in self.entries
            if start_date <= e.date <= end_date
            and (id_filter is None or e.user_id in id_filter)
        ]

    async def get_holidays(self, start_date: str, end_date: str) -> List[Holiday]:
        return [h for h in self.holidays if start_date <= h.date <= end_date]

    async def get_events(self, start_date: str, end_date: str) -> List[OfficeEvent]:
        found = [e for e in self.events if start_date <= e.date <= end_date]
        return sorted(found, key=lambda e: e.date)


_store: Optional[AttendanceStore] = None


def get_store() -> AttendanceStore:
    global _store
    if _store is None:
        _store = InMemoryStore.from_json(DATA_FILE)
    return _store


def set_store(store: Optional[AttendanceStore]) -> None:
    global _store
    _store = store
