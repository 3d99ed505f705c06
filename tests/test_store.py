import pytest

from workbot.models import Person
from workbot.store import AttendanceStore, InMemoryStore


def test_incomplete_store_cannot_be_created():
  class UsersOnly(AttendanceStore):

    async def get_user(self, user_id):
      return None

  with pytest.raises(TypeError):
    UsersOnly()


def test_payload_skips_bad_items():
  store = InMemoryStore.from_payload({
      "users": [{"id": "u1", "name": "Alice"}, {"name": "no id"}, "junk"],
      "entries": [{"user_id": "u1", "date": "2026-03-02", "status": "office"},
                  {"user_id": "u1", "date": "2026-03-03", "status": "gym"}],
  })
  assert [u.id for u in store.users] == ["u1"]
  assert len(store.entries) == 1


@pytest.mark.asyncio
async def test_search_ignores_inactive_users(store):
  matches = await store.search_active_users(r"\brahul")
  assert matches == [Person(id="u2", display_name="Rahul Verma")]
