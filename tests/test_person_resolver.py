import pytest

from workbot.agent.person_resolver import resolve_people


@pytest.mark.asyncio
async def test_self_reference_needs_no_lookup(store, alice):
  result = await resolve_people(["me"], alice, store)
  assert result.resolved == [alice]
  assert result.clarification is None


@pytest.mark.asyncio
async def test_single_match_ignores_inactive_people(store, alice):
  result = await resolve_people(["Rahul"], alice, store)
  assert [p.display_name for p in result.resolved] == ["Rahul Verma"]
  assert result.clarification is None


@pytest.mark.asyncio
async def test_prefix_must_start_a_word(store, alice):
  assert [p.id for p in (await resolve_people(["bal"], alice, store)).resolved] == ["u3"]
  result = await resolve_people(["ahul"], alice, store)
  assert result.resolved == []
  assert "couldn't find" in result.clarification


@pytest.mark.asyncio
async def test_ambiguous_name_lists_every_candidate(store, alice):
  result = await resolve_people(["Priya"], alice, store)
  assert result.resolved == []
  assert "Priya Nair" in result.clarification
  assert "Priya Sharma" in result.clarification
  assert "Which one did you mean?" in result.clarification


@pytest.mark.asyncio
async def test_team_uses_favorites_and_dedupes(store, alice):
  result = await resolve_people(["me", "my team", "Rahul", "Me"], alice, store)
  assert [p.id for p in result.resolved] == ["u1", "u2", "u3"]


@pytest.mark.asyncio
async def test_team_without_favorites_is_everyone_active(store):
  from workbot.models import Person
  rahul = Person(id="u2", display_name="Rahul Verma")
  result = await resolve_people(["team"], rahul, store)
  assert [p.id for p in result.resolved] == ["u1", "u2", "u3", "u4", "u5"]


@pytest.mark.asyncio
async def test_clarifications_are_collected_not_short_circuited(store, alice):
  result = await resolve_people(["Zoe", "Priya", "Bala"], alice, store)
  assert [p.id for p in result.resolved] == ["u3"]
  lines = result.clarification.split("\n")
  assert len(lines) == 2
  assert "zoe" in lines[0]
  assert "multiple people" in lines[1]
