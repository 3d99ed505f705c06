import pytest

from workbot.agent.fast_path import answer_simple, extract_person_name
from workbot.store import InMemoryStore


class _BrokenStore(InMemoryStore):

  async def get_holidays(self, start_date, end_date):
    raise RuntimeError("database is down")


def test_extract_person_name():
  assert extract_person_name("Is Rahul on leave today?") == "rahul"
  assert extract_person_name("When is Bala coming to office?") == "bala"
  assert extract_person_name("Is anyone in office today?") is None


@pytest.mark.asyncio
async def test_personal_single_day(store, alice, today):
  answer = await answer_simple("Am I in office today?", alice, store=store, today=today)
  assert answer == "Yes, you are scheduled to be in the office today."


@pytest.mark.asyncio
async def test_personal_count(store, alice, today):
  answer = await answer_simple("How many office days do I have this month?", alice, store=store, today=today)
  assert answer == "You have 6.5 office days this month (out of 21 working days, 31%)."


@pytest.mark.asyncio
async def test_personal_weekend(store, alice, today):
  answer = await answer_simple("Am I in office on 2026-03-07?", alice, store=store, today=today)
  assert answer == "Saturday, Mar 7 is not a working day (it may be a weekend or holiday)."


@pytest.mark.asyncio
async def test_who_is_in_office(store, alice, today):
  answer = await answer_simple("Who is in office tomorrow?", alice, store=store, today=today)
  assert answer == "People in office on Thursday, Mar 5 (2):\n• Alice Fernandes\n• Priya Nair"


@pytest.mark.asyncio
async def test_named_person_on_leave(store, alice, today):
  answer = await answer_simple("Is Rahul on leave today?", alice, store=store, today=today)
  assert answer == "Rahul Verma is on leave on Wednesday, Mar 4."


@pytest.mark.asyncio
async def test_ambiguous_name_asks_back(store, alice, today):
  answer = await answer_simple("Is Priya in office today?", alice, store=store, today=today)
  assert "Priya Nair, Priya Sharma" in answer


@pytest.mark.asyncio
async def test_busiest_day(store, alice, today):
  answer = await answer_simple("Which day has the most people in office this month?", alice,
                               store=store, today=today)
  assert answer == "The highest office attendance this month is on:\n• Tuesday, Mar 3 (3 employees)"


@pytest.mark.asyncio
async def test_busiest_weekday(store, alice, today):
  answer = await answer_simple("Which weekday has the highest average attendance this month?", alice,
                               store=store, today=today)
  assert answer.startswith("Tuesday has the highest average office attendance this month.")
  assert "• Tuesday: 1.0 on average" in answer


@pytest.mark.asyncio
async def test_events(store, alice, today):
  party = await answer_simple("When is the team party?", alice, store=store, today=today)
  assert party == "Team party events this month:\n• Friday, Mar 27: Team party"
  mandatory = await answer_simple("Are there any mandatory office days this month?", alice,
                                  store=store, today=today)
  assert mandatory == "Mandatory office days this month:\n• Thursday, Mar 12: Town hall (All hands)"
  none = await answer_simple("Is there any event next month?", alice, store=store, today=today)
  assert none == "There are no events scheduled next month."


@pytest.mark.asyncio
async def test_unknown_question_returns_none(store, alice, today):
  assert await answer_simple("Tell me a joke", alice, store=store, today=today) is None


@pytest.mark.asyncio
async def test_store_failure_returns_none(alice, today):
  answer = await answer_simple("Am I in office today?", alice, store=_BrokenStore(), today=today)
  assert answer is None


@pytest.mark.asyncio
async def test_multi_day_counts_include_office_half_days(store, alice, today):
  answer = await answer_simple("Who is in office from 2026-03-09 to 2026-03-13?", alice,
                               store=store, today=today)
  assert answer.startswith("Office attendance for 2026-03-09 to 2026-03-13:")
  assert "• Monday, Mar 9: 2 in office" in answer
  assert "• Wednesday, Mar 11: 1 in office" in answer
