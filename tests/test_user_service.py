from datetime import datetime, timezone

import pytest

from services.credit_ledger import CreditLedger
from services.errors import InsufficientCreditsError, NotFoundError, PersistenceError
from services.user_service import UserService


@pytest.fixture
def user_service(supabase):
    return UserService(supabase, CreditLedger(cost=1, daily_grant=10))


def seed_profile(supabase, **fields):
    row = {
        "id": "user-1",
        "email": "dev@example.com",
        "free_coins": 0,
        "purchased_coins": 0,
        "last_coin_grant_at": datetime.now(timezone.utc).isoformat(),
        "is_subscribed": False,
        "storage_linked": False,
        "created_at": "2026-01-01T00:00:00+00:00",
    }
    row.update(fields)
    supabase.tables.setdefault("profiles", []).append(row)
    return row


@pytest.mark.asyncio
async def test_first_access_creates_profile_with_default_grant(user_service, supabase):
    profile = await user_service.load_profile("user-1", "dev@example.com")

    assert profile.free_coins == 10
    assert profile.purchased_coins == 0
    assert supabase.tables["profiles"][0]["email"] == "dev@example.com"


@pytest.mark.asyncio
async def test_stale_balance_is_topped_up_and_persisted(user_service, supabase):
    seed_profile(supabase, free_coins=0, last_coin_grant_at="2026-01-01T10:00:00")

    account = await user_service.load_account("user-1", "dev@example.com", now=datetime(2026, 1, 2, 10, 0))

    assert account.free_credits == 10
    assert supabase.tables["profiles"][0]["free_coins"] == 10


@pytest.mark.asyncio
async def test_same_day_load_does_not_write(user_service, supabase):
    seed_profile(supabase, free_coins=3)

    await user_service.load_account("user-1", "dev@example.com")

    assert supabase.count("profiles", "update") == 0


@pytest.mark.asyncio
async def test_charge_generation_persists_new_balance(user_service, supabase):
    seed_profile(supabase, free_coins=0, purchased_coins=5)

    account = await user_service.charge_generation("user-1", "dev@example.com")

    assert (account.free_credits, account.purchased_credits) == (0, 4)
    assert supabase.tables["profiles"][0]["purchased_coins"] == 4


@pytest.mark.asyncio
async def test_charge_generation_without_credits_raises(user_service, supabase):
    seed_profile(supabase, free_coins=0, purchased_coins=0, is_subscribed=True)

    with pytest.raises(InsufficientCreditsError):
        await user_service.charge_generation("user-1", "dev@example.com")


@pytest.mark.asyncio
async def test_add_purchased_credits(user_service, supabase):
    seed_profile(supabase, free_coins=2, purchased_coins=1)

    account = await user_service.add_purchased_credits("user-1", 20)

    assert account.purchased_credits == 21
    assert account.free_credits == 2


@pytest.mark.asyncio
async def test_add_purchased_credits_unknown_user(user_service):
    with pytest.raises(NotFoundError):
        await user_service.add_purchased_credits("ghost", 20)


@pytest.mark.asyncio
async def test_database_failure_is_persistence_error(user_service, supabase):
    supabase.failures.add(("profiles", "select"))

    with pytest.raises(PersistenceError):
        await user_service.load_profile("user-1", "dev@example.com")


@pytest.mark.asyncio
async def test_get_all_profiles_newest_first(user_service, supabase):
    seed_profile(supabase, id="old", created_at="2026-01-01T00:00:00+00:00")
    seed_profile(supabase, id="new", created_at="2026-02-01T00:00:00+00:00")

    profiles = await user_service.get_all_profiles()

    assert [p["id"] for p in profiles] == ["new", "old"]


@pytest.mark.asyncio
async def test_storage_link_is_persisted(user_service, supabase):
    profile = await user_service.set_storage_linked("user-1", "dev@example.com", True)

    assert profile.storage_linked is True
    assert supabase.tables["profiles"][0]["storage_linked"] is True
