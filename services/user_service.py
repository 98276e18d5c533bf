"""
User service for Doveable credit profiles
"""
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
import logging
from supabase import Client

from models.user import CreditAccount, UserProfile
from services.credit_ledger import CreditLedger
from services.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"


class UserService:
    def __init__(self, supabase_client: Client, ledger: CreditLedger):
        self.supabase = supabase_client
        self.ledger = ledger

    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        """
        Get a profile by ID, or None when the user has none yet
        """
        try:
            response = self.supabase.table(PROFILES_TABLE).select("*").eq("id", user_id).limit(1).execute()
        except Exception as e:
            logger.error(f"Error getting user profile {user_id}: {str(e)}")
            raise PersistenceError("Failed to load user profile") from e

        if not response.data:
            return None
        return UserProfile(**response.data[0])

    async def get_or_create_profile(self, user_id: str, email: str, now: Optional[datetime] = None) -> UserProfile:
        """
        Fetch the user's profile, creating it with the default daily grant on
        first access
        """
        profile = await self.get_user_profile(user_id)
        if profile is not None:
            return profile

        now = now or datetime.now(timezone.utc)
        profile_data = {
            "id": user_id,
            "email": email,
            "free_coins": self.ledger.daily_grant,
            "purchased_coins": 0,
            "last_coin_grant_at": now.isoformat(),
            "is_subscribed": False,
            "storage_linked": False,
        }
        try:
            response = self.supabase.table(PROFILES_TABLE).insert(profile_data).execute()
        except Exception as e:
            logger.error(f"Error creating user profile for {email}: {str(e)}")
            raise PersistenceError("Failed to create user profile") from e

        logger.info(f"Created user profile: {email}")
        return UserProfile(**(response.data[0] if response.data else profile_data))

    async def save_account(self, user_id: str, account: CreditAccount) -> UserProfile:
        """
        Write balances and grant timestamp back to the profile row
        """
        update_data = {
            "free_coins": account.free_credits,
            "purchased_coins": account.purchased_credits,
            "last_coin_grant_at": account.last_grant_at.isoformat() if account.last_grant_at else None,
        }
        try:
            response = self.supabase.table(PROFILES_TABLE).update(update_data).eq("id", user_id).execute()
        except Exception as e:
            logger.error(f"Error updating credits for user {user_id}: {str(e)}")
            raise PersistenceError("Failed to update credits") from e

        if not response.data:
            raise PersistenceError("User profile not found while updating credits")
        return UserProfile(**response.data[0])

    async def load_profile(self, user_id: str, email: str, now: Optional[datetime] = None) -> UserProfile:
        """
        Load the profile with today's free credits applied. Every balance read
        goes through here so a stale balance never outlives a day boundary.
        """
        now = now or datetime.now(timezone.utc)
        profile = await self.get_or_create_profile(user_id, email, now=now)
        account = profile.to_account()
        granted = self.ledger.maybe_grant_daily(account, now)
        if granted == account:
            return profile

        logger.info(f"Granted daily credits to user {user_id}")
        return await self.save_account(user_id, granted)

    async def load_account(self, user_id: str, email: str, now: Optional[datetime] = None) -> CreditAccount:
        profile = await self.load_profile(user_id, email, now=now)
        return profile.to_account()

    async def charge_generation(self, user_id: str, email: str) -> CreditAccount:
        """
        Spend the cost of one generation and persist the new balance
        """
        account = await self.load_account(user_id, email)
        updated = self.ledger.spend(account)
        await self.save_account(user_id, updated)
        logger.info(f"Charged {self.ledger.cost} credit(s) to user {user_id}, {updated.total} left")
        return updated

    async def set_storage_linked(self, user_id: str, email: str, linked: bool) -> UserProfile:
        """
        Record whether the user keeps projects in their own storage
        """
        await self.get_or_create_profile(user_id, email)
        try:
            response = self.supabase.table(PROFILES_TABLE).update(
                {"storage_linked": linked}
            ).eq("id", user_id).execute()
        except Exception as e:
            logger.error(f"Error updating storage link for user {user_id}: {str(e)}")
            raise PersistenceError("Failed to update storage settings") from e

        if not response.data:
            raise PersistenceError("User profile not found while updating storage settings")
        logger.info(f"User {user_id} {'linked' if linked else 'unlinked'} their own storage")
        return UserProfile(**response.data[0])

    async def add_purchased_credits(self, user_id: str, amount: int) -> CreditAccount:
        if amount <= 0:
            raise ValueError("Credit top-up must be positive")
        profile = await self.get_user_profile(user_id)
        if profile is None:
            raise NotFoundError("User profile not found")
        account = profile.to_account()
        updated = account.model_copy(update={"purchased_credits": account.purchased_credits + amount})
        await self.save_account(user_id, updated)
        logger.info(f"Added {amount} purchased credits for user {user_id}")
        return updated

    async def get_all_profiles(self) -> List[Dict[str, Any]]:
        """
        All profiles, newest first. Admin use only.
        """
        try:
            response = self.supabase.table(PROFILES_TABLE).select("*").order("created_at", desc=True).execute()
            return response.data or []
        except Exception as e:
            logger.error(f"Error fetching all profiles: {str(e)}")
            raise PersistenceError("Failed to load profiles") from e
