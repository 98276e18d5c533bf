"""
Credit ledger: gates generations on the user's balance and applies the daily
free-credit grant. Accounts are treated as values; every operation returns a
new CreditAccount.
"""
from datetime import date, datetime
import logging

from config.settings import Settings
from models.user import CreditAccount
from services.errors import InsufficientCreditsError

logger = logging.getLogger(__name__)


def _local_date(moment: datetime) -> date:
    if moment.tzinfo is not None:
        return moment.astimezone().date()
    return moment.date()


class CreditLedger:
    def __init__(self, cost: int = 1, daily_grant: int = 10):
        if cost < 1:
            raise ValueError("Generation cost must be at least one credit")
        self.cost = cost
        self.daily_grant = daily_grant

    @classmethod
    def from_settings(cls, settings: Settings) -> "CreditLedger":
        return cls(cost=settings.generation_cost, daily_grant=settings.daily_free_credits)

    def check_and_reserve(self, account: CreditAccount) -> bool:
        """True when the account can pay for one generation. Never mutates."""
        return account.total >= self.cost

    def spend(self, account: CreditAccount) -> CreditAccount:
        """
        Charge one generation, free credits first, the remainder from
        purchased credits.
        """
        if not self.check_and_reserve(account):
            raise InsufficientCreditsError(required=self.cost, available=account.total)

        if account.free_credits >= self.cost:
            return account.model_copy(update={"free_credits": account.free_credits - self.cost})

        remainder = self.cost - account.free_credits
        return account.model_copy(update={
            "free_credits": 0,
            "purchased_credits": max(0, account.purchased_credits - remainder),
        })

    def maybe_grant_daily(self, account: CreditAccount, now: datetime) -> CreditAccount:
        """
        Reset free credits to the daily grant once per local calendar day.
        Subscribed accounts are left alone.
        """
        if account.is_subscribed:
            return account
        if account.last_grant_at is not None and _local_date(account.last_grant_at) == _local_date(now):
            return account

        logger.debug(f"Daily grant: free credits {account.free_credits} -> {self.daily_grant}")
        return account.model_copy(update={"free_credits": self.daily_grant, "last_grant_at": now})
