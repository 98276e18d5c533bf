"""
User and credit models for Doveable
"""
from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime


class CreditAccount(BaseModel):
    """
    Spendable balance for one user. Free credits are topped up daily unless
    the user is subscribed; purchased credits never expire.
    """
    free_credits: int = 0
    purchased_credits: int = 0
    last_grant_at: Optional[datetime] = None
    is_subscribed: bool = False

    @property
    def total(self) -> int:
        return self.free_credits + self.purchased_credits


class UserProfile(BaseModel):
    id: str
    email: EmailStr
    free_coins: int = 0
    purchased_coins: int = 0
    last_coin_grant_at: Optional[datetime] = None
    is_subscribed: bool = False
    storage_linked: bool = False
    created_at: Optional[datetime] = None

    def to_account(self) -> CreditAccount:
        return CreditAccount(
            free_credits=self.free_coins,
            purchased_credits=self.purchased_coins,
            last_grant_at=self.last_coin_grant_at,
            is_subscribed=self.is_subscribed,
        )


class UserResponse(BaseModel):
    id: str
    email: EmailStr
    free_coins: int
    purchased_coins: int
    total_coins: int
    is_subscribed: bool
    storage_linked: bool
    last_coin_grant_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserResponse":
        return cls(
            id=profile.id,
            email=profile.email,
            free_coins=profile.free_coins,
            purchased_coins=profile.purchased_coins,
            total_coins=profile.free_coins + profile.purchased_coins,
            is_subscribed=profile.is_subscribed,
            storage_linked=profile.storage_linked,
            last_coin_grant_at=profile.last_coin_grant_at,
            created_at=profile.created_at,
        )
