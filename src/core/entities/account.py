"""
Account balance entities for the best-effort balance display.
"""
from pydantic import BaseModel
from typing import Optional


class AccountState(BaseModel):
    address: str
    freeAmount: str
    reservedAmount: str
    lockedAmount: str
    totalAmount: str  # free + reserved
    source: str = "subscan"


class AccountUnavailable(BaseModel):
    """
    Returned instead of raising when the balance lookup fails.
    """
    error: str
    address: Optional[str] = None
    freeAmount: Optional[str] = None
    reservedAmount: Optional[str] = None
    lockedAmount: Optional[str] = None
    totalAmount: Optional[str] = None
