"""
Subscan wire schemas.

Explicit models per endpoint. Null or missing list fields are read as empty
collections, and numeric amounts are kept as strings so plancks never pass
through a float.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional

from src.core.errors import MalformedResponseError


def _as_str(value: Any) -> Any:
    if value is None:
        return "0"
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class SubscanEnvelope(BaseModel):
    code: int
    message: str = ""
    data: Optional[Any] = None


class SubscanTransfer(BaseModel):
    from_: str = Field("", alias="from")
    to: str = ""
    amount: str = "0"  # plancks
    fee: str = "0"
    success: bool = False
    hash: Optional[str] = None
    block_num: int = 0
    block_timestamp: int = 0
    module: str = ""
    extrinsic_index: Optional[str] = None  # "14490804-2"
    event_id: Optional[str] = None
    asset_symbol: Optional[str] = None

    class Config:
        populate_by_name = True

    @field_validator("amount", "fee", mode="before")
    @classmethod
    def _coerce_amounts(cls, value):
        return _as_str(value)


class SubscanExtrinsic(BaseModel):
    extrinsic_hash: Optional[str] = None
    extrinsic_index: Optional[str] = None
    call_module: str = ""
    call_module_function: str = ""
    fee: str = "0"
    success: bool = False
    block_num: int = 0
    block_timestamp: int = 0

    @field_validator("fee", mode="before")
    @classmethod
    def _coerce_fee(cls, value):
        return _as_str(value)


class SubscanTransfersPage(BaseModel):
    count: int = 0
    transfers: List[SubscanTransfer] = []

    @field_validator("transfers", mode="before")
    @classmethod
    def _null_is_empty(cls, value):
        return value or []


class SubscanExtrinsicsPage(BaseModel):
    count: int = 0
    extrinsics: List[SubscanExtrinsic] = []

    @field_validator("extrinsics", mode="before")
    @classmethod
    def _null_is_empty(cls, value):
        return value or []


class SubscanAccount(BaseModel):
    """Balance fields of the account endpoint, in plancks."""
    address: Optional[str] = None
    balance: str = "0"
    reserved: str = "0"
    lock: str = "0"

    @field_validator("balance", "reserved", "lock", mode="before")
    @classmethod
    def _coerce_amounts(cls, value):
        return _as_str(value)

    @classmethod
    def from_payload(cls, data: Any) -> "SubscanAccount":
        # Newer API revisions nest the balances under "account"
        if isinstance(data, dict) and isinstance(data.get("account"), dict):
            data = data["account"]
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Expected an account object, got {type(data).__name__}"
            )
        data = dict(data)
        if "lock" not in data and "locked" in data:
            data["lock"] = data["locked"]
        return cls.model_validate(data)
