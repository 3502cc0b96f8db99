from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from src.core.errors import InvalidRequestError


class Phase(str, Enum):
    TRANSFERS = "transfers"
    EXTRINSICS = "extrinsics"


class Cursor(BaseModel):
    """
    Resumable position in a paginated fetch.
    Serialised externally as the opaque string "phase:page", e.g. "transfers:0".
    """
    phase: Phase = Phase.TRANSFERS
    page: int = Field(0, ge=0)

    class Config:
        frozen = True

    @classmethod
    def parse(cls, token: Optional[str]) -> "Cursor":
        if not token:
            return cls()
        phase, sep, page = token.partition(":")
        if not sep:
            raise InvalidRequestError(f"Invalid cursor: {token}")
        try:
            phase = Phase(phase)
        except ValueError:
            raise InvalidRequestError("Invalid cursor phase")
        # "²".isdigit() is True but int("²") fails
        if not page.isdecimal():
            raise InvalidRequestError(f"Invalid cursor page: {page}")
        return cls(phase=phase, page=int(page))

    def serialize(self) -> str:
        return f"{self.phase.value}:{self.page}"

    def next_page(self) -> "Cursor":
        return Cursor(phase=self.phase, page=self.page + 1)

    def __str__(self) -> str:
        return self.serialize()
