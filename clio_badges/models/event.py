"""PurchaseEvent model definition"""
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from clio_badges.errors import EventValidationError

ADDRESS_PATTERN = re.compile(r'^0x[0-9a-f]{40}$')

def normalize_address(address: str) -> str:
    """Canonical form of a wallet address: stripped and lowercase"""
    return address.strip().lower()

class PurchaseEvent(BaseModel):
    """
    A single Bought event from the bonding-curve market.

    Token amount, supply and price are unsigned integers in the token's
    smallest unit; price carries 18 implied decimals but the engine only
    ever compares prices with each other, never against a fixed scale.

    Attributes:
        artist_id: Artist the purchase was made in
        buyer: Buyer wallet address, normalized to lowercase hex
        token_amount: Tokens acquired by this purchase
        new_supply: Total supply after the purchase
        new_price: Price after the purchase
        block_number: Block the purchase was mined in
        timestamp: Block time, stored as naive UTC
        log_index: Position of the log within its block, used to spot replays
    """
    model_config = ConfigDict(frozen=True)

    artist_id: int = Field(..., ge=0)
    buyer: str
    token_amount: int = Field(..., ge=0)
    new_supply: int = Field(..., ge=0)
    new_price: int = Field(..., ge=0)
    block_number: int = Field(..., ge=0)
    timestamp: datetime
    log_index: Optional[int] = Field(None, ge=0)

    @field_validator('buyer')
    @classmethod
    def check_buyer(cls, value: str) -> str:
        address = normalize_address(value)
        if not address:
            raise ValueError("buyer address is empty")
        if not ADDRESS_PATTERN.match(address):
            raise ValueError(f"buyer address is not a 20-byte hex address: {value!r}")
        return address

    @field_validator('token_amount', 'new_supply', 'new_price', mode='before')
    @classmethod
    def decimal_string_to_int(cls, value: Any) -> Any:
        # uint256 values arrive as decimal strings from JSON sources
        if isinstance(value, str) and value.strip().lstrip('-').isdigit():
            return int(value.strip())
        return value

    @field_validator('timestamp')
    @classmethod
    def to_naive_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @classmethod
    def parse(cls, data: Mapping[str, Any]) -> 'PurchaseEvent':
        """
        Build an event from raw data, translating pydantic errors.

        Raises:
            EventValidationError: If any field is missing or malformed
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = '; '.join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise EventValidationError(f"Malformed purchase event: {problems}") from e

    def replay_key(self) -> tuple:
        """Key identifying this event's snapshot for replay deduplication"""
        return self.artist_id, self.block_number, self.log_index
