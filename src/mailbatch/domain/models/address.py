from datetime import datetime

from pydantic import BaseModel, Field


class NewAddress(BaseModel):
    """Address candidate accepted by the generator, not yet persisted."""

    address: str = Field(description="Full address, local part and domain.")
    owner_id: str = Field(description="User the address is issued to.")
    created_at: datetime = Field(description="Creation timestamp.")
    expires_at: datetime = Field(description="Expiry timestamp.")
