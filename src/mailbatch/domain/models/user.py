from pydantic import BaseModel, Field


class UserContext(BaseModel):
    """Acting user resolved for a request."""

    user_id: str = Field(description="Identifier of the acting user.")
    role: str | None = Field(default=None, description="Role name, if known.")
