from __future__ import annotations

from src.mailbatch.domain.models.user import UserContext
from src.mailbatch.domain.repositories import UserContextProvider

USER_ID_HEADER = "x-user-id"
USER_ROLE_HEADER = "x-user-role"


class HeaderUserContextProvider(UserContextProvider):
    """Reads the acting user from headers set by the authenticating gateway."""

    def resolve(self, headers: dict[str, str]) -> UserContext | None:
        normalized = {key.lower(): value for key, value in headers.items()}
        user_id = normalized.get(USER_ID_HEADER, "").strip()
        if not user_id:
            return None
        role = normalized.get(USER_ROLE_HEADER, "").strip() or None
        return UserContext(user_id=user_id, role=role)
