from __future__ import annotations

import inject
from fastapi import HTTPException, Request

from src.mailbatch.domain.models.user import UserContext
from src.mailbatch.domain.repositories import UserContextProvider


def optional_user(request: Request) -> UserContext | None:
    provider: UserContextProvider = inject.instance(UserContextProvider)
    return provider.resolve(dict(request.headers))


def require_user(request: Request) -> UserContext:
    user = optional_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user
