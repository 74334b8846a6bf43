from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Callable
from datetime import datetime

import inject

from src.mailbatch.domain.models.address import NewAddress
from src.mailbatch.domain.repositories import AddressRepository
from src.setup.batch_config import get_batch_settings

logger = logging.getLogger(__name__)

LOCAL_PART_ALPHABET = string.ascii_letters + string.digits + "_"


def random_local_part(length: int) -> str:
    return "".join(secrets.choice(LOCAL_PART_ALPHABET) for _ in range(length))


class AddressGenerator:
    """
    Produces random addresses under a domain that collide neither with each other
    (case-insensitively) nor with anything already in the address store.
    """

    def __init__(
        self,
        addresses: AddressRepository | None = None,
        *,
        attempt_factor: int | None = None,
        local_part: Callable[[], str] | None = None,
    ) -> None:
        settings = get_batch_settings()
        self._addresses = addresses or inject.instance(AddressRepository)
        self._attempt_factor = attempt_factor or settings.ATTEMPT_FACTOR
        length = settings.LOCAL_PART_LENGTH
        self._local_part = local_part or (lambda: random_local_part(length))

    def max_attempts(self, count: int) -> int:
        return count * self._attempt_factor

    async def generate(
        self,
        domain: str,
        count: int,
        *,
        owner_id: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> list[NewAddress]:
        """
        Return up to ``count`` unique addresses. Running out of attempts yields a
        shorter list rather than an error.
        """
        accepted: list[NewAddress] = []
        seen: set[str] = set()
        max_attempts = self.max_attempts(count)
        attempts = 0

        while len(accepted) < count and attempts < max_attempts:
            attempts += 1
            address = f"{self._local_part()}@{domain}"
            key = address.lower()
            if key in seen:
                continue
            seen.add(key)
            if await self._addresses.exists(address):
                continue
            accepted.append(
                NewAddress(
                    address=address,
                    owner_id=owner_id,
                    created_at=created_at,
                    expires_at=expires_at,
                )
            )

        if len(accepted) < count:
            logger.info(
                "Address generation fell short of target",
                extra={"domain": domain, "target": count, "accepted": len(accepted), "attempts": attempts},
            )
        return accepted
