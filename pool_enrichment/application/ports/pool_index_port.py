from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from pool_enrichment.domain.entities.pool import LinearPool


class PoolIndexPort(Protocol):
    def get_linear_pools(
        self,
        *,
        address_in: list[str],
        total_shares_gt: Decimal,
    ) -> list[LinearPool]:
        ...

    def address_for(self, *, pool_id: str) -> str:
        ...
