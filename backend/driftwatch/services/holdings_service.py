"""
Holdings lifecycle: list, create (with merge), update, delete.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from driftwatch.core.errors import HoldingConflictError
from driftwatch.models.holding import Holding
from driftwatch.services.symbol_directory import SymbolAllowList

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


class HoldingsService:
    def __init__(self, session: AsyncSession, allow_list: Optional[SymbolAllowList] = None):
        self.session = session
        self.allow_list = allow_list

    async def list_holdings(self) -> List[Holding]:
        """All holdings ordered by symbol ascending."""
        result = await self.session.execute(select(Holding).order_by(Holding.symbol.asc()))
        return list(result.scalars().all())

    async def list_symbols(self) -> List[str]:
        result = await self.session.execute(select(Holding.symbol))
        return [row[0] for row in result.all()]

    async def get(self, holding_id: int) -> Optional[Holding]:
        return await self.session.get(Holding, holding_id)

    async def get_by_symbol(self, symbol: str) -> Optional[Holding]:
        stmt = select(Holding).where(Holding.symbol == normalize_symbol(symbol))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        symbol: str,
        shares: float,
        target_weight: float,
        label: Optional[str] = None,
    ) -> Tuple[Holding, bool]:
        """
        Add a holding, or merge into the existing one for the same symbol.

        A merge adds ``shares`` to the existing position, replaces the target
        weight, and keeps the existing label unless a new one is given.

        Returns:
            (holding, created) where created is False for a merge

        Raises:
            SymbolNotAllowedError: If the symbol is not on the allow-list
            SymbolListUnavailableError: If the allow-list cannot be loaded
        """
        symbol = normalize_symbol(symbol)
        if self.allow_list is not None:
            await self.allow_list.ensure_allowed(symbol)

        existing = await self.get_by_symbol(symbol)
        if existing is not None:
            existing.shares = existing.shares + shares
            existing.target_weight = target_weight
            if label is not None:
                existing.label = label
            await self.session.flush()
            logger.info("Merged %s shares into holding %s (id=%s)", shares, symbol, existing.id)
            return existing, False

        if label is None and self.allow_list is not None:
            label = await self.allow_list.lookup_label(symbol)

        holding = Holding(
            symbol=symbol,
            label=label,
            shares=shares,
            target_weight=target_weight,
        )
        self.session.add(holding)
        await self.session.flush()
        logger.info("Created holding %s (id=%s)", symbol, holding.id)
        return holding, True

    async def update(
        self,
        holding_id: int,
        symbol: str,
        shares: float,
        target_weight: float,
        label: Optional[str] = None,
    ) -> int:
        """
        Replace all editable fields of a holding.

        Returns:
            Number of rows updated (0 if the id does not exist)

        Raises:
            HoldingConflictError: If the new symbol belongs to another holding
        """
        holding = await self.get(holding_id)
        if holding is None:
            return 0

        symbol = normalize_symbol(symbol)
        if symbol != holding.symbol:
            other = await self.get_by_symbol(symbol)
            if other is not None and other.id != holding.id:
                raise HoldingConflictError(symbol)

        holding.symbol = symbol
        holding.label = label
        holding.shares = shares
        holding.target_weight = target_weight
        await self.session.flush()
        return 1

    async def delete(self, holding_id: int) -> int:
        result = await self.session.execute(delete(Holding).where(Holding.id == holding_id))
        return result.rowcount or 0
