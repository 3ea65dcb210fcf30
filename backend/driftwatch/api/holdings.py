"""
Holdings API Router.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import AliasChoices, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from driftwatch.api.schemas import CamelModel
from driftwatch.core.database import get_db
from driftwatch.core.errors import (
    HoldingConflictError,
    SymbolListUnavailableError,
    SymbolNotAllowedError,
)
from driftwatch.services.holdings_service import HoldingsService
from driftwatch.services.symbol_directory import SymbolAllowList, get_allow_list

router = APIRouter()


# ---------- Pydantic Schemas ----------

class HoldingIn(CamelModel):
    symbol: str = Field(min_length=1, max_length=12)
    label: Optional[str] = Field(
        default=None,
        max_length=120,
        validation_alias=AliasChoices("label", "name"),
    )
    shares: float = Field(gt=0, allow_inf_nan=False)
    target_weight: float = Field(ge=0, le=1, allow_inf_nan=False)

    @field_validator("symbol", mode="before")
    @classmethod
    def _normalize_symbol(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("label", mode="before")
    @classmethod
    def _strip_label(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip() or None
        return v


class HoldingOut(CamelModel):
    id: int
    symbol: str
    label: Optional[str]
    shares: float
    target_weight: float
    created_at: datetime


class IdResponse(CamelModel):
    id: int


class UpdatedResponse(CamelModel):
    updated: int


class DeletedResponse(CamelModel):
    deleted: int


# ---------- Endpoints ----------

@router.get("", response_model=list[HoldingOut])
async def list_holdings(db: AsyncSession = Depends(get_db)):
    """All holdings ordered by symbol."""
    return await HoldingsService(db).list_holdings()


@router.post("", response_model=IdResponse, status_code=status.HTTP_201_CREATED)
async def create_holding(
    body: HoldingIn,
    response: Response,
    db: AsyncSession = Depends(get_db),
    allow_list: SymbolAllowList = Depends(get_allow_list),
):
    """
    Add a holding. Posting a symbol that already exists merges into it:
    shares are added and the target weight is replaced (200 instead of 201).
    """
    service = HoldingsService(db, allow_list=allow_list)
    try:
        holding, created = await service.create(
            symbol=body.symbol,
            shares=body.shares,
            target_weight=body.target_weight,
            label=body.label,
        )
    except (SymbolNotAllowedError, SymbolListUnavailableError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.code)

    if not created:
        response.status_code = status.HTTP_200_OK
    return IdResponse(id=holding.id)


@router.put("/{holding_id}", response_model=UpdatedResponse)
async def update_holding(
    holding_id: int,
    body: HoldingIn,
    db: AsyncSession = Depends(get_db),
):
    try:
        updated = await HoldingsService(db).update(
            holding_id,
            symbol=body.symbol,
            shares=body.shares,
            target_weight=body.target_weight,
            label=body.label,
        )
    except HoldingConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.code)
    return UpdatedResponse(updated=updated)


@router.delete("/{holding_id}", response_model=DeletedResponse)
async def delete_holding(holding_id: int, db: AsyncSession = Depends(get_db)):
    deleted = await HoldingsService(db).delete(holding_id)
    return DeletedResponse(deleted=deleted)
