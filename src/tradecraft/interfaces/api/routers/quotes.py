# src/tradecraft/interfaces/api/routers/quotes.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from tradecraft.application.services import QuoteService
from tradecraft.domain.errors import ValidationError
from tradecraft.interfaces.api.deps import get_quote_service

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/stock", tags=["Market Data"])


@router.get("/quote")
async def stock_quote(
    symbol: Optional[str] = Query(default=None),
    symbols: Optional[str] = Query(default=None),
    quote_service: QuoteService = Depends(get_quote_service),
):
    try:
        if symbol:
            quote = await quote_service.get_quote(symbol)
            return quote.to_dict()
        if symbols:
            requested = [s for s in symbols.split(",") if s.strip()]
            quotes = await quote_service.get_batch_quotes(requested)
            return {sym: q.to_dict() for sym, q in quotes.items()}
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    raise HTTPException(status_code=400, detail="Missing symbol or symbols parameter")
