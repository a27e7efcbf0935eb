from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from .. import quote_generator
from ..database import get_db
from ..fee_engine import classify_location, compute_quote_fees, recommended_trip_count
from ..quote_generator import NotFound, QuoteGenerationError, quote_to_dict
from ..schemas import (
    AddQuoteItemRequest,
    FeePreviewRequest,
    GenerateQuotesRequest,
    UpdateQuoteItemRequest,
)

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("/generate")
def generate_quotes(request: GenerateQuotesRequest, db: Session = Depends(get_db)):
    try:
        quotes = quote_generator.generate_for_project(db, request.project_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except QuoteGenerationError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"items": [quote_to_dict(q) for q in quotes]}


@router.post("/fees/preview")
def preview_fees(request: FeePreviewRequest, db: Session = Depends(get_db)):
    """
    Run the fee engine without storing anything.
    Stored pricing settings apply first, then any explicit overrides.
    """
    overrides = {}
    if request.use_pricing_settings:
        overrides.update(quote_generator.current_fee_overrides(db).model_dump(exclude_none=True))
    if request.overrides:
        overrides.update(request.overrides.model_dump(exclude_none=True))

    fees = compute_quote_fees(
        request.devices_subtotal,
        request.total_devices,
        location_hint=request.location,
        rooms_count=request.rooms_count,
        overrides=overrides,
    )
    return {
        "location_tier": classify_location(request.location).value,
        "trips": recommended_trip_count(request.rooms_count),
        **fees.model_dump(),
    }


@router.get("/project/{project_id}")
def list_project_quotes(project_id: str, db: Session = Depends(get_db)):
    return {"items": [quote_to_dict(q) for q in quote_generator.list_for_project(db, project_id)]}


@router.get("/{quote_id}")
def get_quote(quote_id: str, db: Session = Depends(get_db)):
    try:
        return quote_to_dict(quote_generator.get_quote(db, quote_id))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{quote_id}/select")
def select_quote(quote_id: str, db: Session = Depends(get_db)):
    try:
        return quote_to_dict(quote_generator.select_quote(db, quote_id))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{quote_id}/items")
def add_quote_item(quote_id: str, request: AddQuoteItemRequest, db: Session = Depends(get_db)):
    try:
        quote = quote_generator.add_item(db, quote_id, request.product_id, request.quantity)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return quote_to_dict(quote)


@router.patch("/{quote_id}/items/{item_id}")
def update_quote_item(
    quote_id: str,
    item_id: str,
    request: UpdateQuoteItemRequest,
    db: Session = Depends(get_db),
):
    try:
        quote = quote_generator.update_item(db, quote_id, item_id, request.quantity)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return quote_to_dict(quote)


@router.delete("/{quote_id}/items/{item_id}")
def remove_quote_item(quote_id: str, item_id: str, db: Session = Depends(get_db)):
    try:
        quote = quote_generator.remove_item(db, quote_id, item_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return quote_to_dict(quote)
