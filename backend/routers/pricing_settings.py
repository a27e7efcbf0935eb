from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from ..database import get_db
from ..pricing_settings import InvalidPricingSetting, ensure_settings, settings_to_dict, update_settings
from ..schemas import PricingSettingsUpdate

router = APIRouter(prefix="/pricing-settings", tags=["pricing-settings"])


@router.get("/")
def get_pricing_settings(db: Session = Depends(get_db)):
    return settings_to_dict(ensure_settings(db))


@router.patch("/")
def update_pricing_settings(update: PricingSettingsUpdate, db: Session = Depends(get_db)):
    try:
        row = update_settings(db, update.model_dump(exclude_unset=True))
    except InvalidPricingSetting as e:
        raise HTTPException(status_code=400, detail=str(e))
    return settings_to_dict(row)
