# kamleen/routers/system_routes.py
"""
Scheduler-only endpoints, authenticated by the shared CRON_SECRET header
"""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from kamleen.core.config import settings
from kamleen.database.database import get_db
from kamleen.services.expiration_service import expire_stale_bookings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["System"])


def verify_cron_key(x_cron_key: Optional[str] = Header(None)):
    secret = settings.CRON_SECRET
    if not secret or not x_cron_key or not hmac.compare_digest(secret, x_cron_key):
        logger.warning("Rejected scheduler call with missing or wrong x-cron-key")
        raise HTTPException(status_code=403, detail="Forbidden")


@router.post("/expire-bookings", dependencies=[Depends(verify_cron_key)])
def expire_bookings(db: Session = Depends(get_db)):
    return {"expired": expire_stale_bookings(db)}
