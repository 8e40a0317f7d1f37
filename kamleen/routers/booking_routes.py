# kamleen/routers/booking_routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kamleen.auth import require_role
from kamleen.database.database import get_db
from kamleen.database.models import User, UserRole
from kamleen.database.schemas import BookingCancel, BookingCreate, BookingResponse
from kamleen.services.booking_service import cancel_booking, create_booking

router = APIRouter(prefix="/experiences/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=201)
async def request_booking(
    body: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.EXPLORER)),
):
    return await create_booking(
        db,
        explorer=current_user,
        experience_id=body.experience_id,
        session_id=body.session_id,
        guests=body.guests,
        notes=body.notes,
    )


@router.post("/cancel", response_model=BookingResponse)
async def cancel_pending_booking(
    body: BookingCancel,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.EXPLORER)),
):
    return await cancel_booking(db, explorer=current_user, booking_id=body.booking_id, message=body.message)
