"""
Waste Submission API Endpoints.

Used by the bin hardware and the dashboard. Public.
"""

from fastapi import APIRouter, Depends, status

from backend.app.core.dependencies import get_waste_recording_service
from backend.app.schemas.waste import WasteRecordCreate, WasteRecordResponse
from backend.app.services.waste_recording import WasteRecordingService

router = APIRouter(prefix="/waste", tags=["Waste"])


@router.post("/add", response_model=WasteRecordResponse, status_code=status.HTTP_201_CREATED)
async def add_waste_record(
    data: WasteRecordCreate,
    service: WasteRecordingService = Depends(get_waste_recording_service)
):
    """
    Record today's waste volumes.
    
    Coupons are consumed for the total; a coupon shortfall is reported in
    the response but never fails the submission.
    """
    return await service.submit(data)
