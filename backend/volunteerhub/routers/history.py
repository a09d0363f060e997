from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from volunteerhub.core.auth import require_volunteer
from volunteerhub.core.database import get_db
from volunteerhub.models.user import User
from volunteerhub.schemas.history import HistoryResponse
from volunteerhub.services.history_service import HistoryService

router = APIRouter()


@router.get(
    "/",
    response_model=HistoryResponse,
    summary="Get my participation history and statistics",
    responses={403: {"description": "Volunteer role required"}},
)
async def get_history(
    db: Session = Depends(get_db),
    volunteer: User = Depends(require_volunteer),
) -> HistoryResponse:
    return HistoryService(db).get_history(volunteer.id)  # type: ignore[arg-type]
