from typing import List

from fastapi import APIRouter, Query

from walkquest.models.schemas import InteractionSession
from walkquest.services.interaction_log import FileInteractionRecorder, interaction_recorder

router = APIRouter()


@router.get("", response_model=List[InteractionSession])
async def list_logs() -> List[InteractionSession]:
    if not isinstance(interaction_recorder, FileInteractionRecorder):
        return []
    return [InteractionSession(**session) for session in interaction_recorder.list_sessions()]


@router.delete("")
async def clean_logs(days: int = Query(default=7, ge=0)) -> dict:
    if not isinstance(interaction_recorder, FileInteractionRecorder):
        return {"cleaned": 0}
    return {"cleaned": interaction_recorder.clean_old(days)}
