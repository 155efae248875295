from fastapi import APIRouter, Depends

from ..deps import get_history
from ..library import ProgressHistory

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("")
async def get_progress(progress: ProgressHistory = Depends(get_history)):
	return progress.summary()
