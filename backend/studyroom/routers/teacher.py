from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..content import ContentUnavailable, generate_schedule
from ..deps import get_gemini_client
from ..gemini_client import GeminiClient
from ..models import TeacherScheduleWeek

router = APIRouter(prefix="/teacher", tags=["teacher"])


class ScheduleRequest(BaseModel):
	topic: str
	weeks: int = Field(default=4, ge=1, le=52)


@router.post("/schedule", response_model=List[TeacherScheduleWeek])
async def create_schedule(req: ScheduleRequest, client: GeminiClient = Depends(get_gemini_client)):
	try:
		return await generate_schedule(client, req.topic, req.weeks)
	except ValueError as e:
		raise HTTPException(status_code=400, detail=str(e))
	except ContentUnavailable as e:
		raise HTTPException(status_code=503, detail=f"content unavailable: {e}")
