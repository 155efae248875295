from fastapi import FastAPI

from .logging_config import configure_logging
from .settings import settings
from .routers import health
from .routers import content
from .routers import quiz
from .routers import progress
from .routers import teacher

app = FastAPI(title="StudyRoom API")
app.include_router(health.router)
app.include_router(content.router)
app.include_router(quiz.router)
app.include_router(progress.router)
app.include_router(teacher.router)


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


@app.on_event("startup")
async def startup_event():
	configure_logging(settings.log_level)


@app.on_event("shutdown")
async def shutdown_event():
	# Stop any in-flight narration before the loop goes away
	quiz.close_all_sessions()
