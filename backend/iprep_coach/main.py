import logging

from fastapi import FastAPI

from .db import Base, engine, ensure_schema
from .cache import analysis_cache
from .settings import settings
from .routers import auth
from .routers import practice
from .routers import learning

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="iPrep Coach API")
app.include_router(auth.router)
app.include_router(practice.router)
app.include_router(learning.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"fallback_configured": bool(settings.openrouter_api_key),
		"cache": analysis_cache.stats(),
	}


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight migrations
	ensure_schema()
	logger.info("iPrep Coach API started (model %s, provider %s)", settings.gemini_model, settings.gemini_provider)
