import asyncio
import logging

from fastapi import FastAPI

from .db import Base, engine, SessionLocal, ping
from .cleanup import purge_expired
from .errors import install_error_handlers
from .settings import settings
from .routers import admin, auth, content, notebook, quiz, review, words
from .routers.auth import ensure_seed_admin
from .seed import seed_initial_data
from .word_lookup import GeminiWordLookup

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Wordtales API")
install_error_handlers(app)
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(content.router)
app.include_router(review.router)
app.include_router(words.router)
app.include_router(notebook.router)
app.include_router(quiz.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"database_ok": ping(),
	}


def _run_cleanup() -> None:
	db = SessionLocal()
	try:
		removed = purge_expired(db)
		if removed:
			logger.info("cleanup removed %d expired rows", removed)
	except Exception:
		logger.exception("cleanup failed")
	finally:
		db.close()


async def _cleanup_watcher():
	while True:
		await asyncio.sleep(24 * 60 * 60)
		_run_cleanup()


@app.on_event("startup")
async def startup_event():
	Base.metadata.create_all(bind=engine)
	db = SessionLocal()
	try:
		ensure_seed_admin(db)
		if settings.seed_demo_content:
			try:
				if await seed_initial_data(db, GeminiWordLookup(), batch_size=settings.lookup_batch_size):
					logger.info("demo content seeded")
			except Exception:
				db.rollback()
				logger.exception("failed to seed demo content")
	finally:
		db.close()
	_run_cleanup()
	asyncio.create_task(_cleanup_watcher())
