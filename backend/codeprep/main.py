"""CodePrep Assessments - FastAPI Application."""

import json
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from codeprep.config import settings
from codeprep.db import async_session, init_db
from codeprep.models.question import Quiz, question_adapter
from codeprep.routers import attempts_router, execution_router
from codeprep.services import (
    DocumentStore,
    GradingEngine,
    Judge0Client,
    LanguageRegistry,
    SessionRegistry,
    SqlCheckpointStore,
)
from codeprep.services.languages import DEFAULT_LANGUAGE_IDS

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_documents(store: DocumentStore) -> None:
    """Load quizzes and questions from data/seed/*.json into the store."""
    if os.getenv("SKIP_SEEDING", "").lower() == "true":
        logger.info("SKIP_SEEDING is set. Skipping database seed.")
        return

    if not await store.get_languages():
        for name, judge0_id in DEFAULT_LANGUAGE_IDS.items():
            await store.save_language(name, judge0_id)
        logger.info(f"Seeded {len(DEFAULT_LANGUAGE_IDS)} languages.")

    seed_dir = settings.data_dir / "seed"
    if not seed_dir.exists():
        logger.warning(f"Seed directory not found: {seed_dir}")
        return

    total_imported = 0
    for json_file in sorted(seed_dir.glob("*.json")):
        logger.info(f"Loading {json_file.name}...")
        with open(json_file) as f:
            data = json.load(f)

        for q in data.get("questions", []):
            try:
                await store.save_question(question_adapter.validate_python(q))
                total_imported += 1
            except ValidationError as e:
                logger.error(f"Skipping invalid question {q.get('id')}: {e}")
        for quiz in data.get("quizzes", []):
            try:
                await store.save_quiz(Quiz.model_validate(quiz))
            except ValidationError as e:
                logger.error(f"Skipping invalid quiz {quiz.get('id')}: {e}")

    logger.info(f"Imported {total_imported} questions.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings.data_dir.mkdir(parents=True, exist_ok=True)

    logger.info("Initializing database...")
    await init_db()
    logger.info("Database initialized.")

    store = DocumentStore(async_session)
    await seed_documents(store)

    languages = LanguageRegistry(loader=store.get_languages)
    grader = GradingEngine(Judge0Client(), languages)
    app.state.store = store
    app.state.grader = grader
    app.state.registry = SessionRegistry(store, grader, SqlCheckpointStore(async_session))

    if not settings.judge0_api_key:
        logger.warning("JUDGE0_API_KEY is not set; coding answers will not be executed.")

    logger.info("Startup complete.")
    yield

    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_name,
    description="Proctored coding and multiple choice assessments",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(attempts_router)
app.include_router(execution_router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
