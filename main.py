import argparse
import logging
import uvicorn
from fastapi import FastAPI
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db
from config import load_config
from routes import semesters, courses, problems  # Import routers

def configure_logging(config: dict) -> None:
    logging.basicConfig(
        level=config["logging"]["level"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

# Startup: config, logging, pending migrations
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(load_config())
    init_db()
    yield

app = FastAPI(title="Study Log", description="Semester, course and problem log store", lifespan=lifespan)

# Include routers
app.include_router(semesters.router, prefix="/semesters", tags=["semesters"])
app.include_router(courses.router, prefix="/courses", tags=["courses"])
app.include_router(problems.router, prefix="/problems", tags=["problems"])

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Study Log App")
    parser.add_argument("--init", action="store_true", help="Initialize config and apply pending migrations")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    args = parser.parse_args()
    if args.init:
        configure_logging(load_config())
        applied = init_db()
        print(f"Applied {len(applied)} migration(s); config in ~/.studylog/")
        exit(0)
    # Run server
    port = 8000
    reload = args.dev
    uvicorn.run("main:app", host="127.0.0.1", port=port, reload=reload, log_level="info")
