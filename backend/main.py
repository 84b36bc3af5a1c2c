"""
FastAPI Backend for the Page Generation Agent

Turns a natural-language requirement into an amis page configuration:
Planner → Doc Associator → Context Preparer → Executor → Validator → Fixer → Composer

API Structure:
- POST /api/runs - Submit a requirement
- GET  /api/runs/{id} - Fetch a finished run
- POST /api/runs/{id}/resume - Continue an interrupted run
- POST /api/runs/{id}/retry - Regenerate selected tasks
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import HOST, PORT, CORS_ORIGINS, LOG_LEVEL
from database import init_db
from routers import runs

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Page Generation Agent API",
    description="AI-powered amis page configuration generator",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(runs.router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Page Generation Agent API",
        "version": "1.0.0",
        "endpoints": {
            "runs": "/api/runs",
        },
        "docs": "/docs"
    }


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": "1.0.0",
    }


if __name__ == "__main__":
    import uvicorn

    print(f"""
    Page Generation Agent API

    API:  http://{HOST}:{PORT}
    Docs: http://{HOST}:{PORT}/docs

    Endpoints:
    - POST /api/runs - Submit a requirement
    - GET  /api/runs/{{id}} - Fetch a finished run
    - POST /api/runs/{{id}}/resume - Resume an interrupted run
    - POST /api/runs/{{id}}/retry - Regenerate tasks

    Press Ctrl+C to stop
    """)

    uvicorn.run(
        app,
        host=HOST,
        port=PORT,
        log_level=LOG_LEVEL.lower()
    )
