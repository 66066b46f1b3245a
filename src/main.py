import logging

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request

from keys_api import router as keys_router
from sync_api import router as sync_router

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

app = FastAPI(title="GymLog Sync Server", version="1.0.0")


@app.middleware("http")
async def log_internal_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except HTTPException as e:
        if e.status_code == 500:
            logger.error(
                "Unhandled exception during request: %s %s. Error: %s",
                request.method,
                request.url,
                e.detail,
            )
        raise


# Include routers
app.include_router(keys_router)
app.include_router(sync_router)


@app.get("/")
async def root():
    return {"message": "Welcome to GymLog Sync Server"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
