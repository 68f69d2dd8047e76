# main.py
# Entry point for the backend service.
# - Initializes FastAPI app
# - Registers API routes (project progress, action item access, secure responses)
# - Provides root health-check endpoint
# - Run with: uvicorn main:app --reload (from backend/src)
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.action_item_routes import router as action_item_router
from api.progress_routes import router as progress_router
from config.settings import get_settings

settings = get_settings()
logging.basicConfig(level=settings.log_level)

app = FastAPI(
    title="Client Portal Backend API",
    description="Project progress, action item access and secure responses",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allow_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
def root():
    return {"status": "healthy", "message": "Backend API is running"}

@app.get("/health")
def health_check():
    return {"status": "ok"}


# Register API routes
app.include_router(progress_router)
app.include_router(action_item_router)
