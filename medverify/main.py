"""
Main FastAPI application entry point.
Configures the application, middleware, and includes routers.
"""
from dotenv import load_dotenv

# Load environment variables from .env file first
load_dotenv()

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .auth import models  # noqa: F401  registers the tables on Base
from .auth.router import router as auth_router
from .config import settings
from .core.bootstrap import bootstrap_admin_if_needed
from .core.middleware import setup_middlewares
from .database import Base, SessionLocal, engine
from .exceptions import register_exception_handlers
from .verification.router import admin_router as verification_admin_router
from .verification.router import router as verification_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create database tables if they don't exist
Base.metadata.create_all(bind=engine)

logger.info("Starting MedVerify API...")
db = SessionLocal()
try:
    bootstrap_admin_if_needed(db)
except Exception as e:
    logger.error(f"Bootstrap process failed: {str(e)}")
finally:
    db.close()

# Create FastAPI application
app = FastAPI(
    title="MedVerify API",
    description="Accounts, password reset and medical professional verification",
    version="1.0.0"
)

# Register exception handlers
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware
setup_middlewares(app)

# Include routers
app.include_router(auth_router)
app.include_router(verification_router)
app.include_router(verification_admin_router)

# Root endpoint
@app.get("/")
def root():
    """
    Root endpoint.

    Returns:
        dict: Simple welcome message
    """
    return {"message": "Welcome to MedVerify API"}

# Health check endpoint
@app.get("/api/health")
async def health_check():
    return {"status": "healthy"}
