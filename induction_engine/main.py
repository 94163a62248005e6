# induction_engine/main.py
from datetime import datetime, timezone
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from induction_engine.api import config as config_api, induction, simulation
from induction_engine.config import settings
from induction_engine.utils import cloud_database

# Configure logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="KMRL Induction Decision Engine",
    description="Nightly revenue / standby / IBL induction decisions for the Kochi Metro fleet",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(induction.router, prefix="/api/induction", tags=["Induction"])
app.include_router(simulation.router, prefix="/api/simulation", tags=["Simulation"])
app.include_router(config_api.router, prefix="/api/config", tags=["Configuration"])


@app.on_event("startup")
async def startup_event():
    """Connect the database and ensure indexes"""
    try:
        logger.info("Starting KMRL Induction Decision Engine...")
        await cloud_database.cloud_db_manager.connect_mongodb()
        await cloud_database.cloud_db_manager.ensure_indexes()
    except Exception as e:
        # keep serving; requests report the outage as 503
        logger.error(f"Startup failed: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    """Close database connections on shutdown"""
    await cloud_database.cloud_db_manager.close_all()
    logger.info("Database connections closed")


@app.get("/")
async def root():
    """Root endpoint with system information"""
    return {
        "message": "KMRL Induction Decision Engine API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    health = await cloud_database.cloud_db_manager.health_check()
    return {
        "status": "healthy" if health["overall"] else "unhealthy",
        "services": health["services"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
