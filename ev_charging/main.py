import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ev_charging import __version__
from ev_charging.config import settings
from ev_charging.database import Base, engine
from ev_charging.operators import router as operators_router
from ev_charging.reservations import router as reservations_router
from ev_charging.scans import router as scans_router
from ev_charging.stations import router as stations_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables on startup
    Base.metadata.create_all(bind=engine)
    yield

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    description="EV Charging Reservation & Operator Assignment API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(
    reservations_router.router,
    prefix=f"{settings.API_V1_STR}/reservations",
    tags=["Reservations"]
)

app.include_router(
    operators_router.router,
    prefix=f"{settings.API_V1_STR}/operators",
    tags=["Station Operators"]
)

app.include_router(
    scans_router.router,
    prefix=f"{settings.API_V1_STR}/scans",
    tags=["Scan Tokens"]
)

app.include_router(
    stations_router.router,
    prefix=f"{settings.API_V1_STR}/stations",
    tags=["Stations"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "EV Charging Reservation API",
        "version": __version__,
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
