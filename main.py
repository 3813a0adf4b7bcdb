import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.routes import health, vin
from app.services.vehicle_resolution.vehicle_resolution_orchestrator import initialize_vehicle_resolver
from app.utils.settings import Settings

settings = Settings.from_env()
logging.basicConfig(level=settings.log_level, format='%(asctime)s - %(levelname)s - %(message)s')


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: build the resolver singleton (decoder, assistant, cache)
    initialize_vehicle_resolver(settings)
    yield

app = FastAPI(
    title="VIN Resolver API",
    description="Resolves a VIN into a canonical vehicle record by reconciling decoder data, classification signals and optional AI enrichment",
    version="0.1.0",
    lifespan=lifespan
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)
API_PREFIX = "/api"
app.include_router(health.router, prefix=API_PREFIX, tags=["Health"])
app.include_router(vin.router, prefix=API_PREFIX, tags=["VIN"])

@app.get("/api")
async def root():
    return {"message": "Welcome to the VIN Resolver API"}


# Main entry point for running the FastAPI server
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8002, reload=True)
