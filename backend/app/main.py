from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.router import api_router
from app.core import logging  # Initialize logging
from app.services.risk_assessment import clincalc_client, mdcalc_client

app = FastAPI(
    title="CardioRisk API",
    description="PREVENT 10-year cardiovascular risk assessment aggregated from MdCalc and ClinCalc",
    version="1.0.0"
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API Routers
app.include_router(api_router, prefix="/api/v1")


@app.on_event("shutdown")
async def shutdown_event():
    # Release pooled upstream connections
    await mdcalc_client.close_shared_client()
    await clincalc_client.close_shared_client()


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "CardioRisk"}
