from fastapi import APIRouter
from app.api.routes import mdcalc, clincalc, risk_assessments

api_router = APIRouter()

api_router.include_router(mdcalc.router, prefix="/mdcalc", tags=["MdCalc"])
api_router.include_router(clincalc.router, prefix="/clincalc", tags=["ClinCalc"])
api_router.include_router(risk_assessments.router, prefix="/risk-assessments", tags=["Risk Assessments"])
