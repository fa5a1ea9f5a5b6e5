import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from app.api.deps import get_clincalc_client, get_mdcalc_client, get_snapshot_store
from app.services.risk_assessment.clincalc_client import ClinCalcClient
from app.services.risk_assessment.errors import format_validation_issues
from app.services.risk_assessment.mdcalc_client import MdCalcClient
from app.services.risk_assessment.models import (
    AssessmentSnapshot,
    Intake,
    PatientProfile,
    RiskAssessmentView,
)
from app.services.risk_assessment.session import RiskAssessmentSession
from app.services.risk_assessment.store import SnapshotStore

router = APIRouter()
logger = logging.getLogger(__name__)


class RiskAssessmentRequest(BaseModel):
    profile: Optional[PatientProfile] = None
    intake: Optional[Intake] = None


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=RiskAssessmentView,
    summary="Run a PREVENT risk assessment",
    description=(
        "Derive age, build both provider payloads, call MdCalc and ClinCalc "
        "concurrently, record a snapshot and return the interpreted result."
    ),
)
async def create_risk_assessment(
    request: Request,
    mdcalc_client: MdCalcClient = Depends(get_mdcalc_client),
    clincalc_client: ClinCalcClient = Depends(get_clincalc_client),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    """
    Provider failures do not fail the request: they show up as a `partial` or
    `error` status with messages. A missing profile or intake yields `idle`
    with a prompt to complete the intake.
    """
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid JSON payload."},
        )

    try:
        assessment_request = RiskAssessmentRequest.model_validate(payload)
    except ValidationError as ve:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body.", "issues": format_validation_issues(ve)},
        )

    session = RiskAssessmentSession(mdcalc_client, clincalc_client, store)
    try:
        view = await session.evaluate(assessment_request.profile, assessment_request.intake)
    finally:
        await session.close()

    logger.info(
        "Risk assessment completed",
        extra={"status": view.status.value, "snapshot_id": view.snapshot_id},
    )
    return view


@router.get("", response_model=List[AssessmentSnapshot])
async def list_risk_assessments(store: SnapshotStore = Depends(get_snapshot_store)):
    """Recorded snapshots, oldest first."""
    return await store.list_snapshots()
