import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.api.deps import get_mdcalc_client
from app.schemas.mdcalc import MdCalcAssessmentRequest, MdCalcAssessmentResponse
from app.services.risk_assessment.errors import ProviderError, format_validation_issues
from app.services.risk_assessment.mdcalc_client import MdCalcClient

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/prevent-assessments",
    status_code=status.HTTP_201_CREATED,
    response_model=MdCalcAssessmentResponse,
    summary="Calculate PREVENT risk via MdCalc",
    description="Forward a PREVENT payload to MdCalc and return its validated output list.",
)
async def create_mdcalc_prevent_assessment(
    request: Request,
    client: MdCalcClient = Depends(get_mdcalc_client),
):
    """
    - **body**: MdCalc PREVENT payload (UOMSYSTEM, model, sex, age, tc, hdl, sbp,
      diabetes, smoker, egfr, htn_med, statin, bmi)

    Returns 400 on an invalid body and 502 when MdCalc is unreachable, answers
    with an error status, or answers in an unexpected shape.
    """
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid JSON payload."},
        )

    try:
        assessment_request = MdCalcAssessmentRequest.model_validate(payload)
    except ValidationError as ve:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body.", "issues": format_validation_issues(ve)},
        )

    try:
        assessment = await client.calculate(assessment_request.body)
    except ProviderError as e:
        logger.error(f"MdCalc assessment failed: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=e.to_response_body(),
        )

    return MdCalcAssessmentResponse(assessment=assessment)
