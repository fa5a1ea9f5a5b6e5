import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.api.deps import get_clincalc_client
from app.schemas.clincalc import ClinCalcAssessmentRequest, ClinCalcAssessmentResponse
from app.services.risk_assessment.clincalc_client import ClinCalcClient
from app.services.risk_assessment.errors import ProviderError, format_validation_issues

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/prevent-assessments",
    status_code=status.HTTP_201_CREATED,
    response_model=ClinCalcAssessmentResponse,
    summary="Calculate PREVENT risk factor contributions via ClinCalc",
    description="Submit a PREVENT payload through ClinCalc's calculator form and return the scraped contributions.",
)
async def create_clincalc_prevent_assessment(
    request: Request,
    client: ClinCalcClient = Depends(get_clincalc_client),
):
    """
    - **body**: age, gender, totalCholesterol, hdlCholesterol, systolicBP, bmi,
      eGFR, diabetes, smoker, takingAntihypertensive, takingStatin

    Returns 502 when ClinCalc is unreachable, answers with an error status,
    omits its session fields, or returns a page without contribution rows.
    """
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid JSON payload."},
        )

    try:
        assessment_request = ClinCalcAssessmentRequest.model_validate(payload)
    except ValidationError as ve:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body.", "issues": format_validation_issues(ve)},
        )

    try:
        contributions = await client.calculate(assessment_request.body)
    except ProviderError as e:
        logger.error(f"ClinCalc assessment failed: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=e.to_response_body(),
        )

    return ClinCalcAssessmentResponse(contributions=contributions)
