"""
Wire contracts for the ClinCalc PREVENT calculator.

ClinCalc has no public API. The payload here is our own human-readable shape;
the legacy form encoding lives in the ClinCalc client.
"""
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

HIDDEN_FIELD_NAMES = ("__VIEWSTATE", "__VIEWSTATEGENERATOR", "__EVENTVALIDATION")


class ClinCalcPreventPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, strict=True)

    age: int
    gender: Literal["male", "female"]
    total_cholesterol: float = Field(..., alias="totalCholesterol")
    hdl_cholesterol: float = Field(..., alias="hdlCholesterol")
    systolic_bp: float = Field(..., alias="systolicBP")
    bmi: float
    egfr: float = Field(..., alias="eGFR")
    diabetes: bool
    smoker: bool
    taking_antihypertensive: bool = Field(..., alias="takingAntihypertensive")
    taking_statin: bool = Field(..., alias="takingStatin")


class ClinCalcAssessmentRequest(BaseModel):
    body: ClinCalcPreventPayload


class ClinCalcHiddenFields(BaseModel):
    """ASP.NET session state harvested from the calculator page."""
    view_state: str
    view_state_generator: str
    event_validation: str


class RiskFactorContribution(BaseModel):
    factor: str
    value: float = Field(..., description="Signed effect on 10-year risk, in percentage points")
    annotation: str


class ClinCalcAssessmentResponse(BaseModel):
    contributions: List[RiskFactorContribution]
