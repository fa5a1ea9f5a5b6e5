"""
Internal data models for the risk assessment service.
These models carry a patient's intake through payload building, the two
provider calls, interpretation and the persisted snapshot.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from app.schemas.clincalc import ClinCalcPreventPayload, RiskFactorContribution
from app.schemas.mdcalc import MdCalcAssessment, MdCalcPreventPayload
from app.services.risk_assessment.config import get_field_range


class SexAtBirth(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class AssessmentStatus(str, Enum):
    """Lifecycle of one attempt: idle -> loading -> success | partial | error."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class RiskCategory(str, Enum):
    LOW = "Low"
    BORDERLINE = "Borderline"
    INTERMEDIATE = "Intermediate"
    HIGH = "High"
    UNKNOWN = "Unknown"


class RiskFactorImpact(str, Enum):
    HARMFUL = "Harmful"
    PROTECTIVE = "Protective"


class PatientProfile(BaseModel):
    """Demographics as held by the profile store."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    sex_at_birth: SexAtBirth
    date_of_birth: str = Field(..., description="Date of birth as YYYY-MM-DD")


INTAKE_FIELD_LABELS = {
    "total_cholesterol": "Total cholesterol",
    "hdl_cholesterol": "HDL cholesterol",
    "systolic_bp": "Systolic BP",
    "bmi": "BMI",
    "egfr": "eGFR",
}


class Intake(BaseModel):
    """Measurements and flags as held by the intake store.
    Numeric fields may be missing while the intake is in progress."""
    total_cholesterol: Optional[float] = Field(None, description="mg/dL")
    hdl_cholesterol: Optional[float] = Field(None, description="mg/dL")
    systolic_bp: Optional[float] = Field(None, description="mmHg")
    bmi: Optional[float] = Field(None, description="kg/m2")
    egfr: Optional[float] = Field(None, description="mL/min/1.73 m2")
    is_diabetes: bool = False
    is_smoker: bool = False
    is_taking_antihypertensive: bool = False
    is_taking_statin: bool = False

    @field_validator("total_cholesterol", "hdl_cholesterol", "systolic_bp", "bmi", "egfr")
    @classmethod
    def check_range(cls, v: Optional[float], info: ValidationInfo) -> Optional[float]:
        if v is None:
            return v
        limits = get_field_range(info.field_name)
        if v < limits.min or v > limits.max:
            label = INTAKE_FIELD_LABELS[info.field_name]
            raise ValueError(f"{label} must be between {limits.min:g} and {limits.max:g}")
        return v


class ClinicalProfile(BaseModel):
    """Normalized input to both providers."""
    age: Optional[int] = None
    sex: Optional[SexAtBirth] = None
    total_cholesterol: Optional[float] = None
    hdl_cholesterol: Optional[float] = None
    systolic_bp: Optional[float] = None
    bmi: Optional[float] = None
    egfr: Optional[float] = None
    diabetes: bool = False
    smoker: bool = False
    antihypertensive: bool = False
    statin: bool = False

    def is_complete(self) -> bool:
        """Every numeric field set and a positive age."""
        if self.age is None or self.age <= 0 or self.sex is None:
            return False
        numerics = (
            self.total_cholesterol,
            self.hdl_cholesterol,
            self.systolic_bp,
            self.bmi,
            self.egfr,
        )
        return all(value is not None for value in numerics)


class ProviderPayloads(BaseModel):
    mdcalc: MdCalcPreventPayload
    clincalc: ClinCalcPreventPayload


class RiskFactor(BaseModel):
    label: str
    impact: RiskFactorImpact
    delta: str = Field(..., description="Signed percentage, e.g. +4.2%")
    strength: int = Field(..., ge=0, le=100, description="Relative to the largest shown effect")


class EventBreakdown(BaseModel):
    label: str
    description: str
    value: str


class InterpretationLevel(BaseModel):
    label: str
    range: str


class StatusCard(BaseModel):
    title: str
    description: str
    messages: List[str] = Field(default_factory=list)
    tone: str = Field(..., description="notice or destructive")


class RiskAssessmentView(BaseModel):
    """Everything the results page renders for one attempt."""
    status: AssessmentStatus
    errors: List[str] = Field(default_factory=list)
    total_risk_percent: Optional[float] = None
    absolute_risk_display: str = "N/A"
    risk_progress_value: float = 0.0
    interpretation: RiskCategory = RiskCategory.UNKNOWN
    interpretation_description: str
    interpretation_levels: List[InterpretationLevel] = Field(default_factory=list)
    event_breakdown: List[EventBreakdown] = Field(default_factory=list)
    risk_factors: List[RiskFactor] = Field(default_factory=list)
    status_card: Optional[StatusCard] = None
    snapshot_id: Optional[str] = None


class InputSnapshot(BaseModel):
    profile: Optional[Dict[str, Any]] = None
    intake: Optional[Dict[str, Any]] = None
    age: Optional[int] = None
    mdcalc_payload: Optional[Dict[str, Any]] = None
    clincalc_payload: Optional[Dict[str, Any]] = None


class AssessmentResults(BaseModel):
    status: AssessmentStatus
    errors: List[str] = Field(default_factory=list)
    mdcalc: Optional[MdCalcAssessment] = None
    clincalc: Optional[List[RiskFactorContribution]] = None


class AssessmentSnapshot(BaseModel):
    """Persisted record of one resolved attempt. Never mutated after insert."""
    model_config = ConfigDict(protected_namespaces=())

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    model: str = "PREVENT"
    model_version: str = "2023"
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )
    input_snapshot: InputSnapshot
    results: AssessmentResults
