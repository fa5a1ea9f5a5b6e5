"""
Wire contracts for the MdCalc PREVENT calculator.

`MdCalcPreventPayload` is the JSON body MdCalc expects; field names are
MdCalc's own and must be sent verbatim.
"""
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

BinaryFlag = Literal[0, 1]


class MdCalcPreventPayload(BaseModel):
    model_config = ConfigDict(strict=True)

    UOMSYSTEM: bool = Field(..., description="True for US units (mg/dL)")
    model: int = Field(..., description="PREVENT model selector")
    sex: BinaryFlag = Field(..., description="1 = male, 0 = female")
    age: int
    tc: float = Field(..., description="Total cholesterol")
    hdl: float = Field(..., description="HDL cholesterol")
    sbp: float = Field(..., description="Systolic blood pressure")
    diabetes: BinaryFlag
    smoker: BinaryFlag
    egfr: float
    htn_med: BinaryFlag = Field(..., description="On anti-hypertensive therapy")
    statin: BinaryFlag
    bmi: float


class MdCalcAssessmentRequest(BaseModel):
    body: MdCalcPreventPayload


class MdCalcOutput(BaseModel):
    name: str
    value: str
    value_text: str
    message: str = Field(..., description="HTML-bearing descriptive text")


class MdCalcAssessment(BaseModel):
    output: List[MdCalcOutput]


class MdCalcAssessmentResponse(BaseModel):
    assessment: MdCalcAssessment
