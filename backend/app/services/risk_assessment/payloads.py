"""
Payload builders: normalized clinical input -> provider request bodies.

Pure functions. A payload is a derived view of the profile and is rebuilt on
every change; nothing here is cached.
"""
from datetime import date
from typing import Optional, Tuple

from app.schemas.clincalc import ClinCalcPreventPayload
from app.schemas.mdcalc import MdCalcPreventPayload
from app.services.risk_assessment.config import get_upstream_config
from app.services.risk_assessment.errors import ProfileIncompleteError
from app.services.risk_assessment.models import (
    ClinicalProfile,
    Intake,
    PatientProfile,
    ProviderPayloads,
    SexAtBirth,
)

INVALID_DATE_OF_BIRTH = "Date of birth is invalid."
AGE_NOT_CALCULABLE = "Age could not be calculated from the profile."


def parse_date_of_birth(value: str) -> Optional[date]:
    """Parse YYYY-MM-DD. Returns None for anything else."""
    if not value:
        return None
    parts = value.split("-")
    if len(parts) != 3:
        return None
    try:
        year, month, day = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError:
        return None


def age_in_years(birth_date: date, today: Optional[date] = None) -> int:
    """Completed years between birth_date and today."""
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def derive_age(profile: PatientProfile, today: Optional[date] = None) -> int:
    """
    Age from the profile's date of birth.

    Raises ProfileIncompleteError with a user-facing message when the date is
    unparsable or the resulting age is not positive.
    """
    birth_date = parse_date_of_birth(profile.date_of_birth)
    if birth_date is None:
        raise ProfileIncompleteError(INVALID_DATE_OF_BIRTH)
    age = age_in_years(birth_date, today)
    if age <= 0:
        raise ProfileIncompleteError(AGE_NOT_CALCULABLE)
    return age


def build_clinical_profile(
    profile: Optional[PatientProfile],
    intake: Optional[Intake],
    today: Optional[date] = None,
) -> Tuple[ClinicalProfile, Optional[str]]:
    """
    Merge profile and intake into a ClinicalProfile.

    Returns the profile plus a validation message. The message is only set
    when both records exist but the age cannot be derived; a missing record
    is an incomplete profile, not an error.
    """
    if profile is None or intake is None:
        clinical = ClinicalProfile(sex=profile.sex_at_birth if profile else None)
        if intake is not None:
            clinical = _with_intake(clinical, intake)
        return clinical, None

    try:
        age = derive_age(profile, today)
    except ProfileIncompleteError as e:
        clinical = _with_intake(ClinicalProfile(sex=profile.sex_at_birth), intake)
        return clinical, e.message

    clinical = _with_intake(ClinicalProfile(age=age, sex=profile.sex_at_birth), intake)
    return clinical, None


def _with_intake(clinical: ClinicalProfile, intake: Intake) -> ClinicalProfile:
    return clinical.model_copy(update={
        "total_cholesterol": intake.total_cholesterol,
        "hdl_cholesterol": intake.hdl_cholesterol,
        "systolic_bp": intake.systolic_bp,
        "bmi": intake.bmi,
        "egfr": intake.egfr,
        "diabetes": intake.is_diabetes,
        "smoker": intake.is_smoker,
        "antihypertensive": intake.is_taking_antihypertensive,
        "statin": intake.is_taking_statin,
    })


def build_mdcalc_payload(clinical: ClinicalProfile) -> Optional[MdCalcPreventPayload]:
    """JSON calculator shape: abbreviated names, 0/1 flags."""
    if not clinical.is_complete():
        return None
    upstream = get_upstream_config()
    return MdCalcPreventPayload(
        UOMSYSTEM=upstream.mdcalc_uom_system,
        model=upstream.mdcalc_model,
        sex=1 if clinical.sex == SexAtBirth.MALE else 0,
        age=clinical.age,
        tc=clinical.total_cholesterol,
        hdl=clinical.hdl_cholesterol,
        sbp=clinical.systolic_bp,
        diabetes=1 if clinical.diabetes else 0,
        smoker=1 if clinical.smoker else 0,
        egfr=clinical.egfr,
        htn_med=1 if clinical.antihypertensive else 0,
        statin=1 if clinical.statin else 0,
        bmi=clinical.bmi,
    )


def build_clincalc_payload(clinical: ClinicalProfile) -> Optional[ClinCalcPreventPayload]:
    """HTML calculator shape: readable names, string sex."""
    if not clinical.is_complete():
        return None
    return ClinCalcPreventPayload(
        age=clinical.age,
        gender="male" if clinical.sex == SexAtBirth.MALE else "female",
        total_cholesterol=clinical.total_cholesterol,
        hdl_cholesterol=clinical.hdl_cholesterol,
        systolic_bp=clinical.systolic_bp,
        bmi=clinical.bmi,
        egfr=clinical.egfr,
        diabetes=clinical.diabetes,
        smoker=clinical.smoker,
        taking_antihypertensive=clinical.antihypertensive,
        taking_statin=clinical.statin,
    )


def build_payloads(clinical: ClinicalProfile) -> Optional[ProviderPayloads]:
    """Both payloads, or None when the profile is incomplete."""
    mdcalc = build_mdcalc_payload(clinical)
    clincalc = build_clincalc_payload(clinical)
    if mdcalc is None or clincalc is None:
        return None
    return ProviderPayloads(mdcalc=mdcalc, clincalc=clincalc)
