"""
ClinCalc PREVENT adapter.

ClinCalc has no API, so we drive its ASP.NET WebForms page the way a browser
would:

1. GET the calculator page and harvest the three hidden state fields
   (__VIEWSTATE, __VIEWSTATEGENERATOR, __EVENTVALIDATION).
2. POST the form back with those fields plus our inputs. Control names are the
   page's own and must be reproduced verbatim; several controls get fixed
   values (manual BMI/eGFR entry, unit selectors, empty optional fields).
3. Scrape the contribution rows from the returned page.

Any markup change on ClinCalc's side breaks step 1 or step 3. That is an
accepted cost of integrating with a page rather than an API.
"""
import logging
import re
from typing import Dict, List, Optional

import backoff
import httpx

from app.schemas.clincalc import (
    HIDDEN_FIELD_NAMES,
    ClinCalcHiddenFields,
    ClinCalcPreventPayload,
    RiskFactorContribution,
)
from app.services.risk_assessment.config import get_upstream_config
from app.services.risk_assessment.contribution_parser import (
    ChartDataTableParser,
    ContributionParser,
)
from app.services.risk_assessment.errors import (
    ProviderError,
    UpstreamShapeError,
    UpstreamStatusError,
    UpstreamUnreachableError,
)

logger = logging.getLogger(__name__)

PROVIDER = "ClinCalc"
FORM_PREFIX = "ctl00$cphMainContent$"

_HIDDEN_FIELD_KEYS = {
    "__VIEWSTATE": "view_state",
    "__VIEWSTATEGENERATOR": "view_state_generator",
    "__EVENTVALIDATION": "event_validation",
}

# Shared HTTP client for connection reuse
_shared_client = httpx.AsyncClient(timeout=get_upstream_config().timeout_seconds)


async def close_shared_client():
    await _shared_client.aclose()


def extract_hidden_input_value(html: str, field_name: str) -> Optional[str]:
    pattern = re.compile(
        r"<input[^>]+name=[\"']" + re.escape(field_name) + r"[\"'][^>]*value=[\"']([^\"']*)[\"']",
        re.IGNORECASE,
    )
    match = pattern.search(html)
    return match.group(1) if match else None


def extract_hidden_fields(html: str) -> ClinCalcHiddenFields:
    """Pull the session state fields out of the calculator page.
    An absent or empty field is an UpstreamShapeError."""
    values = {}
    for field_name in HIDDEN_FIELD_NAMES:
        value = extract_hidden_input_value(html, field_name)
        if not value:
            raise UpstreamShapeError(PROVIDER, f"Missing {field_name} in ClinCalc response.")
        values[_HIDDEN_FIELD_KEYS[field_name]] = value
    return ClinCalcHiddenFields(**values)


def _yes_no(flag: bool, yes: str, no: str) -> str:
    return yes if flag else no


def build_form_data(
    payload: ClinCalcPreventPayload, hidden_fields: ClinCalcHiddenFields
) -> Dict[str, str]:
    """URL-encodable form body for the calculator postback."""
    p = FORM_PREFIX
    return {
        "__VIEWSTATE": hidden_fields.view_state,
        "__VIEWSTATEGENERATOR": hidden_fields.view_state_generator,
        "__EVENTVALIDATION": hidden_fields.event_validation,
        f"{p}txtAge": str(payload.age),
        f"{p}rdoGender": "rdoMale" if payload.gender == "male" else "rdoFemale",
        f"{p}txtTC": _number(payload.total_cholesterol),
        f"{p}drpTotalCholesterol": "1",
        f"{p}txtHDL": _number(payload.hdl_cholesterol),
        f"{p}drpHdlCholesterol": "1",
        f"{p}txtSBP": _number(payload.systolic_bp),
        f"{p}hiddenBmi": "divBmiManual",
        f"{p}txtBMI": _number(payload.bmi),
        f"{p}txtHeight": "",
        f"{p}rdoHeight": "rdoIn",
        f"{p}txtWeight": "",
        f"{p}rdoWeight": "kg",
        f"{p}hiddenEgfr": "divEgfrManual",
        f"{p}txteGFR": _number(payload.egfr),
        f"{p}txtCreatinine": "",
        f"{p}drpCreatinineUnits": "1",
        f"{p}rdoDM": _yes_no(payload.diabetes, "rdoDMYes", "rdoDMNo"),
        f"{p}rdoSmoker": _yes_no(payload.smoker, "rdoSmokerYes", "rdoSmokerNo"),
        f"{p}rdoBPTreatment": _yes_no(
            payload.taking_antihypertensive, "rdoBPTreatmentYes", "rdoBPTreatmentNo"
        ),
        f"{p}rdoStatinTreatment": _yes_no(payload.taking_statin, "rdoStatinYes", "rdoStatinNo"),
        f"{p}rdoSdiType": "rdoSdiZip",
        f"{p}hiddenSdi": "rdoSdiZip",
        f"{p}txtZIP": "",
        f"{p}drpSDI": "",
        f"{p}txtA1C": "",
        f"{p}txtUACR": "",
        f"{p}cmdCalculate": "Calculate",
        f"{p}ChangeSIUS_Unit": "0",
        "ctl00$txtSearch": "",
        "ctl00$txtOffcanvasSearch": "",
    }


def _number(value: float) -> str:
    # 200.0 -> "200", 27.5 -> "27.5"
    return str(int(value)) if float(value).is_integer() else str(value)


class ClinCalcClient:
    """
    Stateful form client for ClinCalc's PREVENT calculator.
    Both phases must succeed for a call to return contributions.
    """

    def __init__(
        self,
        url: str = None,
        http_client: Optional[httpx.AsyncClient] = None,
        parser: Optional[ContributionParser] = None,
    ):
        self.url = url or get_upstream_config().clincalc_url
        self.http_client = http_client or _shared_client
        self.parser = parser or ChartDataTableParser()

    async def fetch_hidden_fields(self) -> ClinCalcHiddenFields:
        """Phase 1: GET the page and harvest the session state."""
        try:
            response = await self.http_client.get(self.url)
        except httpx.RequestError as e:
            logger.error(f"Error fetching ClinCalc page: {str(e)}")
            raise UpstreamUnreachableError(PROVIDER, "Failed to reach ClinCalc.") from e

        if not response.is_success:
            raise UpstreamStatusError(
                PROVIDER,
                f"ClinCalc responded with status {response.status_code}.",
                status_code=response.status_code,
            )

        return extract_hidden_fields(response.text)

    async def submit_form(self, form_data: Dict[str, str]) -> str:
        """Phase 2: POST the form, return the result page."""
        try:
            response = await self.http_client.post(
                self.url,
                data=form_data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.RequestError as e:
            logger.error(f"Error submitting ClinCalc form: {str(e)}")
            raise UpstreamUnreachableError(PROVIDER, "Failed to reach ClinCalc.") from e

        if not response.is_success:
            logger.error(
                "ClinCalc responded with an error",
                extra={"provider": PROVIDER, "status_code": response.status_code},
            )
            raise UpstreamStatusError(
                PROVIDER, "ClinCalc responded with an error.", status_code=response.status_code
            )

        return response.text

    @backoff.on_exception(
        backoff.expo,
        UpstreamUnreachableError,
        max_tries=lambda: get_upstream_config().max_tries,
    )
    async def calculate(self, payload: ClinCalcPreventPayload) -> List[RiskFactorContribution]:
        logger.info("Sending request to ClinCalc", extra={"provider": PROVIDER})

        try:
            hidden_fields = await self.fetch_hidden_fields()
        except ProviderError as e:
            # same error class, page-level cause moved to details
            raise type(e)(
                PROVIDER,
                "Failed to initialize ClinCalc request.",
                status_code=e.status_code,
                details=e.message,
            ) from e

        html = await self.submit_form(build_form_data(payload, hidden_fields))

        try:
            contributions = self.parser.parse(html)
        except UpstreamShapeError as e:
            raise UpstreamShapeError(
                PROVIDER,
                "ClinCalc response did not include contribution data.",
                details=e.message,
            ) from e

        logger.info(
            "ClinCalc request successful",
            extra={"provider": PROVIDER, "contribution_count": len(contributions)},
        )
        return contributions
