import logging
from typing import Optional

import backoff
import httpx
from pydantic import ValidationError

from app.schemas.mdcalc import MdCalcAssessment, MdCalcPreventPayload
from app.services.risk_assessment.config import get_upstream_config
from app.services.risk_assessment.errors import (
    UpstreamShapeError,
    UpstreamStatusError,
    UpstreamUnreachableError,
    format_validation_issues,
)

logger = logging.getLogger(__name__)

PROVIDER = "MdCalc"

# Shared HTTP client for connection reuse
_shared_client = httpx.AsyncClient(timeout=get_upstream_config().timeout_seconds)


async def close_shared_client():
    await _shared_client.aclose()


class MdCalcClient:
    """
    Client for MdCalc's PREVENT calculator API.
    One JSON POST per call; the response is validated before it is returned.
    """

    def __init__(self, url: str = None, http_client: Optional[httpx.AsyncClient] = None):
        self.url = url or get_upstream_config().mdcalc_url
        self.http_client = http_client or _shared_client

    @backoff.on_exception(
        backoff.expo,
        UpstreamUnreachableError,
        max_tries=lambda: get_upstream_config().max_tries,
    )
    async def calculate(self, payload: MdCalcPreventPayload) -> MdCalcAssessment:
        """
        Submit a payload and return MdCalc's output list.

        Raises UpstreamUnreachableError, UpstreamStatusError or
        UpstreamShapeError. Cancelling the awaiting task abandons the request.
        """
        logger.info("Sending request to MdCalc", extra={"provider": PROVIDER})

        try:
            response = await self.http_client.post(
                self.url,
                json=payload.model_dump(),
                headers={"Content-Type": "application/json"},
            )
        except httpx.RequestError as e:
            logger.error(f"Error communicating with MdCalc: {str(e)}")
            raise UpstreamUnreachableError(PROVIDER, "Failed to reach MdCalc.") from e

        if not response.is_success:
            logger.error(
                "MdCalc responded with an error",
                extra={"provider": PROVIDER, "status_code": response.status_code},
            )
            raise UpstreamStatusError(
                PROVIDER, "MdCalc responded with an error.", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamShapeError(PROVIDER, "MdCalc returned invalid JSON.") from e

        try:
            assessment = MdCalcAssessment.model_validate(data)
        except ValidationError as e:
            raise UpstreamShapeError(
                PROVIDER,
                "MdCalc response shape was unexpected.",
                issues=format_validation_issues(e),
            ) from e

        logger.info(
            "MdCalc request successful",
            extra={"provider": PROVIDER, "output_count": len(assessment.output)},
        )
        return assessment
