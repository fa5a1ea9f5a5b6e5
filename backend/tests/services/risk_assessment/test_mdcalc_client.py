"""
Unit tests for the MdCalc client.
Upstream responses are served by httpx.MockTransport.
"""

import json

import httpx
import pytest

from app.services.risk_assessment.errors import (
    UpstreamShapeError,
    UpstreamStatusError,
    UpstreamUnreachableError,
)
from app.services.risk_assessment.mdcalc_client import MdCalcClient

MDCALC_URL = "https://mdcalc.test/api/v1/calc/10491/calculate"


def make_client(handler):
    transport = httpx.MockTransport(handler)
    return MdCalcClient(url=MDCALC_URL, http_client=httpx.AsyncClient(transport=transport))


class TestMdCalcClient:

    @pytest.mark.asyncio
    async def test_success(self, mdcalc_payload, mdcalc_response):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=mdcalc_response)

        assessment = await make_client(handler).calculate(mdcalc_payload)

        assert seen["method"] == "POST"
        assert seen["url"] == MDCALC_URL
        assert seen["body"]["UOMSYSTEM"] is True
        assert seen["body"]["htn_med"] == 1
        assert seen["body"]["tc"] == 210
        assert len(assessment.output) == 2
        assert assessment.output[0].value_text == "8.4%"

    @pytest.mark.asyncio
    async def test_network_failure(self, mdcalc_payload):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamUnreachableError) as exc_info:
            await make_client(handler).calculate(mdcalc_payload)

        assert exc_info.value.message == "Failed to reach MdCalc."
        assert exc_info.value.provider == "MdCalc"

    @pytest.mark.asyncio
    async def test_error_status(self, mdcalc_payload):
        def handler(request):
            return httpx.Response(503, text="Service Unavailable")

        with pytest.raises(UpstreamStatusError) as exc_info:
            await make_client(handler).calculate(mdcalc_payload)

        assert exc_info.value.message == "MdCalc responded with an error."
        assert exc_info.value.status_code == 503
        assert exc_info.value.to_response_body() == {
            "error": "MdCalc responded with an error.",
            "status": 503,
        }

    @pytest.mark.asyncio
    async def test_invalid_json(self, mdcalc_payload):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(UpstreamShapeError) as exc_info:
            await make_client(handler).calculate(mdcalc_payload)

        assert exc_info.value.message == "MdCalc returned invalid JSON."

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, mdcalc_payload):
        def handler(request):
            return httpx.Response(200, json={"output": [{"name": "cvd"}]})

        with pytest.raises(UpstreamShapeError) as exc_info:
            await make_client(handler).calculate(mdcalc_payload)

        assert exc_info.value.message == "MdCalc response shape was unexpected."
        fields = {issue["field"] for issue in exc_info.value.issues}
        assert "output.0.value" in fields
