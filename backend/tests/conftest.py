"""
Shared fixtures: sample provider responses and payloads.
"""

import pytest

from app.schemas.clincalc import ClinCalcPreventPayload
from app.schemas.mdcalc import MdCalcPreventPayload
from app.services.risk_assessment.models import Intake, PatientProfile


CLINCALC_FORM_PAGE = """
<!DOCTYPE html>
<html>
<body>
<form method="post" action="./" id="form1">
<div class="aspNetHidden">
<input type="hidden" name="__VIEWSTATE" id="__VIEWSTATE" value="dDwtMTA4NzE2Mzk0Ozs+aW1w/bGVt+ZW50" />
</div>
<div class="aspNetHidden">
<input type="hidden" name="__VIEWSTATEGENERATOR" id="__VIEWSTATEGENERATOR" value="C8B5F3A2" />
<input type="hidden" name="__EVENTVALIDATION" id="__EVENTVALIDATION" value="wEdAAk1mZXZhbGlkYXRpb24=" />
</div>
<input name="ctl00$cphMainContent$txtAge" type="text" id="cphMainContent_txtAge" />
</form>
</body>
</html>
"""

CLINCALC_RESULT_PAGE = """
<html>
<head>
<script type="text/javascript">
google.charts.load('current', { packages: ['corechart'] });
google.charts.setOnLoadCallback(drawContributionChart);
function drawContributionChart() {
    var data = google.visualization.arrayToDataTable([
        ["Risk Factor", "Contribution", { role: "style" }, { role: "annotation" }],
        ["Age", 4.2, "#c0392b", "Age 62 years"],
        ["Systolic BP", 2.1, "#c0392b", "SBP 150 mmHg"],
        ["Current smoker", 1.4, "#c0392b", "Smoking increases risk"],
        ["Statin use", -1.6, "#27ae60", "Statin lowers risk"],
        ["HDL cholesterol", -0.8, "#27ae60", "HDL 55 mg/dL"],
        ["eGFR", 0.3, "#c0392b", "eGFR 85"]
    ]);
    var chart = new google.visualization.BarChart(document.getElementById('chart'));
    chart.draw(data, {});
}
</script>
</head>
<body><div id="chart"></div></body>
</html>
"""

MDCALC_RESPONSE = {
    "output": [
        {
            "name": "prevent_cvd_10yr",
            "value": "8.4",
            "value_text": "8.4%",
            "message": (
                "<b>10-Year Total CVD Risk</b><br>"
                "10-Year ASCVD Risk: 5.2%<br>"
                "10-Year Heart Failure Risk: 3.3%<br>"
                "10-Year Coronary Heart Disease Risk: 6.1%<br>"
                "10-Year Stroke Risk: 4.0%"
            ),
        },
        {
            "name": "prevent_cvd_30yr",
            "value": "27.9",
            "value_text": "27.9%",
            "message": "30-year total CVD risk",
        },
    ]
}


@pytest.fixture
def clincalc_form_page():
    return CLINCALC_FORM_PAGE


@pytest.fixture
def clincalc_result_page():
    return CLINCALC_RESULT_PAGE


@pytest.fixture
def mdcalc_response():
    return MDCALC_RESPONSE


@pytest.fixture
def patient_profile():
    return PatientProfile(
        first_name="Dana",
        last_name="Reyes",
        sex_at_birth="MALE",
        date_of_birth="1964-03-02",
    )


@pytest.fixture
def intake():
    return Intake(
        total_cholesterol=210,
        hdl_cholesterol=45,
        systolic_bp=150,
        bmi=27.5,
        egfr=85,
        is_diabetes=False,
        is_smoker=True,
        is_taking_antihypertensive=True,
        is_taking_statin=False,
    )


@pytest.fixture
def mdcalc_payload():
    return MdCalcPreventPayload(
        UOMSYSTEM=True, model=0, sex=1, age=62, tc=210, hdl=45, sbp=150,
        diabetes=0, smoker=1, egfr=85, htn_med=1, statin=0, bmi=27.5,
    )


@pytest.fixture
def clincalc_payload():
    return ClinCalcPreventPayload(
        age=62, gender="male", total_cholesterol=210, hdl_cholesterol=45,
        systolic_bp=150, bmi=27.5, egfr=85, diabetes=False, smoker=True,
        taking_antihypertensive=True, taking_statin=False,
    )
