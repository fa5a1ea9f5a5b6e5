"""
Interpretation Engine: provider results -> what the results page shows.

Pure and synchronous. MdCalc gives free-text outputs that we mine for the
10-year risk and an event breakdown; ClinCalc gives signed contributions that
we rank.
"""
import math
import re
from typing import Dict, List, Optional, Sequence

from app.schemas.clincalc import RiskFactorContribution
from app.schemas.mdcalc import MdCalcOutput
from app.services.risk_assessment.config import get_interpretation_config
from app.services.risk_assessment.models import (
    EventBreakdown,
    InterpretationLevel,
    RiskCategory,
    RiskFactor,
    RiskFactorImpact,
)

TEN_YEAR_PATTERN = re.compile(r"10\s?-?\s?(year|yr)", re.IGNORECASE)
TOTAL_CVD_PATTERN = re.compile(r"cvd|cardiovascular", re.IGNORECASE)
DETAILED_OUTPUT_PATTERN = re.compile(r"10-?year ascvd risk", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"-?\d+(\.\d+)?")
LEADING_NUMBER_PATTERN = re.compile(r"\d+(?:\.\d*)?|\.\d+")
HTML_TAG_PATTERN = re.compile(r"<[^>]*>")

BREAKDOWN_PATTERNS = [
    (re.compile(r"10-?Year ASCVD Risk:\s*([0-9.]+)%", re.IGNORECASE), "ascvd"),
    (re.compile(r"10-?Year Heart Failure Risk:\s*([0-9.]+)%", re.IGNORECASE), "hf"),
    (re.compile(r"10-?Year Coronary Heart Disease Risk:\s*([0-9.]+)%", re.IGNORECASE), "chd"),
    (re.compile(r"10-?Year Stroke Risk:\s*([0-9.]+)%", re.IGNORECASE), "stroke"),
]

# Declaration order breaks ties when ranking.
EVENT_BREAKDOWN_CONFIG = [
    {
        "key": "chd",
        "label": "CHD",
        "description": "Coronary heart disease",
        "keywords": [re.compile(r"coronary", re.I), re.compile(r"\bchd\b", re.I), re.compile(r"myocard", re.I)],
    },
    {
        "key": "stroke",
        "label": "Stroke",
        "description": "Ischemic or hemorrhagic",
        "keywords": [re.compile(r"stroke", re.I)],
    },
    {
        "key": "hf",
        "label": "HF",
        "description": "Heart failure",
        "keywords": [re.compile(r"heart failure", re.I), re.compile(r"\bhf\b", re.I)],
    },
]

# Most specific first: "BP treatment" must not fall through to a generic BP match.
RISK_FACTOR_LABELS = [
    (("total cholesterol",), "Total cholesterol"),
    (("hdl",), "HDL"),
    (("bp treatment", "anti-hypertensive", "antihypertensive"), "Antihypertensive"),
    (("systolic", "sbp"), "Systolic BP"),
    (("egfr",), "eGFR"),
    (("body mass", "bmi"), "BMI"),
    (("diabetes",), "Diabetes"),
    (("smoker", "smoking"), "Smoking"),
    (("statin",), "Statin"),
    (("age",), "Age"),
]

INTERPRETATION_LEVELS = [
    InterpretationLevel(label="Low", range="0-5%"),
    InterpretationLevel(label="Borderline", range="5-7.5%"),
    InterpretationLevel(label="Intermediate", range="7.5-20%"),
    InterpretationLevel(label="High", range="20%+"),
]

INTERPRETATION_DESCRIPTIONS = {
    RiskCategory.LOW: "Your 10-year risk is low. Keep up healthy habits and routine checkups.",
    RiskCategory.BORDERLINE: (
        "Your 10-year risk is borderline. Consider lifestyle changes and discuss "
        "options with your care team."
    ),
    RiskCategory.INTERMEDIATE: (
        "Your 10-year risk is intermediate. Review preventive therapy and lifestyle "
        "changes with your care team."
    ),
    RiskCategory.HIGH: (
        "Your 10-year risk is high. Discuss preventive therapy and follow up with "
        "your care team."
    ),
    RiskCategory.UNKNOWN: "Complete your intake to see your risk category.",
}


# ── Formatting ────────────────────────────────────────────────────────────

def parse_percent_value(value: str) -> Optional[float]:
    """First number in the string, or None."""
    match = NUMBER_PATTERN.search(value or "")
    return float(match.group(0)) if match else None


def format_percent(value: Optional[float]) -> str:
    """Up to two decimals, trailing zeros dropped: 6.1 -> '6.1%', 4.0 -> '4%'."""
    if value is None:
        return "N/A"
    text = f"{value:,.2f}".rstrip("0").rstrip(".")
    return f"{text}%"


def format_signed_percent(value: float) -> str:
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.1f}%"


def strip_html(value: str) -> str:
    return HTML_TAG_PATTERN.sub(" ", value)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ── MdCalc outputs ────────────────────────────────────────────────────────

def _searchable_text(output: MdCalcOutput) -> str:
    return f"{output.name} {output.message}"


def filter_ten_year_outputs(outputs: Sequence[MdCalcOutput]) -> List[MdCalcOutput]:
    """Outputs mentioning a 10-year horizon; all outputs if none do."""
    ten_year = [o for o in outputs if TEN_YEAR_PATTERN.search(_searchable_text(o))]
    return ten_year if ten_year else list(outputs)


def get_percent_from_output(output: Optional[MdCalcOutput]) -> Optional[float]:
    """Prefers the formatted text over the raw value."""
    if output is None:
        return None
    percent = parse_percent_value(output.value_text)
    if percent is None:
        percent = parse_percent_value(output.value)
    return percent


def total_risk_percent(outputs: Sequence[MdCalcOutput]) -> Optional[float]:
    """Canonical 10-year cardiovascular risk."""
    if not outputs:
        return None
    candidates = filter_ten_year_outputs(outputs)
    total = next(
        (o for o in candidates if TOTAL_CVD_PATTERN.search(_searchable_text(o))),
        candidates[0],
    )
    return get_percent_from_output(total)


def categorize_risk(percent: Optional[float]) -> RiskCategory:
    if percent is None:
        return RiskCategory.UNKNOWN
    thresholds = get_interpretation_config()
    if percent < thresholds.borderline_min:
        return RiskCategory.LOW
    if percent < thresholds.intermediate_min:
        return RiskCategory.BORDERLINE
    if percent < thresholds.high_min:
        return RiskCategory.INTERMEDIATE
    return RiskCategory.HIGH


def describe_category(category: RiskCategory) -> str:
    return INTERPRETATION_DESCRIPTIONS[category]


def risk_progress_value(percent: Optional[float]) -> float:
    """Position on a 0-100 bar whose right end is the configured scale maximum."""
    if percent is None:
        return 0.0
    scale = get_interpretation_config().progress_scale_max
    return min(100.0, max(0.0, percent / scale * 100))


def parse_prevent_breakdown(message: str) -> Dict[str, float]:
    """Labeled percentages from MdCalc's detailed results message."""
    cleaned = strip_html(message)
    result = {}
    for pattern, key in BREAKDOWN_PATTERNS:
        match = pattern.search(cleaned)
        if not match:
            continue
        # "1.2.3" reads as 1.2; a bare "." has no number
        number = LEADING_NUMBER_PATTERN.match(match.group(1))
        if number:
            result[key] = float(number.group(0))
    return result


def breakdown_from_message(outputs: Sequence[MdCalcOutput]) -> Optional[Dict[str, float]]:
    detailed = next(
        (o for o in outputs if DETAILED_OUTPUT_PATTERN.search(strip_html(o.message))),
        None,
    )
    if detailed is None:
        return None
    return parse_prevent_breakdown(detailed.message)


def event_breakdown(outputs: Sequence[MdCalcOutput]) -> List[EventBreakdown]:
    """
    CHD, stroke and HF risk, highest first.

    Values come from the detailed message when present, otherwise from the
    first 10-year output whose text matches the event's keywords. Missing
    values sort last; ties keep declaration order.
    """
    outputs = list(outputs or [])
    parsed = breakdown_from_message(outputs) or {}
    candidates = filter_ten_year_outputs(outputs)

    rows = []
    for event in EVENT_BREAKDOWN_CONFIG:
        numeric_value = parsed.get(event["key"])
        if numeric_value is None:
            match = next(
                (
                    o for o in candidates
                    if any(k.search(_searchable_text(o)) for k in event["keywords"])
                ),
                None,
            )
            numeric_value = get_percent_from_output(match)
        rows.append((event, numeric_value))

    # sorted() is stable, so equal values keep declaration order
    rows = sorted(rows, key=lambda row: -(row[1] if row[1] is not None else -1))

    return [
        EventBreakdown(
            label=event["label"],
            description=event["description"],
            value=format_percent(value),
        )
        for event, value in rows
    ]


# ── ClinCalc contributions ────────────────────────────────────────────────

def format_risk_factor_label(value: str) -> str:
    """Map ClinCalc's factor wording to a canonical label; unknown labels pass through."""
    normalized = value.lower()
    for needles, label in RISK_FACTOR_LABELS:
        if any(needle in normalized for needle in needles):
            return label
    return value


def rank_risk_factors(contributions: Sequence[RiskFactorContribution]) -> List[RiskFactor]:
    """Top contributions by absolute effect, with strength relative to the largest."""
    if not contributions:
        return []

    count = get_interpretation_config().top_factor_count
    top = sorted(contributions, key=lambda c: abs(c.value), reverse=True)[:count]
    max_abs = max([abs(c.value) for c in top] + [0])

    factors = []
    for contribution in top:
        impact = RiskFactorImpact.HARMFUL if contribution.value >= 0 else RiskFactorImpact.PROTECTIVE
        strength = 0 if max_abs == 0 else _round_half_up(abs(contribution.value) / max_abs * 100)
        factors.append(RiskFactor(
            label=format_risk_factor_label(contribution.factor),
            impact=impact,
            delta=format_signed_percent(contribution.value),
            strength=strength,
        ))
    return factors
