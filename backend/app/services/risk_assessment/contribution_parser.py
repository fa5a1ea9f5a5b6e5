"""
Extraction of risk-factor contributions from ClinCalc's result page.

The page renders a Google Charts bar chart; its data rows are embedded as a
JavaScript array literal passed to `google.visualization.arrayToDataTable`.
We pull rows out with regular expressions rather than parsing the page.
The strategy is swappable: anything implementing ContributionParser can be
handed to the ClinCalc client.
"""
import logging
import re
from typing import List, Protocol

from app.schemas.clincalc import RiskFactorContribution
from app.services.risk_assessment.errors import UpstreamShapeError

logger = logging.getLogger(__name__)

PROVIDER = "ClinCalc"

# First data-table in the page wins.
DATA_TABLE_PATTERN = re.compile(r"google\.visualization\.arrayToDataTable\([^)]*?\)")

# ["label", value, "<ignored>", "annotation"]
CONTRIBUTION_ROW_PATTERN = re.compile(
    r'\[\s*"([^"]+)"\s*,\s*(-?\d+(?:\.\d+)?)\s*,\s*"[^"]*"\s*,\s*"([^"]+)"\s*]'
)


class ContributionParser(Protocol):
    def parse(self, html: str) -> List[RiskFactorContribution]:
        """Raw page text -> contributions. Raises UpstreamShapeError."""
        ...


class ChartDataTableParser:
    """Regex extraction from the chart initialization call."""

    def parse(self, html: str) -> List[RiskFactorContribution]:
        table_match = DATA_TABLE_PATTERN.search(html)
        if not table_match:
            raise UpstreamShapeError(
                PROVIDER, "Missing ASCVD risk factors contribution data table."
            )

        data_table = table_match.group(0)
        contributions = [
            RiskFactorContribution(
                factor=row.group(1),
                value=float(row.group(2)),
                annotation=row.group(3),
            )
            for row in CONTRIBUTION_ROW_PATTERN.finditer(data_table)
        ]

        if not contributions:
            raise UpstreamShapeError(
                PROVIDER, "ClinCalc returned no ASCVD risk factor contributions."
            )

        logger.debug("Parsed %d contribution rows", len(contributions))
        return contributions


def parse_contributions(html: str) -> List[RiskFactorContribution]:
    return ChartDataTableParser().parse(html)
