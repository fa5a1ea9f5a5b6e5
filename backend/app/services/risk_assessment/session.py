"""
One results-page session: profile + intake in, RiskAssessmentView out.

A session owns one aggregator and one recorder, so the record-once latch and
the in-flight attempt are scoped to it. Create a fresh session per request.
"""
import logging
from datetime import date
from typing import Optional

from app.services.risk_assessment.aggregator import (
    AssessmentAggregator,
    ClinCalcProvider,
    MdCalcProvider,
)
from app.services.risk_assessment.interpretation import (
    INTERPRETATION_LEVELS,
    categorize_risk,
    describe_category,
    event_breakdown,
    format_percent,
    rank_risk_factors,
    risk_progress_value,
    total_risk_percent,
)
from app.services.risk_assessment.models import (
    AssessmentStatus,
    Intake,
    PatientProfile,
    RiskAssessmentView,
    StatusCard,
)
from app.services.risk_assessment.payloads import build_clinical_profile, build_payloads
from app.services.risk_assessment.recorder import SnapshotRecorder
from app.services.risk_assessment.store import SnapshotStore

logger = logging.getLogger(__name__)


class RiskAssessmentSession:
    def __init__(
        self,
        mdcalc_client: MdCalcProvider,
        clincalc_client: ClinCalcProvider,
        store: SnapshotStore,
    ):
        self.aggregator = AssessmentAggregator(mdcalc_client, clincalc_client)
        self.recorder = SnapshotRecorder(store)

    async def evaluate(
        self,
        profile: Optional[PatientProfile],
        intake: Optional[Intake],
        today: Optional[date] = None,
    ) -> RiskAssessmentView:
        """
        Run one attempt for the given records and record its snapshot.

        An incomplete profile issues no upstream call; the attempt resolves to
        idle and the snapshot carries the validation message, if any.
        """
        clinical, validation_error = build_clinical_profile(profile, intake, today)
        payloads = None if validation_error else build_payloads(clinical)

        mdcalc_payload = payloads.mdcalc if payloads else None
        clincalc_payload = payloads.clincalc if payloads else None

        if payloads is None:
            logger.info("Profile incomplete, skipping provider calls")

        await self.aggregator.run(mdcalc_payload, clincalc_payload)

        await self.recorder.maybe_record(
            is_query_resolved=True,
            status=self.aggregator.status,
            errors=self.aggregator.errors,
            validation_error=validation_error,
            profile=profile,
            intake=intake,
            age=clinical.age,
            mdcalc_payload=mdcalc_payload,
            clincalc_payload=clincalc_payload,
            mdcalc_result=self.aggregator.mdcalc_result,
            clincalc_result=self.aggregator.clincalc_result,
        )

        view = self.build_view(
            validation_error=validation_error,
            is_missing_data=profile is None or intake is None,
        )
        view.snapshot_id = self.recorder.snapshot_id
        return view

    async def close(self) -> None:
        await self.aggregator.close()

    def build_view(
        self,
        validation_error: Optional[str] = None,
        is_missing_data: bool = False,
    ) -> RiskAssessmentView:
        """Derive the page model from the aggregator's current state."""
        aggregator = self.aggregator
        status = aggregator.status
        settled = status != AssessmentStatus.LOADING

        # results are only shown for the current payloads, never mid-attempt
        mdcalc = aggregator.mdcalc_result if aggregator.mdcalc_payload is not None and settled else None
        clincalc = aggregator.clincalc_result if aggregator.clincalc_payload is not None and settled else None

        outputs = mdcalc.output if mdcalc is not None else []
        percent = total_risk_percent(outputs)
        category = categorize_risk(percent)
        errors = [validation_error] if validation_error else list(aggregator.errors)

        return RiskAssessmentView(
            status=status,
            errors=errors,
            total_risk_percent=percent,
            absolute_risk_display=format_percent(percent),
            risk_progress_value=risk_progress_value(percent),
            interpretation=category,
            interpretation_description=describe_category(category),
            interpretation_levels=INTERPRETATION_LEVELS,
            event_breakdown=event_breakdown(outputs),
            risk_factors=rank_risk_factors(clincalc or []),
            status_card=build_status_card(errors, is_missing_data),
        )


def build_status_card(errors, is_missing_data: bool) -> Optional[StatusCard]:
    if not errors and not is_missing_data:
        return None
    if is_missing_data:
        return StatusCard(
            title="More information needed",
            description="Complete your intake to generate a risk assessment.",
            messages=list(errors),
            tone="notice",
        )
    return StatusCard(
        title="Assessment unavailable",
        description="We couldn't retrieve results from the server.",
        messages=list(errors),
        tone="destructive",
    )
