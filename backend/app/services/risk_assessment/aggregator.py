"""
Aggregator: runs both provider calls for one attempt and reconciles them.

State machine:

    idle --(both payloads set)--> loading --> success | partial | error
      ^                                                   |
      +-------------(either payload cleared)--------------+

Exactly one attempt is in flight per aggregator. `supersede()` cancels the
outstanding attempt and starts the next one in the same step. Each attempt
captures a generation number; an attempt whose generation is no longer
current never touches state, so a slow superseded response cannot overwrite
a newer one.
"""
import asyncio
import logging
from typing import Any, List, Optional, Protocol

from app.schemas.clincalc import ClinCalcPreventPayload, RiskFactorContribution
from app.schemas.mdcalc import MdCalcAssessment, MdCalcPreventPayload
from app.services.risk_assessment.errors import to_friendly_error
from app.services.risk_assessment.models import AssessmentStatus

logger = logging.getLogger(__name__)


class MdCalcProvider(Protocol):
    async def calculate(self, payload: MdCalcPreventPayload) -> MdCalcAssessment:
        ...


class ClinCalcProvider(Protocol):
    async def calculate(self, payload: ClinCalcPreventPayload) -> List[RiskFactorContribution]:
        ...


class AssessmentAggregator:
    """Owns status, results and errors for one session."""

    def __init__(
        self,
        mdcalc_client: MdCalcProvider,
        clincalc_client: ClinCalcProvider,
        mdcalc_label: str = "MdCalc",
        clincalc_label: str = "ClinCalc",
    ):
        self.mdcalc_client = mdcalc_client
        self.clincalc_client = clincalc_client
        self.mdcalc_label = mdcalc_label
        self.clincalc_label = clincalc_label

        self.status: AssessmentStatus = AssessmentStatus.IDLE
        self.errors: List[str] = []
        self.mdcalc_result: Optional[MdCalcAssessment] = None
        self.clincalc_result: Optional[List[RiskFactorContribution]] = None

        self.mdcalc_payload: Optional[MdCalcPreventPayload] = None
        self.clincalc_payload: Optional[ClinCalcPreventPayload] = None

        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def supersede(
        self,
        mdcalc_payload: Optional[MdCalcPreventPayload],
        clincalc_payload: Optional[ClinCalcPreventPayload],
    ) -> Optional[asyncio.Task]:
        """
        Replace the current payloads.

        Cancels any outstanding attempt, then starts a new one if both payloads
        are set. Passing the same payload objects again is not a change and
        leaves the current attempt alone. Must be called from a running event
        loop. Returns the attempt task, or None when nothing was started.
        """
        if (
            mdcalc_payload is not None
            and clincalc_payload is not None
            and mdcalc_payload is self.mdcalc_payload
            and clincalc_payload is self.clincalc_payload
        ):
            return self._task

        self.cancel()
        self.mdcalc_payload = mdcalc_payload
        self.clincalc_payload = clincalc_payload

        if mdcalc_payload is None or clincalc_payload is None:
            self.status = AssessmentStatus.IDLE
            return None

        self.status = AssessmentStatus.LOADING
        self.errors = []
        generation = self._generation
        self._task = asyncio.get_running_loop().create_task(
            self._run_attempt(generation, mdcalc_payload, clincalc_payload)
        )
        return self._task

    def cancel(self) -> None:
        """Abandon the in-flight attempt, if any. Its results will be dropped."""
        self._generation += 1
        if self.in_flight:
            logger.debug("Cancelling in-flight attempt")
            self._task.cancel()
        self._task = None

    async def run(
        self,
        mdcalc_payload: Optional[MdCalcPreventPayload],
        clincalc_payload: Optional[ClinCalcPreventPayload],
    ) -> AssessmentStatus:
        """Supersede and wait for the attempt to settle."""
        task = self.supersede(mdcalc_payload, clincalc_payload)
        if task is not None:
            # returns even if a later supersede cancels the task
            await asyncio.wait({task})
        return self.status

    async def close(self) -> None:
        """Teardown: cancel and wait for the cancelled attempt to unwind."""
        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.wait({task})

    async def _run_attempt(
        self,
        generation: int,
        mdcalc_payload: MdCalcPreventPayload,
        clincalc_payload: ClinCalcPreventPayload,
    ) -> None:
        logger.info("Starting assessment attempt %d", generation)

        mdcalc_outcome, clincalc_outcome = await asyncio.gather(
            self.mdcalc_client.calculate(mdcalc_payload),
            self.clincalc_client.calculate(clincalc_payload),
            return_exceptions=True,
        )

        if generation != self._generation:
            logger.debug("Discarding results of superseded attempt %d", generation)
            return

        self._apply(mdcalc_outcome, clincalc_outcome)
        logger.info(
            "Assessment attempt %d resolved",
            generation,
            extra={"status": self.status.value, "error_count": len(self.errors)},
        )

    def _apply(self, mdcalc_outcome: Any, clincalc_outcome: Any) -> None:
        errors: List[str] = []
        mdcalc_ok = not isinstance(mdcalc_outcome, BaseException)
        clincalc_ok = not isinstance(clincalc_outcome, BaseException)

        if not mdcalc_ok:
            self.mdcalc_result = None
            errors.append(to_friendly_error(self.mdcalc_label, mdcalc_outcome))
            logger.warning("MdCalc failed: %s", mdcalc_outcome)
        else:
            self.mdcalc_result = mdcalc_outcome

        if not clincalc_ok:
            self.clincalc_result = None
            errors.append(to_friendly_error(self.clincalc_label, clincalc_outcome))
            logger.warning("ClinCalc failed: %s", clincalc_outcome)
        else:
            self.clincalc_result = clincalc_outcome

        if not errors:
            self.status = AssessmentStatus.SUCCESS
            return

        # dedupe, first occurrence order
        self.errors = list(dict.fromkeys(errors))
        self.status = AssessmentStatus.PARTIAL if mdcalc_ok or clincalc_ok else AssessmentStatus.ERROR
