"""
Snapshot Recorder: writes at most one snapshot per session.

The trigger may be evaluated any number of times; the first evaluation that
finds the attempt resolved flips the latch and writes. The latch lives on the
recorder, and a recorder is created per session.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from app.services.risk_assessment.models import (
    AssessmentResults,
    AssessmentSnapshot,
    AssessmentStatus,
    InputSnapshot,
)
from app.services.risk_assessment.store import SnapshotStore

logger = logging.getLogger(__name__)


def _dump(model: Optional[BaseModel], by_alias: bool = False) -> Optional[Dict[str, Any]]:
    return model.model_dump(mode="json", by_alias=by_alias) if model is not None else None


class SnapshotRecorder:
    def __init__(self, store: SnapshotStore):
        self.store = store
        self.has_recorded = False
        self.snapshot_id: Optional[str] = None

    @staticmethod
    def should_record(
        is_query_resolved: bool,
        status: AssessmentStatus,
        has_payloads: bool,
    ) -> bool:
        """True once inputs are loaded and the attempt is settled (or never started)."""
        if not is_query_resolved:
            return False
        if status == AssessmentStatus.LOADING:
            return False
        if status == AssessmentStatus.IDLE and has_payloads:
            return False
        return True

    async def maybe_record(
        self,
        *,
        is_query_resolved: bool,
        status: AssessmentStatus,
        errors: List[str],
        validation_error: Optional[str],
        profile: Optional[BaseModel],
        intake: Optional[BaseModel],
        age: Optional[int],
        mdcalc_payload: Optional[BaseModel],
        clincalc_payload: Optional[BaseModel],
        mdcalc_result: Optional[BaseModel],
        clincalc_result: Optional[List[BaseModel]],
    ) -> bool:
        """
        Record the snapshot if the trigger holds and nothing was recorded yet.

        Returns True when this call performed the write. Store failures are
        logged and swallowed; the latch stays set either way.
        """
        if self.has_recorded:
            return False

        has_payloads = mdcalc_payload is not None and clincalc_payload is not None
        if not self.should_record(is_query_resolved, status, has_payloads):
            return False

        self.has_recorded = True

        snapshot = AssessmentSnapshot(
            input_snapshot=InputSnapshot(
                profile=_dump(profile),
                intake=_dump(intake),
                age=age,
                mdcalc_payload=_dump(mdcalc_payload),
                clincalc_payload=_dump(clincalc_payload, by_alias=True),
            ),
            results=AssessmentResults(
                status=status,
                errors=[validation_error] if validation_error else list(errors),
                mdcalc=mdcalc_result,
                clincalc=clincalc_result,
            ),
        )

        try:
            self.snapshot_id = await self.store.insert(snapshot)
        except Exception as e:
            logger.warning(f"Failed to record risk assessment snapshot: {str(e)}")
            return False

        return True
