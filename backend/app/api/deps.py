"""
FastAPI dependency providers. Tests swap these via app.dependency_overrides.
"""
from functools import lru_cache

from app.services.risk_assessment.clincalc_client import ClinCalcClient
from app.services.risk_assessment.config import get_config
from app.services.risk_assessment.mdcalc_client import MdCalcClient
from app.services.risk_assessment.store import JsonLinesSnapshotStore, SnapshotStore


def get_mdcalc_client() -> MdCalcClient:
    return MdCalcClient()


def get_clincalc_client() -> ClinCalcClient:
    return ClinCalcClient()


@lru_cache(maxsize=1)
def get_snapshot_store() -> SnapshotStore:
    # one store per process so all writes share its lock
    return JsonLinesSnapshotStore(get_config().snapshot_store_path)
