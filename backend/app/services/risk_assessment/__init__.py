"""
Risk Assessment Service

Dual-provider PREVENT 10-year cardiovascular risk assessment: builds MdCalc and
ClinCalc payloads from a patient's intake, calls both calculators
concurrently, interprets their results and records a snapshot per attempt.
"""

from .models import (
    AssessmentSnapshot,
    AssessmentStatus,
    ClinicalProfile,
    Intake,
    PatientProfile,
    RiskAssessmentView,
    RiskCategory,
)
from .payloads import build_clinical_profile, build_payloads
from .mdcalc_client import MdCalcClient
from .clincalc_client import ClinCalcClient
from .aggregator import AssessmentAggregator
from .recorder import SnapshotRecorder
from .session import RiskAssessmentSession
from .store import InMemorySnapshotStore, JsonLinesSnapshotStore, SnapshotStore
from .config import get_config, update_config

__all__ = [
    # Models
    'AssessmentSnapshot',
    'AssessmentStatus',
    'ClinicalProfile',
    'Intake',
    'PatientProfile',
    'RiskAssessmentView',
    'RiskCategory',

    # Payloads
    'build_clinical_profile',
    'build_payloads',

    # Providers
    'MdCalcClient',
    'ClinCalcClient',

    # Orchestration
    'AssessmentAggregator',
    'SnapshotRecorder',
    'RiskAssessmentSession',

    # Storage
    'SnapshotStore',
    'InMemorySnapshotStore',
    'JsonLinesSnapshotStore',

    # Config
    'get_config',
    'update_config',
]
