from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from app.core import logging as _logging  # noqa: F401  (configures handlers)

from .clincalc_client import ClinCalcClient
from .config import get_config
from .mdcalc_client import MdCalcClient
from .models import Intake, PatientProfile
from .session import RiskAssessmentSession
from .store import InMemorySnapshotStore, JsonLinesSnapshotStore


def _load(path: Path, model):
    with path.open("r", encoding="utf-8") as f:
        return model.model_validate(json.load(f))


async def _run(profile, intake, record: bool) -> dict:
    store = JsonLinesSnapshotStore(get_config().snapshot_store_path) if record else InMemorySnapshotStore()
    session = RiskAssessmentSession(MdCalcClient(), ClinCalcClient(), store)
    try:
        view = await session.evaluate(profile, intake)
    finally:
        await session.close()
    return view.model_dump(mode="json")


def main(argv: list[str]) -> int:
    if len(argv) < 3 or "--help" in argv:
        print("Usage: python -m app.services.risk_assessment <profile.json> <intake.json> [--no-record]")
        return 0

    paths = [Path(argv[1]), Path(argv[2])]
    for path in paths:
        if not path.exists():
            print(f"File not found: {path}")
            return 2

    try:
        profile = _load(paths[0], PatientProfile)
        intake = _load(paths[1], Intake)
    except (ValueError, ValidationError) as e:
        print(f"Invalid input: {e}")
        return 2

    payload = asyncio.run(_run(profile, intake, record="--no-record" not in argv))
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
