from __future__ import annotations

from dataclasses import dataclass, field

from .benchmarks import ImpactOutput
from .config import LOW_CONFIDENCE_NOTE, MIN_CONFIDENCE_TO_REPLACE, NEAR_REPLACEMENT_DELTA, WEAK_IMPACT_DELTA
from .confidence import ConfidenceOutput
from .misuse import MisuseOutput


@dataclass(slots=True)
class Recommendation:
    action: str
    reasons: list[str] = field(default_factory=list)


def recommend(
    is_goalie: bool, impact: ImpactOutput, misuse: MisuseOutput, confidence: ConfidenceOutput
) -> Recommendation:
    delta = impact.replacement_delta
    weak_impact = delta < WEAK_IMPACT_DELTA and confidence.confidence >= MIN_CONFIDENCE_TO_REPLACE
    near_replacement = abs(delta) <= NEAR_REPLACEMENT_DELTA
    severe = misuse.severity == "severe"

    if is_goalie:
        action = "replace" if weak_impact else ("reassign" if severe else "monitor")
    elif severe and near_replacement:
        action = "reassign"
    else:
        action = "replace" if weak_impact else "monitor"

    reasons = [f"{driver.name}: z={driver.z:+.2f}" for driver in impact.drivers]
    if weak_impact:
        reasons.append("Below replacement-level impact for role.")
    if misuse.severity != "minor":
        reasons.append(f"Misuse severity: {misuse.severity}.")
    if confidence.confidence < LOW_CONFIDENCE_NOTE:
        reasons.append("Low confidence (limited TOI and/or luck factor).")
    return Recommendation(action, reasons)
