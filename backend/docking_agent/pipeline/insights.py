from __future__ import annotations

import math
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import ANALYZED, PROCESSING, DashboardStats, Insights, Job, Report

# Evaluated top to bottom; first match wins. Matching is case-sensitive.
THERAPEUTIC_AREA_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("EGFR", "JAK", "kinase"), "Oncology"),
    (("SARS", "viral", "protease"), "Antiviral"),
    (("HSP", "heat"), "Cancer"),
    (("ACE", "cardio"), "Cardiovascular"),
)
DEFAULT_AREA = "General Research"

EMPTY_RECOMMENDATIONS = [
    "No simulations yet. Submit your first docking job to get started!",
    "Use the 'New Simulation' button to add protein-ligand docking data.",
    "The AI agent will automatically analyze your submissions.",
]


def classify_therapeutic_area(target: str) -> str:
    for needles, area in THERAPEUTIC_AREA_RULES:
        if any(n in target for n in needles):
            return area
    return DEFAULT_AREA


def percent(part: int, total: int) -> int:
    """Whole percentage, rounded half up."""
    if total <= 0:
        return 0
    return int(math.floor(part * 100.0 / total + 0.5))


def _fmt(value: float) -> str:
    # Shortest round-trip form; integral values drop the trailing ".0"
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def _unique(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


def build_recommendations(jobs: Sequence[Job]) -> List[str]:
    """Deterministic recommendation strings; order is part of the contract."""
    recommendations: List[str] = []

    best = jobs[0]
    for j in jobs[1:]:
        if j.bindingAffinity < best.bindingAffinity:
            best = j
    recommendations.append(
        f"Strong binding detected: {best.proteinTarget} with {best.ligandName} ({_fmt(best.bindingAffinity)} kcal/mol)"
    )

    processing = sum(1 for j in jobs if j.status == PROCESSING)
    if processing > 0:
        recommendations.append(f"{processing} simulation(s) currently being processed by the AI agent.")

    analyzed = sum(1 for j in jobs if j.status == ANALYZED)
    if analyzed > 0:
        recommendations.append(
            f"{analyzed} of {len(jobs)} simulations fully analyzed ({percent(analyzed, len(jobs))}% complete)."
        )

    # most_common keeps first-seen order on ties
    top_target, top_count = Counter(j.proteinTarget for j in jobs).most_common(1)[0]
    recommendations.append(f"Most studied target: {top_target} with {top_count} simulation(s).")
    return recommendations


def summarize_jobs(jobs: Sequence[Job], reports: Optional[Sequence[Report]] = None) -> Insights:
    reports = reports or []
    if not jobs:
        return Insights(
            totalSimulations=0,
            successRate=0.0,
            averageBindingAffinity=0.0,
            recommendations=list(EMPTY_RECOMMENDATIONS),
            recentActivity="Waiting for data...",
        )

    total = len(jobs)
    analyzed = sum(1 for j in jobs if j.status == ANALYZED)
    targets = _unique([j.proteinTarget for j in jobs])
    target_areas: Dict[str, str] = {t: classify_therapeutic_area(t) for t in targets}
    newest = max(jobs, key=lambda j: j.createdAt)

    return Insights(
        totalSimulations=total,
        successRate=analyzed / total,
        averageBindingAffinity=round(sum(j.bindingAffinity for j in jobs) / total, 2),
        proteinTargets=targets,
        therapeuticAreas=_unique(list(target_areas.values())),
        targetAreas=target_areas,
        recommendations=build_recommendations(jobs),
        totalReports=len(reports),
        verifiedReports=sum(1 for r in reports if r.verificationToken),
        recentActivity=f"Last activity: {newest.createdAt.isoformat()}",
    )


class InsightAggregator:
    """Read-only dashboard statistics over the job store."""

    def __init__(self, store) -> None:
        self.store = store

    def summarize(self) -> Insights:
        return summarize_jobs(self.store.list_jobs(), self.store.list_reports())

    def dashboard_stats(self) -> DashboardStats:
        jobs = self.store.list_jobs()
        reports = self.store.list_reports()
        completed = sum(1 for j in jobs if j.status == ANALYZED)
        rate = (completed / len(jobs) * 100) if jobs else 0.0
        return DashboardStats(
            activeSimulations=sum(1 for j in jobs if j.status == PROCESSING),
            totalSimulations=len(jobs),
            successRate=f"{rate:.1f}%",
            totalReports=len(reports),
        )
