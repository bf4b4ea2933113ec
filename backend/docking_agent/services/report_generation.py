"""Report generation service: turns docking metrics into a structured analysis report."""
from __future__ import annotations

import json
from typing import Optional

from ..config import get_settings
from ..exceptions import ExternalServiceError
from ..models import DockingMetrics, ReportContent
from .llm import LLMService

SYSTEM_PROMPT = (
    "You are an expert molecular biologist and computational chemist generating professional "
    "docking simulation reports. Your reports are used in grant proposals, research papers, and "
    "stakeholder presentations. Respond with a single JSON object only."
)

REPORT_V1 = """You are a molecular biology AI agent generating a comprehensive docking analysis report.

SIMULATION DATA:
- Target Protein: {target}
- Ligand: {ligand}
- Binding Affinity: {affinity} kcal/mol
- RMSD: {rmsd} Å
- Ligand Efficiency: {efficiency} kcal/mol/HA
- Inhibition Constant (Ki): {ki} nM
{interactions}
Generate a detailed scientific report in JSON format with the following structure:
{{
  "executiveSummary": "A 2-3 sentence summary of the key findings and binding efficacy. Be specific about the binding affinity, stability, and drug potential.",
  "fullContent": "A comprehensive analysis covering: (1) Binding characteristics, (2) Interaction profile analysis, (3) Drug efficacy predictions, (4) Recommendations for lead optimization.",
  "performanceMetrics": {{
    "bindingEnergy": number,
    "ligandEfficiency": number,
    "inhibitionConstant": number,
    "stabilityScore": number (0-100),
    "drugLikenessScore": number (0-100),
    "toxicityRisk": "low" | "medium" | "high"
  }}
}}"""

PROMPTS = {
    "v1": REPORT_V1,
}

DEFAULT_SUMMARY = "Analysis completed successfully."
DEFAULT_CONTENT = "Detailed report content."


def _or_na(value: Optional[float]) -> str:
    return "N/A" if value is None else str(value)


class ReportGenerationService:
    def __init__(self, llm: Optional[LLMService] = None) -> None:
        self.llm = llm or LLMService()
        version = (get_settings().LLM_PROMPT_VERSION or "v1").strip()
        self.template = PROMPTS.get(version, REPORT_V1)

    def build_prompt(self, metrics: DockingMetrics) -> str:
        interactions = ""
        if metrics.interactionData:
            interactions = f"- Interaction Data: {json.dumps(metrics.interactionData)}\n"
        return self.template.format(
            target=metrics.proteinTarget,
            ligand=metrics.ligandName,
            affinity=metrics.bindingAffinity,
            rmsd=metrics.rmsd,
            efficiency=_or_na(metrics.ligandEfficiency),
            ki=_or_na(metrics.inhibitionConstant),
            interactions=interactions,
        )

    async def generate_report(self, metrics: DockingMetrics) -> ReportContent:
        """Generate the analysis; raises ExternalServiceError on failure or malformed output."""
        data = await self.llm.complete_json_async(SYSTEM_PROMPT, self.build_prompt(metrics))
        perf = data.get("performanceMetrics") or {}
        if not isinstance(perf, dict):
            raise ExternalServiceError("Report response has malformed performanceMetrics")
        return ReportContent(
            executiveSummary=str(data.get("executiveSummary") or DEFAULT_SUMMARY),
            fullContent=str(data.get("fullContent") or DEFAULT_CONTENT),
            performanceMetrics=perf,
        )
