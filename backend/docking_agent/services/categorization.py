"""Categorization service: maps a docking result to descriptive tags via the LLM."""
from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from ..config import get_settings
from ..exceptions import ExternalServiceError
from ..models import TagSuggestion
from .llm import LLMService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a data categorization AI for molecular docking simulations. "
    "Generate relevant tags for organization and retrieval. Respond with a single JSON object only."
)

CATEGORIZE_V1 = """Analyze this molecular docking simulation and generate categorization tags:

Protein: {target}
Ligand: {ligand}
Binding Affinity: {affinity} kcal/mol

Generate tags in JSON format:
{{
  "tags": [
    {{ "type": "protein_family", "value": "..." }},
    {{ "type": "therapeutic_area", "value": "..." }},
    {{ "type": "binding_strength", "value": "strong" | "moderate" | "weak" }},
    {{ "type": "drug_class", "value": "..." }}
  ]
}}

Based on the binding affinity:
- Strong: < -9.0 kcal/mol
- Moderate: -9.0 to -7.0 kcal/mol
- Weak: > -7.0 kcal/mol"""

PROMPTS = {
    "v1": CATEGORIZE_V1,
}


class CategorizationService:
    def __init__(self, llm: Optional[LLMService] = None) -> None:
        self.llm = llm or LLMService()
        version = (get_settings().LLM_PROMPT_VERSION or "v1").strip()
        self.template = PROMPTS.get(version, CATEGORIZE_V1)

    async def categorize(self, target: str, ligand: str, affinity: float) -> List[TagSuggestion]:
        """Return tags for the job; raises ExternalServiceError on failure or malformed output."""
        prompt = self.template.format(target=target, ligand=ligand, affinity=affinity)
        data = await self.llm.complete_json_async(SYSTEM_PROMPT, prompt)
        raw_tags = data.get("tags")
        if not isinstance(raw_tags, list):
            raise ExternalServiceError("Categorization response is missing a tags list")

        tags: List[TagSuggestion] = []
        for item in raw_tags:
            try:
                tags.append(TagSuggestion.model_validate(item))
            except ValidationError:
                logger.debug("Dropping malformed tag: %r", item)
        return tags
