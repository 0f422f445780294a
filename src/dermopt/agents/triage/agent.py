"""Triage agent: LLM classification of stability and formulary fit."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, cast

from dermopt.core.agent import Agent
from dermopt.core.models import TriageResult
from dermopt.core.response import AgentResponse, LLMResponse
from dermopt.core.types import AgentRole, Quadrant
from dermopt.core.utils import extract_json_from_response
from dermopt.engine.triage import TriageInput


if TYPE_CHECKING:
    from dermopt.core.llm import LLMClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a clinical decision support AI for dermatology biologic optimization.
Triage patients on biologic therapy before cost optimization.

## Policy
1. Dose reduction candidates: DLQI <= 5 and stable for >= 6 months.
2. Formulary switch candidates: stable while on a high tier or prior-authorization drug.

## Quadrants
- stable_formulary_aligned: Stable disease, optimal formulary position
- stable_non_formulary: Stable disease, non-optimal formulary (high tier or PA)
- unstable_formulary_aligned: Unstable disease, optimal formulary position
- unstable_non_formulary: Unstable disease, non-optimal formulary

## Output Format
Return ONLY a JSON object: {"canDoseReduce": boolean, "shouldSwitch": boolean, "quadrant": string, "reasoning": string}"""


class TriageAgent(Agent):
    """Agent for classifying a patient before recommendations are drafted."""

    def __init__(self, llm: LLMClient, temperature: float = 0.3) -> None:
        super().__init__(llm=llm, temperature=temperature)

    @property
    def role(self) -> AgentRole:
        return AgentRole.TRIAGE

    @property
    def system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def format_input(self, input_data: Any) -> str:
        data = cast("TriageInput", input_data)
        drug = data.formulary_drug
        return f"""Triage the following patient.

Patient Information:
- Diagnosis: {data.diagnosis.value}
- Current medication: {data.current_drug}
- DLQI Score: {data.dlqi_score} (0-30 scale, lower is better)
- Months stable: {data.months_stable}
- Has psoriatic arthritis: {'Yes' if data.has_psoriatic_arthritis else 'No'}
- Additional notes: {data.additional_notes or 'None'}

Formulary Status:
- Tier: {drug.tier if drug else 'Unknown'}
- Requires PA: {'Yes' if drug and drug.requires_pa else 'No'}"""

    def process_output(self, response: LLMResponse, total_tokens: int) -> AgentResponse:
        try:
            result = self._parse_triage(response.content)
            return AgentResponse(success=True, output=result, total_tokens=total_tokens)
        except (ValueError, TypeError) as e:
            logger.warning("Malformed triage reply: %s", e)
            return AgentResponse.rejected(f"Failed to parse triage: {e}", total_tokens)

    def _parse_triage(self, content: str) -> TriageResult:
        data = json.loads(extract_json_from_response(content))
        if not isinstance(data, dict):
            msg = "triage reply is not a JSON object"
            raise TypeError(msg)
        for key in ("canDoseReduce", "shouldSwitch"):
            if not isinstance(data.get(key), bool):
                msg = f"{key} must be a boolean"
                raise TypeError(msg)
        return TriageResult(
            can_dose_reduce=data["canDoseReduce"],
            should_switch=data["shouldSwitch"],
            quadrant=Quadrant(str(data.get("quadrant", "")).strip().lower()),
            reasoning=str(data.get("reasoning", "")),
        )

    async def triage(self, data: TriageInput) -> TriageResult:
        logger.info("LLM triage for %s", data.current_drug)
        result = cast("TriageResult", (await self.run(data)).unwrap("triage"))
        logger.info("Triage quadrant: %s", result.quadrant.value)
        return result
