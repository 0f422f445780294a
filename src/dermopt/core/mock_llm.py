"""Mock LLM client for testing without API keys."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

from dermopt.core.response import LLMResponse, TokenUsage


if TYPE_CHECKING:
    from dermopt.core.types import JSON


class MockLLMClient:
    """Mock LLM client that returns predefined responses for testing."""

    async def chat(self, messages: list[JSON], temperature: float = 0.0, json_mode: bool = False) -> LLMResponse:
        last_msg = ""
        for msg in reversed(messages):
            if msg.get("role") == "user":
                last_msg = str(msg.get("content", ""))
                break
        if "Triage the following patient" in last_msg:
            return self._triage_response(last_msg)
        elif "Generate cost-saving recommendations" in last_msg:
            return self._recommendation_response(last_msg)
        return LLMResponse(content="{}", finish_reason="stop",
                          usage=TokenUsage(prompt_tokens=100, completion_tokens=5, total_tokens=105))

    def _triage_response(self, msg: str) -> LLMResponse:
        dlqi = int(m.group(1)) if (m := re.search(r"DLQI Score: (\d+)", msg)) else 30
        months = int(m.group(1)) if (m := re.search(r"Months stable: (\d+)", msg)) else 0
        tier = m.group(1) if (m := re.search(r"Tier: (\w+)", msg)) else "Unknown"
        pa = "Requires PA: Yes" in msg
        stable = dlqi <= 5 and months >= 6
        aligned = tier.isdigit() and int(tier) <= 2 and not pa
        quadrant = f"{'stable' if stable else 'unstable'}_{'formulary_aligned' if aligned else 'non_formulary'}"
        body = {"canDoseReduce": stable, "shouldSwitch": stable and not aligned, "quadrant": quadrant,
                "reasoning": f"Mock triage: DLQI {dlqi}, {months} months stable, tier {tier}."}
        return LLMResponse(content=json.dumps(body), finish_reason="stop",
                          usage=TokenUsage(prompt_tokens=300, completion_tokens=60, total_tokens=360))

    def _recommendation_response(self, msg: str) -> LLMResponse:
        drug = m.group(1).strip() if (m := re.search(r"Current medication: (.+)", msg)) else "current biologic"
        recs = []
        if "Quadrant: stable_" in msg:
            recs.append({"type": "DOSE_REDUCTION", "drugName": None, "newDose": None,
                "newFrequency": "extend interval by one dosing cycle",
                "rationale": f"Stable on {drug}; interval extension maintains response in most patients.",
                "monitoringPlan": "DLQI at 12 and 24 weeks", "rank": 1})
        options = re.findall(r"^(.+?) \(.+?, Tier ([12]), PA: No", msg, flags=re.MULTILINE)
        if "Quadrant: stable_non_formulary" in msg and options:
            recs.append({"type": "SWITCH_TO_PREFERRED", "drugName": options[0][0], "newDose": None,
                "newFrequency": None, "rationale": f"{options[0][0]} is a preferred tier {options[0][1]} option.",
                "monitoringPlan": "Confirm response at 16 weeks", "rank": len(recs) + 1})
        if not recs:
            recs.append({"type": "OPTIMIZE_CURRENT", "drugName": None, "newDose": None, "newFrequency": None,
                "rationale": f"Continue {drug} and review copay assistance.", "monitoringPlan": "Next visit",
                "rank": 1})
        return LLMResponse(content=f"```json\n{json.dumps({'recommendations': recs}, indent=2)}\n```",
                          finish_reason="stop",
                          usage=TokenUsage(prompt_tokens=800, completion_tokens=250, total_tokens=1050))
