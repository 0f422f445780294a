"""
Tests for the triage and recommender agents.

These tests verify:
1. Strict-JSON replies are parsed into typed results
2. Markdown-fenced JSON and bare arrays are accepted
3. Malformed or empty replies surface as LLMResponseError
"""

import asyncio
import json

import pytest

from dermopt.agents import RecommendationRequest, RecommenderAgent, TriageAgent
from dermopt.core.errors import LLMResponseError
from dermopt.core.mock_llm import MockLLMClient
from dermopt.core.models import TriageResult
from dermopt.core.types import DiagnosisType, MessageRole, Quadrant, RecommendationType
from dermopt.engine.triage import TriageInput

from .conftest import ScriptedLLM


def _triage_input(drug=None, dlqi=2, months=12):
    return TriageInput(
        diagnosis=DiagnosisType.PSORIASIS, dlqi_score=dlqi, months_stable=months,
        current_drug="Humira", formulary_drug=drug,
    )


def _request(offline_formulary, quadrant=Quadrant.STABLE_NON_FORMULARY):
    humira = offline_formulary[0]
    return RecommendationRequest(
        diagnosis=DiagnosisType.PSORIASIS,
        dlqi_score=2,
        months_stable=12,
        current_drug="Humira",
        triage=TriageResult(can_dose_reduce=True, should_switch=True, quadrant=quadrant, reasoning="stable"),
        evidence=["[Adalimumab interval extension]: Extending the interval maintained response."],
        formulary_options=sorted(offline_formulary[1:], key=lambda d: (d.tier, d.annual_cost or 0)),
        current_formulary=humira,
    )


class TestTriageAgent:
    async def test_parses_reply(self, offline_formulary):
        reply = json.dumps({
            "canDoseReduce": True, "shouldSwitch": True,
            "quadrant": "STABLE_NON_FORMULARY", "reasoning": "Stable on a tier 3 drug.",
        })
        llm = ScriptedLLM([reply])
        result = await TriageAgent(llm).triage(_triage_input(offline_formulary[0]))
        assert result.can_dose_reduce
        assert result.should_switch
        assert result.quadrant == Quadrant.STABLE_NON_FORMULARY
        assert result.reasoning == "Stable on a tier 3 drug."

    async def test_prompt_carries_patient_and_formulary(self, offline_formulary):
        llm = ScriptedLLM([])
        with pytest.raises(LLMResponseError):
            await TriageAgent(llm).triage(_triage_input(offline_formulary[0]))
        system, user = llm.calls[0]
        assert system["role"] == MessageRole.SYSTEM.value
        assert "DLQI Score: 2" in user["content"]
        assert "Tier: 3" in user["content"]
        assert "Requires PA: Yes" in user["content"]

    @pytest.mark.parametrize(
        "reply",
        [
            "not json at all",
            "[]",
            json.dumps({"canDoseReduce": "yes", "shouldSwitch": False, "quadrant": "stable_non_formulary"}),
            json.dumps({"canDoseReduce": True, "shouldSwitch": False, "quadrant": "sideways"}),
        ],
    )
    async def test_malformed_reply(self, reply):
        with pytest.raises(LLMResponseError, match="Failed to parse triage"):
            await TriageAgent(ScriptedLLM([reply])).triage(_triage_input())

    async def test_concurrent_runs_are_independent(self):
        """One agent instance serves overlapping requests without mixing replies."""
        replies = [
            json.dumps({"canDoseReduce": True, "shouldSwitch": False,
                        "quadrant": "STABLE_FORMULARY_ALIGNED", "reasoning": "first"}),
            json.dumps({"canDoseReduce": False, "shouldSwitch": True,
                        "quadrant": "UNSTABLE_NON_FORMULARY", "reasoning": "second"}),
        ]
        agent = TriageAgent(ScriptedLLM(replies))
        first, second = await asyncio.gather(
            agent.triage(_triage_input()), agent.triage(_triage_input(dlqi=15, months=1)),
        )
        assert (first.reasoning, first.quadrant) == ("first", Quadrant.STABLE_FORMULARY_ALIGNED)
        assert (second.reasoning, second.quadrant) == ("second", Quadrant.UNSTABLE_NON_FORMULARY)
        assert not hasattr(agent, "conversation")

    async def test_transport_error_propagates(self):
        with pytest.raises(ConnectionError):
            await TriageAgent(ScriptedLLM([ConnectionError("down")])).triage(_triage_input())


class TestRecommenderAgent:
    async def test_object_reply(self, offline_formulary):
        reply = json.dumps({"recommendations": [
            {"type": "switch_to_biosimilar", "drugName": "Amjevita", "rationale": "Biosimilar.", "rank": 2},
            {"type": "DOSE_REDUCTION", "newFrequency": "every 3 weeks", "rationale": "Stable.", "rank": 1},
        ]})
        drafts = await RecommenderAgent(ScriptedLLM([reply])).recommend(_request(offline_formulary))
        assert [(d.rank, d.type) for d in drafts] == [
            (1, RecommendationType.DOSE_REDUCTION),
            (2, RecommendationType.SWITCH_TO_BIOSIMILAR),
        ]
        assert drafts[0].new_frequency == "every 3 weeks"
        assert drafts[0].drug_name is None
        assert drafts[1].drug_name == "Amjevita"

    async def test_fenced_array_reply(self, offline_formulary):
        reply = "Here you go:\n```json\n" + json.dumps([
            {"type": "THERAPEUTIC_SWITCH", "drugName": "Skyrizi", "rationale": "IL-23."},
        ]) + "\n```"
        drafts = await RecommenderAgent(ScriptedLLM([reply])).recommend(_request(offline_formulary))
        assert [(d.rank, d.type, d.drug_name) for d in drafts] == [
            (1, RecommendationType.THERAPEUTIC_SWITCH, "Skyrizi"),
        ]

    async def test_unknown_types_are_dropped(self, offline_formulary):
        reply = json.dumps({"recommendations": [
            {"type": "STOP_TREATMENT", "rationale": "?"},
            "not an object",
            {"type": "OPTIMIZE_CURRENT", "rationale": "Keep going."},
        ]})
        drafts = await RecommenderAgent(ScriptedLLM([reply])).recommend(_request(offline_formulary))
        assert [d.type for d in drafts] == [RecommendationType.OPTIMIZE_CURRENT]

    @pytest.mark.parametrize(
        ("reply", "message"),
        [
            (json.dumps({"recommendations": []}), "no recommendations"),
            (json.dumps({"recommendations": [{"type": "NOPE"}]}), "no recommendations"),
            ("", "reply was empty"),
            (json.dumps({"recommendations": "DOSE_REDUCTION"}), "Failed to parse"),
        ],
    )
    async def test_unusable_reply(self, offline_formulary, reply, message):
        with pytest.raises(LLMResponseError, match=message):
            await RecommenderAgent(ScriptedLLM([reply])).recommend(_request(offline_formulary))

    async def test_prompt_lists_options_and_evidence(self, offline_formulary):
        llm = ScriptedLLM([json.dumps([{"type": "OPTIMIZE_CURRENT"}])])
        await RecommenderAgent(llm).recommend(_request(offline_formulary))
        prompt = llm.calls[0][1]["content"]
        assert "Amjevita (TNF_INHIBITOR, Tier 1, PA: No" in prompt
        assert "Quadrant: stable_non_formulary" in prompt
        assert "[Adalimumab interval extension]" in prompt
        assert "Tier 3, PA: Yes, Annual Cost: $84000.0" in prompt


class TestMockLLM:
    """The offline mock drives both agents end to end."""

    async def test_triage_and_recommend(self, offline_formulary):
        llm = MockLLMClient()
        triage = await TriageAgent(llm).triage(_triage_input(offline_formulary[0]))
        assert triage.quadrant == Quadrant.STABLE_NON_FORMULARY
        drafts = await RecommenderAgent(llm).recommend(_request(offline_formulary, triage.quadrant))
        assert [(d.type, d.drug_name) for d in drafts] == [
            (RecommendationType.DOSE_REDUCTION, None),
            (RecommendationType.SWITCH_TO_PREFERRED, "Amjevita"),
        ]
