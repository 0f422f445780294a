from dermopt.agents.triage.agent import TriageAgent


__all__ = ["TriageAgent"]
