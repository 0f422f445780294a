from dermopt.agents.recommender.agent import RecommendationRequest, RecommenderAgent


__all__ = ["RecommendationRequest", "RecommenderAgent"]
