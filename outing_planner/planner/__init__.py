from outing_planner.planner.engine import PlanGenerationEngine, default_center

__all__ = [
    "PlanGenerationEngine",
    "default_center",
]
