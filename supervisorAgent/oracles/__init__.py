"""Default oracle implementations."""

from .capability_delegator import CapabilityDelegator
from .llm_planner import LLMPlanner, parse_plan_text
from .static_planner import StaticPlanner

__all__ = ["CapabilityDelegator", "LLMPlanner", "StaticPlanner", "parse_plan_text"]
