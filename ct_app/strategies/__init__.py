"""
Strategy configuration models and the file-based registry.
"""
from .models import RiskConfig, StrategyConfig, StrategyStatus, can_transition
from .registry import StrategyRegistry

__all__ = ["RiskConfig", "StrategyConfig", "StrategyStatus", "StrategyRegistry", "can_transition"]
