"""
Cleanup eligibility rules.
"""

from .volume import RuleConfig, RuleOutcome, evaluate, make_rule

__all__ = ["RuleConfig", "RuleOutcome", "evaluate", "make_rule"]
