"""IP restriction module for IPGUARD."""

from ipguard.core.restriction.policy_engine import RestrictionPolicyEngine

__all__ = [
    "RestrictionPolicyEngine",
]
