from admission_policy.policies.registry import POLICY_RULES, Rule, Target, get_rule

__all__ = ["POLICY_RULES", "Rule", "Target", "get_rule"]
