"""
Configuration Advice

Recommends a mode and risk level from how often the merchant agrees with the
autopilot.
"""

from dataclasses import dataclass

from shopify_autopilot.database.models import AutopilotMode, RiskLevel


@dataclass(frozen=True)
class ConfigurationAdvice:
    total: int
    approved: int
    rejected: int
    recommended_mode: AutopilotMode
    recommended_risk: RiskLevel
    reason: str


def recommend_configuration(approved: int, rejected: int, min_feedback: int = 10) -> ConfigurationAdvice:
    """
    Map the shop-wide approval rate to a recommended configuration.

    Args:
        approved: Approved feedback rows for the shop
        rejected: Rejected feedback rows for the shop
        min_feedback: Rows needed before the rate is trusted
    """
    total = approved + rejected

    if total < min_feedback:
        mode, risk = AutopilotMode.ASSIST, RiskLevel.NORMAL
        reason = (
            "Not enough feedback yet - keep AI in Assist mode and Normal risk "
            "while you train it."
        )
    else:
        approval_rate = approved / total
        if approval_rate >= 0.7:
            mode, risk = AutopilotMode.FULL, RiskLevel.AGGRESSIVE
            reason = "You agree with most AI decisions - it's safe to let the AI run more aggressively."
        elif approval_rate <= 0.3:
            mode, risk = AutopilotMode.ASSIST, RiskLevel.SAFE
            reason = (
                "You reject most AI decisions - stay in Assist mode with Safe risk "
                "until the AI learns your style."
            )
        else:
            mode, risk = AutopilotMode.ASSIST, RiskLevel.NORMAL
            reason = "Mixed feedback - keep Assist mode with Normal risk for a balanced approach."

    return ConfigurationAdvice(
        total=total,
        approved=approved,
        rejected=rejected,
        recommended_mode=mode,
        recommended_risk=risk,
        reason=reason,
    )
