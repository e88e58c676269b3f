# microanon/core/recommendations.py

from typing import List

from .config import DEFAULT_CONFIG, RecommendationConfig

ACCEPTABLE = "Risk levels are acceptable. Data appears well-protected."


def generate_recommendations(
    prosecutor_risk: float,
    journalist_risk: float,
    marketer_risk: float,
    unique_records: int,
    total_records: int,
    violating_classes: int,
    k_threshold: int,
    config: RecommendationConfig = DEFAULT_CONFIG.recommendations,
) -> List[str]:
    """
    Guidance strings for a risk assessment.

    Tiers (strict inequalities):
      - prosecutor > 0.4          -> critical, raise k or suppress
      - 0.2 < prosecutor <= 0.4   -> moderate, review small classes
      - journalist > 0.3          -> sampling restrictions
      - marketer > 0.25           -> l-diversity / t-closeness
      - uniques > 10% of records  -> l-diversity or synthetic data
      - any class below k         -> exact violation count
    With nothing triggered a single "acceptable" message is returned.
    """
    recs: List[str] = []

    if prosecutor_risk > config.critical_threshold:
        recs.append("CRITICAL: High prosecutor attack risk. Too many unique/small records.")
        recs.append("Action: Increase k-threshold or apply aggressive suppression")
    elif prosecutor_risk > config.moderate_threshold:
        recs.append("WARNING: Moderate prosecutor attack risk detected.")
        recs.append(f"Action: Consider suppressing records with k-anonymity < {k_threshold}")

    if journalist_risk > config.journalist_alert_threshold:
        recs.append("Journalist attack risk is elevated. Consider sampling restrictions.")

    if marketer_risk > config.marketer_alert_threshold:
        recs.append("Marketer bulk targeting risk is significant.")
        recs.append("Action: Apply L-Diversity or T-Closeness to sensitive attributes")

    if unique_records > total_records * config.unique_ratio_threshold:
        recs.append(f"High ratio of unique records ({unique_records}/{total_records})")
        recs.append("Consider L-Diversity or synthetic data generation")

    if violating_classes > 0:
        recs.append(f"{violating_classes} groups violate k-anonymity (k={k_threshold})")

    if not recs:
        recs.append(ACCEPTABLE)

    return recs
