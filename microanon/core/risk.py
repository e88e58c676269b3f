# microanon/core/risk.py

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .config import DEFAULT_CONFIG, EngineConfig, RiskModelConfig
from .equivalence import (
    EquivalenceClass,
    build_equivalence_classes,
    class_size_histogram,
)
from .errors import InvalidConfigurationError
from .recommendations import generate_recommendations

logger = logging.getLogger(__name__)

HIGH = "High"
MEDIUM = "Medium"
LOW = "Low"


def risk_level(risk: float, config: RiskModelConfig = DEFAULT_CONFIG.risk) -> str:
    """High at >= 0.4, Medium at >= 0.2, otherwise Low."""
    if risk >= config.high_risk_threshold:
        return HIGH
    if risk >= config.medium_risk_threshold:
        return MEDIUM
    return LOW


def _clamp(x: float) -> float:
    return min(max(x, 0.0), 1.0)


def _weighted_mean(per_class: Sequence[float], classes: Sequence[EquivalenceClass]) -> float:
    total = sum(ec.size for ec in classes)
    if total == 0:
        return 0.0
    weighted = sum(r * ec.size for r, ec in zip(per_class, classes))
    return weighted / total


@dataclass
class AttackRisk:
    """Outcome of one adversary model."""

    model: str
    overall: float
    per_class: List[float]
    level: str
    unique_classes: int
    violations: int
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "risk": self.overall,
            "riskLevel": self.level,
            "uniqueRecords": self.unique_classes,
            "violations": self.violations,
            **self.details,
        }


def _counts(classes: Sequence[EquivalenceClass], k_threshold: int):
    unique = sum(1 for ec in classes if ec.size == 1)
    violations = sum(1 for ec in classes if ec.size < k_threshold)
    return unique, violations


def prosecutor_risk(
    classes: Sequence[EquivalenceClass],
    k_threshold: int = 1,
    config: RiskModelConfig = DEFAULT_CONFIG.risk,
) -> AttackRisk:
    """
    Adversary knows the target is in the dataset.

    Per-class risk is 1 / class size; the dataset risk is the
    record-weighted mean of the per-class values.
    """
    per_class = [1.0 / ec.size for ec in classes]
    overall = _clamp(_weighted_mean(per_class, classes))
    unique, violations = _counts(classes, k_threshold)
    return AttackRisk(
        model="prosecutor",
        overall=overall,
        per_class=per_class,
        level=risk_level(overall, config),
        unique_classes=unique,
        violations=violations,
        details={"maxRisk": max(per_class) if per_class else 0.0},
    )


def estimate_population_size(
    sample_size: int,
    multiplier: float,
    floor: int = DEFAULT_CONFIG.risk.population_floor,
) -> int:
    return int(max(sample_size * multiplier, floor))


def pitman_population_uniques(sample_uniques: int, sample_size: int, population_size: int) -> int:
    """
    Estimate population uniques from sample uniques.

    The unique proportion gets a Beta(u + 1, n - u + 1) posterior; its
    mean scaled to the population is the estimate.
    """
    if sample_size <= 0:
        return 0
    alpha = sample_uniques + 1
    beta = sample_size - sample_uniques + 1
    expected = alpha / (alpha + beta)
    return int(round(expected * population_size))


def journalist_risk(
    classes: Sequence[EquivalenceClass],
    k_threshold: int = 1,
    population_multiplier: Optional[float] = None,
    config: RiskModelConfig = DEFAULT_CONFIG.risk,
) -> AttackRisk:
    """
    Adversary does not know whether the target is in the dataset.

    Per-class risk is the prosecutor value attenuated by
    `journalist_factor`. The population-uniques estimate is reported
    alongside and does not feed the score.
    """
    factor = config.journalist_factor
    per_class = [factor / ec.size for ec in classes]
    overall = _clamp(_weighted_mean(per_class, classes))
    unique, violations = _counts(classes, k_threshold)

    records = sum(ec.size for ec in classes)
    at_risk = sum(
        ec.size for r, ec in zip(per_class, classes)
        if r > config.journalist_at_risk_threshold
    )
    multiplier = config.population_multiplier if population_multiplier is None else population_multiplier
    population = estimate_population_size(records, multiplier, config.population_floor)

    return AttackRisk(
        model="journalist",
        overall=overall,
        per_class=per_class,
        level=risk_level(overall, config),
        unique_classes=unique,
        violations=violations,
        details={
            "recordsAtRisk": at_risk,
            "populationSize": population,
            "estimatedPopulationUniques": pitman_population_uniques(unique, records, population),
        },
    )


def marketer_risk(
    classes: Sequence[EquivalenceClass],
    k_threshold: int = 1,
    config: RiskModelConfig = DEFAULT_CONFIG.risk,
) -> AttackRisk:
    """
    Adversary wants bulk re-identification and accepts false positives.

    Per-class values are capped at 1.0 for display only; the aggregate
    is built from the uncapped values and clamped at the end.
    """
    factor = config.marketer_factor
    raw = [factor / ec.size for ec in classes]
    overall = _clamp(_weighted_mean(raw, classes))
    unique, violations = _counts(classes, k_threshold)

    matches = 0
    for r, ec in zip(raw, classes):
        if r > config.marketer_match_threshold:
            matches += int(round(ec.size * min(1.0, r)))

    return AttackRisk(
        model="marketer",
        overall=overall,
        per_class=[min(1.0, r) for r in raw],
        level=risk_level(overall, config),
        unique_classes=unique,
        violations=violations,
        details={"expectedMatches": matches},
    )


@dataclass
class RiskMetrics:
    prosecutor: AttackRisk
    journalist: AttackRisk
    marketer: AttackRisk
    equivalence_classes: List[EquivalenceClass]
    records: int
    unique_records: int
    small_groups: int
    violations: int
    violating_records: int
    histogram: Dict[str, int]
    sampled_size: int
    k_threshold: int
    recommendations: List[str]

    @property
    def prosecutor_risk(self) -> float:
        return self.prosecutor.overall

    @property
    def journalist_risk(self) -> float:
        return self.journalist.overall

    @property
    def marketer_risk(self) -> float:
        return self.marketer.overall

    @property
    def risk_level(self) -> str:
        return self.prosecutor.level

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prosecutorRisk": self.prosecutor_risk,
            "journalistRisk": self.journalist_risk,
            "marketerRisk": self.marketer_risk,
            "riskLevel": self.risk_level,
            "equivalenceClasses": [ec.to_dict() for ec in self.equivalence_classes],
            "totalClasses": len(self.equivalence_classes),
            "records": self.records,
            "uniqueRecords": self.unique_records,
            "smallGroups": self.small_groups,
            "violations": self.violations,
            "violatingRecords": self.violating_records,
            "histogram": self.histogram,
            "sampledSize": self.sampled_size,
            "kThreshold": self.k_threshold,
            "models": {
                m.model: m.to_dict() for m in (self.prosecutor, self.journalist, self.marketer)
            },
            "recommendations": list(self.recommendations),
        }


def compute_risk_metrics(
    df: pd.DataFrame,
    qids: Sequence[str],
    k_threshold: int,
    sample_size_pct: float = 100.0,
    population_multiplier: Optional[float] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> RiskMetrics:
    """
    Score `df` under the prosecutor, journalist and marketer models.

    An empty dataset or an empty QID list scores zero for every model.
    """
    if k_threshold < 1:
        raise InvalidConfigurationError(
            "k_threshold must be at least 1", parameter="k_threshold", value=k_threshold
        )
    if not 0 < sample_size_pct <= 100:
        raise InvalidConfigurationError(
            "sample_size_pct must lie in (0, 100]",
            parameter="sample_size_pct",
            value=sample_size_pct,
        )
    if population_multiplier is not None and population_multiplier <= 0:
        raise InvalidConfigurationError(
            "population_multiplier must be positive",
            parameter="population_multiplier",
            value=population_multiplier,
        )

    classes = build_equivalence_classes(df, qids) if qids else []
    rc = config.risk

    pros = prosecutor_risk(classes, k_threshold, rc)
    jour = journalist_risk(classes, k_threshold, population_multiplier, rc)
    mark = marketer_risk(classes, k_threshold, rc)

    for ec, r in zip(classes, pros.per_class):
        ec.risk_score = r

    records = sum(ec.size for ec in classes)
    unique = pros.unique_classes
    small_groups = sum(1 for ec in classes if 1 < ec.size < k_threshold)
    violating = [ec for ec in classes if ec.size < k_threshold]

    recommendations = generate_recommendations(
        prosecutor_risk=pros.overall,
        journalist_risk=jour.overall,
        marketer_risk=mark.overall,
        unique_records=unique,
        total_records=records,
        violating_classes=len(violating),
        k_threshold=k_threshold,
        config=config.recommendations,
    )

    logger.debug(
        "Risk over %d records / %d classes: prosecutor=%.4f journalist=%.4f marketer=%.4f",
        records, len(classes), pros.overall, jour.overall, mark.overall,
    )

    return RiskMetrics(
        prosecutor=pros,
        journalist=jour,
        marketer=mark,
        equivalence_classes=classes,
        records=records,
        unique_records=unique,
        small_groups=small_groups,
        violations=len(violating),
        violating_records=sum(ec.size for ec in violating),
        histogram=class_size_histogram(classes),
        sampled_size=int(len(df) * sample_size_pct // 100),
        k_threshold=k_threshold,
        recommendations=recommendations,
    )


class RiskAssessor:
    """
    Re-identification summary based on equivalence classes
    defined over quasi-identifiers (QIDs).
    """

    def __init__(self, df: pd.DataFrame, qids: List[str]) -> None:
        if not qids:
            raise InvalidConfigurationError(
                "RiskAssessor requires at least one QID.",
                parameter="quasi_identifiers",
                value=qids,
            )
        self.df = df
        self.qids = list(qids)

    def equivalence_classes(self) -> List[EquivalenceClass]:
        return build_equivalence_classes(self.df, self.qids)

    def equivalence_class_sizes(self) -> pd.Series:
        """
        Size of each equivalence class defined by QIDs, indexed by class key.
        """
        classes = self.equivalence_classes()
        return pd.Series(
            [ec.size for ec in classes],
            index=[ec.key for ec in classes],
            dtype="int64",
        )

    def uniqueness_ratio(self) -> float:
        """
        Fraction of records that are unique on QIDs.
        """
        if len(self.df) == 0:
            return 0.0
        sizes = self.equivalence_class_sizes()
        return float((sizes == 1).sum() / len(self.df))

    def risk_report(self) -> Dict[str, Any]:
        """
        Key risk metrics for reporting:
        - number of records
        - number of equivalence classes
        - uniqueness ratio
        - average / min / max equivalence class sizes
        - prosecutor risk
        """
        sizes = self.equivalence_class_sizes()
        if sizes.empty:
            return {
                "records": int(len(self.df)),
                "num_equivalence_classes": 0,
                "uniqueness_ratio": 0.0,
                "avg_equiv_class_size": 0.0,
                "min_equiv_class_size": 0,
                "max_equiv_class_size": 0,
                "prosecutor_risk": 0.0,
            }
        return {
            "records": int(len(self.df)),
            "num_equivalence_classes": int(len(sizes)),
            "uniqueness_ratio": float((sizes == 1).sum() / len(self.df)),
            "avg_equiv_class_size": float(sizes.mean()),
            "min_equiv_class_size": int(sizes.min()),
            "max_equiv_class_size": int(sizes.max()),
            "prosecutor_risk": float(len(sizes) / len(self.df)),
        }
