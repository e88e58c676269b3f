# microanon/core/config.py
"""
Engine constants.

Risk-level and utility-level boundaries are part of the observable
contract: reports produced with the defaults must line up with earlier
reports, so change them only through an explicit EngineConfig.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping

from .errors import InvalidConfigurationError


@dataclass(frozen=True)
class RiskModelConfig:
    # per-class scaling of the prosecutor risk
    journalist_factor: float = 0.4
    marketer_factor: float = 1.3

    # population estimate = max(records * multiplier, floor)
    population_multiplier: float = 50.0
    population_floor: int = 100_000

    # risk level boundaries (inclusive lower bounds)
    high_risk_threshold: float = 0.4
    medium_risk_threshold: float = 0.2

    # a journalist class counts as "at risk" above this
    journalist_at_risk_threshold: float = 0.2
    # a marketer class yields matches above this
    marketer_match_threshold: float = 0.3


@dataclass(frozen=True)
class RecommendationConfig:
    critical_threshold: float = 0.4
    moderate_threshold: float = 0.2
    journalist_alert_threshold: float = 0.3
    marketer_alert_threshold: float = 0.25
    unique_ratio_threshold: float = 0.1


@dataclass(frozen=True)
class TransformConfig:
    generalisation_unit: int = 10
    wildcard: str = "*"

    dp_sensitivity: float = 1.0
    # information loss = 1 - exp(-coefficient / epsilon)
    dp_loss_coefficient: float = 0.1
    dp_default_delta: float = 1e-5

    synthetic_jitter: float = 0.1
    synthetic_information_loss: float = 0.2


@dataclass(frozen=True)
class UtilityConfig:
    excellent_threshold: float = 0.9
    good_threshold: float = 0.75
    fair_threshold: float = 0.5
    histogram_bins: int = 10


@dataclass(frozen=True)
class EngineConfig:
    risk: RiskModelConfig = field(default_factory=RiskModelConfig)
    recommendations: RecommendationConfig = field(default_factory=RecommendationConfig)
    transform: TransformConfig = field(default_factory=TransformConfig)
    utility: UtilityConfig = field(default_factory=UtilityConfig)

    def validate(self) -> "EngineConfig":
        r = self.risk
        if not 0.4 <= r.journalist_factor < 1.0:
            raise InvalidConfigurationError(
                "journalist_factor must lie in [0.4, 1.0)",
                parameter="risk.journalist_factor",
                value=r.journalist_factor,
            )
        if r.marketer_factor <= 1.0:
            raise InvalidConfigurationError(
                "marketer_factor must be greater than 1",
                parameter="risk.marketer_factor",
                value=r.marketer_factor,
            )
        if r.population_multiplier <= 0 or r.population_floor < 0:
            raise InvalidConfigurationError(
                "population estimate parameters must be positive",
                parameter="risk.population_multiplier",
                value=r.population_multiplier,
            )
        if not 0 <= r.medium_risk_threshold <= r.high_risk_threshold <= 1:
            raise InvalidConfigurationError(
                "risk thresholds must satisfy 0 <= medium <= high <= 1",
                parameter="risk.high_risk_threshold",
                value=(r.medium_risk_threshold, r.high_risk_threshold),
            )

        u = self.utility
        if not 0 <= u.fair_threshold <= u.good_threshold <= u.excellent_threshold <= 1:
            raise InvalidConfigurationError(
                "utility thresholds must satisfy 0 <= fair <= good <= excellent <= 1",
                parameter="utility",
                value=(u.fair_threshold, u.good_threshold, u.excellent_threshold),
            )
        if u.histogram_bins < 1:
            raise InvalidConfigurationError(
                "histogram_bins must be at least 1",
                parameter="utility.histogram_bins",
                value=u.histogram_bins,
            )

        t = self.transform
        if t.generalisation_unit < 1:
            raise InvalidConfigurationError(
                "generalisation_unit must be at least 1",
                parameter="transform.generalisation_unit",
                value=t.generalisation_unit,
            )
        if not 0 <= t.synthetic_jitter < 1:
            raise InvalidConfigurationError(
                "synthetic_jitter must lie in [0, 1)",
                parameter="transform.synthetic_jitter",
                value=t.synthetic_jitter,
            )
        if t.dp_sensitivity <= 0:
            raise InvalidConfigurationError(
                "dp_sensitivity must be positive",
                parameter="transform.dp_sensitivity",
                value=t.dp_sensitivity,
            )
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """
        Build a config from nested plain dicts, e.g. a parsed JSON file:

            {"risk": {"journalist_factor": 0.5}, "utility": {"histogram_bins": 20}}

        Sections and keys not named here are rejected.
        """
        sections = {f.name: f for f in fields(cls)}
        unknown = set(data) - set(sections)
        if unknown:
            raise InvalidConfigurationError(
                f"Unknown config sections: {sorted(unknown)}",
                parameter="config",
                value=sorted(unknown),
            )

        config = cls()
        for name, values in data.items():
            current = getattr(config, name)
            allowed = {f.name for f in fields(current)}
            bad = set(values) - allowed
            if bad:
                raise InvalidConfigurationError(
                    f"Unknown keys in '{name}': {sorted(bad)}",
                    parameter=name,
                    value=sorted(bad),
                )
            config = replace(config, **{name: replace(current, **dict(values))})
        return config.validate()

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            f.name: {g.name: getattr(getattr(self, f.name), g.name) for g in fields(getattr(self, f.name))}
            for f in fields(self)
        }


DEFAULT_CONFIG = EngineConfig()
