# microanon/core/dp.py

import logging
import math
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import DEFAULT_CONFIG, EngineConfig
from .dataset import numeric_columns, numeric_mask
from .errors import InvalidConfigurationError, UnknownColumnError
from .results import AnonymizationResult

logger = logging.getLogger(__name__)

MECHANISMS = ("laplace", "gaussian")

# keeps ln(1 - 2|u|) finite when the uniform draw lands on the edge
_U_EDGE = 0.5 - 1e-12


def check_epsilon(epsilon: float) -> float:
    if isinstance(epsilon, (str, bytes, bool)):
        raise InvalidConfigurationError("epsilon must be a number", parameter="epsilon", value=epsilon)
    try:
        value = float(epsilon)
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(
            "epsilon must be a number", parameter="epsilon", value=epsilon
        ) from exc
    if math.isnan(value) or value <= 0:
        raise InvalidConfigurationError(
            "epsilon must be greater than 0", parameter="epsilon", value=epsilon
        )
    return value


def laplace_noise(scale: float, size: int, rng: np.random.Generator) -> np.ndarray:
    """
    Laplace(0, scale) samples by inverse CDF:
    u ~ U(-1/2, 1/2), x = -scale * sign(u) * ln(1 - 2|u|).
    """
    u = rng.random(size) - 0.5
    if scale == 0:
        return np.zeros(size)
    mag = np.minimum(np.abs(u), _U_EDGE)
    return -scale * np.sign(u) * np.log(1.0 - 2.0 * mag)


def gaussian_sigma(epsilon: float, delta: float, sensitivity: float = 1.0) -> float:
    """Classic (epsilon, delta) calibration: sqrt(2 ln(1.25 / delta)) * sensitivity / epsilon."""
    return math.sqrt(2.0 * math.log(1.25 / delta)) * sensitivity / epsilon


def information_loss(epsilon: float, coefficient: float = DEFAULT_CONFIG.transform.dp_loss_coefficient) -> float:
    """
    Reported loss for a noise pass, 1 - exp(-coefficient / epsilon).

    Strictly decreasing in epsilon, ~ coefficient / epsilon for large
    epsilon and 0 when epsilon is infinite.
    """
    return 1.0 - math.exp(-coefficient / epsilon)


def _perturb(
    df: pd.DataFrame,
    columns: Sequence[str],
    draw,
) -> pd.DataFrame:
    out = df.copy()
    for col in columns:
        mask = numeric_mask(out[col])
        count = int(mask.sum())
        if count == 0:
            continue
        noisy = out.loc[mask, col].astype(float).to_numpy() + draw(count)
        if count == len(out):
            out[col] = noisy
        else:
            series = out[col].astype(object)
            series.loc[mask] = noisy
            out[col] = series
    return out


def _check_columns(df: pd.DataFrame, columns: Optional[Sequence[str]]) -> List[str]:
    if columns is None:
        return numeric_columns(df)
    columns = list(columns)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise UnknownColumnError(missing, parameter="numeric_columns")
    return columns


def add_laplace_noise(
    df: pd.DataFrame,
    columns: Optional[Sequence[str]],
    epsilon: float,
    rng: Optional[np.random.Generator] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AnonymizationResult:
    """
    Add independent Laplace noise, scale = sensitivity / epsilon, to every
    numeric cell of `columns` (default: all numeric columns).
    Non-numeric cells and other columns are copied unchanged.
    """
    epsilon = check_epsilon(epsilon)
    columns = _check_columns(df, columns)
    rng = rng if rng is not None else np.random.default_rng()
    scale = config.transform.dp_sensitivity / epsilon

    out = _perturb(df, columns, lambda size: laplace_noise(scale, size, rng))
    loss = information_loss(epsilon, config.transform.dp_loss_coefficient)

    logger.info(
        "Laplace noise (epsilon=%s, scale=%.4g) on %d columns of %d records",
        epsilon, scale, len(columns), len(df),
    )
    return AnonymizationResult(
        technique="differential-privacy",
        processed=out,
        information_loss=loss,
        parameters={"epsilon": epsilon, "mechanism": "laplace", "columns": columns, "scale": scale},
    )


def add_gaussian_noise(
    df: pd.DataFrame,
    columns: Optional[Sequence[str]],
    epsilon: float,
    delta: Optional[float] = None,
    rng: Optional[np.random.Generator] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AnonymizationResult:
    """Gaussian mechanism counterpart of add_laplace_noise."""
    epsilon = check_epsilon(epsilon)
    delta = config.transform.dp_default_delta if delta is None else delta
    if not 0.0 < delta < 1.0:
        raise InvalidConfigurationError("delta must lie in (0, 1)", parameter="delta", value=delta)
    columns = _check_columns(df, columns)
    rng = rng if rng is not None else np.random.default_rng()
    sigma = gaussian_sigma(epsilon, delta, config.transform.dp_sensitivity)

    out = _perturb(df, columns, lambda size: rng.normal(0.0, sigma, size) if sigma > 0 else np.zeros(size))
    loss = information_loss(epsilon, config.transform.dp_loss_coefficient)

    logger.info(
        "Gaussian noise (epsilon=%s, delta=%s, sigma=%.4g) on %d columns of %d records",
        epsilon, delta, sigma, len(columns), len(df),
    )
    return AnonymizationResult(
        technique="differential-privacy",
        processed=out,
        information_loss=loss,
        parameters={
            "epsilon": epsilon,
            "delta": delta,
            "mechanism": "gaussian",
            "columns": columns,
            "sigma": sigma,
        },
    )
