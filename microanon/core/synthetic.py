# microanon/core/synthetic.py

import logging
import math
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import DEFAULT_CONFIG, EngineConfig
from .dataset import is_number
from .errors import InvalidConfigurationError, UnknownColumnError
from .results import AnonymizationResult

logger = logging.getLogger(__name__)


def generate_synthetic(
    df: pd.DataFrame,
    columns: Optional[Sequence[str]] = None,
    target_size_pct: float = 100.0,
    rng: Optional[np.random.Generator] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AnonymizationResult:
    """
    Resample rows with replacement and jitter numeric cells.

    Target size is floor(records * target_size_pct / 100). Every numeric
    cell is multiplied by a factor drawn from [1 - jitter, 1 + jitter);
    other cells are copied from the sampled source row. No fitting step.
    """
    if target_size_pct is None or math.isnan(target_size_pct) or target_size_pct < 0:
        raise InvalidConfigurationError(
            "target_size_pct must be >= 0",
            parameter="target_size_pct",
            value=target_size_pct,
        )
    cols: List[str] = list(df.columns) if columns is None else list(columns)
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise UnknownColumnError(missing, parameter="columns")

    rng = rng if rng is not None else np.random.default_rng()
    jitter = config.transform.synthetic_jitter
    n = len(df)
    target = int(math.floor(n * target_size_pct / 100)) if n else 0

    params = {"target_size_pct": target_size_pct, "columns": cols}
    if target == 0:
        logger.info("Synthetic sample: empty target for %d source records", n)
        return AnonymizationResult(
            technique="synthetic-data",
            processed=pd.DataFrame(columns=cols, dtype=object),
            information_loss=config.transform.synthetic_information_loss,
            parameters=params,
        )

    picks = rng.integers(0, n, size=target)
    factors = 1.0 - jitter + rng.random((target, len(cols))) * 2 * jitter

    source = [df[c].tolist() for c in cols]
    data = {}
    for j, col in enumerate(cols):
        values = source[j]
        out = []
        for i, p in enumerate(picks):
            v = values[p]
            out.append(float(v) * factors[i, j] if is_number(v) else v)
        data[col] = out

    synthetic = pd.DataFrame(data, columns=cols)
    logger.info("Synthetic sample: %d records from %d source records", target, n)

    return AnonymizationResult(
        technique="synthetic-data",
        processed=synthetic,
        information_loss=config.transform.synthetic_information_loss,
        parameters=params,
    )
