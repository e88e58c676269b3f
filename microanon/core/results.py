# microanon/core/results.py

from dataclasses import dataclass, field
from typing import Any, Dict, List

import pandas as pd

from .dataset import to_records


@dataclass(frozen=True)
class AnonymizationResult:
    """
    Transformed dataset plus the metrics and parameters that produced it.

    `processed` is a fresh frame; nothing here aliases the input.
    """

    technique: str
    processed: pd.DataFrame
    information_loss: float
    suppressed_count: int = 0
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def processed_records(self) -> List[Dict[str, Any]]:
        return to_records(self.processed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "technique": self.technique,
            "processedRecords": self.processed_records,
            "suppressedCount": self.suppressed_count,
            "informationLoss": self.information_loss,
            "parameters": dict(self.parameters),
        }


@dataclass(frozen=True)
class KAnonymityResult(AnonymizationResult):
    generalized_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["generalizedCount"] = self.generalized_count
        return out
