# -----------------------------------------------------------------------------
# Public surface for seeded splits.
# - partition_dataset: train / validation / test (Partition)
# - kfold_cross_validation: rotating folds + aggregated metrics
# -----------------------------------------------------------------------------
from __future__ import annotations

from .kfold import CrossValidationResult, FoldResult, kfold_cross_validation
from .partition import Partition, partition_dataset

__all__ = [
    "CrossValidationResult",
    "FoldResult",
    "Partition",
    "kfold_cross_validation",
    "partition_dataset",
]
