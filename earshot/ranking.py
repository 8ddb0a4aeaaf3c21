"""Top-K ranking of score vectors."""

from __future__ import annotations

from typing import TYPE_CHECKING
import numpy as np
from numpy.typing import ArrayLike

from earshot.core.result import ClassificationResult
from earshot.labels import placeholder_label

if TYPE_CHECKING:
    from earshot.labels import LabelCatalog


def rank(
    scores: ArrayLike,
    k: int,
    catalog: LabelCatalog | None = None,
) -> list[ClassificationResult]:
    """
    Return the `k` highest scoring classes.

    Sorted by score descending; equal scores keep ascending class index.
    k >= number of classes returns every class, k <= 0 returns [].
    """
    if k <= 0:
        return []

    vector = np.asarray(scores, dtype=np.float32).ravel()
    # Stable sort on negated scores keeps index order among ties.
    order = np.argsort(-vector, kind="stable")[:k]

    label = catalog.label if catalog is not None else placeholder_label
    return [
        ClassificationResult(
            label=label(int(i)),
            score=float(vector[i]),
            class_index=int(i),
        )
        for i in order
    ]
