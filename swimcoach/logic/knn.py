from __future__ import annotations

import json
from typing import Dict, List, Optional, Sequence

import numpy as np
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from swimcoach.utils.structures import Prediction

VOTE_EPSILON = 1e-4

_STATE_ADAPTER = TypeAdapter(Dict[str, List[List[float]]])


class ClassifierImportError(ValueError):
    pass


class KNNClassifier:
    """Incremental k-nearest-neighbour classifier with distance-weighted voting.

    Samples are kept per label in insertion order. Each of the ``k`` nearest
    samples votes with weight ``1 / (distance + 1e-4)``; the confidence is the
    winning label's share of the top-k weight.
    """

    def __init__(self, k: int = 5, feature_size: Optional[int] = None) -> None:
        if k < 1:
            raise ValueError(f"k must be positive, got {k}")
        self.k = k
        # None accepts any length, fixed by the first stored sample
        self.feature_size = feature_size
        self._samples: Dict[str, List[np.ndarray]] = {}

    @property
    def dimension(self) -> Optional[int]:
        if self.feature_size is not None:
            return self.feature_size
        for vectors in self._samples.values():
            if vectors:
                return int(vectors[0].shape[0])
        return None

    @property
    def total_samples(self) -> int:
        return sum(len(vectors) for vectors in self._samples.values())

    @property
    def num_classes(self) -> int:
        return sum(1 for vectors in self._samples.values() if vectors)

    def sample_counts(self) -> Dict[str, int]:
        return {label: len(vectors) for label, vectors in self._samples.items()}

    def add_sample(self, label: str, features: Sequence[float]) -> None:
        if not label:
            raise ValueError("Sample label must be a non-empty string")
        vector = np.array(features, dtype=np.float64).reshape(-1)
        expected = self.dimension
        if expected is not None and vector.shape[0] != expected:
            raise ValueError(f"Feature length {vector.shape[0]} does not match stored length {expected}")
        self._samples.setdefault(label, []).append(vector)

    def predict(self, features: Sequence[float]) -> Prediction:
        if self.total_samples == 0 or self.num_classes < 2:
            return Prediction.empty()
        query = np.asarray(features, dtype=np.float64).reshape(-1)
        if query.shape[0] != self.dimension:
            raise ValueError(f"Query length {query.shape[0]} does not match stored length {self.dimension}")

        sample_labels: List[str] = []
        stacked: List[np.ndarray] = []
        for label, vectors in self._samples.items():
            for vector in vectors:
                sample_labels.append(label)
                stacked.append(vector)
        distances = np.linalg.norm(np.vstack(stacked) - query, axis=1)
        nearest = np.argsort(distances, kind="stable")[: self.k]

        votes: Dict[str, float] = {}
        for idx in nearest:
            label = sample_labels[idx]
            votes[label] = votes.get(label, 0.0) + 1.0 / (float(distances[idx]) + VOTE_EPSILON)

        total = sum(votes.values())
        best_label = min(votes, key=lambda name: (-votes[name], name))
        return Prediction(label=best_label, confidence=float(votes[best_label] / total))

    def clear(self) -> None:
        self._samples = {}

    def export(self) -> str:
        return json.dumps({label: [vector.tolist() for vector in vectors] for label, vectors in self._samples.items()})

    def import_state(self, blob: str | bytes) -> None:
        """Replace all samples with a previously exported state.

        A blob that does not parse, whose vectors have inconsistent lengths or
        whose vectors do not match ``feature_size`` raises
        :class:`ClassifierImportError` and leaves the current samples intact.
        """
        try:
            data = _STATE_ADAPTER.validate_json(blob)
        except ValidationError as exc:
            raise ClassifierImportError(f"Invalid classifier state: {exc.error_count()} error(s)") from exc
        lengths = {len(vector) for vectors in data.values() for vector in vectors}
        if len(lengths) > 1:
            raise ClassifierImportError(f"Inconsistent feature lengths in classifier state: {sorted(lengths)}")
        if self.feature_size is not None and lengths and lengths != {self.feature_size}:
            raise ClassifierImportError(
                f"Classifier state holds {lengths.pop()}-value vectors, expected {self.feature_size}"
            )
        if any(not label for label in data):
            raise ClassifierImportError("Classifier state contains an empty label")
        self._samples = {
            label: [np.array(vector, dtype=np.float64) for vector in vectors] for label, vectors in data.items()
        }
        logger.debug("Imported classifier state: {}", self.sample_counts())

