from __future__ import annotations

from typing import Dict, Optional, Protocol

from loguru import logger

from swimcoach.logic.knn import ClassifierImportError, KNNClassifier

KEY_PREFIX = "swim_knn_"


class BlobStore(Protocol):
    def save(self, key: str, blob: str) -> None: ...

    def load(self, key: str) -> Optional[str]: ...

    def delete(self, key: str) -> None: ...


class MemoryBlobStore:
    def __init__(self) -> None:
        self._blobs: Dict[str, str] = {}

    def save(self, key: str, blob: str) -> None:
        self._blobs[key] = blob

    def load(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)


def classifier_key(motion_id: int) -> str:
    return f"{KEY_PREFIX}{motion_id}"


def save_classifier(store: BlobStore, motion_id: int, classifier: KNNClassifier) -> None:
    store.save(classifier_key(motion_id), classifier.export())
    logger.debug("Saved classifier for motion {} ({} samples)", motion_id, classifier.total_samples)


def load_classifier(store: BlobStore, motion_id: int, classifier: KNNClassifier) -> bool:
    """Restore a stored classifier state; False when absent or unreadable."""
    blob = store.load(classifier_key(motion_id))
    if blob is None:
        return False
    try:
        classifier.import_state(blob)
    except ClassifierImportError as exc:
        logger.warning("Ignoring stored classifier for motion {}: {}", motion_id, exc)
        return False
    logger.info("Loaded classifier for motion {} with {} samples", motion_id, classifier.total_samples)
    return True


def delete_classifier(store: BlobStore, motion_id: int) -> None:
    store.delete(classifier_key(motion_id))
