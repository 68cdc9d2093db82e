"""Bagged randomized decision-tree regressor.

Each tree is grown on a bootstrap resample of the training rows. Splits use
a uniformly random feature and the mean of that feature over the node's
samples as the threshold, with no impurity search. Predictions average the leaf
values reached in every tree.

Reproducibility: one numpy Generator is created from ``seed`` in __init__
and never re-seeded. Draw order per train() call is fixed: for each tree,
N bootstrap indices, then one feature index per internal-node attempt while
growing depth-first (node, left subtree, right subtree).

Usage:
    from quantsim.prediction.forest import EnsembleRegressor

    forest = EnsembleRegressor(num_trees=100, max_depth=10, model_dir="models")
    forest.train(features, labels)
    price = forest.predict(vector)
    forest.save()
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import joblib
import numpy as np
from sklearn.metrics import mean_squared_error

from quantsim.common.logging import get_logger
from quantsim.common.metrics import MODEL_TRAINING_DURATION_SECONDS
from quantsim.prediction.exceptions import (
    InvalidTrainingDataError,
    ModelNotTrainedError,
    ModelPersistenceError,
)

logger = get_logger("MODEL")

MODEL_FILENAME = "ensemble_forest.joblib"
METADATA_FILENAME = "ensemble_forest_meta.json"
MODEL_FORMAT_VERSION = 1

DEFAULT_NUM_TREES = 100
DEFAULT_MAX_DEPTH = 10
DEFAULT_SEED = 42

# Nodes with this many samples or fewer become leaves.
MIN_SAMPLES_SPLIT = 5


# ─── Tree Structure ───


@dataclass(frozen=True)
class LeafNode:
    """Terminal node holding the mean label of its samples."""

    value: float


@dataclass(frozen=True)
class SplitNode:
    """Internal node: rows with features[feature_index] <= threshold go left."""

    feature_index: int
    threshold: float
    left: LeafNode | SplitNode
    right: LeafNode | SplitNode


@dataclass(frozen=True)
class DecisionTree:
    """A single immutable regression tree."""

    root: LeafNode | SplitNode

    def predict(self, features: np.ndarray) -> float:
        """Descend from the root to a leaf and return its value."""
        node = self.root
        while isinstance(node, SplitNode):
            node = node.left if features[node.feature_index] <= node.threshold else node.right
        return node.value

    def count_feature_usage(self, counts: np.ndarray) -> None:
        """Increment counts[i] once for every SplitNode that splits on feature i."""
        stack: list[LeafNode | SplitNode] = [self.root]
        while stack:
            node = stack.pop()
            if isinstance(node, SplitNode):
                if node.feature_index < len(counts):
                    counts[node.feature_index] += 1
                stack.append(node.left)
                stack.append(node.right)

    def depth(self) -> int:
        """Number of split levels on the longest root-to-leaf path."""
        deepest = 0
        stack: list[tuple[LeafNode | SplitNode, int]] = [(self.root, 0)]
        while stack:
            node, level = stack.pop()
            if isinstance(node, SplitNode):
                stack.append((node.left, level + 1))
                stack.append((node.right, level + 1))
            else:
                deepest = max(deepest, level)
        return deepest


def build_tree(
    features: np.ndarray,
    labels: np.ndarray,
    depth: int,
    max_depth: int,
    rng: np.random.Generator,
) -> LeafNode | SplitNode:
    """Grow a (sub)tree over the given samples.

    Args:
        features: Sample matrix, shape (n, num_features).
        labels: Sample targets, shape (n,).
        depth: Depth of the node being built (root = 0).
        max_depth: Depth at which growth stops.
        rng: Shared generator; consumes one draw per split attempt.

    Returns:
        The root node of the grown subtree.
    """
    if depth >= max_depth or len(labels) <= MIN_SAMPLES_SPLIT:
        return LeafNode(float(labels.mean()))

    feature_index = int(rng.integers(0, features.shape[1]))
    column = features[:, feature_index]
    threshold = float(column.mean())

    left_mask = column <= threshold
    if left_mask.all() or not left_mask.any():
        return LeafNode(float(labels.mean()))

    right_mask = ~left_mask
    left = build_tree(features[left_mask], labels[left_mask], depth + 1, max_depth, rng)
    right = build_tree(features[right_mask], labels[right_mask], depth + 1, max_depth, rng)
    return SplitNode(feature_index=feature_index, threshold=threshold, left=left, right=right)


# ─── Ensemble ───


class EnsembleRegressor:
    """Manages the bagged tree ensemble lifecycle: train, predict, save, load."""

    def __init__(
        self,
        num_trees: int = DEFAULT_NUM_TREES,
        max_depth: int = DEFAULT_MAX_DEPTH,
        seed: int = DEFAULT_SEED,
        feature_names: list[str] | None = None,
        model_dir: str = "models",
    ) -> None:
        self.num_trees = num_trees
        self.max_depth = max_depth
        self.seed = seed
        self.feature_names = list(feature_names) if feature_names else None
        self._rng = np.random.default_rng(seed)
        self._trees: list[DecisionTree] = []
        self._num_features: int | None = None
        self._feature_importance: dict[str, float] = {}
        self._metadata: dict | None = None
        self._model_dir = Path(model_dir)

    @property
    def model_path(self) -> Path:
        """Path to the serialized tree collection."""
        return self._model_dir / MODEL_FILENAME

    @property
    def metadata_path(self) -> Path:
        """Path to the model metadata file."""
        return self._model_dir / METADATA_FILENAME

    @property
    def trees(self) -> tuple[DecisionTree, ...]:
        """Trained trees (read-only view)."""
        return tuple(self._trees)

    @property
    def metadata(self) -> dict | None:
        """Model training metadata."""
        return self._metadata

    def is_available(self) -> bool:
        """Check if the ensemble is trained or loaded and ready for predictions."""
        return bool(self._trees)

    def reset(self) -> None:
        """Drop the trained trees; the random stream continues where it left off."""
        self._trees = []
        self._num_features = None
        self._feature_importance = {}
        self._metadata = None

    def set_feature_names(self, feature_names: list[str]) -> None:
        """Name the feature columns used in the importance mapping."""
        self.feature_names = list(feature_names)

    def get_parameters(self) -> dict:
        """Current hyperparameters."""
        return {"num_trees": self.num_trees, "max_depth": self.max_depth, "seed": self.seed}

    def set_parameters(self, parameters: dict) -> None:
        """Update hyperparameters; applies to the next train() call.

        Accepts ``num_trees``/``numTrees`` and ``max_depth``/``maxDepth``.
        """
        for key in ("num_trees", "numTrees"):
            if key in parameters:
                self.num_trees = int(parameters[key])
        for key in ("max_depth", "maxDepth"):
            if key in parameters:
                self.max_depth = int(parameters[key])

    def train(self, features, labels) -> dict:
        """Grow ``num_trees`` trees on bootstrap resamples of the data.

        Args:
            features: Training rows, shape (n_samples, num_features).
            labels: Training targets, shape (n_samples,).

        Returns:
            Dict with training metrics (sample_count, train_rmse, ...).

        Raises:
            InvalidTrainingDataError: On empty, mismatched or ragged input.
        """
        x, y = _validate_training_data(features, labels)
        n_samples = len(y)
        start = time.monotonic()

        trees: list[DecisionTree] = []
        for i in range(self.num_trees):
            indices = self._rng.integers(0, n_samples, size=n_samples)
            root = build_tree(x[indices], y[indices], 0, self.max_depth, self._rng)
            trees.append(DecisionTree(root))
            logger.debug(
                "Tree trained",
                extra={"data": {"tree": i + 1, "of": self.num_trees, "depth": trees[-1].depth()}},
            )

        self._trees = trees
        self._num_features = x.shape[1]
        self._feature_importance = self._compute_feature_importance()

        duration = time.monotonic() - start
        MODEL_TRAINING_DURATION_SECONDS.observe(duration)

        train_rmse = float(np.sqrt(mean_squared_error(y, self.predict_batch(x))))
        metrics = {
            "sample_count": n_samples,
            "num_features": self._num_features,
            "num_trees": self.num_trees,
            "max_depth": self.max_depth,
            "seed": self.seed,
            "train_rmse": round(train_rmse, 6),
            "duration_s": round(duration, 4),
            "trained_at": datetime.now(UTC).isoformat(),
            "feature_importance": self._feature_importance,
        }
        self._metadata = metrics

        logger.info(
            "Ensemble regressor trained",
            extra={
                "data": {
                    "num_trees": self.num_trees,
                    "samples": n_samples,
                    "train_rmse": metrics["train_rmse"],
                }
            },
        )
        return metrics

    def predict(self, features) -> float:
        """Predict a value for one feature vector (mean over all trees).

        Raises:
            ModelNotTrainedError: If called before train() or load().
            ValueError: If the vector has the wrong number of features.
        """
        if not self._trees:
            raise ModelNotTrainedError("Ensemble regressor not trained; call train() first")

        vector = np.asarray(features, dtype=np.float64)
        if vector.ndim != 1 or vector.shape[0] != self._num_features:
            got = vector.shape[-1] if vector.ndim else 0
            raise ValueError(f"Expected {self._num_features} features, got {got}")

        total = 0.0
        for tree in self._trees:
            total += tree.predict(vector)
        return total / len(self._trees)

    def predict_batch(self, features) -> np.ndarray:
        """Predict one value per row of a feature matrix."""
        if not self._trees:
            raise ModelNotTrainedError("Ensemble regressor not trained; call train() first")

        matrix = np.asarray(features, dtype=np.float64)
        if matrix.ndim != 2:
            raise ValueError(f"Expected a 2-D feature matrix, got {matrix.ndim} dimension(s)")
        return np.array([self.predict(row) for row in matrix], dtype=np.float64)

    def feature_importance(self) -> dict[str, float]:
        """Normalized split-usage frequency per feature (sums to 1, or empty)."""
        return dict(self._feature_importance)

    def _compute_feature_importance(self) -> dict[str, float]:
        counts = np.zeros(self._num_features, dtype=np.int64)
        for tree in self._trees:
            tree.count_feature_usage(counts)

        total = int(counts.sum())
        if total == 0:
            return {}

        importance: dict[str, float] = {}
        for i, count in enumerate(counts):
            importance[self._feature_name(i)] = float(count) / total
        return importance

    def _feature_name(self, index: int) -> str:
        if self.feature_names is not None and index < len(self.feature_names):
            return self.feature_names[index]
        return f"feature_{index}"

    def save(self, model_dir: str | None = None) -> None:
        """Save the tree collection and metadata to disk.

        Args:
            model_dir: Directory to save into; becomes the model's directory.

        Raises:
            ModelNotTrainedError: If no model is trained/loaded.
            ModelPersistenceError: If the files cannot be written.
        """
        if model_dir is not None:
            self._model_dir = Path(model_dir)
        if not self._trees:
            raise ModelNotTrainedError("No model to save; train or load first")

        payload = {
            "format_version": MODEL_FORMAT_VERSION,
            "trees": self._trees,
            "num_features": self._num_features,
            "feature_names": self.feature_names,
            "feature_importance": self._feature_importance,
            "num_trees": self.num_trees,
            "max_depth": self.max_depth,
        }

        try:
            self._model_dir.mkdir(parents=True, exist_ok=True)
            joblib.dump(payload, self.model_path)
            if self._metadata:
                self.metadata_path.write_text(json.dumps(self._metadata, indent=2))
        except OSError as e:
            logger.error(
                "Failed to save ensemble regressor",
                extra={"data": {"error": str(e), "path": str(self.model_path)}},
            )
            raise ModelPersistenceError(
                "Failed to save model", context={"path": str(self.model_path)}
            ) from e

        logger.info("Ensemble regressor saved", extra={"data": {"path": str(self.model_path)}})

    def load(self, model_dir: str | None = None) -> None:
        """Load a saved tree collection from disk, replacing the current one.

        Raises:
            ModelPersistenceError: If the file is missing, unreadable or not a model.
        """
        if model_dir is not None:
            self._model_dir = Path(model_dir)
        if not self.model_path.exists():
            raise ModelPersistenceError(
                "No ensemble model file found", context={"path": str(self.model_path)}
            )

        try:
            payload = joblib.load(self.model_path)
        except Exception as e:
            logger.error(
                "Failed to load ensemble regressor",
                extra={"data": {"error": str(e), "path": str(self.model_path)}},
            )
            raise ModelPersistenceError(
                "Failed to load model", context={"path": str(self.model_path)}
            ) from e

        if (
            not isinstance(payload, dict)
            or payload.get("format_version") != MODEL_FORMAT_VERSION
            or not payload.get("trees")
        ):
            raise ModelPersistenceError(
                "Model file does not contain a trained ensemble",
                context={"path": str(self.model_path)},
            )

        self._trees = list(payload["trees"])
        self._num_features = payload["num_features"]
        self.feature_names = payload.get("feature_names")
        self._feature_importance = dict(payload.get("feature_importance") or {})
        self.num_trees = payload.get("num_trees", len(self._trees))
        self.max_depth = payload.get("max_depth", self.max_depth)

        if self.metadata_path.exists():
            try:
                self._metadata = json.loads(self.metadata_path.read_text())
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(
                    "Ignoring unreadable model metadata",
                    extra={"data": {"error": str(e), "path": str(self.metadata_path)}},
                )

        logger.info("Ensemble regressor loaded", extra={"data": {"path": str(self.model_path)}})


def _validate_training_data(features, labels) -> tuple[np.ndarray, np.ndarray]:
    """Coerce training input to float arrays and check shapes."""
    try:
        x = np.asarray(features, dtype=np.float64)
        y = np.asarray(labels, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidTrainingDataError(
            "Features and labels must be numeric and rectangular", context={"error": str(e)}
        ) from e

    if y.ndim != 1:
        raise InvalidTrainingDataError("Labels must be one-dimensional", context={"shape": y.shape})
    if y.shape[0] == 0:
        raise InvalidTrainingDataError("Cannot train on an empty dataset")
    if x.ndim != 2:
        raise InvalidTrainingDataError(
            "Features must be a 2-D matrix", context={"shape": x.shape}
        )
    if x.shape[0] != y.shape[0]:
        raise InvalidTrainingDataError(
            "Features and labels must have the same length",
            context={"features": x.shape[0], "labels": y.shape[0]},
        )
    if x.shape[1] == 0:
        raise InvalidTrainingDataError("Feature rows are empty")
    return x, y
