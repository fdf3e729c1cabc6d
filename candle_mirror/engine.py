from typing import List, Sequence, Tuple

import numpy as np

from candle_mirror.models import Candle, Field, LengthMismatchError, SimilarityResult
from candle_mirror.processor import extract_features, feature_values, normalize_windows, slice_match_window

TOP_K = 100

# --- DISTANCE PRIMITIVES ---

def _row_distances(matrix: np.array, target: np.array) -> np.array:
    # Dist = sqrt(sum((a - b)^2))
    return np.linalg.norm(matrix - target, axis=1)


def _row_cosines(matrix: np.array, target: np.array) -> np.array:
    dots = matrix @ target
    magnitudes = np.linalg.norm(matrix, axis=1) * np.linalg.norm(target)

    # A zero-magnitude sequence has no direction: similarity 0 instead of NaN
    cosines = np.zeros_like(dots)
    np.divide(dots, magnitudes, out=cosines, where=magnitudes != 0)
    return cosines


def _pair(sequence_a, sequence_b) -> Tuple[np.array, np.array]:
    a = feature_values(sequence_a)
    b = feature_values(sequence_b)
    if len(a) != len(b):
        raise LengthMismatchError(len(a), len(b))
    return a, b


def euclidean_distance(sequence_a, sequence_b) -> float:
    a, b = _pair(sequence_a, sequence_b)
    return float(_row_distances(a.reshape(1, -1), b)[0])


def cosine_similarity(sequence_a, sequence_b) -> float:
    a, b = _pair(sequence_a, sequence_b)
    return float(_row_cosines(a.reshape(1, -1), b)[0])

# --- RANKING ---

def rank_windows(window_features: Sequence, query_features: Sequence, top_k: int = TOP_K) -> List[SimilarityResult]:
    """
    Scores every (window_id, features) pair against the query features.

    Results are sorted by Euclidean distance (stable, so equal distances keep
    window order) and cut to `top_k`.
    """
    if top_k < 0:
        raise ValueError(f"top_k must be >= 0, got {top_k}")
    if len(window_features) == 0 or len(query_features) == 0:
        return []

    target = feature_values(query_features)
    window_ids = []
    rows = []
    for window_id, features in window_features:
        values = feature_values(features)
        if len(values) != len(target):
            raise LengthMismatchError(len(target), len(values), window_id)
        window_ids.append(window_id)
        rows.append(values)

    matrix = np.vstack(rows)
    distances = _row_distances(matrix, target)
    cosines = _row_cosines(matrix, target)

    order = np.argsort(distances, kind="stable")[:top_k]
    return [
        SimilarityResult(float(distances[idx]), float(cosines[idx]), window_ids[idx])
        for idx in order
    ]


def compress(historical: Sequence[Candle], query: Sequence[Candle], field=Field.HIGH, top_k: int = TOP_K) -> List[SimilarityResult]:
    """Ranks every query-length window of `historical` by shape similarity to `query`."""
    if len(historical) == 0 or len(query) == 0:
        return []

    field = Field.parse(field)
    windows = normalize_windows(historical, len(query), query[0].low)
    window_features = [(w[0].open_time, extract_features(w, field)) for w in windows]
    query_features = extract_features(query, field)
    return rank_windows(window_features, query_features, top_k=top_k)


class PatternMatcher:
    def __init__(self, historical: Sequence[Candle]):
        # Snapshot so later changes to the caller's list don't leak into a search
        self.historical = tuple(historical)

    def find_similar_patterns(self, query: Sequence[Candle], field=Field.HIGH, top_k: int = TOP_K) -> List[SimilarityResult]:
        return compress(self.historical, query, field, top_k=top_k)

    def match_window(self, window_id: int, length: int, future_length: int = None):
        """The matched candles plus what followed them, for charting a result."""
        return slice_match_window(self.historical, window_id, length, future_length)
