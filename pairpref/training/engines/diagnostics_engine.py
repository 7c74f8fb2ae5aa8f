# pairpref/training/engines/diagnostics_engine.py
"""
Feature diagnostics over a batch of choice records.

- feature stats      : observed min / max / span per feature (A and B points)
- correlation        : Pearson between per-record delta vectors, redundancy flags
- permutation        : accuracy drop when one feature's (A, B) pair is shuffled
- tipping points     : change in one feature alone that flips a clear decision
- coverage           : coarse 2-D grid over two features, empty cells = blind spots
- uncertainty        : per-record margin + ensemble disagreement
- inconsistencies    : leave-one-out mispredictions
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from pairpref.domain.features import FEATURE_KEYS, ChoiceRecord
from pairpref.training.engines.bootstrap_engine import ensemble_disagreement
from pairpref.training.engines.model_train_engine import AdamPairwiseTrainEngine
from pairpref.training.engines.scoring import accuracy, predict, score_margin
from pairpref.training.engines.train_result import BestParams, EnsembleModel

# margin histogram bucket upper bounds; last bucket is open
MARGIN_BUCKETS: Tuple[float, ...] = (0.1, 0.5, 1.0, 2.0)


# ============================================================
# Feature stats
# ============================================================
@dataclass(frozen=True)
class FeatureStats:
    min: float
    max: float
    span: float
    mean: float

    def to_dict(self) -> Dict[str, float]:
        return {"min": self.min, "max": self.max, "span": self.span, "mean": self.mean}


def _guard_span(lo: float, hi: float) -> float:
    span = hi - lo
    return span if span > 0 else 1.0


def feature_stats(records: Sequence[ChoiceRecord]) -> Dict[str, FeatureStats]:
    """Zero span is reported as 1 so downstream divisions stay finite."""
    out: Dict[str, FeatureStats] = {}
    for f in FEATURE_KEYS:
        vals = [r.feat_a[f] for r in records] + [r.feat_b[f] for r in records]
        if not vals:
            out[f] = FeatureStats(0.0, 0.0, 1.0, 0.0)
            continue
        lo, hi = min(vals), max(vals)
        out[f] = FeatureStats(lo, hi, _guard_span(lo, hi), sum(vals) / len(vals))
    return out


# ============================================================
# Correlation / redundancy
# ============================================================
@dataclass(frozen=True)
class RedundantPair:
    first: str
    second: str
    corr: float

    def describe(self) -> str:
        return f"{self.first} <-> {self.second} ({self.corr:+.2f})"


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    n = min(len(x), len(y))
    if n == 0:
        return 0.0
    mx = sum(x[:n]) / n
    my = sum(y[:n]) / n
    num = den_x = den_y = 0.0
    for i in range(n):
        dx = x[i] - mx
        dy = y[i] - my
        num += dx * dy
        den_x += dx * dx
        den_y += dy * dy
    if den_x == 0 or den_y == 0:
        return 0.0
    return num / math.sqrt(den_x * den_y)


def delta_vectors(records: Sequence[ChoiceRecord]) -> Dict[str, List[float]]:
    return {f: [r.feat_a[f] - r.feat_b[f] for r in records] for f in FEATURE_KEYS}


def correlation_matrix(records: Sequence[ChoiceRecord]) -> Dict[str, Dict[str, float]]:
    vectors = delta_vectors(records)
    matrix: Dict[str, Dict[str, float]] = {f: {} for f in FEATURE_KEYS}
    for i, f1 in enumerate(FEATURE_KEYS):
        for f2 in FEATURE_KEYS[i + 1:]:
            c = pearson(vectors[f1], vectors[f2])
            matrix[f1][f2] = c
            matrix[f2][f1] = c
    return matrix


def redundant_pairs(
    matrix: Mapping[str, Mapping[str, float]],
    threshold: float = 0.85,
) -> List[RedundantPair]:
    out: List[RedundantPair] = []
    for i, f1 in enumerate(FEATURE_KEYS):
        for f2 in FEATURE_KEYS[i + 1:]:
            c = matrix.get(f1, {}).get(f2, 0.0)
            if abs(c) > threshold:
                out.append(RedundantPair(f1, f2, c))
    return out


# ============================================================
# Permutation importance
# ============================================================
def permute_feature(
    records: Sequence[ChoiceRecord],
    feature: str,
    rng: random.Random,
) -> List[ChoiceRecord]:
    """
    Shuffle the (A, B) value pair of one feature across records.
    Every other feature keeps its original record and A/B pairing.
    """
    pairs = [(r.feat_a[feature], r.feat_b[feature]) for r in records]
    rng.shuffle(pairs)
    return [
        ChoiceRecord(
            feat_a=r.feat_a.replace(**{feature: a}),
            feat_b=r.feat_b.replace(**{feature: b}),
            choice=r.choice,
            mode=r.mode,
        )
        for r, (a, b) in zip(records, pairs)
    ]


def permutation_importance(
    weights: Mapping[str, float],
    records: Sequence[ChoiceRecord],
    rng: random.Random,
) -> Tuple[float, Dict[str, float]]:
    """Returns (baseline_accuracy, {feature: baseline - permuted_accuracy})."""
    baseline = accuracy(weights, records)
    importance: Dict[str, float] = {}
    for f in FEATURE_KEYS:
        importance[f] = baseline - accuracy(weights, permute_feature(records, f, rng))
    return baseline, importance


# ============================================================
# Tipping points
# ============================================================
@dataclass(frozen=True)
class TippingPoint:
    weight: float
    delta_needed: Optional[float]

    @property
    def irrelevant(self) -> bool:
        return self.delta_needed is None

    def describe(self) -> str:
        if self.delta_needed is None:
            return "irrelevant (weight ~ 0)"
        return f"±{self.delta_needed:.2f}"


def tipping_points(
    weights: Mapping[str, float],
    margin: float = 2.0,
    irrelevant_below: float = 0.001,
) -> Dict[str, TippingPoint]:
    """deltaNeeded = margin / |w|: single-feature change that flips a typical clear decision."""
    out: Dict[str, TippingPoint] = {}
    for f in FEATURE_KEYS:
        w = weights.get(f, 0.0)
        if abs(w) < irrelevant_below:
            out[f] = TippingPoint(weight=w, delta_needed=None)
        else:
            out[f] = TippingPoint(weight=w, delta_needed=margin / abs(w))
    return out


# ============================================================
# Coverage / blind spots
# ============================================================
@dataclass(frozen=True)
class CoverageCell:
    ix: int
    iy: int
    x_range: Tuple[float, float]
    y_range: Tuple[float, float]
    count: int


@dataclass(frozen=True)
class CoverageGrid:
    feature_x: str
    feature_y: str
    cells: Tuple[CoverageCell, ...]
    points_in_box: int

    @property
    def name(self) -> str:
        return f"{self.feature_x}_vs_{self.feature_y}"

    @property
    def total(self) -> int:
        return sum(c.count for c in self.cells)

    def blind_spots(self) -> List[CoverageCell]:
        return [c for c in self.cells if c.count == 0]

    def describe_blind_spot(self, cell: CoverageCell) -> str:
        return (
            f"{self.name}: {self.feature_x} [{cell.x_range[0]:.1f} - {cell.x_range[1]:.1f}] / "
            f"{self.feature_y} [{cell.y_range[0]:.1f} - {cell.y_range[1]:.1f}] (0 points)"
        )


def _box(s: FeatureStats) -> Tuple[float, float]:
    # 上界直接用观测 max，避免 min + span 的浮点误差把最大点挤出 box
    return s.min, (s.max if s.max > s.min else s.min + s.span)


def _cell_index(v: float, lo: float, hi: float, cells: int) -> Optional[int]:
    if v < lo or v > hi:
        return None
    idx = int((v - lo) / (hi - lo) * cells)
    return min(max(idx, 0), cells - 1)


def coverage_grid(
    records: Sequence[ChoiceRecord],
    feature_x: str,
    feature_y: str,
    cells: int = 3,
    stats: Optional[Mapping[str, FeatureStats]] = None,
) -> CoverageGrid:
    """
    cells × cells grid over the observed min–max box of two features.

    Each A point and each B point lands in exactly one cell (half-open
    cells, the last one closed), so sum(counts) == points inside the box.
    """
    stats = stats if stats is not None else feature_stats(records)
    x_min, x_max = _box(stats[feature_x])
    y_min, y_max = _box(stats[feature_y])

    counts = [[0] * cells for _ in range(cells)]
    in_box = 0
    for r in records:
        for feat in (r.feat_a, r.feat_b):
            ix = _cell_index(feat[feature_x], x_min, x_max, cells)
            iy = _cell_index(feat[feature_y], y_min, y_max, cells)
            if ix is None or iy is None:
                continue
            counts[ix][iy] += 1
            in_box += 1

    step_x = (x_max - x_min) / cells
    step_y = (y_max - y_min) / cells
    out: List[CoverageCell] = []
    for ix in range(cells):
        for iy in range(cells):
            x_lo = x_min + ix * step_x
            y_lo = y_min + iy * step_y
            out.append(
                CoverageCell(
                    ix=ix,
                    iy=iy,
                    x_range=(x_lo, x_lo + step_x),
                    y_range=(y_lo, y_lo + step_y),
                    count=counts[ix][iy],
                )
            )

    return CoverageGrid(feature_x, feature_y, tuple(out), in_box)


# ============================================================
# Uncertainty
# ============================================================
@dataclass(frozen=True)
class CriticalSample:
    index: int
    margin: float
    disagreement: float
    reason: str
    mode: Optional[str] = None


@dataclass
class UncertaintyReport:
    mean_margin: float
    margin_histogram: List[int]
    disagreement_count: int
    uncertainty_ratio: float
    dataset_health: float
    critical_samples: List[CriticalSample] = field(default_factory=list)


def margin_bucket(margin: float) -> int:
    for i, upper in enumerate(MARGIN_BUCKETS):
        if margin < upper:
            return i
    return len(MARGIN_BUCKETS)


def analyze_uncertainty(
    records: Sequence[ChoiceRecord],
    ensemble: Sequence[EnsembleModel],
    reference_weights: Mapping[str, float],
    *,
    margin_threshold: float = 0.15,
    disagreement_threshold: float = 0.3,
    critical_disagreement: float = 0.4,
    critical_limit: int = 10,
) -> UncertaintyReport:
    """
    A record counts as disagreed when ensemble disagreement > disagreement_threshold;
    it is critical when its margin < margin_threshold or disagreement > critical_disagreement.
    """
    histogram = [0] * (len(MARGIN_BUCKETS) + 1)
    margins: List[float] = []
    critical: List[CriticalSample] = []
    disagreements = 0

    for idx, r in enumerate(records):
        margin = abs(score_margin(reference_weights, r.feat_a, r.feat_b))
        margins.append(margin)
        histogram[margin_bucket(margin)] += 1

        d = ensemble_disagreement(ensemble, r.feat_a, r.feat_b)
        if d > disagreement_threshold:
            disagreements += 1

        if margin < margin_threshold or d > critical_disagreement:
            reason = "low margin" if margin < margin_threshold else "high disagreement"
            critical.append(CriticalSample(idx, margin, d, reason, r.mode))

    n = len(records)
    return UncertaintyReport(
        mean_margin=sum(margins) / n if n else 0.0,
        margin_histogram=histogram,
        disagreement_count=disagreements,
        uncertainty_ratio=len(critical) / n if n else 0.0,
        dataset_health=1.0 - disagreements / max(1, n),
        critical_samples=critical[:critical_limit],
    )


# ============================================================
# Leave-one-out inconsistencies
# ============================================================
@dataclass(frozen=True)
class Inconsistency:
    index: int
    choice: str
    prediction: str
    mode: Optional[str] = None


def iter_inconsistencies(
    records: Sequence[ChoiceRecord],
    params: BestParams,
    *,
    epochs: int,
    limit: int,
    engine: AdamPairwiseTrainEngine,
) -> Iterator[Tuple[int, Optional[Inconsistency]]]:
    """
    Retrain without record i (i < limit) and check whether the held-out
    choice is predicted. Yields (i, Inconsistency | None) per record.
    """
    for i in range(min(limit, len(records))):
        held_out = records[i]
        train = list(records[:i]) + list(records[i + 1:])
        state = engine.train(train, lr=params.lr, l2=params.l2, epochs=epochs)
        pred = predict(state.weights, held_out.feat_a, held_out.feat_b)
        if pred != held_out.choice:
            yield i, Inconsistency(i, held_out.choice, pred, held_out.mode)
        else:
            yield i, None
