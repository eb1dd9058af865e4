"""
Pattern Analyzer

Pure statistics over an arbitrary batch of transactions. Accepts
``Transaction`` objects or loose mappings (including the older layout that
nests ``pattern`` and ``region`` under ``metadata``).

The behavior mix is reported twice: as observed from behavior tags when the
transactions carry them, and as inferred from the type distribution alone by
non-negative least squares over the known behaviors' type vectors.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
from scipy.optimize import nnls

from ..catalog import USER_BEHAVIORS, complexity_of
from ..errors import InvalidSpecError
from ..models import Complexity, PatternAnalysis, PayloadStats, Priority, Transaction, UserBehavior

logger = logging.getLogger(__name__)

DOMINANCE_THRESHOLD = 0.5
COMPLEX_SHARE_THRESHOLD = 0.3
LARGE_PAYLOAD_BYTES = 2000
REGION_CONCENTRATION_THRESHOLD = 0.7
HISTOGRAM_BINS = 10

TransactionLike = Union[Transaction, Mapping[str, Any]]


def analyze_transaction_patterns(
    transactions: Iterable[TransactionLike],
    behaviors: Optional[Union[Mapping[str, UserBehavior], Sequence[UserBehavior]]] = None,
) -> PatternAnalysis:
    """Compute distributions, payload statistics and behavior mixes for a batch."""
    txs = [_coerce(tx, i) for i, tx in enumerate(transactions)]
    if not txs:
        return PatternAnalysis()

    known = _behavior_map(behaviors)
    total = len(txs)

    type_counts = Counter(tx.type for tx in txs)
    region_counts = Counter(tx.region for tx in txs)
    complexity_counts = Counter(tx.complexity.value for tx in txs)
    pattern_counts = Counter(tx.pattern for tx in txs if tx.pattern)
    behavior_counts = Counter(tx.behavior for tx in txs if tx.behavior)

    analysis = PatternAnalysis(
        count=total,
        type_counts=dict(type_counts),
        type_distribution=_fractions(type_counts, total),
        region_distribution=_fractions(region_counts, total),
        complexity_distribution=_fractions(complexity_counts, total),
        pattern_distribution=_fractions(pattern_counts, sum(pattern_counts.values())),
        observed_behavior_mix=_fractions(behavior_counts, sum(behavior_counts.values())),
        payload=_payload_stats([tx.size for tx in txs]),
    )
    analysis.inferred_behavior_mix = infer_behavior_mix(analysis.type_distribution, known)

    mix = analysis.observed_behavior_mix or analysis.inferred_behavior_mix
    if mix:
        analysis.dominant_behavior = max(mix, key=mix.get)

    analysis.insights = _insights(analysis)
    analysis.recommendations = _recommendations(analysis)
    return analysis


def infer_behavior_mix(
    type_distribution: Mapping[str, float],
    behaviors: Mapping[str, UserBehavior],
) -> Dict[str, float]:
    """
    Estimate behavior weights that best explain a type distribution.

    Solves ``min ||A w - b||`` subject to ``w >= 0`` where column ``j`` of ``A``
    is behavior ``j``'s normalized type vector and ``b`` the observed
    distribution, then rescales ``w`` to sum to one.
    """
    if not type_distribution or not behaviors:
        return {}

    ids = list(behaviors)
    types = sorted(set(type_distribution) | {t for b in behaviors.values() for t in b.type_weights})
    row = {t: i for i, t in enumerate(types)}

    A = np.zeros((len(types), len(ids)))
    for j, behavior_id in enumerate(ids):
        weights = behaviors[behavior_id].type_weights
        total = sum(w for w in weights.values() if w > 0)
        if total <= 0:
            continue
        for tx_type, w in weights.items():
            if w > 0:
                A[row[tx_type], j] = w / total

    b = np.zeros(len(types))
    for tx_type, share in type_distribution.items():
        b[row[tx_type]] = share

    solution, residual = nnls(A, b)
    logger.debug(f"Behavior mix inference residual: {residual:.6f}")
    norm = solution.sum()
    if norm <= 0:
        return {}
    return {ids[j]: round(float(solution[j] / norm), 6) for j in range(len(ids)) if solution[j] > 1e-9}


# =============================================================================
# Helpers
# =============================================================================

def _behavior_map(behaviors) -> Dict[str, UserBehavior]:
    if behaviors is None:
        return {b.id: b for b in USER_BEHAVIORS}
    if isinstance(behaviors, Mapping):
        return dict(behaviors)
    return {b.id: b for b in behaviors}


def _coerce(tx: TransactionLike, index: int) -> Transaction:
    if isinstance(tx, Transaction):
        return tx
    if not isinstance(tx, Mapping):
        raise InvalidSpecError(f"Transaction at index {index} is not an object")

    metadata = tx.get("metadata") or {}
    if not isinstance(metadata, Mapping):
        raise InvalidSpecError(f"Transaction at index {index} has a non-object metadata field")
    tx_type = _tag(tx.get("type"), "type", index) or "unknown"
    try:
        complexity = Complexity(tx.get("complexity"))
    except ValueError:
        complexity = complexity_of(tx_type)
    try:
        priority = Priority(tx.get("priority", metadata.get("priority", Priority.MEDIUM.value)))
    except ValueError:
        priority = Priority.MEDIUM
    try:
        size = int(tx.get("size") or 0)
    except (TypeError, ValueError) as e:
        raise InvalidSpecError(f"Transaction at index {index} has a non-numeric size") from e

    return Transaction(
        id=str(tx.get("id", index)),
        type=tx_type,
        size=size,
        complexity=complexity,
        behavior=_tag(tx.get("behavior") or metadata.get("behavior"), "behavior", index),
        pattern=_tag(tx.get("pattern") or metadata.get("pattern"), "pattern", index),
        region=_tag(tx.get("region") or metadata.get("region"), "region", index) or "unknown",
        priority=priority,
    )


def _tag(value: Any, name: str, index: int) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    raise InvalidSpecError(f"Transaction at index {index} has a non-string {name}")


def _fractions(counts: Counter, total: int) -> Dict[str, float]:
    if total <= 0:
        return {}
    return {key: round(value / total, 6) for key, value in counts.most_common()}


def _payload_stats(sizes: List[int]) -> PayloadStats:
    arr = np.asarray(sizes, dtype=float)
    bins = max(1, min(HISTOGRAM_BINS, len(np.unique(arr))))
    counts, edges = np.histogram(arr, bins=bins)
    return PayloadStats(
        min=int(arr.min()),
        max=int(arr.max()),
        mean=float(arr.mean()),
        p50=float(np.percentile(arr, 50)),
        p95=float(np.percentile(arr, 95)),
        histogram=[
            {"min": round(float(edges[i]), 1), "max": round(float(edges[i + 1]), 1), "count": int(counts[i])}
            for i in range(len(counts))
        ],
    )


def _insights(analysis: PatternAnalysis) -> List[str]:
    insights = []
    top_type = max(analysis.type_distribution, key=analysis.type_distribution.get)
    share = analysis.type_distribution[top_type]
    if share > DOMINANCE_THRESHOLD:
        insights.append(f"'{top_type}' transactions dominate at {share:.1%} of traffic")
    top_region = max(analysis.region_distribution, key=analysis.region_distribution.get)
    share = analysis.region_distribution[top_region]
    if share > DOMINANCE_THRESHOLD:
        insights.append(f"Region '{top_region}' originates {share:.1%} of traffic")
    if analysis.dominant_behavior:
        source = "observed" if analysis.observed_behavior_mix else "inferred"
        insights.append(f"Dominant user behavior ({source}): {analysis.dominant_behavior}")
    return insights


def _recommendations(analysis: PatternAnalysis) -> List[str]:
    recommendations = []
    if analysis.complexity_distribution.get(Complexity.COMPLEX.value, 0.0) > COMPLEX_SHARE_THRESHOLD:
        recommendations.append("Complex transactions exceed 30% of traffic; add validator capacity")
    if analysis.payload.mean > LARGE_PAYLOAD_BYTES:
        recommendations.append("Average payload above 2 KB; raise link bandwidth or block size limits")
    for region, share in analysis.region_distribution.items():
        if share > REGION_CONCENTRATION_THRESHOLD:
            recommendations.append(f"Traffic concentrated in '{region}'; add entry nodes in that region")
    return recommendations
