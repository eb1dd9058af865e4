"""
Transaction Pattern Synthesizer

Turns a behavior mix and a count into concrete transactions. All randomness
comes from the injected ``random.Random`` so a seeded run is reproducible.
"""
from __future__ import annotations

import copy
import random
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..catalog import (
    COMPLEXITY_LATENCY_MULTIPLIER,
    CONTRACT_METHODS,
    DEFAULT_REGION_LATENCY_MS,
    PRIORITY_WEIGHTS,
    REGIONS,
    complexity_of,
)
from ..errors import BehaviorNotFound
from ..models import Priority, TimingDistribution, Transaction, TransactionPattern, UserBehavior

DEFAULT_PATTERN_ID = "default"
_PRIORITIES = (Priority.LOW, Priority.MEDIUM, Priority.HIGH, Priority.CRITICAL)


class TransactionSynthesizer:
    """
    Seeded generator of synthetic transactions.

    Holds a private snapshot of the behaviors it may draw from, so later
    edits to a shared store never leak into a run that is in progress.
    """

    def __init__(
        self,
        behaviors: Mapping[str, UserBehavior],
        rng: Optional[random.Random] = None,
        regions: Sequence[str] = (),
        id_prefix: str = "tx",
    ):
        self.behaviors: Dict[str, UserBehavior] = copy.deepcopy(dict(behaviors))
        self.rng = rng or random.Random()
        self.regions = list(regions)
        self.id_prefix = id_prefix
        self._sequence = 0

    @property
    def issued(self) -> int:
        return self._sequence

    def default_pattern(self) -> TransactionPattern:
        """Equal-weight mix over every snapshot behavior."""
        return TransactionPattern(
            id=DEFAULT_PATTERN_ID,
            name="Default Mix",
            behavior_weights={b: 1.0 for b in self.behaviors},
        ).normalized()

    def synthesize(
        self,
        pattern: Optional[TransactionPattern],
        count: int,
        at: float = 0.0,
        span: float = 1.0,
    ) -> List[Transaction]:
        """Draw ``count`` transactions timestamped inside ``[at, at + span)``."""
        if count <= 0:
            return []
        mix = (pattern or self.default_pattern()).normalized()
        ids = list(mix.behavior_weights)
        for behavior_id in ids:
            if behavior_id not in self.behaviors:
                raise BehaviorNotFound(behavior_id)

        chosen = self.rng.choices(ids, weights=[mix.behavior_weights[b] for b in ids], k=count)
        drafts = []
        for index, behavior_id in enumerate(chosen):
            behavior = self.behaviors[behavior_id]
            drafts.append(self._draft(behavior, mix.id, index, count, span))

        drafts.sort(key=lambda tx: tx.offset)
        for tx in drafts:
            self._sequence += 1
            tx.id = f"{self.id_prefix}-{self._sequence}"
            tx.timestamp = at + tx.offset
        return drafts

    # -------------------------------------------------------------------------
    # Per-transaction draws
    # -------------------------------------------------------------------------

    def _draft(self, behavior: UserBehavior, pattern_id: str, index: int, count: int, span: float) -> Transaction:
        types = list(behavior.type_weights)
        tx_type = self.rng.choices(types, weights=[behavior.type_weights[t] for t in types])[0]
        complexity = complexity_of(tx_type)
        region = self.rng.choice(self.regions) if self.regions else behavior.region
        payload = behavior.payload
        size = int(round(self.rng.triangular(payload.min, payload.max, payload.mean)))
        base = REGIONS.get(region, {}).get("base_latency_ms", DEFAULT_REGION_LATENCY_MS)
        expected = base * COMPLEXITY_LATENCY_MULTIPLIER[complexity] * self.rng.uniform(0.8, 1.2)

        return Transaction(
            id="",
            type=tx_type,
            size=size,
            complexity=complexity,
            behavior=behavior.id,
            pattern=pattern_id,
            region=region,
            priority=self.rng.choices(_PRIORITIES, weights=PRIORITY_WEIGHTS)[0],
            expected_latency_ms=expected,
            offset=self._offset(behavior.timing, index, count, span),
            data=self._data(tx_type),
        )

    def _offset(self, timing: TimingDistribution, index: int, count: int, span: float) -> float:
        if timing == TimingDistribution.PERIODIC:
            return span * index / count
        if timing == TimingDistribution.BURST:
            return self.rng.random() * 0.1 * span
        if timing == TimingDistribution.POISSON:
            return min(self.rng.expovariate(3.0 / span), span * 0.999) if span > 0 else 0.0
        return self.rng.random() * span

    def _data(self, tx_type: str) -> Dict[str, Any]:
        data: Dict[str, Any] = {"from": self._address(), "to": self._address()}
        if tx_type == "transfer":
            data["amount"] = self.rng.randrange(10000)
        elif tx_type == "contract":
            data["contract"] = self._address()
            data["method"] = self.rng.choice(CONTRACT_METHODS)
        data["parameters"] = self._parameters(tx_type)
        return data

    def _parameters(self, tx_type: str) -> Dict[str, Any]:
        rng = self.rng
        if tx_type == "transfer":
            return {"amount": rng.randrange(10000)}
        if tx_type == "contract":
            return {"inputs": [f"{rng.getrandbits(32):08x}" for _ in range(rng.randint(1, 5))]}
        if tx_type == "staking":
            return {"amount": rng.randrange(100000), "duration": rng.randint(1, 365)}
        if tx_type == "governance":
            return {"proposalId": rng.randrange(1000), "vote": "for" if rng.random() > 0.5 else "against"}
        if tx_type == "nft":
            token = rng.randrange(10000)
            return {"tokenId": token, "metadata": {"name": f"NFT #{token}"}}
        if tx_type == "defi":
            return {"tokenIn": self._address(), "tokenOut": self._address(), "amountIn": rng.randrange(10000)}
        return {}

    def _address(self) -> str:
        return f"0x{self.rng.getrandbits(160):040x}"
