"""
Profile Store

Load profiles, user behaviors and transaction patterns: the built-in catalog
plus custom entries registered at runtime. Everything handed out is frozen,
and runs take deep snapshots of the behaviors they use.
"""
import copy
import logging
import threading
import uuid
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from netharness.domain.catalog import LOAD_PROFILES, TRANSACTION_PATTERNS, USER_BEHAVIORS
from netharness.domain.errors import (
    BehaviorNotFound,
    InvalidLoadProfile,
    InvalidSpecError,
    PatternNotFound,
    ProfileNotFound,
)
from netharness.domain.models import (
    LoadProfile,
    TransactionPattern,
    UserBehavior,
    find_profile_problems,
    merge_patterns,
)
from netharness.domain.services.load_profile_engine import expected_transactions


class ProfileStore:
    """Thread-safe catalog of profiles, behaviors and patterns."""

    def __init__(
        self,
        profiles: Optional[Iterable[LoadProfile]] = None,
        behaviors: Optional[Iterable[UserBehavior]] = None,
        patterns: Optional[Iterable[TransactionPattern]] = None,
        tick_duration: float = 1.0,
    ):
        self.logger = logging.getLogger(__name__)
        self.tick_duration = tick_duration
        self._lock = threading.Lock()
        self._behaviors: Dict[str, UserBehavior] = {
            b.id: b for b in (USER_BEHAVIORS if behaviors is None else behaviors)
        }
        self._patterns: Dict[str, TransactionPattern] = {
            p.id: p for p in (TRANSACTION_PATTERNS if patterns is None else patterns)
        }
        self._profiles: Dict[str, LoadProfile] = {}
        for profile in (LOAD_PROFILES if profiles is None else profiles):
            self._profiles[profile.id] = self._with_totals(profile)

    # =========================================================================
    # Load profiles
    # =========================================================================

    def list_load_profiles(self) -> List[LoadProfile]:
        with self._lock:
            return list(self._profiles.values())

    def get_load_profile(self, profile_id: str) -> Optional[LoadProfile]:
        with self._lock:
            return self._profiles.get(profile_id)

    def require_load_profile(self, profile_id: str) -> LoadProfile:
        profile = self.get_load_profile(profile_id)
        if profile is None:
            raise ProfileNotFound(profile_id)
        return profile

    def create_custom_load_profile(self, spec: Dict[str, Any]) -> LoadProfile:
        """
        Validate and register a custom load profile.

        Raises:
            InvalidLoadProfile: missing fields, inconsistent phases/overall,
                or references to unknown patterns
        """
        if not isinstance(spec, dict):
            raise InvalidLoadProfile("Load profile spec must be an object")
        missing = [key for key in ("name", "phases") if not spec.get(key)]
        if missing:
            raise InvalidLoadProfile("Missing required fields", [f"{key} is required" for key in missing])
        if not isinstance(spec["phases"], list):
            raise InvalidLoadProfile("phases must be a list")

        try:
            profile = LoadProfile.from_dict(spec, profile_id=f"custom-profile-{uuid.uuid4().hex[:8]}")
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidLoadProfile(f"Malformed load profile: {e}") from e

        problems = find_profile_problems(profile)
        for pattern_id in [profile.pattern_id] + [p.pattern_id for p in profile.phases]:
            if pattern_id is not None and self.get_pattern(pattern_id) is None:
                problems.append(f"unknown pattern '{pattern_id}'")
        if problems:
            raise InvalidLoadProfile("Invalid load profile", problems)

        profile = self._with_totals(replace(profile, custom=True))
        with self._lock:
            self._profiles[profile.id] = profile
        self.logger.info(f"Registered load profile {profile.id} '{profile.name}' ({len(profile.phases)} phases)")
        return profile

    def _with_totals(self, profile: LoadProfile) -> LoadProfile:
        if profile.overall.total_transactions is not None:
            return profile
        total = expected_transactions(profile.phases, self.tick_duration)
        return replace(profile, overall=replace(profile.overall, total_transactions=total))

    # =========================================================================
    # User behaviors
    # =========================================================================

    def list_user_behaviors(self) -> List[UserBehavior]:
        with self._lock:
            return list(self._behaviors.values())

    def get_user_behavior(self, behavior_id: str) -> Optional[UserBehavior]:
        with self._lock:
            return self._behaviors.get(behavior_id)

    def create_user_behavior(self, spec: Dict[str, Any]) -> UserBehavior:
        try:
            behavior = UserBehavior.from_dict(spec)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidSpecError(f"Malformed user behavior: {e}") from e

        problems = []
        weights = behavior.type_weights
        if not weights or any(w < 0 for w in weights.values()) or sum(weights.values()) <= 0:
            problems.append("type_weights must be non-negative with a positive total")
        p = behavior.payload
        if not 0 <= p.min <= p.mean <= p.max:
            problems.append("payload must satisfy 0 <= min <= mean <= max")
        if problems:
            raise InvalidSpecError(f"Invalid user behavior '{behavior.id}'", problems)

        with self._lock:
            self._behaviors[behavior.id] = behavior
        self.logger.info(f"Registered user behavior {behavior.id}")
        return behavior

    def snapshot_behaviors(self, ids: Optional[Iterable[str]] = None) -> Dict[str, UserBehavior]:
        """Deep copy of the requested behaviors (all when ``ids`` is None)."""
        with self._lock:
            if ids is None:
                selected = dict(self._behaviors)
            else:
                selected = {}
                for behavior_id in ids:
                    if behavior_id not in self._behaviors:
                        raise BehaviorNotFound(behavior_id)
                    selected[behavior_id] = self._behaviors[behavior_id]
        return copy.deepcopy(selected)

    # =========================================================================
    # Transaction patterns
    # =========================================================================

    def list_patterns(self) -> List[TransactionPattern]:
        with self._lock:
            return list(self._patterns.values())

    def get_pattern(self, pattern_id: str) -> Optional[TransactionPattern]:
        with self._lock:
            return self._patterns.get(pattern_id)

    def require_pattern(self, pattern_id: str) -> TransactionPattern:
        pattern = self.get_pattern(pattern_id)
        if pattern is None:
            raise PatternNotFound(pattern_id)
        return pattern

    def create_pattern(self, spec: Dict[str, Any]) -> TransactionPattern:
        try:
            pattern = replace(TransactionPattern.from_dict(spec), custom=True)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InvalidSpecError(f"Malformed transaction pattern: {e}") from e
        self.check_pattern(pattern)
        with self._lock:
            self._patterns[pattern.id] = pattern
        self.logger.info(f"Registered transaction pattern {pattern.id}")
        return pattern

    def check_pattern(self, pattern: TransactionPattern) -> TransactionPattern:
        """Normalize a pattern and confirm every behavior it mixes exists."""
        normalized = pattern.normalized()
        for behavior_id in normalized.behavior_weights:
            if self.get_user_behavior(behavior_id) is None:
                raise BehaviorNotFound(behavior_id)
        return normalized

    def resolve_mix(
        self,
        pattern_ids: Iterable[str] = (),
        behavior_weights: Optional[Mapping[str, float]] = None,
        custom_patterns: Iterable[TransactionPattern] = (),
    ) -> Optional[TransactionPattern]:
        """
        Combine named patterns, inline custom patterns and a direct behavior
        weighting into one normalized mix. Returns None when nothing was given.
        """
        parts = [self.require_pattern(pid) for pid in pattern_ids]
        parts.extend(custom_patterns)
        if behavior_weights:
            parts.append(TransactionPattern(id="behaviors", name="Selected behaviors",
                                            behavior_weights=dict(behavior_weights)))
        if not parts:
            return None
        return self.check_pattern(merge_patterns([self.check_pattern(p) for p in parts], pattern_id="custom-mix"))

    def profile_mixes(
        self,
        profile: Optional[LoadProfile],
        phases: Iterable[Any] = (),
    ) -> Tuple[Optional[TransactionPattern], Dict[str, TransactionPattern]]:
        """The profile-level mix and any per-phase overrides, normalized."""
        base = None
        if profile is not None and profile.pattern_id is not None:
            base = self.check_pattern(self.require_pattern(profile.pattern_id))
        phases = profile.phases if profile is not None else phases
        overrides = {
            p.name: self.check_pattern(self.require_pattern(p.pattern_id))
            for p in phases if p.pattern_id is not None
        }
        return base, overrides
