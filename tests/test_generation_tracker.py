"""
Tests for load-only generations and the profile catalog.
"""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from netharness.domain.errors import InvalidGenerationOptions, InvalidLoadProfile, ProfileNotFound
from netharness.domain.models import RunKind, RunStatus
from netharness.domain.services import TransactionSynthesizer


@pytest.fixture
def small_profile(tracker, small_profile_spec):
    return tracker.create_custom_load_profile(small_profile_spec)


class TestCatalog:

    def test_builtin_catalog(self, tracker):
        assert {p.id for p in tracker.list_load_profiles()} >= {
            "steady-state", "burst-pattern", "realistic-mixed", "stress-test",
        }
        assert len(tracker.list_user_behaviors()) == 5
        assert "balanced-mix" in {p.id for p in tracker.list_patterns()}

    def test_builtin_totals_computed(self, tracker):
        for profile in tracker.list_load_profiles():
            assert profile.overall.total_transactions is not None

    def test_custom_profile_registered(self, tracker, small_profile):
        assert small_profile.custom is True
        assert small_profile.id.startswith("custom-profile-")
        assert small_profile.phase_names == ["warm", "hold"]
        assert small_profile.overall.total_transactions == 250
        assert tracker.list_load_profiles()[-1].id == small_profile.id

    @pytest.mark.parametrize("mutate", [
        lambda s: s.update(duration=99),
        lambda s: s["overall"].update(peakTps=5),
        lambda s: s["phases"][0].update(targetTps=-1),
        lambda s: s.update(patternId="missing-pattern"),
        lambda s: s.pop("name"),
        lambda s: s.update(phases="fast"),
    ])
    def test_invalid_profile_registers_nothing(self, tracker, small_profile_spec, mutate):
        before = len(tracker.list_load_profiles())
        mutate(small_profile_spec)
        with pytest.raises(InvalidLoadProfile):
            tracker.create_custom_load_profile(small_profile_spec)
        assert len(tracker.list_load_profiles()) == before


class TestGeneration:

    def test_runs_to_completion(self, tracker, history, small_profile):
        generation = tracker.generate_load(small_profile.id, {"seed": 3})
        assert generation.status == RunStatus.QUEUED
        assert generation.options.seed == 3

        final = tracker.run_to_completion(generation.id)

        assert final.status == RunStatus.COMPLETED
        assert final.total_transactions == 250
        assert [p.transaction_count for p in final.phase_metrics] == [70, 180]
        assert sum(final.type_counts.values()) == 250
        assert sum(final.region_counts.values()) == 250
        assert final.simulated_seconds == pytest.approx(10.0)
        assert final.actual_tps == pytest.approx(25.0)
        assert history.list(kind=RunKind.GENERATION)[0].id == generation.id
        assert tracker.list_active_generations() == []

    def test_sample_is_bounded(self, tracker, small_profile):
        generation = tracker.generate_load(small_profile.id, {"seed": 3})
        final = tracker.run_to_completion(generation.id)

        assert len(final.sample) == 50
        assert len({tx["id"] for tx in final.sample}) == 50
        assert all(tx["id"].startswith(generation.id) for tx in final.sample)

    def test_same_seed_same_output(self, tracker, small_profile):
        outputs = []
        for _ in range(2):
            generation = tracker.generate_load(small_profile.id, {"seed": 11})
            final = tracker.run_to_completion(generation.id)
            outputs.append((final.type_counts, final.total_bytes))
        assert outputs[0] == outputs[1]

    def test_behavior_override(self, tracker, small_profile):
        generation = tracker.generate_load(small_profile.id, {"user_behaviors": ["nft-collector"]})
        final = tracker.run_to_completion(generation.id)
        assert set(final.type_counts) <= {"nft", "transfer"}

    def test_regions_override(self, tracker, small_profile):
        generation = tracker.generate_load(small_profile.id, {"regions": ["eu-west"]})
        final = tracker.run_to_completion(generation.id)
        assert final.region_counts == {"eu-west": 250}

    def test_error_rate(self, tracker, small_profile):
        generation = tracker.generate_load(small_profile.id, {"error_rate": 1.0})
        final = tracker.run_to_completion(generation.id)
        assert final.error_count == final.total_transactions

    def test_scheduled_start_waits(self, tracker, small_profile):
        later = (datetime.now() + timedelta(hours=1)).isoformat()
        generation = tracker.generate_load(small_profile.id, {"startTime": later})

        waiting = tracker.step(generation.id, ticks=5)
        assert waiting.status == RunStatus.QUEUED
        assert waiting.total_transactions == 0
        assert [g.id for g in tracker.list_active_generations()] == [generation.id]

        assert tracker.stop_generation(generation.id) is True
        assert tracker.step(generation.id).status == RunStatus.STOPPED

    def test_stop(self, tracker, small_profile):
        generation = tracker.generate_load(small_profile.id)
        tracker.step(generation.id, ticks=2)

        assert tracker.stop_generation(generation.id) is True
        assert tracker.stop_generation(generation.id) is False
        final = tracker.run_to_completion(generation.id)

        assert final.status == RunStatus.STOPPED
        assert final.total_transactions == 10 + 20
        assert tracker.stop_generation(generation.id) is False

    def test_stop_during_final_tick_wins(self, tracker, history, small_profile):
        generation = tracker.generate_load(small_profile.id, {"seed": 3})
        tracker.step(generation.id, ticks=9)

        accepted = []
        synthesize = TransactionSynthesizer.synthesize

        def stop_then_synthesize(synthesizer, *args, **kwargs):
            accepted.append(tracker.stop_generation(generation.id))
            return synthesize(synthesizer, *args, **kwargs)

        with patch.object(TransactionSynthesizer, "synthesize", autospec=True, side_effect=stop_then_synthesize):
            final = tracker.step(generation.id)

        assert accepted == [True]
        assert final.status == RunStatus.STOPPED
        assert final.total_transactions == 250
        assert history.get(generation.id).status == RunStatus.STOPPED

    def test_single_region_string(self, tracker, small_profile):
        generation = tracker.generate_load(small_profile.id, {"regions": "eu-west"})
        assert generation.options.regions == ("eu-west",)
        final = tracker.run_to_completion(generation.id)
        assert final.region_counts == {"eu-west": 250}

    def test_get_generation(self, tracker, small_profile):
        generation = tracker.generate_load(small_profile.id)
        assert tracker.get_generation(generation.id).id == generation.id
        assert tracker.get_generation("gen-missing") is None


class TestRejectedGenerations:

    def test_unknown_profile_creates_nothing(self, tracker, history):
        with pytest.raises(ProfileNotFound):
            tracker.generate_load("no-such-profile")
        assert tracker.list_active_generations() == []
        assert len(history) == 0

    @pytest.mark.parametrize("options", [
        {"error_rate": 2.0},
        {"pattern_ids": ["missing"]},
        {"user_behaviors": {"whale": 1.0}},
        {"user_behaviors": {"retail-trader": -1.0}},
        {"startTime": "not a date"},
        {"regions": 5},
        {"regions": ["us-east", 3]},
    ])
    def test_invalid_options(self, tracker, small_profile, options):
        with pytest.raises(InvalidGenerationOptions):
            tracker.generate_load(small_profile.id, options)
        assert tracker.list_active_generations() == []
