"""Unit tests for the provider registry, selector and stub provider."""

import json
import random
import threading

import pytest

from reelforge.common.errors import (
    ConfigurationError,
    NoCompatibleProvider,
    PermanentProviderError,
    TransientProviderError,
)
from reelforge.common.models import (
    ContentType,
    GenerationRequest,
    ProviderCapability,
    QualityTier,
)
from reelforge.providers import (
    PollStatus,
    ProviderRegistry,
    StubOutcome,
    StubProvider,
    rejection_reason,
    select_for_scene,
    select_providers,
)


class TestProviderRegistry:
    """Tests for ProviderRegistry."""

    def test_default_catalog(self):
        """Test the built-in catalog loads with every kind."""
        registry = ProviderRegistry.default()

        assert "runway" in registry
        assert registry.get("luma").max_duration_seconds == 5
        kinds = {c.kind for c in registry.capabilities()}
        assert kinds == set(ContentType)

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ConfigurationError):
            ProviderRegistry([ProviderCapability(provider_id="A"), ProviderCapability(provider_id="A")])

    def test_unknown_provider(self, ab_registry):
        with pytest.raises(ConfigurationError):
            ab_registry.get("missing")

    def test_from_records_validation(self):
        with pytest.raises(ConfigurationError):
            ProviderRegistry.from_records([{"provider_id": "A", "reliability": 4.0}])

    def test_from_file(self, tmp_path):
        """Test loading the {"providers": [...]} file form."""
        path = tmp_path / "providers.json"
        path.write_text(
            json.dumps(
                {
                    "providers": [
                        {"provider_id": "A", "styles": ["X"], "quality_tier": "ultra"},
                        {"provider_id": "B", "kind": "image"},
                    ]
                }
            )
        )

        registry = ProviderRegistry.from_file(path)

        assert registry.provider_ids == ["A", "B"]
        assert registry.get("A").quality_tier == QualityTier.ULTRA
        assert registry.get("B").kind == ContentType.IMAGE

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ProviderRegistry.from_file(tmp_path / "nope.json")

    def test_reliability_moves_with_outcomes(self, ab_registry):
        """Test successes raise and failures lower the score."""
        start = ab_registry.reliability("A")

        ab_registry.record_failure("A")
        after_failure = ab_registry.reliability("A")
        ab_registry.record_success("A")
        ab_registry.record_success("A")

        assert after_failure < start
        assert ab_registry.reliability("A") > after_failure
        stats = ab_registry.stats("A")
        assert (stats.successes, stats.failures) == (2, 1)

    def test_concurrent_updates_are_not_lost(self, ab_registry):
        """Test counters stay exact under concurrent writers."""

        def hammer():
            for _ in range(500):
                ab_registry.record_success("A")
                ab_registry.record_failure("B")

        threads = [threading.Thread(target=hammer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert ab_registry.stats("A").successes == 4000
        assert ab_registry.stats("B").failures == 4000

    def test_capabilities_snapshot_carries_live_reliability(self, ab_registry):
        ab_registry.record_failure("B")
        snapshot = {c.provider_id: c for c in ab_registry.capabilities()}
        assert snapshot["B"].reliability == pytest.approx(ab_registry.reliability("B"))
        assert snapshot["B"].reliability < 0.9


class TestProviderSelector:
    """Tests for select_providers."""

    def test_duration_filter(self, ab_registry):
        """Test A (max 10s) is dropped for a 12s request in style X."""
        ranked = select_providers(ab_registry, "X", ContentType.VIDEO, 12.0)
        assert [c.provider_id for c in ranked] == ["B"]

    def test_tier_ranks_first(self, ab_registry):
        ranked = select_providers(ab_registry, "X", ContentType.VIDEO, 5.0)
        assert [c.provider_id for c in ranked] == ["A", "B"]

    def test_style_filter(self, ab_registry):
        ranked = select_providers(ab_registry, "broll", ContentType.VIDEO, 5.0)
        assert [c.provider_id for c in ranked] == ["B"]

    def test_preference_overrides_ranking(self, ab_registry):
        ranked = select_providers(ab_registry, "X", ContentType.VIDEO, 5.0, preferred=["B"])
        assert [c.provider_id for c in ranked] == ["B", "A"]

    def test_incompatible_preference_ignored(self, ab_registry):
        ranked = select_providers(ab_registry, "X", ContentType.VIDEO, 12.0, preferred=["A", "B"])
        assert [c.provider_id for c in ranked] == ["B"]

    def test_motion_filter(self):
        """Test declared motion types restrict a scene that asks for one."""
        registry = ProviderRegistry(
            [
                ProviderCapability(
                    provider_id="orbit",
                    motion_types=["camera-motion", "Orbit"],
                    quality_tier=QualityTier.ULTRA,
                ),
                ProviderCapability(provider_id="ambient", motion_types=["ambient"]),
                ProviderCapability(provider_id="open"),
            ]
        )

        ranked = select_providers(registry, "any", ContentType.VIDEO, 5.0, motion_type="orbit")
        assert [c.provider_id for c in ranked] == ["orbit", "open"]

        unconstrained = select_providers(registry, "any", ContentType.VIDEO, 5.0)
        assert len(unconstrained) == 3

        reason = rejection_reason(
            registry.get("ambient"), "any", ContentType.VIDEO, 5.0, motion_type="orbit"
        )
        assert reason == "motion 'orbit' not supported"

    def test_scene_motion_type_is_used(self, make_scene):
        registry = ProviderRegistry(
            [
                ProviderCapability(provider_id="a", motion_types=["ambient"]),
                ProviderCapability(provider_id="b", motion_types=["dynamic"]),
            ]
        )
        ranked = select_for_scene(registry, make_scene(style="any", motion_type="dynamic"))
        assert [c.provider_id for c in ranked] == ["b"]

    def test_reliability_then_cost_then_id(self):
        """Test tie-breaks within a tier."""
        registry = ProviderRegistry(
            [
                ProviderCapability(provider_id="c", reliability=0.8, relative_cost=0.01),
                ProviderCapability(provider_id="b", reliability=0.9, relative_cost=0.05),
                ProviderCapability(provider_id="a", reliability=0.9, relative_cost=0.05),
                ProviderCapability(provider_id="d", reliability=0.9, relative_cost=0.02),
            ]
        )
        ranked = select_providers(registry, "any", ContentType.VIDEO, 5.0)
        assert [c.provider_id for c in ranked] == ["d", "a", "b", "c"]

    def test_live_reliability_changes_order(self):
        registry = ProviderRegistry(
            [
                ProviderCapability(provider_id="a", reliability=0.9),
                ProviderCapability(provider_id="b", reliability=0.9),
            ]
        )
        for _ in range(3):
            registry.record_failure("a")
        ranked = select_providers(registry, "any", ContentType.VIDEO, 5.0)
        assert [c.provider_id for c in ranked] == ["b", "a"]

    def test_no_compatible_provider(self, ab_registry):
        """Test an explicit error listing every rejection."""
        with pytest.raises(NoCompatibleProvider) as exc_info:
            select_providers(ab_registry, "X", ContentType.MUSIC, 5.0)
        assert set(exc_info.value.rejections) == {"A", "B"}

    def test_excluded_providers(self, ab_registry):
        ranked = select_providers(ab_registry, "X", ContentType.VIDEO, 5.0, exclude=["A"])
        assert [c.provider_id for c in ranked] == ["B"]

    def test_never_returns_incompatible_provider(self):
        """Randomized: every returned provider passes every filter."""
        rng = random.Random(1234)
        styles = ["hook", "broll", "product", "cinematic", "*"]
        kinds = list(ContentType)

        for _ in range(200):
            registry = ProviderRegistry(
                ProviderCapability(
                    provider_id=f"p{i}",
                    kind=rng.choice(kinds),
                    styles=rng.sample(styles, rng.randint(1, 3)),
                    max_duration_seconds=rng.choice([None, 5, 8, 10]),
                    quality_tier=rng.choice(list(QualityTier)),
                    reliability=rng.random(),
                )
                for i in range(rng.randint(1, 6))
            )
            style = rng.choice(styles[:-1])
            kind = rng.choice(kinds)
            duration = rng.uniform(1, 15)

            try:
                ranked = select_providers(registry, style, kind, duration)
            except NoCompatibleProvider:
                assert all(
                    rejection_reason(c, style, kind, duration) for c in registry.capabilities()
                )
                continue

            assert ranked
            for cap in ranked:
                assert rejection_reason(cap, style, kind, duration) is None
                assert cap.kind == kind
                assert cap.supports_duration(duration)


class TestStubProvider:
    """Tests for the scripted stub provider."""

    def _request(self, scene_id="scene_1"):
        return GenerationRequest(scene_id=scene_id, duration_seconds=5.0)

    def test_ok_job_completes_after_polls(self):
        provider = StubProvider("A", polls_until_done=2)
        handle = provider.submit(self._request())

        assert provider.poll(handle).status == PollStatus.RUNNING
        result = provider.poll(handle)
        assert result.status == PollStatus.SUCCEEDED
        assert result.result_uri.startswith("stub://A/scene_1/")

    def test_scripted_failures(self):
        provider = StubProvider(
            "A", scripts={"scene_1": [StubOutcome.TRANSIENT, StubOutcome.PERMANENT]}
        )
        with pytest.raises(TransientProviderError):
            provider.submit(self._request())
        with pytest.raises(PermanentProviderError):
            provider.submit(self._request())
        # Script exhausted, default outcome applies
        handle = provider.submit(self._request())
        assert provider.poll(handle).status == PollStatus.SUCCEEDED
        assert provider.submission_count("scene_1") == 3

    def test_poll_failures(self):
        provider = StubProvider("A", default_outcome="poll_permanent")
        result = provider.poll(provider.submit(self._request()))
        assert result.status == PollStatus.FAILED
        assert not result.retryable

    def test_cancel_records_handle(self):
        provider = StubProvider("A", default_outcome=StubOutcome.HANG)
        handle = provider.submit(self._request())
        provider.cancel(handle)
        assert provider.cancelled == [handle.job_id]
