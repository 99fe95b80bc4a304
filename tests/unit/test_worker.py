"""Unit tests for the iteration worker"""
import random
from unittest.mock import Mock

import pytest

from breed_load.models.outcome import ProbeResponse
from breed_load.policy import BREEDS_CHECK, STATUS_CHECK, ChaosInjection
from breed_load.worker import parse_body, run_iteration
from tests.conftest import BREEDS_BODY


class TestParseBody:
    """Test response body parsing"""

    def test_valid_object(self):
        body, failed = parse_body(BREEDS_BODY)
        assert failed is False
        assert body["message"] == ["husky", "pug"]

    def test_invalid_json_becomes_empty_mapping(self):
        body, failed = parse_body("not-json")
        assert body == {}
        assert failed is True

    def test_empty_body_becomes_empty_mapping(self):
        body, failed = parse_body("")
        assert body == {}
        assert failed is True

    def test_json_array_has_no_message(self):
        """Valid JSON that is not an object cannot define 'message'"""
        body, failed = parse_body('["husky"]')
        assert body == {}
        assert failed is False

    def test_deeply_nested_json_becomes_empty_mapping(self):
        body, failed = parse_body("[" * 100000 + "]" * 100000)
        assert body == {}
        assert failed is True


class TestPassThroughScenarios:
    """End-to-end iteration scenarios with the pass-through policy"""

    def test_success_response(self, pass_through_config, make_client, metrics, rng, no_sleep):
        """200 with a message: both checks pass, error observation 0"""
        client = make_client(ProbeResponse(200, 120.0, BREEDS_BODY))

        outcome = run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)

        assert outcome.checks == {STATUS_CHECK: True, BREEDS_CHECK: True}
        assert outcome.error_observation == 0
        assert outcome.passed
        assert metrics.error_rate.values()["rate"] == 0.0

    def test_server_error_with_empty_body(self, pass_through_config, make_client, metrics, rng, no_sleep):
        """500 with empty body: both checks fail, error observation 1"""
        client = make_client(ProbeResponse(500, 80.0, ""))

        outcome = run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)

        assert outcome.checks == {STATUS_CHECK: False, BREEDS_CHECK: False}
        assert outcome.error_observation == 1
        assert metrics.error_rate.values()["rate"] == 1.0

    def test_ok_status_with_unparsable_body(self, pass_through_config, make_client, metrics, rng, no_sleep):
        """200 with 'not-json': status passes, breeds fails, error observation 1"""
        client = make_client(ProbeResponse(200, 95.0, "not-json"))

        outcome = run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)

        assert outcome.checks[STATUS_CHECK] is True
        assert outcome.checks[BREEDS_CHECK] is False
        assert outcome.body == {}
        assert outcome.parse_failed is True
        assert outcome.error_observation == 1

    def test_ok_status_with_deeply_nested_body(self, pass_through_config, make_client, metrics, rng, no_sleep):
        """Nesting too deep to decode still yields checks and an error observation"""
        client = make_client(ProbeResponse(200, 10.0, "[" * 100000 + "]" * 100000))

        outcome = run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)

        assert outcome.checks == {STATUS_CHECK: True, BREEDS_CHECK: False}
        assert outcome.parse_failed is True
        assert outcome.error_observation == 1
        assert metrics.error_rate.values()["count"] == 1

    def test_non_200_fails_status_check_regardless_of_body(self, pass_through_config, make_client, metrics, rng, no_sleep):
        """A 404 carrying a message still fails the status check"""
        client = make_client(ProbeResponse(404, 40.0, '{"message": "Breed not found", "status": "error"}'))

        outcome = run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)

        assert outcome.checks[STATUS_CHECK] is False
        assert outcome.checks[BREEDS_CHECK] is True
        assert outcome.error_observation == 1

    def test_transport_failure_is_recorded_not_raised(self, pass_through_config, make_client, metrics, rng, no_sleep):
        """Status 0 from the client is just a failed iteration"""
        client = make_client(ProbeResponse(0, 3000.0, "", error="connection refused"))

        outcome = run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)

        assert outcome.status_code == 0
        assert outcome.error_observation == 1
        assert metrics.duration.count == 1


class TestRecording:
    """Test what every iteration contributes to the metrics"""

    def test_one_duration_per_iteration(self, pass_through_config, make_client, metrics, rng, no_sleep):
        client = make_client(
            ProbeResponse(200, 10.0, BREEDS_BODY),
            ProbeResponse(500, 20.0, ""),
            ProbeResponse(200, 30.0, "not-json"),
        )

        for _ in range(3):
            run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)

        values = metrics.duration.values()
        assert values["count"] == 3
        assert values["min"] == 10.0
        assert values["max"] == 30.0

    def test_duration_recorded_before_parsing(self, pass_through_config, make_client, rng, no_sleep):
        """Latency is recorded even when the body cannot be parsed"""
        recorder = Mock()
        client = make_client(ProbeResponse(200, 42.0, "<html>oops</html>"))

        run_iteration(pass_through_config, client, recorder, rng, sleep=no_sleep)

        recorder.record_duration.assert_called_once_with(42.0)
        assert recorder.mock_calls[0].args == (42.0,)

    def test_both_checks_recorded_every_iteration(self, pass_through_config, make_client, metrics, rng, no_sleep):
        client = make_client(ProbeResponse(200, 10.0, BREEDS_BODY), ProbeResponse(503, 10.0, ""))

        run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)
        run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)

        checks = metrics.checks.by_name()
        assert checks[STATUS_CHECK] == {"passes": 1, "fails": 1}
        assert checks[BREEDS_CHECK] == {"passes": 1, "fails": 1}

    def test_error_rate_equals_failure_share(self, pass_through_config, make_client, metrics, rng, no_sleep):
        """Sum of observations divided by iterations is the reported rate"""
        responses = [ProbeResponse(200, 5.0, BREEDS_BODY)] * 7 + [ProbeResponse(500, 5.0, "")] * 3
        client = make_client(*responses)

        outcomes = [run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep) for _ in responses]

        values = metrics.error_rate.values()
        assert values["count"] == 10
        assert values["rate"] == pytest.approx(sum(o.error_observation for o in outcomes) / 10)
        assert values["rate"] == pytest.approx(0.3)

    def test_chaos_policy_does_not_feed_error_rate(self, chaos_config, make_client, metrics, rng, no_sleep):
        client = make_client()

        for _ in range(5):
            outcome = run_iteration(chaos_config, client, metrics, rng, sleep=no_sleep)
            assert outcome.error_observation is None

        assert metrics.error_rate.count == 0
        assert "error_rate" not in metrics.snapshot()


class TestRequestAndPacing:
    """Test the request issued and the pacing pause before it"""

    def test_single_get_to_target_with_json_header(self, pass_through_config, make_client, metrics, rng, no_sleep):
        client = make_client(ProbeResponse(500, 10.0, ""))

        run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)

        assert client.calls == [
            ("https://dog.ceo/api/breeds/list/all", {"Content-Type": "application/json"})
        ]

    def test_pacing_is_below_half_a_second(self, pass_through_config, make_client, metrics, rng, sleeps, no_sleep):
        client = make_client()

        for _ in range(200):
            run_iteration(pass_through_config, client, metrics, rng, sleep=no_sleep)

        assert len(sleeps) == 200
        assert all(0 <= s < 0.5 for s in sleeps)
        assert len(set(sleeps)) > 1

    def test_pacing_happens_before_request(self, pass_through_config, metrics, rng):
        events = []

        class OrderedClient:
            def get(self, url, headers):
                events.append("get")
                return ProbeResponse(200, 1.0, BREEDS_BODY)

        run_iteration(pass_through_config, OrderedClient(), metrics, rng, sleep=lambda s: events.append("sleep"))

        assert events == ["sleep", "get"]


class TestChaosInjection:
    """Test the injected-failure policy through the worker"""

    def _injected_sequence(self, config, make_client, seed, n=200):
        rng = random.Random(seed)
        client = make_client()
        metrics = Mock()
        return [
            run_iteration(config, client, metrics, rng, sleep=lambda s: None).injected_failure
            for _ in range(n)
        ]

    def test_fixed_seed_reproduces_sequence(self, chaos_config, make_client):
        first = self._injected_sequence(chaos_config, make_client, seed=99)
        second = self._injected_sequence(chaos_config, make_client, seed=99)

        assert first == second
        assert any(first)

    def test_injected_failure_fails_breeds_check_only(self, make_client, metrics, rng, no_sleep, chaos_config):
        config = chaos_config.model_copy(update={"verdict_policy": ChaosInjection(rate=1.0)})
        client = make_client()

        outcome = run_iteration(config, client, metrics, rng, sleep=no_sleep)

        assert outcome.injected_failure is True
        assert outcome.checks == {STATUS_CHECK: True, BREEDS_CHECK: False}

    def test_no_injection_at_zero_rate(self, make_client, metrics, rng, no_sleep, chaos_config):
        config = chaos_config.model_copy(update={"verdict_policy": ChaosInjection(rate=0.0)})
        client = make_client()

        outcomes = [run_iteration(config, client, metrics, rng, sleep=no_sleep) for _ in range(50)]

        assert not any(o.injected_failure for o in outcomes)
        assert metrics.checks.by_name()[BREEDS_CHECK] == {"passes": 50, "fails": 0}
