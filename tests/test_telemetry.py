"""Tests for telemetry bootstrap helpers."""

from __future__ import annotations

from opentelemetry import trace
from opentelemetry.sdk.trace.sampling import ALWAYS_OFF, ParentBased

from utils import telemetry


def test_setup_tracing_skips_without_endpoint(monkeypatch) -> None:
    """No collector endpoint means tracing is not initialised."""

    monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    monkeypatch.setenv("OTEL_TRACES_ENABLED", "1")
    telemetry._INITIALISED = False

    calls: list[object] = []

    def fake_set_tracer_provider(provider: object) -> None:
        calls.append(provider)

    monkeypatch.setattr(trace, "set_tracer_provider", fake_set_tracer_provider)

    telemetry.setup_tracing(force=True)

    assert calls == []
    assert telemetry._INITIALISED is False


def test_setup_tracing_respects_disable_flag(monkeypatch) -> None:
    monkeypatch.setenv("OTEL_TRACES_ENABLED", "off")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4318/v1/traces")
    telemetry._INITIALISED = False

    calls: list[object] = []
    monkeypatch.setattr(trace, "set_tracer_provider", calls.append)

    telemetry.setup_tracing(force=True)

    assert calls == []


def test_setup_tracing_installs_provider(monkeypatch) -> None:
    monkeypatch.setenv("OTEL_TRACES_ENABLED", "1")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4318/v1/traces")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_HEADERS", "x-api-key=abc, broken")
    monkeypatch.setenv("OTEL_SERVICE_NAME", "formstep-test")
    telemetry._INITIALISED = False

    providers: list[object] = []
    monkeypatch.setattr(trace, "set_tracer_provider", providers.append)

    telemetry.setup_tracing(force=True)

    assert len(providers) == 1
    assert providers[0].resource.attributes["service.name"] == "formstep-test"
    assert telemetry._INITIALISED is True
    telemetry._INITIALISED = False


def test_otlp_config_parses_environment(monkeypatch) -> None:
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4318/v1/traces")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_HEADERS", "x-api-key=abc, broken")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_TIMEOUT", "not-a-number")

    config = telemetry._build_otlp_config()

    assert config is not None
    assert config.headers == {"x-api-key": "abc"}
    assert config.timeout is None


def test_sampler_selection(monkeypatch) -> None:
    monkeypatch.setenv("OTEL_TRACES_SAMPLER", "always_off")
    assert telemetry._build_sampler() is ALWAYS_OFF

    monkeypatch.setenv("OTEL_TRACES_SAMPLER", "mystery")
    assert isinstance(telemetry._build_sampler(), ParentBased)
