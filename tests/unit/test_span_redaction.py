import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from sealhook.observability.tracing import TokenRedactingSpanProcessor


@pytest.fixture
def exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer(exporter):
    provider = TracerProvider()
    provider.add_span_processor(TokenRedactingSpanProcessor(SimpleSpanProcessor(exporter)))
    return provider.get_tracer("test")


def finished_attributes(exporter):
    (span,) = exporter.get_finished_spans()
    return dict(span.attributes)


def test_token_in_url_attributes_is_redacted(tracer, exporter):
    with tracer.start_as_current_span("POST /wh/{token}") as span:
        span.set_attribute("http.target", "/wh/AbCdEf123_-")
        span.set_attribute("http.url", "http://relay.test/wh/AbCdEf123_-")

    attrs = finished_attributes(exporter)
    assert attrs["http.target"] == "/wh/[REDACTED]"
    assert attrs["http.url"] == "http://relay.test/wh/[REDACTED]"


def test_sensitive_keys_are_masked(tracer, exporter):
    with tracer.start_as_current_span("req") as span:
        span.set_attribute("authorization", "Basic Zm9vOmJhcg==")
        span.set_attribute("http.request.header.x_custom", "value")
        span.set_attribute("app.secret_hint", "abc")

    attrs = finished_attributes(exporter)
    assert attrs["authorization"] == "[REDACTED]"
    assert attrs["http.request.header.x_custom"] == "[REDACTED]"
    assert attrs["app.secret_hint"] == "[REDACTED]"


def test_other_attributes_pass_through(tracer, exporter):
    with tracer.start_as_current_span("req") as span:
        span.set_attribute("http.status_code", 202)
        span.set_attribute("http.route", "/health/live")

    attrs = finished_attributes(exporter)
    assert attrs["http.status_code"] == 202
    assert attrs["http.route"] == "/health/live"
