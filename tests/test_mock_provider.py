from synaptic.application.ports import Provider
from synaptic.domain.models import Message, TokenUsage
from synaptic.infrastructure.mock_provider import MockProvider


def test_scripted_responses_are_returned_in_order_and_last_repeats() -> None:
    provider = MockProvider(responses=["one", "two"])

    contents = [provider.call([Message.user("q")], 0.1).content for _ in range(3)]

    assert contents == ["one", "two", "two"]
    assert provider.call_count == 3


def test_callback_sees_messages_and_temperature() -> None:
    provider = MockProvider.with_callback(lambda messages, temperature: f"{messages[-1].content}@{temperature}")

    response = provider.call([Message.user("ping")], 0.3)

    assert response.content == "ping@0.3"
    assert provider.name == "mock-callback"


def test_error_provider_raises_and_records_call() -> None:
    provider = MockProvider.with_error(TimeoutError("slow"))

    try:
        provider.call([Message.user("q")], 0.1)
    except TimeoutError:
        pass
    else:
        raise AssertionError("Expected the configured error to be raised.")
    assert provider.call_count == 1
    assert provider.name == "mock-error"


def test_default_usage_and_protocol_conformance() -> None:
    provider = MockProvider.with_response("{}")

    response = provider.call([Message.user("q")], 0.1)

    assert response.usage == TokenUsage(prompt=100, completion=50, total=150)
    assert provider.name == "mock-fixed"
    assert isinstance(provider, Provider)
