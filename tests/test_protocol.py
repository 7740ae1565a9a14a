import pytest

from udpbroker.protocol import (
    NO_PUBLISHERS,
    Operation,
    PublisherRequest,
    SubscriberRequest,
    SubscriberRequestKind,
    format_publisher_ids,
    parse_publisher_list,
    parse_publisher_message,
    parse_subscriber_request,
    registration_message,
    subscribe_request,
    text_message,
    unsubscribe_request,
)


def test_registration_wire_format():
    assert registration_message("stress_test", 3) == b"operacija=1|publisher=stress_test|maxsize=3"


def test_text_message_wire_format():
    assert text_message("stress_test", "jabuka") == b"operacija=2|publisher=stress_test|message=jabuka"


def test_registration_round_trip_uses_client_port():
    request = parse_publisher_message(registration_message("stress_test", 42), 50007)
    assert request == PublisherRequest(Operation.REGISTER, 50007, max_size=42)


def test_message_round_trip_keeps_spaces():
    request = parse_publisher_message(text_message("p", "hello big world"), 50001)
    assert request.operation is Operation.MESSAGE
    assert request.publisher_id == 50001
    assert request.message == "hello big world"
    assert request.max_size == 0


def test_message_token_without_message_field_is_empty():
    request = parse_publisher_message("operacija=2|publisher=p|other=1", 1)
    assert request.message == ""


def test_message_missing_third_token_is_empty():
    assert parse_publisher_message("operacija=2|publisher=p", 1).message == ""


def test_unknown_operation_is_treated_as_message():
    request = parse_publisher_message("operacija=9|publisher=p|message=hi", 5)
    assert request.operation is Operation.MESSAGE
    assert request.message == "hi"


def test_malformed_publisher_messages_raise():
    with pytest.raises(ValueError):
        parse_publisher_message("", 1)
    with pytest.raises(ValueError):
        parse_publisher_message("op=1|publisher=p|maxsize=2", 1)
    with pytest.raises(ValueError):
        parse_publisher_message("operacija=1|publisher=p", 1)
    with pytest.raises(ValueError):
        parse_publisher_message("operacija=1|publisher=p|maxsize=-4", 1)


def test_too_long_message_raises():
    with pytest.raises(ValueError):
        parse_publisher_message(text_message("p", "x" * 300), 1)


def test_publisher_list_round_trip():
    ids = [12345, 50000, 50001]
    assert parse_publisher_list(format_publisher_ids(ids)) == ids


def test_empty_publisher_list():
    assert format_publisher_ids([]) == NO_PUBLISHERS
    assert parse_publisher_list(NO_PUBLISHERS) == []


def test_publisher_list_overflow_raises():
    with pytest.raises(ValueError):
        format_publisher_ids(list(range(10000, 10300)))


def test_publisher_list_parsing_caps_at_hundred():
    text = ",".join(str(n) for n in range(150))
    assert parse_publisher_list(text) == list(range(100))


@pytest.mark.parametrize("pid", [0, 12345, 50049])
def test_subscribe_round_trip(pid):
    assert parse_subscriber_request(subscribe_request(pid)) == SubscriberRequest(
        SubscriberRequestKind.SUBSCRIBE, pid
    )
    assert parse_subscriber_request(unsubscribe_request(pid)) == SubscriberRequest(
        SubscriberRequestKind.UNSUBSCRIBE, pid
    )


def test_subscribe_wire_format():
    assert subscribe_request(12345) == b"subscribe:12345"
    assert unsubscribe_request(12345) == b"unsubscribe:12345"


def test_get_publishers_request():
    request = parse_subscriber_request(b"get_publishers")
    assert request.kind is SubscriberRequestKind.GET_PUBLISHERS
    assert request.publisher_id is None


def test_unknown_subscriber_request_raises():
    with pytest.raises(ValueError):
        parse_subscriber_request(b"hello")