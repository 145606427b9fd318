import pytest

from conftest import drain
from exceptions import InvalidMessageError, UnknownConnectionError
from negotiation import RouteOutcome
from relay import SignalingRelay


@pytest.fixture
async def pair(relay):
    a, b = relay.connect(), relay.connect()
    await relay.join(a.connection_id, "r1")
    await relay.join(b.connection_id, "r1")
    drain(a)
    drain(b)
    return a, b


async def test_offer_is_delivered_verbatim(relay, pair):
    a, b = pair
    payload = {"target": b.connection_id, "caller": a.connection_id, "sdp": "X"}

    outcome = relay.route("offer", a.connection_id, payload)

    assert outcome is RouteOutcome.DELIVERED
    assert drain(b) == [{"event": "offer", "data": payload}]
    assert drain(a) == []


async def test_answer_keeps_extra_fields(relay, pair):
    a, b = pair
    payload = {
        "target": a.connection_id,
        "caller": b.connection_id,
        "sdp": {"type": "answer", "sdp": "v=0"},
        "renegotiation": True,
    }

    assert relay.route("answer", b.connection_id, payload) is RouteOutcome.DELIVERED
    assert drain(a) == [{"event": "answer", "data": payload}]


async def test_ice_candidate_delivers_only_candidate(relay, pair):
    a, b = pair
    candidate = {"candidate": "candidate:1 1 udp 2122260223 10.0.0.1 54400 typ host", "sdpMid": "0"}

    relay.route("ice-candidate", a.connection_id, {"target": b.connection_id, "candidate": candidate})

    assert drain(b) == [{"event": "ice-candidate", "data": candidate}]


async def test_messages_to_one_target_keep_their_order(relay, pair):
    a, b = pair
    relay.route("offer", a.connection_id, {"target": b.connection_id, "caller": a.connection_id, "sdp": "o"})
    for n in range(3):
        relay.route("ice-candidate", a.connection_id, {"target": b.connection_id, "candidate": n})

    events = drain(b)

    assert [e["event"] for e in events] == ["offer", "ice-candidate", "ice-candidate", "ice-candidate"]
    assert [e["data"] for e in events[1:]] == [0, 1, 2]


async def test_unknown_target_is_unreachable_without_side_effects(relay, pair):
    a, b = pair
    before = relay.rooms_snapshot()

    outcome = relay.route("offer", a.connection_id, {"target": "gone", "caller": a.connection_id, "sdp": "X"})

    assert outcome is RouteOutcome.TARGET_UNREACHABLE
    assert relay.rooms_snapshot() == before
    assert relay.connection_count == 2
    assert drain(a) == []
    assert drain(b) == []


async def test_disconnected_target_is_unreachable(relay, pair):
    a, b = pair
    await relay.disconnect(b.connection_id)

    outcome = relay.route("answer", a.connection_id, {"target": b.connection_id, "sdp": "X"})

    assert outcome is RouteOutcome.TARGET_UNREACHABLE


async def test_routing_from_disconnected_sender_raises(relay, pair):
    a, b = pair
    await relay.disconnect(a.connection_id)

    with pytest.raises(UnknownConnectionError):
        relay.route("offer", a.connection_id, {"target": b.connection_id, "sdp": "X"})


@pytest.mark.parametrize("payload", [
    "not-an-object",
    {"sdp": "X"},
    {"target": 42, "sdp": "X"},
])
async def test_payload_without_target_is_invalid(relay, pair, payload):
    a, _ = pair
    with pytest.raises(InvalidMessageError):
        relay.route("offer", a.connection_id, payload)


async def test_non_negotiation_kind_is_invalid(relay, pair):
    a, b = pair
    with pytest.raises(InvalidMessageError):
        relay.route("join-room", a.connection_id, {"target": b.connection_id})
    with pytest.raises(InvalidMessageError):
        relay.route("chat", a.connection_id, {"target": b.connection_id})


async def test_stalled_target_is_closed_when_outbox_fills():
    relay = SignalingRelay(outbox_limit=3)
    a, b = relay.connect(), relay.connect()
    await relay.join(a.connection_id, "r1")
    await relay.join(b.connection_id, "r1")
    drain(a)
    drain(b)

    outcomes = [
        relay.route("ice-candidate", a.connection_id, {"target": b.connection_id, "candidate": n})
        for n in range(5)
    ]

    assert outcomes[:3] == [RouteOutcome.DELIVERED] * 3
    assert outcomes[3:] == [RouteOutcome.TARGET_UNREACHABLE] * 2
    assert b.closed
    assert [e["data"] for e in drain(b)] == [0, 1, 2]

    # Cleanup still tells the peer once the stalled side goes away
    await relay.disconnect(b.connection_id)
    assert drain(a) == [{"event": "peer-left", "data": b.connection_id}]
