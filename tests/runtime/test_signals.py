from mnemos.runtime.memory.signals import Signal, SignalHub


def test_emit_calls_handlers_in_connection_order():
    hub = SignalHub()
    calls = []
    hub.connect(Signal.EVENT_RECEIVED, lambda value: calls.append(("first", value)))
    hub.connect("event_received", lambda value: calls.append(("second", value)))

    assert hub.emit(Signal.EVENT_RECEIVED, 7) == 2
    assert calls == [("first", 7), ("second", 7)]


def test_failing_handler_does_not_block_others():
    hub = SignalHub()
    seen = []

    def broken(_):
        raise RuntimeError("observer bug")

    hub.connect(Signal.GRAPH_UPDATED, broken)
    hub.connect(Signal.GRAPH_UPDATED, seen.append)
    hub.emit(Signal.GRAPH_UPDATED, {"total_nodes": 1})
    assert seen == [{"total_nodes": 1}]


def test_disconnect():
    hub = SignalHub()
    handler = hub.connect(Signal.DATA, lambda _: None)
    assert hub.receivers(Signal.DATA) == 1
    assert hub.disconnect(Signal.DATA, handler) is True
    assert hub.disconnect(Signal.DATA, handler) is False
    assert hub.emit(Signal.DATA, None) == 0
