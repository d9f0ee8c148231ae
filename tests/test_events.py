from solveitsmart.events import EventBus, EventKind, SessionEvent
from solveitsmart.ui.state import ViewState


def test_subscribe_and_unsubscribe() -> None:
    """Subscribers receive events until they unsubscribe."""
    bus = EventBus()
    received: list[SessionEvent] = []
    unsubscribe = bus.subscribe(received.append)

    bus.stream("partial")
    unsubscribe()
    bus.stream("ignored")

    assert received == [SessionEvent(EventKind.STREAM, text="partial")]


def test_failing_subscriber_does_not_block_others() -> None:
    """An exception in one subscriber is logged and the rest still run."""
    bus = EventBus()
    received: list[SessionEvent] = []

    def _broken(event: SessionEvent) -> None:
        raise ValueError("bad subscriber")

    bus.subscribe(_broken)
    bus.subscribe(received.append)
    bus.response("done")

    assert received[0].text == "done"


def test_view_state_tracks_generation() -> None:
    """The view shows the stream while generating and the response afterwards."""
    view = ViewState()
    view.apply(SessionEvent(EventKind.READY, flag=True))
    view.apply(SessionEvent(EventKind.GENERATING, flag=True))
    view.apply(SessionEvent(EventKind.STREAM, text="1. Add"))
    assert view.visible_text == "1. Add"

    view.apply(SessionEvent(EventKind.RESPONSE, text="1. Add $$2+2=4$$"))
    view.apply(SessionEvent(EventKind.GENERATING, flag=False))
    assert view.visible_text == "1. Add $$2+2=4$$"
    assert view.is_ready is True

    view.apply(SessionEvent(EventKind.RESET))
    assert view.response_text == ""
