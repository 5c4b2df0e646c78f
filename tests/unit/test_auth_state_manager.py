import logging

from signal_edge.core.auth.state import AuthEvent, AuthStateManager


def test_listener_registration_is_idempotent_by_id() -> None:
    manager = AuthStateManager()
    calls: list[str] = []

    manager.add_listener(lambda e, s: calls.append("first"), listener_id="index_page")
    manager.add_listener(lambda e, s: calls.append("second"), listener_id="index_page")

    assert len(manager) == 1
    assert manager.notify(AuthEvent.SIGNED_IN, {"access_token": "t"}) == 1
    assert calls == ["second"]


def test_remove_listener() -> None:
    manager = AuthStateManager()
    lid = manager.add_listener(lambda e, s: None)
    assert manager.has_listener(lid)
    assert manager.remove_listener(lid) is True
    assert manager.remove_listener(lid) is False
    assert manager.notify(AuthEvent.SIGNED_OUT) == 0


def test_event_filter_and_session_tracking() -> None:
    manager = AuthStateManager()
    seen: list[AuthEvent] = []
    manager.add_listener(lambda e, s: seen.append(e), listener_id="sign_out_only", events=[AuthEvent.SIGNED_OUT])

    manager.notify("SIGNED_IN", {"access_token": "t"})
    assert manager.session == {"access_token": "t"}
    assert seen == []

    manager.notify(AuthEvent.SIGNED_OUT, {"access_token": "ignored"})
    assert manager.session is None
    assert manager.last_event is AuthEvent.SIGNED_OUT
    assert seen == [AuthEvent.SIGNED_OUT]


def test_failing_listener_does_not_block_others(caplog) -> None:
    manager = AuthStateManager()
    calls: list[str] = []

    def broken(event, session):
        raise RuntimeError("boom")

    manager.add_listener(broken, listener_id="broken")
    manager.add_listener(lambda e, s: calls.append(e.value), listener_id="ok")

    with caplog.at_level(logging.ERROR):
        delivered = manager.notify(AuthEvent.TOKEN_REFRESHED)

    assert delivered == 1
    assert calls == ["TOKEN_REFRESHED"]
    assert "auth_state.listener_failed id=broken" in caplog.text
