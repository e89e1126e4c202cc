# tests/test_live_transcript_service.py
import threading
import pytest
from unittest.mock import Mock

from captionmirror.ReconcilerConfig import ReconcilerConfig
from captionmirror.TranscriptPublisher import TranscriptPublisher
from captionmirror.types import MatchCase


class HangingSource:
    """Source whose reads block on a gate while `hang` is set."""

    def __init__(self, text):
        self.text = text
        self.hang = False
        self.gate = threading.Event()
        self._handler = None

    def attach(self):
        return True

    def detach(self):
        pass

    def set_text_changed_handler(self, handler):
        self._handler = handler

    def read_current_text(self):
        if self.hang:
            self.gate.wait(5.0)
        return self.text


class TestLifecycle:

    def test_start_seeds_history_and_suppresses_baseline(self, make_service):
        service, source = make_service(["Hello"])

        assert service.start() is True
        assert source.attached
        assert service.is_running()
        assert service.capture_state.get_state() == 'running'
        assert service.get_full_transcript() == "Hello"
        assert service.get_unsent_delta() == ""
        assert service.previous_snapshot() == "Hello"

    def test_start_twice_is_harmless(self, make_service):
        service, source = make_service(["Hello"])

        assert service.start()
        assert service.start()
        assert source.read_count == 1

    def test_start_returns_false_when_source_unavailable(self, make_service):
        service, _ = make_service(["Hello"], available=False)

        assert service.start() is False
        assert not service.is_running()
        assert service.capture_state.get_state() == 'idle'

    def test_start_returns_false_when_attach_raises(self, make_service):
        service, source = make_service(["Hello"])
        source.attach = Mock(side_effect=OSError("no window"))

        assert service.start() is False

    def test_initial_read_failure_starts_with_empty_history(self, make_service):
        service, _ = make_service([RuntimeError("not ready"), "Hello"])

        assert service.start()
        assert service.get_full_transcript() == ""

        result = service.tick()
        assert result.appended == "Hello"

    def test_stop_is_idempotent_and_preserves_history(self, make_service):
        service, source = make_service(["Hello", "Hello world"])
        service.start()
        service.tick()

        service.stop()
        service.stop()

        assert not service.is_running()
        assert not source.attached
        assert service.capture_state.get_state() == 'stopped'
        assert service.get_full_transcript() == "Hello world"
        assert service.get_unsent_delta() == " world"
        assert service.tick().status == 'skipped'

    def test_consumer_calls_before_start(self, make_service):
        service, _ = make_service(["Hello"])

        assert service.get_full_transcript() == ""
        assert service.get_unsent_delta() == ""
        service.mark_delta_sent()
        assert service.tick().status == 'skipped'


class TestTick:

    def test_append_reports_new_text(self, make_service):
        service, _ = make_service(["Hello world", "Hello world, how are you"])
        service.start()

        result = service.tick()

        assert result.status == 'matched'
        assert result.case is MatchCase.APPEND
        assert result.appended == ", how are you"
        assert result.changed
        assert service.get_unsent_delta() == ", how are you"

    def test_unchanged_snapshot_is_noop(self, make_service):
        service, _ = make_service(["Hello"])
        service.start()

        assert service.tick().status == 'unchanged'
        assert service.get_full_transcript() == "Hello"

    def test_no_match_advances_mirror(self, make_service):
        service, _ = make_service(["abc", "xyz", "xyz and more"])
        service.start()

        result = service.tick()
        assert result.case is MatchCase.NO_MATCH
        assert not result.changed
        assert service.get_full_transcript() == "abc"
        assert service.previous_snapshot() == "xyz"

        # Growth after a reset is picked up against the new mirror
        assert service.tick().appended == " and more"
        assert service.get_full_transcript() == "abc and more"

    def test_read_failure_skips_tick(self, make_service):
        service, _ = make_service(["Hello", RuntimeError("window closed"), "Hello again"])
        service.start()

        assert service.tick().status == 'read_failed'
        assert service.previous_snapshot() == "Hello"

        assert service.tick().appended == " again"

    def test_blank_snapshot_does_not_replace_mirror(self, make_service):
        service, _ = make_service(["Hello", "\u200b", "Hello!"])
        service.start()

        assert service.tick().status == 'empty'
        assert service.previous_snapshot() == "Hello"
        assert service.tick().appended == "!"
        assert service.get_full_transcript() == "Hello!"

    def test_snapshots_are_normalized(self, make_service):
        service, _ = make_service(["line one\r\n", "line\u200b one\r\nline two"])
        service.start()

        service.tick()

        assert service.get_full_transcript() == "line one\nline two"

    def test_matcher_exception_is_logged_and_mirror_advances(self, make_service):
        service, _ = make_service(["Hello", "Hello world"])
        service.start()
        service.matcher.match = Mock(side_effect=RuntimeError("boom"))

        result = service.tick()

        assert result.status == 'error'
        assert service.previous_snapshot() == "Hello world"
        assert service.get_full_transcript() == "Hello"

    def test_tick_dropped_while_another_is_in_flight(self, make_service):
        service, _ = make_service(["Hello", "Hello world"])
        service.start()

        with service._tick_guard:
            assert service.tick().status == 'skipped'
            service.request_tick()
            assert service._signal_queue.empty()

        assert service.tick().appended == " world"

    def test_read_timeout_skips_tick(self, make_service):
        config = ReconcilerConfig(poll_interval_ms=60_000, read_timeout_ms=50)
        service, _ = make_service(config=config)
        source = HangingSource("Hello")
        service.source = source
        service.start()

        source.hang = True
        source.text = "Hello world"
        try:
            assert service.tick().status == 'read_failed'
            # The hung read still occupies the reader
            assert service.tick().status == 'read_failed'
        finally:
            source.hang = False
            source.gate.set()

        service._pending_read.result(timeout=2.0)
        assert service.tick().appended == " world"


class TestDeltaHarvesting:

    def test_idempotent_mark(self, make_service):
        service, _ = make_service(["Hello", "Hello world"])
        service.start()
        service.tick()

        service.mark_delta_sent()
        assert service.get_unsent_delta() == ""
        service.mark_delta_sent()
        assert service.get_unsent_delta() == ""

    def test_get_delta_and_advance_holds_whitespace_only_delta(self, make_service):
        service, _ = make_service(["Hello", "Hello ", "Hello world"])
        service.start()

        service.tick()
        assert service.get_delta_and_advance() == " "
        assert service.get_unsent_delta() == " "

        service.tick()
        assert service.get_delta_and_advance() == " world"
        assert service.get_delta_and_advance() == ""

    def test_clear_resets_history_and_baseline(self, make_service):
        service, _ = make_service(["Hello", "Hello world", "Hello world again"])
        service.start()
        service.tick()

        service.clear()

        assert service.get_full_transcript() == ""
        assert service.previous_snapshot() == ""
        assert service.sent_position() == 0

        # Everything on screen after a clear is new history, but the first
        # query snaps the baseline again
        service.tick()
        assert service.get_full_transcript() == "Hello world again"
        assert service.get_unsent_delta() == ""

    def test_restart_after_clear_suppresses_on_screen_text(self, make_service):
        service, _ = make_service(["Hello", "Hello world"])
        service.start()
        service.tick()
        service.stop()
        service.clear()

        assert service.start()

        assert service.get_full_transcript() == "Hello world"
        assert service.get_unsent_delta() == ""

    def test_eviction_shifts_sent_cursor(self, make_service):
        config = ReconcilerConfig(poll_interval_ms=60_000, max_history_chars=100)
        service, _ = make_service(["a" * 60, "a" * 60 + "b" * 50], config=config)
        service.start()
        assert service.sent_position() == 60

        result = service.tick()

        assert result.evicted == 20
        assert service.sent_position() == 40
        assert service.get_full_transcript() == "a" * 40 + "b" * 50
        assert service.get_unsent_delta() == "b" * 50

    def test_append_only_and_cursor_bound_over_rolling_buffer(self, make_service):
        s1 = "Good morning everyone and welcome to the weekly sync."
        s2 = s1 + " Today we review the release plan."
        s3 = s2[20:] + " Then questions."
        s4 = "[edited] " + s3[-40:] + " Thanks all."
        s5 = "totally different"
        service, _ = make_service([s1, s2, s3, s4, s5])
        service.start()

        previous = service.get_full_transcript()
        cases = []
        for _ in range(4):
            cases.append(service.tick().case)
            current = service.get_full_transcript()
            assert current.startswith(previous)
            assert 0 <= service.sent_position() <= len(current)
            previous = current

        assert cases == [MatchCase.APPEND, MatchCase.HEAD_ALIGNMENT, MatchCase.ANCHOR, MatchCase.NO_MATCH]
        assert previous == s2 + " Then questions. Thanks all."


class TestNotifications:

    def test_publishes_full_transcript_once_per_change(self, make_service):
        subscriber = Mock()
        service, _ = make_service(["Hello", "Hello world"])
        service.publisher.subscribe(subscriber)

        service.start()
        service.tick()
        service.tick()

        texts = [c.args[0] for c in subscriber.on_transcript_changed.call_args_list]
        assert texts == ["Hello", "Hello world"]

    def test_clear_publishes_empty_transcript(self, make_service):
        subscriber = Mock()
        service, _ = make_service(["Hello"])
        service.start()
        service.publisher.subscribe(subscriber)

        service.clear()

        subscriber.on_transcript_changed.assert_called_once_with("")

    def test_subscriber_may_call_back_into_service(self, make_service):
        publisher = TranscriptPublisher()
        service, _ = make_service(["Hello", "Hello world", "Hello world again"], publisher=publisher)
        harvested = []

        class Harvester:
            def on_transcript_changed(self, text):
                harvested.append(service.get_delta_and_advance())

        publisher.subscribe(Harvester())
        publisher.start()
        service.start()
        assert publisher.flush(timeout=2.0)
        service.tick()
        assert publisher.flush(timeout=2.0)
        service.tick()
        assert publisher.flush(timeout=2.0)

        assert harvested == ["", " world", " again"]


class TestLifecycleOrdering:
    """Notifications and capture state stay consistent when lifecycle calls race with ticks."""

    @pytest.mark.parametrize("dispatching", [False, True])
    def test_tick_during_start_is_not_overwritten_by_seed(self, make_service, wait_until, dispatching):
        service, source = make_service(["Hello"])
        received = []
        subscriber = Mock()
        subscriber.on_transcript_changed.side_effect = received.append
        service.publisher.subscribe(subscriber)
        if dispatching:
            service.publisher.start()

        def on_state(old_state, new_state):
            # Text changes while start() is still finishing
            if new_state == 'running':
                source.extend("Hello world")
                assert wait_until(lambda: service.get_full_transcript() == "Hello world")

        service.capture_state.register_component_observer(on_state)

        assert service.start()
        assert service.publisher.flush(timeout=2.0)

        assert received[-1] == service.get_full_transcript() == "Hello world"

    def test_clear_is_not_overwritten_by_earlier_tick_payload(self, make_service):
        service, _ = make_service(["Hello", "Hello world"])
        received = []
        subscriber = Mock()
        subscriber.on_transcript_changed.side_effect = received.append
        service.publisher.subscribe(subscriber)
        service.start()

        publish = service.publisher.publish
        cleared = []

        def publish_after_clear(text, revision=None):
            # clear() lands between the tick taking its payload and publishing it
            if text == "Hello world" and not cleared:
                cleared.append(True)
                service.clear()
            publish(text, revision=revision)

        service.publisher.publish = publish_after_clear
        service.tick()

        assert service.get_full_transcript() == ""
        assert received == ["Hello", ""]

    def test_start_while_stop_is_finishing(self, make_service):
        service, _ = make_service(["Hello"])
        service.start()
        state = service.capture_state
        set_state = state.set_state
        errors = []

        def start_in_background():
            try:
                service.start()
            except Exception as e:
                errors.append(e)

        starter = threading.Thread(target=start_in_background)

        def set_state_racing_start(new_state):
            if new_state == 'stopped' and starter.ident is None:
                starter.start()
                starter.join(timeout=0.2)
            set_state(new_state)

        state.set_state = set_state_racing_start

        service.stop()
        starter.join(timeout=2.0)

        assert errors == []
        assert service.is_running()
        assert state.get_state() == 'running'

    def test_concurrent_start_stop_keep_state_in_sync(self, make_service):
        service, _ = make_service(["Hello"])
        errors = []

        def toggle(action):
            try:
                for _ in range(20):
                    action()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=toggle, args=(service.start,)),
                   threading.Thread(target=toggle, args=(service.stop,))]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10.0)

        assert errors == []
        expected = 'running' if service.is_running() else 'stopped'
        assert service.capture_state.get_state() == expected


class TestScheduling:

    def test_text_changed_signal_triggers_tick(self, make_service, wait_until):
        service, source = make_service(["Hello"])
        service.start()

        source.extend("Hello world")

        assert wait_until(lambda: service.get_full_transcript() == "Hello world")

    def test_timer_drives_ticks(self, make_service, wait_until):
        config = ReconcilerConfig(poll_interval_ms=20)
        service, _ = make_service(["Hello", "Hello world"], config=config)
        service.start()

        assert wait_until(lambda: service.get_full_transcript() == "Hello world")

    def test_signal_ignored_after_stop(self, make_service):
        service, _ = make_service(["Hello"])
        service.start()
        service.stop()

        service.request_tick()

        assert service._signal_queue.empty()
