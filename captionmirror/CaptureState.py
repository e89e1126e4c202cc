# captionmirror/CaptureState.py
import threading
from typing import Callable, List, Tuple


IDLE = 'idle'
RUNNING = 'running'
STOPPED = 'stopped'

StateObserver = Callable[[str, str], None]


class CaptureState:
    """Whether the caption mirror is reconciling: idle, running or stopped.

    LiveTranscriptService moves the state on start() and stop(); views and
    other components watch it. A capture can be restarted after a stop, but
    never returns to idle.

    Observers receive (old_state, new_state) after the change is committed.
    Observers registered with register_gui_observer() are handed to the tk
    main loop when the change happens on a worker thread.

    Args:
        root: tkinter root used to reach the main loop, may be set later
    """

    _NEXT_STATES = {
        IDLE: (RUNNING,),
        RUNNING: (STOPPED,),
        STOPPED: (RUNNING,),
    }

    def __init__(self, root=None):
        self._root = root
        self._state: str = IDLE
        self._lock = threading.Lock()
        # (observer, needs_main_thread)
        self._observers: List[Tuple[StateObserver, bool]] = []

    def set_tk_root(self, root) -> None:
        self._root = root

    def get_state(self) -> str:
        with self._lock:
            return self._state

    def is_running(self) -> bool:
        return self.get_state() == RUNNING

    def set_state(self, new_state: str) -> None:
        """Commit a transition, then notify observers outside the lock.

        Raises:
            ValueError: if new_state is not reachable from the current state
        """
        with self._lock:
            old_state = self._state
            if new_state not in self._NEXT_STATES[old_state]:
                raise ValueError(f"Invalid state transition: {old_state} -> {new_state}")
            self._state = new_state
            observers = list(self._observers)

        for observer, needs_main_thread in observers:
            if needs_main_thread:
                self._call_on_main_thread(observer, old_state, new_state)
            else:
                observer(old_state, new_state)

    def register_component_observer(self, observer: StateObserver) -> None:
        with self._lock:
            self._observers.append((observer, False))

    def register_gui_observer(self, observer: StateObserver) -> None:
        with self._lock:
            self._observers.append((observer, True))

    def _call_on_main_thread(self, observer: StateObserver, old_state: str, new_state: str) -> None:
        root = self._root
        if root is None or threading.current_thread() is threading.main_thread():
            observer(old_state, new_state)
            return
        try:
            root.after(0, observer, old_state, new_state)
        except RuntimeError:
            # No main loop to schedule on
            observer(old_state, new_state)
