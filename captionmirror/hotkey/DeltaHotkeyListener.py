import logging
import threading
from typing import Any, Callable, Dict, Optional


_MODIFIERS = {
    'ctrl': '<ctrl>',
    'control': '<ctrl>',
    'alt': '<alt>',
    'shift': '<shift>',
    'cmd': '<cmd>',
    'win': '<cmd>',
}

_SPECIAL_KEYS = {
    'space': '<space>',
    'enter': '<enter>',
    'tab': '<tab>',
    'escape': '<esc>',
    'esc': '<esc>',
    'up': '<up>',
    'down': '<down>',
    'left': '<left>',
    'right': '<right>',
    **{f'f{n}': f'<f{n}>' for n in range(1, 13)},
}


def to_pynput_hotkey(hotkey: str) -> str:
    """Convert a 'ctrl+shift+/' style hotkey into pynput's '<ctrl>+<shift>+/' format.

    Modifiers are emitted first in the order given; exactly one non-modifier
    key is required.

    Raises:
        ValueError: on unknown keys, a missing key or more than one key
    """
    modifiers = []
    target: Optional[str] = None

    # '+' itself can't be bound: it is the separator
    for part in hotkey.lower().split('+'):
        part = part.strip()
        if not part:
            raise ValueError(f"Empty key in hotkey: {hotkey!r}")

        if part in _MODIFIERS:
            token = _MODIFIERS[part]
            if token not in modifiers:
                modifiers.append(token)
            continue

        if part in _SPECIAL_KEYS:
            token = _SPECIAL_KEYS[part]
        elif len(part) == 1:
            token = part
        else:
            raise ValueError(f"Unknown key in hotkey: {part}")

        if target is not None:
            raise ValueError(f"Multiple non-modifier keys in hotkey: {hotkey}")
        target = token

    if target is None:
        raise ValueError(f"No target key found in hotkey: {hotkey}")

    return '+'.join(modifiers + [target])


class DeltaHotkeyListener:
    """Global hotkey that harvests the unsent transcript delta.

    Wraps pynput's GlobalHotKeys listener. pynput is imported when the
    listener starts, so the rest of the application (and its tests) runs on
    machines without a keyboard backend.

    Args:
        hotkey: Hotkey in 'ctrl+shift+/' style
        callback: Called on the listener thread when the hotkey fires
        listener_factory: Builds the listener from {pynput_hotkey: handler};
            defaults to pynput.keyboard.GlobalHotKeys
        verbose: Enable verbose logging
    """

    def __init__(self,
                 hotkey: str,
                 callback: Callable[[], None],
                 listener_factory: Optional[Callable[[Dict[str, Callable[[], None]]], Any]] = None,
                 verbose: bool = False
                 ) -> None:
        self.hotkey: str = hotkey
        self.pynput_hotkey: str = to_pynput_hotkey(hotkey)
        self._callback = callback
        self._listener_factory = listener_factory
        self._verbose = verbose
        self._listener: Optional[Any] = None
        self._lock = threading.Lock()

        if verbose:
            logging.info(f"DeltaHotkeyListener: parsed '{hotkey}' -> '{self.pynput_hotkey}'")

    def is_listening(self) -> bool:
        with self._lock:
            return self._listener is not None

    def start(self) -> None:
        with self._lock:
            if self._listener is not None:
                return

            factory = self._listener_factory
            if factory is None:
                from pynput import keyboard
                factory = keyboard.GlobalHotKeys

            listener = factory({self.pynput_hotkey: self._on_activate})
            listener.daemon = True
            listener.start()
            self._listener = listener

        if self._verbose:
            logging.info("DeltaHotkeyListener: started")

    def stop(self) -> None:
        with self._lock:
            listener = self._listener
            self._listener = None

        if listener is None:
            return
        listener.stop()

        if self._verbose:
            logging.info("DeltaHotkeyListener: stopped")

    def _on_activate(self) -> None:
        if self._verbose:
            logging.info("DeltaHotkeyListener: hotkey triggered")
        try:
            self._callback()
        except Exception as e:
            logging.error(f"DeltaHotkeyListener: callback failed: {e}", exc_info=True)
