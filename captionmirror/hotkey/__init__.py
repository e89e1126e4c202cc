"""Global hotkey for harvesting the transcript delta."""
from captionmirror.hotkey.DeltaHotkeyListener import DeltaHotkeyListener, to_pynput_hotkey

__all__ = ['DeltaHotkeyListener', 'to_pynput_hotkey']
