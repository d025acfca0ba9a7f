"""Modal overlay stack.

Only the top modal is active; closing it reveals the one below.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Modal:
    type: str
    props: Dict[str, Any] = field(default_factory=dict)


class ModalStack:
    """LIFO stack of open modals."""

    def __init__(self):
        self._stack: List[Modal] = []

    def open(self, modal_type: str, props: Optional[Dict[str, Any]] = None) -> Modal:
        modal = Modal(type=modal_type, props=dict(props or {}))
        self._stack.append(modal)
        return modal

    def close(self) -> Optional[Modal]:
        """Close the active modal; returns it, or None when nothing is open."""
        if not self._stack:
            return None
        return self._stack.pop()

    def close_all(self) -> None:
        self._stack.clear()

    @property
    def active(self) -> Optional[Modal]:
        return self._stack[-1] if self._stack else None

    @property
    def is_open(self) -> bool:
        return bool(self._stack)

    def __len__(self) -> int:
        return len(self._stack)

    def types(self) -> List[str]:
        """Modal types from bottom to top."""
        return [m.type for m in self._stack]
