"""
Single-value signals.

A :class:`Signal` remembers the latest emitted value and notifies its
slots with ``(value, previous)``. With ``emit_on_value_changed`` an equal
value is not re-emitted. :class:`BroadcastedSignal` mirrors every
successful emit to peers over a channel.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, Literal, TypeVar

from scopebus.channels.base import Channel, ChannelFactory
from scopebus.channels.local import get_channel_registry
from scopebus.core.ids import generate_unique_id
from scopebus.errors import Disposed
from scopebus.events.models import Subscription
from scopebus.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Slot = Callable[[Any, Any], Any]

_UNSET: Any = object()


class Signal(Generic[T]):
    """
    Change-gated value notifier.

    Args:
        name: Signal name
        emit_on_value_changed: Skip emits whose value equals the latest value
    """

    def __init__(self, name: str, emit_on_value_changed: bool = False) -> None:
        self.name = name
        self.emit_on_value_changed = emit_on_value_changed
        self._latest_value: Any = _UNSET
        self._slots: dict[str, Slot] = {}
        # callback -> slot id; slots already own the callbacks
        self._inverse_slots: dict[Slot, str] = {}

    @property
    def latest_value(self) -> T | None:
        return None if self._latest_value is _UNSET else self._latest_value

    def _equal(self, value: T) -> bool:
        if self._latest_value is _UNSET:
            return False
        return value is self._latest_value or value == self._latest_value

    def _delete(self, slot_id: str) -> bool:
        slot = self._slots.pop(slot_id, None)
        if slot is None:
            return False
        if self._inverse_slots.get(slot) == slot_id:
            del self._inverse_slots[slot]
        return True

    def emit(self, value: T) -> int | Literal[False]:
        """
        Store ``value`` and notify every slot.

        Returns:
            ``False`` if change gating skipped the emit, otherwise the number
            of slots invoked. A slot that raises is still counted and later
            slots still run; the first error is re-raised afterwards.
        """
        if self.emit_on_value_changed and self._equal(value):
            return False
        previous = self.latest_value
        self._latest_value = value
        count = 0
        error: Exception | None = None
        for slot_id, slot in list(self._slots.items()):
            try:
                slot(value, previous)
            except Exception as exc:
                logger.warning(
                    "signal_slot_error", signal=self.name, slot_id=slot_id, error=repr(exc)
                )
                if error is None:
                    error = exc
            finally:
                count += 1
        if error is not None:
            raise error
        return count

    def subscribe(self, fn: Slot) -> Subscription:
        """Register ``fn``; a callback already subscribed is re-registered."""
        if not callable(fn):
            raise TypeError("signal slots must be callable")
        previous_id = self._inverse_slots.get(fn)
        if previous_id is not None:
            self._delete(previous_id)
        slot_id = generate_unique_id()
        self._slots[slot_id] = fn
        self._inverse_slots[fn] = slot_id
        return Subscription(id=slot_id, _remove=lambda: self._delete(slot_id))

    def disconnect(self, target: str | Slot) -> bool:
        """Remove a slot by id or by callback."""
        if isinstance(target, str):
            return self._delete(target)
        if callable(target):
            slot_id = self._inverse_slots.get(target)
            return self._delete(slot_id) if slot_id is not None else False
        raise TypeError("disconnect expects a slot id or a callback")

    def clear(self) -> None:
        self._slots.clear()
        self._inverse_slots.clear()

    def __len__(self) -> int:
        return len(self._slots)


class BroadcastedSignal(Signal[T]):
    """
    Signal whose emits are mirrored to peers over a channel.

    The channel name is derived from the class name and the signal name, so
    every context constructing the same signal shares one channel.
    Emitted values must be structurally serializable.
    """

    def __init__(
        self,
        name: str,
        emit_on_value_changed: bool = False,
        *,
        channel_factory: ChannelFactory | None = None,
    ) -> None:
        super().__init__(name, emit_on_value_changed)
        self.channel_name = f"{type(self).__name__}{name}"
        factory = channel_factory or get_channel_registry()
        self._channel: Channel = factory(self.channel_name)
        self._channel.on_message(self._on_channel_message)
        self.state: Literal["online", "disposed"] = "online"

    def _on_channel_message(self, value: T) -> None:
        # Local delivery only; never re-posted
        Signal.emit(self, value)

    def emit(self, value: T) -> int | Literal[False]:
        if self.state == "disposed":
            raise Disposed(f"Signal {self.name!r}")
        self._channel.check_post()
        try:
            result = super().emit(value)
        except Exception:
            self._channel.post(value)
            raise
        if result is not False:
            self._channel.post(value)
        return result

    def dispose(self) -> None:
        if self.state == "disposed":
            return
        self._channel.close()
        self.clear()
        self.state = "disposed"
        logger.info("signal_disposed", signal=self.name, channel=self.channel_name)
