# bugzillabot/cache.py
import enum
import threading

from .errors import TransportError


class SlotState(enum.Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    FAILED = "failed"


class CacheSlot:
    """Write-once storage for a lazily computed value.

    The first `resolve()` runs the loader under a lock, so concurrent first
    access on one instance loads once. A loader error other than a
    TransportError is kept and re-raised on later calls; transport failures
    leave the slot unresolved so the next call tries again.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = SlotState.UNRESOLVED
        self._value = None
        self._error = None

    @property
    def state(self) -> SlotState:
        return self._state

    @property
    def error(self):
        return self._error

    def resolve(self, loader):
        if self._state is SlotState.RESOLVED:
            return self._value
        with self._lock:
            if self._state is SlotState.UNRESOLVED:
                try:
                    self._value = loader()
                except TransportError:
                    raise
                except Exception as e:
                    self._error = e
                    self._state = SlotState.FAILED
                    raise
                self._state = SlotState.RESOLVED
            elif self._state is SlotState.FAILED:
                raise self._error
            return self._value

    def reset(self) -> None:
        with self._lock:
            self._state = SlotState.UNRESOLVED
            self._value = None
            self._error = None
