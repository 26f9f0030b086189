"""
Store Listener - Notification hooks for LogStore mutations

Listeners are invoked while the store lock is held, in the writer's thread.
Implementations must be quick and must never call back into the store's
mutating operations.
"""


class StoreListener:
    """Base class with no-op hooks; override what you need"""

    def on_append(self, line) -> None:
        pass

    def on_evict(self, first_seq: int) -> None:
        pass

    def on_clear(self) -> None:
        pass

    def on_ruleset(self, ruleset) -> None:
        pass
