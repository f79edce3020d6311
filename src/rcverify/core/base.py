"""Base classes for configuration and state models.

- Closeable Protocol for anything holding open resources
- BaseCloseable, which closes its Closeable fields on close()
- BaseConfig and BaseState, semantic markers for config vs runtime

Kept apart from config.py so that log.py can import them without a
circular import.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Protocol for objects that support close()."""

    def close(self) -> None:
        ...


class BaseCloseable(BaseModel):
    """Pydantic model that closes its Closeable children.

    Usable as a context manager. close() walks the model fields and
    calls close() on each child that has it, carrying on past
    failures so one broken sink cannot keep a log file open:

        Config.close() -> Logger.close() -> FileSink.close()
    """

    def close(self):
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None:
                continue

            if isinstance(child, Closeable):
                try:
                    child.close()
                except Exception as e:
                    print(
                        f"Warning: Error closing {field_name}: {e}",
                        file=sys.stderr,
                    )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Marker for configuration sections (YAML/env/CLI)."""
    pass


class BaseState(BaseCloseable):
    """Marker for runtime state sections (mutated while running)."""
    pass


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]
