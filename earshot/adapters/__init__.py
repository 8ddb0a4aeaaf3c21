"""Output adapters for result events."""

from earshot.adapters.base import Adapter, DictAdapter, CallbackAdapter

__all__ = [
    "Adapter",
    "DictAdapter",
    "CallbackAdapter",
]
