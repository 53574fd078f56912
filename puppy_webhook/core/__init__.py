# Core batching and scheduling logic

from .delay import next_delay
from .packing import pack_pending, split_text

__all__ = ["next_delay", "pack_pending", "split_text"]
