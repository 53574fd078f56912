import logging
from typing import Deque, List

logger = logging.getLogger(__name__)

SEPARATOR = "\n"


def split_text(text: str, max_length: int) -> List[str]:
    """Split text into consecutive fragments of at most max_length characters."""
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got: {max_length}")
    return [text[i : i + max_length] for i in range(0, len(text), max_length)]


def pack_pending(pending: Deque[str], chunks: Deque[str], max_length: int) -> int:
    """
    Drain pending text units into size-bounded chunks.

    ``pending`` is consumed from the left (oldest first). ``chunks`` keeps the
    newest chunk on the left and the oldest on the right, so senders pop from
    the right while new text is coalesced onto ``chunks[0]``.

    Empty units are dropped. Oversized units are split and the fragments
    pushed back onto the left of ``pending`` in their original order before
    packing continues.

    Returns:
        Number of units (after splitting) that were packed.
    """
    packed = 0

    while pending:
        unit = pending.popleft()

        if not unit:
            continue

        if len(unit) > max_length:
            fragments = split_text(unit, max_length)
            pending.extendleft(reversed(fragments))
            logger.debug(f"Split {len(unit)} chars into {len(fragments)} fragments")
            continue

        if not chunks:
            chunks.appendleft(unit)
        else:
            combined = chunks[0] + SEPARATOR + unit
            if len(combined) > max_length:
                chunks.appendleft(unit)
            else:
                chunks[0] = combined
        packed += 1

    return packed
