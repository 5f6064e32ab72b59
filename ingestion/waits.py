"""
Cancellable waits used at every suspension point of a fetch run
"""

import asyncio
from typing import Optional

from core.exceptions import OperationCancelled


def raise_if_cancelled(cancel_event: Optional[asyncio.Event], **context) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelled("Cancellation requested", context=dict(context))


async def cancellable_sleep(
    seconds: float,
    cancel_event: Optional[asyncio.Event] = None,
    **context
) -> None:
    """
    Sleep for ``seconds`` unless ``cancel_event`` is set first.

    Raises:
        OperationCancelled: If the event is set before or during the wait
    """
    raise_if_cancelled(cancel_event, **context)

    if cancel_event is None:
        await asyncio.sleep(max(seconds, 0))
        return

    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=max(seconds, 0))
    except asyncio.TimeoutError:
        return

    raise OperationCancelled(
        "Cancellation requested",
        context={"interrupted_wait": seconds, **context}
    )
