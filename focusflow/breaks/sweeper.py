"""
Overdue sweep: background task that escalates breaks nobody is polling.

Clients still call the escalate endpoint while they watch a session; the sweep
covers participants whose browser is closed. Both paths go through the same
conditional write, so an escalation happens once whichever arrives first.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .state_machine import BreakStateMachine

logger = logging.getLogger(__name__)


async def overdue_sweep_loop(
    machine: BreakStateMachine,
    clock: Callable[[], float],
    interval_s: float,
) -> None:
    while True:
        await asyncio.sleep(interval_s)
        try:
            escalated = await machine.sweep_overdue(clock())
            if escalated:
                logger.info("Overdue sweep escalated %d break(s)", escalated)
        except Exception:
            logger.exception("Overdue sweep failed")
