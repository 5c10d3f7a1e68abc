import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Literal

from splitbook.schemas.balances import GroupBalanceOut

logger = logging.getLogger(__name__)

RefreshReason = Literal["expense", "settlement", "membership", "manual"]


@dataclass(frozen=True)
class GroupRefreshed:
    group_id: str
    reason: RefreshReason
    report: GroupBalanceOut


Listener = Callable[[GroupRefreshed], Awaitable[None]]


class RefreshHub:
    """
    Fan-out point for "balances of this group changed".

    Listeners get the freshly recomputed report, in subscription order.
    """

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def notify(self, event: GroupRefreshed):
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception:
                # one broken listener must not starve the others
                logger.exception(
                    "Refresh listener %r failed for group %s", listener, event.group_id
                )


async def log_refresh(event: GroupRefreshed):
    logger.info(
        "Group %s recomputed after %s: %d transfer(s) pending, %d issue(s)",
        event.group_id,
        event.reason,
        len(event.report.settlements),
        len(event.report.issues),
    )
