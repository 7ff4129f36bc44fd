import logging
import signal
import sys
from typing import Optional

from taskservice.app.core.lifecycle import ConnectionManager

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownCoordinator:
    """Releases the store connection on SIGINT/SIGTERM and exits with code 0.

    uvicorn swaps in its own handlers while serving and re-raises the captured
    signal once its graceful shutdown is done; that re-raise lands here.
    """

    def __init__(self, manager: ConnectionManager) -> None:
        self.manager = manager
        self.received: Optional[int] = None

    def install(self) -> None:
        for sig in HANDLED_SIGNALS:
            signal.signal(sig, self.handle)

    def handle(self, signum, _frame) -> None:
        self.received = signum
        logger.info("Signal %s received, shutting down...", signal.Signals(signum).name)
        self.manager.close()
        sys.exit(0)
