"""Graceful stop of the decision loop on process signals."""

import logging
import signal

logger = logging.getLogger(__name__)


class ShutdownService:
    """
    Stops the loop controller after its current cycle.

    The first SIGINT/SIGTERM clears the controller's ``running`` flag. A second
    one while the cycle is still finishing raises KeyboardInterrupt so an
    operator can force the process down.
    """

    def __init__(self, controller):
        self.controller = controller
        self.signal_received = None
        self.requests = 0

    def shutdown(self) -> None:
        """Clear the running flag; no-op when the loop is already stopped."""
        if not self.controller.running:
            return
        logger.info("=" * 60)
        logger.info(f"STOP REQUESTED after cycle {getattr(self.controller, 'cycle_count', 0)}")
        logger.info("=" * 60)
        self.controller.running = False

    def _handle(self, signum, frame) -> None:
        self.signal_received = signal.Signals(signum).name
        self.requests += 1
        if self.requests > 1:
            logger.warning(f"{self.signal_received} received again, forcing exit")
            raise KeyboardInterrupt
        logger.info(f"{self.signal_received} received, finishing current cycle")
        self.shutdown()

    def register_signal_handlers(self) -> None:
        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, self._handle)
        logger.info("Graceful stop armed for SIGINT and SIGTERM")
