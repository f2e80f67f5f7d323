import asyncio
import logging
import os
import platform
import signal
import sys

from review_monitor.orchestrator import ReviewMonitor

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)
log = logging.getLogger("main")

async def main() -> None:
    user     = os.environ.get("GERRIT_USER", "")
    password = os.environ.get("GERRIT_PASSWORD", "")
    if not user or not password:
        log.error("Set GERRIT_USER and GERRIT_PASSWORD (HTTP password from Gerrit settings).")
        sys.exit(2)

    monitor = ReviewMonitor()
    loop    = asyncio.get_running_loop()

    if platform.system() != "Windows":

        def _shutdown(sig: signal.Signals) -> None:
            log.info("Received %s — shutting down gracefully...", sig.name)
            monitor.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _shutdown, sig)

        await monitor.run(user, password)
        log.info("Monitor stopped.")

    else:
        try:
            await monitor.run(user, password)
        except (asyncio.CancelledError, KeyboardInterrupt):
            log.info("Shutting down...")
            monitor.stop()
            log.info("Monitor stopped.")


if __name__ == "__main__":
    asyncio.run(main())
