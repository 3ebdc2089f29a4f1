import logging

from marketplace.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# PUBLIC_INTERFACE
def configure_logging(level: str = LOG_LEVEL) -> None:
    """Install a single stream handler on the `marketplace` logger tree (idempotent)."""
    root = logging.getLogger("marketplace")
    root.setLevel(level)
    if not any(getattr(h, "_marketplace_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._marketplace_handler = True
        root.addHandler(handler)
