"""Console logging setup for processes embedding the deployment engine."""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
HANDLER_NAME = "deploy_engine.console"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach one console handler to the root logger.

    Calling it again only updates the level.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console = next((h for h in root_logger.handlers if h.get_name() == HANDLER_NAME), None)
    if console is None:
        console = logging.StreamHandler()
        console.set_name(HANDLER_NAME)
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(console)
    console.setLevel(level)

    return root_logger
