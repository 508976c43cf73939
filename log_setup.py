import logging
import sys

LOG_FORMAT = "[%(levelname)s] %(message)s"


def configure_logging(verbose: bool = False, stream=None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=stream or sys.stderr, force=True)
    # optuna installs its own handler; keep its trial chatter out of normal runs
    logging.getLogger("optuna").setLevel(logging.INFO if verbose else logging.WARNING)
