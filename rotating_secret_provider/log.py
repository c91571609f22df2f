import logging
import sys


def setup_logging(level="INFO"):
    """Set up global logging format and handlers."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s :: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
