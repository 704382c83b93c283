import logging
import sys


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging to output to stdout with proper formatting."""
    root_logger = logging.getLogger()
    if any(getattr(h, "_ledger_handler", False) for h in root_logger.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    handler._ledger_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Replay diagnostics are chatty at DEBUG
    logging.getLogger("portfolio_ledger.evolution").setLevel(max(level, logging.INFO))
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
