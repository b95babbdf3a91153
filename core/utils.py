"""
Common utilities: logging setup, wire decoding, timing.
"""
import logging
import time

logger = logging.getLogger("mtce.utils")


def setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    """Configure root logging once at startup; optional log file is appended to."""
    log_format = "%(asctime)s %(name)s %(levelname)s %(message)s" if verbose else "%(asctime)s %(levelname)s %(message)s"
    log_level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    warn_file = None
    if log_file:
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setFormatter(logging.Formatter(log_format))
            handlers.append(fh)
        except OSError as e:
            warn_file = e
    logging.basicConfig(level=log_level, format=log_format, handlers=handlers, force=True)
    if warn_file is not None:
        logger.warning("Could not open log file %s: %s", log_file, warn_file)
    # aiohttp access log is one line per scrape; keep it out of INFO unless verbose
    if not verbose:
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def decode_chunk(data: bytes) -> str:
    """Decode one chunk of plaintext server output. Never raises."""
    return data.decode("utf-8", errors="replace")


def elapsed_since(start: float) -> float:
    """Seconds elapsed since a time.perf_counter() mark."""
    return time.perf_counter() - start
