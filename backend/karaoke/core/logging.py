import logging

from karaoke.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )
    # SQL echo is noisy; keep it behind DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
