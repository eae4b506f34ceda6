import logging

from eventtickets.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # SQL echo stays off unless someone asks for DEBUG explicitly
    logging.getLogger("sqlalchemy.engine").setLevel(max(level, logging.WARNING))
