import logging
import re

from mongoengine import connect, disconnect

from config import Config

logger = logging.getLogger(__name__)

ALIAS = "default"


def _mask(uri: str) -> str:
    return re.sub(r"//[^/@]*@", "//***:***@", uri)


def connect_db(host: str = None, **kwargs):
    """Open the process-wide connection. Extra kwargs go to mongoengine.connect."""
    host = host or Config.MONGODB_URI
    client = connect(host=host, alias=ALIAS, **kwargs)
    logger.info("MongoDB connected", extra={"uri": _mask(host)})
    return client


def close_db():
    disconnect(alias=ALIAS)
    logger.info("MongoDB connection closed")
