import logging.config
import os

from dotenv import load_dotenv

load_dotenv()

_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOGGING_CONF = os.getenv("LOGGING_CONF", os.path.join(_ROOT, "logging.conf"))

# Ensure logs directory exists
os.makedirs("logs", exist_ok=True)

logging.config.fileConfig(LOGGING_CONF, disable_existing_loggers=False)
