# configs/logging_config.py

import logging
import os

from configs.app_config import LOG_DIR, LOG_LEVEL


def setup_logging(log_file="windfarm.log"):
    """Send log records to logs/<log_file> and to the console."""
    os.makedirs(LOG_DIR, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(LOG_DIR, log_file)),
            logging.StreamHandler()
        ]
    )
