import logging


LOG_FORMAT = '%(asctime)s - %(levelname)s - %(funcName)s - %(message)s'

NOISY_LOGGERS = ('nats', 'taskiq', 'apscheduler', 'httpx', 'asyncio')


def setup_logging(level: str = 'INFO') -> None:
    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
