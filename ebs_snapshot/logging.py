import logging


logger = logging.getLogger("ebs-snapshot")


def init_logging(level):
    logging.basicConfig(
        level=level.upper(),
        format="{asctime}|{levelname:7}|{thread:X}|{name:15}| {message}",
        style="{"
    )
