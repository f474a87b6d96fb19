import logging
from typing import Callable, Optional

log = logging.getLogger(__name__)

# Receives user-facing progress lines in the order they are produced.
LogSink = Callable[[str], None]


def report(sink: Optional[LogSink], message: str, level: int = logging.INFO,
           logger: Optional[logging.Logger] = None) -> None:
    """Logs a message and forwards it to the sink, if one was given."""
    (logger or log).log(level, message)
    if sink is not None:
        sink(message)
