from datetime import datetime
from typing import Callable


def get_clock() -> Callable[[], datetime]:
    """Wall clock used by the services; overridden in tests."""
    return datetime.now
