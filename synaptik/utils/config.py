"""Core configuration with environment variable support."""

import os


class CoreConfig:
    """Settings shared by the task core."""

    # Zone used as "the caller's local time" when no reference time is supplied
    DEFAULT_TIMEZONE = os.environ.get("SYNAPTIK_DEFAULT_TIMEZONE", "UTC")
    UNTITLED_TASK_TITLE = os.environ.get("SYNAPTIK_UNTITLED_TASK_TITLE", "Untitled Task")
    TITLE_MAX_LENGTH = 200
    DESCRIPTION_MAX_LENGTH = 1000
