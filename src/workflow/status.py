"""Status values for the three workflow stages."""

import logging
from enum import Enum
from typing import Optional, Type, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


class ScriptStatus(str, Enum):
    """Script approval lifecycle. Only moves forward."""

    PENDING = "Pending"
    APPROVED = "Approved"
    AUDIO_GENERATED = "Audio Generated"


class ProcessStatus(str, Enum):
    """Lifecycle of the text files stage."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"


class PodcastStatus(str, Enum):
    """Lifecycle of the episode assets and publishing stages."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"
    READY_TO_PUBLISH = "Ready to Publish"
    PUBLISHING = "Publishing"


_SCRIPT_ORDER = [ScriptStatus.PENDING, ScriptStatus.APPROVED, ScriptStatus.AUDIO_GENERATED]


def parse_status(enum_cls: Type[E], value) -> Optional[E]:
    """Parse a stored value into `enum_cls`; null, empty and unknown values give None."""
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(f"Unknown {enum_cls.__name__} value from store: {value!r}")
        return None


def parse_script_status(value) -> ScriptStatus:
    """Parse a stored script status; missing or unknown values read as Pending."""
    return parse_status(ScriptStatus, value) or ScriptStatus.PENDING


def parse_process_status(value) -> Optional[ProcessStatus]:
    """Parse a stored text files status; null means the stage has not started."""
    return parse_status(ProcessStatus, value)


def parse_podcast_status(value) -> Optional[PodcastStatus]:
    """Parse a stored podcast status; null means the stage has not started."""
    return parse_status(PodcastStatus, value)


def is_forward_script_transition(current: ScriptStatus, target: ScriptStatus) -> bool:
    """True when `target` is exactly one step after `current`."""
    return _SCRIPT_ORDER.index(target) == _SCRIPT_ORDER.index(current) + 1
