"""Link validity and the facts derived from script links."""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

PROCESSING_BANNER = (
    "Script #1 has been generated, kindly wait for the other scripts to load."
)


def is_valid_link(value: Any) -> bool:
    """A link is valid iff it is a non-empty string after trimming."""
    return isinstance(value, str) and bool(value.strip())


@dataclass
class ScriptLinks:
    """The six script and source links of an episode, in display order."""

    episode_interview_script_1: Optional[str] = None
    episode_interview_script_2: Optional[str] = None
    episode_interview_script_3: Optional[str] = None
    episode_interview_script_4: Optional[str] = None
    episode_interview_full_script: Optional[str] = None
    episode_interview_file: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ScriptLinks":
        return cls(**{f.name: row.get(f.name) for f in fields(cls)})

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)

    @property
    def has_script1(self) -> bool:
        return is_valid_link(self.episode_interview_script_1)

    @property
    def has_script4(self) -> bool:
        return is_valid_link(self.episode_interview_script_4)

    @property
    def is_script_generated(self) -> bool:
        return any(is_valid_link(value) for value in asdict(self).values())


def processing_banner(has_script1: bool, has_script4: bool, is_submitting: bool) -> Optional[str]:
    """
    Message shown while scripts are still arriving.

    Slot 4 clears the banner unconditionally. Otherwise the banner shows once
    slot 1 is present, whether or not a submission is still in flight.
    """
    if has_script4:
        return None
    generating = is_submitting or has_script1
    if generating and has_script1:
        return PROCESSING_BANNER
    return None
