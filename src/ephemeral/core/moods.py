"""Mood codes and their static display table."""

from dataclasses import dataclass
from enum import Enum


class Mood(Enum):
    """The closed set of moods an entry can carry."""

    BLAST = "blast"
    FUN = "fun"
    BETTER = "better"
    TOMORROW = "tomorrow"

    @property
    def info(self) -> "MoodInfo":
        return MOODS[self]

    @classmethod
    def parse(cls, value: "str | Mood") -> "Mood":
        """Parse a mood code. Raises ValueError for unknown codes."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown mood '{value}'. Choose one of: {valid}") from None


@dataclass(frozen=True)
class MoodInfo:
    """Display attributes for a mood."""

    label: str
    color: str
    desc: str


MOODS: dict[Mood, MoodInfo] = {
    Mood.BLAST: MoodInfo(label="Freaking Blast", color="#2ecc71", desc="LESSGOOO"),
    Mood.FUN: MoodInfo(label="Had Fun", color="#f1c40f", desc="All Good"),
    Mood.BETTER: MoodInfo(label="Could Be Better", color="#e67e22", desc="Keep Pushing"),
    Mood.TOMORROW: MoodInfo(label="We Go Again", color="#e74c3c", desc="It's Not Over Yet"),
}
