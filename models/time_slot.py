from dataclasses import dataclass


@dataclass(frozen=True)
class TimeSlot:
    start: int   # Minutes since midnight
    end: int     # Exclusive

    @property
    def duration(self) -> int:
        return self.end - self.start
