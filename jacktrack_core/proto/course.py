"""
Course Schema.

Static course reference data supplied by the course-data collaborator.
Not mutated after load.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .coordinate import Coordinate


@dataclass(frozen=True)
class Hole:
    """
    One hole of a course.

    Attributes:
        number: Hole number (>= 1)
        par: Par (>= 3)
        yardage: Length in yards (>= 0)
        pin: Pin location, if the course data provides one
        tee: Tee location, if the course data provides one
    """

    number: int
    par: int
    yardage: int
    pin: Optional[Coordinate] = None
    tee: Optional[Coordinate] = None

    def __post_init__(self):
        if self.number < 1:
            raise ValueError(f"Hole number must be >= 1: {self.number}")
        if self.par < 3:
            raise ValueError(f"Par must be >= 3: {self.par}")
        if self.yardage < 0:
            raise ValueError(f"Yardage cannot be negative: {self.yardage}")

    @classmethod
    def from_dict(cls, data: dict) -> "Hole":
        pin = data.get("pin")
        tee = data.get("tee")
        return cls(
            number=int(data["number"]),
            par=int(data["par"]),
            yardage=int(data.get("yardage", 0)),
            pin=Coordinate.from_dict(pin) if pin else None,
            tee=Coordinate.from_dict(tee) if tee else None,
        )


@dataclass(frozen=True)
class Course:
    """
    A loaded course.

    Attributes:
        course_id: Provider id
        name: Display name
        holes: Holes in play order (unique numbers)
    """

    course_id: str
    name: str
    holes: Tuple[Hole, ...]

    def __post_init__(self):
        if not self.holes:
            raise ValueError(f"Course {self.course_id!r} has no holes")
        numbers = [hole.number for hole in self.holes]
        if len(set(numbers)) != len(numbers):
            raise ValueError(f"Course {self.course_id!r} has duplicate hole numbers")

    @property
    def hole_numbers(self) -> Tuple[int, ...]:
        return tuple(hole.number for hole in self.holes)

    @property
    def total_par(self) -> int:
        return sum(hole.par for hole in self.holes)

    def hole(self, number: int) -> Optional[Hole]:
        """Hole with this number, or None."""
        for hole in self.holes:
            if hole.number == number:
                return hole
        return None

    def par_by_hole(self) -> Dict[int, int]:
        return {hole.number: hole.par for hole in self.holes}

    def __len__(self) -> int:
        return len(self.holes)

    @classmethod
    def from_dict(cls, data: dict) -> "Course":
        return cls(
            course_id=str(data["course_id"]),
            name=str(data.get("name", data["course_id"])),
            holes=tuple(Hole.from_dict(h) for h in data["holes"]),
        )
