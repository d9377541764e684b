"""
Course data collaborator.

Supplies Course reference data (holes, pars, yardages, pin/tee locations)
so that no geography is hard-coded in the core.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Protocol, Union

from jacktrack_core.errors import UnknownCourse
from jacktrack_core.proto.course import Course

logger = logging.getLogger(__name__)


class CourseProvider(Protocol):
    """Source of course reference data."""

    def load_course(self, course_id: str) -> Course:
        ...


class StaticCourseProvider:
    """
    Course provider backed by an in-memory mapping.

    Usage:
        provider = StaticCourseProvider.from_json_file("courses.json")
        course = provider.load_course("pebble-beach")
    """

    def __init__(self, courses: Mapping[str, Course]):
        self._courses: Dict[str, Course] = dict(courses)
        logger.debug(f"Course provider loaded {len(self._courses)} courses")

    @classmethod
    def from_dicts(cls, data: List[dict]) -> "StaticCourseProvider":
        """
        Build from a list of course dicts.

        Each dict: {"course_id", "name", "holes": [{"number", "par",
        "yardage", "pin": {"latitude", "longitude"}, "tee": {...}}, ...]}
        """
        courses = [Course.from_dict(item) for item in data]
        return cls({course.course_id: course for course in courses})

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "StaticCourseProvider":
        """
        Load courses from a JSON file holding a list of course dicts
        (or {"courses": [...]}).
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("courses", [])
        logger.info(f"Loading courses from {path}")
        return cls.from_dicts(data)

    def load_course(self, course_id: str) -> Course:
        """
        Raises:
            UnknownCourse: no course with this id
        """
        course = self._courses.get(course_id)
        if course is None:
            raise UnknownCourse(course_id)
        return course

    def course_ids(self) -> List[str]:
        return list(self._courses)
