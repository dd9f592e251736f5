from dataclasses import dataclass
from enum import Enum
from typing import Iterator

DEFAULT_VERSION = 0  # site version a user starts on unless told otherwise
NO_TREE = -1  # source id of a tree with no members


class Mark(Enum):
    """Traversal state of a single user during one BFS pass."""

    UNVISITED = 0
    DISCOVERED = 1
    DONE = 2


class User:
    """
    A vertex in the teacher/student graph.

    Edges are stored as ids, not references, so the graph owning the users
    is the only place ids get resolved back to users.

    Invariants:
    - if B is in A.students then A is in B.teachers, and vice versa
    - no id appears twice in either adjacency list
    """

    def __init__(self, user_id: int, version: int = DEFAULT_VERSION):
        self._id = user_id
        self.version = version
        self._students: list[int] = []
        self._teachers: list[int] = []
        # lists keep insertion order for traversal, sets are just for o(1) duplicate lookups
        self._student_ids: set[int] = set()
        self._teacher_ids: set[int] = set()

    @property
    def id(self) -> int:
        return self._id

    @property
    def students(self) -> list[int]:
        """Ids this user teaches, in the order they were added."""
        return list(self._students)

    @property
    def teachers(self) -> list[int]:
        """Ids that teach this user, in the order they were added."""
        return list(self._teachers)

    def _link(self, student: "User") -> bool:
        # self -> student, both sides at once
        if student.id in self._student_ids:
            return False
        self._students.append(student.id)
        self._student_ids.add(student.id)
        student._teachers.append(self.id)
        student._teacher_ids.add(self.id)
        return True

    def add_student(self, other: "User") -> bool:
        """Add edge self -> other. Returns False if it was already there."""
        return self._link(other)

    def add_teacher(self, other: "User") -> bool:
        """Add edge other -> self. Returns False if it was already there."""
        if other.id in self._teacher_ids:
            return False
        return other._link(self)

    def teaches(self, user_id: int) -> bool:
        return user_id in self._student_ids

    def taught_by(self, user_id: int) -> bool:
        return user_id in self._teacher_ids

    def neighbours(self) -> Iterator[int]:
        """Students first, then teachers. Direction doesn't matter for reachability."""
        yield from self._students
        yield from self._teachers

    def __repr__(self) -> str:
        return f"User(id={self._id}, version={self.version})"


@dataclass(frozen=True)
class UserTree:
    """
    One connected component, as the ids found by a single BFS.

    members[0] is the root the traversal started from.
    """

    members: tuple[int, ...]

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def source_id(self) -> int:
        return self.members[0] if self.members else NO_TREE

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self) -> Iterator[int]:
        return iter(self.members)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self.members

    def __lt__(self, other: "UserTree") -> bool:
        return self.size < other.size
