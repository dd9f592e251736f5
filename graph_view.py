"""
What the graph renderer gets to see.

Rendering lives outside this project; these helpers only collect users, labelled
edges and the infected ids, and never touch the graph's state.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from infection import UserGraph
from users import User

ENTIRE_GRAPH_TITLE = "Entire User Graph"
USER_GRAPH_TITLE = "User #{user_id} Graph"


def edge_label(teacher: User, student: User) -> str:
    """e.g. "3/1-7/0": teacher 3 on version 1 teaches student 7 on version 0."""
    return f"{teacher.id}/{teacher.version}-{student.id}/{student.version}"


@dataclass(frozen=True)
class GraphSnapshot:
    title: str
    user_ids: tuple[int, ...]
    edges: tuple[tuple[int, int, str], ...]  # (teacher id, student id, label)
    infected_ids: tuple[int, ...]  # every infection so far, in order, repeats included

    def is_infected(self, user_id: int) -> bool:
        return user_id in self.infected_ids


def _snapshot(graph: UserGraph, title: str, user_ids: Iterable[int]) -> GraphSnapshot:
    user_ids = tuple(user_ids)
    edges = []
    # each edge is listed once, from the teacher's side
    for user_id in user_ids:
        teacher = graph.get_user(user_id)
        for student_id in teacher.students:
            student = graph.get_user(student_id)
            if student is None:
                continue
            edges.append((teacher.id, student_id, edge_label(teacher, student)))
    return GraphSnapshot(
        title=title,
        user_ids=user_ids,
        edges=tuple(edges),
        infected_ids=tuple(graph.infected_ids),
    )


def snapshot_entire_graph(graph: UserGraph) -> GraphSnapshot:
    return _snapshot(graph, ENTIRE_GRAPH_TITLE, (user.id for user in graph.users()))


def snapshot_user_graph(graph: UserGraph, user_id: int) -> Optional[GraphSnapshot]:
    """The component holding user_id, or None if there's no such user."""
    if user_id not in graph:
        return None
    return _snapshot(graph, USER_GRAPH_TITLE.format(user_id=user_id), graph.reachable([user_id]))
