import logging
from collections import deque
from typing import Iterable, Mapping, Optional, Sequence

from users import Mark, User, UserTree

logger = logging.getLogger(__name__)


class UserGraphError(ValueError):
    pass


class UserGraph:
    """
    Owns every user, keyed by id, and spreads a site version across them.

    The edges live on the users as id lists; the graph resolves ids back to
    users. Traversal state is kept per call, so nothing here depends on
    leftovers from an earlier pass.

    A mapping passed to the constructor is taken as-is, keys included; users
    added any other way are keyed by their own id.

    Not safe for concurrent mutation: callers serialize access themselves.
    """

    def __init__(self, users: Optional[Mapping[int, User] | Iterable[User]] = None):
        self._users: dict[int, User] = {}
        self._infected_ids: list[int] = []  # append-only, never reset between passes
        if users is None:
            return
        if isinstance(users, Mapping):
            # the mapping's keys win over user.id, same as filling it in by hand
            self._users.update(users)
            return
        for user in users:
            self.add_user(user)

    # =========================================================================
    # Construction and lookup
    # =========================================================================

    def add_user(self, user: User) -> None:
        """Add a user. A user with the same id is silently replaced."""
        self._users[user.id] = user

    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def _require(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise UserGraphError(f"Unknown user id {user_id}.")
        return user

    def add_student(self, teacher_id: int, student_id: int) -> bool:
        """Add edge teacher -> student by id. Raises UserGraphError on unknown ids."""
        teacher = self._require(teacher_id)
        student = self._require(student_id)
        return teacher.add_student(student)

    def add_teacher(self, student_id: int, teacher_id: int) -> bool:
        """Add edge teacher -> student by id, from the student's side."""
        student = self._require(student_id)
        teacher = self._require(teacher_id)
        return student.add_teacher(teacher)

    def users(self) -> list[User]:
        """All users, in insertion order."""
        return list(self._users.values())

    @property
    def infected_ids(self) -> Sequence[int]:
        # tuple so callers can't append behind our back
        return tuple(self._infected_ids)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._users

    def __len__(self) -> int:
        return len(self._users)

    # =========================================================================
    # Traversal
    # =========================================================================

    def traverse(
        self,
        start_ids: Iterable[int],
        limit: Optional[int] = None,
        marks: Optional[dict[int, Mark]] = None,
    ) -> list[int]:
        """
        Breadth-first search over students and teachers, from every start id at once.

        Args:
            start_ids: ids to seed the queue with; unknown or already-marked ids are skipped
            limit: stop after this many users are DONE; None means no limit, <= 0 means nothing
            marks: per-pass state to read and fill in. Missing ids count as UNVISITED.
                Users left in the queue when the limit hits stay DISCOVERED.

        Returns:
            ids in the order they were finished.
        """
        if marks is None:
            marks = {}
        done: list[int] = []
        if limit is not None and limit <= 0:
            return done

        queue: deque[int] = deque()
        for user_id in start_ids:
            if user_id in self._users and marks.get(user_id, Mark.UNVISITED) is Mark.UNVISITED:
                marks[user_id] = Mark.DISCOVERED
                queue.append(user_id)

        while queue:
            if limit is not None and len(done) >= limit:
                break
            user_id = queue.popleft()
            for neighbour_id in self._users[user_id].neighbours():
                # a user can name an id this graph was never given
                if neighbour_id not in self._users:
                    continue
                if marks.get(neighbour_id, Mark.UNVISITED) is Mark.UNVISITED:
                    marks[neighbour_id] = Mark.DISCOVERED
                    queue.append(neighbour_id)
            marks[user_id] = Mark.DONE
            done.append(user_id)

        logger.debug("traversal finished %d users, %d left queued", len(done), len(queue))
        return done

    def reachable(self, start_ids: Iterable[int]) -> list[int]:
        """Every id in the components touched by start_ids, in BFS order."""
        return self.traverse(start_ids)

    def decompose(self, user_ids: Optional[Iterable[int]] = None) -> list[UserTree]:
        """
        Split the graph into connected components, largest first.

        One tree per component that contains any of user_ids (all users by default).
        Equal sizes keep discovery order. The bias towards big trees first is what
        infect_exact relies on.
        """
        if user_ids is None:
            user_ids = list(self._users)
        marks: dict[int, Mark] = {}
        trees = []
        for user_id in user_ids:
            if marks.get(user_id, Mark.UNVISITED) is not Mark.UNVISITED:
                continue
            members = self.traverse([user_id], marks=marks)
            if members:
                trees.append(UserTree(tuple(members)))
        # sorted() is stable even reversed, so ties stay in discovery order
        trees = sorted(trees, reverse=True)
        logger.debug("decomposed into %d trees, sizes %s", len(trees), [t.size for t in trees])
        return trees

    # =========================================================================
    # Infection
    # =========================================================================

    def _infect(self, user_ids: Iterable[int], version: int) -> int:
        count = 0
        for user_id in user_ids:
            self._users[user_id].version = version
            self._infected_ids.append(user_id)
            count += 1
        return count

    def infect_from(self, root_id: int, version: int, limit: Optional[int]) -> bool:
        """
        Best-effort limited infection: BFS from root_id, stop after `limit` users.

        If limit is smaller than the component, whatever BFS prefix we reached gets
        the new version; component boundaries aren't respected.
        Returns False (and changes nothing) if root_id isn't in the graph.
        """
        if root_id not in self._users:
            return False
        count = self._infect(self.traverse([root_id], limit=limit), version)
        logger.info("infected %d users with version %d from user %d", count, version, root_id)
        return True

    def infect_component(self, root_id: int, version: int) -> bool:
        """Total infection: every user connected to root_id."""
        return self.infect_from(root_id, version, None)

    def infect_nearest_size(self, version: int, limit: int) -> bool:
        """
        Fully infect the one tree whose size is closest to limit.

        limit isn't a hard cap here, the chosen tree's size is. Ties go to the
        first tree in decompose() order. Returns False for an empty graph.
        """
        best: Optional[UserTree] = None
        best_diff = None
        for tree in self.decompose():
            diff = abs(limit - tree.size)
            if best_diff is None or diff < best_diff:
                best, best_diff = tree, diff
        if best is None:
            return False
        count = self._infect(best, version)
        logger.info(
            "infected tree of user %d (%d users, %d off the limit of %d) with version %d",
            best.source_id, count, best_diff, limit, version,
        )
        return True

    def infect_exact(self, version: int, target: int) -> bool:
        """
        Try to infect exactly `target` users by picking whole trees.

        Trees are probed largest first. At each step the first tree that still fits
        is committed to, and a dead end later on is a failure: we never go back and
        try the next tree instead. So trees of {5, 3, 2} can't make 4 (3 is taken,
        leaving 1, and nothing that small is left).
        Versions only change once a full selection is found.
        """
        chosen = self._first_fit(self.decompose(), target)
        if chosen is None:
            logger.info("no selection of trees adds up to %d users", target)
            return False
        count = 0
        for tree in chosen:
            count += self._infect(tree, version)
        logger.info("infected %d users in %d trees with version %d", count, len(chosen), version)
        return True

    @staticmethod
    def _first_fit(trees: list[UserTree], target: int) -> Optional[list[UserTree]]:
        # no backtracking, so a loop does what a recursive probe would
        # TODO: exhaustive subset-sum over trees would find selections this misses
        remaining = list(trees)
        chosen: list[UserTree] = []
        while target > 0:
            fit = next((i for i, tree in enumerate(remaining) if tree.size <= target), None)
            if fit is None:
                return None
            chosen.append(remaining.pop(fit))
            target -= chosen[-1].size
        # negative targets fall straight through to here
        return chosen if target == 0 else None
