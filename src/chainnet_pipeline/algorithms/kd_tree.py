"""
Array-backed 2-D k-d tree over block end points.

The tree is built once over every block of a chaining group, with all
points inactive. The chainer activates a point (``insert``) as soon as that
block's DP score is final, so queries only ever see finished blocks. Each
node keeps the bounding box of its points and the best score among its
active points, which lets ``best_predecessor`` skip whole subtrees.

Author: Rowel Facunla
"""

from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

NEG_INF = float('-inf')

# (point_index, value, dt, dq)
Predecessor = Tuple[int, int, int, int]


class KDTree:
    """Static-shape k-d tree with incremental point activation."""

    def __init__(self, t_ends: Sequence[int], q_ends: Sequence[int]):
        t = np.asarray(t_ends, dtype=np.int64)
        q = np.asarray(q_ends, dtype=np.int64)
        if t.shape != q.shape:
            raise ValueError(f"Coordinate arrays differ in length: {t.shape} vs {q.shape}")

        self.size = int(t.shape[0])
        n_nodes = max(0, 2 * self.size - 1)

        left = np.full(n_nodes, -1, dtype=np.int64)
        right = np.full(n_nodes, -1, dtype=np.int64)
        parent = np.full(n_nodes, -1, dtype=np.int64)
        point = np.full(n_nodes, -1, dtype=np.int64)
        box = np.zeros((n_nodes, 4), dtype=np.int64)  # min_t, max_t, min_q, max_q
        leaf_of = np.full(self.size, -1, dtype=np.int64)

        if self.size:
            coords = np.stack([t, q], axis=1)
            # (node_id, parent_id, point indices, depth)
            stack = [(0, -1, np.arange(self.size, dtype=np.int64), 0)]
            next_id = 1
            while stack:
                node, par, idx, depth = stack.pop()
                parent[node] = par
                sub = coords[idx]
                box[node] = (sub[:, 0].min(), sub[:, 0].max(), sub[:, 1].min(), sub[:, 1].max())
                if len(idx) == 1:
                    point[node] = idx[0]
                    leaf_of[idx[0]] = node
                    continue
                axis = depth % 2
                ordered = idx[np.argsort(sub[:, axis], kind='stable')]
                mid = len(ordered) // 2
                left[node] = next_id
                right[node] = next_id + 1
                next_id += 2
                stack.append((left[node], node, ordered[:mid], depth + 1))
                stack.append((right[node], node, ordered[mid:], depth + 1))

        self.t_ends = t
        self.q_ends = q

        # plain lists for the query loop
        self._left: List[int] = left.tolist()
        self._right: List[int] = right.tolist()
        self._parent: List[int] = parent.tolist()
        self._point: List[int] = point.tolist()
        self._box: List[List[int]] = box.tolist()
        self._leaf_of: List[int] = leaf_of.tolist()
        self._t: List[int] = t.tolist()
        self._q: List[int] = q.tolist()
        self._best: List[float] = [NEG_INF] * n_nodes
        self._order: List[int] = [-1] * self.size
        self._inserted = 0

    def __len__(self) -> int:
        return self._inserted

    def is_active(self, point_index: int) -> bool:
        return self._order[point_index] >= 0

    def insert(self, point_index: int, score: float):
        """Activate a point with its final score."""
        if self._order[point_index] >= 0:
            raise ValueError(f"Point {point_index} inserted twice")
        self._order[point_index] = self._inserted
        self._inserted += 1

        node = self._leaf_of[point_index]
        self._best[node] = score
        node = self._parent[node]
        while node >= 0 and self._best[node] < score:
            self._best[node] = score
            node = self._parent[node]

    def best_predecessor(
        self,
        t_start: int,
        q_start: int,
        cost_fn: Callable[[int, int], int],
        max_gap: Optional[int] = None,
        min_value: Optional[float] = None,
    ) -> Optional[Predecessor]:
        """
        Best active point with ``t_end <= t_start`` and ``q_end <= q_start``.

        Candidates are ranked by ``score - cost_fn(dt, dq)``, then by smaller
        ``dt + dq``, then by earlier insertion. ``cost_fn`` must not decrease
        when either argument grows; that is what makes the bounding-box
        pruning exact.

        Args:
            t_start: Target start of the block being extended
            q_start: Query start of the block being extended
            cost_fn: Gap cost function
            max_gap: Skip candidates whose dt or dq exceeds this
            min_value: Only accept candidates whose value is strictly greater

        Returns:
            (point_index, value, dt, dq) or None
        """
        if not self._inserted:
            return None

        best_key = None
        best = None
        stack = [0]
        while stack:
            node = stack.pop()
            node_best = self._best[node]
            if node_best == NEG_INF:
                continue
            min_t, max_t, min_q, max_q = self._box[node]
            if min_t > t_start or min_q > q_start:
                continue
            dt_lb = t_start - max_t if t_start > max_t else 0
            dq_lb = q_start - max_q if q_start > max_q else 0
            if max_gap is not None and (dt_lb > max_gap or dq_lb > max_gap):
                continue
            bound = node_best - cost_fn(dt_lb, dq_lb)
            if min_value is not None and bound <= min_value:
                continue
            if best_key is not None and bound < best_key[0]:
                continue

            p = self._point[node]
            if p >= 0:
                dt = t_start - self._t[p]
                dq = q_start - self._q[p]
                value = node_best - cost_fn(dt, dq)
                key = (value, -(dt + dq), -self._order[p])
                if best_key is None or key > best_key:
                    best_key = key
                    best = (p, int(value), dt, dq)
                continue

            lo, hi = self._left[node], self._right[node]
            # explore the more promising child first
            if self._best[lo] > self._best[hi]:
                stack.append(hi)
                stack.append(lo)
            else:
                stack.append(lo)
                stack.append(hi)

        return best

    def compatible_points(self, t_start: int, q_start: int, max_gap: Optional[int] = None) -> List[int]:
        """Every active point that may precede ``(t_start, q_start)``, in insertion order."""
        found = []
        stack = [0] if self.size else []
        while stack:
            node = stack.pop()
            if self._best[node] == NEG_INF:
                continue
            min_t, max_t, min_q, max_q = self._box[node]
            if min_t > t_start or min_q > q_start:
                continue
            if max_gap is not None and (t_start - max_t > max_gap or q_start - max_q > max_gap):
                continue
            p = self._point[node]
            if p >= 0:
                found.append(p)
            else:
                stack.append(self._left[node])
                stack.append(self._right[node])
        return sorted(found, key=lambda i: self._order[i])


__all__ = [
    'KDTree',
    'Predecessor',
]
