"""One-dimensional k-means for grouping scalar readings."""
from __future__ import annotations

import math
from typing import Final, Sequence

import numpy as np

from .models import ClusterResult

CONVERGENCE_TOLERANCE: Final[float] = 0.001


def k_means_clustering(
    data: Sequence[float],
    k: int,
    max_iterations: int = 100,
    *,
    rng: np.random.Generator | None = None,
) -> ClusterResult:
    """Lloyd's algorithm over scalar values using absolute distance.

    Initial centroids are drawn from distinct positions of ``data``. Iteration
    stops once inertia moves by less than ``CONVERGENCE_TOLERANCE`` or after
    ``max_iterations``. With fewer points than clusters every point lands in
    cluster 0 and the data itself is returned as the centroids.
    """

    if k < 1:
        raise ValueError("k must be >= 1")

    points = np.asarray(data, dtype=float)
    if len(points) < k:
        return ClusterResult(
            clusters=tuple(0 for _ in points),
            centroids=tuple(float(value) for value in points),
            inertia=0.0,
        )

    generator = rng or np.random.default_rng()
    centroids = points[generator.choice(len(points), size=k, replace=False)].copy()
    clusters = np.zeros(len(points), dtype=int)
    inertia = math.inf
    history: list[float] = []
    iterations = 0

    for iterations in range(1, max_iterations + 1):
        distances = np.abs(points[:, None] - centroids[None, :])
        new_clusters = distances.argmin(axis=1)

        new_centroids = centroids.copy()
        for cluster_id in range(k):
            members = points[new_clusters == cluster_id]
            if len(members):
                new_centroids[cluster_id] = members.mean()

        new_inertia = float(((points - new_centroids[new_clusters]) ** 2).sum())
        history.append(new_inertia)

        converged = abs(new_inertia - inertia) < CONVERGENCE_TOLERANCE
        centroids = new_centroids
        clusters = new_clusters
        inertia = new_inertia
        if converged:
            break

    return ClusterResult(
        clusters=tuple(int(label) for label in clusters),
        centroids=tuple(float(value) for value in centroids),
        inertia=inertia if math.isfinite(inertia) else 0.0,
        iterations=iterations,
        inertia_history=tuple(history),
    )
