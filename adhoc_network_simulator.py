import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Tuple

import numpy as np

from density_functions import estimate_z_max, uniform_density


logger = logging.getLogger(__name__)

DensityFn = Callable[[np.ndarray, np.ndarray], np.ndarray]
Domain = Tuple[Tuple[float, float], Tuple[float, float]]

DEFAULT_DOMAIN: Domain = ((0.0, 100.0), (0.0, 100.0))
DEFAULT_TOLERANCE = 0.05
DEFAULT_EIGEN_EPS = 1e-9
DEFAULT_BATCH_FACTOR = 100
DEFAULT_MAX_ROUNDS = 100


class CriticalRadiusError(Exception):
    pass


class ExhaustedSamplingError(CriticalRadiusError, RuntimeError):
    pass


class InvalidRadiusError(CriticalRadiusError, ValueError):
    pass


class InvalidToleranceError(CriticalRadiusError, ValueError):
    pass


def sample_nodes(
    n: int,
    density_fn: DensityFn,
    domain: Domain,
    z_max: float | None,
    rng: np.random.Generator,
    batch_factor: int = DEFAULT_BATCH_FACTOR,
    max_rounds: int = DEFAULT_MAX_ROUNDS):
    """
    Acceptance-rejection sampling of n node positions from an arbitrary density.

    Each round draws batch_factor*n points (x, y, z) uniformly in domain x [0, z_max)
    and keeps (x, y) when z <= density_fn(x, y). Once the pool holds at least n points,
    exactly n of them are picked uniformly without replacement, so the result does not
    depend on the order in which points were accepted.
    """
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n <= 0:
        raise ValueError("n must be a positive integer.")
    if z_max is None or not np.isfinite(z_max) or z_max <= 0:
        raise ExhaustedSamplingError(f"A finite positive z_max bound is required, got {z_max!r}.")

    (x_min, x_max), (y_min, y_max) = domain
    batch = int(batch_factor) * int(n)
    accepted = []
    num_accepted = 0

    for round_idx in range(1, max_rounds + 1):
        x = rng.uniform(x_min, x_max, batch)
        y = rng.uniform(y_min, y_max, batch)
        z = rng.uniform(0.0, z_max, batch)

        density = np.broadcast_to(np.asarray(density_fn(x, y), dtype=float), (batch,))
        if np.any(np.isnan(density)) or np.any(density < 0):
            raise ValueError("density_fn must return non-negative values over the domain.")
        if np.any(density > z_max):
            raise ExhaustedSamplingError(
                f"z_max={z_max} is below the sampled density maximum {density.max():.6g}."
            )

        keep = z <= density
        accepted.append(np.column_stack((x[keep], y[keep])))
        num_accepted += int(keep.sum())
        logger.debug("Sampling round %d: %d/%d points accepted", round_idx, num_accepted, n)

        if num_accepted >= n:
            pool = np.concatenate(accepted)
            idx = rng.choice(pool.shape[0], size=n, replace=False)
            return pool[idx]

    raise ExhaustedSamplingError(
        f"Only {num_accepted} of {n} points accepted after {max_rounds} rounds; "
        "the acceptance rate has collapsed."
    )


def bisection_iterations(low: float, high: float, tolerance: float) -> int:
    """
    Number of halvings needed to shrink [low, high] to a width <= tolerance.
    """
    width = high - low
    if width <= tolerance:
        return 0
    return int(math.ceil(math.log2(width / tolerance)))


class AdHocNetworkSimulator:
    """
    Monte-Carlo estimator of the critical broadcasting radius of random 2D ad hoc networks.
    Nodes are placed according to a density over a rectangular domain; a network is
    connected at radius R when the proximity graph (edges: distance <= R) has a single
    component, which is checked through the spectrum of the random-walk transition matrix.

    """

    def __init__(
        self,
        density_fn: DensityFn | None = None,
        domain: Domain = DEFAULT_DOMAIN,
        z_max: float | None = None,
        tolerance: float = DEFAULT_TOLERANCE,
        eigen_eps: float = DEFAULT_EIGEN_EPS,
        batch_factor: int = DEFAULT_BATCH_FACTOR,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        seed: int | None = None):
        """
        If no density is given we use a uniform one. If no z_max is given it is estimated
        from a grid scan of the density (with a small safety margin).
        The seed makes every run reproducible, trial by trial.
        """
        self.density_fn = density_fn if density_fn is not None else uniform_density
        self.domain = domain
        self.z_max = z_max if z_max is not None else estimate_z_max(self.density_fn, domain)
        self.tolerance = tolerance
        self.eigen_eps = eigen_eps
        self.batch_factor = batch_factor
        self.max_rounds = max_rounds

        # Parent seed sequence: each Monte-Carlo trial gets its own spawned generator
        self.seed_seq = np.random.SeedSequence(seed)
        self.rng = np.random.default_rng(self.seed_seq.spawn(1)[0])

    # NODE PLACEMENT
    def generate_node_positions(self, n: int, rng: np.random.Generator | None = None) -> np.ndarray:
        """
        Place n nodes according to the simulator density. Returns an (n, 2) array.
        """
        return sample_nodes(
            n,
            self.density_fn,
            self.domain,
            self.z_max,
            rng if rng is not None else self.rng,
            batch_factor=self.batch_factor,
            max_rounds=self.max_rounds,
        )

    # GEOMETRY
    @staticmethod
    def distance_matrix(nodes: np.ndarray) -> np.ndarray:
        """
        Pairwise Euclidean distances. diff[i, j] == -diff[j, i] exactly, so the result
        is exactly symmetric with a zero diagonal.
        """
        nodes = np.asarray(nodes, dtype=float)
        if nodes.ndim != 2 or nodes.shape[1] != 2:
            raise ValueError("nodes must be an array of shape (n, 2).")
        diff = nodes[:, np.newaxis, :] - nodes[np.newaxis, :, :]
        return np.hypot(diff[..., 0], diff[..., 1])

    @staticmethod
    def radius_bracket(dist: np.ndarray) -> Tuple[float, float]:
        """
        Bracket [low, high] that must contain the critical radius:
            low  = largest nearest-neighbour distance (below it some node is isolated)
            high = smallest farthest-neighbour distance (at it one node reaches everybody)
        """
        n = dist.shape[0]
        if n <= 1:
            return 0.0, 0.0

        off_diag = dist + np.diag(np.full(n, np.inf))
        low = float(np.max(np.min(off_diag, axis=1)))
        high = float(np.min(np.max(dist, axis=1)))
        return low, high

    # CONNECTIVITY ORACLE
    @staticmethod
    def transition_matrix(dist: np.ndarray, radius: float) -> np.ndarray:
        """
        Row-stochastic random walk matrix on the proximity graph at the given radius.
        P[i, j] = 1/k_i if dist[i, j] <= radius, where k_i counts the nodes within radius
        of i (i itself included, so every row has at least one entry).
        """
        if not radius >= 0:
            raise InvalidRadiusError(f"radius must be non-negative, got {radius}.")
        adjacency = (dist <= radius).astype(float)
        degrees = adjacency.sum(axis=1)
        return adjacency / degrees[:, np.newaxis]

    @staticmethod
    def second_largest_eigenvalue(transition: np.ndarray) -> float:
        """
        Second largest eigenvalue magnitude of a transition matrix P = K^-1 A.
        A is symmetric, so P is similar to K^-1/2 A K^-1/2 and we can use the
        symmetric solver, which returns real eigenvalues.
        """
        n = transition.shape[0]
        if n < 2:
            return 0.0
        # Diagonal of P is 1/k_i because every node is within radius of itself
        sqrt_deg = np.sqrt(1.0 / np.diag(transition))
        symmetric = transition * sqrt_deg[:, np.newaxis] / sqrt_deg[np.newaxis, :]
        symmetric = 0.5 * (symmetric + symmetric.T)
        magnitudes = np.sort(np.abs(np.linalg.eigvalsh(symmetric)))
        return float(magnitudes[-2])

    def is_connected(self, dist: np.ndarray, radius: float) -> bool:
        """
        True if the network is fully connected at this radius.

        The leading eigenvalue of a transition matrix is always 1; it is simple iff the
        graph has one component. Finite precision blurs the comparison, so lambda_2 within
        eigen_eps of 1 counts as a repeated eigenvalue (not connected).
        """
        if not radius >= 0:
            raise InvalidRadiusError(f"radius must be non-negative, got {radius}.")
        if dist.shape[0] <= 1:
            return True

        lambda_2 = self.second_largest_eigenvalue(self.transition_matrix(dist, radius))
        return lambda_2 < 1.0 - self.eigen_eps

    # CRITICAL RADIUS SEARCH
    def find_critical_radius_from_distances(self, dist: np.ndarray, tolerance: float | None = None) -> float:
        """
        Bisection on the bracket from radius_bracket. The number of steps is fixed
        up front so that the final bracket is at most `tolerance` wide.

        We assume connectivity is monotone in R (edges are only added as R grows):
        if M is connected the critical radius is <= M, otherwise it is > M.
        The returned value is the last midpoint, an estimate within tolerance.
        """
        tolerance = self.tolerance if tolerance is None else tolerance
        if not (np.isfinite(tolerance) and tolerance > 0):
            raise InvalidToleranceError(f"tolerance must be positive, got {tolerance}.")
        dist = np.asarray(dist, dtype=float)
        if dist.ndim != 2 or dist.shape[0] != dist.shape[1]:
            raise ValueError(f"dist must be a square (n, n) array, got shape {dist.shape}.")

        low, high = self.radius_bracket(dist)
        if low == high:
            return low

        iterations = bisection_iterations(low, high, tolerance)
        mid = 0.5 * (low + high)
        for step in range(iterations):
            mid = 0.5 * (low + high)
            if self.is_connected(dist, mid):
                high = mid
            else:
                low = mid
            logger.debug("Bisection step %d/%d: bracket [%.6f, %.6f]", step + 1, iterations, low, high)

        return mid

    def find_critical_radius(self, nodes: np.ndarray, tolerance: float | None = None) -> float:
        """
        Critical radius of a node set (n, 2) within the given tolerance.
        """
        return self.find_critical_radius_from_distances(self.distance_matrix(nodes), tolerance)

    # MONTE CARLO DRIVER
    def run_trial(self, n: int, rng: np.random.Generator | None = None) -> float:
        """
        One trial: place n nodes and return their critical radius.
        """
        nodes = self.generate_node_positions(n, rng=rng)
        return self.find_critical_radius(nodes)

    def run_monte_carlo(self, num_trials: int, n: int, workers: int | None = None) -> np.ndarray:
        """
        Run many independent trials and collect the critical radius samples.

        Every trial draws from its own generator spawned from the simulator seed, so
        the samples only depend on the seed and not on how many workers are used.
        """
        if num_trials <= 0:
            raise ValueError("num_trials must be positive.")

        trial_rngs = [np.random.default_rng(s) for s in self.seed_seq.spawn(num_trials)]

        if workers is None or workers <= 1:
            samples = [self.run_trial(n, rng=r) for r in trial_rngs]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                samples = list(pool.map(lambda r: self.run_trial(n, rng=r), trial_rngs))

        logger.info("Finished %d trials with n=%d", num_trials, n)
        return np.asarray(samples, dtype=float)

    def run_over_sizes(self, sizes, num_trials: int, workers: int | None = None):
        """
        Critical radius samples for several network sizes: {n: samples}.
        """
        return {int(n): self.run_monte_carlo(num_trials, int(n), workers=workers) for n in sizes}

    @staticmethod
    def summarize(samples: np.ndarray):
        """
        Basic statistics of a critical radius sample.
        """
        samples = np.asarray(samples, dtype=float)
        return {
            "mean": float(np.mean(samples)),
            "std": float(np.std(samples)),
            "median": float(np.median(samples)),
            "p5": float(np.percentile(samples, 5)),
            "p95": float(np.percentile(samples, 95)),
        }
