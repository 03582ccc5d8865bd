import math
import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from heartfield.config import Config

logger = logging.getLogger(__name__)

# Palette tiers: (cumulative roll cutoff, (h0, h_span, s0, s_span, l0, l_span))
OUTER_PALETTE = (
    (0.4, (0.75, 0.10, 0.5, 0.3, 0.50, 0.20)),   # violet
    (0.7, (0.90, 0.08, 0.4, 0.3, 0.55, 0.15)),   # pink
    (1.0, (0.80, 0.05, 0.3, 0.2, 0.60, 0.15)),   # lilac
)
INNER_PALETTE = (
    (0.5, (0.92, 0.08, 0.6, 0.4, 0.75, 0.20)),   # bright pink
    (0.8, (0.95, 0.00, 0.2, 0.3, 0.90, 0.10)),   # pink-white
    (1.0, (0.00, 0.00, 0.0, 0.0, 0.95, 0.05)),   # white
)
# Sizes: (cumulative roll cutoff, (base, span))
OUTER_SIZES = ((0.7, (0.02, 0.02)), (0.95, (0.03, 0.03)), (1.0, (0.05, 0.03)))
INNER_SIZES = ((0.6, (0.04, 0.03)), (0.9, (0.06, 0.04)), (1.0, (0.10, 0.08)))

# Surface shell shaping
SHELL_BLEND = 0.9          # Share of the outline that follows the depth angle
DEPTH_RATIO = 0.7          # Max depth relative to local outline radius
SURFACE_NOISE = 0.05
# Interior fill shaping
FILL_POWER = 0.5           # < 1 skews fill radius toward the shell
FILL_MAX = 0.85
INTERIOR_DEPTH = 1.2


def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    # Fresh generator per call keeps calls independent of each other.
    return rng if rng is not None else np.random.default_rng()


def _check_count(count: int):
    if count < 1:
        raise ValueError(f"Point count must be at least 1, got {count}")


def _tiered(rolls: np.ndarray, table) -> np.ndarray:
    """Map uniform rolls to the parameter row of the tier they land in."""
    cutoffs = np.array([c for c, _ in table])
    params = np.array([p for _, p in table])
    idx = np.minimum(np.searchsorted(cutoffs, rolls, side="right"), len(table) - 1)
    return params[idx]


class GeometryGenerator:
    """
    Procedural point clouds for the two particle targets.
    Every generator is vectorised and keeps no state between calls.
    """
    @staticmethod
    def heart_outline(u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        # Classic single-cusp heart curve, normalised so both axes span ~[-1, 1].
        x = np.sin(u) ** 3
        y = (13 * np.cos(u) - 5 * np.cos(2 * u) - 2 * np.cos(3 * u) - np.cos(4 * u)) / 17
        return x, y

    @staticmethod
    def _sample_surface(rng: np.random.Generator, n: int) -> np.ndarray:
        # u walks the outline, v sweeps a lens from front face to back face.
        u = rng.uniform(0, 2 * math.pi, n)
        v = rng.uniform(0, math.pi, n)
        nx, ny = GeometryGenerator.heart_outline(u)
        radius = np.hypot(nx, ny)

        shell = np.sin(v) * SHELL_BLEND + (1 - SHELL_BLEND)
        pts = np.empty((n, 3))
        pts[:, 0] = nx * shell
        pts[:, 1] = ny * shell
        pts[:, 2] = np.cos(v) * radius * DEPTH_RATIO

        # Jitter breaks up visible rings along u.
        pts[:, 0] += (rng.random(n) - 0.5) * SURFACE_NOISE
        pts[:, 1] += (rng.random(n) - 0.5) * SURFACE_NOISE
        pts[:, 2] += (rng.random(n) - 0.5) * SURFACE_NOISE * 0.5
        return pts

    @staticmethod
    def _sample_interior(rng: np.random.Generator, n: int) -> np.ndarray:
        u = rng.uniform(0, 2 * math.pi, n)
        fill = rng.random(n) ** FILL_POWER * FILL_MAX
        nx, ny = GeometryGenerator.heart_outline(u)
        nx *= fill
        ny *= fill
        radius = np.hypot(nx, ny)

        pts = np.empty((n, 3))
        pts[:, 0] = nx
        pts[:, 1] = ny
        pts[:, 2] = (rng.random(n) - 0.5) * radius * INTERIOR_DEPTH
        return pts

    @staticmethod
    def center_void_mask(pts: np.ndarray, rng: np.random.Generator,
                         void_radius: float, void_keep: float) -> np.ndarray:
        """Acceptance mask dropping most candidates on the central x/z streak."""
        in_void = (np.abs(pts[:, 0]) < void_radius) & (np.abs(pts[:, 2]) < void_radius)
        return ~in_void | (rng.random(len(pts)) < void_keep)

    @staticmethod
    def _fill(sampler, n: int, rng: np.random.Generator,
              void_radius: float, void_keep: float) -> np.ndarray:
        """Rejection-sample exactly n points from sampler through the void filter."""
        out = np.empty((n, 3))
        filled = 0
        batches = 0
        while filled < n:
            batches += 1
            need = n - filled
            # Oversample a little so one batch usually suffices.
            batch = sampler(rng, need + need // 4 + 16)
            accepted = batch[GeometryGenerator.center_void_mask(batch, rng, void_radius, void_keep)]
            accepted = accepted[:need]
            out[filled:filled + len(accepted)] = accepted
            filled += len(accepted)
        logger.debug(f"Sampled {n} points in {batches} batch(es)")
        return out

    @staticmethod
    def generate_heart(count: int,
                       rng: Optional[np.random.Generator] = None,
                       size: float = Config.HEART_SIZE,
                       scale: Tuple[float, float, float] = (Config.HEART_SCALE_X,
                                                            Config.HEART_SCALE_Y,
                                                            Config.HEART_SCALE_Z),
                       surface_ratio: float = Config.HEART_SURFACE_RATIO,
                       void_radius: float = Config.CENTER_VOID_RADIUS,
                       void_keep: float = Config.CENTER_VOID_KEEP) -> np.ndarray:
        """Rounded, puffy 3D heart as an (count, 3) float32 array.

        Args:
            count: Number of points to return (exactly)
            rng: Optional numpy Generator, a fresh one is used otherwise
            size: Overall scale applied after shape generation
            scale: Per-axis (width, height, depth) factors
            surface_ratio: Share of points on the surface shell; the rest fill the interior
            void_radius: Half-width of the central x/z streak region (unit scale)
            void_keep: Probability a candidate inside that region survives
        """
        _check_count(count)
        if not 0 < void_keep <= 1:
            raise ValueError("void_keep must be in (0, 1]")
        if not 0 <= surface_ratio <= 1:
            raise ValueError("surface_ratio must be in [0, 1]")
        rng = _rng(rng)

        surface_count = int(count * surface_ratio)
        pts = np.vstack([
            GeometryGenerator._fill(GeometryGenerator._sample_surface, surface_count,
                                    rng, void_radius, void_keep),
            GeometryGenerator._fill(GeometryGenerator._sample_interior, count - surface_count,
                                    rng, void_radius, void_keep),
        ])
        pts *= np.asarray(scale, dtype=np.float64) * size
        return pts.astype(np.float32)

    @staticmethod
    def generate_starfield(count: int, radius: float = Config.SPACE_RADIUS,
                           rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Uniform-density ball of points, (count, 3) float32."""
        _check_count(count)
        if radius <= 0:
            raise ValueError("Starfield radius must be positive")
        rng = _rng(rng)

        theta = rng.uniform(0, 2 * math.pi, count)
        phi = np.arccos(rng.uniform(-1, 1, count))   # No clustering at the poles
        r = radius * np.cbrt(rng.random(count))      # No clustering at the center

        pts = np.empty((count, 3))
        pts[:, 0] = r * np.sin(phi) * np.cos(theta)
        pts[:, 1] = r * np.sin(phi) * np.sin(theta)
        pts[:, 2] = r * np.cos(phi)
        return pts.astype(np.float32)

    @staticmethod
    def generate_colors(count: int, rng: Optional[np.random.Generator] = None,
                        outer_ratio: float = Config.OUTER_TIER_RATIO) -> np.ndarray:
        """Two-tier palette: violet outer glow, bright pink-white inner core. RGB in [0, 1]."""
        _check_count(count)
        rng = _rng(rng)
        edge = int(count * outer_ratio)

        params = np.vstack([
            _tiered(rng.random(edge), OUTER_PALETTE),
            _tiered(rng.random(count - edge), INNER_PALETTE),
        ]).reshape(count, 6)
        h = (params[:, 0] + rng.random(count) * params[:, 1]) % 1.0
        s = params[:, 2] + rng.random(count) * params[:, 3]
        light = params[:, 4] + rng.random(count) * params[:, 5]

        # OpenCV float HLS expects hue in degrees.
        hls = np.stack([h * 360.0, light, s], axis=-1).astype(np.float32).reshape(count, 1, 3)
        rgb = cv2.cvtColor(hls, cv2.COLOR_HLS2RGB).reshape(count, 3)
        return np.clip(rgb, 0.0, 1.0)

    @staticmethod
    def generate_sizes(count: int, rng: Optional[np.random.Generator] = None,
                       outer_ratio: float = Config.OUTER_TIER_RATIO) -> np.ndarray:
        _check_count(count)
        rng = _rng(rng)
        edge = int(count * outer_ratio)

        params = np.vstack([
            _tiered(rng.random(edge), OUTER_SIZES),
            _tiered(rng.random(count - edge), INNER_SIZES),
        ]).reshape(count, 2)
        return (params[:, 0] + rng.random(count) * params[:, 1]).astype(np.float32)
