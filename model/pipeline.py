"""Bounding box → grid → synthetic records → fire probabilities.

Mirrors a single "generate" action: build the grid for the selected box,
cap it to the allowed cell count, synthesize records through a
`BatchGenerator`, then score them unless the run was cancelled.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from config import DEFAULT_SPACING_M, MAX_ALLOWED_CELLS
from data.grid import build_grid, cell_polygon, fit_box_to_limit
from data.synthetic_records import SynthesisOptions
from model.batch import BatchGenerator
from model.risk import RiskStats, make_scorer

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    coordinates: list                      # grid actually used (after the cell cap)
    records: list = field(default_factory=list)
    probabilities: List[float] = field(default_factory=list)
    stats: Optional[RiskStats] = None      # None when not scored or cancelled
    cancelled: bool = False
    bbox: tuple = None                     # (min_lat, max_lat, min_lon, max_lon) after fitting
    spacing_m: float = DEFAULT_SPACING_M

    def tiles(self):
        """Tile corner polygons, one per coordinate, in grid order."""
        return [cell_polygon(c, self.spacing_m) for c in self.coordinates]


def run_generation(min_lat: float, max_lat: float, min_lon: float, max_lon: float,
                   spacing_m: float = DEFAULT_SPACING_M,
                   options: SynthesisOptions = None,
                   max_cells: Optional[int] = MAX_ALLOWED_CELLS,
                   classifier=None,
                   score: bool = True,
                   generator: BatchGenerator = None,
                   progress=None,
                   fit_box: bool = False) -> GenerationResult:
    """Run the full pipeline for one bounding box.

    `classifier` is passed to `model.risk.make_scorer` (None, a callable, or
    a joblib model path). Passing a shared `generator` lets another thread
    cancel the run with ``generator.cancel()``. With `fit_box`, a box whose
    estimated cell count exceeds `max_cells` is first shrunk about its
    centre; the prefix cap still applies afterwards.
    """
    options = options if options is not None else SynthesisOptions()
    generator = generator if generator is not None else BatchGenerator()

    if fit_box and max_cells is not None:
        fitted = fit_box_to_limit(min_lat, max_lat, min_lon, max_lon, spacing_m, max_cells)
        if fitted != (min_lat, max_lat, min_lon, max_lon):
            logger.info(f"Fitted box to {max_cells} cells: {fitted}")
        min_lat, max_lat, min_lon, max_lon = fitted
    bbox = (min_lat, max_lat, min_lon, max_lon)

    coords = build_grid(min_lat, max_lat, min_lon, max_lon, spacing_m)
    if max_cells is not None and len(coords) > max_cells:
        logger.info(f"Grid has {len(coords)} cells, capping to {max_cells}")
        coords = coords[:max_cells]

    logger.info(f"Synthesizing {len(coords)} cells (seed={options.seed}, "
                f"date={options.reference_date.isoformat()})")
    records = generator.generate(coords, options, progress=progress)

    if not records and coords:
        return GenerationResult(coordinates=coords, cancelled=True,
                                bbox=bbox, spacing_m=spacing_m)

    result = GenerationResult(coordinates=coords, records=records,
                              bbox=bbox, spacing_m=spacing_m)
    if score:
        result.probabilities, result.stats = generator.calculate_fire_probabilities(
            records, make_scorer(classifier))
        logger.info(result.stats.summary())
    return result
