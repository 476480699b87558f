#!/usr/bin/env python3
"""Generate synthetic environmental records for a bounding box and score fire risk.

Run:  python generate.py --bbox 37.33 37.34 -122.04 -122.02 --seed 42
      python generate.py --config configs/default.yaml
"""

import argparse
import logging
from datetime import date
from pathlib import Path

from tqdm import tqdm

from config import (
    CLASSIFIER_PATH, DEFAULT_BBOX, DEFAULT_SPACING_M, MAX_ALLOWED_CELLS,
    STARTUP_DELAY_S, SETTLE_DELAY_S,
)
from data.synthetic_records import SynthesisOptions
from model.batch import BatchGenerator
from model.pipeline import run_generation
from utils import load_config, setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Synthetic wildfire risk grid generator')
    parser.add_argument('--config', type=str, default=None,
                        help='YAML file with synthesis/region/classifier sections')
    parser.add_argument('--bbox', type=float, nargs=4, default=None,
                        metavar=('MIN_LAT', 'MAX_LAT', 'MIN_LON', 'MAX_LON'),
                        help='Bounding box in degrees')
    parser.add_argument('--spacing', type=float, default=None,
                        help='Cell spacing in metres')
    parser.add_argument('--seed', type=int, default=None,
                        help='Run seed (0 is replaced by a fixed constant)')
    parser.add_argument('--date', type=date.fromisoformat, default=None,
                        help='Reference date, YYYY-MM-DD (default: today)')
    parser.add_argument('--max-cells', type=int, default=None,
                        help='Cap on generated cells (0 disables the cap)')
    parser.add_argument('--fit', action='store_true',
                        help='Shrink an oversized box about its centre to fit the cell cap')
    parser.add_argument('--classifier', type=str, default=None,
                        help='Path to a joblib point classifier')
    parser.add_argument('--workers', type=int, default=None,
                        help='Thread pool size')
    parser.add_argument('--no-score', action='store_true',
                        help='Skip fire probability scoring')
    parser.add_argument('--log-level', type=str, default='INFO')
    return parser.parse_args(argv)


def resolve_run(args):
    """Merge YAML config and command-line overrides into run parameters."""
    config = load_config(args.config) if args.config else {}
    region = dict(config.get('region') or {})
    synthesis = dict(config.get('synthesis') or {})
    classifier = (config.get('classifier') or {}).get('path')

    if args.seed is not None:
        synthesis['seed'] = args.seed
    if args.date is not None:
        synthesis['reference_date'] = args.date
    options = SynthesisOptions.from_dict(synthesis)

    if args.bbox is not None:
        bbox = tuple(args.bbox)
    else:
        bbox = tuple(region.get(k, d) for k, d in
                     zip(('min_lat', 'max_lat', 'min_lon', 'max_lon'), DEFAULT_BBOX))

    spacing = args.spacing if args.spacing is not None else region.get('spacing_m', DEFAULT_SPACING_M)
    max_cells = args.max_cells if args.max_cells is not None else region.get('max_cells', MAX_ALLOWED_CELLS)
    if max_cells == 0:
        max_cells = None
    if args.classifier is not None:
        classifier = args.classifier
    elif classifier is None and Path(CLASSIFIER_PATH).exists():
        classifier = CLASSIFIER_PATH

    return bbox, spacing, max_cells, options, classifier


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level)

    bbox, spacing, max_cells, options, classifier = resolve_run(args)
    logger.info(f"Bounds: {bbox[0]}°N to {bbox[1]}°N, {bbox[2]}°E to {bbox[3]}°E")
    logger.info(f"Spacing: {spacing} m, cell cap: {max_cells}")

    generator = BatchGenerator(max_workers=args.workers,
                               startup_delay=STARTUP_DELAY_S,
                               settle_delay=SETTLE_DELAY_S)

    with tqdm(total=100, desc="Generating", unit="%") as pbar:
        def on_progress(fraction):
            pbar.update(round(fraction * 100) - pbar.n)

        result = run_generation(*bbox, spacing_m=spacing, options=options,
                                max_cells=max_cells, classifier=classifier,
                                score=not args.no_score, generator=generator,
                                progress=on_progress, fit_box=args.fit)

    n_burned = sum(r.burned for r in result.records)
    print(f"\n{len(result.coordinates):,} cells, {n_burned:,} burned "
          f"({100 * n_burned / max(1, len(result.records)):.1f}%)")
    if result.stats is not None:
        print(result.stats.summary())
    return result


if __name__ == "__main__":
    main()
