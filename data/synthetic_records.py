"""Synthetic vegetation / land-surface-temperature records per grid cell.

Every record is a pure function of (coordinate, options): the run seed is
perturbed by a hash of the coordinate and a fresh generator is built for
that cell, so the output does not depend on evaluation order or on how
the cells were split across workers.

Draw order within a cell is fixed: vegetation noise (Gaussian), surface
temperature noise (Gaussian), then the burned flag (uniform).
"""

import dataclasses
import math
from dataclasses import dataclass, field
from datetime import date, datetime

from config import (
    GLOBAL_SEED,
    SEASON_AMPLITUDE, BASELINE_VEGETATION_INDEX, VEGETATION_NOISE_SIGMA,
    TEMP_BASE_C, TEMP_SEASON_AMPLITUDE, TEMP_NOISE_SIGMA,
    BURN_BASE_PROBABILITY, BURN_SENSITIVITY_TO_VEGETATION, BURN_SENSITIVITY_TO_TEMP,
    VEGETATION_RANGE, SURFACE_TEMP_RANGE_C,
    default_reference_date,
)
from data.hashing import seed_offset, spatial_offset
from data.rng import SeededRNG, normalize_seed

_VEGETATION_TEMP_WARMING_C = 6.0   # °C added per unit of missing greenness
_VEGETATION_RISK_PIVOT = 0.5
_TEMP_PHASE_LAG = 0.25             # quarter cycle behind vegetation


def clamp(value, lo, hi):
    """Clamp to [lo, hi]; NaN maps to `lo`."""
    if math.isnan(value):
        return lo
    return lo if value < lo else (hi if value > hi else value)


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float


@dataclass(frozen=True)
class SynthesisOptions:
    seed: int = GLOBAL_SEED
    reference_date: date = field(default_factory=default_reference_date)
    season_amplitude: float = SEASON_AMPLITUDE
    baseline_vegetation_index: float = BASELINE_VEGETATION_INDEX
    vegetation_noise_sigma: float = VEGETATION_NOISE_SIGMA
    temp_base_c: float = TEMP_BASE_C
    temp_season_amplitude: float = TEMP_SEASON_AMPLITUDE
    temp_noise_sigma: float = TEMP_NOISE_SIGMA
    burn_base_probability: float = BURN_BASE_PROBABILITY
    burn_sensitivity_to_vegetation: float = BURN_SENSITIVITY_TO_VEGETATION
    burn_sensitivity_to_temp: float = BURN_SENSITIVITY_TO_TEMP

    def __post_init__(self):
        object.__setattr__(self, "seed", normalize_seed(self.seed))
        # datetime is a date subclass; keep only the calendar day
        if isinstance(self.reference_date, datetime):
            object.__setattr__(self, "reference_date", self.reference_date.date())

    @classmethod
    def from_dict(cls, values: dict) -> "SynthesisOptions":
        """Build options from a config mapping (snake_case field names).

        `reference_date` may be a date or an ISO-8601 string.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown synthesis options: {', '.join(unknown)}")

        values = dict(values)
        ref = values.get("reference_date")
        if isinstance(ref, str):
            values["reference_date"] = date.fromisoformat(ref)
        return cls(**values)


@dataclass(frozen=True)
class EnvironmentalRecord:
    coordinate: Coordinate
    vegetation_index: float     # [-1, 1], NDVI analogue
    surface_temp_c: float       # [-50, 70]
    burn_probability: float     # [0, 1]
    burned: bool
    date_iso: str


def _year_phase(day: date) -> float:
    """Fraction of the year elapsed at `day` (day-of-year / days-in-year)."""
    doy = day.timetuple().tm_yday
    days_in_year = (date(day.year + 1, 1, 1) - date(day.year, 1, 1)).days
    return doy / days_in_year


def synthesize_point(coord: Coordinate, options: SynthesisOptions = None) -> EnvironmentalRecord:
    """Synthesize one environmental record for a grid cell.

    Parameters
    ----------
    coord : Coordinate
        Cell centre; its bit pattern perturbs the run seed.
    options : SynthesisOptions, optional
        Run configuration. Defaults to ``SynthesisOptions()``.

    Returns
    -------
    EnvironmentalRecord
        Identical for identical (coord, options) on every call.
    """
    options = options if options is not None else SynthesisOptions()
    rng = SeededRNG(options.seed).fork(seed_offset(coord))

    phase = _year_phase(options.reference_date)
    season = options.season_amplitude * math.cos(2.0 * math.pi * phase)
    baseline = options.baseline_vegetation_index + spatial_offset(coord.lat, coord.lon)

    vegetation = clamp(
        baseline + season + rng.next_gaussian(0.0, options.vegetation_noise_sigma),
        *VEGETATION_RANGE,
    )

    temp_season = options.temp_season_amplitude * math.cos(
        2.0 * math.pi * (phase + _TEMP_PHASE_LAG))
    vegetation_influence = (1.0 - vegetation) * _VEGETATION_TEMP_WARMING_C
    surface_temp = clamp(
        options.temp_base_c + temp_season + vegetation_influence
        + rng.next_gaussian(0.0, options.temp_noise_sigma),
        *SURFACE_TEMP_RANGE_C,
    )

    vegetation_risk = (max(0.0, _VEGETATION_RISK_PIVOT - vegetation)
                       * options.burn_sensitivity_to_vegetation)
    temp_risk = max(0.0, surface_temp - options.temp_base_c) * options.burn_sensitivity_to_temp
    burn_probability = clamp(
        options.burn_base_probability + vegetation_risk + temp_risk, 0.0, 1.0)

    burned = rng.next_uniform01() < burn_probability

    return EnvironmentalRecord(
        coordinate=coord,
        vegetation_index=vegetation,
        surface_temp_c=surface_temp,
        burn_probability=burn_probability,
        burned=burned,
        date_iso=options.reference_date.isoformat(),
    )
