"""Grid geometry, synthesis defaults, and batch orchestration parameters."""

from datetime import date

# Geodesy
METERS_PER_DEGREE_LAT = 111_320.0
LON_SCALE_EPSILON = 1e-9     # floor for metres-per-degree-longitude near the poles

# Default region (degrees) — used when no bounding box is supplied
DEFAULT_BBOX = (37.33, 37.34, -122.04, -122.02)   # min_lat, max_lat, min_lon, max_lon
DEFAULT_SPACING_M = 500.0

# Cell cap applied to the generated grid (None disables it)
MAX_ALLOWED_CELLS = 500

# Random seed for reproducibility
GLOBAL_SEED = 12345
ZERO_SEED_REPLACEMENT = 0x9E37_79B9_7F4A_7C15   # seed 0 would give a degenerate stream

# Synthesis defaults
SEASON_AMPLITUDE = 0.35
BASELINE_VEGETATION_INDEX = 0.2
VEGETATION_NOISE_SIGMA = 0.04
TEMP_BASE_C = 15.0
TEMP_SEASON_AMPLITUDE = 8.0
TEMP_NOISE_SIGMA = 1.8
BURN_BASE_PROBABILITY = 0.01
BURN_SENSITIVITY_TO_VEGETATION = 1.8
BURN_SENSITIVITY_TO_TEMP = 0.03

# Field ranges
VEGETATION_RANGE = (-1.0, 1.0)
SURFACE_TEMP_RANGE_C = (-50.0, 70.0)

# Batch sizes (three independent call sites)
SYNTH_BATCH_SIZE = 200        # per-chunk synthesis fan-out
SCORE_BATCH_SIZE = 500        # per-chunk scoring fan-out
GENERATION_BATCH_SIZE = 800   # top-level cancellable generation loop
PROGRESS_EVERY_N_BATCHES = 10
MAX_WORKERS = None            # ThreadPoolExecutor default

# Cosmetic delays around a generation run (seconds)
STARTUP_DELAY_S = 0.1
SETTLE_DELAY_S = 0.3

# External classifier
CLASSIFIER_PATH = "models/wildfire_classifier.joblib"
FEATURE_VEGETATION = "NDVI"
FEATURE_SURFACE_TEMP = "LST"
FEATURE_BURN_PROBABILITY = "BURNED_AREA"
FEATURE_ORDER = (FEATURE_VEGETATION, FEATURE_SURFACE_TEMP, FEATURE_BURN_PROBABILITY)


def default_reference_date() -> date:
    return date.today()
