"""Default configuration constants for the court assignment engine."""

# Scoring weights (see models.schedule.ScoringWeights)
WEIGHT_ADJACENCY = 1.0
WEIGHT_CONTIGUITY = 1.5
WEIGHT_GAP_PENALTY = -2.0   # Applied once per new stranded gap
WEIGHT_FILL = 3.0

# Scores closer than this are treated as tied and fall through to the load tiebreaker
SCORE_TIE_EPSILON = 0.001

# Large-slot preservation (only active when splitting is allowed)
LARGE_SLOT_SHRINK_THRESHOLD = 0.30  # Shrinking the largest free slot by more than this is penalised
LARGE_SLOT_PENALTY_SCALE = -2.0

# Fragmentation score blend
FRAG_WEIGHT_GAP_RATIO = 0.4
FRAG_WEIGHT_STRANDED = 0.4
FRAG_WEIGHT_SEGMENTS = 0.2
FRAG_SEGMENT_CAP_PER_COURT = 10

# Cancellation chain reassignment
DEFAULT_MAX_CHAIN_DEPTH = 2

# Day bounds (minutes since midnight)
DAY_START_MINUTE = 0
DAY_END_MINUTE = 1440

# Reservation generator
MAX_PLACEMENT_RETRIES = 40   # Random start attempts before the exhaustive scan
ATTEMPT_BUDGET_FACTOR = 3    # Outer loop gives up after count * factor attempts
MAX_RESERVATION_MINUTES = 240
DURATION_BIN_COUNT = 4

# Seeding: each iteration gets its own independent stream
DEFAULT_SEED = 42
ITERATION_SEED_STRIDE = 1000
NAIVE_SEED_OFFSET = 500
NAIVE_NO_SPLIT_SEED_OFFSET = 600

# Overflow (pent-up demand) model
OVERFLOW_PRESSURE_FLOOR = 0.5      # Occupancy fraction where pressure starts
PEAK_HOUR_START = 17
PEAK_HOUR_END = 21
PEAK_PRESSURE_BOOST = 2.0

# Default simulator inputs
DEFAULT_NUM_COURTS = 6
DEFAULT_OPEN_HOUR = 8
DEFAULT_CLOSE_HOUR = 22
DEFAULT_RESERVATIONS_PER_DAY = 25
DEFAULT_LOCKED_FRACTION = 0.40
DEFAULT_MIN_RESERVATION_MIN = 60
DEFAULT_SLOT_BLOCK_MIN = 30
DEFAULT_DURATION_BIN_PCTS = (25, 25, 25, 25)
DEFAULT_ITERATIONS = 40

# Benchmark grid
BENCHMARK_RESERVATION_COUNTS = [15, 25, 35]
BENCHMARK_LOCKED_FRACTIONS = [0.0, 0.2, 0.4, 0.6, 0.8, 1.0]
BENCHMARK_ITERATIONS = 50
