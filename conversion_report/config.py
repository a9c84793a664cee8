
# Analysis configuration & thresholds

SEED = 42
TARGET = "converted"
POSITIVE_LABEL = "yes"

# --- Input schema ---
COUNTRY = "country"
AGE = "age"
NEW_USER = "new_user"
SOURCE = "source"
PAGE_VIEWS = "total_pages_visited"
REQUIRED_COLUMNS = [COUNTRY, AGE, NEW_USER, SOURCE, PAGE_VIEWS, TARGET]
NUMERIC_INPUT_COLUMNS = [AGE, NEW_USER, PAGE_VIEWS, TARGET]

# --- Cleaning ---
MAX_PLAUSIBLE_AGE = 100        # rows with age >= this are dropped (111, 123 seen in the raw file)
NEW_USER_LEVELS = {0: "returning", 1: "new"}
TARGET_LEVELS = {0: "no", 1: "yes"}

# --- Features ---
NUMERIC_FEATURES = [AGE, PAGE_VIEWS]
CATEGORICAL_FEATURES = [COUNTRY, NEW_USER, SOURCE]
CORR_THRESHOLD = 0.5           # |r| at or above this flags a redundant pair

# --- Split ---
TRAIN_FRAC = 0.8

# --- Training ---
CV_FOLDS = 5
SCORING = "accuracy"
METHODS = ("lda", "rf")
RF_N_TREES = 500
MTRY_GRID_LENGTH = 3

# --- Model choice ---
ACCURACY_TOLERANCE = 0.01      # accuracies closer than this count as comparable

# --- Bucketing ---
INF = float("inf")
AGE_BREAKS = [16, 21, 24, 29, 34, 39, INF]
PAGE_VIEW_BREAKS = [0, 1, 2, 3, 4, 5, 6, 8, INF]
BUCKET_SETS = [
    [(AGE, AGE_BREAKS)],
    [(AGE, AGE_BREAKS), (PAGE_VIEWS, PAGE_VIEW_BREAKS)],
]
