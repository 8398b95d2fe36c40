# snackrating/config.py
import os

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

# Default input/output locations (overridable from the command line)
RECORDS_PATH = os.path.join(BASE_DIR, 'data', 'raw', 'snacks.csv')
CATEGORY_LOOKUP_PATH = os.path.join(BASE_DIR, 'data', 'processed', 'fv_category_lookup.csv')
OUTPUT_DIR = os.path.join(BASE_DIR, 'data', 'output')

# Marker the scraper writes for empty cells
NULL_SENTINEL = 'null'

# Raw record columns
ID_COLUMN = 'id'
NAME_COLUMN = 'name'
INGREDIENTS_COLUMN = 'ingredients'
INGREDIENTS_VIEWMORE_COLUMN = 'ingredients_viewmore'
NUTRITION_BLOB_COLUMN = 'nutrition'

TEXT_COLUMNS = [
    NAME_COLUMN,
    INGREDIENTS_COLUMN,
    INGREDIENTS_VIEWMORE_COLUMN,
    NUTRITION_BLOB_COLUMN,
]

# Structured nutrient columns, in rating-argument order
NUTRIENT_COLUMNS = ['energy', 'saturated', 'sugar', 'sodium', 'protein']

# Nutrients a record needs to be rated at all
MANDATORY_NUTRIENTS = ['energy', 'saturated', 'sugar', 'sodium']

# Keyword searched in the full nutrition table for each nutrient column
NUTRIENT_KEYWORDS = {
    'energy': 'energy',
    'saturated': 'saturated',
    'sugar': 'sugar',
    'sodium': 'sodium',
    'protein': 'protein',
}

BLOB_SUFFIX = '_blob'

# Substrings removed before a nutrient value is parsed
NOISE_SUBSTRINGS = ['approx.']

# Fruit/vegetable percentage extraction
CONTEXT_WINDOW_SIZE = 3
EXCLUDED_CONTEXT_TERMS = {'oil'}
FV_CONCENTRATED_COLUMN = 'fv_concentrated'
FV_NON_CONCENTRATED_COLUMN = 'fv_non_concentrated'
DOUBLE_COUNT_THRESHOLD = 100.0

# Category lookup table columns
LOOKUP_TERM_COLUMN = 'term'
LOOKUP_NON_CONCENTRATED_COLUMN = 'non_concentrated'
LOOKUP_CONCENTRATED_COLUMN = 'concentrated'

# Rating
RATING_COLUMN = 'hsr'
SOURCE_DECISION_COLUMN = 'source_decision'
DEFAULT_FIBRE = 0.0
QUALIFYING_RATING = 3.5

# Columns shown in the top-rated view
TOP_RATED_COLUMNS = [
    ID_COLUMN,
    NAME_COLUMN,
    'energy',
    'saturated',
    'sugar',
    'sodium',
    'protein',
    FV_CONCENTRATED_COLUMN,
    FV_NON_CONCENTRATED_COLUMN,
    RATING_COLUMN,
]

# Pipeline toggles for `run_rating_pipeline`. Set a step's flag to False to skip it.
PIPELINE_STEPS = {
    'reconcile_nutrients': True,
    'fv_percentages': True,
}

FREQUENCY_TABLE_FILENAME = 'hsr_frequency.csv'
TOP_RATED_FILENAME = 'top_rated.csv'
