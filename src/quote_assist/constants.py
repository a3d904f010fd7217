"""
Project-wide constants for the quote assistant
"""  # noqa: D200, D212, D415

# ==============================================================================
# Length Budgets
# ==============================================================================

# Upper bound (inclusive) of each word-count tier; the last tier is open-ended
BUDGET_TIER_BOUNDS = (2, 8, 20)

# (max_sentences, max_words) per tier, smallest input first
NARRATIVE_TIER_LIMITS = ((1, 10), (1, 20), (2, 40), (3, 70))
TASK_TIER_LIMITS = ((2, 30), (2, 50), (3, 80), (4, 120))

# Generation tokens per allowed word
NARRATIVE_TOKENS_PER_WORD = 1.6
TASK_TOKENS_PER_WORD = 1.8

# JSON keys, quotes and materials around a task description
TASK_STRUCTURE_OVERHEAD_TOKENS = 120

NARRATIVE_MIN_OUTPUT_TOKENS = 60
NARRATIVE_MAX_OUTPUT_TOKENS = 800
TASK_MIN_OUTPUT_TOKENS = 200
TASK_MAX_OUTPUT_TOKENS = 800
TASK_ARRAY_MIN_OUTPUT_TOKENS = 512
TASK_ARRAY_MAX_OUTPUT_TOKENS = 2048

# ==============================================================================
# Response Recovery
# ==============================================================================

# Keys under which models tend to nest the task list
DEFAULT_ARRAY_KEYS = ("tasks",)

DEFAULT_MAX_TASK_SUGGESTIONS = 5

# Defaults for material fields the model omitted
DEFAULT_MATERIAL_QUANTITY = 1
DEFAULT_MATERIAL_UNIT = "pièce"
DEFAULT_MATERIAL_PRICE = 0

LABOR_BASIS_CHOICES = ("hour", "task")

# ==============================================================================
# Request Governance
# ==============================================================================

# Free-tier quota of the upstream model
DEFAULT_REQUESTS_PER_WINDOW = 15
DEFAULT_WINDOW_SECONDS = 60

# Input text beyond this length does not influence the cache key
CACHE_KEY_MAX_CHARS = 200

# ==============================================================================
# Generation Defaults
# ==============================================================================

DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_K = 40
DEFAULT_TOP_P = 0.95
