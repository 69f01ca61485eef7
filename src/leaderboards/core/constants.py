"""
Configuration constants for standings and combo performance analytics.

This module centralizes the canonical column names, the accepted input
aliases and all default parameters so the engines stay consistent.
"""

# =============================================================================
# Canonical match columns
# =============================================================================

MATCH_INDEX = "match_index"
GROUPING_KEY = "grouping_key"
PARTICIPANT_A = "participant_a"
PARTICIPANT_B = "participant_b"
WINNER = "winner"
SCORE_A = "score_a"
SCORE_B = "score_b"
POINTS_AWARDED = "points_awarded"
ENTITY_A = "entity_a"
ENTITY_B = "entity_b"
IS_PRACTICE = "is_practice"
PLAYED_AT = "played_at"

# Validation flags added during normalization
IS_VALID = "is_valid"
IS_RESOLVED = "is_resolved"

IDENTIFIER_COLUMNS = (
    GROUPING_KEY,
    PARTICIPANT_A,
    PARTICIPANT_B,
    WINNER,
    ENTITY_A,
    ENTITY_B,
)
NUMERIC_COLUMNS = (SCORE_A, SCORE_B, POINTS_AWARDED)

# Accepted input names, mapped to the canonical column.
# Covers camelCase payloads and the match_sessions / match_results rows.
COLUMN_ALIASES: dict[str, str] = {
    "participantA": PARTICIPANT_A,
    "participantB": PARTICIPANT_B,
    "player1_name": PARTICIPANT_A,
    "player2_name": PARTICIPANT_B,
    "player1": PARTICIPANT_A,
    "player2": PARTICIPANT_B,
    "winner_name": WINNER,
    "scoreA": SCORE_A,
    "scoreB": SCORE_B,
    "player1_final_score": SCORE_A,
    "player2_final_score": SCORE_B,
    "points": POINTS_AWARDED,
    "pointsAwarded": POINTS_AWARDED,
    "entityA": ENTITY_A,
    "entityB": ENTITY_B,
    "player1_beyblade": ENTITY_A,
    "player2_beyblade": ENTITY_B,
    "player1_combo": ENTITY_A,
    "player2_combo": ENTITY_B,
    "groupingKey": GROUPING_KEY,
    "tournament_id": GROUPING_KEY,
    "isPractice": IS_PRACTICE,
    "playedAt": PLAYED_AT,
    "submitted_at": PLAYED_AT,
}

# =============================================================================
# Standings columns
# =============================================================================

PARTICIPANT = "participant"
OPPONENT = "opponent"
SIDE = "side"
WON = "won"
WINS = "wins"
LOSSES = "losses"
SCORE = "score"
TB = "tb"
BUCHHOLZ = "buchholz"
POINTS_FOR = "points_for"
POINTS_AGAINST = "points_against"
POINTS_DIFF = "points_diff"
TOTAL_MATCHES = "total_matches"
WIN_RATE = "win_rate"
TOURNAMENTS = "tournaments"
RANK = "rank"

# Sort cascade, each key breaks ties of the previous one.
STANDINGS_SORT_KEYS = (SCORE, TB, BUCHHOLZ, POINTS_DIFF)

# =============================================================================
# Entity performance columns
# =============================================================================

ENTITY = "entity"
OWNER = "owner"
TOTAL_POINTS = "total_points"
WEIGHTED_WIN_RATE = "weighted_win_rate"
AVG_POINTS_PER_MATCH = "avg_points_per_match"
COMPOSITE_SCORE = "composite_score"
WILSON_LOWER_BOUND = "wilson_lower_bound"
OWNERS = "owners"
ENTITY_COUNT = "entity_count"
PART_TYPE = "part_type"
OPPONENT_ENTITY = "opponent_entity"
PERIOD = "period"
USAGE = "usage"

# =============================================================================
# Scoring parameters
# =============================================================================

# Shrinkage constant: weighted = win_rate * n / (n + K)
DEFAULT_SMOOTHING_K: float = 10.0
DEFAULT_SMOOTHING_MODE = "sample_size"

# Points are awarded 1-3 per match (spin, over/burst, xtreme finish)
DEFAULT_POINTS_SCALE: float = 3.0
DEFAULT_COMPOSITE_MULTIPLIER: float = 100.0

# Two-sided 95% interval
DEFAULT_WILSON_Z: float = 1.96

# Opponent combos need this many trials to appear in a matchup table
DEFAULT_MATCHUP_MIN_MATCHES: int = 3
DEFAULT_MATCHUP_LIMIT: int = 10

# Median Buchholz trims extremes only above this many opponents
DEFAULT_BUCHHOLZ_TRIM_ABOVE: int = 2

POINTS_SOURCES = ("awarded", "score")
DEFAULT_POINTS_SOURCE = "awarded"

# =============================================================================
# Combo parsing
# =============================================================================

PART_BLADE = "blade"
PART_RATCHET = "ratchet"
PART_BIT = "bit"
PART_LOCKCHIP = "lockchip"
PART_MAIN_BLADE = "main_blade"
PART_ASSIST_BLADE = "assist_blade"

PART_TYPES = (
    PART_BLADE,
    PART_MAIN_BLADE,
    PART_RATCHET,
    PART_BIT,
    PART_LOCKCHIP,
    PART_ASSIST_BLADE,
)

STANDARD_BLADE_LINES = ("Basic", "Unique", "X-Over")
CUSTOM_BLADE_LINE = "Custom"
