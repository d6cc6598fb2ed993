"""
Game constants for Crazy Eights.

Values that can be tuned per deployment come from config.py (environment
variables / .env). See config.py for details.
"""

from config import config


# =============================================================================
# Game Constants
# =============================================================================

# Cards dealt to each seat at the start of a game. Part of the rules, not a setting.
INITIAL_HAND_SIZE = 8

# Multiplier on CPU "thinking" pauses; 0 makes the CPU act immediately
CPU_DELAY_SCALE: float = config.game_defaults.cpu_delay_scale

# Length of the code that identifies a table in logs and metrics
TABLE_CODE_LENGTH = 4

MAX_TABLES: int = config.MAX_TABLES
