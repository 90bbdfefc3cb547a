"""
autosave Constants

This module consolidates the global constants and environment configuration
used throughout the codebase. Constants are organized by category for easy
reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# ABI / CALLDATA
# ==================================================================================
UINT256_MAX = 2**256 - 1
SELECTOR_SIZE = 4
WORD_SIZE = 32

# Account entrypoint wrapping every outgoing call
EXECUTE_SIGNATURE = 'execute(address,uint256,bytes)'

# Standard token transfer; calldata is exactly selector + 2 words
TOKEN_TRANSFER_SIGNATURE = 'transfer(address,uint256)'
TOKEN_TRANSFER_CALLDATA_SIZE = SELECTOR_SIZE + 2 * WORD_SIZE


# ==================================================================================
# ROUND-UP SAVINGS
# ==================================================================================
# Slot consulted on interception under the default slot policy
DEFAULT_ROUND_UP_SLOT = 0


# ==================================================================================
# SUBSCRIPTIONS
# ==================================================================================
SECONDS_PER_DAY = 60 * 60 * 24
SECONDS_PER_WEEK = 7 * SECONDS_PER_DAY

# Minimum time between two collections of the same subscription
ACCRUAL_INTERVAL_SECONDS = 4 * SECONDS_PER_WEEK


# ==================================================================================
# MOCK TOKENS
# ==================================================================================
MOCK_TOKEN_DEFAULT_DECIMALS = 6  # USDC-style precision


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
