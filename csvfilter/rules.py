"""
Deterministic filtering rules and configuration.

Everything that should survive across files (character sets, heuristic
constants, error strings) is defined here so it can be audited in one place.
Deployment-specific defaults can be overridden from the environment or a .env
file at the project root.
"""

import os
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent.parent.resolve()
load_dotenv(ROOT / ".env")

# --- Convenience character sets for field definitions ---
ALPHA = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ "
NUMERIC = "1234567890"
DECIMAL = NUMERIC + "."
SYMBOLS = "/*-+`~!@#$%^&*()_+=-{}[]\\|:;<>,./?\""
NAMECHARS = ALPHA + ". "
ALPHANUMERIC = ALPHA + NUMERIC

# --- Scanner ---
QUOTE_CHAR = '"'
DROPPED_CHARS = "\r\t"

# --- Header detection ---
# Headers are mostly letters; data rows shrink noticeably once these are stripped.
HEADER_STRIP_CHARS = "\"1234567890/\\@;"
HEADER_SIZE_CHANGE = Decimal("0.85")

# --- Value-level error messages ---
BLANK_ERROR = "ERROR: Missing required value."
WRONG_LENGTH_ERROR = "ERROR: Invalid length."
NOT_IN_OPTIONS_ERROR = "ERROR: Not a valid selection from the list of options."
REGEX_ERROR = "Value failed regex check on value."
UNDEFINED_FIELD_ERROR = "No field definition for this field."
DATE_ERROR = "Unable to recognize date in date field."
GENDER_ERROR = "Unable to determine gender from entry."

# --- File-level error messages ---
EMPTY_FILE_ERROR = "Empty files cannot be processed."

# --- Output ---
ERROR_REPORT_COLUMNS = ("Line", "Field", "Value", "Error")
ERROR_SUFFIX = "_ERROR.csv"
OUTPUT_DATE_FORMAT = "{month}/{day}/{year}"
# two-digit years above this land in the previous century (en-US cutoff)
TWO_DIGIT_YEAR_MAX = 2049
OUTPUT_ENCODING = "utf-8-sig"  # UTF-8 with BOM

# --- Environment-driven defaults ---
DEFAULT_DELIMITER = os.getenv("CSVFILTER_DELIMITER", ",")
DEFAULT_DISALLOWED = os.getenv("CSVFILTER_DISALLOWED", "")
REMOVE_EMPTY_LINES = os.getenv("CSVFILTER_REMOVE_EMPTY_LINES", "true").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("CSVFILTER_LOG_LEVEL", "INFO").upper()
HOST = os.getenv("CSVFILTER_HOST", "0.0.0.0")
PORT = int(os.getenv("CSVFILTER_PORT", "8000"))
