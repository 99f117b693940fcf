"""
Deterministic repair rules.

Defaults for the reference dataset: header joined by "|", body joined by ";",
numbers written with a decimal comma.
"""

DEFAULT_WRONG_DELIMITER = "|"
DEFAULT_RIGHT_DELIMITER = ";"

DEFAULT_DECIMAL = ","
DEFAULT_THOUSANDS = "."
DEFAULT_DATE_FORMAT = "%Y-%m-%d"

# Bytes handed to charset-normalizer when no encoding is given
ENCODING_SAMPLE_BYTES = 64 * 1024
FALLBACK_ENCODING = "utf-8"

STRATEGIES = ("lines", "replace", "splice", "seek")
DEFAULT_STRATEGY = "lines"

# Characters that can never act as a field delimiter
FORBIDDEN_DELIMITERS = ("\r", "\n", '"')
