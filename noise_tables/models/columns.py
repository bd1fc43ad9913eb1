from __future__ import annotations

"""Fixed column layout of the source and output sheets (0-based indices).

A  name   | B  marker | C  31.5 Hz (hidden) | D..K  63..8000 Hz
L  Leq    | M  Lmax   | N  coordinates      | O     description
"""

NAME_COL = 0  # A: calculation point name on group-start rows
MARKER_COL = 1  # B: row role label
HIDDEN_BAND_COL = 2  # C: 31.5 Hz band
LEQ_COL = 11  # L: Leq, dBA
LMAX_COL = 12  # M: Lmax, dBA
COORDINATES_COL = 13  # N
DESCRIPTION_COL = 14  # O

# D..M: ten value columns touched by the correction operation
VALUE_COLUMNS = range(3, 13)

# A..M: range that gets borders and that decides whether a row is empty
TABLE_COLUMNS = range(0, 13)

# two header rows + blank separator; row operations never touch these
HEADER_ROWS = 3

FREQUENCY_BANDS = ("31.5", "63", "125", "250", "500", "1000", "2000", "4000", "8000")
HIDDEN_BAND_LABEL = FREQUENCY_BANDS[0]
