"""Static metro line definitions.

Each line is the ordered list of station ids along the track; adjacent entries
are directly connected. Line numbers are 1-based in definition order, so the
two line-3 branches are routed as lines 4 and 5.
"""

from typing import Tuple

LINE_1 = (
    42, 8, 43, 70, 35, 24, 69, 49, 68, 84, 50, 37, 13, 15, 53, 26, 27, 61, 62,
    1, 5, 10, 22, 21, 51, 46, 38, 66, 36, 41, 17, 6, 32, 52, 56,
)

LINE_2 = (
    19, 65, 57, 34, 33, 12, 16, 14, 58, 62, 55, 25, 10, 31, 60, 63, 9, 18, 48,
    3,
)

LINE_3_MAIN = (
    4, 45, 73, 59, 44, 7, 30, 11, 40, 39, 20, 47, 67, 71, 29, 2, 23, 28, 25,
    1, 54, 64, 72,
)

LINE_3_BRANCH_NORTH = (72, 74, 75, 76, 77, 78, 79)

LINE_3_BRANCH_WEST = (72, 80, 81, 82, 83, 12)

METRO_LINES: Tuple[Tuple[int, ...], ...] = (
    LINE_1,
    LINE_2,
    LINE_3_MAIN,
    LINE_3_BRANCH_NORTH,
    LINE_3_BRANCH_WEST,
)
