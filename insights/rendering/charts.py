"""
Layout math for the card's charts.
"""
import math
from typing import Dict, List, Sequence, Tuple

from ..services.aggregator import Stats
from ..themes import ThemePalette
from .scene import format_coordinate

Point = Tuple[float, float]

STREAK_GOAL_DAYS = 30
MIN_CHART_MAX = 10
Y_AXIS_FRACTIONS = (1, 0.83, 0.67, 0.5, 0.33, 0.17, 0)
X_AXIS_DAYS = (0, 5, 10, 15, 20, 25, 30)


def format_number(num: int) -> str:
    """Abbreviate values above three digits: ``1500`` -> ``1.5K``."""
    # 999950 would round up to "1000.0K"
    if num >= 999950:
        return f"{num / 1000000:.1f}M"
    if num >= 1000:
        return f"{num / 1000:.1f}K"
    return str(num)


def language_shares(languages: Dict[str, int]) -> List[Tuple[str, float]]:
    """Each language's percentage of the listed total, highest first."""
    entries = sorted(languages.items(), key=lambda item: item[1], reverse=True)[:5]
    total = sum(count for _, count in entries)
    if total <= 0:
        return []
    return [(language, count / total * 100) for language, count in entries]


def bar_segments(shares: Sequence[Tuple[str, float]], x: float, width: float) -> List[Tuple[str, float, float]]:
    """``(language, x, width)`` for a stacked bar spanning ``width``."""
    segments = []
    cursor = x
    for language, percentage in shares:
        segment_width = width * percentage / 100
        segments.append((language, cursor, segment_width))
        cursor += segment_width
    return segments


def chart_max(values: Sequence[int]) -> int:
    return max(list(values) + [MIN_CHART_MAX])


def y_axis_ticks(max_value: int) -> List[int]:
    """Tick labels from top to bottom."""
    return [max_value if fraction == 1 else round(max_value * fraction) for fraction in Y_AXIS_FRACTIONS]


def plot_points(
    values: Sequence[int],
    x: float,
    y: float,
    width: float,
    height: float,
    max_value: int,
) -> List[Point]:
    span = len(values) - 1 or 1
    return [
        (x + index / span * width, y + height - value / max_value * height)
        for index, value in enumerate(values)
    ]


def line_path(points: Sequence[Point]) -> str:
    """Point-to-point polyline, no smoothing."""
    if not points:
        return ''
    commands = [f"M {format_coordinate(points[0][0])},{format_coordinate(points[0][1])}"]
    commands.extend(f"L {format_coordinate(px)},{format_coordinate(py)}" for px, py in points[1:])
    return ' '.join(commands)


def area_path(points: Sequence[Point], baseline: float) -> str:
    """The polyline closed down to ``baseline``."""
    if not points:
        return ''
    return (
        f"{line_path(points)} L {format_coordinate(points[-1][0])},{format_coordinate(baseline)} "
        f"L {format_coordinate(points[0][0])},{format_coordinate(baseline)} Z"
    )


def streak_ring(current_streak: int, radius: float) -> Tuple[float, float]:
    """``(circumference, dash offset)`` for a ring filled ``min(streak/30, 1)``."""
    circumference = 2 * math.pi * radius
    progress = min(current_streak / STREAK_GOAL_DAYS, 1)
    return circumference, circumference * (1 - progress)


def calculate_rating(stats: Stats, palette: ThemePalette) -> Tuple[str, str]:
    """Calculate rating based on multiple GitHub metrics with weighted scoring."""
    score = 0

    # Stars: 0-35 points (max at 1500+ stars)
    score += min(35, (stats.total_stars / 1500) * 35)

    # Contributions: 0-25 points (max at 4000+ contributions)
    score += min(25, (stats.contributions / 4000) * 25)

    # Commits: 0-20 points (max at 1500+ commits/year)
    score += min(20, (stats.commits / 1500) * 20)

    # Pull Requests: 0-12 points (max at 150+ PRs/year)
    score += min(12, (stats.pull_requests / 150) * 12)

    # Repositories: 0-8 points (max at 80+ repos)
    score += min(8, (stats.total_repos / 80) * 8)

    if score >= 75:
        return "A+", palette.purple
    elif score >= 55:
        return "A", palette.highlight
    elif score >= 35:
        return "B+", palette.success
    else:
        return "C+", palette.warning
