"""
Renders ``Stats`` into an SVG insight card.

Both layouts run a fixed vertical pipeline of sections. Each section builder
takes the running ``y`` offset and returns the offset for the next one, so a
section that is switched off simply never advances it.
"""
from datetime import date
from typing import Optional, Tuple

from ..config import LAYOUT_COMPACT, RenderConfig
from ..services.aggregator import Stats
from ..services.provider import User
from ..themes import ThemePalette, get_theme, language_color
from . import charts
from .charts import format_number
from .scene import (
    Circle,
    GradientStop,
    Line,
    LinearGradient,
    Path,
    Rect,
    Scene,
    Text,
)

ADVANCED_SIZE = (760, 800)
COMPACT_SIZE = (800, 600)

LEFT_X = 30
RIGHT_X = 390
COLUMN_WIDTH = 340
COLUMN_HEIGHT = 200
INFO_ROW_HEIGHT = 25
STAT_ROW_HEIGHT = 28
# Stat values end left of the rating badge.
STAT_VALUE_X = LEFT_X + COLUMN_WIDTH - 95
STREAK_BOX_HEIGHT = 100
CHART_HEIGHT = 200
SECTION_GAP = 20


def render(username: str, stats: Stats, config: RenderConfig, user: Optional[User] = None) -> str:
    """Render the card as SVG text."""
    return build_scene(username, stats, config, user).to_svg()


def build_scene(username: str, stats: Stats, config: RenderConfig, user: Optional[User] = None) -> Scene:
    palette = get_theme(config.theme)
    if config.layout == LAYOUT_COMPACT:
        return _compact_scene(username, stats, config, user, palette)
    return _advanced_scene(username, stats, config, user, palette)


def _short_date(value: date) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def _range_caption(value: Optional[Tuple[date, date]], empty: str) -> str:
    if not value:
        return empty
    return f"{_short_date(value[0])} - {_short_date(value[1])}"


# Advanced layout

def _advanced_scene(username, stats, config, user, palette) -> Scene:
    width, height = ADVANCED_SIZE
    scene = Scene(width, height)
    border = scene.define(LinearGradient(
        id='borderGradient',
        stops=(
            GradientStop('0%', palette.border_gradient_start),
            GradientStop('100%', palette.border_gradient_end),
        ),
    ))
    area = scene.define(LinearGradient(
        id='areaGradient',
        stops=(
            GradientStop('0%', palette.highlight, 0.3),
            GradientStop('100%', palette.highlight, 0.05),
        ),
        x2='0%',
        y2='100%',
    ))

    frame = scene.section('frame')
    frame.add(Rect(x=0, y=0, width=width, height=height, fill=palette.background))
    frame.add(Rect(
        x=20, y=20, width=width - 40, height=height - 40,
        fill=palette.card, rx=16, stroke=border, stroke_width=2,
    ))
    frame.bottom = height

    y = _advanced_header(scene, username, config, user, palette, 50)
    y = _info_rows(scene, stats, config, user, palette, y)
    y = _stat_columns(scene, stats, config, palette, y)
    if config.shows('showStreak'):
        y = _streak_boxes(scene, stats, palette, width, y)
    if config.shows('showCharts'):
        y = _activity_chart(scene, username, stats, palette, width, area, y)
    return scene


def _advanced_header(scene, username, config, user, palette, y) -> float:
    header = scene.section('header', top=y)
    header.add(Text(
        x=40, y=y, content=username, font_size=32, font_weight='bold', fill=palette.highlight,
    ))
    y += 30

    if user and user.name and config.shows('showName'):
        header.add(Text(x=40, y=y, content=user.name, font_size=14, fill=palette.text_light))
        y += 35
    else:
        y += 25
    header.bottom = y
    return y


def _info_rows(scene, stats, config, user, palette, y) -> float:
    location = user.location if user else None
    rows = [
        ('summary-contributions', '🔥', f"{format_number(stats.contributions)} contributions in the last year",
         config.shows('showContributions')),
        ('summary-repositories', '📚', f"{format_number(stats.total_repos)} public repositories",
         config.shows('showRepositories')),
        ('summary-join-date', '📅', f"Joined GitHub on {stats.joined_date}",
         config.shows('showJoinDate')),
        ('summary-location', '📍', location, config.shows('showLocation') and bool(location)),
    ]

    for name, icon, text, show in rows:
        if not show:
            continue
        row = scene.section(name, top=y)
        row.add(Text(x=40, y=y, content=f"{icon} {text}", font_size=13, fill=palette.text))
        y += INFO_ROW_HEIGHT
        row.bottom = y

    return y + 15


def _stat_columns(scene, stats, config, palette, y) -> float:
    left = scene.section('github-stats', top=y)
    left.add(Rect(x=LEFT_X, y=y, width=COLUMN_WIDTH, height=COLUMN_HEIGHT, fill=palette.card_light, rx=10))
    left.add(Text(
        x=LEFT_X + 15, y=y + 25, content='⚡ GitHub Stats',
        font_size=14, font_weight='bold', fill=palette.highlight,
    ))

    rows = [
        ('⭐', 'Total Stars Earned', stats.total_stars, config.shows('showStars')),
        ('📝', 'Commits (Last Year)', stats.commits, True),
        ('🔀', 'Pull Requests (Last Year)', stats.pull_requests, True),
        ('⭕', 'Issues (Last Year)', stats.issues, True),
        ('🤝', 'Contributed To', stats.contributed_to, True),
    ]
    row_y = y + 50
    for icon, label, value, show in rows:
        if not show:
            continue
        left.add(Text(x=LEFT_X + 15, y=row_y, content=f"{icon} {label}", font_size=11, fill=palette.text_light))
        left.add(Text(
            x=STAT_VALUE_X, y=row_y, content=format_number(value),
            font_size=11, font_weight='bold', fill=palette.text, text_anchor='end',
        ))
        row_y += STAT_ROW_HEIGHT

    grade, grade_color = charts.calculate_rating(stats, palette)
    badge_x = LEFT_X + COLUMN_WIDTH - 50
    badge_y = y + COLUMN_HEIGHT - 50
    left.add(Circle(cx=badge_x, cy=badge_y, r=28, fill=palette.accent, stroke=grade_color, stroke_width=3))
    left.add(Text(
        x=badge_x, y=badge_y + 8, content=grade,
        font_size=24, font_weight='bold', fill=grade_color, text_anchor='middle',
    ))
    left.add(Text(
        x=badge_x, y=badge_y + 38, content='Rating',
        font_size=9, fill=palette.text_light, text_anchor='middle',
    ))
    left.bottom = y + COLUMN_HEIGHT

    shares = charts.language_shares(stats.top_languages)
    if config.shows('showLanguageChart') and shares:
        _language_column(scene, shares, palette, y)

    return y + COLUMN_HEIGHT + SECTION_GAP


def _language_column(scene, shares, palette, y) -> None:
    right = scene.section('language-chart', top=y)
    right.add(Rect(x=RIGHT_X, y=y, width=COLUMN_WIDTH, height=COLUMN_HEIGHT, fill=palette.card_light, rx=10))
    right.add(Text(
        x=RIGHT_X + 15, y=y + 25, content='📊 Most Used Languages',
        font_size=14, font_weight='bold', fill=palette.highlight,
    ))

    for language, segment_x, segment_width in charts.bar_segments(shares, RIGHT_X + 15, COLUMN_WIDTH - 30):
        right.add(Rect(
            x=segment_x, y=y + 35, width=segment_width, height=8,
            fill=language_color(language, palette), rx=2,
        ))

    legend_y = y + 60
    for language, percentage in shares:
        right.add(Circle(cx=RIGHT_X + 20, cy=legend_y - 4, r=4, fill=language_color(language, palette)))
        right.add(Text(x=RIGHT_X + 30, y=legend_y, content=language, font_size=11, fill=palette.text))
        right.add(Text(
            x=RIGHT_X + COLUMN_WIDTH - 15, y=legend_y, content=f"{percentage:.1f}%",
            font_size=11, font_weight='bold', fill=palette.text, text_anchor='end',
        ))
        legend_y += 22
    right.bottom = y + COLUMN_HEIGHT


def _streak_boxes(scene, stats, palette, width, y) -> float:
    section = scene.section('streak', top=y)
    box_width = (width - 80) / 3
    box_spacing = 10

    # Total contributions
    section.add(Rect(
        x=LEFT_X, y=y, width=box_width - box_spacing, height=STREAK_BOX_HEIGHT, fill=palette.card_light, rx=10,
    ))
    section.add(Text(x=LEFT_X + 15, y=y + 35, content='✨', font_size=28, font_weight='bold', fill=palette.highlight))
    section.add(Text(
        x=LEFT_X + 50, y=y + 35, content=format_number(stats.contributions),
        font_size=28, font_weight='bold', fill=palette.highlight,
    ))
    section.add(Text(x=LEFT_X + 15, y=y + 58, content='Total Contributions', font_size=12, fill=palette.text))
    section.add(Text(x=LEFT_X + 15, y=y + 75, content='Last 365 days', font_size=9, fill=palette.text_light))

    # Current streak with a progress ring
    box2_x = LEFT_X + box_width
    section.add(Rect(
        x=box2_x, y=y, width=box_width - box_spacing, height=STREAK_BOX_HEIGHT, fill=palette.card_light, rx=10,
    ))
    ring_x = box2_x + box_width / 2 - 5
    ring_y = y + 35
    radius = 22
    circumference, dash_offset = charts.streak_ring(stats.current_streak, radius)
    section.add(Circle(cx=ring_x, cy=ring_y, r=radius, fill='none', stroke=palette.accent, stroke_width=3))
    section.add(Circle(
        cx=ring_x, cy=ring_y, r=radius, fill='none', stroke=palette.warning, stroke_width=3,
        stroke_dasharray=circumference, stroke_dashoffset=dash_offset, stroke_linecap='round',
        transform=f"rotate(-90 {ring_x:g} {ring_y:g})",
    ))
    section.add(Text(
        x=ring_x, y=ring_y + 7, content='🔥', font_size=20, font_weight='bold',
        fill=palette.warning, text_anchor='middle',
    ))
    section.add(Text(
        x=ring_x + 35, y=ring_y + 5, content=format_number(stats.current_streak),
        font_size=24, font_weight='bold', fill=palette.warning,
    ))
    section.add(Text(x=box2_x + 15, y=y + 75, content='Current Streak', font_size=12, fill=palette.text))
    section.add(Text(
        x=box2_x + 15, y=y + 90, content=_range_caption(stats.current_streak_range, 'No active streak'),
        font_size=9, fill=palette.text_light,
    ))

    # Longest streak
    box3_x = box2_x + box_width
    section.add(Rect(
        x=box3_x, y=y, width=box_width - box_spacing, height=STREAK_BOX_HEIGHT, fill=palette.card_light, rx=10,
    ))
    section.add(Text(x=box3_x + 15, y=y + 35, content='✅', font_size=28, font_weight='bold', fill=palette.success))
    section.add(Text(
        x=box3_x + 50, y=y + 35, content=format_number(stats.longest_streak),
        font_size=28, font_weight='bold', fill=palette.success,
    ))
    section.add(Text(x=box3_x + 15, y=y + 58, content='Longest Streak', font_size=12, fill=palette.text))
    section.add(Text(
        x=box3_x + 15, y=y + 75, content=_range_caption(stats.longest_streak_range, 'No streak yet'),
        font_size=9, fill=palette.text_light,
    ))

    section.bottom = y + STREAK_BOX_HEIGHT
    return y + STREAK_BOX_HEIGHT + SECTION_GAP


def _activity_chart(scene, username, stats, palette, width, area_fill, y) -> float:
    section = scene.section('activity', top=y)
    box_width = width - 60
    section.add(Rect(x=LEFT_X, y=y, width=box_width, height=CHART_HEIGHT, fill=palette.chart_background, rx=10))
    section.add(Text(
        x=box_width / 2 + LEFT_X, y=y + 22, content=f"{username}'s Contribution Graph",
        font_size=14, font_weight='bold', fill=palette.highlight, text_anchor='middle',
    ))
    section.bottom = y + CHART_HEIGHT

    if not stats.contribution_data:
        section.add(Text(
            x=box_width / 2 + LEFT_X, y=y + CHART_HEIGHT / 2 + 5, content='No contribution data available',
            font_size=12, fill=palette.text_light, text_anchor='middle',
        ))
        return y + CHART_HEIGHT

    values = [day.count for day in stats.contribution_data]
    max_value = charts.chart_max(values)

    chart_x = LEFT_X + 45
    chart_y = y + 45
    chart_width = box_width - 45 - 20
    chart_height = CHART_HEIGHT - 45 - 30
    steps = len(charts.Y_AXIS_FRACTIONS) - 1

    for i in range(steps + 1):
        grid_y = chart_y + chart_height / steps * i
        section.add(Line(
            x1=chart_x, y1=grid_y, x2=chart_x + chart_width, y2=grid_y,
            stroke=palette.grid, stroke_width=0.5, stroke_dasharray='2,2',
        ))
        grid_x = chart_x + chart_width / steps * i
        section.add(Line(
            x1=grid_x, y1=chart_y, x2=grid_x, y2=chart_y + chart_height,
            stroke=palette.grid, stroke_width=0.5, stroke_dasharray='2,2',
        ))

    label_x = LEFT_X + 12
    label_y = chart_y + chart_height / 2
    section.add(Text(
        x=label_x, y=label_y, content='Contributions', font_size=10, fill=palette.text_light,
        text_anchor='middle', transform=f"rotate(-90 {label_x:g} {label_y:g})",
    ))
    for index, tick in enumerate(charts.y_axis_ticks(max_value)):
        section.add(Text(
            x=chart_x - 8, y=chart_y + chart_height / steps * index + 3, content=str(tick),
            font_size=9, fill=palette.text_light, text_anchor='end',
        ))

    section.add(Text(
        x=chart_x + chart_width / 2, y=chart_y + chart_height + 25, content='Days',
        font_size=10, fill=palette.text_light, text_anchor='middle',
    ))
    span = len(values) - 1 or 1
    for day in charts.X_AXIS_DAYS:
        section.add(Text(
            x=chart_x + day / span * chart_width, y=chart_y + chart_height + 15, content=str(day),
            font_size=8, fill=palette.text_light, text_anchor='middle',
        ))

    points = charts.plot_points(values, chart_x, chart_y, chart_width, chart_height, max_value)
    section.add(Path(d=charts.area_path(points, chart_y + chart_height), fill=area_fill))
    section.add(Path(
        d=charts.line_path(points), stroke=palette.highlight, stroke_width=2.5,
        stroke_linecap='round', stroke_linejoin='round',
    ))
    for point_x, point_y in points:
        section.add(Circle(
            cx=point_x, cy=point_y, r=3, fill=palette.background, stroke=palette.highlight, stroke_width=1.5,
        ))

    return y + CHART_HEIGHT


# Compact layout

def _compact_scene(username, stats, config, user, palette) -> Scene:
    width, height = COMPACT_SIZE
    scene = Scene(width, height)

    frame = scene.section('frame')
    frame.add(Rect(x=0, y=0, width=width, height=height, fill=palette.background))
    frame.add(Rect(
        x=20, y=20, width=width - 40, height=height - 40,
        fill=palette.card, rx=12, stroke=palette.border, stroke_width=1,
    ))
    frame.bottom = height

    y = _compact_header(scene, username, config, user, palette, 60)
    y = _compact_summary(scene, stats, config, palette, width, y)
    y = _compact_meta(scene, stats, config, user, palette, y)
    if config.shows('showLanguages'):
        y = _language_badges(scene, stats, palette, width, y)
    if config.shows('showContributions'):
        y = _additional_tiles(scene, stats, palette, width, y)

    footer = scene.section('footer', top=height - 35)
    footer.add(Text(
        x=40, y=height - 20, content='Generated with GitHub Insights', font_size=11, fill=palette.text,
    ))
    footer.bottom = height - 20
    return scene


def _compact_header(scene, username, config, user, palette, y) -> float:
    header = scene.section('header', top=y)
    header.add(Text(x=40, y=y, content=username, font_size=32, font_weight='bold', fill=palette.highlight))
    y += 35
    if user and user.name and config.shows('showName'):
        header.add(Text(x=40, y=y, content=user.name, font_size=14, fill=palette.text))
        y += 25
    header.bottom = y
    return y


def _compact_summary(scene, stats, config, palette, width, y) -> float:
    items = [
        ('summary-repositories', 'Repos', stats.total_repos, config.shows('showRepositories')),
        ('summary-stars', 'Stars', stats.total_stars, config.shows('showStars')),
        ('summary-followers', 'Followers', stats.total_followers, config.shows('showFollowers')),
    ]
    visible = [item for item in items if item[3]]
    if not visible:
        return y

    column_width = (width - 80) / 3
    x = 40
    for name, label, value, _ in visible:
        column = scene.section(name, top=y)
        column.add(Text(x=x, y=y, content=label, font_size=12, fill=palette.text))
        column.add(Text(
            x=x, y=y + 20, content=format_number(value), font_size=24, font_weight='bold', fill=palette.highlight,
        ))
        column.bottom = y + 20
        x += column_width
    return y + 60


def _compact_meta(scene, stats, config, user, palette, y) -> float:
    location = user.location if user else None
    items = [
        ('meta-join-date', f"📅 Joined {stats.joined_date}", config.shows('showJoinDate')),
        ('meta-location', f"📍 {location}", config.shows('showLocation') and bool(location)),
    ]
    visible = [item for item in items if item[2]]
    if not visible:
        return y

    x = 40
    for name, text, _ in visible:
        item = scene.section(name, top=y)
        item.add(Text(x=x, y=y, content=text, font_size=12, fill=palette.text_light))
        item.bottom = y
        x += 360
    return y + 30


def _language_badges(scene, stats, palette, width, y) -> float:
    shares = charts.language_shares(stats.top_languages)
    if not shares:
        return y

    section = scene.section('languages', top=y)
    section.add(Text(x=40, y=y, content='Top Languages', font_size=16, font_weight='bold', fill=palette.text))
    y += 25

    badge_width = (width - 80) / 5
    x = 40
    for language, percentage in shares:
        section.add(Rect(x=x, y=y, width=badge_width - 5, height=50, fill=palette.accent, rx=6))
        section.add(Rect(x=x, y=y, width=badge_width - 5, height=4, fill=language_color(language, palette), rx=2))
        section.add(Text(
            x=x + 10, y=y + 20, content=language, font_size=12, font_weight='bold', fill=palette.highlight,
        ))
        section.add(Text(x=x + 10, y=y + 38, content=f"{percentage:.0f}%", font_size=11, fill=palette.text))
        x += badge_width

    section.bottom = y + 50
    return y + 70


def _additional_tiles(scene, stats, palette, width, y) -> float:
    section = scene.section('additional-stats', top=y)
    tiles = [
        ('Contributions', stats.contributions),
        ('Gists', stats.total_gists),
        ('Forks', stats.total_forks),
    ]
    tile_width = (width - 80) / 3
    x = 40
    for label, value in tiles:
        section.add(Rect(x=x, y=y, width=tile_width - 5, height=60, fill=palette.accent, rx=6))
        section.add(Text(x=x + 15, y=y + 25, content=label, font_size=11, fill=palette.text))
        section.add(Text(
            x=x + 15, y=y + 45, content=format_number(value), font_size=20, font_weight='bold', fill=palette.highlight,
        ))
        x += tile_width

    section.bottom = y + 60
    return y + 80
