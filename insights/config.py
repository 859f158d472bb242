"""
Render configuration built from request parameters.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .themes import DEFAULT_THEME, THEMES

LAYOUT_ADVANCED = 'advanced'
LAYOUT_COMPACT = 'compact'
LAYOUTS = (LAYOUT_ADVANCED, LAYOUT_COMPACT)
DEFAULT_LAYOUT = LAYOUT_ADVANCED

DISPLAY_OPTIONS = (
    'showName',
    'showRepositories',
    'showFollowers',
    'showStars',
    'showLanguages',
    'showLanguageChart',
    'showJoinDate',
    'showLocation',
    'showContributions',
    'showCharts',
    'showStreak',
)

OFF_VALUES = ('off', 'false')


@dataclass(frozen=True)
class RenderConfig:
    username: str
    theme: str
    layout: str
    display_options: Mapping[str, bool]

    def shows(self, option: str) -> bool:
        return self.display_options.get(option, True)


def _is_off(value: Any) -> bool:
    if value is False:
        return True
    return isinstance(value, str) and value.strip().lower() in OFF_VALUES


def build_config(
    username: str,
    theme: Optional[str] = None,
    display_options: Optional[Mapping[str, Any]] = None,
    layout: Optional[str] = None,
) -> RenderConfig:
    """
    Every display option defaults to on; only ``False``, ``"off"`` or
    ``"false"`` switch one off. Unknown themes and layouts fall back to
    the defaults.
    """
    display_options = display_options or {}
    return RenderConfig(
        username=username,
        theme=theme if theme in THEMES else DEFAULT_THEME,
        layout=layout if layout in LAYOUTS else DEFAULT_LAYOUT,
        display_options=MappingProxyType({
            option: not _is_off(display_options.get(option, True))
            for option in DISPLAY_OPTIONS
        }),
    )


def config_from_query(username: str, params: Mapping[str, Any], default_theme: str = DEFAULT_THEME) -> RenderConfig:
    """Build a config from query-string parameters."""
    return build_config(
        username,
        theme=params.get('theme') or default_theme,
        display_options={option: params[option] for option in DISPLAY_OPTIONS if option in params},
        layout=params.get('layout'),
    )
