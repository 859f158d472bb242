"""
Theme definitions for the insight cards.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class ThemePalette:
    """Colours for each semantic role on a card."""
    id: str
    name: str
    background: str
    card: str
    card_light: str
    text: str
    text_light: str
    accent: str
    highlight: str
    border: str
    border_gradient_start: str
    border_gradient_end: str
    success: str
    warning: str
    danger: str
    orange: str
    purple: str
    yellow: str
    chart_background: str
    grid: str


# Theme registry
THEMES: Mapping[str, ThemePalette] = MappingProxyType({
    'dark': ThemePalette(
        id='dark',
        name='Dark',
        background='#0d1117',
        card='#161b22',
        card_light='#21262d',
        text='#c9d1d9',
        text_light='#8b949e',
        accent='#30363d',
        highlight='#58a6ff',
        border='#30363d',
        border_gradient_start='#58a6ff',
        border_gradient_end='#3fb950',
        success='#3fb950',
        warning='#d29922',
        danger='#f85149',
        orange='#ff7b72',
        purple='#bc8cff',
        yellow='#f0c800',
        chart_background='#1a1d29',
        grid='#2a2e3d',
    ),
    'light': ThemePalette(
        id='light',
        name='Light',
        background='#ffffff',
        card='#f6f8fa',
        card_light='#eaeef2',
        text='#24292f',
        text_light='#57606a',
        accent='#d0d7de',
        highlight='#0969da',
        border='#d0d7de',
        border_gradient_start='#0969da',
        border_gradient_end='#1a7f37',
        success='#1a7f37',
        warning='#9e6a03',
        danger='#d1242f',
        orange='#d1242f',
        purple='#8250df',
        yellow='#bf8700',
        chart_background='#ffffff',
        grid='#d8dee4',
    ),
    'neon': ThemePalette(
        id='neon',
        name='Neon',
        background='#0a0e27',
        card='#1a1f3a',
        card_light='#252d4d',
        text='#00ff88',
        text_light='#00cc66',
        accent='#ff006e',
        highlight='#00d9ff',
        border='#ff006e',
        border_gradient_start='#00d9ff',
        border_gradient_end='#00ff88',
        success='#00ff88',
        warning='#ffaa00',
        danger='#ff0055',
        orange='#ff6600',
        purple='#cc00ff',
        yellow='#ffdd00',
        chart_background='#0f1433',
        grid='#2b3363',
    ),
    'ocean': ThemePalette(
        id='ocean',
        name='Ocean',
        background='#0c1e3a',
        card='#1a3a52',
        card_light='#244863',
        text='#a8d8f0',
        text_light='#7ab8d8',
        accent='#2a6a8a',
        highlight='#4db8ff',
        border='#4db8ff',
        border_gradient_start='#4db8ff',
        border_gradient_end='#2dd4a4',
        success='#2dd4a4',
        warning='#ffa500',
        danger='#ff6b6b',
        orange='#ff8c42',
        purple='#9b72ff',
        yellow='#ffd700',
        chart_background='#132c45',
        grid='#2a4d6a',
    ),
    'tokyo': ThemePalette(
        id='tokyo',
        name='Tokyo Night',
        background='#1a1b26',
        card='#292e42',
        card_light='#3e4451',
        text='#9da5b4',
        text_light='#7e8490',
        accent='#3b4261',
        highlight='#7aa2f7',
        border='#3b4261',
        border_gradient_start='#7aa2f7',
        border_gradient_end='#9ece6a',
        success='#9ece6a',
        warning='#e0af68',
        danger='#f7768e',
        orange='#ff9e64',
        purple='#bb9af7',
        yellow='#e0af68',
        chart_background='#1f2335',
        grid='#3b4261',
    ),
    'dracula': ThemePalette(
        id='dracula',
        name='Dracula',
        background='#282a36',
        card='#21222c',
        card_light='#44475a',
        text='#f8f8f2',
        text_light='#bcc7d0',
        accent='#44475a',
        highlight='#ff79c6',
        border='#44475a',
        border_gradient_start='#ff79c6',
        border_gradient_end='#50fa7b',
        success='#50fa7b',
        warning='#f1fa8c',
        danger='#ff5555',
        orange='#ffb86c',
        purple='#bd93f9',
        yellow='#f1fa8c',
        chart_background='#1e1f29',
        grid='#3a3c4e',
    ),
})

DEFAULT_THEME = 'dark'

# Languages drawn with a palette role rather than a fixed colour.
LANGUAGE_PALETTE_ROLES = {
    'HTML': 'orange',
    'TypeScript': 'highlight',
    'JavaScript': 'yellow',
    'CSS': 'purple',
    'C': 'text_light',
}

LANGUAGE_COLORS = {
    'C++': '#f54281',
    'Python': '#3572A5',
    'Java': '#b07219',
    'Go': '#00ADD8',
    'Rust': '#dea584',
}


def get_theme(theme_id: str) -> ThemePalette:
    """Get a theme by ID, returning default if not found."""
    return THEMES.get(theme_id, THEMES[DEFAULT_THEME])


def language_color(language: str, palette: ThemePalette) -> str:
    """Swatch for a language, falling back to the palette highlight."""
    role = LANGUAGE_PALETTE_ROLES.get(language)
    if role:
        return getattr(palette, role)
    return LANGUAGE_COLORS.get(language, palette.highlight)
