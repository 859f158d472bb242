"""
Embed snippets pointing at a rendered card.
"""
from dataclasses import asdict, dataclass
from typing import Dict, Optional
from urllib.parse import quote, urlencode

from django.utils.html import escape

from ..config import LAYOUT_ADVANCED, LAYOUT_COMPACT, RenderConfig
from ..services.aggregator import Stats
from ..services.provider import User
from .card import render

EMBED_WIDTHS = {
    LAYOUT_ADVANCED: 1000,
    LAYOUT_COMPACT: 800,
}


@dataclass(frozen=True)
class EmbedCode:
    markdown: str
    html: str
    svg: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def card_url(username: str, config: RenderConfig, base_url: str) -> str:
    """``{base_url}/insights/{username}?theme={theme}``."""
    params = {'theme': config.theme}
    if config.layout == LAYOUT_COMPACT:
        params['layout'] = config.layout
    return f"{base_url.rstrip('/')}/insights/{quote(username)}?{urlencode(params)}"


def build_embeds(
    username: str,
    stats: Stats,
    config: RenderConfig,
    base_url: str,
    user: Optional[User] = None,
) -> EmbedCode:
    src = escape(card_url(username, config, base_url))
    alt = escape(f"{username} GitHub Stats")
    width = EMBED_WIDTHS.get(config.layout, EMBED_WIDTHS[LAYOUT_ADVANCED])

    return EmbedCode(
        markdown=f'<div align="center">\n  <img src="{src}" alt="{alt}" />\n</div>',
        html=f'<div align="center">\n  <img src="{src}" alt="{alt}" width="{width}" />\n</div>',
        svg=render(username, stats, config, user),
    )
