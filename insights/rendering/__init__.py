from .card import build_scene, render
from .embeds import EmbedCode, build_embeds

__all__ = ['EmbedCode', 'build_embeds', 'build_scene', 'render']
