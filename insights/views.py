"""
Views for the insights app.
"""
import logging
from typing import Tuple

from django.conf import settings
from django.core.cache import cache
from django.http import HttpResponse, JsonResponse
from django.views.decorators.http import require_http_methods

from .config import config_from_query
from .exceptions import NotFound, RateLimited, UpstreamError
from .rendering import build_embeds, render
from .services.aggregator import Stats, StatsAggregator
from .services.github_client import GitHubClient
from .services.provider import User
from .themes import DEFAULT_THEME

logger = logging.getLogger(__name__)

CACHE_CONTROL = 'public, max-age=3600'


def load_stats(username: str) -> Tuple[Stats, User]:
    """
    Aggregate stats for a user.
    Uses caching to avoid excessive API calls.
    """
    cache_key = f"github_stats_{username.lower()}"
    cached = cache.get(cache_key)
    if cached:
        return Stats.from_dict(cached['stats']), User.from_dict(cached['user'])

    stats, user = StatsAggregator(GitHubClient()).aggregate_with_user(username)

    cache_timeout = getattr(settings, 'GITHUB_CACHE_TIMEOUT', 1800)
    cache.set(cache_key, {'stats': stats.to_dict(), 'user': user.to_dict()}, cache_timeout)
    return stats, user


def error_response(error: UpstreamError) -> JsonResponse:
    if isinstance(error, NotFound):
        status_code = 404
    elif isinstance(error, RateLimited):
        status_code = 429
    else:
        status_code = 502
    logger.warning("Could not build insights for %s: %s", error.username, error)
    return JsonResponse({'error': error.message, 'username': error.username}, status=status_code)


def _default_theme() -> str:
    return getattr(settings, 'INSIGHTS_DEFAULT_THEME', DEFAULT_THEME)


@require_http_methods(["GET"])
def insights_view(request, username):
    """
    Render the SVG card.
    Supports theme, layout and display option query parameters.
    """
    config = config_from_query(username, request.GET, default_theme=_default_theme())
    try:
        stats, user = load_stats(username)
    except UpstreamError as e:
        return error_response(e)

    response = HttpResponse(render(username, stats, config, user), content_type='image/svg+xml')
    response['Cache-Control'] = CACHE_CONTROL
    return response


@require_http_methods(["GET"])
def stats_view(request, username):
    """Aggregated stats and profile as JSON."""
    try:
        stats, user = load_stats(username)
    except UpstreamError as e:
        return error_response(e)

    response = JsonResponse({'stats': stats.to_dict(), 'user': user.to_dict()})
    response['Cache-Control'] = CACHE_CONTROL
    return response


@require_http_methods(["GET"])
def embed_view(request, username):
    """Markdown, HTML and raw SVG embed snippets."""
    config = config_from_query(username, request.GET, default_theme=_default_theme())
    try:
        stats, user = load_stats(username)
    except UpstreamError as e:
        return error_response(e)

    base_url = getattr(settings, 'INSIGHTS_BASE_URL', None) or request.build_absolute_uri('/').rstrip('/')
    embeds = build_embeds(username, stats, config, base_url, user)
    return JsonResponse(embeds.to_dict())
