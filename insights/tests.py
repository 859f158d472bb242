"""
Tests for the insights app.
"""
import math
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import requests
from django.core.cache import cache
from django.http import QueryDict
from django.test import SimpleTestCase, TestCase, override_settings

from .config import DISPLAY_OPTIONS, RenderConfig, build_config, config_from_query
from .exceptions import NotFound, RateLimited, RenderError, TransportError
from .rendering import build_embeds, build_scene, render
from .rendering.charts import format_number, streak_ring
from .rendering.scene import Circle, Path, Rect, Scene, Section, Text
from .services.aggregator import (
    Stats,
    StatsAggregator,
    build_contribution_window,
    calculate_streaks,
    calculate_top_languages,
    calculate_total_forks,
    calculate_total_stars,
    estimate_contributed_to,
    format_joined_date,
)
from .services.github_client import GitHubClient
from .services.provider import (
    ContributionDay,
    ContributionTotals,
    ProfileProvider,
    Repo,
    User,
)
from .themes import DEFAULT_THEME, THEMES, get_theme, language_color

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_days(counts, end=date(2024, 1, 31)):
    start = end - timedelta(days=len(counts) - 1)
    return [ContributionDay(date=start + timedelta(days=i), count=count) for i, count in enumerate(counts)]


def make_repo(name, language=None, stars=0, forks=0, is_fork=False, pushed_at=None):
    return Repo(name=name, language=language, stars=stars, forks=forks, is_fork=is_fork, pushed_at=pushed_at)


def make_user(**overrides):
    fields = dict(
        login='octocat',
        name='The Octocat',
        avatar_url='https://example.com/avatar.png',
        bio=None,
        location='San Francisco',
        company='@github',
        created_at=datetime(2011, 1, 25, 18, 44, 36, tzinfo=timezone.utc),
        public_repos=8,
        public_gists=8,
        followers=1200,
        following=9,
    )
    fields.update(overrides)
    return User(**fields)


def make_stats(**overrides):
    window = tuple(make_days([0] * 20 + [1, 2, 3, 0, 4, 5, 6, 7, 8, 9, 10]))
    fields = dict(
        total_repos=42,
        total_followers=1200,
        total_following=9,
        total_stars=1500,
        total_forks=30,
        total_gists=3,
        joined_date='January 25, 2011',
        top_languages={'Python': 5, 'Go': 3, 'Rust': 2},
        top_repos=(),
        contributions=845,
        contribution_data=window,
        current_streak=7,
        longest_streak=7,
        pull_requests=40,
        issues=12,
        commits=600,
        contributed_to=9,
        current_streak_range=(date(2024, 1, 25), date(2024, 1, 31)),
        longest_streak_range=(date(2024, 1, 25), date(2024, 1, 31)),
    )
    fields.update(overrides)
    return Stats(**fields)


class FakeProvider(ProfileProvider):
    """In-memory provider; any value may be an exception to raise."""

    def __init__(self, user=None, repos=(), calendar=(), totals=None, pull_requests=0, issues=0):
        self.values = {
            'profile': user or make_user(),
            'repos': repos if isinstance(repos, Exception) else list(repos),
            'calendar': calendar if isinstance(calendar, Exception) else list(calendar),
            'totals': totals,
            'pull_requests': pull_requests,
            'issues': issues,
        }
        self.profile_calls = 0

    def _value(self, key):
        value = self.values[key]
        if isinstance(value, Exception):
            raise value
        return value

    def get_profile(self, username):
        self.profile_calls += 1
        return self._value('profile')

    def list_repositories(self, username):
        return self._value('repos')

    def get_contribution_calendar(self, username):
        return self._value('calendar')

    def get_contribution_totals(self, username):
        return self._value('totals')

    def count_pull_requests(self, username):
        return self._value('pull_requests')

    def count_issues(self, username):
        return self._value('issues')


def octocat_repos():
    return [
        make_repo('hello-world', 'Go', stars=10, forks=4),
        make_repo('spoon-knife', 'Go', stars=5, forks=2),
        make_repo('linguist', 'Rust', stars=0, forks=1),
    ]


class ThemeTests(SimpleTestCase):
    """Tests for theme system."""

    def test_get_theme_default(self):
        """Test getting default theme."""
        theme = get_theme('dark')
        self.assertEqual(theme.id, 'dark')
        self.assertEqual(theme.background, '#0d1117')

    def test_get_theme_invalid(self):
        """Test getting invalid theme returns default."""
        theme = get_theme('invalid_theme')
        self.assertEqual(theme.id, DEFAULT_THEME)

    def test_theme_registry(self):
        """Test the registered themes."""
        themes = THEMES.values()
        self.assertEqual({t.id for t in themes}, {'dark', 'light', 'neon', 'ocean', 'tokyo', 'dracula'})

    def test_theme_table_is_read_only(self):
        """Test the theme registry cannot be modified."""
        with self.assertRaises(TypeError):
            THEMES['custom'] = get_theme('dark')

    def test_language_color(self):
        """Test language swatches and the highlight fallback."""
        dark = get_theme('dark')
        self.assertEqual(language_color('Go', dark), '#00ADD8')
        self.assertEqual(language_color('HTML', dark), dark.orange)
        self.assertEqual(language_color('Zig', dark), dark.highlight)


class ConfigTests(SimpleTestCase):
    """Tests for render config construction."""

    def test_defaults_are_on(self):
        """Test every display option defaults to on."""
        config = build_config('octocat')
        self.assertEqual(config.theme, 'dark')
        self.assertEqual(config.layout, 'advanced')
        self.assertTrue(all(config.display_options[option] for option in DISPLAY_OPTIONS))

    def test_off_sentinels(self):
        """Test only the off sentinels switch an option off."""
        config = build_config('octocat', display_options={
            'showStars': 'off',
            'showCharts': 'false',
            'showStreak': False,
            'showName': 'yes',
            'showFollowers': True,
        })
        self.assertFalse(config.shows('showStars'))
        self.assertFalse(config.shows('showCharts'))
        self.assertFalse(config.shows('showStreak'))
        self.assertTrue(config.shows('showName'))
        self.assertTrue(config.shows('showFollowers'))
        self.assertTrue(config.shows('showLanguages'))

    def test_unknown_theme_and_layout_fall_back(self):
        """Test unknown theme and layout fall back to defaults."""
        config = build_config('octocat', theme='sepia', layout='poster')
        self.assertEqual(config.theme, DEFAULT_THEME)
        self.assertEqual(config.layout, 'advanced')

    def test_config_from_query(self):
        """Test building a config from query parameters."""
        params = QueryDict('theme=tokyo&layout=compact&showStars=false&showName=true&unrelated=false')
        config = config_from_query('octocat', params)
        self.assertEqual(config.theme, 'tokyo')
        self.assertEqual(config.layout, 'compact')
        self.assertFalse(config.shows('showStars'))
        self.assertTrue(config.shows('showName'))
        self.assertNotIn('unrelated', config.display_options)

    def test_config_from_query_default_theme(self):
        """Test the default theme is used when none is given."""
        config = config_from_query('octocat', QueryDict(''), default_theme='dracula')
        self.assertEqual(config.theme, 'dracula')


class AggregationTests(SimpleTestCase):
    """Tests for the pure aggregation helpers."""

    def test_top_languages_ranked_and_capped(self):
        """Test languages are ranked by repository count and capped at five."""
        repos = [make_repo(f'r{i}', lang) for i, lang in enumerate(
            ['C', 'Go', 'Go', 'Rust', 'Go', 'Rust', 'Python', 'Java', 'Ruby', None, 'Ruby', 'Ruby']
        )]
        languages = calculate_top_languages(repos)
        self.assertEqual(len(languages), 5)
        self.assertEqual(list(languages.items())[:3], [('Go', 3), ('Ruby', 3), ('Rust', 2)])
        counts = list(languages.values())
        self.assertEqual(counts, sorted(counts, reverse=True))

    def test_top_languages_without_languages(self):
        """Test repositories without a language are ignored."""
        self.assertEqual(calculate_top_languages([make_repo('a'), make_repo('b')]), {})
        self.assertEqual(calculate_top_languages([]), {})

    def test_totals(self):
        """Test star and fork totals, including an empty repository list."""
        repos = octocat_repos()
        self.assertEqual(calculate_total_stars(repos), 15)
        self.assertEqual(calculate_total_forks(repos), 7)
        self.assertEqual(calculate_total_stars([]), 0)
        self.assertEqual(calculate_total_forks([]), 0)

    def test_joined_date(self):
        """Test the join date format."""
        self.assertEqual(
            format_joined_date(datetime(2011, 1, 5, tzinfo=timezone.utc)),
            'January 5, 2011',
        )

    def test_window_takes_last_31_days(self):
        """Test the window keeps the most recent 31 days."""
        days = make_days(list(range(1, 41)))
        window = build_contribution_window(days)
        self.assertEqual(len(window), 31)
        self.assertEqual(window[-1], days[-1])
        self.assertEqual(window[0].count, 10)

    def test_window_left_pads_with_zero_days(self):
        """Test short series are left-padded with zero days."""
        days = make_days([3, 4])
        window = build_contribution_window(days)
        self.assertEqual(len(window), 31)
        self.assertEqual([day.count for day in window[:29]], [0] * 29)
        self.assertEqual(window[-2:], tuple(days))
        self.assertEqual(window[0].date, days[0].date - timedelta(days=29))
        dates = [day.date for day in window]
        self.assertEqual(dates, sorted(set(dates)))

    def test_window_without_data(self):
        """Test an empty series has no window."""
        self.assertIsNone(build_contribution_window([]))

    def test_streaks_all_zero(self):
        """Test streak floors when nothing was contributed."""
        streaks = calculate_streaks(make_days([0] * 31))
        self.assertEqual(streaks.current, 0)
        self.assertEqual(streaks.longest, 1)
        self.assertIsNone(streaks.current_range)
        self.assertIsNone(streaks.longest_range)

    def test_streaks_without_window(self):
        """Test streak floors without a window."""
        streaks = calculate_streaks(None)
        self.assertEqual((streaks.current, streaks.longest), (0, 1))

    def test_current_streak_trailing_nonzero(self):
        """Test the current streak counts trailing active days."""
        window = make_days([0] * 27 + [0, 2, 2, 2])
        streaks = calculate_streaks(window)
        self.assertEqual(streaks.current, 3)
        self.assertEqual(streaks.current_range, (date(2024, 1, 29), date(2024, 1, 31)))

    def test_current_streak_trailing_zero(self):
        """Test a trailing zero day ends the current streak."""
        streaks = calculate_streaks(make_days([0] * 28 + [2, 2, 0]))
        self.assertEqual(streaks.current, 0)
        self.assertEqual(streaks.longest, 2)

    def test_longest_streak_anywhere_in_window(self):
        """Test the longest streak is found anywhere in the window."""
        streaks = calculate_streaks(make_days([0] * 24 + [0, 0, 5, 5, 5, 0, 3]))
        self.assertEqual(streaks.current, 1)
        self.assertEqual(streaks.longest, 3)
        self.assertEqual(streaks.longest_range, (date(2024, 1, 27), date(2024, 1, 29)))

    def test_streak_covering_whole_window(self):
        """Test a streak spanning the whole window."""
        streaks = calculate_streaks(make_days([1] * 31))
        self.assertEqual((streaks.current, streaks.longest), (31, 31))

    def test_contributed_to_estimate(self):
        """Test the contributed-to estimate from recent pushes."""
        recent = NOW - timedelta(days=3)
        repos = [
            make_repo('a', pushed_at=recent),
            make_repo('b', pushed_at=recent),
            make_repo('fork', is_fork=True, pushed_at=recent),
            make_repo('old', pushed_at=NOW - timedelta(days=90)),
            make_repo('never'),
        ]
        # max(2 recent non-forks, round(5 * 0.3))
        self.assertEqual(estimate_contributed_to(repos, NOW), 2)

    def test_contributed_to_floor(self):
        """Test the contributed-to estimate never drops below one."""
        self.assertEqual(estimate_contributed_to([], NOW), 1)


class StatsAggregatorTests(SimpleTestCase):
    """Tests for the aggregation pipeline."""

    def aggregate(self, provider, username='octocat'):
        return StatsAggregator(provider, clock=lambda: NOW).aggregate_with_user(username)

    def test_octocat_without_contribution_data(self):
        """Test aggregation for a profile without contribution data."""
        repos = octocat_repos()
        provider = FakeProvider(repos=repos, pull_requests=4, issues=2)

        stats, user = self.aggregate(provider)

        self.assertEqual(user.login, 'octocat')
        self.assertEqual(stats.total_stars, 15)
        self.assertEqual(stats.total_forks, 7)
        self.assertEqual(stats.top_languages, {'Go': 2, 'Rust': 1})
        self.assertEqual(list(stats.top_languages), ['Go', 'Rust'])
        self.assertEqual(stats.top_repos, tuple(repos))
        self.assertEqual(stats.joined_date, 'January 25, 2011')
        self.assertEqual(stats.total_repos, 8)
        self.assertEqual(stats.total_followers, 1200)
        self.assertIsNone(stats.contribution_data)
        self.assertEqual(stats.current_streak, 0)
        self.assertEqual(stats.longest_streak, 1)
        self.assertEqual(stats.pull_requests, 4)
        self.assertEqual(stats.issues, 2)
        self.assertEqual(stats.contributions, 6)
        self.assertEqual(stats.commits, 6)
        self.assertEqual(stats.contributed_to, 1)
        self.assertIn('contributions', stats.estimated)

    def test_aggregate_returns_stats(self):
        """Test aggregate returns only the stats."""
        stats = StatsAggregator(FakeProvider(repos=octocat_repos())).aggregate('octocat')
        self.assertIsInstance(stats, Stats)

    def test_top_repos_capped_at_five(self):
        """Test only the five most starred repositories are kept."""
        repos = [make_repo(f'r{i}', stars=100 - i) for i in range(8)]
        stats, _ = self.aggregate(FakeProvider(repos=repos))
        self.assertEqual(stats.top_repos, tuple(repos[:5]))

    def test_profile_failure_is_fatal(self):
        """Test a missing profile propagates NotFound."""
        provider = FakeProvider(user=NotFound('ghost'))
        with self.assertRaises(NotFound) as ctx:
            self.aggregate(provider, 'ghost')
        self.assertEqual(ctx.exception.username, 'ghost')

    def test_repository_failure_is_fatal(self):
        """Test a failed repository fetch propagates."""
        provider = FakeProvider(repos=())
        provider.values['repos'] = RateLimited('octocat', 'GitHub API rate limit exceeded.')
        with self.assertRaises(RateLimited):
            self.aggregate(provider)

    def test_enrichment_failures_degrade(self):
        """Test failed enrichment fetches fall back to estimates."""
        repos = [make_repo(f'r{i}', 'Python') for i in range(10)]
        provider = FakeProvider(
            repos=repos,
            calendar=TransportError('octocat', 'timeout'),
            totals=TransportError('octocat', 'timeout'),
            pull_requests=TransportError('octocat', 'timeout'),
            issues=RateLimited('octocat', 'slow down'),
        )

        with self.assertLogs('insights.services.aggregator', level='WARNING') as logs:
            stats, _ = self.aggregate(provider)

        self.assertEqual(stats.pull_requests, 2)
        self.assertEqual(stats.issues, 1)
        self.assertEqual(stats.contributions, 0)
        self.assertEqual(stats.contributed_to, 3)
        self.assertIsNone(stats.contribution_data)
        self.assertEqual(
            set(stats.estimated),
            {'pull_requests', 'issues', 'contributions', 'commits', 'contributed_to'},
        )
        self.assertTrue(any('pull request count' in line for line in logs.output))

    def test_authenticated_totals(self):
        """Test authenticated totals take precedence over estimates."""
        calendar = make_days([1] * 40)
        totals = ContributionTotals(contributions=500, commits=300, pull_requests=40, issues=12, contributed_to=7)
        provider = FakeProvider(repos=octocat_repos(), calendar=calendar, totals=totals, pull_requests=99, issues=99)

        stats, _ = self.aggregate(provider)

        self.assertEqual(stats.contributions, 40)
        self.assertEqual(stats.commits, 300)
        self.assertEqual(stats.pull_requests, 40)
        self.assertEqual(stats.issues, 12)
        self.assertEqual(stats.contributed_to, 7)
        self.assertEqual(len(stats.contribution_data), 31)
        self.assertEqual(stats.current_streak, 31)
        self.assertEqual(stats.longest_streak, 31)
        self.assertEqual(stats.estimated, ())

    def test_short_calendar_is_padded(self):
        """Test a short calendar is padded to the full window."""
        provider = FakeProvider(repos=octocat_repos(), calendar=make_days([0, 2, 2, 2]))
        stats, _ = self.aggregate(provider)
        self.assertEqual(len(stats.contribution_data), 31)
        self.assertEqual(stats.contributions, 6)
        self.assertEqual(stats.current_streak, 3)

    def test_stats_json_round_trip(self):
        """Test stats and user survive a JSON round trip."""
        provider = FakeProvider(repos=octocat_repos(), calendar=make_days([0, 2, 2, 2]))
        stats, user = self.aggregate(provider)
        self.assertEqual(Stats.from_dict(stats.to_dict()), stats)
        self.assertEqual(User.from_dict(user.to_dict()), user)

    def test_unexpected_enrichment_error_degrades(self):
        """Test an unexpected error from an enrichment fetch falls back to an estimate."""
        repos = [make_repo(f'r{i}', 'Python') for i in range(10)]
        provider = FakeProvider(repos=repos, issues=3)
        provider.values['pull_requests'] = ValueError("invalid literal for int() with base 10: 'soon'")

        with self.assertLogs('insights.services.aggregator', level='ERROR'):
            stats = StatsAggregator(provider, clock=lambda: NOW).aggregate('octocat')

        self.assertEqual(stats.pull_requests, 2)
        self.assertEqual(stats.issues, 3)
        self.assertIn('pull_requests', stats.estimated)

    @patch('insights.services.github_client.requests.get')
    def test_rate_limited_enrichment_with_malformed_reset(self, mock_get):
        """Test a throttled search with a malformed reset header still aggregates."""
        mock_get.side_effect = http_error(403, {'X-RateLimit-Reset': 'soon'})
        provider = FakeProvider(repos=octocat_repos(), issues=2)
        provider.count_pull_requests = GitHubClient(token=None).count_pull_requests

        stats = StatsAggregator(provider, clock=lambda: NOW).aggregate('octocat')

        self.assertEqual(stats.pull_requests, 0)
        self.assertIn('pull_requests', stats.estimated)


def api_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


def http_error(status_code, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    error = requests.HTTPError()
    error.response = response
    return error


@override_settings(GITHUB_TOKEN=None)
class GitHubClientTests(SimpleTestCase):
    """Tests for GitHub client."""

    USER_PAYLOAD = {
        'login': 'testuser',
        'name': 'Test User',
        'avatar_url': 'https://example.com/avatar.jpg',
        'bio': 'Test bio',
        'location': 'Dhaka',
        'company': None,
        'public_repos': 10,
        'public_gists': 2,
        'followers': 5,
        'following': 3,
        'created_at': '2020-01-01T00:00:00Z',
    }

    @patch('insights.services.github_client.requests.get')
    def test_get_profile_success(self, mock_get):
        """Test successful profile retrieval."""
        mock_get.return_value = api_response(self.USER_PAYLOAD)

        user = GitHubClient().get_profile('testuser')

        self.assertEqual(user.login, 'testuser')
        self.assertEqual(user.name, 'Test User')
        self.assertEqual(user.public_repos, 10)
        self.assertEqual(user.created_at, datetime(2020, 1, 1, tzinfo=timezone.utc))
        self.assertEqual(mock_get.call_args[0][0], 'https://api.github.com/users/testuser')
        self.assertEqual(mock_get.call_args[1]['timeout'], 10)

    @patch('insights.services.github_client.requests.get')
    def test_get_profile_not_found(self, mock_get):
        """Test handling of user not found."""
        mock_get.side_effect = http_error(404)

        with self.assertRaises(NotFound) as ctx:
            GitHubClient().get_profile('nonexistent')
        self.assertEqual(ctx.exception.username, 'nonexistent')

    @patch('insights.services.github_client.requests.get')
    def test_rate_limited(self, mock_get):
        """Test rate limiting is reported with the reset time."""
        mock_get.side_effect = http_error(403, {'X-RateLimit-Reset': '1700000000'})

        with self.assertRaises(RateLimited) as ctx:
            GitHubClient().get_profile('testuser')
        self.assertFalse(ctx.exception.has_token)
        self.assertEqual(ctx.exception.reset_at, datetime.fromtimestamp(1700000000, tz=timezone.utc))
        self.assertIn('GITHUB_TOKEN', ctx.exception.message)

    @patch('insights.services.github_client.requests.get')
    def test_rate_limited_with_malformed_reset(self, mock_get):
        """Test an unparseable reset header is ignored."""
        mock_get.side_effect = http_error(403, {'X-RateLimit-Reset': 'soon'})

        with self.assertRaises(RateLimited) as ctx:
            GitHubClient().count_pull_requests('testuser')
        self.assertIsNone(ctx.exception.reset_at)
        self.assertNotIn('Resets at', ctx.exception.message)

    @patch('insights.services.github_client.requests.get')
    def test_server_error(self, mock_get):
        """Test server errors become transport errors."""
        mock_get.side_effect = http_error(502)
        with self.assertRaises(TransportError):
            GitHubClient().get_profile('testuser')

    @patch('insights.services.github_client.requests.get')
    def test_timeout_is_transport_error(self, mock_get):
        """Test timeouts become transport errors."""
        mock_get.side_effect = requests.exceptions.Timeout('read timed out')
        with self.assertRaises(TransportError):
            GitHubClient().list_repositories('testuser')

    @patch('insights.services.github_client.requests.get')
    def test_invalid_json_is_transport_error(self, mock_get):
        """Test unparseable responses become transport errors."""
        response = api_response(None)
        response.json.side_effect = ValueError('No JSON object could be decoded')
        mock_get.return_value = response
        with self.assertRaises(TransportError):
            GitHubClient().get_profile('testuser')

    @patch('insights.services.github_client.requests.get')
    def test_repositories_sorted_by_stars(self, mock_get):
        """Test repositories are sorted by stars."""
        mock_get.return_value = api_response([
            {'name': 'small', 'stargazers_count': 1, 'forks_count': 0, 'language': 'Go', 'fork': False},
            {'name': 'big', 'stargazers_count': 30, 'forks_count': 4, 'language': None, 'fork': True,
             'pushed_at': '2024-05-30T10:00:00Z'},
            {'name': 'mid', 'stargazers_count': 5, 'forks_count': 1, 'language': 'Rust', 'fork': False},
        ])

        repos = GitHubClient().list_repositories('testuser')

        self.assertEqual([repo.name for repo in repos], ['big', 'mid', 'small'])
        self.assertTrue(repos[0].is_fork)
        self.assertEqual(repos[0].pushed_at, datetime(2024, 5, 30, 10, tzinfo=timezone.utc))

    @patch('insights.services.github_client.requests.get')
    def test_repositories_paginate(self, mock_get):
        """Test repositories are fetched across pages."""
        first_page = [{'name': f'repo{i}', 'stargazers_count': i} for i in range(100)]
        second_page = [{'name': 'last', 'stargazers_count': 500}]
        mock_get.side_effect = [api_response(first_page), api_response(second_page)]

        repos = GitHubClient().list_repositories('testuser')

        self.assertEqual(len(repos), 101)
        self.assertEqual(repos[0].name, 'last')
        self.assertEqual(mock_get.call_count, 2)
        self.assertEqual(mock_get.call_args[1]['params']['page'], 2)

    @patch('insights.services.github_client.requests.get')
    def test_search_counts(self, mock_get):
        """Test pull request and issue counts from search."""
        mock_get.return_value = api_response({'total_count': 12, 'items': []})

        self.assertEqual(GitHubClient().count_pull_requests('testuser'), 12)
        self.assertEqual(mock_get.call_args[1]['params']['q'], 'author:"testuser" type:pr')

        self.assertEqual(GitHubClient().count_issues('testuser'), 12)
        self.assertEqual(mock_get.call_args[1]['params']['q'], 'author:"testuser" type:issue')

    @patch('insights.services.github_client.requests.get')
    def test_calendar_from_public_events(self, mock_get):
        """Test the calendar derived from public events."""
        today = datetime.now(timezone.utc).replace(hour=12, minute=0, second=0, microsecond=0)
        yesterday = today - timedelta(days=1)
        stamp = '%Y-%m-%dT%H:%M:%SZ'
        mock_get.return_value = api_response([
            {'type': 'PushEvent', 'created_at': today.strftime(stamp)},
            {'type': 'IssuesEvent', 'created_at': today.strftime(stamp)},
            {'type': 'WatchEvent', 'created_at': yesterday.strftime(stamp)},
            {'type': 'PushEvent', 'created_at': (today - timedelta(days=400)).strftime(stamp)},
        ])

        calendar = GitHubClient().get_contribution_calendar('testuser')

        self.assertEqual(len(calendar), 365)
        self.assertEqual(calendar[-1], ContributionDay(date=today.date(), count=2))
        self.assertEqual(calendar[-2].count, 1)
        self.assertEqual(sum(day.count for day in calendar), 3)

    @patch('insights.services.github_client.requests.get')
    def test_calendar_without_events_is_empty(self, mock_get):
        """Test no public events gives an empty calendar."""
        mock_get.return_value = api_response([])
        self.assertEqual(GitHubClient().get_contribution_calendar('testuser'), [])

    @patch('insights.services.github_client.requests.get')
    def test_calendar_stops_at_event_feed_limit(self, mock_get):
        """Test events paging stops at the 300 events GitHub serves."""
        stamp = datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
        page = [{'type': 'PushEvent', 'created_at': stamp}] * 100
        mock_get.side_effect = [api_response(page), api_response(page), api_response(page), http_error(422)]

        calendar = GitHubClient().get_contribution_calendar('busy')

        self.assertEqual(mock_get.call_count, 3)
        self.assertTrue(calendar)
        self.assertEqual(sum(day.count for day in calendar), 300)

    @patch('insights.services.github_client.requests.get')
    def test_calendar_keeps_pages_before_a_failure(self, mock_get):
        """Test a refused later events page keeps the events already fetched."""
        stamp = datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
        page = [{'type': 'PushEvent', 'created_at': stamp}] * 100
        mock_get.side_effect = [api_response(page), http_error(422)]

        with self.assertLogs('insights.services.github_client', level='WARNING'):
            calendar = GitHubClient().get_contribution_calendar('busy')

        self.assertEqual(len(calendar), 365)
        self.assertEqual(calendar[-1].count, 100)

    @patch('insights.services.github_client.requests.get')
    def test_repository_paging_failure_raises(self, mock_get):
        """Test repository listing does not return a partial list."""
        page = [{'name': f'repo{i}', 'stargazers_count': i} for i in range(100)]
        mock_get.side_effect = [api_response(page), http_error(422)]

        with self.assertRaises(TransportError):
            GitHubClient().list_repositories('testuser')

    @patch('insights.services.github_client.requests.post')
    def test_totals_need_a_token(self, mock_post):
        """Test totals are not fetched without a token."""
        self.assertIsNone(GitHubClient().get_contribution_totals('testuser'))
        mock_post.assert_not_called()

    @patch('insights.services.github_client.requests.post')
    def test_graphql_calendar(self, mock_post):
        """Test the GraphQL contribution calendar."""
        mock_post.return_value = api_response({'data': {'user': {'contributionsCollection': {
            'contributionCalendar': {'weeks': [
                {'contributionDays': [
                    {'date': '2024-01-02', 'contributionCount': 3},
                    {'date': '2024-01-01', 'contributionCount': 0},
                ]},
            ]},
        }}}})

        calendar = GitHubClient(token='secret').get_contribution_calendar('testuser')

        self.assertEqual(calendar, [
            ContributionDay(date=date(2024, 1, 1), count=0),
            ContributionDay(date=date(2024, 1, 2), count=3),
        ])
        self.assertEqual(mock_post.call_args[1]['headers']['Authorization'], 'token secret')
        self.assertEqual(mock_post.call_args[1]['json']['variables'], {'login': 'testuser'})

    @patch('insights.services.github_client.requests.post')
    def test_graphql_totals(self, mock_post):
        """Test the GraphQL contribution totals."""
        mock_post.return_value = api_response({'data': {'user': {
            'contributionsCollection': {
                'totalCommitContributions': 321,
                'totalIssueContributions': 4,
                'totalPullRequestContributions': 56,
                'contributionCalendar': {'totalContributions': 400},
            },
            'repositoriesContributedTo': {'totalCount': 11},
        }}})

        totals = GitHubClient(token='secret').get_contribution_totals('testuser')

        self.assertEqual(totals, ContributionTotals(
            contributions=400, commits=321, pull_requests=56, issues=4, contributed_to=11,
        ))

    @patch('insights.services.github_client.requests.post')
    def test_graphql_errors(self, mock_post):
        """Test GraphQL errors become transport errors."""
        mock_post.return_value = api_response({'errors': [{'message': 'Something went wrong'}]})
        with self.assertRaises(TransportError):
            GitHubClient(token='secret').get_contribution_totals('testuser')


def stacked_sections(scene):
    return [section for section in scene.sections if section.name not in ('frame', 'language-chart')]


class RendererTests(SimpleTestCase):
    """Tests for the SVG card renderer."""

    ADVANCED_SECTIONS = {
        'showContributions': 'summary-contributions',
        'showRepositories': 'summary-repositories',
        'showJoinDate': 'summary-join-date',
        'showLocation': 'summary-location',
        'showLanguageChart': 'language-chart',
        'showStreak': 'streak',
        'showCharts': 'activity',
    }

    COMPACT_SECTIONS = {
        'showRepositories': 'summary-repositories',
        'showStars': 'summary-stars',
        'showFollowers': 'summary-followers',
        'showJoinDate': 'meta-join-date',
        'showLocation': 'meta-location',
        'showLanguages': 'languages',
        'showContributions': 'additional-stats',
    }

    def setUp(self):
        self.stats = make_stats()
        self.user = make_user()

    def scene(self, layout=None, **options):
        config = build_config('octocat', display_options=options, layout=layout)
        return build_scene('octocat', self.stats, config, self.user)

    def assert_stacked(self, scene):
        sections = stacked_sections(scene)
        for previous, current in zip(sections, sections[1:]):
            self.assertGreaterEqual(current.top, previous.bottom, f"{current.name} overlaps {previous.name}")
        for section in sections:
            self.assertLessEqual(section.bottom, scene.height - 20)

    def test_advanced_sections(self):
        """Test the advanced layout sections and their order."""
        scene = self.scene()
        self.assertEqual((scene.width, scene.height), (760, 800))
        self.assertEqual(scene.section_names(), [
            'frame', 'header', 'summary-contributions', 'summary-repositories', 'summary-join-date',
            'summary-location', 'github-stats', 'language-chart', 'streak', 'activity',
        ])
        self.assert_stacked(scene)

    def test_render_is_idempotent(self):
        """Test rendering twice gives identical output."""
        config = build_config('octocat', theme='ocean')
        first = render('octocat', self.stats, config, self.user)
        second = render('octocat', self.stats, config, self.user)
        self.assertEqual(first, second)
        self.assertTrue(first.startswith('<svg'))
        self.assertIn('xmlns="http://www.w3.org/2000/svg"', first)

    def test_each_toggle_removes_only_its_section(self):
        """Test each display option removes exactly its own section."""
        full = self.scene().section_names()
        for option, name in self.ADVANCED_SECTIONS.items():
            with self.subTest(option=option):
                scene = self.scene(**{option: 'off'})
                self.assertEqual(scene.section_names(), [n for n in full if n != name])
                self.assert_stacked(scene)

    def test_compact_toggles(self):
        """Test the compact layout display options."""
        full = self.scene(layout='compact').section_names()
        for option, name in self.COMPACT_SECTIONS.items():
            with self.subTest(option=option):
                scene = self.scene(layout='compact', **{option: 'off'})
                self.assertEqual(scene.section_names(), [n for n in full if n != name])

    def test_hidden_row_shifts_following_sections(self):
        """Test hidden sections move the following ones up."""
        full = self.scene()
        without_join_date = self.scene(showJoinDate='off')
        self.assertEqual(
            without_join_date.get('github-stats').top,
            full.get('github-stats').top - 25,
        )

        without_streak = self.scene(showStreak='off')
        self.assertEqual(without_streak.get('activity').top, full.get('streak').top)

    def test_show_name(self):
        """Test the display name toggle."""
        self.assertIn('The Octocat', self.scene().get('header').texts())
        header = self.scene(showName='off').get('header')
        self.assertEqual(header.texts(), ['octocat'])

    def test_missing_user_data(self):
        """Test rendering without profile data."""
        scene = build_scene('octocat', self.stats, build_config('octocat'))
        self.assertNotIn('summary-location', scene.section_names())
        self.assertEqual(scene.get('header').texts(), ['octocat'])
        self.assert_stacked(scene)

    def test_missing_languages_omit_chart(self):
        """Test the language sections are omitted without languages."""
        self.stats = make_stats(top_languages={})
        self.assertNotIn('language-chart', self.scene().section_names())
        self.assertNotIn('languages', self.scene(layout='compact').section_names())

    def test_unknown_theme_uses_default_palette(self):
        """Test an unregistered theme renders with the default palette."""
        config = RenderConfig(
            username='octocat', theme='no-such-theme', layout='advanced',
            display_options=build_config('octocat').display_options,
        )
        svg = render('octocat', self.stats, config, self.user)
        self.assertIn(get_theme(DEFAULT_THEME).background, svg)

    def test_numbers_are_abbreviated(self):
        """Test large numbers are abbreviated."""
        self.assertEqual(format_number(999), '999')
        self.assertEqual(format_number(1000), '1.0K')
        self.assertEqual(format_number(1500), '1.5K')
        self.assertEqual(format_number(2500000), '2.5M')
        self.assertEqual(format_number(999949), '999.9K')
        self.assertEqual(format_number(999950), '1.0M')
        self.assertEqual(format_number(999999), '1.0M')
        self.assertIn('1.5K', self.scene().get('github-stats').texts())
        self.assertIn('1.2K', self.scene(layout='compact').get('summary-followers').texts())

    def test_rating_badge(self):
        """Test the rating badge grade."""
        self.assertIn('A', self.scene().get('github-stats').texts())
        self.stats = make_stats(
            total_stars=0, contributions=0, commits=0, pull_requests=0, total_repos=0,
        )
        self.assertIn('C+', self.scene().get('github-stats').texts())

    def test_rating_badge_clears_stat_values(self):
        """Test the stat values end left of the rating badge."""
        section = self.scene().get('github-stats')
        badge = [c for c in section.find(Circle) if c.r == 28][0]
        values = [t for t in section.find(Text) if t.text_anchor == 'end']
        self.assertEqual(len(values), 5)
        for value in values:
            self.assertLess(value.x, badge.cx - badge.r)

    def test_language_legend(self):
        """Test the language bar and legend."""
        section = self.scene().get('language-chart')
        self.assertEqual([t for t in section.texts() if t.endswith('%')], ['50.0%', '30.0%', '20.0%'])
        bars = [rect for rect in section.find(Rect) if rect.height == 8]
        for bar, expected in zip(bars, [155, 93, 62]):
            self.assertAlmostEqual(bar.width, expected)
        self.assertEqual(bars[1].fill, '#00ADD8')
        self.assertEqual(bars[1].x, bars[0].x + bars[0].width)

    def test_streak_ring_progress(self):
        """Test the streak progress ring."""
        circumference, offset = streak_ring(15, 22)
        self.assertAlmostEqual(circumference, 2 * math.pi * 22)
        self.assertAlmostEqual(offset, circumference / 2)
        self.assertAlmostEqual(streak_ring(45, 22)[1], 0)

        ring = [c for c in self.scene().get('streak').find(Circle) if c.stroke_dashoffset is not None][0]
        self.assertAlmostEqual(ring.stroke_dashoffset, ring.stroke_dasharray * (1 - 7 / 30))

    def test_streak_captions(self):
        """Test the streak date captions."""
        texts = self.scene().get('streak').texts()
        self.assertIn('Jan 25, 2024 - Jan 31, 2024', texts)
        self.stats = make_stats(current_streak=0, current_streak_range=None)
        self.assertIn('No active streak', self.scene().get('streak').texts())

    def test_activity_chart(self):
        """Test the contribution chart."""
        section = self.scene().get('activity')
        self.assertEqual(len(section.find(Path)), 2)
        self.assertEqual(len([c for c in section.find(Circle) if c.r == 3]), 31)
        texts = section.texts()
        self.assertIn("octocat's Contribution Graph", texts)
        for tick in ['10', '8', '7', '5', '3', '2', '0']:
            self.assertIn(tick, texts)
        area, line = section.find(Path)
        self.assertTrue(area.d.endswith('Z'))
        self.assertEqual(area.fill, 'url(#areaGradient)')
        self.assertEqual(line.d.count('L'), 30)

    def test_activity_chart_without_data(self):
        """Test the chart placeholder without contribution data."""
        self.stats = make_stats(contribution_data=None)
        section = self.scene().get('activity')
        self.assertIn('No contribution data available', section.texts())
        self.assertEqual(section.find(Path), [])

    def test_text_is_escaped(self):
        """Test user text is escaped in the SVG."""
        svg = render('<script>', self.stats, build_config('<script>'), make_user(name='A & B'))
        self.assertIn('&lt;script&gt;', svg)
        self.assertIn('A &amp; B', svg)
        self.assertNotIn('<script>', svg)

    def test_control_characters_are_dropped(self):
        """Test XML-invalid characters are removed."""
        svg = render('octocat', self.stats, build_config('octocat'), make_user(name='Bad\x00Name'))
        self.assertIn('BadName', svg)

    def test_serialization_failure_is_render_error(self):
        """Test serialization failures raise RenderError."""
        scene = Scene(10, 10)
        section = scene.section('broken')
        section.add(Rect(x=0, y=0, width=1, height=1, fill='red\x00'))
        with self.assertRaises(RenderError):
            scene.to_svg()

    def test_section_helpers(self):
        """Test section lookup helpers."""
        section = Section(name='demo', top=0)
        section.add(Text(x=0, y=0, content='hello', font_size=10, fill='#fff'))
        section.add(Rect(x=0, y=0, width=1, height=1, fill='#000'))
        self.assertEqual(section.texts(), ['hello'])
        self.assertEqual(len(section.find(Rect)), 1)


class EmbedTests(SimpleTestCase):
    """Tests for embed code generation."""

    def test_advanced_embeds(self):
        """Test embed snippets for the advanced layout."""
        stats, user = make_stats(), make_user()
        config = build_config('octocat', theme='neon')

        embeds = build_embeds('octocat', stats, config, 'https://cards.example.com/', user)

        url = 'https://cards.example.com/insights/octocat?theme=neon'
        self.assertEqual(
            embeds.markdown,
            f'<div align="center">\n  <img src="{url}" alt="octocat GitHub Stats" />\n</div>',
        )
        self.assertEqual(
            embeds.html,
            f'<div align="center">\n  <img src="{url}" alt="octocat GitHub Stats" width="1000" />\n</div>',
        )
        self.assertEqual(embeds.svg, render('octocat', stats, config, user))

    def test_compact_embeds(self):
        """Test embed snippets for the compact layout."""
        config = build_config('octocat', layout='compact')
        embeds = build_embeds('octocat', make_stats(), config, 'https://cards.example.com')
        self.assertIn('/insights/octocat?theme=dark&amp;layout=compact', embeds.html)
        self.assertIn('width="800"', embeds.html)


@override_settings(INSIGHTS_BASE_URL=None, INSIGHTS_DEFAULT_THEME='dark')
class ViewTests(TestCase):
    """Tests for views."""

    def setUp(self):
        cache.clear()
        self.provider = FakeProvider(repos=octocat_repos(), calendar=make_days([0, 2, 2, 2]), pull_requests=4)

    @patch('insights.views.GitHubClient')
    def test_insights_view(self, mock_client_class):
        """Test SVG card generation."""
        mock_client_class.return_value = self.provider

        response = self.client.get('/insights/octocat', {'theme': 'neon', 'showStreak': 'false'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'image/svg+xml')
        self.assertEqual(response['Cache-Control'], 'public, max-age=3600')
        content = response.content.decode()
        self.assertIn('octocat', content)
        self.assertIn(get_theme('neon').background, content)
        self.assertNotIn('data-section="streak"', content)

    @patch('insights.views.GitHubClient')
    def test_insights_view_not_found(self, mock_client_class):
        """Test card view with user not found."""
        self.provider.values['profile'] = NotFound('ghost')
        mock_client_class.return_value = self.provider

        response = self.client.get('/insights/ghost')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'error': "User 'ghost' not found on GitHub", 'username': 'ghost'})

    @patch('insights.views.GitHubClient')
    def test_rate_limited(self, mock_client_class):
        """Test stats view when rate limited."""
        self.provider.values['repos'] = RateLimited('octocat', 'GitHub API rate limit exceeded.')
        mock_client_class.return_value = self.provider

        response = self.client.get('/stats/octocat')

        self.assertEqual(response.status_code, 429)
        self.assertIn('rate limit', response.json()['error'])

    @patch('insights.views.GitHubClient')
    def test_transport_error(self, mock_client_class):
        """Test embed view when GitHub is unreachable."""
        self.provider.values['profile'] = TransportError('octocat', 'Network error: boom')
        mock_client_class.return_value = self.provider

        response = self.client.get('/embed/octocat')

        self.assertEqual(response.status_code, 502)

    @patch('insights.views.GitHubClient')
    def test_stats_view(self, mock_client_class):
        """Test stats JSON view."""
        mock_client_class.return_value = self.provider

        response = self.client.get('/stats/octocat')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['user']['login'], 'octocat')
        self.assertEqual(data['stats']['total_stars'], 15)
        self.assertEqual(data['stats']['top_languages'], {'Go': 2, 'Rust': 1})
        self.assertEqual(len(data['stats']['contribution_data']), 31)

    @patch('insights.views.GitHubClient')
    def test_results_are_cached(self, mock_client_class):
        """Test aggregated results are cached between views."""
        mock_client_class.return_value = self.provider

        first = self.client.get('/stats/octocat')
        second = self.client.get('/insights/octocat')

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(self.provider.profile_calls, 1)

    @patch('insights.views.GitHubClient')
    def test_embed_view(self, mock_client_class):
        """Test embed snippets view."""
        mock_client_class.return_value = self.provider

        response = self.client.get('/embed/octocat', {'theme': 'dracula'})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertIn('http://testserver/insights/octocat?theme=dracula', data['markdown'])
        self.assertIn('width="1000"', data['html'])
        self.assertTrue(data['svg'].startswith('<svg'))

    def test_post_not_allowed(self):
        """Test only GET is allowed."""
        response = self.client.post('/insights/octocat')
        self.assertEqual(response.status_code, 405)
