"""
GitHub API client for fetching profile, repository and contribution data.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests
from dateutil.parser import isoparse
from django.conf import settings

from ..exceptions import NotFound, RateLimited, TransportError
from .provider import (
    ContributionDay,
    ContributionTotals,
    ProfileProvider,
    Repo,
    User,
)

logger = logging.getLogger(__name__)

CALENDAR_QUERY = """
query($login: String!) {
  user(login: $login) {
    contributionsCollection {
      contributionCalendar {
        weeks { contributionDays { date contributionCount } }
      }
    }
  }
}
"""

TOTALS_QUERY = """
query($login: String!) {
  user(login: $login) {
    contributionsCollection {
      totalCommitContributions
      totalIssueContributions
      totalPullRequestContributions
      contributionCalendar { totalContributions }
    }
    repositoriesContributedTo(
      first: 1
      contributionTypes: [COMMIT, ISSUE, PULL_REQUEST, REPOSITORY]
    ) {
      totalCount
    }
  }
}
"""


class GitHubClient(ProfileProvider):
    """Client for interacting with GitHub API."""

    BASE_URL = "https://api.github.com"
    GRAPHQL_URL = "https://api.github.com/graphql"
    PER_PAGE = 100
    CALENDAR_DAYS = 365
    # GitHub serves at most 300 public events.
    EVENTS_MAX_PAGES = 3

    def __init__(self, token: Optional[str] = None, timeout: Optional[float] = None):
        self.token = token or getattr(settings, 'GITHUB_TOKEN', None)
        self.timeout = timeout or getattr(settings, 'INSIGHTS_REQUEST_TIMEOUT', 10)
        self.max_pages = getattr(settings, 'INSIGHTS_MAX_REPO_PAGES', 10)
        self.headers = {
            'Accept': 'application/vnd.github.v3+json',
        }
        if self.token:
            self.headers['Authorization'] = f'token {self.token}'

    def _get(self, username: str, endpoint: str, params: Optional[Dict] = None) -> Any:
        """Make a GET request to GitHub API."""
        url = f"{self.BASE_URL}{endpoint}"
        logger.debug("GET %s params=%s", url, params)
        try:
            response = requests.get(url, headers=self.headers, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise self._translate_http_error(username, e) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(username, f"Network error: {e}") from e
        return self._decode(username, response)

    def _post_graphql(self, username: str, query: str) -> Dict[str, Any]:
        try:
            response = requests.post(
                self.GRAPHQL_URL,
                headers=self.headers,
                json={'query': query, 'variables': {'login': username}},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise self._translate_http_error(username, e) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(username, f"Network error: {e}") from e

        payload = self._decode(username, response)
        if payload.get('errors'):
            raise TransportError(username, f"GitHub GraphQL error: {payload['errors']}")
        user = (payload.get('data') or {}).get('user')
        if user is None:
            raise NotFound(username)
        return user

    def _decode(self, username: str, response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(username, f"Invalid JSON from GitHub: {e}") from e

    def _translate_http_error(self, username: str, error: requests.exceptions.HTTPError):
        response = error.response
        status_code = getattr(response, 'status_code', None)
        if status_code == 404:
            return NotFound(username)
        if status_code in (403, 429):
            headers = getattr(response, 'headers', None) or {}
            has_token = bool(self.token)
            message = "GitHub API rate limit exceeded."
            if not has_token:
                message += " Configure GITHUB_TOKEN for higher limits (5000 requests/hour vs 60)."

            reset_at = self._parse_reset(headers.get('X-RateLimit-Reset'))
            if reset_at:
                message += f" Resets at {reset_at.strftime('%H:%M:%S UTC')}"
            return RateLimited(username, message, reset_at=reset_at, has_token=has_token)
        if status_code is not None:
            return TransportError(username, f"GitHub API error: {status_code}")
        return TransportError(username, f"GitHub API error: {error}")

    @staticmethod
    def _parse_reset(value: Optional[str]) -> Optional[datetime]:
        """Epoch seconds from ``X-RateLimit-Reset``; ``None`` when absent or malformed."""
        if not value:
            return None
        try:
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            return None

    def _get_all_pages(
        self,
        username: str,
        endpoint: str,
        params: Optional[Dict] = None,
        max_pages: Optional[int] = None,
        keep_partial: bool = False,
    ) -> List[Dict]:
        """
        Fetch all pages of results, up to ``max_pages``.

        With ``keep_partial``, a failure after the first page returns the
        items already collected.
        """
        params = dict(params or {})
        params['per_page'] = self.PER_PAGE
        params['page'] = 1
        max_pages = max_pages or self.max_pages

        all_items = []
        while params['page'] <= max_pages:
            try:
                data = self._get(username, endpoint, params)
            except TransportError as e:
                if not (keep_partial and all_items):
                    raise
                logger.warning("Stopped paging %s at page %s: %s", endpoint, params['page'], e)
                break
            if not data:
                break
            all_items.extend(data)
            if len(data) < params['per_page']:
                break
            params['page'] += 1

        return all_items

    def get_profile(self, username: str) -> User:
        data = self._get(username, f"/users/{username}")
        try:
            return User.from_api(data)
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(username, f"Malformed profile payload: {e}") from e

    def list_repositories(self, username: str) -> List[Repo]:
        items = self._get_all_pages(username, f"/users/{username}/repos", {"type": "owner"})
        try:
            repos = [Repo.from_api(item) for item in items]
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(username, f"Malformed repository payload: {e}") from e
        # The REST endpoint cannot sort by stars.
        return sorted(repos, key=lambda repo: repo.stars, reverse=True)

    def get_contribution_calendar(self, username: str) -> List[ContributionDay]:
        if self.token:
            return self._graphql_calendar(username)
        return self._events_calendar(username)

    def _graphql_calendar(self, username: str) -> List[ContributionDay]:
        user = self._post_graphql(username, CALENDAR_QUERY)
        try:
            weeks = user['contributionsCollection']['contributionCalendar']['weeks']
            days = [
                ContributionDay(
                    date=isoparse(day['date']).date(),
                    count=int(day['contributionCount']),
                )
                for week in weeks
                for day in week['contributionDays']
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(username, f"Malformed contribution calendar: {e}") from e
        return sorted(days, key=lambda day: day.date)

    def _events_calendar(self, username: str) -> List[ContributionDay]:
        """
        Approximate the calendar from the public events feed.

        GitHub only exposes the last 90 days of events, so older days are zero.
        Returns an empty list when the user has no public activity.
        """
        today = datetime.now(timezone.utc).date()
        first_day = today - timedelta(days=self.CALENDAR_DAYS - 1)

        events = self._get_all_pages(
            username,
            f"/users/{username}/events/public",
            max_pages=self.EVENTS_MAX_PAGES,
            keep_partial=True,
        )
        daily_counts: Dict = {}
        for event in events:
            try:
                event_date = isoparse(event['created_at']).date()
            except (KeyError, TypeError, ValueError):
                continue
            if first_day <= event_date <= today:
                daily_counts[event_date] = daily_counts.get(event_date, 0) + 1

        if not daily_counts:
            return []

        return [
            ContributionDay(date=day, count=daily_counts.get(day, 0))
            for day in (first_day + timedelta(days=offset) for offset in range(self.CALENDAR_DAYS))
        ]

    def get_contribution_totals(self, username: str) -> Optional[ContributionTotals]:
        if not self.token:
            return None

        user = self._post_graphql(username, TOTALS_QUERY)
        try:
            collection = user['contributionsCollection']
            return ContributionTotals(
                contributions=collection['contributionCalendar']['totalContributions'],
                commits=collection['totalCommitContributions'],
                pull_requests=collection['totalPullRequestContributions'],
                issues=collection['totalIssueContributions'],
                contributed_to=user['repositoriesContributedTo']['totalCount'],
            )
        except (KeyError, TypeError) as e:
            raise TransportError(username, f"Malformed contribution totals: {e}") from e

    def count_pull_requests(self, username: str) -> int:
        return self._search_count(username, f'author:"{username}" type:pr')

    def count_issues(self, username: str) -> int:
        return self._search_count(username, f'author:"{username}" type:issue')

    def _search_count(self, username: str, query: str) -> int:
        data = self._get(username, "/search/issues", {"q": query, "per_page": 1})
        try:
            return int(data['total_count'])
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(username, f"Malformed search response: {e}") from e
