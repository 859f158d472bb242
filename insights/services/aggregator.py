"""
Derives a ``Stats`` aggregate from profile provider data.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from ..exceptions import UpstreamError
from .provider import ContributionDay, ProfileProvider, Repo, User

logger = logging.getLogger(__name__)

TOP_LANGUAGES_LIMIT = 5
TOP_REPOS_LIMIT = 5
CONTRIBUTION_WINDOW_DAYS = 31

# Fallback ratios applied to the repository count when a real figure is unavailable.
PULL_REQUEST_RATIO = 0.15
ISSUE_RATIO = 0.1
CONTRIBUTED_TO_RATIO = 0.3
CONTRIBUTED_TO_FLOOR = 1

DateRange = Tuple[date, date]


@dataclass(frozen=True)
class StreakSummary:
    current: int
    longest: int
    current_range: Optional[DateRange] = None
    longest_range: Optional[DateRange] = None


@dataclass(frozen=True)
class Stats:
    """
    Aggregate statistics for one profile.

    ``top_languages`` maps a language to the number of repositories whose
    primary language it is, highest count first.
    """
    total_repos: int
    total_followers: int
    total_following: int
    total_stars: int
    total_forks: int
    total_gists: int
    joined_date: str
    top_languages: Dict[str, int]
    top_repos: Tuple[Repo, ...]
    contributions: int
    contribution_data: Optional[Tuple[ContributionDay, ...]]
    current_streak: int
    longest_streak: int
    pull_requests: int
    issues: int
    commits: int
    contributed_to: int
    current_streak_range: Optional[DateRange] = None
    longest_streak_range: Optional[DateRange] = None
    estimated: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        def date_range(value):
            return [value[0].isoformat(), value[1].isoformat()] if value else None

        return {
            'total_repos': self.total_repos,
            'total_followers': self.total_followers,
            'total_following': self.total_following,
            'total_stars': self.total_stars,
            'total_forks': self.total_forks,
            'total_gists': self.total_gists,
            'joined_date': self.joined_date,
            'top_languages': dict(self.top_languages),
            'top_repos': [repo.to_dict() for repo in self.top_repos],
            'contributions': self.contributions,
            'contribution_data': (
                [day.to_dict() for day in self.contribution_data]
                if self.contribution_data is not None else None
            ),
            'current_streak': self.current_streak,
            'longest_streak': self.longest_streak,
            'pull_requests': self.pull_requests,
            'issues': self.issues,
            'commits': self.commits,
            'contributed_to': self.contributed_to,
            'current_streak_range': date_range(self.current_streak_range),
            'longest_streak_range': date_range(self.longest_streak_range),
            'estimated': list(self.estimated),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Stats':
        def date_range(value):
            return (date.fromisoformat(value[0]), date.fromisoformat(value[1])) if value else None

        contribution_data = data.get('contribution_data')
        return cls(
            **{
                **data,
                'top_repos': tuple(Repo.from_dict(repo) for repo in data['top_repos']),
                'contribution_data': (
                    tuple(ContributionDay.from_dict(day) for day in contribution_data)
                    if contribution_data is not None else None
                ),
                'current_streak_range': date_range(data.get('current_streak_range')),
                'longest_streak_range': date_range(data.get('longest_streak_range')),
                'estimated': tuple(data.get('estimated', ())),
            }
        )


def calculate_top_languages(repos: Sequence[Repo], limit: int = TOP_LANGUAGES_LIMIT) -> Dict[str, int]:
    """Count primary languages across repositories and keep the most common."""
    counts: Dict[str, int] = {}
    for repo in repos:
        if repo.language:
            counts[repo.language] = counts.get(repo.language, 0) + 1

    # sorted() is stable, so ties keep first-seen order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return dict(ranked[:limit])


def calculate_total_stars(repos: Sequence[Repo]) -> int:
    return sum(repo.stars for repo in repos)


def calculate_total_forks(repos: Sequence[Repo]) -> int:
    return sum(repo.forks for repo in repos)


def format_joined_date(created_at: datetime) -> str:
    """``2011-01-25T18:44:36Z`` -> ``January 25, 2011``."""
    return f"{created_at:%B} {created_at.day}, {created_at.year}"


def build_contribution_window(
    days: Sequence[ContributionDay],
    size: int = CONTRIBUTION_WINDOW_DAYS,
) -> Optional[Tuple[ContributionDay, ...]]:
    """
    Take the most recent ``size`` days, left-padding with zero-count days.

    Returns ``None`` when there is no data at all.
    """
    if not days:
        return None

    window = list(days[-size:])
    while len(window) < size:
        window.insert(0, ContributionDay(date=window[0].date - timedelta(days=1), count=0))
    return tuple(window)


def calculate_streaks(window: Optional[Sequence[ContributionDay]]) -> StreakSummary:
    """Current and longest runs of non-zero days in the window."""
    if not window:
        return StreakSummary(current=0, longest=1)

    current = 0
    for day in reversed(window):
        if day.count <= 0:
            break
        current += 1
    current_range = (window[-current].date, window[-1].date) if current else None

    longest = 0
    longest_range = None
    run = 0
    for index, day in enumerate(window):
        if day.count > 0:
            run += 1
            if run > longest:
                longest = run
                longest_range = (window[index - run + 1].date, day.date)
        else:
            run = 0

    return StreakSummary(
        current=max(current, 0),
        longest=max(longest, 1),
        current_range=current_range,
        longest_range=longest_range,
    )


def estimate_contributed_to(repos: Sequence[Repo], now: datetime) -> int:
    """Non-fork repositories pushed to within the last month, with a floor."""
    month_ago = now - relativedelta(months=1)
    recent = [
        repo for repo in repos
        if not repo.is_fork and repo.pushed_at and repo.pushed_at > month_ago
    ]
    return max(len(recent), round(len(repos) * CONTRIBUTED_TO_RATIO), CONTRIBUTED_TO_FLOOR)


class StatsAggregator:
    """Fetches provider data for a username and derives ``Stats``."""

    MAX_WORKERS = 6

    def __init__(self, provider: ProfileProvider, clock: Optional[Callable[[], datetime]] = None):
        self.provider = provider
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def aggregate(self, username: str) -> Stats:
        stats, _ = self.aggregate_with_user(username)
        return stats

    def aggregate_with_user(self, username: str) -> Tuple[Stats, User]:
        """
        Fetch everything concurrently and derive the aggregate.

        Only the profile and repository fetches are fatal; their
        ``UpstreamError`` propagates unchanged.
        """
        with ThreadPoolExecutor(max_workers=self.MAX_WORKERS) as pool:
            profile_future = pool.submit(self.provider.get_profile, username)
            repos_future = pool.submit(self.provider.list_repositories, username)
            calendar_future = pool.submit(
                self._optional, 'contribution calendar', self.provider.get_contribution_calendar, username
            )
            totals_future = pool.submit(
                self._optional, 'contribution totals', self.provider.get_contribution_totals, username
            )
            prs_future = pool.submit(
                self._optional, 'pull request count', self.provider.count_pull_requests, username
            )
            issues_future = pool.submit(
                self._optional, 'issue count', self.provider.count_issues, username
            )

            user = profile_future.result()
            repos = repos_future.result()
            calendar = calendar_future.result() or []
            totals = totals_future.result()
            searched_prs = prs_future.result()
            searched_issues = issues_future.result()

        estimated: List[str] = []

        if totals is not None:
            pull_requests = totals.pull_requests
            issues = totals.issues
        else:
            pull_requests = searched_prs
            if pull_requests is None:
                pull_requests = round(len(repos) * PULL_REQUEST_RATIO)
                estimated.append('pull_requests')
            issues = searched_issues
            if issues is None:
                issues = round(len(repos) * ISSUE_RATIO)
                estimated.append('issues')

        if calendar:
            contributions = sum(day.count for day in calendar)
        elif totals is not None:
            contributions = totals.contributions
        elif searched_prs is not None or searched_issues is not None:
            contributions = (searched_prs or 0) + (searched_issues or 0)
            estimated.append('contributions')
        else:
            contributions = 0
            estimated.append('contributions')

        if totals is not None:
            commits = totals.commits
            contributed_to = totals.contributed_to
        else:
            commits = contributions
            contributed_to = estimate_contributed_to(repos, self.clock())
            estimated.extend(['commits', 'contributed_to'])

        window = build_contribution_window(calendar)
        streaks = calculate_streaks(window)

        if estimated:
            logger.warning("Using estimated %s for %s", ", ".join(estimated), username)

        stats = Stats(
            total_repos=user.public_repos,
            total_followers=user.followers,
            total_following=user.following,
            total_stars=calculate_total_stars(repos),
            total_forks=calculate_total_forks(repos),
            total_gists=user.public_gists,
            joined_date=format_joined_date(user.created_at),
            top_languages=calculate_top_languages(repos),
            top_repos=tuple(repos[:TOP_REPOS_LIMIT]),
            contributions=max(contributions, 0),
            contribution_data=window,
            current_streak=streaks.current,
            longest_streak=streaks.longest,
            pull_requests=max(pull_requests, 0),
            issues=max(issues, 0),
            commits=max(commits, 0),
            contributed_to=max(contributed_to, 0),
            current_streak_range=streaks.current_range,
            longest_streak_range=streaks.longest_range,
            estimated=tuple(estimated),
        )
        return stats, user

    def _optional(self, label: str, fetch: Callable[[str], Any], username: str) -> Any:
        """Run an enrichment fetch, returning ``None`` instead of raising."""
        try:
            return fetch(username)
        except UpstreamError as e:
            logger.warning("Could not fetch %s for %s: %s", label, username, e)
            return None
        except Exception:
            logger.exception("Unexpected error fetching %s for %s", label, username)
            return None
