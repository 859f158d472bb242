"""
Records returned by a profile provider, and the provider interface itself.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from dateutil.parser import isoparse


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return isoparse(value)


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class User:
    """Profile snapshot for a GitHub account."""
    login: str
    name: Optional[str]
    avatar_url: str
    bio: Optional[str]
    location: Optional[str]
    company: Optional[str]
    created_at: datetime
    public_repos: int
    public_gists: int
    followers: int
    following: int

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'User':
        """Build from a ``/users/{username}`` payload."""
        return cls(
            login=data['login'],
            name=data.get('name'),
            avatar_url=data.get('avatar_url', ''),
            bio=data.get('bio'),
            location=data.get('location'),
            company=data.get('company'),
            created_at=isoparse(data['created_at']),
            public_repos=data.get('public_repos', 0),
            public_gists=data.get('public_gists', 0),
            followers=data.get('followers', 0),
            following=data.get('following', 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'login': self.login,
            'name': self.name,
            'avatar_url': self.avatar_url,
            'bio': self.bio,
            'location': self.location,
            'company': self.company,
            'created_at': _format_timestamp(self.created_at),
            'public_repos': self.public_repos,
            'public_gists': self.public_gists,
            'followers': self.followers,
            'following': self.following,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(**{**data, 'created_at': isoparse(data['created_at'])})


@dataclass(frozen=True)
class Repo:
    """One repository owned by the user."""
    name: str
    language: Optional[str]
    stars: int
    forks: int
    is_fork: bool
    pushed_at: Optional[datetime]
    description: Optional[str] = None
    html_url: str = ''

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Repo':
        return cls(
            name=data['name'],
            language=data.get('language'),
            stars=data.get('stargazers_count', 0),
            forks=data.get('forks_count', 0),
            is_fork=bool(data.get('fork', False)),
            pushed_at=_parse_timestamp(data.get('pushed_at')),
            description=data.get('description'),
            html_url=data.get('html_url', ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'language': self.language,
            'stars': self.stars,
            'forks': self.forks,
            'is_fork': self.is_fork,
            'pushed_at': _format_timestamp(self.pushed_at),
            'description': self.description,
            'html_url': self.html_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Repo':
        return cls(**{**data, 'pushed_at': _parse_timestamp(data.get('pushed_at'))})


@dataclass(frozen=True)
class ContributionDay:
    date: date
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'date': self.date.isoformat(), 'count': self.count}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ContributionDay':
        return cls(date=date.fromisoformat(data['date']), count=data['count'])


@dataclass(frozen=True)
class ContributionTotals:
    """Trailing-year totals only available to authenticated clients."""
    contributions: int
    commits: int
    pull_requests: int
    issues: int
    contributed_to: int


class ProfileProvider(ABC):
    """
    Source of profile, repository and contribution data for a username.

    ``get_profile`` and ``list_repositories`` raise ``NotFound``,
    ``RateLimited`` or ``TransportError``. The remaining methods may raise the
    same errors; callers treat them as optional enrichment.
    """

    @abstractmethod
    def get_profile(self, username: str) -> User:
        ...

    @abstractmethod
    def list_repositories(self, username: str) -> List[Repo]:
        """Repositories sorted by star count, highest first."""

    @abstractmethod
    def get_contribution_calendar(self, username: str) -> List[ContributionDay]:
        """Trailing-year daily counts in ascending date order; may be empty."""

    @abstractmethod
    def get_contribution_totals(self, username: str) -> Optional[ContributionTotals]:
        """Authenticated totals, or ``None`` when no credentials are configured."""

    @abstractmethod
    def count_pull_requests(self, username: str) -> int:
        ...

    @abstractmethod
    def count_issues(self, username: str) -> int:
        ...
