"""Value types exchanged by the publishing workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

MAX_TAGS = 5


class Visibility(str, Enum):
    PUBLIC = "public"
    DRAFT = "draft"
    UNLISTED = "unlisted"


class License(str, Enum):
    ALL_RIGHTS_RESERVED = "all-rights-reserved"
    CC_40_BY = "cc-40-by"
    CC_40_BY_SA = "cc-40-by-sa"
    CC_40_BY_ND = "cc-40-by-nd"
    CC_40_BY_NC = "cc-40-by-nc"
    CC_40_BY_NC_ND = "cc-40-by-nc-nd"
    CC_40_BY_NC_SA = "cc-40-by-nc-sa"
    CC_40_ZERO = "cc-40-zero"
    PUBLIC_DOMAIN = "public-domain"


class PublishStage(str, Enum):
    """Coarse stages of one publish call, used to label failures."""

    LAUNCH = "launch"
    AUTH_CHECK = "auth_check"
    EMAIL_AUTH = "email_auth"
    EDITOR = "editor"
    COMPOSE = "compose"
    SUBMIT = "submit"
    RESOLVE_URL = "resolve_url"
    DONE = "done"


class AuthFlowState(str, Enum):
    IDLE = "idle"
    INBOX_OPENED = "inbox_opened"
    SIGN_IN_REQUESTED = "sign_in_requested"
    AWAITING_EMAIL = "awaiting_email"
    LINK_FOUND = "link_found"
    LINK_CONSUMED = "link_consumed"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class UrlTier(str, Enum):
    """How confident the result extractor is about a URL."""

    RESOLVED = "resolved"
    ESTIMATED = "estimated"
    UNKNOWN = "unknown"


def normalize_tags(tags: Iterable[str], *, limit: int = MAX_TAGS) -> tuple[str, ...]:
    """Strip, drop blanks and duplicates, keep input order, cap at ``limit``."""
    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in tags:
        tag = str(raw).strip().lstrip("#").strip()
        key = tag.lower()
        if not tag or key in seen:
            continue
        seen.add(key)
        cleaned.append(tag)
    return tuple(cleaned[:limit])


@dataclass(frozen=True, slots=True)
class Credentials:
    inbox_address: str
    inbox_secret: str
    platform_handle: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "inbox_address", self.inbox_address.strip())
        object.__setattr__(self, "platform_handle", self.platform_handle.strip().lstrip("@"))

    def validate(self) -> None:
        missing = [
            name
            for name in ("inbox_address", "inbox_secret", "platform_handle")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"Missing required credentials: {', '.join(missing)}")

    def redacted(self) -> dict[str, str]:
        return {
            "inbox_address": self.inbox_address,
            "inbox_secret": "***" if self.inbox_secret else "",
            "platform_handle": self.platform_handle,
        }

    def __repr__(self) -> str:
        return (
            f"Credentials(inbox_address={self.inbox_address!r}, inbox_secret='***', "
            f"platform_handle={self.platform_handle!r})"
        )


@dataclass(frozen=True, slots=True)
class Article:
    """A finished article. ``body`` is Markdown."""

    title: str
    body: str
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", tuple(self.tags))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Article":
        return cls(
            title=str(data.get("title", "")).strip(),
            body=str(data.get("body") or data.get("content") or ""),
            tags=tuple(str(tag) for tag in data.get("tags", ()) or ()),
        )

    def as_dict(self) -> dict[str, Any]:
        return {"title": self.title, "body": self.body, "tags": list(self.tags)}


@dataclass(frozen=True, slots=True)
class PublishOptions:
    tags: tuple[str, ...] = ()
    visibility: Visibility = Visibility.PUBLIC
    notify_followers: bool = True
    license: License = License.ALL_RIGHTS_RESERVED

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", normalize_tags(self.tags))
        object.__setattr__(self, "visibility", Visibility(self.visibility))
        object.__setattr__(self, "license", License(self.license))


@dataclass(frozen=True, slots=True)
class PublishRequest:
    article: Article
    options: PublishOptions
    credentials: Credentials

    def validate(self) -> None:
        self.credentials.validate()
        if not self.article.title.strip():
            raise ValueError("Article title must not be empty")
        if not self.article.body.strip():
            raise ValueError("Article body must not be empty")


@dataclass(frozen=True, slots=True)
class AuthenticationLink:
    """A one-time sign-in URL pulled from an inbox message."""

    url: str
    strategy: str


@dataclass(frozen=True, slots=True)
class UrlResolution:
    url: str
    tier: UrlTier
    strategy: str


@dataclass(frozen=True, slots=True)
class PublishingResult:
    success: bool
    url: str | None = None
    error: str | None = None
    published_at: datetime | None = None
    stage: PublishStage | None = None
    url_tier: UrlTier | None = None
    diagnostics: tuple[str, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "url": self.url,
            "error": self.error,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "stage": self.stage.value if self.stage else None,
            "url_tier": self.url_tier.value if self.url_tier else None,
            "diagnostics": list(self.diagnostics),
        }


__all__ = [
    "MAX_TAGS",
    "Article",
    "AuthFlowState",
    "AuthenticationLink",
    "Credentials",
    "License",
    "PublishOptions",
    "PublishRequest",
    "PublishStage",
    "PublishingResult",
    "UrlResolution",
    "UrlTier",
    "Visibility",
    "normalize_tags",
]
