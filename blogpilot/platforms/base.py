"""Base contracts describing the sites the publisher drives."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import urlparse

Selectors = tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Cascade:
    """An ordered list of alternative selectors for one UI element."""

    label: str
    selectors: Selectors

    def __iter__(self):
        return iter(self.selectors)

    def __len__(self) -> int:
        return len(self.selectors)


@dataclass(frozen=True, slots=True)
class TargetPlatform:
    """Where articles get published: URLs, selector catalog, and link heuristics."""

    name: str
    domain: str
    home_url: str
    sign_in_url: str
    editor_urls: tuple[str, ...]
    profile_url_template: str
    article_url_pattern: re.Pattern[str]
    auth_path_markers: tuple[str, ...]
    sign_in_sender: str
    sign_in_subject: str
    email_keywords: tuple[str, ...]
    auth_href_markers: tuple[str, ...]
    auth_text_markers: tuple[str, ...]
    compose_affordance: Cascade
    identity_affordance: Cascade
    member_prompt: Cascade
    sign_in_buttons: Cascade
    email_sign_in_buttons: Cascade
    email_input: Cascade
    email_submit: Cascade
    editor_ready: Cascade
    write_buttons: Cascade
    title_field: Cascade
    body_field: Cascade
    publish_button: Cascade
    tag_input: Cascade
    final_publish: Cascade
    share_button: Cascade
    notify_toggle: Cascade
    excluded_url_parts: tuple[str, ...] = ()

    def owns(self, url: str) -> bool:
        host = (urlparse(url).hostname or "").lower()
        return host == self.domain or host.endswith("." + self.domain)

    def is_auth_path(self, url: str) -> bool:
        """Whether the URL path starts with one of ``auth_path_markers``.

        Markers are whole path prefixes, so story slugs and query strings that
        merely mention "login" do not count.
        """

        path = urlparse(url).path.lower().rstrip("/")
        for marker in self.auth_path_markers:
            prefix = marker.lower().rstrip("/")
            if path == prefix or path.startswith(prefix + "/"):
                return True
        return False

    def profile_url(self, handle: str) -> str:
        return self.profile_url_template.format(handle=handle.lstrip("@"))

    def is_article_url(self, url: str) -> bool:
        if not url or not self.owns(url):
            return False
        if any(part in url for part in self.excluded_url_parts):
            return False
        return bool(self.article_url_pattern.search(url))


@dataclass(frozen=True, slots=True)
class InboxProvider:
    """A webmail client used to read one-time sign-in messages."""

    name: str
    inbox_url: str
    search_box: Cascade
    message_rows: Cascade
    redirect_hosts: tuple[str, ...] = ()
    redirect_params: tuple[str, ...] = ("q", "url")
    row_scan_limit: int = 20
    query_template: str = 'from:{sender} subject:"{subject}"'
    login_markers: tuple[str, ...] = field(default=())

    def search_query(self, sender: str, subject: str) -> str:
        return self.query_template.format(sender=sender, subject=subject)

    def needs_login(self, url: str) -> bool:
        lowered = url.lower()
        return any(marker.lower() in lowered for marker in self.login_markers)


class PlatformRegistry(Protocol):
    """Lookup interface for site profiles."""

    def target(self, name: str) -> TargetPlatform:
        """Return the publishing target registered under ``name``."""

    def inbox(self, name: str) -> InboxProvider:
        """Return the inbox provider registered under ``name``."""
