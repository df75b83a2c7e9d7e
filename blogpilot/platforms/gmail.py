"""Gmail web client as the inbox provider."""

from __future__ import annotations

from .base import Cascade, InboxProvider

GMAIL = InboxProvider(
    name="gmail",
    inbox_url="https://mail.google.com",
    search_box=Cascade(
        "mail search box",
        (
            'input[aria-label="Search mail"]',
            'input[placeholder*="Search"]',
            'input[name="q"]',
        ),
    ),
    message_rows=Cascade(
        "message row",
        (
            'tr.zA',
            "[data-thread-id]",
            'div[role="main"] tr',
        ),
    ),
    redirect_hosts=("www.google.com", "google.com"),
    login_markers=("accounts.google.com", "workspace.google.com", "/signin/", "ServiceLogin"),
)
