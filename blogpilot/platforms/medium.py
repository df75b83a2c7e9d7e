"""Medium as a publishing target.

Medium ships undocumented, frequently changing markup; each cascade lists the
selectors seen in the wild, most specific first.
"""

from __future__ import annotations

import re

from .base import Cascade, TargetPlatform

MEDIUM = TargetPlatform(
    name="medium",
    domain="medium.com",
    home_url="https://medium.com",
    sign_in_url="https://medium.com/m/signin",
    editor_urls=(
        "https://medium.com/new-story",
        "https://medium.com/m/new-story",
    ),
    profile_url_template="https://medium.com/@{handle}",
    article_url_pattern=re.compile(r"/@[^/?#]+/[^/?#]+"),
    auth_path_markers=("/m/signin", "/signin", "/sign-in", "/login", "/m/callback", "/auth"),
    sign_in_sender="noreply@medium.com",
    sign_in_subject="Sign in",
    email_keywords=(
        "noreply@medium.com",
        "sign in to medium",
        "verify your email",
        "medium",
    ),
    auth_href_markers=("signin", "sign-in", "verify", "confirm", "auth", "login", "callback"),
    auth_text_markers=("sign in", "verify", "confirm", "continue", "access"),
    excluded_url_parts=("/edit", "/responses", "/followers", "/following", "/about", "/lists"),
    compose_affordance=Cascade(
        "write button",
        (
            'a[href="/new-story"]',
            'a[href*="new-story"]',
            '[data-testid="headerWriteButton"]',
            '[data-testid="writeButton"]',
        ),
    ),
    identity_affordance=Cascade(
        "user menu",
        (
            '[data-testid="headerUserIcon"]',
            '[data-testid="user-menu"]',
            'button[aria-label*="user" i]',
            'a[href*="/me/"]',
            'img.avatar',
            '[aria-label*="profile" i]',
        ),
    ),
    member_prompt=Cascade(
        "sign-in prompt",
        (
            'a:has-text("Become a member")',
            'button:has-text("Sign in")',
            'a:has-text("Sign in")',
        ),
    ),
    sign_in_buttons=Cascade(
        "sign-in button",
        (
            'button:has-text("Sign in")',
            'a:has-text("Sign in")',
            '[data-testid*="sign" i]',
            'button[data-action="sign-in"]',
            'button:has-text("Sign up")',
        ),
    ),
    email_sign_in_buttons=Cascade(
        "sign in with email button",
        (
            'button[data-testid="emailSignInButton"]',
            'button:has-text("Sign in with email")',
            'button:has-text("Continue with email")',
            'a[href*="signin?email"]',
        ),
    ),
    email_input=Cascade(
        "email input",
        (
            'input[type="email"]',
            'input[name*="email" i]',
            'input[placeholder*="email" i]',
            'input[data-testid*="email" i]',
        ),
    ),
    email_submit=Cascade(
        "email submit button",
        (
            'button[type="submit"]',
            'button:has-text("Continue")',
            'button:has-text("Send")',
            'button:has-text("Next")',
        ),
    ),
    editor_ready=Cascade(
        "editor",
        (
            '[data-testid="editorTitleParagraph"]',
            'div[role="textbox"]',
            'section[data-field="body"]',
            'div[contenteditable="true"]',
            "textarea",
        ),
    ),
    write_buttons=Cascade(
        "write button",
        (
            'a[href="/new-story"]',
            'a[href="/m/new-story"]',
            '[data-testid="headerWriteButton"]',
            'a[aria-label*="Write"]',
            'a:has-text("Write")',
        ),
    ),
    title_field=Cascade(
        "title field",
        (
            'h3[data-testid="editorTitleParagraph"]',
            '[data-testid="editorTitleParagraph"]',
            'textarea[placeholder*="Title"]',
            '[contenteditable="true"][data-testid*="title" i]',
            "h3.graf--title",
            'div[contenteditable="true"] h3',
            'h1[contenteditable="true"]',
        ),
    ),
    body_field=Cascade(
        "body editor",
        (
            'p[data-testid="editorParagraphText"]',
            '[data-testid="editorParagraphText"]',
            "p.graf--p",
            'div[role="textbox"]',
            'section[data-field="body"]',
            'div[contenteditable="true"]',
        ),
    ),
    publish_button=Cascade(
        "publish button",
        (
            '[data-action="show-prepublish"]',
            'button[data-testid="publish-button"]',
            'button:has-text("Publish")',
            '[aria-label*="publish" i]',
        ),
    ),
    tag_input=Cascade(
        "tag input",
        (
            '[data-testid="publishTopicsInput"] input',
            'input[placeholder*="topic" i]',
            'input[placeholder*="tag" i]',
            'input[aria-label*="tag" i]',
            '[data-testid="tag-input"]',
        ),
    ),
    final_publish=Cascade(
        "final publish button",
        (
            '[data-testid="publishConfirmButton"]',
            'button[data-testid="confirm-publish"]',
            'button:has-text("Publish now")',
        ),
    ),
    share_button=Cascade(
        "share button",
        (
            '[data-testid="headerShareButton"]',
            'button[aria-label*="Share" i]',
            '[data-testid="share-button"]',
            'button:has-text("Share")',
        ),
    ),
    notify_toggle=Cascade(
        "notify followers toggle",
        (
            'input[type="checkbox"][name*="notify" i]',
            'label:has-text("Notify") input[type="checkbox"]',
        ),
    ),
)
