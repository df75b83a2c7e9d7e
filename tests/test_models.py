from __future__ import annotations

from datetime import datetime, timezone

import pytest

from blogpilot.platforms import DEFAULT_REGISTRY, GMAIL, MEDIUM
from blogpilot.publishing.models import (
    Article,
    Credentials,
    License,
    PublishingResult,
    PublishOptions,
    PublishRequest,
    PublishStage,
    UrlTier,
    Visibility,
    normalize_tags,
)


def test_normalize_tags_keeps_order_and_caps() -> None:
    assert normalize_tags(["#AI", "ai", "  Python ", "", "go", "rust", "c", "zig"]) == (
        "AI",
        "Python",
        "go",
        "rust",
        "c",
    )


def test_publish_options_coerce_values() -> None:
    options = PublishOptions(tags=["a", "b"], visibility="draft", license="cc-40-by")

    assert options.tags == ("a", "b")
    assert options.visibility is Visibility.DRAFT
    assert options.license is License.CC_40_BY


def test_credentials_normalise_handle_and_hide_secret() -> None:
    credentials = Credentials(" me@example.com ", "hunter2", "@writer")

    assert credentials.inbox_address == "me@example.com"
    assert credentials.platform_handle == "writer"
    assert "hunter2" not in repr(credentials)
    assert credentials.redacted()["inbox_secret"] == "***"


def test_request_validation_rejects_missing_fields() -> None:
    request = PublishRequest(
        article=Article("Title", "Body"),
        options=PublishOptions(),
        credentials=Credentials("me@example.com", "", "writer"),
    )
    with pytest.raises(ValueError, match="inbox_secret"):
        request.validate()

    with pytest.raises(ValueError, match="body"):
        PublishRequest(
            Article("Title", "   "), PublishOptions(), Credentials("a@b.c", "x", "w")
        ).validate()


def test_article_from_dict_accepts_content_alias() -> None:
    article = Article.from_dict({"title": " Hello ", "content": "Body", "tags": ["x"]})

    assert article == Article("Hello", "Body", ("x",))
    assert article.as_dict() == {"title": "Hello", "body": "Body", "tags": ["x"]}


def test_result_serialises_enums_and_dates() -> None:
    when = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    result = PublishingResult(
        success=True,
        url="https://medium.com/@w/post-1",
        published_at=when,
        stage=PublishStage.DONE,
        url_tier=UrlTier.ESTIMATED,
    )

    assert result.as_dict() == {
        "success": True,
        "url": "https://medium.com/@w/post-1",
        "error": None,
        "published_at": "2024-05-01T12:00:00+00:00",
        "stage": "done",
        "url_tier": "estimated",
        "diagnostics": [],
    }


def test_platform_helpers() -> None:
    assert DEFAULT_REGISTRY.target("Medium") is MEDIUM
    with pytest.raises(ValueError, match="Unsupported platform"):
        DEFAULT_REGISTRY.target("substack")
    assert MEDIUM.profile_url("@writer") == "https://medium.com/@writer"
    assert MEDIUM.is_article_url("https://writer.medium.com/@writer/post-abc")
    assert not MEDIUM.is_article_url("https://medium.com/@writer/post-abc/edit")
    assert not MEDIUM.is_article_url("https://example.com/@writer/post-abc")
    assert MEDIUM.is_auth_path("https://medium.com/m/signin?redirect=x")
    assert MEDIUM.is_auth_path("https://medium.com/m/callback/email?token=abc")
    assert not MEDIUM.is_auth_path("https://medium.com/@writer/how-to-sign-in-faster-1a2b")
    assert not MEDIUM.is_auth_path("https://medium.com/@writer/login-flows-explained-3c4d")
    assert not MEDIUM.is_auth_path("https://medium.com/?source=login")


def test_inbox_provider_helpers() -> None:
    assert DEFAULT_REGISTRY.inbox("gmail") is GMAIL
    assert GMAIL.needs_login("https://accounts.google.com/v3/signin/identifier")
    assert GMAIL.needs_login("https://accounts.google.com/ServiceLogin?service=mail")
    assert not GMAIL.needs_login("https://mail.google.com/mail/u/0/#inbox")
    assert GMAIL.search_query("noreply@medium.com", "Sign in") == (
        'from:noreply@medium.com subject:"Sign in"'
    )
