from __future__ import annotations

import asyncio

import pytest

from blogpilot.platforms import MEDIUM
from blogpilot.publishing.auth import AuthSignals, PlatformAuthenticator
from blogpilot.publishing.errors import AuthenticationError
from blogpilot.publishing.selectors import SelectorCascade

from .fakes import FakeElement, FakePage, zero_timings

COMPOSE = 'a[href="/new-story"]'
IDENTITY = '[data-testid="headerUserIcon"]'
PROMPT = 'a:has-text("Become a member")'
EMAIL_INPUT = 'input[type="email"]'
EMAIL_BUTTON = 'button[data-testid="emailSignInButton"]'
SUBMIT = 'button[type="submit"]'


def _authenticator(**timings: float) -> PlatformAuthenticator:
    return PlatformAuthenticator(
        MEDIUM, SelectorCascade(timeout_per_candidate_ms=1), zero_timings(**timings)
    )


@pytest.mark.parametrize(
    ("compose", "identity", "auth_path", "expected"),
    [
        (True, False, False, True),
        (False, True, False, True),
        (True, True, True, False),
        (False, False, False, False),
    ],
)
def test_signal_rule(compose: bool, identity: bool, auth_path: bool, expected: bool) -> None:
    signals = AuthSignals(
        url="https://medium.com", compose=compose, identity=identity, prompt=True, auth_path=auth_path
    )
    assert signals.authenticated is expected


def test_check_authenticated_reads_page_markup() -> None:
    authenticator = _authenticator()
    signed_in = FakePage("https://medium.com/", {IDENTITY: [FakeElement()]})
    on_sign_in_page = FakePage("https://medium.com/m/signin", {COMPOSE: [FakeElement()]})
    prompt_only = FakePage("https://medium.com/", {PROMPT: [FakeElement()]})

    assert asyncio.run(authenticator.check_authenticated(signed_in)) is True
    assert asyncio.run(authenticator.check_authenticated(on_sign_in_page)) is False
    assert asyncio.run(authenticator.check_authenticated(prompt_only)) is False


def test_wait_until_authenticated_polls_until_signal_appears() -> None:
    page = FakePage("https://medium.com/")
    sleeps: list[float] = []

    async def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        if len(sleeps) == 2:
            page.add(COMPOSE, FakeElement())

    authenticator = PlatformAuthenticator(
        MEDIUM,
        SelectorCascade(timeout_per_candidate_ms=1),
        zero_timings(auth_wait=30, auth_poll_interval=3),
        sleep=sleep,
    )

    assert asyncio.run(authenticator.wait_until_authenticated(page)) is True
    assert sleeps == [3, 3]


def test_wait_until_authenticated_gives_up_after_budget() -> None:
    sleeps: list[float] = []

    async def sleep(seconds: float) -> None:
        sleeps.append(seconds)

    authenticator = PlatformAuthenticator(
        MEDIUM,
        SelectorCascade(timeout_per_candidate_ms=1),
        zero_timings(auth_wait=9, auth_poll_interval=3),
        sleep=sleep,
    )

    assert asyncio.run(authenticator.wait_until_authenticated(FakePage("https://medium.com"))) is False
    assert sleeps == [3, 3, 3]


def test_request_sign_in_fills_visible_email_field() -> None:
    page = FakePage(elements={EMAIL_INPUT: [FakeElement()], SUBMIT: [FakeElement()]})

    asyncio.run(_authenticator().request_sign_in(page, "me@example.com"))

    assert ("goto", MEDIUM.sign_in_url) in page.events
    assert ("fill", EMAIL_INPUT, "me@example.com") in page.events
    assert page.clicked(SUBMIT)


def test_request_sign_in_walks_through_email_option() -> None:
    def reveal_input(page: FakePage) -> None:
        page.add(EMAIL_INPUT, FakeElement())

    page = FakePage(elements={EMAIL_BUTTON: [FakeElement(on_click=reveal_input)]})

    asyncio.run(_authenticator().request_sign_in(page, "me@example.com"))

    assert page.clicked(EMAIL_BUTTON)
    assert ("fill", EMAIL_INPUT, "me@example.com") in page.events
    # No submit button on the page: Enter submits the form.
    assert ("press", EMAIL_INPUT, "Enter") in page.events


def test_request_sign_in_without_email_option_fails() -> None:
    with pytest.raises(AuthenticationError) as excinfo:
        asyncio.run(_authenticator().request_sign_in(FakePage(), "me@example.com"))

    assert "sign in with email button" in str(excinfo.value)
