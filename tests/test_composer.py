from __future__ import annotations

import asyncio

import pytest

from blogpilot.platforms import MEDIUM
from blogpilot.publishing.composer import ArticleComposer, normalize_body
from blogpilot.publishing.errors import CompositionError, ElementNotFoundError
from blogpilot.publishing.models import Article, PublishOptions, PublishStage, Visibility
from blogpilot.publishing.selectors import SelectorCascade

from .fakes import FakeElement, FakePage, zero_timings

TITLE = 'h3[data-testid="editorTitleParagraph"]'
BODY = 'p[data-testid="editorParagraphText"]'
EDITOR = '[data-testid="editorTitleParagraph"]'
PUBLISH = '[data-action="show-prepublish"]'
TAG_INPUT = '[data-testid="publishTopicsInput"] input'
CONFIRM = '[data-testid="publishConfirmButton"]'
NOTIFY = 'input[type="checkbox"][name*="notify" i]'


def _composer() -> ArticleComposer:
    return ArticleComposer(MEDIUM, SelectorCascade(timeout_per_candidate_ms=1), zero_timings())


def _editor_page(**body_options: bool) -> FakePage:
    return FakePage(
        "https://medium.com/new-story",
        {
            EDITOR: [FakeElement()],
            TITLE: [FakeElement()],
            BODY: [FakeElement(**body_options)],
        },
    )


def test_normalize_body_strips_markdown_syntax() -> None:
    markdown = (
        "# Heading\n\n"
        "Some **bold** and *italic* text with `code`.\n\n\n\n"
        "Use _underscore emphasis_ but keep snake_case_names.\n\n"
        "- first item\n"
        "* second item\n\n"
        "> quoted\n\n"
        "See [the docs](https://example.com/docs) and ![diagram](https://example.com/a.png).\n"
        "```\n"
        "print('x')\n"
        "```\n"
    )

    assert normalize_body(markdown) == (
        "Heading\n\n"
        "Some bold and italic text with code.\n\n"
        "Use underscore emphasis but keep snake_case_names.\n\n"
        "first item\n"
        "second item\n\n"
        "quoted\n\n"
        "See the docs (https://example.com/docs) and diagram.\n"
        "print('x')"
    )


def test_compose_commits_title_before_body() -> None:
    page = _editor_page()

    methods = asyncio.run(_composer().compose(page, Article("T", "B")))

    assert methods == {"title": "clipboard", "body": "clipboard"}
    assert page.elements[TITLE][0].text == "T"
    assert page.elements[BODY][0].text == "B"
    enter = page.events.index(("key", "Enter"))
    assert enter < page.events.index(("click", BODY))
    assert page.events.index(("click", TITLE)) < enter


def test_compose_types_when_paste_raises() -> None:
    page = _editor_page()
    page.fail_paste = True

    methods = asyncio.run(_composer().compose(page, Article("Title", "Body text")))

    assert methods == {"title": "typing", "body": "typing"}
    assert ("type", "Body text") in page.events
    assert page.elements[BODY][0].text == "Body text"


def test_compose_types_when_paste_leaves_field_empty() -> None:
    page = _editor_page()
    page.paste_noop = True

    methods = asyncio.run(_composer().compose(page, Article("Title", "Body")))

    assert methods["body"] == "typing"
    assert page.elements[BODY][0].text == "Body"


def test_compose_fails_when_typing_also_leaves_field_empty() -> None:
    page = _editor_page(readonly=True)

    with pytest.raises(CompositionError) as excinfo:
        asyncio.run(_composer().compose(page, Article("Title", "Body")))

    assert "body" in str(excinfo.value)


def test_compose_requires_title_field() -> None:
    page = FakePage(elements={BODY: [FakeElement()]})

    with pytest.raises(ElementNotFoundError) as excinfo:
        asyncio.run(_composer().compose(page, Article("Title", "Body")))

    assert excinfo.value.stage is PublishStage.COMPOSE
    assert not page.clicked(BODY)


def test_open_editor_uses_editor_url() -> None:
    page = FakePage(routes={"https://medium.com/new-story": {EDITOR: [FakeElement()]}})

    asyncio.run(_composer().open_editor(page))

    assert page.url == "https://medium.com/new-story"


def test_open_editor_reports_missing_editor() -> None:
    with pytest.raises(CompositionError) as excinfo:
        asyncio.run(_composer().open_editor(FakePage()))

    assert excinfo.value.stage is PublishStage.EDITOR


@pytest.mark.parametrize(
    ("tags", "expected"),
    [
        (["x", "y", "z"], ["x", "y", "z"]),
        (["a", "b", "c", "d", "e", "f", "g"], ["a", "b", "c", "d", "e"]),
        (["#python", "python", " ", "ai"], ["python", "ai"]),
    ],
)
def test_apply_tags_in_order_and_capped(tags: list[str], expected: list[str]) -> None:
    page = FakePage(elements={TAG_INPUT: [FakeElement()]})

    applied = asyncio.run(_composer().apply_tags(page, tags))

    fills = [event[2] for event in page.events if event[0] == "fill"]
    assert applied == len(expected)
    assert fills == expected


def test_submit_publishes_with_tags_and_notification_toggle() -> None:
    page = FakePage(
        elements={
            PUBLISH: [FakeElement()],
            TAG_INPUT: [FakeElement()],
            NOTIFY: [FakeElement(checked=True)],
            CONFIRM: [FakeElement()],
        }
    )
    options = PublishOptions(tags=("x", "y"), notify_followers=False)

    assert asyncio.run(_composer().submit(page, options)) is True

    assert page.events.index(("click", PUBLISH)) < page.events.index(("fill", TAG_INPUT, "x"))
    assert page.events[-1] == ("click", CONFIRM)
    assert page.elements[NOTIFY][0].checked is False


def test_submit_falls_back_to_keyboard() -> None:
    page = FakePage()

    assert asyncio.run(_composer().submit(page, PublishOptions())) is True
    assert page.events == [("key", "ControlOrMeta+Enter"), ("key", "Enter")]


def test_submit_leaves_drafts_alone() -> None:
    page = FakePage(elements={PUBLISH: [FakeElement()]})

    published = asyncio.run(
        _composer().submit(page, PublishOptions(visibility=Visibility.DRAFT))
    )

    assert published is False
    assert page.events == []
