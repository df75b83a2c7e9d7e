"""Browser-driven publishing of generated articles."""

from .auth import AuthSignals, PlatformAuthenticator
from .composer import ArticleComposer, normalize_body
from .diagnostics import DiagnosticsRecorder
from .errors import (
    AuthenticationError,
    BrowserLaunchError,
    CompositionError,
    ElementNotFoundError,
    EnvironmentFailure,
    ProfileLockedError,
    PublishError,
)
from .inbox import EmailAuthFlow, pick_auth_link, unwrap_redirect
from .models import (
    Article,
    AuthenticationLink,
    AuthFlowState,
    Credentials,
    License,
    PublishingResult,
    PublishOptions,
    PublishRequest,
    PublishStage,
    UrlResolution,
    UrlTier,
    Visibility,
)
from .orchestrator import MediumPublisher
from .result import ResultExtractor
from .selectors import CascadeMatch, SelectorCascade
from .session import BrowserSession, ProfileLock, acquire_session

__all__ = [
    "Article",
    "ArticleComposer",
    "AuthFlowState",
    "AuthSignals",
    "AuthenticationError",
    "AuthenticationLink",
    "BrowserLaunchError",
    "BrowserSession",
    "CascadeMatch",
    "CompositionError",
    "Credentials",
    "DiagnosticsRecorder",
    "ElementNotFoundError",
    "EmailAuthFlow",
    "EnvironmentFailure",
    "License",
    "MediumPublisher",
    "PlatformAuthenticator",
    "ProfileLock",
    "ProfileLockedError",
    "PublishError",
    "PublishOptions",
    "PublishRequest",
    "PublishStage",
    "PublishingResult",
    "ResultExtractor",
    "SelectorCascade",
    "UrlResolution",
    "UrlTier",
    "Visibility",
    "acquire_session",
    "normalize_body",
    "pick_auth_link",
    "unwrap_redirect",
]
