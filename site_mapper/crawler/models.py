"""
Data models for the SiteMapper crawler.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

__all__ = (
    "Page",
    "NodeKind",
    "Absolute",
    "Relative",
    "Candidate",
    "FailureReason",
    "FetchResult",
    "FallbackRequest",
    "Success",
    "Retry",
    "Exhausted",
    "Rejected",
    "DispatchOutcome",
    "VisitEvent",
)


@dataclass(frozen=True, slots=True)
class Page:
    """One visited page: its URI and the canonical references found on it."""

    uri: str
    anchors: Tuple[str, ...] = ()
    static_links: Tuple[str, ...] = ()
    scripts: Tuple[str, ...] = ()
    images: Tuple[str, ...] = ()


class NodeKind(Enum):
    """Kinds of document nodes that carry outbound references: (tag, attribute)."""

    ANCHOR = ("a", "href")
    STATIC_LINK = ("link", "href")
    SCRIPT = ("script", "src")
    IMAGE = ("img", "src")

    @property
    def tag(self) -> str:
        return self.value[0]

    @property
    def attribute(self) -> str:
        return self.value[1]


# --------------------------------------------------------------------------- #
# Classification                                                              #
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class Absolute:
    """Reference that already names its host (possibly without a protocol)."""

    path: str


@dataclass(frozen=True, slots=True)
class Relative:
    """Reference to resolve against the page it was found on."""

    path: str
    from_uri: str


#: ``None`` stands for a rejected reference.
Candidate = Optional[Union[Absolute, Relative]]


# --------------------------------------------------------------------------- #
# Fetching                                                                    #
# --------------------------------------------------------------------------- #


class FailureReason(str, Enum):
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    HTTP_STATUS = "http-status"


@dataclass(frozen=True, slots=True)
class FetchResult:
    """What the fetch collaborator returns for one URL."""

    url: str
    body: Optional[bytes] = None
    content_type: Optional[str] = None
    encoding: Optional[str] = None
    status_code: Optional[int] = None
    reason: Optional[FailureReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(
        cls,
        url: str,
        body: bytes,
        *,
        content_type: Optional[str] = None,
        encoding: Optional[str] = None,
        status_code: int = 200,
    ) -> FetchResult:
        return cls(url, body, content_type, encoding, status_code)

    @classmethod
    def failure(
        cls,
        url: str,
        reason: FailureReason,
        *,
        status_code: Optional[int] = None,
        detail: str = "",
    ) -> FetchResult:
        return cls(url, status_code=status_code, reason=reason, detail=detail)

    def describe(self) -> str:
        """Short human-readable failure description, e.g. ``http-status(404)``."""
        if self.reason is None:
            return "ok"
        if self.reason is FailureReason.HTTP_STATUS:
            return f"{self.reason.value}({self.status_code})"
        return f"{self.reason.value}: {self.detail}" if self.detail else self.reason.value


@dataclass(frozen=True, slots=True)
class FallbackRequest:
    """Ordered, non-empty variant spellings of one logical target ``uri``."""

    uri: str
    variants: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.variants:
            raise ValueError(f"FallbackRequest for {self.uri} has no variants")

    @property
    def head(self) -> str:
        return self.variants[0]

    def tail(self) -> Optional[FallbackRequest]:
        """The same request without its head variant, or ``None`` when exhausted."""
        if len(self.variants) == 1:
            return None
        return FallbackRequest(self.uri, self.variants[1:])


# --------------------------------------------------------------------------- #
# Dispatch outcomes                                                           #
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class Success:
    page: Page
    fetched_url: str


@dataclass(frozen=True, slots=True)
class Retry:
    request: FallbackRequest
    reason: str


@dataclass(frozen=True, slots=True)
class Exhausted:
    reason: str


@dataclass(frozen=True, slots=True)
class Rejected:
    """Non-retryable failure: the content itself is unusable."""

    reason: str


DispatchOutcome = Union[Success, Retry, Exhausted, Rejected]


@dataclass(frozen=True, slots=True)
class VisitEvent:
    """Terminal outcome of one visit, passed to the ``on_visit`` hook."""

    uri: str
    ok: bool
    fetched_url: Optional[str] = None
    reason: Optional[str] = None
