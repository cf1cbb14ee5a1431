"""
URL classification and normalization for SiteMapper.

Candidate references come straight out of HTML attributes, so they can be
anything: root-relative paths, protocol-relative hosts, bare file names,
``javascript:`` pseudo-URLs.  :func:`classify_candidate` sorts a candidate into
:class:`~site_mapper.crawler.models.Absolute`, :class:`~site_mapper.crawler.models.Relative`
or ``None`` and :class:`DomainPolicy` turns the result into one canonical
absolute URI (or drops it).

Normalization is a pipeline of ``str -> str`` transforms folded left to right,
followed by structural dot-segment resolution.  Pipelines are caller
configurable, e.g.::

    policy = DomainPolicy("mysite.com", transforms=(use_lower_case, ensure_protocol("https://")))
"""
from __future__ import annotations

from functools import partial
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Tuple

from site_mapper.crawler.models import Absolute, Candidate, Relative
from site_mapper.errors import UnsupportedProtocolError

__all__: Sequence[str] = (
    "PROTOCOLS",
    "FILE_EXTENSIONS",
    "Transform",
    "Classifier",
    "CrawlPolicy",
    "DomainPolicy",
    "classify_candidate",
    "extract_protocol_and_base",
    "possibly_a_file",
    "resolve_relative",
    "resolve_relative_optimistic",
    "normalize_path",
    "apply_pipeline",
    "use_lower_case",
    "ensure_protocol",
    "strip_fragment",
    "add_trailing_slash",
    "add_www",
    "remove_www",
    "candidate_variants",
)

Transform = Callable[[str], str]
Classifier = Callable[[str], Optional[str]]

PROTOCOLS: Tuple[str, ...] = ("http://", "https://")
FILE_EXTENSIONS: Tuple[str, ...] = (".html", ".htm", ".jsp", ".asp", ".aspx")

_NON_NAVIGABLE: Tuple[str, ...] = (
    "javascript:",
    "mailto:",
    "tel:",
    "#",
    "data:",
    "ftp:",
    "file:",
    "sms:",
    "about:",
)
_ABSOLUTE_PREFIXES: Tuple[str, ...] = ("http://", "https://", "www.")
_HOST_BOUNDARY = "/:?#"


# --------------------------------------------------------------------------- #
# Structural helpers                                                          #
# --------------------------------------------------------------------------- #


def extract_protocol_and_base(url: str) -> Tuple[str, str]:
    """Split ``url`` into ``(protocol, rest)``.

    Raises :class:`UnsupportedProtocolError` when ``url`` is not http(s).
    """
    for protocol in PROTOCOLS:
        if url.startswith(protocol):
            return protocol, url[len(protocol):]
    raise UnsupportedProtocolError(url)


def _split_tail(path: str) -> Tuple[str, str]:
    """Separate the query/fragment tail so slashes inside it are left alone."""
    cut = min((i for i in (path.find("?"), path.find("#")) if i != -1), default=len(path))
    return path[:cut], path[cut:]


def _collapse(segments: Iterable[str]) -> List[str]:
    out: List[str] = []
    for segment in segments:
        if segment in ("", "."):
            continue
        if segment == "..":
            if out:
                out.pop()
            continue
        out.append(segment)
    return out


def _join(host: str, segments: List[str], trailing_slash: bool) -> str:
    if not segments:
        return host + "/" if trailing_slash else host
    return host + "/" + "/".join(segments) + ("/" if trailing_slash else "")


def possibly_a_file(path: str) -> bool:
    """Guess from the extension alone whether ``path`` names a file.

    There is no way to know whether a path is a directory served by a default
    document without fetching it, so this can be wrong either way.
    """
    stem, _ = _split_tail(path)
    return stem.lower().endswith(FILE_EXTENSIONS)


def normalize_path(url: str) -> str:
    """Resolve ``.`` and ``..`` segments of an http(s) URL.

    ``..`` never climbs above the host.  A trailing slash is preserved.
    """
    protocol, base = extract_protocol_and_base(url)
    stem, tail = _split_tail(base)
    host, sep, path = stem.partition("/")
    trailing = bool(sep) and stem.endswith("/")
    return protocol + _join(host, _collapse(path.split("/")), trailing) + tail


def _resolve(protocol: str, base: str, to: str) -> str:
    stem, _ = _split_tail(base)
    host, _, path = stem.partition("/")
    to_stem, to_tail = _split_tail(to)
    segments = _collapse(path.split("/") + to_stem.split("/"))
    trailing = to_stem.endswith("/") or (not to_stem and path.endswith("/"))
    return protocol + _join(host, segments, trailing) + to_tail


def resolve_relative(from_uri: str, to: str) -> str:
    """Resolve ``to`` treating the whole of ``from_uri`` as a directory.

    >>> resolve_relative("http://something.com/a/b/c", "../../d/e/f")
    'http://something.com/a/d/e/f'
    """
    protocol, base = extract_protocol_and_base(from_uri)
    return _resolve(protocol, base, to)


def resolve_relative_optimistic(from_uri: str, to: str) -> str:
    """Like :func:`resolve_relative`, but drops a file-looking last segment first.

    >>> resolve_relative_optimistic("http://something.com/index.html", "./myDirectory")
    'http://something.com/myDirectory'
    """
    protocol, base = extract_protocol_and_base(from_uri)
    stem, _ = _split_tail(base)
    if "/" in stem and possibly_a_file(stem):
        base = stem[: stem.rindex("/") + 1]
    return _resolve(protocol, base, to)


# --------------------------------------------------------------------------- #
# Normalization transforms                                                    #
# --------------------------------------------------------------------------- #


def apply_pipeline(url: str, transforms: Iterable[Transform]) -> str:
    """Fold ``transforms`` over ``url`` left to right."""
    for transform in transforms:
        url = transform(url)
    return url


def use_lower_case(url: str) -> str:
    return url.lower()


def strip_fragment(url: str) -> str:
    return url.split("#", 1)[0]


def ensure_protocol(default_protocol: str) -> Transform:
    """Return a transform prefixing ``default_protocol`` when no http(s) protocol is present."""

    def _ensure(url: str) -> str:
        if url.startswith(PROTOCOLS):
            return url
        return default_protocol + url

    return _ensure


def add_trailing_slash(url: str) -> str:
    stem, tail = _split_tail(url)
    return url if stem.endswith("/") else stem + "/" + tail


def add_www(url: str) -> str:
    """``http://mysite.com`` -> ``http://www.mysite.com``; also turns ``api.x.com`` into ``www.api.x.com``."""
    protocol, base = extract_protocol_and_base(url)
    return url if base.startswith("www.") else protocol + "www." + base


def remove_www(url: str) -> str:
    for protocol in PROTOCOLS:
        if url.startswith(protocol + "www."):
            return protocol + url[len(protocol) + 4:]
    return url


def _remove_trailing_slash(url: str) -> str:
    stem, tail = _split_tail(url)
    protocol, base = extract_protocol_and_base(stem)
    return protocol + base.rstrip("/") + tail


def candidate_variants(uri: str) -> List[str]:
    """Spellings of ``uri`` that may denote the same resource, ``uri`` first.

    Toggles the leading ``www.`` and the trailing slash; file-looking paths get
    no slash variants.  ``u`` and ``u/`` (or ``www.u``) yield the same set.
    """
    variants = [uri]
    if possibly_a_file(uri):
        stems = [uri]
    else:
        stem = _remove_trailing_slash(uri)
        stems = [stem, add_trailing_slash(stem)]
    for stem in stems:
        variants.extend((add_www(stem), remove_www(stem)))
    return list(dict.fromkeys(variants))


# --------------------------------------------------------------------------- #
# Classification                                                              #
# --------------------------------------------------------------------------- #


def _on_domain(value: str, prefix: str) -> bool:
    """``value`` starts with ``prefix`` and the host ends right after it."""
    if not value.startswith(prefix):
        return False
    rest = value[len(prefix):]
    return not rest or rest[0] in _HOST_BOUNDARY


def classify_candidate(base_path: str, traversed_uri: str, candidate: str) -> Candidate:
    """Sort a raw reference into ``Absolute``, ``Relative`` or ``None`` (rejected).

    First matching rule wins:

    1. empty -> ``None``
    2. ``javascript:``/``mailto:``/``tel:``/``#...`` and similar -> ``None``
    3. ``//host/...`` -> ``Absolute`` if host is the base domain, else ``None``
    4. ``/path`` -> ``Absolute`` under the base domain
    5. absolute on the base domain (with or without protocol / ``www.``) -> ``Absolute``
    6. ``./x``, ``../x`` -> ``Relative`` to ``traversed_uri``
    7. other absolute references -> ``None`` (cross-domain)
    8. anything else -> ``Relative`` to ``traversed_uri``
    """
    value = candidate.strip()
    if not value:
        return None
    lowered = value.lower()
    if lowered.startswith(_NON_NAVIGABLE):
        return None
    if value.startswith("//"):
        host = lowered[2:]
        if _on_domain(host, base_path) or _on_domain(host, "www." + base_path):
            return Absolute(value[2:])
        return None
    if value.startswith("/"):
        return Absolute(base_path + value)
    on_domain = (
        f"http://{base_path}",
        f"https://{base_path}",
        f"www.{base_path}",
        f"http://www.{base_path}",
        f"https://www.{base_path}",
    )
    if any(_on_domain(lowered, prefix) for prefix in on_domain):
        return Absolute(value)
    if value.startswith("."):
        return Relative(value, traversed_uri)
    if lowered.startswith(_ABSOLUTE_PREFIXES):
        return None
    return Relative(value, traversed_uri)


# --------------------------------------------------------------------------- #
# Policies                                                                    #
# --------------------------------------------------------------------------- #


class CrawlPolicy(Protocol):
    """What the scheduler and dispatcher need to know about which URLs to follow."""

    def classify(self, traversed_uri: str, candidate: str) -> Optional[str]: ...

    def normalize(self, url: str) -> str: ...

    def classifier(self, traversed_uri: str) -> Classifier: ...

    def candidate_variants(self, uri: str) -> List[str]: ...


class DomainPolicy:
    """Default policy: follow references on one base domain only."""

    def __init__(
        self,
        base_path: str,
        protocol: str = "http://",
        transforms: Optional[Sequence[Transform]] = None,
    ) -> None:
        if protocol not in PROTOCOLS:
            raise UnsupportedProtocolError(protocol)
        self.base_path = base_path.lower()
        self.protocol = protocol
        self.transforms: Tuple[Transform, ...] = tuple(
            transforms
            if transforms is not None
            else (strip_fragment, use_lower_case, ensure_protocol(protocol))
        )

    def __repr__(self) -> str:
        return f"DomainPolicy({self.base_path!r}, protocol={self.protocol!r})"

    def normalize(self, url: str) -> str:
        return normalize_path(apply_pipeline(url, self.transforms))

    def resolve(self, candidate: Candidate) -> Optional[str]:
        if candidate is None:
            return None
        if isinstance(candidate, Relative):
            return self.normalize(resolve_relative_optimistic(candidate.from_uri, candidate.path))
        return self.normalize(candidate.path)

    def classify(self, traversed_uri: str, candidate: str) -> Optional[str]:
        return self.resolve(classify_candidate(self.base_path, traversed_uri, candidate))

    def classifier(self, traversed_uri: str) -> Classifier:
        """Bind ``traversed_uri`` so extraction can call ``classify(candidate)``."""
        return partial(self.classify, traversed_uri)

    def candidate_variants(self, uri: str) -> List[str]:
        return candidate_variants(uri)
