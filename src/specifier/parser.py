"""Classification of raw package request strings into Specifiers."""

import os
import re
from dataclasses import replace
from typing import Optional, Tuple

from common.errors import InvalidSpecifier
from constants import Constants

from .models import SourceKind, SourceType, Specifier
from .ranges import clean_version, parse_range

_GIT_PREFIX = re.compile(r"^(?:git\+|git://|git@|ssh://|github:|gitlab:|bitbucket:|gist:)", re.I)
_HTTP_PREFIX = re.compile(r"^https?://", re.I)
_PATH_PREFIX = re.compile(r"^(?:file:|\.{1,2}(?:[\\/]|$)|~[\\/]|[\\/]|[a-zA-Z]:[\\/])")
_HOSTED_SHORTHAND = re.compile(r"^[\w.-]+/[\w.-]+(?:#.*)?$")
_TARBALL_NAME = re.compile(r"\.(?:tgz|tar\.gz|tar)$", re.I)
# Characters left alone by encodeURIComponent
_URL_SAFE = re.compile(r"^[A-Za-z0-9\-_.!~*'()]+$")
_SCOPED_NAME = re.compile(r"^@([^/@]+)/([^/@]+)$")

_HOSTS = {
    "github": "https://github.com/{path}.git",
    "gitlab": "https://gitlab.com/{path}.git",
    "bitbucket": "https://bitbucket.org/{path}.git",
    "gist": "https://gist.github.com/{path}.git",
}

_MAX_NAME_LENGTH = 214
_BLACKLISTED_NAMES = {"node_modules", "favicon.ico"}


def validate_name(name: str) -> Optional[str]:
    """Return a reason string when ``name`` is not a usable npm package name."""
    if not name:
        return "name cannot be empty"
    if len(name) > _MAX_NAME_LENGTH:
        return "name cannot be longer than 214 characters"
    if name != name.strip():
        return "name cannot contain leading or trailing spaces"
    if name.lower() in _BLACKLISTED_NAMES:
        return f"{name} is a blacklisted name"
    scoped = _SCOPED_NAME.match(name)
    parts = scoped.groups() if scoped else (name,)
    if name.startswith("@") and not scoped:
        return "scoped names must look like @scope/name"
    for part in parts:
        if part.startswith((".", "_")):
            return "name cannot start with a period or underscore"
        if not _URL_SAFE.match(part):
            return "name can only contain URL-friendly characters"
    return None


def _split_name(raw: str) -> Tuple[str, str]:
    """Split ``name@spec`` honoring a leading scope ``@``."""
    at = raw.find("@", 1) if raw.startswith("@") else raw.find("@")
    if at == -1:
        return raw, ""
    return raw[:at], raw[at + 1:]


def _git_url(text: str) -> Tuple[str, Optional[str]]:
    """Normalize a git reference into (clone url, committish)."""
    url, _, committish = text.partition("#")
    host, sep, path = url.partition(":")
    if sep and host.lower() in _HOSTS:
        path = path.strip("/")
        if path.endswith(".git"):
            path = path[:-4]
        url = _HOSTS[host.lower()].format(path=path)
    elif _HOSTED_SHORTHAND.match(url):
        url = _HOSTS["github"].format(path=url[:-4] if url.endswith(".git") else url)
    elif url.lower().startswith("git+"):
        url = url[4:]
    return url, committish or None


def _looks_like_git(text: str) -> bool:
    if _GIT_PREFIX.match(text):
        return True
    if _HTTP_PREFIX.match(text):
        return text.partition("#")[0].lower().endswith(".git")
    return bool(_HOSTED_SHORTHAND.match(text)) and not text.startswith((".", "@"))


def _classify_source(raw: str, name: Optional[str], spec_text: str, where: str) -> Specifier:
    """Classify alias, git, remote and local path forms."""
    if spec_text.lower().startswith("npm:"):
        sub_spec = classify(spec_text[4:], where)
        if not sub_spec.registry or sub_spec.source_type is not SourceType.REGISTRY:
            raise InvalidSpecifier(raw, "aliases only work for registry packages")
        if name is None:
            # "npm:foo@1" without an alias name is just the registry request
            return replace(sub_spec, raw=raw)
        return Specifier(
            raw=raw,
            name=name,
            kind=SourceKind.NON_REGISTRY,
            source_type=SourceType.ALIAS,
            raw_spec=spec_text,
            fetch_spec=sub_spec.raw,
            sub_spec=sub_spec,
        )

    if _looks_like_git(spec_text):
        url, committish = _git_url(spec_text)
        return Specifier(
            raw=raw,
            name=name,
            kind=SourceKind.NON_REGISTRY,
            source_type=SourceType.GIT,
            raw_spec=spec_text,
            fetch_spec=url,
            committish=committish,
        )

    if _HTTP_PREFIX.match(spec_text):
        return Specifier(
            raw=raw,
            name=name,
            kind=SourceKind.NON_REGISTRY,
            source_type=SourceType.REMOTE,
            raw_spec=spec_text,
            fetch_spec=spec_text,
        )

    path = spec_text[5:] if spec_text.lower().startswith("file:") else spec_text
    if path.startswith("//") and spec_text.lower().startswith("file:"):
        path = path[2:]
    path = os.path.abspath(os.path.join(where, os.path.expanduser(path)))
    return Specifier(
        raw=raw,
        name=name,
        kind=SourceKind.NON_REGISTRY,
        source_type=SourceType.FILE if _TARBALL_NAME.search(path) else SourceType.DIRECTORY,
        raw_spec=spec_text,
        fetch_spec=path,
    )


def _is_source_text(text: str) -> bool:
    return bool(
        text.lower().startswith("npm:")
        or _looks_like_git(text)
        or _HTTP_PREFIX.match(text)
        or _PATH_PREFIX.match(text)
    )


def classify(raw: str, where: str = ".") -> Specifier:
    """Parse ``raw`` into a Specifier.

    Args:
        raw: Package request as typed by the user, e.g. ``foo``, ``@s/foo@^1``,
            ``./dir``, ``github:user/repo#v1``, ``bar@npm:foo@2``.
        where: Directory relative paths are resolved against.

    Raises:
        InvalidSpecifier: If the text cannot be parsed at all.
    """
    text = (raw or "").strip()
    if not text:
        raise InvalidSpecifier(raw or "", "empty package specifier")

    # Name-less sources first: they may contain "@" (git@host:..., user@host urls)
    if _is_source_text(text) or (_TARBALL_NAME.search(text) and "@" not in text.lstrip("@")):
        return _classify_source(text, None, text, where)

    name, spec_text = _split_name(text)
    reason = validate_name(name)
    if reason:
        raise InvalidSpecifier(text, reason)
    spec_text = spec_text.strip()

    if not spec_text:
        return Specifier(
            raw=text,
            name=name,
            kind=SourceKind.REGISTRY_TAG,
            source_type=SourceType.REGISTRY,
            raw_spec="",
            fetch_spec=Constants.DEFAULT_TAG,
        )

    if _is_source_text(spec_text) or _TARBALL_NAME.search(spec_text):
        return _classify_source(text, name, spec_text, where)

    version = clean_version(spec_text)
    if version is not None:
        return Specifier(
            raw=text,
            name=name,
            kind=SourceKind.REGISTRY_VERSION,
            source_type=SourceType.REGISTRY,
            raw_spec=spec_text,
            fetch_spec=version,
        )

    if parse_range(spec_text) is not None:
        return Specifier(
            raw=text,
            name=name,
            kind=SourceKind.REGISTRY_RANGE,
            source_type=SourceType.REGISTRY,
            raw_spec=spec_text,
            fetch_spec=spec_text,
        )

    if _URL_SAFE.match(spec_text):
        return Specifier(
            raw=text,
            name=name,
            kind=SourceKind.REGISTRY_TAG,
            source_type=SourceType.REGISTRY,
            raw_spec=spec_text,
            fetch_spec=spec_text,
        )

    raise InvalidSpecifier(text, f"invalid tag or version {spec_text!r}")
