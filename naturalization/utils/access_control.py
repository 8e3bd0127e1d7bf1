"""Access control for the application topic pages while an applicant is locked out."""

from dataclasses import dataclass
from typing import Optional, Sequence
from urllib.parse import urlsplit

WAITING_ROOM_PATH = "/purgatory/"

# Pages that stay reachable while locked
ALLOWED_PATHS = (
    "/purgatory/",
    "/application/documents/",
    "/logout/",
    "/my-account/",
    "/wp-admin/",
)

# Topic pages closed while locked
RESTRICTED_PATHS = (
    "/application/information-about-you/",
    "/application/information-about-you-view/",
    "/application/time-outside-the-us/",
    "/application/time-outside-the-us-view/",
    "/application/residences/",
    "/application/residence-view/",
    "/application/marital-history/",
    "/application/marital-history-view/",
    "/application/children/",
    "/application/children-view/",
    "/application/employment-school/",
    "/application/employment-school-view/",
    "/application/additional-information/",
    "/application/additional-information-view/",
    "/application/dashboard/",
)


@dataclass
class AccessDecision:
    """Result of an access check."""

    allowed: bool
    redirect_to: Optional[str]  # Set only when allowed is False
    reason: str  # "unrestricted" | "always_allowed" | "not_locked" | "locked"


def _matches(path: str, prefixes: Sequence[str], strict: bool) -> bool:
    if not strict:
        # Substring match on the raw request URI
        return any(prefix in path for prefix in prefixes)

    request_path = urlsplit(path).path or "/"
    if not request_path.endswith("/"):
        request_path += "/"
    return any(request_path.startswith(prefix) for prefix in prefixes)


def is_restricted_path(
    path: str,
    restricted_paths: Sequence[str] = RESTRICTED_PATHS,
    strict: bool = False,
) -> bool:
    return _matches(path, restricted_paths, strict)


def is_allowed_path(
    path: str,
    allowed_paths: Sequence[str] = ALLOWED_PATHS,
    strict: bool = False,
) -> bool:
    return _matches(path, allowed_paths, strict)


def decide_access(
    path: str,
    locked: bool,
    allowed_paths: Sequence[str] = ALLOWED_PATHS,
    restricted_paths: Sequence[str] = RESTRICTED_PATHS,
    waiting_room_path: str = WAITING_ROOM_PATH,
    strict: bool = False,
) -> AccessDecision:
    """
    Pure function deciding whether a request for path may proceed.

    Policy:
    - Path outside every restricted prefix: allow
    - Path matching an always-allowed prefix: allow, even when restricted
    - Restricted path while locked: redirect to the waiting room
    - Restricted path while not locked: allow

    Args:
        path: Requested URI. With strict=False the raw URI is matched by
            substring, so query-string variants of a restricted page are
            restricted too. With strict=True the query string is dropped and
            prefixes must match whole path segments from the start.
        locked: Lock state after lazy expiry has been resolved

    Examples:
        >>> decide_access("/application/residences/", locked=True).redirect_to
        '/purgatory/'
        >>> decide_access("/home/", locked=True).allowed
        True
    """
    if not is_restricted_path(path, restricted_paths, strict):
        return AccessDecision(allowed=True, redirect_to=None, reason="unrestricted")

    # The waiting room itself is never redirected, wherever it is mounted
    if is_allowed_path(path, allowed_paths, strict) or is_allowed_path(
        path, (waiting_room_path,), strict
    ):
        return AccessDecision(allowed=True, redirect_to=None, reason="always_allowed")

    if locked:
        return AccessDecision(
            allowed=False, redirect_to=waiting_room_path, reason="locked"
        )

    return AccessDecision(allowed=True, redirect_to=None, reason="not_locked")
