"""URL validation for registry repositories.

Validation runs in two phases, both of which must pass:

1. Format: the URL must be ``https://host/owner/repo`` or the SSH shorthand
   ``git@host:path``, with stricter shape rules for GitHub, GitLab and
   Bitbucket.
2. Reachability: for HTTPS URLs, a handful of git endpoints derived from the
   URL are probed until one answers in a way that proves the repository
   exists. SSH URLs are not probed since key-based access cannot be checked
   without credentials.

No local state is touched by either phase.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urlparse

import httpx

from shellify import __version__
from shellify.errors import ReachabilityError, RepositoryUnreachableError, URLFormatError
from shellify.utils.log import null_logger

DEFAULT_TIMEOUT = 15.0

# Status codes that prove a repository exists. 401 means it exists behind auth.
ACCEPTED_STATUS_CODES = {200, 301, 302, 401}

SSH_URL_PATTERN = re.compile(r"^git@([^:/]+):([^/].*)$")
VALID_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class URLValidator:
    """Validates candidate registry URLs.

    Args:
        timeout: Per-request timeout in seconds for reachability probes.
        client: HTTP client to probe with. A fresh client is created for each
            check when omitted.
        logger: Diagnostics sink.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.timeout = timeout
        self._client = client
        self._log = logger or null_logger()

    def validate_url(self, raw_url: str) -> None:
        """Run format validation, then reachability validation.

        Raises:
            URLFormatError: If the URL is malformed.
            RepositoryUnreachableError: If no endpoint proves the repository exists.
        """
        self.validate_url_format(raw_url)
        self.check_accessibility(raw_url)

    # ------------------------------------------------------------------
    # Format
    # ------------------------------------------------------------------

    def validate_url_format(self, raw_url: str) -> None:
        if raw_url.startswith("git@"):
            self._validate_ssh_url(raw_url)
            return

        try:
            parsed = urlparse(raw_url)
        except ValueError as e:
            raise URLFormatError("parse_error", f"failed to parse URL: {e}", raw_url, cause=e) from e

        if not parsed.scheme:
            raise URLFormatError(
                "scheme_required", "URL must include a scheme (https:// or git@)", raw_url
            )
        if parsed.scheme != "https":
            raise URLFormatError(
                "unsupported_scheme",
                f"unsupported URL scheme '{parsed.scheme}', supported schemes: https, git (SSH)",
                raw_url,
            )

        try:
            host = parsed.hostname or ""
        except ValueError as e:
            raise URLFormatError("parse_error", f"failed to parse URL: {e}", raw_url, cause=e) from e
        if not host:
            raise URLFormatError("missing_host", "URL must include a host", raw_url)
        if parsed.path in ("", "/"):
            raise URLFormatError("missing_path", "URL must include a repository path", raw_url)

        self._validate_hosting_pattern(raw_url, host, parsed.path)

    def _validate_ssh_url(self, raw_url: str) -> None:
        match = SSH_URL_PATTERN.match(raw_url)
        if not match:
            raise URLFormatError(
                "invalid_ssh_format", "invalid SSH URL format, expected: git@host:path", raw_url
            )
        host, path = match.groups()
        if not host.strip():
            raise URLFormatError("missing_host", "SSH URL must include a host", raw_url)
        if not path.strip():
            raise URLFormatError("missing_path", "SSH URL must include a repository path", raw_url)

    def _validate_hosting_pattern(self, raw_url: str, host: str, path: str) -> None:
        parts = path.rstrip("/").strip("/").split("/")

        if _host_matches(host, "github.com"):
            self._validate_owner_repo(raw_url, "GitHub", parts, strict=True)
        elif _host_matches(host, "gitlab.com") or host.startswith("gitlab."):
            self._validate_gitlab(raw_url, parts)
        elif _host_matches(host, "bitbucket.org"):
            self._validate_owner_repo(raw_url, "Bitbucket", parts, strict=False)
        elif not parts or not parts[-1]:
            raise URLFormatError("insufficient_path", "repository name is required", raw_url)

    def _validate_owner_repo(self, raw_url: str, service: str, parts: list[str], strict: bool) -> None:
        if len(parts) < 2:
            raise URLFormatError(
                "insufficient_path",
                f"{service} URLs must be in format: owner/repository",
                raw_url,
            )
        owner, repo = parts[0], parts[1].removesuffix(".git")
        if not owner or not repo:
            raise URLFormatError(
                "insufficient_path", "both owner and repository name are required", raw_url
            )
        if not strict:
            return
        if not VALID_NAME_PATTERN.match(owner):
            raise URLFormatError("invalid_owner", f"invalid {service} owner name: {owner}", raw_url)
        if not VALID_NAME_PATTERN.match(repo):
            raise URLFormatError(
                "invalid_repository_name", f"invalid {service} repository name: {repo}", raw_url
            )

    def _validate_gitlab(self, raw_url: str, parts: list[str]) -> None:
        # Nested groups are allowed, so only the final segment is checked.
        if len(parts) < 2:
            raise URLFormatError(
                "insufficient_path",
                "GitLab URLs must be in format: owner/repository or group/subgroup/repository",
                raw_url,
            )
        repo = parts[-1].removesuffix(".git")
        if not repo:
            raise URLFormatError("insufficient_path", "repository name is required", raw_url)
        if not VALID_NAME_PATTERN.match(repo):
            raise URLFormatError(
                "invalid_repository_name", f"invalid repository name: {repo}", raw_url
            )

    # ------------------------------------------------------------------
    # Reachability
    # ------------------------------------------------------------------

    def check_accessibility(self, raw_url: str) -> None:
        if raw_url.startswith("git@"):
            self._log.debug("Skipping reachability check for SSH URL %s", raw_url)
            return

        endpoints = build_git_endpoints(raw_url)
        last_error: ReachabilityError | None = None

        if self._client is not None:
            last_error = self._probe_all(self._client, endpoints)
        else:
            with httpx.Client(timeout=self.timeout, follow_redirects=False) as client:
                last_error = self._probe_all(client, endpoints)

        if last_error is not None:
            raise RepositoryUnreachableError(raw_url, endpoints, last_error)

    def _probe_all(self, client: httpx.Client, endpoints: list[str]) -> ReachabilityError | None:
        """Probe endpoints in order. Returns None on the first success, else the last failure."""
        last_error: ReachabilityError | None = None
        for endpoint in endpoints:
            try:
                self._test_endpoint(client, endpoint)
            except ReachabilityError as e:
                self._log.debug("Endpoint %s rejected: %s", endpoint, e.message)
                last_error = e
                continue
            self._log.debug("Endpoint %s is reachable", endpoint)
            return None
        return last_error

    def _test_endpoint(self, client: httpx.Client, endpoint: str) -> None:
        try:
            response = client.get(
                endpoint,
                headers={"User-Agent": f"shellify/{__version__}"},
                timeout=self.timeout,
                follow_redirects=False,
            )
        except httpx.HTTPError as e:
            raise ReachabilityError(
                "request_failed", f"request failed: {e}", endpoint, cause=e
            ) from e

        status = response.status_code
        if status in ACCEPTED_STATUS_CODES:
            if status == 401:
                self._log.warning(
                    "%s requires authentication; treating it as an existing repository", endpoint
                )
            return
        if status == 404:
            raise ReachabilityError("not_found", "repository not found (404)", endpoint, status)
        if status == 403:
            raise ReachabilityError(
                "forbidden", "access forbidden (403) - repository may be private", endpoint, status
            )
        raise ReachabilityError(
            "unexpected_status", f"unexpected status code: {status}", endpoint, status
        )


def build_git_endpoints(raw_url: str) -> list[str]:
    """Candidate endpoints to probe, in order, without duplicates."""
    base = raw_url.rstrip("/").removesuffix(".git")
    candidates = [raw_url]
    if not raw_url.endswith(".git"):
        candidates.append(base + ".git")
    candidates.append(base + ".git/info/refs")
    candidates.append(base + "/info/refs")
    candidates.append(base)

    endpoints: list[str] = []
    for candidate in candidates:
        if candidate not in endpoints:
            endpoints.append(candidate)
    return endpoints


def _host_matches(host: str, domain: str) -> bool:
    host = host.lower()
    return host == domain or host.endswith("." + domain)
