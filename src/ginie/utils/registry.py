"""Docker Hub lookups for the latest base and datastore image tags."""

import logging
import re
import time
from collections.abc import Callable

import requests

from ginie.model.validation import ResolutionWarning
from ginie.model.versions import FALLBACK_VERSIONS, IMAGE_REPOSITORIES, VersionSet

logger = logging.getLogger(__name__)

DOCKER_HUB_TAGS_URL = "https://hub.docker.com/v2/repositories/library/{repository}/tags"
DEFAULT_TIMEOUT = 5.0
DEFAULT_TTL = 30 * 60

# Tags considered for each version field
TAG_PATTERNS: dict[str, re.Pattern[str]] = {
    "runtime": re.compile(r"^\d+-alpine$"),
    "mongodb": re.compile(r"^\d+\.\d+$"),
    "postgres": re.compile(r"^\d+$"),
    "mysql": re.compile(r"^\d+\.\d+$"),
    "redis": re.compile(r"^\d+-alpine$"),
    "proxy": re.compile(r"^\d+\.\d+(\.\d+)?-alpine$"),
}


def _version_key(tag: str) -> tuple[int, ...]:
    """Sort key comparing the numeric parts of a tag."""
    return tuple(int(part) for part in re.findall(r"\d+", tag))


def select_latest_tag(tags: list[str], pattern: re.Pattern[str]) -> str | None:
    """Return the highest tag matching pattern, or None."""
    matching = [tag for tag in tags if isinstance(tag, str) and pattern.match(tag)]
    if not matching:
        return None
    return max(matching, key=_version_key)


class VersionResolver:
    """Resolve current image tags, one independent lookup per image.

    Each lookup has its own timeout. A failed lookup falls back to the fixed
    version of that image only and records a ResolutionWarning. Successful
    lookups are cached on the instance for ttl seconds.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        ttl: float = DEFAULT_TTL,
        session: requests.Session | None = None,
        offline: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = timeout
        self.ttl = ttl
        self.offline = offline
        self.session = session or requests.Session()
        self.warnings: list[ResolutionWarning] = []
        self._clock = clock
        self._cache: dict[str, tuple[float, str]] = {}

    def resolve(self) -> VersionSet:
        """Resolve every image of the version set."""
        self.warnings = []
        if self.offline:
            logger.debug("Offline mode, using fallback image versions")
            return VersionSet()

        return VersionSet(**{field: self.lookup(field) for field in FALLBACK_VERSIONS})

    def lookup(self, field: str) -> str:
        """Resolve the tag of one version field, falling back on failure."""
        cached = self._cache.get(field)
        if cached is not None and self._clock() - cached[0] < self.ttl:
            return cached[1]

        repository = IMAGE_REPOSITORIES[field]
        fallback = FALLBACK_VERSIONS[field]
        try:
            tags = self._fetch_tags(repository)
        except requests.Timeout:
            return self._fallback(field, fallback, f"timed out after {self.timeout}s")
        except requests.RequestException as e:
            return self._fallback(field, fallback, str(e) or e.__class__.__name__)
        except (ValueError, TypeError, KeyError) as e:
            return self._fallback(field, fallback, f"invalid registry response: {e}")

        tag = select_latest_tag(tags, TAG_PATTERNS[field])
        if tag is None:
            return self._fallback(field, fallback, "no matching tag")

        logger.debug("Resolved %s to %s", repository, tag)
        self._cache[field] = (self._clock(), tag)
        return tag

    def clear_cache(self) -> None:
        """Forget every cached tag so the next lookups hit the registry."""
        self._cache.clear()

    def _fetch_tags(self, repository: str) -> list[str]:
        response = self.session.get(
            DOCKER_HUB_TAGS_URL.format(repository=repository),
            params={"page_size": 100, "ordering": "last_updated"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        results = data.get("results") or []
        if not isinstance(results, list):
            raise ValueError("'results' is not a list")
        return [item["name"] for item in results if isinstance(item, dict) and isinstance(item.get("name"), str)]

    def _fallback(self, field: str, fallback: str, reason: str) -> str:
        warning = ResolutionWarning(IMAGE_REPOSITORIES[field], fallback, reason)
        self.warnings.append(warning)
        logger.warning("%s", warning)
        return fallback
