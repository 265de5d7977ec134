"""Outlet registry and resolver.

Maps a raw outlet name or URL to its canonical identity and tier.
Resolution order: canonical id, display name, alias, then domain match.
"""

import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import ValidationError

from src.etl.exceptions import OutletConfigurationError
from src.etl.normalization.schemas import (
    DEFAULT_TIER,
    OUTLET_ID_MAX_LENGTH,
    OUTLET_NAME_MAX_LENGTH,
    OutletConfig,
    RatingFormat,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

SYNTHETIC_ID_LENGTH = OUTLET_ID_MAX_LENGTH
"""Maximum length of an id generated for an unknown outlet."""

UNKNOWN_OUTLET_ID = "UNKNWN"
"""Fallback id when the raw input has no letters at all."""

UNKNOWN_OUTLET_FLAG = "unknown_outlet"
"""Flag attached to reviews whose outlet is missing from the registry."""

_NON_LETTERS = re.compile(r"[^A-Z]")


def _outlet(
    outlet_id: str,
    name: str,
    tier: int,
    aliases: tuple[str, ...],
    domain: str,
    rating_format: RatingFormat = RatingFormat.TEXT,
    max_scale: int | None = None,
    enabled: bool = True,
) -> OutletConfig:
    return OutletConfig(
        id=outlet_id,
        name=name,
        tier=tier,
        aliases=aliases,
        domain=domain,
        rating_format=rating_format,
        max_scale=max_scale,
        enabled=enabled,
    )


DEFAULT_OUTLETS: tuple[OutletConfig, ...] = (
    # Tier 1: major national publications
    _outlet("NYT", "The New York Times", 1, ("New York Times", "NYTimes", "NY Times"), "nytimes.com"),
    _outlet("WASHPOST", "The Washington Post", 1, ("Washington Post", "WashPost"), "washingtonpost.com"),
    _outlet("LATIMES", "Los Angeles Times", 1, ("LA Times", "L.A. Times"), "latimes.com"),
    _outlet("WSJ", "The Wall Street Journal", 1, ("Wall Street Journal",), "wsj.com"),
    _outlet("AP", "Associated Press", 1, ("AP News",), "apnews.com"),
    _outlet("VARIETY", "Variety", 1, (), "variety.com"),
    _outlet("THR", "The Hollywood Reporter", 1, ("Hollywood Reporter",), "hollywoodreporter.com"),
    _outlet("VULT", "Vulture", 1, ("New York Magazine",), "vulture.com"),
    _outlet("GUARDIAN", "The Guardian", 1, ("Guardian",), "theguardian.com", RatingFormat.STARS, 5),
    _outlet("TIMEOUTNY", "Time Out New York", 1, ("Time Out", "TimeOut"), "timeout.com", RatingFormat.STARS, 5),
    _outlet("BWAYNEWS", "Broadway News", 1, (), "broadwaynews.com"),
    # Tier 2: regional papers and trades
    _outlet("CHTRIB", "Chicago Tribune", 2, (), "chicagotribune.com"),
    _outlet("USATODAY", "USA Today", 2, (), "usatoday.com"),
    _outlet("NYDN", "New York Daily News", 2, ("NY Daily News", "Daily News"), "nydailynews.com"),
    _outlet("NYP", "New York Post", 2, ("NY Post",), "nypost.com"),
    _outlet("WRAP", "The Wrap", 2, ("TheWrap",), "thewrap.com"),
    _outlet("EW", "Entertainment Weekly", 2, (), "ew.com", RatingFormat.LETTER),
    _outlet("INDIEWIRE", "IndieWire", 2, (), "indiewire.com", RatingFormat.LETTER),
    _outlet("DEADLINE", "Deadline", 2, (), "deadline.com"),
    _outlet("SLANT", "Slant Magazine", 2, ("Slant",), "slantmagazine.com", RatingFormat.STARS, 4),
    _outlet("TDB", "The Daily Beast", 2, ("Daily Beast",), "thedailybeast.com"),
    _outlet("OBSERVER", "Observer", 2, ("NY Observer",), "observer.com"),
    _outlet("NYTHTR", "New York Theater", 2, ("NY Theater",), "newyorktheater.me"),
    _outlet("NYTG", "New York Theatre Guide", 2, ("NY Theatre Guide",), "newyorktheatreguide.com"),
    _outlet("NYSR", "New York Stage Review", 2, ("NY Stage Review",), "nystagereview.com"),
    _outlet("TMAN", "TheaterMania", 2, ("Theater Mania",), "theatermania.com"),
    _outlet("THLY", "Theatrely", 2, (), "theatrely.com"),
    _outlet("BWAYJOURNAL", "Broadway Journal", 2, (), "broadwayjournal.com"),
    _outlet("STAGEBUDDY", "Stage Buddy", 2, (), "stagebuddy.com"),
    # Tier 3: niche sites and blogs
    _outlet("BWW", "BroadwayWorld", 3, ("Broadway World",), "broadwayworld.com"),
    _outlet("AMNY", "amNewYork", 3, ("amNY",), "amnewyork.com"),
    _outlet("CITI", "Cititour", 3, (), "cititour.com"),
    _outlet("CSCE", "Culture Sauce", 3, ("CultureSauce",), "culturesauce.com", RatingFormat.STARS, 5),
    _outlet("FRONTMEZZ", "Front Mezz Junkies", 3, ("Front Mezzanine",), "frontmezzjunkies.com"),
    _outlet("THERECS", "The Recs", 3, (), "therecs.com"),
    _outlet("OMC", "One Minute Critic", 3, ("1 Minute Critic",), "1minutecritic.com", RatingFormat.STARS, 5),
    _outlet("TALKIN", "Talkin' Broadway", 3, ("Talkin Broadway",), "talkinbroadway.com"),
    _outlet("BWAYBOX", "The Broadway Box", 3, ("Broadway Box",), "thebroadwaybox.com", enabled=False),
    _outlet("BWAYBLOG", "The Broadway Blog", 3, ("Broadway Blog",), "thebroadwayblog.com"),
    _outlet("PLAYBILL", "Playbill", 3, (), "playbill.com"),
)
"""Built-in outlet registry."""


# =============================================================================
# RESOLUTION RESULT
# =============================================================================


class MatchKind(StrEnum):
    """How a raw outlet string was resolved."""

    ID = "id"
    NAME = "name"
    ALIAS = "alias"
    DOMAIN = "domain"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class ResolvedOutlet:
    """Outlet resolution result.

    Attributes:
        config: Matched registry entry, or a synthetic tier-3 entry.
        matched_by: Resolution step that matched.
    """

    config: OutletConfig
    matched_by: MatchKind

    @property
    def is_known(self) -> bool:
        """True when the outlet exists in the registry."""
        return self.matched_by != MatchKind.UNRESOLVED


# =============================================================================
# RESOLVER
# =============================================================================


class OutletResolver:
    """Resolves raw outlet names and URLs against an injected registry.

    Pure and deterministic: the same input always maps to the same outlet.
    """

    def __init__(self, outlets: Iterable[OutletConfig] | None = None) -> None:
        """Build lookup indices.

        Args:
            outlets: Registry entries (default: built-in registry).

        Raises:
            OutletConfigurationError: Registry empty or ids duplicated.
        """
        registry = tuple(DEFAULT_OUTLETS if outlets is None else outlets)
        if not registry:
            raise OutletConfigurationError("Outlet registry is empty")

        self._by_id: dict[str, OutletConfig] = {}
        self._by_name: dict[str, OutletConfig] = {}
        self._by_alias: dict[str, OutletConfig] = {}
        self._by_domain: list[OutletConfig] = []

        for outlet in registry:
            self._index(outlet)

        self._by_domain.sort(key=lambda o: (-len(o.domain or ""), o.id))

    # =========================================================================
    # Public API
    # =========================================================================

    @property
    def outlets(self) -> tuple[OutletConfig, ...]:
        """Registry entries ordered by id."""
        return tuple(sorted(self._by_id.values(), key=lambda o: o.id))

    def get(self, outlet_id: str) -> OutletConfig | None:
        """Look up an outlet by canonical id."""
        return self._by_id.get(outlet_id.upper())

    def resolve(self, raw: str) -> ResolvedOutlet:
        """Resolve a raw outlet name or URL.

        Args:
            raw: Outlet id, name, alias, or URL.

        Returns:
            ResolvedOutlet; unknown outlets get a synthetic tier-3 config.
        """
        text = raw.strip()
        key = text.casefold()

        if text.upper() in self._by_id:
            return ResolvedOutlet(self._by_id[text.upper()], MatchKind.ID)
        if key in self._by_name:
            return ResolvedOutlet(self._by_name[key], MatchKind.NAME)
        if key in self._by_alias:
            return ResolvedOutlet(self._by_alias[key], MatchKind.ALIAS)

        by_domain = self._match_domain(key)
        if by_domain:
            return ResolvedOutlet(by_domain, MatchKind.DOMAIN)

        synthetic = self._build_synthetic(text)
        logger.warning("Unknown outlet '%s' -> synthetic id %s (tier %d)", text, synthetic.id, synthetic.tier)
        return ResolvedOutlet(synthetic, MatchKind.UNRESOLVED)

    def resolve_review(self, outlet: str, url: str | None) -> ResolvedOutlet:
        """Resolve from the outlet string, falling back to the review URL.

        Args:
            outlet: Raw outlet string.
            url: Review URL, used when the outlet string does not match.

        Returns:
            ResolvedOutlet.
        """
        resolved = self.resolve(outlet)
        if resolved.is_known or not url:
            return resolved
        by_domain = self._match_domain(url.casefold())
        if by_domain:
            return ResolvedOutlet(by_domain, MatchKind.DOMAIN)
        return resolved

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _index(self, outlet: OutletConfig) -> None:
        outlet_id = outlet.id.upper()
        if outlet_id in self._by_id:
            raise OutletConfigurationError(f"Duplicate outlet id: {outlet.id}")
        self._by_id[outlet_id] = outlet
        self._by_name.setdefault(outlet.name.casefold(), outlet)
        for alias in outlet.aliases:
            self._by_alias.setdefault(alias.casefold(), outlet)
        if outlet.domain:
            self._by_domain.append(outlet)
        if not outlet.enabled:
            logger.debug("Outlet %s is disabled", outlet.id)

    def _match_domain(self, text: str) -> OutletConfig | None:
        """Match a URL or bare domain against outlet domains.

        Host suffix matches win over plain substring matches.
        """
        host = self._extract_host(text)
        if host:
            for outlet in self._by_domain:
                domain = outlet.domain or ""
                if host == domain or host.endswith("." + domain):
                    return outlet
        for outlet in self._by_domain:
            if outlet.domain and outlet.domain in text:
                return outlet
        return None

    @staticmethod
    def _extract_host(text: str) -> str | None:
        if " " in text or "." not in text:
            return None
        candidate = text if "://" in text else f"//{text}"
        host = urlsplit(candidate).hostname
        if not host:
            return None
        return host.removeprefix("www.")

    def _build_synthetic(self, text: str) -> OutletConfig:
        host = self._extract_host(text.casefold())
        basis = host.rsplit(".", 1)[0] if host else text
        letters = _NON_LETTERS.sub("", basis.upper())[:SYNTHETIC_ID_LENGTH]
        return OutletConfig(
            id=letters or UNKNOWN_OUTLET_ID,
            name=text[:OUTLET_NAME_MAX_LENGTH],
            tier=DEFAULT_TIER,
            domain=host,
        )


# =============================================================================
# REGISTRY LOADING
# =============================================================================


def load_outlets(path: Path) -> tuple[OutletConfig, ...]:
    """Load an outlet registry from a JSON file.

    Args:
        path: JSON file holding a list of outlet objects.

    Returns:
        Tuple of OutletConfig.

    Raises:
        OutletConfigurationError: File missing, malformed, or invalid entries.
    """
    if not path.exists():
        raise OutletConfigurationError(f"Outlet registry not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            entries = json.load(f)
        outlets = tuple(OutletConfig.model_validate(entry) for entry in entries)
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        raise OutletConfigurationError(f"Invalid outlet registry {path}: {e}") from e

    logger.info("Loaded %d outlets from %s", len(outlets), path)
    return outlets
