"""Unit tests for the outlet registry and resolver."""

import json
from pathlib import Path

import pytest

from src.etl.exceptions import OutletConfigurationError
from src.etl.normalization.outlets import (
    DEFAULT_OUTLETS,
    UNKNOWN_OUTLET_ID,
    MatchKind,
    OutletResolver,
    load_outlets,
)
from src.etl.normalization.schemas import OUTLET_NAME_MAX_LENGTH, OutletConfig


def _make_outlet(**overrides) -> OutletConfig:
    base = {"id": "NYT", "name": "The New York Times", "tier": 1, "domain": "nytimes.com"}
    base.update(overrides)
    return OutletConfig(**base)


# -------------------------------------------------------------------------
# Registry
# -------------------------------------------------------------------------


class TestRegistry:
    @staticmethod
    def test_default_ids_unique() -> None:
        """Built-in outlet ids are unique."""
        ids = [outlet.id for outlet in DEFAULT_OUTLETS]
        assert len(ids) == len(set(ids))

    @staticmethod
    def test_empty_registry_rejected() -> None:
        """An empty registry is a configuration error."""
        with pytest.raises(OutletConfigurationError):
            OutletResolver([])

    @staticmethod
    def test_duplicate_id_rejected() -> None:
        """Duplicate ids are a configuration error."""
        with pytest.raises(OutletConfigurationError):
            OutletResolver([_make_outlet(), _make_outlet(name="Other")])

    @staticmethod
    def test_get_is_case_insensitive() -> None:
        """Lookup by id ignores case."""
        assert OutletResolver().get("nyt").name == "The New York Times"


# -------------------------------------------------------------------------
# Resolution
# -------------------------------------------------------------------------


class TestResolve:
    @staticmethod
    @pytest.mark.parametrize(
        ("raw", "kind"),
        [
            ("NYT", MatchKind.ID),
            ("the new york times", MatchKind.NAME),
            ("NYTimes", MatchKind.ALIAS),
            ("https://www.nytimes.com/2024/03/21/theater/review.html", MatchKind.DOMAIN),
            ("theater.nytimes.com", MatchKind.DOMAIN),
        ],
    )
    def test_known_outlet(raw: str, kind: MatchKind) -> None:
        """Id, name, alias and domain all resolve to the outlet."""
        resolved = OutletResolver().resolve(raw)
        assert resolved.config.id == "NYT"
        assert resolved.matched_by == kind
        assert resolved.is_known is True

    @staticmethod
    def test_unknown_outlet_gets_synthetic_tier3() -> None:
        """Unknown names get a synthetic tier-3 outlet."""
        resolved = OutletResolver().resolve("Some Blog")
        assert resolved.is_known is False
        assert resolved.config.id == "SOMEBLOG"
        assert resolved.config.tier == 3

    @staticmethod
    def test_unknown_url_uses_host() -> None:
        """Unknown URLs derive their id from the host."""
        resolved = OutletResolver().resolve("https://www.stagebeat.net/review")
        assert resolved.config.id == "STAGEBEAT"
        assert resolved.config.domain == "stagebeat.net"

    @staticmethod
    def test_no_letters() -> None:
        """Input without letters falls back to the unknown id."""
        assert OutletResolver().resolve("123").config.id == UNKNOWN_OUTLET_ID

    @staticmethod
    def test_similar_names_get_distinct_ids() -> None:
        """Unknown outlets sharing a prefix keep separate synthetic ids."""
        resolver = OutletResolver()
        stars = resolver.resolve("Broadway Stars").config.id
        scene = resolver.resolve("Broadway Scene").config.id
        assert (stars, scene) == ("BROADWAYSTARS", "BROADWAYSCENE")

    @staticmethod
    def test_long_unknown_name_fits_config() -> None:
        """Overlong unknown names are cut to the outlet name limit."""
        resolved = OutletResolver().resolve("Stage Notes " * 20)
        assert len(resolved.config.name) == OUTLET_NAME_MAX_LENGTH
        assert resolved.config.id == "STAGENOTESSTAGENOTES"

    @staticmethod
    def test_deterministic() -> None:
        """The same input always resolves the same way."""
        resolver = OutletResolver()
        assert resolver.resolve("Some Blog") == resolver.resolve("Some Blog")

    @staticmethod
    def test_resolve_review_falls_back_to_url() -> None:
        """An unmatched outlet string falls back to the review URL."""
        resolved = OutletResolver().resolve_review("Staff", "https://variety.com/2024/legit/reviews/x")
        assert resolved.config.id == "VARIETY"
        assert resolved.matched_by == MatchKind.DOMAIN

    @staticmethod
    def test_resolve_review_prefers_outlet_string() -> None:
        """A matched outlet string wins over the URL."""
        resolved = OutletResolver().resolve_review("WSJ", "https://variety.com/x")
        assert resolved.config.id == "WSJ"

    @staticmethod
    def test_custom_registry() -> None:
        """A custom registry replaces the built-in one."""
        resolver = OutletResolver([_make_outlet(id="LOCAL", name="Local Gazette", tier=2, domain="gazette.test")])
        assert resolver.resolve("Local Gazette").config.tier_weight == 0.70
        assert resolver.resolve("NYT").is_known is False


# -------------------------------------------------------------------------
# load_outlets
# -------------------------------------------------------------------------


class TestLoadOutlets:
    @staticmethod
    def test_loads_entries(tmp_path: Path) -> None:
        """Outlets load from a JSON list."""
        path = tmp_path / "outlets.json"
        path.write_text(json.dumps([{"id": "LOCAL", "name": "Local", "tier": 3}]), encoding="utf-8")
        outlets = load_outlets(path)
        assert [o.id for o in outlets] == ["LOCAL"]

    @staticmethod
    def test_missing_file(tmp_path: Path) -> None:
        """A missing registry file is a configuration error."""
        with pytest.raises(OutletConfigurationError):
            load_outlets(tmp_path / "absent.json")

    @staticmethod
    def test_invalid_tier(tmp_path: Path) -> None:
        """An out-of-range tier is a configuration error."""
        path = tmp_path / "outlets.json"
        path.write_text(json.dumps([{"id": "X", "name": "X", "tier": 7}]), encoding="utf-8")
        with pytest.raises(OutletConfigurationError):
            load_outlets(path)
