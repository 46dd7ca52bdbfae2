"""Tests for tiered candidate filtering."""

import pytest

from transfinder.schemas.catalog import CatalogRecord
from transfinder.utils.candidate_filter import (
    Tier,
    exact_strategy,
    filter_candidates,
    group_candidates,
    matches_keywords,
    matches_speed,
    relaxed_strategy,
)
from transfinder.utils.query_parser import parse_query


def _record(**fields) -> CatalogRecord:
    return CatalogRecord(**fields)


class TestPredicates:
    def test_keywords_all_required(self):
        record = _record(make="Honda", model="Accord", trans_type="4 SP FWD")
        assert matches_keywords(record, ["honda", "accord"])
        assert not matches_keywords(record, ["honda", "civic"])

    def test_keywords_are_substrings(self):
        assert matches_keywords(_record(make="Volkswagen", model="Jetta"), ["volks"])

    def test_keywords_tolerate_hyphens(self):
        assert matches_keywords(_record(make="Mazda", model="CX-9"), ["cx9"])

    def test_year_text_not_searched(self):
        assert not matches_keywords(_record(make="Honda", model="Accord", year_range="98-02"), ["98"])

    @pytest.mark.parametrize("trans_type", ["4 SP FWD", "4SP FWD", "4 SPEED", "4-SPD RWD", "4 vel"])
    def test_speed_formats(self, trans_type):
        assert matches_speed(_record(trans_type=trans_type), 4)

    def test_speed_mismatch(self):
        assert not matches_speed(_record(trans_type="5 SP FWD"), 4)

    def test_speed_digit_must_stand_alone(self):
        assert not matches_speed(_record(trans_type="14 SP"), 4)

    def test_no_speed_requested(self):
        assert matches_speed(_record(trans_type=""), None)


class TestFilterCandidates:
    def test_accord_keeps_every_matching_code(self, sample_catalog):
        result = filter_candidates(sample_catalog, parse_query("Accord 2000"))
        assert result.tier is Tier.EXACT
        assert len(result.candidates) == 3
        assert [c.trans_model for c in result.candidates] == ["BAXA", "B7XA", "MCTA"]

    def test_relaxed_when_year_missing_from_catalog(self, sample_catalog):
        parsed = parse_query("Jeep Liberty 2000")
        assert exact_strategy(sample_catalog, parsed) == []
        result = filter_candidates(sample_catalog, parsed)
        assert result.tier is Tier.RELAXED
        assert [c.trans_model for c in result.candidates] == ["42RLE"]

    def test_none_when_name_unknown(self, sample_catalog):
        result = filter_candidates(sample_catalog, parse_query("Hona Acord 2000"))
        assert result.tier is Tier.NONE
        assert result.candidates == []

    def test_relaxed_skipped_without_year(self, sample_catalog):
        parsed = parse_query("Accord")
        assert relaxed_strategy(sample_catalog, parsed) == []
        result = filter_candidates(sample_catalog, parsed)
        assert result.tier is Tier.EXACT
        assert len(result.candidates) == 4

    def test_speed_count_filters(self, sample_catalog):
        result = filter_candidates(sample_catalog, parse_query("Golf 6 cambios 2015"))
        assert result.tier is Tier.EXACT
        assert [c.trans_model for c in result.candidates] == ["09G", "DQ250"]

    def test_speed_count_kept_in_relaxed_tier(self, sample_catalog):
        result = filter_candidates(sample_catalog, parse_query("Accord 5 cambios 2000"))
        assert result.tier is Tier.RELAXED
        assert [c.trans_model for c in result.candidates] == ["MAXA"]

    def test_open_range(self, sample_catalog):
        result = filter_candidates(sample_catalog, parse_query("Jetta 2020"))
        assert result.tier is Tier.EXACT
        assert result.candidates[0].trans_model == "01M"

    def test_truncates_in_catalog_order(self, sample_catalog):
        result = filter_candidates(sample_catalog, parse_query("Honda"), max_candidates=2)
        assert result.total_matches == 4
        assert [c.trans_model for c in result.candidates] == ["BAXA", "B7XA"]

    @pytest.mark.parametrize("raw", ["caja automatica", "2000", "5 cambios"])
    def test_no_name_tokens_matches_nothing(self, sample_catalog, raw):
        result = filter_candidates(sample_catalog, parse_query(raw))
        assert result.tier is Tier.NONE
        assert result.candidates == []
        assert result.total_matches == 0

    def test_engine_size_narrows_match(self, sample_catalog):
        result = filter_candidates(sample_catalog, parse_query("Honda Accord 2.4 2005"))
        assert result.tier is Tier.EXACT
        assert [c.trans_model for c in result.candidates] == ["MAXA"]

    def test_empty_catalog(self):
        assert filter_candidates([], parse_query("Accord 2000")).tier is Tier.NONE


class TestGroupCandidates:
    def test_groups_by_code_without_dropping(self, sample_catalog):
        accords = [c for c in sample_catalog if c.model == "Accord"]
        extra = accords[0].model_copy(update={"engine_size": "L4 2.2L"})
        groups = group_candidates(accords + [extra], "trans_model")
        assert list(groups) == ["BAXA", "B7XA", "MCTA", "MAXA"]
        assert len(groups["BAXA"]) == 2

    def test_unknown_key(self, sample_catalog):
        with pytest.raises(ValueError):
            group_candidates(sample_catalog, "colour")
