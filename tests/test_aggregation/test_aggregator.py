"""
Tests for admission_advisor/aggregation/aggregator.py.

What we test
------------
filter_inventory():
  - Major and major-category substring filters.
  - Location allow and deny lists; institution exclusion by code or name.
  - College-type flags are OR-ed.
  - Tuition ceiling lets unknown tuition through.
  - Cooperative groups dropped only when accept_cooperation is False.

group_inventory():
  - One group per (institution, group code), first-seen order.
  - Majors accumulate in row order; totals are derived.
  - Blank group codes share the "default" key.

require_scope():
  - Missing scope raises ConfigurationError.
"""

from __future__ import annotations

import pytest

from admission_advisor.aggregation.aggregator import (
    build_candidate_groups,
    filter_inventory,
    group_inventory,
    is_cooperative,
    require_scope,
)
from admission_advisor.errors import ConfigurationError
from admission_advisor.models.request import Preferences, StudentProfile


class TestFilterInventory:
    def test_no_preferences_keeps_everything(self, make_inventory_row):
        rows = [make_inventory_row(major_code=str(i)) for i in range(3)]
        assert filter_inventory(rows, Preferences()) == rows

    def test_major_substring(self, make_inventory_row):
        cs  = make_inventory_row(major_name="Computer Science and Technology")
        law = make_inventory_row(major_code="030101", major_name="Law")
        kept = filter_inventory([cs, law], Preferences(majors=["Computer Science"]))
        assert kept == [cs]

    def test_major_category_substring(self, make_inventory_row):
        ee  = make_inventory_row(major_name="Electrical Engineering")
        law = make_inventory_row(major_code="030101", major_name="Law")
        kept = filter_inventory([ee, law], Preferences(major_categories=["Engineering"]))
        assert kept == [ee]

    def test_location_allow_and_deny(self, make_inventory_row):
        js = make_inventory_row(institution_code="1", institution_province="Jiangsu")
        bj = make_inventory_row(institution_code="2", institution_province="Beijing")
        assert filter_inventory([js, bj], Preferences(locations=["Beijing"])) == [bj]
        assert filter_inventory([js, bj], Preferences(exclude_locations=["Beijing"])) == [js]

    def test_exclude_institution_by_code_or_name(self, make_inventory_row):
        a = make_inventory_row(institution_code="1")
        b = make_inventory_row(institution_code="2")
        assert filter_inventory([a, b], Preferences(exclude_institutions=["1"])) == [b]
        assert filter_inventory([a, b], Preferences(exclude_institutions=["University 2"])) == [a]

    def test_college_types_are_ored(self, make_inventory_row):
        top  = make_inventory_row(institution_code="1", is_985=True, is_211=True)
        next_ = make_inventory_row(institution_code="2", is_211=True)
        plain = make_inventory_row(institution_code="3")
        kept = filter_inventory([top, next_, plain], Preferences(college_types=["985", "211"]))
        assert kept == [top, next_]

    def test_tuition_ceiling_passes_unknown(self, make_inventory_row):
        cheap   = make_inventory_row(major_code="1", tuition=5000.0)
        pricey  = make_inventory_row(major_code="2", tuition=60000.0)
        unknown = make_inventory_row(major_code="3", tuition=None)
        kept = filter_inventory([cheap, pricey, unknown], Preferences(max_tuition=10000))
        assert kept == [cheap, unknown]

    def test_cooperative_groups(self, make_inventory_row):
        normal = make_inventory_row(group_code="01", group_name="Group 01")
        coop   = make_inventory_row(group_code="02", group_name="中外合作办学 Group 02")
        assert filter_inventory([normal, coop], Preferences()) == [normal, coop]
        assert filter_inventory([normal, coop], Preferences(accept_cooperation=False)) == [normal]

    def test_is_cooperative(self):
        assert is_cooperative("Sino-foreign Joint Programme")
        assert not is_cooperative(None)
        assert not is_cooperative("Group 01")


class TestGroupInventory:
    def test_groups_by_institution_and_group(self, make_inventory_row):
        rows = [
            make_inventory_row("2", "01", "A"),
            make_inventory_row("1", "01", "B"),
            make_inventory_row("2", "01", "C"),
            make_inventory_row("2", "02", "D"),
        ]
        groups = group_inventory(rows)
        assert [g.key for g in groups] == [("2", "01"), ("1", "01"), ("2", "02")]
        assert [m.code for m in groups[0].majors] == ["A", "C"]

    def test_totals(self, make_inventory_row):
        rows = [
            make_inventory_row(major_code="A", plan_count=12),
            make_inventory_row(major_code="B", plan_count=30),
        ]
        (group,) = group_inventory(rows)
        assert group.total_majors == 2
        assert group.total_plan_count == 42

    def test_blank_group_code_uses_default_key(self, make_inventory_row):
        rows = [
            make_inventory_row(group_code="", major_code="A"),
            make_inventory_row(group_code="", major_code="B"),
        ]
        (group,) = group_inventory(rows)
        assert group.key == ("10001", "default")
        assert group.group_code == ""

    def test_tags_carried_from_rows(self, make_inventory_row):
        (group,) = group_inventory([make_inventory_row(is_211=True, is_double_first_class=True)])
        assert group.is_211 and group.is_double_first_class and not group.is_985

    def test_build_filters_then_groups(self, make_inventory_row):
        rows = [
            make_inventory_row("1", major_name="Law"),
            make_inventory_row("2", major_name="Computer Science"),
        ]
        groups = build_candidate_groups(rows, Preferences(majors=["Computer"]))
        assert [g.institution_code for g in groups] == ["2"]

    def test_empty_inventory(self):
        assert group_inventory([]) == []


class TestRequireScope:
    def test_valid_profile_passes(self, profile):
        require_scope(profile)

    @pytest.mark.parametrize("field", ["province", "subject_category"])
    def test_blank_scope_rejected(self, profile, field):
        broken = StudentProfile.model_construct(**{**profile.model_dump(), field: " "})
        with pytest.raises(ConfigurationError) as exc_info:
            require_scope(broken)
        assert exc_info.value.field == field

    def test_missing_year_rejected(self, profile):
        broken = StudentProfile.model_construct(**{**profile.model_dump(), "target_year": None})
        with pytest.raises(ConfigurationError):
            require_scope(broken)
