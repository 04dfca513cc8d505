import json

import pytest

from services.department_policy import (
    DepartmentPolicy,
    LevelKind,
    STANDARD_SHAPE,
    normalize_folder_name,
)


@pytest.mark.parametrize("raw,expected", [
    ("Computer Science", "Computer Science"),
    ("  Computer   Science ", "Computer Science"),
    ("1st\tSemester", "1st Semester"),
    ("", ""),
    (None, None),
])
def test_normalize_folder_name(raw, expected):
    assert normalize_folder_name(raw) == expected


class TestLevels:
    def test_default_levels(self):
        policy = DepartmentPolicy()
        assert policy.levels_for("Computer Science") == [100, 200, 300, 400]

    def test_exceptions(self):
        policy = DepartmentPolicy()
        assert policy.levels_for("Nursing") == [100, 200]
        assert policy.levels_for("Software Engineering") == [100]
        assert policy.levels_for("Jupeb") == ["Art", "Business", "Science"]

    def test_department_lookup_is_whitespace_insensitive(self):
        assert DepartmentPolicy().levels_for(" Nursing  ") == [100, 200]

    def test_numeric_match_uses_embedded_number(self):
        policy = DepartmentPolicy()
        assert policy.is_allowed_child("Nursing", "200 Level") is True
        assert policy.is_allowed_child("Nursing", "Level 200") is True
        assert policy.is_allowed_child("Nursing", "300 Level") is False
        assert policy.is_allowed_child("Nursing", "Handbook") is False

    def test_free_text_match_is_whole_name(self):
        policy = DepartmentPolicy()
        assert policy.is_allowed_child("Jupeb", " Science ") is True
        assert policy.is_allowed_child("Jupeb", "Science Extra") is False
        assert policy.is_allowed_child("Jupeb", "100 Level") is False


class TestFilterChildren:
    children = [{"name": "100 Level"}, {"name": "200 Level"}, {"name": "300 Level"}, {"name": "Misc"}]

    def test_filters_directly_under_department(self):
        filtered = DepartmentPolicy().filter_children(["Nursing"], self.children)
        assert [c["name"] for c in filtered] == ["100 Level", "200 Level"]

    def test_root_and_deeper_listings_pass_through(self):
        policy = DepartmentPolicy()
        assert policy.filter_children([], self.children) == self.children
        assert policy.filter_children(["Nursing", "100 Level"], self.children) == self.children


class TestShapes:
    def test_standard_shape(self):
        assert DepartmentPolicy().shape_for("Computer Science") == STANDARD_SHAPE
        assert DepartmentPolicy().shape_for(None) == STANDARD_SHAPE

    def test_jupeb_skips_semesters(self):
        assert DepartmentPolicy().shape_for("Jupeb") == (LevelKind.SUBJECT, LevelKind.SESSION)


class TestFromJson:
    def test_overrides(self):
        raw = json.dumps({
            "default_levels": [100, 200],
            "level_exceptions": {"Medicine": [100, 200, 300, 400, 500, 600]},
            "shapes": {"Foundation": ["subject", "session"]},
        })
        policy = DepartmentPolicy.from_json(raw)

        assert policy.levels_for("Computer Science") == [100, 200]
        assert policy.is_allowed_child("Medicine", "600 Level") is True
        assert policy.shape_for("Foundation") == (LevelKind.SUBJECT, LevelKind.SESSION)
        # Supplied tables replace the built-in ones
        assert policy.shape_for("Jupeb") == STANDARD_SHAPE
        assert policy.levels_for("Software Engineering") == [100, 200]

    def test_missing_keys_use_builtin_tables(self):
        policy = DepartmentPolicy.from_json("{}")
        assert policy.levels_for("Nursing") == [100, 200]
        assert policy.shape_for("Jupeb") == (LevelKind.SUBJECT, LevelKind.SESSION)

    def test_invalid_kind_rejected(self):
        with pytest.raises(ValueError):
            DepartmentPolicy.from_json(json.dumps({"shapes": {"X": ["year"]}}))
