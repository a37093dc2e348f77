"""Tests for gentrail.lib.specs module."""

import pytest

from gentrail.lib.errors import NotFoundError, ParseError
from gentrail.lib.ids import extract_prds_from_touchpoints
from gentrail.lib.specs import (
    TestCase as SpecTestCase,
    list_requirement_ids,
    load_test_suite,
    load_test_suites,
    load_use_case,
    load_use_cases,
)

USE_CASE_YAML = """\
id: rel01.0-uc001-init
title: Initialization
touchpoints:
  - "T1: Core component (prd001-core R1)"
  - "T2: Config subsystem"
"""

TEST_SUITE_YAML = """\
id: test-rel01.0
title: Release 01.0 Tests
release: rel01.0
traces:
  - rel01.0-uc001-init
  - rel01.0-uc002-lifecycle
test_cases:
  - name: Init smoke test
    inputs:
      command: gentrail init
    expected:
      exit_code: 0
"""


class TestLoadUseCase:
    """Test load_use_case."""

    def test_parses_id_and_touchpoints(self, tmp_path):
        path = tmp_path / "rel01.0-uc001-init.yaml"
        path.write_text(USE_CASE_YAML)

        uc = load_use_case(path)

        assert uc.id == "rel01.0-uc001-init"
        assert uc.title == "Initialization"
        assert len(uc.touchpoints) == 2
        assert uc.path == path

    def test_missing_file(self):
        with pytest.raises(NotFoundError):
            load_use_case("/nonexistent/uc.yaml")

    def test_declared_id_not_checked_against_filename(self, tmp_path):
        path = tmp_path / "something-else.yaml"
        path.write_text(USE_CASE_YAML)
        assert load_use_case(path).id == "rel01.0-uc001-init"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("id: [unclosed\n")
        with pytest.raises(ParseError):
            load_use_case(path)

    def test_missing_id(self, tmp_path):
        path = tmp_path / "noid.yaml"
        path.write_text("title: No id\n")
        with pytest.raises(ParseError) as exc:
            load_use_case(path)
        assert "id" in str(exc.value)

    def test_unquoted_touchpoints_read_as_text(self, tmp_path):
        # YAML turns "- T1: text" into a one-key mapping
        path = tmp_path / "rel01.0-uc001-init.yaml"
        path.write_text(
            "id: rel01.0-uc001-init\n"
            "title: Initialization\n"
            "touchpoints:\n"
            "  - T1: Core component (prd001-core R1)\n"
            "  - T2: Config subsystem\n"
        )

        uc = load_use_case(path)

        assert uc.touchpoints == ("T1: Core component (prd001-core R1)", "T2: Config subsystem")
        assert extract_prds_from_touchpoints(list(uc.touchpoints)) == ["prd001-core"]

    def test_touchpoint_mapping_with_two_keys_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("id: rel01.0-uc009-x\ntouchpoints:\n  - {T1: a, T2: b}\n")
        with pytest.raises(ParseError):
            load_use_case(path)

    def test_touchpoints_wrong_type(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("id: rel01.0-uc009-x\ntouchpoints: not-a-list\n")
        with pytest.raises(ParseError):
            load_use_case(path)

    def test_top_level_list_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ParseError):
            load_use_case(path)

    def test_optional_fields_default(self, tmp_path):
        path = tmp_path / "min.yaml"
        path.write_text("id: rel01.0-uc003-min\n")
        uc = load_use_case(path)
        assert uc.title == ""
        assert uc.touchpoints == ()


class TestLoadTestSuite:
    """Test load_test_suite."""

    def test_parses_id_and_traces(self, tmp_path):
        path = tmp_path / "test-rel01.0.yaml"
        path.write_text(TEST_SUITE_YAML)

        ts = load_test_suite(path)

        assert ts.id == "test-rel01.0"
        assert ts.release == "rel01.0"
        assert ts.traces == ("rel01.0-uc001-init", "rel01.0-uc002-lifecycle")
        assert ts.test_cases == (
            SpecTestCase(
                name="Init smoke test",
                inputs={"command": "gentrail init"},
                expected={"exit_code": 0},
            ),
        )

    def test_missing_file(self):
        with pytest.raises(NotFoundError):
            load_test_suite("/nonexistent/test.yaml")

    def test_numeric_release_kept_as_text(self, tmp_path):
        path = tmp_path / "ts.yaml"
        path.write_text("id: test-2\nrelease: 2.0\n")
        assert load_test_suite(path).release == "2.0"

    def test_case_without_name_rejected(self, tmp_path):
        path = tmp_path / "ts.yaml"
        path.write_text("id: test-3\ntest_cases:\n  - inputs: {}\n")
        with pytest.raises(ParseError):
            load_test_suite(path)


class TestDirectoryLoaders:
    """Test the directory-level loaders."""

    def test_missing_directory_is_empty(self, tmp_path):
        assert load_use_cases(tmp_path / "nope") == []
        assert load_test_suites(tmp_path / "nope") == []
        assert list_requirement_ids(tmp_path / "nope") == []

    def test_loads_in_filename_order(self, tmp_path):
        (tmp_path / "rel01.0-uc002-b.yaml").write_text("id: rel01.0-uc002-b\n")
        (tmp_path / "rel01.0-uc001-a.yml").write_text("id: rel01.0-uc001-a\n")
        (tmp_path / "notes.txt").write_text("ignored")

        assert [uc.id for uc in load_use_cases(tmp_path)] == ["rel01.0-uc001-a", "rel01.0-uc002-b"]

    def test_malformed_document_propagates(self, tmp_path):
        (tmp_path / "ok.yaml").write_text("id: rel01.0-uc001-a\n")
        (tmp_path / "zz.yaml").write_text("id: \"unterminated\n")
        with pytest.raises(ParseError):
            load_use_cases(tmp_path)

    def test_requirement_ids_from_filenames(self, tmp_path):
        (tmp_path / "prd002-parser.yaml").write_text("anything: at all\n")
        (tmp_path / "prd001-core.yaml").write_text("")
        assert list_requirement_ids(tmp_path) == ["prd001-core", "prd002-parser"]
