# Tests for LookupEngine

import logging
from datetime import date
from unittest.mock import patch

import numpy as np
import pytest
from anthro.methods.lookup.engine import LookupConfig, LookupEngine
from anthro.zscores import age_in_months
from tests.conftest import TODAY


class TestLookupEngine:
    """Tests for LookupEngine class"""

    def test_tc001_compute_scores_against_tables(self, lookup_engine: LookupEngine):
        # M=10/70/8 and S=0.1 with L=1: z = (X/M - 1) / 0.1
        scores = lookup_engine.compute(183, 7.5, 63.0, "male")
        assert scores["waz"] == pytest.approx(-2.5)
        assert scores["haz"] == pytest.approx(-1.0)
        assert scores["whz"] == pytest.approx(-0.625)

    def test_tc002_scores_are_not_rounded(self, lookup_engine: LookupEngine):
        scores = lookup_engine.compute(183, 7.123, 63.0, "female")
        assert scores["waz"] == pytest.approx((7.123 / 10.0 - 1) / 0.1)
        assert round(scores["waz"], 2) != scores["waz"]

    def test_tc003_length_outside_table_fails_only_whz(self, lookup_engine: LookupEngine):
        scores = lookup_engine.compute(183, 7.5, 120.0, "male")
        assert scores["whz"] is None
        assert scores["waz"] is not None
        assert scores["haz"] is not None

    def test_tc004_age_outside_table_fails_age_scores(self, lookup_engine: LookupEngine):
        scores = lookup_engine.compute(2000, 15.0, 100.0, "male")
        assert scores["waz"] is None
        assert scores["haz"] is None
        assert scores["whz"] is not None

    def test_tc005_build_patient_derives_dob(self, lookup_engine: LookupEngine):
        patient = lookup_engine.build_patient(183, 7.5, 63.0, "male")
        assert patient.dob == date(2023, 12, 1)
        assert (TODAY - patient.dob).days == 183

    def test_tc006_invalid_sex_raises(self, lookup_engine: LookupEngine):
        with pytest.raises(ValueError):
            lookup_engine.compute(183, 7.5, 63.0, "M")

    def test_tc007_missing_reference_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LookupEngine(reference_path=tmp_path / "missing.npz")

    def test_tc008_reference_path_must_be_npz(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid configuration"):
            LookupEngine(reference_path=tmp_path / "tables.csv")

    def test_tc009_integrity_failure_raises(self):
        with pytest.raises(ValueError, match="integrity"):
            LookupEngine(reference_data={})

    def test_tc010_integrity_check_can_be_disabled(self, caplog):
        engine = LookupEngine(reference_data={}, validate_integrity=False)
        with caplog.at_level(logging.DEBUG):
            scores = engine.compute(183, 7.5, 63.0, "male")
        assert scores == {"waz": None, "whz": None, "haz": None}
        assert "waz_male" in caplog.text

    def test_tc011_loads_from_file(self, tmp_path, reference_data):
        path = tmp_path / "growth_references.npz"
        np.savez_compressed(path, **reference_data)
        engine = LookupEngine(reference_path=path, today=lambda: TODAY)
        assert engine.compute(183, 10.0, 70.0, "male")["waz"] == pytest.approx(0.0)

    def test_tc012_config_defaults(self):
        config = LookupConfig()
        assert config.reference_path is None
        assert config.validate_integrity is True

    def test_tc013_age_index_uses_months_conversion(self, lookup_engine: LookupEngine):
        with patch(
            "anthro.methods.lookup.engine.age_in_months", wraps=age_in_months
        ) as convert:
            scores = lookup_engine.compute(365, 10.0, 70.0, "female")
        convert.assert_called_once_with(365)
        assert scores["waz"] == pytest.approx(0.0)
