"""
Smoke tests for dolfinx-transition.

These tests verify basic functionality without running full simulations.
"""

import json

import numpy as np
import pytest

PROFILE = {
    "nu": 1.5e-5,
    "U_inf": 10.0,
    "delta": 1e-3,
    "y_max": 1e-2,
    "N": 40,
    "Rnu": 1e-6,
    "gamma": 1.0,
}


def test_dataclass_validation():
    """Verify config dataclass validation works."""
    from dolfinx_transition.config import ProfileParams
    from dolfinx_transition.utils import dc_from_dict

    params = dc_from_dict(ProfileParams, dict(PROFILE, _note="comment"), name="profile")
    assert params.N == 40
    assert params.dpdx_factor == 0.0

    # Missing key should raise
    with pytest.raises(ValueError, match="Missing keys"):
        dc_from_dict(ProfileParams, {"nu": 1e-5}, name="profile")

    # Unknown key should raise
    with pytest.raises(ValueError, match="Unknown keys"):
        dc_from_dict(ProfileParams, dict(PROFILE, extra=123), name="profile")


def test_diagnostics_helpers():
    """Verify formatting helpers work."""
    from dolfinx_transition.utils import diagnostics_array, fmt_pair_sci, fmt_sci

    assert "1.0e+00" in fmt_sci(1.0, prec=1)
    assert "nan" in fmt_sci(float("nan"))

    pair = fmt_pair_sci(1e-3, 1e3, prec=1)
    assert "," in pair

    d = diagnostics_array(np.array([1.0, -2.0, 3.0]))
    assert d["min"] == -2.0 and d["max"] == 3.0 and d["finite"]
    assert not diagnostics_array(np.array([1.0, np.nan]))["finite"]


def test_step_log(tmp_path, capsys):
    from dolfinx_transition.plotting import plot_history
    from dolfinx_transition.utils import HISTORY_FIELDS, StepLog

    with StepLog(tmp_path / "run" / "history.csv", interval=2) as log:
        for step in range(1, 5):
            log.record(step, 0.1 * step, 1.0, 1e-4 * step, 3.0 * step, step - 1, iterations="2/3")

    lines = (tmp_path / "run" / "history.csv").read_text().splitlines()
    assert lines[0] == ",".join(HISTORY_FIELDS)
    assert len(lines) == 5

    # header, then steps 1, 2 and 4
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 4
    assert "gamma[min,max]" in out[0]
    assert out[-1].split()[0] == "4"

    plot_history(tmp_path / "run" / "history.csv", tmp_path / "run" / "history.png")
    assert (tmp_path / "run" / "history.png").exists()


def test_evaluate_profile():
    from dolfinx_transition.config import ProfileParams, TransitionCoeffs
    from dolfinx_transition.profile import PROFILE_COLUMNS, evaluate_profile

    fields = evaluate_profile(ProfileParams(**PROFILE), TransitionCoeffs())
    assert set(fields) == set(PROFILE_COLUMNS)
    for name in PROFILE_COLUMNS:
        assert fields[name].shape == (40,)
        assert np.all(np.isfinite(fields[name])), name
    assert np.all((fields["F1"] >= 0.0) & (fields["F1"] <= 1.0))
    assert np.all((fields["F_onset"] >= 0.0) & (fields["F_onset"] <= 1.0))
    # Shear vanishes at the boundary-layer edge
    assert fields["S"][0] > 1e3 * fields["S"][-1]


def test_evaluate_profile_rejects_bad_line():
    from dolfinx_transition.config import ProfileParams, TransitionCoeffs
    from dolfinx_transition.profile import evaluate_profile

    with pytest.raises(ValueError, match="y_first"):
        evaluate_profile(ProfileParams(**dict(PROFILE, y_first=1.0)), TransitionCoeffs())


def test_cli_coeffs(tmp_path, capsys):
    from dolfinx_transition.cli import main

    cfg = tmp_path / "config.json"
    cfg.write_text(json.dumps({"coeffs": {"WrayAgarwalTransitionCoeffs": {"Cm": 6.0}}}))
    assert main(["coeffs", str(cfg)]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["Cm"] == 6.0
    assert out["Flength"] == 100.0


def test_cli_profile(tmp_path, capsys):
    from dolfinx_transition.cli import main
    from dolfinx_transition.profile import PROFILE_COLUMNS

    out_dir = tmp_path / "out"
    cfg = tmp_path / "config.json"
    cfg.write_text(json.dumps({"profile": PROFILE, "out_dir": str(out_dir)}))
    assert main(["profile", str(cfg), "--no-plot"]) == 0

    lines = (out_dir / "profile.csv").read_text().splitlines()
    assert lines[0] == ",".join(PROFILE_COLUMNS)
    assert len(lines) == PROFILE["N"] + 1
    assert (out_dir / "config_used.json").exists()
    assert (out_dir / "run_info.json").exists()
    assert not (out_dir / "profile.png").exists()
    assert "F_onset" in capsys.readouterr().out


def test_cli_missing_config(tmp_path):
    from dolfinx_transition.cli import main

    with pytest.raises(FileNotFoundError):
        main(["coeffs", str(tmp_path / "nope.json")])
