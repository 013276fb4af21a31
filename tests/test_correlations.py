"""
Tests for the auxiliary-field functions of the transition model.
"""

import numpy as np
import pytest

from dolfinx_transition.config import C_MU, C_OMEGA, C_W
from dolfinx_transition.models import correlations as corr


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


def test_strain_and_vorticity_of_pure_shear():
    grad_u = np.zeros((3, 2, 2))
    grad_u[:, 0, 1] = 2.0
    np.testing.assert_allclose(corr.strain_rate_magnitude(grad_u), 2.0)
    np.testing.assert_allclose(corr.vorticity_magnitude(grad_u), 2.0)


def test_solid_rotation_has_no_strain():
    grad_u = np.zeros((2, 2, 2))
    grad_u[:, 0, 1] = -1.0
    grad_u[:, 1, 0] = 1.0
    np.testing.assert_allclose(corr.strain_rate_magnitude(grad_u), 0.0, atol=1e-14)
    assert np.all(corr.vorticity_magnitude(grad_u) > 0.0)


def test_chi_non_negative(rng):
    Rnu = rng.uniform(0.0, 1.0, 100)
    assert np.all(corr.chi(Rnu, 1.5e-5) >= 0.0)


def test_fmi_bounded_and_monotone(rng):
    chi = np.sort(rng.uniform(0.0, 1e4, 200))
    f = corr.fmi(chi, C_W)
    assert np.all(f >= 0.0) and np.all(f <= 1.0)
    assert np.all(np.diff(f) >= 0.0)
    assert corr.fmi(np.array([0.0]), C_W)[0] == 0.0


def test_f_onset_bounded(rng):
    re_v = rng.uniform(0.0, 1e5, 500)
    re_thc = rng.uniform(100.0, 1100.0, 500)
    rt = rng.uniform(0.0, 50.0, 500)
    f = corr.f_onset(re_v, re_thc, rt)
    assert np.all(f >= 0.0) and np.all(f <= 1.0)


def test_f_onset_switches_at_margin():
    re_thc = np.array([500.0, 500.0, 500.0])
    re_v = np.array([0.5, 2.2 * 2.0, 2.2 * 10.0]) * re_thc
    f = corr.f_onset(re_v, re_thc, np.zeros(3))
    np.testing.assert_allclose(f, [0.0, 1.0, 1.0])


def test_f_onset_earlier_when_turbulent():
    re_thc = np.array([500.0])
    re_v = np.array([1.1 * 500.0])  # F_onset1 = 0.5
    laminar = corr.f_onset(re_v, re_thc, np.array([0.0]))
    turbulent = corr.f_onset(re_v, re_thc, np.array([10.0]))
    assert laminar[0] == 0.0
    assert turbulent[0] == pytest.approx(0.5)


def test_f1_bounded(rng):
    S = rng.uniform(0.0, 1e4, 300)
    W = rng.uniform(0.0, 1e4, 300)
    Rnu = rng.uniform(0.0, 1e-2, 300)
    y = rng.uniform(1e-8, 1.0, 300)
    f = corr.f1(S, W, Rnu, y, 1.5e-5, C_MU, C_OMEGA)
    assert np.all(f >= 0.0) and np.all(f <= 1.0)


def test_f1_near_wall_and_far_field():
    S = np.full(2, 100.0)
    W = np.full(2, 100.0)
    Rnu = np.full(2, 1e-3)
    y = np.array([1e-6, 100.0])
    f = corr.f1(S, W, Rnu, y, 1e-5, C_MU, C_OMEGA)
    assert f[0] == pytest.approx(1.0)
    assert f[1] < 1e-6


def test_f1_decreases_away_from_wall():
    y = np.geomspace(1e-6, 10.0, 50)
    f = corr.f1(np.full(50, 50.0), np.full(50, 50.0), np.full(50, 1e-4), y, 1e-5, C_MU, C_OMEGA)
    assert np.all(np.diff(f) <= 1e-12)


def test_lambda_theta_l_clipped():
    grad_u = np.zeros((2, 2, 2))
    grad_u[:, 1, 1] = [1e6, -1e6]
    n = np.tile([0.0, 1.0], (2, 1))
    lam = corr.lambda_theta_l(grad_u, n, np.ones(2), 1e-5)
    np.testing.assert_allclose(lam, [-1.0, 1.0])


def test_lambda_theta_l_zero_pressure_gradient():
    grad_u = np.zeros((1, 2, 2))
    grad_u[:, 0, 1] = 100.0  # shear does not contribute along n
    n = np.array([[0.0, 1.0]])
    lam = corr.lambda_theta_l(grad_u, n, np.array([0.01]), 1e-5)
    assert lam[0] == pytest.approx(0.0128)


def test_f_pg_branches():
    lam = np.array([-1.0, -0.1, 0.0, 0.01, 1.0])
    f = corr.f_pg(lam)
    np.testing.assert_allclose(f, [3.0, 1.734, 1.0, 1.1468, 1.5])
    assert np.all(f >= 0.0)


def test_re_thetac_range():
    tu = np.array([0.0, 1.0, 100.0])
    r = corr.re_thetac(tu, np.ones(3))
    assert r[0] == pytest.approx(1100.0)
    assert r[1] == pytest.approx(100.0 + 1000.0 * np.exp(-1.0))
    assert r[2] == pytest.approx(100.0)


def test_tu_l_capped():
    tu = corr.tu_l(np.array([0.0, 1e3]), np.array([1.0, 1e-12]), np.array([1e-9, 1.0]), C_MU, C_OMEGA)
    assert tu[0] == pytest.approx(100.0)
    assert 0.0 <= tu[1] < 100.0


def test_f_turb():
    rt = np.array([0.0, 2.0, 20.0])
    np.testing.assert_allclose(corr.f_turb(rt), [1.0, np.exp(-1.0), 0.0], atol=1e-12)


def test_prnu_lim_inactive_outside_window():
    re_v = np.full(4, 1e5)
    W = np.full(4, 1e3)
    gamma = np.array([0.0, 0.2, 0.6, 1.0])
    p = corr.prnu_lim(re_v, W, gamma, np.zeros(4), 1.5e-5)
    assert p[0] == 0.0 and p[1] == 0.0 and p[3] == 0.0
    assert p[2] > 0.0


def test_prnu_lim_needs_high_re_v():
    p = corr.prnu_lim(np.array([2.2 * 1100.0]), np.array([1e3]), np.array([0.6]), np.zeros(1), 1.5e-5)
    assert p[0] == 0.0
