"""
DOLFINx operator tests (skipped when DOLFINx is not installed).
"""

import numpy as np
import pytest


def _can_import_dolfinx():
    """Check if DOLFINx is available."""
    try:
        import dolfinx  # noqa: F401
        return True
    except ImportError:
        return False


pytestmark = pytest.mark.skipif(not _can_import_dolfinx(), reason="DOLFINx not available")


@pytest.fixture
def shear_case():
    from mpi4py import MPI

    from dolfinx import mesh
    from dolfinx.fem import Function, functionspace

    from dolfinx_transition.fem import DolfinxOperators

    domain = mesh.create_unit_square(MPI.COMM_WORLD, 8, 8)
    V_u = functionspace(domain, ("Lagrange", 1, (2,)))
    u = Function(V_u, name="u")
    u.interpolate(lambda x: np.vstack([2.0 * x[1], np.zeros_like(x[1])]))
    u.x.scatter_forward()

    ops = DolfinxOperators(domain, u, dt=1.0)
    yield domain, ops
    ops.destroy()


def test_velocity_gradient_of_linear_shear(shear_case):
    _, ops = shear_case
    grad_u = ops.velocity_gradient()
    assert grad_u.shape == (ops.num_dofs, 2, 2)
    np.testing.assert_allclose(grad_u[:, 0, 1], 2.0, atol=1e-10)
    np.testing.assert_allclose(grad_u[:, 1, 0], 0.0, atol=1e-10)


def test_scalar_gradient(shear_case):
    _, ops = shear_case
    x = ops.S.tabulate_dof_coordinates()
    g = ops.grad(3.0 * x[:, 0] - x[:, 1])
    np.testing.assert_allclose(g[:, 0], 3.0, atol=1e-10)
    np.testing.assert_allclose(g[:, 1], -1.0, atol=1e-10)


def test_uniform_reaction_solve(shear_case):
    from dolfinx_transition.operators import TransportTerms

    _, ops = shear_case
    n = ops.num_dofs
    terms = TransportTerms(
        name="phi",
        weight=np.ones(n),
        diffusivity=np.full(n, 1e-3),
        reaction=np.ones(n),
        source=np.full(n, 3.0),
    )
    ops.u.x.array[:] = 0.0
    phi, report = ops.solve_transport(terms, np.ones(n))
    np.testing.assert_allclose(phi, 2.0, rtol=1e-6)
    assert report.name == "phi"


def test_wall_fields_and_correct(shear_case):
    from dolfinx import mesh

    from dolfinx_transition.fem import wall_dirichlet, wall_fields
    from dolfinx_transition.models import ConstantViscosity, create_model

    domain, ops = shear_case
    fdim = domain.topology.dim - 1
    wall_facets = mesh.locate_entities_boundary(domain, fdim, lambda x: np.isclose(x[1], 0.0))
    ops.bcs["Rnu"] = [wall_dirichlet(ops.S, wall_facets, 0.0)]

    y, n = wall_fields(ops, wall_facets)
    assert y.shape == (ops.num_dofs,)
    assert np.all(y > 0.0)
    np.testing.assert_allclose(np.linalg.norm(n, axis=1), 1.0, atol=1e-6)

    size = ops.num_dofs
    model = create_model(
        "WrayAgarwalTransition",
        ops,
        ConstantViscosity(1e-3),
        {"Rnu": np.full(size, 1e-4), "gamma": np.ones(size)},
    )
    for _ in range(3):
        report = model.correct(y, n)
    assert np.all(np.isfinite(model.Rnu))
    assert np.all(np.asarray(model.Rnu) >= 0.0)
    assert np.all(np.isfinite(model.gamma))
    assert report.gamma.iterations >= 0
