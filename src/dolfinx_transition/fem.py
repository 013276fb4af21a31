"""
DOLFINx implementation of the FieldOperators collaborator.

Contains:
- DolfinxOperators: velocity / scalar gradients at the scalar DOFs and the
  implicit scalar transport solve (BiCGStab + BoomerAMG, converged-reason
  checked)
- Wall distance (Eikonal PDE) and unit wall-normal field

Every scalar field the closure owns lives on one Lagrange space; vector and
tensor quantities use blocked spaces of the same element so that DOF i of
the scalar space is row i of the reshaped blocked arrays.
"""

import numpy as np
from mpi4py import MPI
from petsc4py import PETSc

from dolfinx.fem import (
    Constant,
    Expression,
    Function,
    dirichletbc,
    form,
    functionspace,
    locate_dofs_topological,
)
from dolfinx.fem.petsc import (
    apply_lifting,
    assemble_matrix,
    assemble_vector,
    create_matrix,
    create_vector,
    set_bc,
)

import ufl
from ufl import TestFunction, TrialFunction, dot, dx, grad, inner, lhs, rhs

from dolfinx_transition.operators import LinearSolveError, SolveReport, TransportTerms


class _TransportSystem:
    """Forms, matrix, vector and KSP of one scalar transport equation."""

    def __init__(self, name, S, u, dt_c, bcs, rtol, max_it):
        self.name = name
        self.bcs = list(bcs)
        self.weight = Function(S, name=f"{name}_weight")
        self.diffusivity = Function(S, name=f"{name}_diffusivity")
        self.reaction = Function(S, name=f"{name}_reaction")
        self.source = Function(S, name=f"{name}_source")
        self.phi_n = Function(S, name=f"{name}_n")
        self.phi = Function(S, name=name)

        phi_trial = TrialFunction(S)
        v = TestFunction(S)
        w = self.weight

        # d(w phi)/dt + w u·grad(phi) - div(D grad(phi)) + r phi = s
        F = (
            w * (phi_trial - self.phi_n) / dt_c * v * dx
            + w * dot(u, grad(phi_trial)) * v * dx
            + self.diffusivity * inner(grad(phi_trial), grad(v)) * dx
            + self.reaction * phi_trial * v * dx
            - self.source * v * dx
        )
        self.a = form(lhs(F))
        self.L = form(rhs(F))
        self.A = create_matrix(self.a)
        self.b = create_vector(S)

        comm = S.mesh.comm
        self.ksp = PETSc.KSP().create(comm)
        self.ksp.setOperators(self.A)
        self.ksp.setType(PETSc.KSP.Type.BCGS)
        pc = self.ksp.getPC()
        pc.setType(PETSc.PC.Type.HYPRE)
        pc.setHYPREType("boomeramg")
        self.ksp.setTolerances(rtol=rtol, max_it=max_it)
        self.ksp.setInitialGuessNonzero(True)

    def load(self, terms: TransportTerms, current: np.ndarray) -> None:
        for fn, arr in (
            (self.weight, terms.weight),
            (self.diffusivity, terms.diffusivity),
            (self.reaction, terms.reaction),
            (self.source, terms.source),
            (self.phi_n, current),
            (self.phi, current),
        ):
            fn.x.array[:] = arr
            fn.x.scatter_forward()

    def solve(self) -> tuple[int, int, float]:
        self.A.zeroEntries()
        assemble_matrix(self.A, self.a, bcs=self.bcs)
        self.A.assemble()

        with self.b.localForm() as loc:
            loc.set(0.0)
        assemble_vector(self.b, self.L)
        apply_lifting(self.b, [self.a], [self.bcs])
        self.b.ghostUpdate(addv=PETSc.InsertMode.ADD_VALUES, mode=PETSc.ScatterMode.REVERSE)
        set_bc(self.b, self.bcs)

        self.ksp.solve(self.b, self.phi.x.petsc_vec)
        self.phi.x.scatter_forward()
        return (
            int(self.ksp.getConvergedReason()),
            int(self.ksp.getIterationNumber()),
            float(self.ksp.getResidualNorm()),
        )

    def destroy(self) -> None:
        self.ksp.destroy()
        self.A.destroy()
        self.b.destroy()


class DolfinxOperators:
    """
    Host-side operators for a closure running on a DOLFINx mesh.

    Args:
        domain: Mesh
        u: Velocity Function (owned and advanced by the flow solver)
        dt: Time step of the turbulence equations
        degree: Lagrange degree of the scalar space the closure lives on
        bcs: Mapping equation name -> list of DirichletBC on ``self.S``
    """

    def __init__(self, domain, u, dt: float, degree: int = 1, bcs=None,
                 rtol: float = 1e-8, max_it: int = 1000):
        self.domain = domain
        self.comm = domain.comm
        self.rank = self.comm.rank
        self.u = u
        gdim = domain.geometry.dim
        self.gdim = gdim

        self.S = functionspace(domain, ("Lagrange", degree))
        self.V = functionspace(domain, ("Lagrange", degree, (gdim,)))
        self.T = functionspace(domain, ("Lagrange", degree, (gdim, gdim)))

        self.dt_c = Constant(domain, PETSc.ScalarType(dt))
        self.bcs = {} if bcs is None else dict(bcs)
        self._rtol = rtol
        self._max_it = max_it
        self._systems: dict[str, _TransportSystem] = {}

        self._grad_u = Function(self.T, name="grad_u")
        self._grad_u_expr = Expression(grad(u), self.T.element.interpolation_points)

        self._scratch = Function(self.S, name="scratch")
        self._grad_scratch = Function(self.V, name="grad_scratch")
        self._grad_scratch_expr = Expression(
            grad(self._scratch), self.V.element.interpolation_points
        )

    @property
    def num_dofs(self) -> int:
        """Local DOF count including ghosts (length of every closure array)."""
        return self._scratch.x.array.size

    def set_dt(self, dt: float) -> None:
        self.dt_c.value = dt

    def velocity_gradient(self) -> np.ndarray:
        self._grad_u.interpolate(self._grad_u_expr)
        self._grad_u.x.scatter_forward()
        return self._grad_u.x.array.reshape(-1, self.gdim, self.gdim).copy()

    def grad(self, values: np.ndarray) -> np.ndarray:
        self._scratch.x.array[:] = values
        self._scratch.x.scatter_forward()
        self._grad_scratch.interpolate(self._grad_scratch_expr)
        self._grad_scratch.x.scatter_forward()
        return self._grad_scratch.x.array.reshape(-1, self.gdim).copy()

    def solve_transport(self, terms: TransportTerms, current: np.ndarray):
        system = self._systems.get(terms.name)
        if system is None:
            system = _TransportSystem(
                terms.name, self.S, self.u, self.dt_c,
                self.bcs.get(terms.name, []), self._rtol, self._max_it,
            )
            self._systems[terms.name] = system

        system.load(terms, current)
        reason, its, res_norm = system.solve()
        if reason < 0:
            raise LinearSolveError(terms.name, reason, its)

        finite = bool(self.comm.allreduce(bool(np.isfinite(system.phi.x.array).all()), op=MPI.LAND))
        if not finite:
            raise LinearSolveError(terms.name, "non-finite solution", its)

        return system.phi.x.array.copy(), SolveReport(terms.name, its, res_norm)

    def destroy(self) -> None:
        for system in self._systems.values():
            system.destroy()
        self._systems.clear()


def wall_dirichlet(S, wall_facets, value: float = 0.0):
    """Dirichlet BC fixing a scalar on wall facets (e.g. Rnu = 0)."""
    domain = S.mesh
    fdim = domain.topology.dim - 1
    domain.topology.create_connectivity(fdim, domain.topology.dim)
    wall_dofs = locate_dofs_topological(S, fdim, wall_facets)
    return dirichletbc(PETSc.ScalarType(value), wall_dofs, S)


# =============================================================================
# Wall distance and wall normal
# =============================================================================


def _linear_solve(A, b, a, L, bcs, target, ksp_type, rtol):
    A.zeroEntries()
    assemble_matrix(A, a, bcs=bcs)
    A.assemble()
    with b.localForm() as loc:
        loc.set(0.0)
    assemble_vector(b, L)
    apply_lifting(b, [a], [bcs])
    b.ghostUpdate(addv=PETSc.InsertMode.ADD_VALUES, mode=PETSc.ScatterMode.REVERSE)
    set_bc(b, bcs)

    ksp = PETSc.KSP().create(target.function_space.mesh.comm)
    ksp.setOperators(A)
    ksp.setType(ksp_type)
    pc = ksp.getPC()
    pc.setType(PETSc.PC.Type.HYPRE)
    pc.setHYPREType("boomeramg")
    ksp.setTolerances(rtol=rtol)
    ksp.solve(b, target.x.petsc_vec)
    target.x.scatter_forward()
    reason = ksp.getConvergedReason()
    ksp.destroy()
    if reason < 0:
        raise LinearSolveError("wall_distance", int(reason))


def compute_wall_distance_eikonal(S, wall_facets, relax: float = 0.01,
                                  max_iter: int = 30, tol: float = 1e-4):
    """
    Domain-wide wall distance from |grad(d)| = 1, d = 0 on walls.

    A Laplace solve (-div(grad(d)) = 1) provides the starting guess; Picard
    iterations then solve n_hat·grad(d) + relax*laplacian = 1 with
    n_hat = grad(d_old)/|grad(d_old)|.

    Reference: Tucker, P.G. (2003), Applied Mathematical Modelling, 27(3):189-198.
    """
    domain = S.mesh
    comm = domain.comm
    bcs = [wall_dirichlet(S, wall_facets, 0.0)]

    d = Function(S, name="wall_distance")
    d_old = Function(S)
    d_trial = TrialFunction(S)
    v = TestFunction(S)
    one = Constant(domain, PETSc.ScalarType(1.0))

    a_lap = form(inner(grad(d_trial), grad(v)) * dx)
    L = form(one * v * dx)
    A_lap = create_matrix(a_lap)
    b = create_vector(S)
    _linear_solve(A_lap, b, a_lap, L, bcs, d, PETSc.KSP.Type.CG, 1e-10)
    A_lap.destroy()

    if not np.all(np.isfinite(d.x.array)):
        raise RuntimeError("Eikonal Laplace warm-up produced non-finite values")
    d.x.array[:] = np.maximum(d.x.array, 0.0)
    d.x.scatter_forward()
    d_old.x.array[:] = d.x.array

    n_hat = grad(d_old) / ufl.sqrt(dot(grad(d_old), grad(d_old)) + 1e-16)
    relax_c = Constant(domain, PETSc.ScalarType(relax))
    a_eik = form(
        dot(n_hat, grad(d_trial)) * v * dx
        + relax_c * inner(grad(d_trial), grad(v)) * dx
    )
    A_eik = create_matrix(a_eik)

    rel_change = np.inf
    for it in range(max_iter):
        _linear_solve(A_eik, b, a_eik, L, bcs, d, PETSc.KSP.Type.BCGS, 1e-8)
        d.x.array[:] = np.maximum(d.x.array, 0.0)
        d.x.scatter_forward()

        diff = d.x.array - d_old.x.array
        diff_norm = float(np.sqrt(comm.allreduce(np.dot(diff, diff), op=MPI.SUM)))
        d_norm = float(np.sqrt(comm.allreduce(np.dot(d.x.array, d.x.array), op=MPI.SUM)))
        rel_change = diff_norm / max(d_norm, 1e-10)
        d_old.x.array[:] = d.x.array
        if rel_change < tol:
            break

    if comm.rank == 0:
        print(f"Eikonal wall distance: {it + 1} iterations (rel_change = {rel_change:.2e})", flush=True)

    A_eik.destroy()
    b.destroy()

    d.x.array[:] = np.maximum(d.x.array, 1e-10)
    d.x.scatter_forward()
    return d


def compute_wall_normal(d, V) -> np.ndarray:
    """Unit wall normal n = grad(d)/|grad(d)| at the DOFs of V, shape (N, gdim)."""
    gdim = V.mesh.geometry.dim
    n_expr = grad(d) / ufl.sqrt(dot(grad(d), grad(d)) + 1e-16)
    n = Function(V, name="wall_normal")
    n.interpolate(Expression(n_expr, V.element.interpolation_points))
    n.x.scatter_forward()
    return n.x.array.reshape(-1, gdim).copy()


def wall_fields(ops: DolfinxOperators, wall_facets):
    """Wall distance and normal arrays on the operators' scalar space."""
    d = compute_wall_distance_eikonal(ops.S, wall_facets)
    return d.x.array.copy(), compute_wall_normal(d, ops.V)
