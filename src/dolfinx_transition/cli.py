"""
Command-line interface for dolfinx-transition.

Usage:
    dolfinx-transition coeffs config.json
    dolfinx-transition profile config.json
    dolfinx-transition run config.json        (requires DOLFINx)
"""

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from dolfinx_transition.config import ProfileParams, coeffs_from_dict, coeffs_section
from dolfinx_transition.plotting import plot_history, plot_profile, write_profile_csv
from dolfinx_transition.profile import PROFILE_COLUMNS, evaluate_profile
from dolfinx_transition.utils import (
    StepLog,
    dc_from_dict,
    diagnostics_array,
    fmt_sci,
    load_json_config,
    prepare_case_dir,
    print_dc_json,
)


@dataclass(frozen=True)
class RunParams:
    """
    Frozen-flow flat-plate run (transition model only, no momentum solve).

    Lx, Ly: Plate length and domain height (plate along y = 0, x > x_le)
    Nx, Ny: Mesh cells
    x_le: Leading-edge position (wall facets have x >= x_le)
    U_inf, nu: Free-stream velocity and viscosity of the prescribed Blasius-like flow
    Rnu_init, gamma_init: Uniform initial fields
    dt, steps: Pseudo-time step and number of correction steps
    log_interval: Print every N steps
    out_dir: Output directory
    """

    Lx: float
    Ly: float
    Nx: int
    Ny: int
    U_inf: float
    nu: float
    dt: float
    steps: int
    out_dir: str
    x_le: float = 0.0
    Rnu_init: float = 1e-6
    gamma_init: float = 1.0
    log_interval: int = 10


def _cmd_coeffs(cfg, cfg_path, args) -> int:
    coeffs = coeffs_from_dict(coeffs_section(cfg.get("coeffs")))
    print_dc_json(coeffs)
    return 0


def _cmd_profile(cfg, cfg_path, args) -> int:
    params = dc_from_dict(ProfileParams, cfg["profile"], name="profile")
    coeffs = coeffs_from_dict(coeffs_section(cfg.get("coeffs")))
    if args.print_only:
        print_dc_json(params)
        print_dc_json(coeffs)
        return 0

    out_dir = Path(cfg.get("out_dir", "profile_out"))
    prepare_case_dir(out_dir, config_path=cfg_path, cfg=cfg)

    fields = evaluate_profile(params, coeffs)
    write_profile_csv(fields, PROFILE_COLUMNS, out_dir / "profile.csv")
    if not args.no_plot:
        title = f"U_inf={params.U_inf}, delta={params.delta}, Rnu={params.Rnu}, gamma={params.gamma}"
        plot_profile(fields, out_dir / "profile.png", title=title)

    onset = fields["F_onset"] > 0.5
    if np.any(onset):
        print(f"F_onset > 0.5 for y in [{fmt_sci(fields['y'][onset].min())}, {fmt_sci(fields['y'][onset].max())}]")
    else:
        print("F_onset <= 0.5 everywhere (no onset on this profile)")
    return 0


def _cmd_run(cfg, cfg_path, args) -> int:
    params = dc_from_dict(RunParams, cfg["run"], name="run")
    if args.print_only:
        print_dc_json(params)
        return 0

    from mpi4py import MPI

    from dolfinx import mesh
    from dolfinx.fem import Function, functionspace

    from dolfinx_transition.fem import DolfinxOperators, wall_dirichlet, wall_fields
    from dolfinx_transition.models import ConstantViscosity, create_model

    comm = MPI.COMM_WORLD
    out_dir = Path(params.out_dir)
    if comm.rank == 0:
        prepare_case_dir(out_dir, config_path=cfg_path, cfg=cfg)
    comm.barrier()

    domain = mesh.create_rectangle(
        comm,
        [np.array([0.0, 0.0]), np.array([params.Lx, params.Ly])],
        [params.Nx, params.Ny],
        cell_type=mesh.CellType.quadrilateral,
    )
    fdim = domain.topology.dim - 1
    wall_facets = mesh.locate_entities_boundary(
        domain, fdim, lambda x: np.isclose(x[1], 0.0) & (x[0] >= params.x_le)
    )

    # Prescribed Blasius-like flow: u = U tanh(y/delta(x)), delta = 5 x/sqrt(Re_x)
    V_u = functionspace(domain, ("Lagrange", 2, (domain.geometry.dim,)))
    u = Function(V_u, name="u")

    def blasius_like(x):
        x_plate = np.maximum(x[0] - params.x_le, 1e-6)
        delta = 5.0 * x_plate / np.sqrt(params.U_inf * x_plate / params.nu)
        ux = np.where(x[0] >= params.x_le, params.U_inf * np.tanh(x[1] / delta), params.U_inf)
        return np.vstack([ux, np.zeros_like(ux)])

    u.interpolate(blasius_like)
    u.x.scatter_forward()

    ops = DolfinxOperators(domain, u, params.dt)
    ops.bcs["Rnu"] = [wall_dirichlet(ops.S, wall_facets, 0.0)]
    y, n = wall_fields(ops, wall_facets)

    size = ops.num_dofs
    model = create_model(
        cfg.get("model", "WrayAgarwalTransition"),
        ops,
        ConstantViscosity(params.nu),
        {"Rnu": np.full(size, params.Rnu_init), "gamma": np.full(size, params.gamma_init)},
        properties=cfg.get("coeffs"),
    )
    if comm.rank == 0:
        print(f"Turbulence model: {model.display_name}", flush=True)
        print(f"Scalar DOFs: {ops.S.dofmap.index_map.size_global}", flush=True)

    log = StepLog(out_dir / "history.csv", params.log_interval) if comm.rank == 0 else None
    status = 0
    try:
        for step in range(1, params.steps + 1):
            report = model.correct(y, n)

            gd = diagnostics_array(model.gamma, comm)
            rd = diagnostics_array(model.Rnu, comm)
            td = diagnostics_array(np.asarray(model.nut()) / params.nu, comm)
            n_clipped = comm.allreduce(report.n_clipped, op=MPI.SUM)
            if not (gd["finite"] and rd["finite"]):
                if comm.rank == 0:
                    print(f"ERROR: non-finite turbulence fields at step {step}", flush=True)
                status = 1
                break

            if log is not None:
                log.record(
                    step, gd["min"], gd["max"], rd["max"], td["max"], n_clipped,
                    iterations=f"{report.gamma.iterations}/{report.Rnu.iterations}",
                )
    finally:
        ops.destroy()
        if log is not None:
            log.close()

    if log is not None and status == 0:
        plot_history(log.csv_path, out_dir / "history.png")
    return status


def main(argv=None):
    """Run a dolfinx-transition command from the command line."""
    p = argparse.ArgumentParser(
        description="Wray-Agarwal transition model tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    dolfinx-transition coeffs config.json
    dolfinx-transition profile config.json --no-plot
    mpirun -n 4 dolfinx-transition run config.json

Environment:
    `run` requires DOLFINx 0.10.0+.
        """,
    )
    p.add_argument("command", choices=["coeffs", "profile", "run"])
    p.add_argument("config", type=str, help="JSON config file")
    p.add_argument("--print-only", action="store_true", help="Print config and exit")
    p.add_argument("--no-plot", action="store_true", help="Skip PNG output")
    args = p.parse_args(argv)

    cfg_path = Path(args.config)
    cfg = load_json_config(cfg_path)

    commands = {"coeffs": _cmd_coeffs, "profile": _cmd_profile, "run": _cmd_run}
    return commands[args.command](cfg, cfg_path, args)


if __name__ == "__main__":
    sys.exit(main())
