"""
Utility functions for dolfinx-transition.

Provides config loading, diagnostics, and logging helpers.
"""

from __future__ import annotations

import csv
import dataclasses
import json
import math
import os
import platform
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, TypeVar

import numpy as np

T = TypeVar("T")


def load_json_config(config_path: str | Path) -> dict[str, Any]:
    """Load JSON configuration file."""
    p = Path(config_path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    return json.loads(p.read_text())


def dc_from_dict(cls: type[T], data: Mapping[str, Any] | None, *, name: str = "config") -> T:
    """
    Build a dataclass instance from a mapping with strict validation.

    Checks for unknown keys and missing required fields.
    Keys starting with "_" are ignored (allows JSON comments).
    """
    data = {} if data is None else dict(data)
    data = {k: v for k, v in data.items() if not str(k).startswith("_")}

    field_names = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(data.keys()) - field_names)
    if unknown:
        raise ValueError(f"Unknown keys in {name}: {unknown}")

    required = {
        f.name
        for f in dataclasses.fields(cls)
        if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
    }
    missing = sorted(required - set(data.keys()))
    if missing:
        raise ValueError(f"Missing keys in {name}: {missing}")

    return cls(**data)


def print_dc_json(obj: Any) -> None:
    """Print a dataclass (or dict) as stable, sorted JSON."""
    if dataclasses.is_dataclass(obj):
        payload = dataclasses.asdict(obj)
    else:
        payload = obj
    print(json.dumps(payload, indent=2, sort_keys=True))


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True))


def prepare_case_dir(out_dir: str | Path, *, config_path: Path | None, cfg: Mapping[str, Any]) -> Path:
    """
    Create the output folder and write reproducibility metadata.

    Creates:
      - <out_dir>/config_used.json
      - <out_dir>/run_info.json
    """
    case_dir = Path(out_dir)
    case_dir.mkdir(parents=True, exist_ok=True)

    write_json(case_dir / "config_used.json", dict(cfg))

    from dolfinx_transition import __version__

    info: dict[str, Any] = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "cwd": os.getcwd(),
        "config_path": str(config_path) if config_path else None,
        "python": {"executable": sys.executable, "version": sys.version},
        "platform": {
            "system": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
        },
        "dolfinx_transition_version": __version__,
    }
    write_json(case_dir / "run_info.json", info)
    return case_dir


def fmt_sci(x: float, *, prec: int = 1, sign: bool = False) -> str:
    """Scientific notation with NaN/Inf handling."""
    if not math.isfinite(float(x)):
        return "nan"
    s = "+" if sign else ""
    return f"{float(x):{s}.{prec}e}"


def fmt_pair_sci(a: float, b: float, *, prec: int = 1, sign: bool = True) -> str:
    """Format a min,max pair as 'a,b' in scientific notation."""
    return f"{fmt_sci(a, prec=prec, sign=sign)},{fmt_sci(b, prec=prec, sign=sign)}"


HISTORY_FIELDS = ["step", "gamma_min", "gamma_max", "Rnu_max", "nut_nu_max", "n_clipped"]


class StepLog:
    """
    Per-step diagnostics of a transition run.

    Every step goes to a CSV history (HISTORY_FIELDS); the first step and
    every ``interval``-th step are also printed as a fixed-width table row.
    Create it on rank 0 only.
    """

    _COLUMNS = [
        ("step", 6),
        ("gamma[min,max]", 20),
        ("Rnu max", 9),
        ("nu_t/nu", 9),
        ("its", 9),
        ("clip", 6),
    ]

    def __init__(self, csv_path: Path, interval: int) -> None:
        self.csv_path = Path(csv_path)
        self.interval = max(int(interval), 1)
        self.csv_path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self.csv_path, "w", newline="")
        self._writer = csv.DictWriter(self._fh, fieldnames=HISTORY_FIELDS)
        self._writer.writeheader()
        self._header_printed = False

    def __enter__(self) -> "StepLog":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def record(
        self,
        step: int,
        gamma_min: float,
        gamma_max: float,
        Rnu_max: float,
        nut_nu_max: float,
        n_clipped: int,
        iterations: str = "",
    ) -> None:
        self._writer.writerow({
            "step": step,
            "gamma_min": f"{gamma_min:.16e}",
            "gamma_max": f"{gamma_max:.16e}",
            "Rnu_max": f"{Rnu_max:.16e}",
            "nut_nu_max": f"{nut_nu_max:.16e}",
            "n_clipped": n_clipped,
        })
        self._fh.flush()

        if step == 1 or step % self.interval == 0:
            self._print_row([
                step,
                fmt_pair_sci(gamma_min, gamma_max),
                fmt_sci(Rnu_max),
                fmt_sci(nut_nu_max),
                iterations,
                n_clipped,
            ])

    def _print_row(self, values: list[object]) -> None:
        if not self._header_printed:
            print(" ".join(label.rjust(width) for label, width in self._COLUMNS), flush=True)
            self._header_printed = True
        print(" ".join(str(v).rjust(width) for (_, width), v in zip(self._COLUMNS, values)), flush=True)

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()


def diagnostics_array(a, comm=None) -> dict[str, float | bool]:
    """Global min/max of a DOF array (MPI-safe when ``comm`` is given)."""
    a = np.asarray(a, dtype=float)
    finite_local = bool(np.isfinite(a).all())

    if a.size:
        local_min = float(np.nanmin(a))
        local_max = float(np.nanmax(a))
    else:
        local_min = float("inf")
        local_max = float("-inf")

    if comm is None:
        return {"min": local_min, "max": local_max, "finite": finite_local}

    from mpi4py import MPI

    finite = bool(comm.allreduce(finite_local, op=MPI.LAND))
    vmin = float(comm.allreduce(local_min, op=MPI.MIN))
    vmax = float(comm.allreduce(local_max, op=MPI.MAX))
    return {"min": vmin, "max": vmax, "finite": finite}
