"""
Fit every kinematic field type to a whole mesh and report the parameters.

Usage:
    python -m kinematic_fitting mesh.obj --heiv --output fits.json --plot fits.png
"""

import argparse
import logging
import os

import numpy as np

from .config import FitConfig
from .errors import KinematicFitError
from .fields import FIELD_TYPES
from .fitting import fit_all_fields
from .logging_config import setup_logging
from .mesh_loader import MeshLoader
from .samples import SurfaceSamples
from .streamlines import pick_seeds, trace_streamlines

logger = logging.getLogger(__name__)


def format_vector(vec) -> str:
    return " ".join(f"{v:.6g}" for v in vec)


def format_motion(motion) -> str:
    parts = []
    for name, value in vars(motion).items():
        if isinstance(value, np.ndarray):
            value = f"[{format_vector(value)}]"
        elif isinstance(value, float):
            value = f"{value:.6g}"
        parts.append(f"{name}={value}")
    return ", ".join(parts)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Fit kinematic fields (translation, scaling, helical, spiral) to a mesh'
    )
    parser.add_argument('mesh', help='Mesh file (.obj, .stl, .ply, ...)')
    parser.add_argument('--fields', nargs='+', choices=list(FIELD_TYPES),
                        default=list(FIELD_TYPES), help='Field types to fit')
    parser.add_argument('--heiv', action='store_true',
                        help='Also run HEIV refinement for each field')
    parser.add_argument('--scale', type=float, default=1.0,
                        help='Half-extent of the mesh after recentering')
    parser.add_argument('--max-iterations', type=int, default=FitConfig.max_iterations,
                        help='HEIV iteration budget')
    parser.add_argument('--output', help='Write results as JSON lines to this file')
    parser.add_argument('--plot', help='Save a streamline figure per fit (suffix added per field)')
    parser.add_argument('--seeds', type=int, default=5, help='Streamline seeds per plot')
    parser.add_argument('--verbose', action='store_true', help='Debug logging on the console')
    parser.add_argument('--log-file', help='Also write a full DEBUG log to this file')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    try:
        vertices, faces = MeshLoader.load_mesh(args.mesh)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Couldn't load mesh %s: %s", args.mesh, e)
        return 1

    # Always recenter and scale before fitting
    vertices = MeshLoader.center_and_scale(vertices, args.scale)
    samples = SurfaceSamples.from_mesh(vertices, faces)
    logger.info("Loaded %s: %d vertices, %d faces", args.mesh, len(vertices), len(faces))

    try:
        config = FitConfig(max_iterations=args.max_iterations).validate()
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    try:
        runs = [fit_all_fields(samples, args.fields, heiv=False, config=config)]
        if args.heiv:
            runs.append(fit_all_fields(samples, args.fields, heiv=True, config=config))
    except KinematicFitError as e:
        logger.error("Fit failed: %s", e)
        return 1

    results = [result for run in runs for result in run.values()]
    for result in results:
        label = result.field_name + (" [HEIV]" if result.method == "heiv" else "")
        print(f"{label} field parameters:")
        print(f"  {format_vector(result.params)}")
        print(f"  residual: {result.residual:.6g}"
              + ("" if result.converged else " (not converged)"))
        print(f"  {format_motion(result.describe())}")

    if args.output:
        with open(args.output, 'w') as f:
            for result in results:
                f.write(result.to_json() + "\n")
        logger.info("Wrote %d results to %s", len(results), args.output)

    if args.plot:
        from .visualizer import Visualizer

        seeds = pick_seeds(vertices, args.seeds)
        root, ext = os.path.splitext(args.plot)
        for result in results:
            lines = trace_streamlines(result.field, result.params, seeds,
                                      step_size=1e-3, steps_per_point=20, steps=3000)
            path = f"{root}_{result.field_name}_{result.method}{ext or '.png'}"
            Visualizer.save_figure(vertices, faces, lines, path,
                                   title=f"{result.field_name} ({result.method})")
            logger.info("Saved %s", path)

    return 0
