"""
Command-line interface for freehandmap.

Fits pointer strokes into a scene file, erases cells and rectangles from
its curves, validates it and renders it to SVG.
"""

import argparse
import json
import sys

from freehandmap.config import load_config, save_default_config
from freehandmap.tracer import configure_tracer, get_tracer


def _common_parser():
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    common.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing",
    )
    common.add_argument(
        "--trace-level",
        default="INFO",
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    common.add_argument(
        "--trace-file",
        default=None,
        help="Path to write trace logs",
    )
    common.add_argument(
        "--trace-json",
        action="store_true",
        help="Enable JSON trace output",
    )
    return common


def build_parser():
    parser = argparse.ArgumentParser(
        prog="freehandmap",
        description="freehandmap: fit freehand strokes to bezier curves and erase map regions from them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = _common_parser()
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    fit_parser = subparsers.add_parser("fit", parents=[common], help="Fit a stroke and add it to a scene")
    fit_parser.add_argument("--points", "-p", required=True, help="JSON file with raw pointer samples")
    fit_parser.add_argument("--scene", "-s", required=True, help="Scene JSON file (created if missing)")
    fit_parser.add_argument("--color", default=None, help="Fill color")
    fit_parser.add_argument("--opacity", type=float, default=1.0, help="Fill opacity (0-1)")
    fit_parser.add_argument("--closed", action="store_true", help="Close the curve")
    fit_parser.add_argument("--stroke-color", default=None, help="Outline color")
    fit_parser.add_argument("--stroke-width", type=float, default=None, help="Outline width")
    fit_parser.add_argument("--id", default=None, help="Curve id (generated when omitted)")

    cell_parser = subparsers.add_parser("erase-cell", parents=[common], help="Erase one grid cell")
    cell_parser.add_argument("--scene", "-s", required=True, help="Scene JSON file")
    cell_parser.add_argument("--x", type=int, required=True, help="Cell column")
    cell_parser.add_argument("--y", type=int, required=True, help="Cell row")
    cell_parser.add_argument("--out", "-o", default=None, help="Output scene (defaults to --scene)")

    rect_parser = subparsers.add_parser("erase-rect", parents=[common], help="Erase a world-space rectangle")
    rect_parser.add_argument("--scene", "-s", required=True, help="Scene JSON file")
    rect_parser.add_argument(
        "--rect", type=float, nargs=4, required=True,
        metavar=("MIN_X", "MIN_Y", "MAX_X", "MAX_Y"),
        help="Rectangle in world units",
    )
    rect_parser.add_argument("--out", "-o", default=None, help="Output scene (defaults to --scene)")

    apply_parser = subparsers.add_parser("apply", parents=[common], help="Apply an operations file")
    apply_parser.add_argument("--scene", "-s", required=True, help="Scene JSON file")
    apply_parser.add_argument("--ops", required=True, help="Path to operations JSON file")
    apply_parser.add_argument("--out", "-o", default=None, help="Output scene (defaults to --scene)")

    render_parser = subparsers.add_parser("render", parents=[common], help="Render a scene to SVG")
    render_parser.add_argument("--scene", "-s", required=True, help="Scene JSON file")
    render_parser.add_argument("--out", "-o", required=True, help="Output SVG path")
    render_parser.add_argument("--width", type=float, default=1024, help="Canvas width")
    render_parser.add_argument("--height", type=float, default=1024, help="Canvas height")

    validate_parser = subparsers.add_parser("validate", parents=[common], help="Check scene invariants")
    validate_parser.add_argument("--scene", "-s", required=True, help="Scene JSON file")

    init_parser = subparsers.add_parser("init-config", help="Create default config file")
    init_parser.add_argument(
        "--out", "-o",
        default="freehandmap_config.yaml",
        help="Output path for config file",
    )

    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "init-config":
        return handle_init_config(args)

    handlers = {
        "fit": handle_fit,
        "erase-cell": handle_erase_cell,
        "erase-rect": handle_erase_rect,
        "apply": handle_apply,
        "render": handle_render,
        "validate": handle_validate,
    }

    config = load_config(args.config)
    configure_tracer(
        enabled=args.trace or config.tracing.enabled,
        level=args.trace_level if args.trace else config.tracing.level,
        file_path=args.trace_file or config.tracing.file_path,
        json_output=args.trace_json or config.tracing.json_output,
    )
    tracer = get_tracer()

    try:
        with tracer.span(f"cli_{args.command.replace('-', '_')}", module="cli"):
            return handlers[args.command](args, config)
    except Exception as e:
        tracer.event(f"Command failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1
    finally:
        tracer.config.close()


def handle_fit(args, config):
    """Handle the fit command."""
    from freehandmap.curves.operations import add_curve, create_curve
    from freehandmap.io.scene_io import load_points, load_scene, save_scene
    from freehandmap.strokes.bezier_fit import fit_points_to_bezier

    raw_points = load_points(args.points)
    fit = fit_points_to_bezier(
        raw_points,
        simplify_tolerance=config.simplify.epsilon,
        fit_error=config.fit.max_squared_error,
        fit_config=config.fit,
    )
    if fit is None:
        print("Stroke has fewer than 2 distinct points; nothing added.")
        return 1

    curve = create_curve(
        fit,
        color=args.color,
        opacity=args.opacity,
        closed=args.closed,
        stroke_color=args.stroke_color,
        stroke_width=args.stroke_width,
        curve_id=args.id,
    )

    scene = load_scene(args.scene)
    scene = scene.model_copy(update={"curves": add_curve(scene.curves, curve)})
    save_scene(scene, args.scene)

    print(f"Added curve {curve.id} with {len(curve.segments)} segments from {len(raw_points)} samples")
    return 0


def _save_edit(scene, new_curves, out_path, what):
    from freehandmap.io.scene_io import save_scene

    if new_curves is None:
        print(f"{what}: no curve affected")
        return 0

    save_scene(scene.model_copy(update={"curves": new_curves}), out_path)
    print(f"{what}: {len(scene.curves)} -> {len(new_curves)} curves, saved to {out_path}")
    return 0


def handle_erase_cell(args, config):
    """Handle the erase-cell command."""
    from freehandmap.boolean.subtract import erase_cell_from_curves
    from freehandmap.io.scene_io import load_scene

    scene = load_scene(args.scene)
    new_curves = erase_cell_from_curves(scene.curves, args.x, args.y, scene.cell_size, config=config)
    return _save_edit(scene, new_curves, args.out or args.scene, f"Erase cell ({args.x},{args.y})")


def handle_erase_rect(args, config):
    """Handle the erase-rect command."""
    from freehandmap.boolean.subtract import erase_rectangle_from_curves
    from freehandmap.io.scene_io import load_scene

    scene = load_scene(args.scene)
    new_curves = erase_rectangle_from_curves(scene.curves, *args.rect, config=config)
    return _save_edit(scene, new_curves, args.out or args.scene, "Erase rectangle")


def handle_apply(args, config):
    """Handle the apply command."""
    from freehandmap.curves.operations import apply_operations
    from freehandmap.io.scene_io import load_scene

    scene = load_scene(args.scene)
    with open(args.ops, "r", encoding="utf-8") as f:
        operations = json.load(f)

    new_curves = apply_operations(scene.curves, operations, scene.cell_size, config=config)
    return _save_edit(scene, new_curves, args.out or args.scene, f"Applied {len(operations)} operations")


def handle_render(args, config):
    """Handle the render command."""
    from freehandmap.export.svg_emit import emit_curves_svg
    from freehandmap.io.scene_io import load_scene, save_svg

    scene = load_scene(args.scene)
    dwg = emit_curves_svg(
        scene.curves, args.width, args.height,
        stroke_width=config.export.stroke_width,
        stroke_color=config.export.stroke_color,
    )
    save_svg(dwg, args.out)

    print(f"Rendered {len(scene.curves)} curves to {args.out}")
    return 0


def handle_validate(args, config):
    """Handle the validate command."""
    from freehandmap.io.scene_io import load_scene
    from freehandmap.validate.rules import run_validation

    scene = load_scene(args.scene)
    report = run_validation(scene.curves)

    for check in report.checks:
        status = "ok" if check.passed else check.severity.value.upper()
        print(f"  [{status}] {check.rule_id}: {check.message}")

    print(f"\nValidation errors: {report.error_count}")
    print(f"Validation warnings: {report.warning_count}")

    return 1 if report.has_errors else 0


def handle_init_config(args):
    """Handle the init-config command."""
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
