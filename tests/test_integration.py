"""Integration tests for the command-line workflow."""

import json
import math
import os

import pytest

from freehandmap.cli import main
from freehandmap.io.scene_io import load_scene


@pytest.fixture
def loop_points_file(temp_dir):
    """A closed freehand loop around (48, 48) with radius 40."""
    samples = [
        {"x": 48 + 40 * math.cos(a / 40 * 2 * math.pi), "y": 48 + 40 * math.sin(a / 40 * 2 * math.pi)}
        for a in range(41)
    ]
    path = os.path.join(temp_dir, "stroke.json")
    with open(path, "w") as f:
        json.dump({"points": samples}, f)
    return path


@pytest.fixture
def scene_file(temp_dir):
    return os.path.join(temp_dir, "scene.json")


class TestCli:
    """Tests that drive the CLI end to end."""

    def test_fit_creates_scene(self, loop_points_file, scene_file):
        code = main([
            "fit", "--points", loop_points_file, "--scene", scene_file,
            "--closed", "--color", "red", "--id", "loop",
        ])

        assert code == 0
        scene = load_scene(scene_file)
        assert [c.id for c in scene.curves] == ["loop"]
        assert scene.curves[0].closed
        assert scene.curves[0].segments

    def test_erase_render_validate(self, loop_points_file, scene_file, temp_dir):
        main(["fit", "-p", loop_points_file, "-s", scene_file, "--closed", "--color", "red", "--id", "loop"])

        # Cell (1, 1) at the default 32 cell size sits inside the loop
        assert main(["erase-cell", "-s", scene_file, "--x", "1", "--y", "1"]) == 0
        curve = load_scene(scene_file).curves[0]
        assert curve.id == "loop"
        assert curve.geometry_version == 1
        assert len(curve.inner_rings) == 1

        assert main(["erase-rect", "-s", scene_file, "--rect", "-10", "-10", "20", "110"]) == 0
        assert load_scene(scene_file).curves[0].geometry_version == 2

        svg_path = os.path.join(temp_dir, "scene.svg")
        assert main(["render", "-s", scene_file, "-o", svg_path, "--width", "128", "--height", "128"]) == 0
        with open(svg_path) as f:
            assert "<svg" in f.read()

        assert main(["validate", "-s", scene_file]) == 0

    def test_erase_miss_leaves_scene(self, loop_points_file, scene_file, temp_dir):
        main(["fit", "-p", loop_points_file, "-s", scene_file, "--closed", "--color", "red"])
        out = os.path.join(temp_dir, "edited.json")

        assert main(["erase-cell", "-s", scene_file, "--x", "50", "--y", "50", "-o", out]) == 0
        assert not os.path.exists(out)

    def test_apply_operations_file(self, loop_points_file, scene_file, temp_dir):
        main(["fit", "-p", loop_points_file, "-s", scene_file, "--closed", "--color", "red", "--id", "loop"])
        ops_path = os.path.join(temp_dir, "ops.json")
        with open(ops_path, "w") as f:
            json.dump([{"op": "remove_curve", "curve_id": "loop"}], f)

        assert main(["apply", "-s", scene_file, "--ops", ops_path]) == 0
        assert load_scene(scene_file).curves == []

    def test_short_stroke_rejected(self, temp_dir, scene_file):
        points = os.path.join(temp_dir, "dot.json")
        with open(points, "w") as f:
            json.dump([[5, 5]], f)

        assert main(["fit", "-p", points, "-s", scene_file]) == 1
        assert not os.path.exists(scene_file)

    def test_corrupt_scene_reports_error(self, temp_dir, capsys):
        bad = os.path.join(temp_dir, "bad.json")
        with open(bad, "w") as f:
            json.dump({"curves": [{"id": "x"}]}, f)

        assert main(["validate", "-s", bad]) == 1
        assert "Error" in capsys.readouterr().err

    def test_init_config(self, temp_dir):
        path = os.path.join(temp_dir, "freehandmap.yaml")

        assert main(["init-config", "-o", path]) == 0
        assert os.path.exists(path)

    def test_config_and_trace_flags(self, loop_points_file, scene_file, temp_dir):
        config_path = os.path.join(temp_dir, "config.yaml")
        main(["init-config", "-o", config_path])
        trace_path = os.path.join(temp_dir, "trace.log")

        code = main([
            "fit", "-p", loop_points_file, "-s", scene_file, "-c", config_path,
            "--trace", "--trace-level", "DEBUG", "--trace-file", trace_path,
        ])

        assert code == 0
        with open(trace_path) as f:
            assert "fit_points_to_bezier" in f.read()

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out
