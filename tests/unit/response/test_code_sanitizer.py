import re

import pytest

from scenecode.response.sanitizer import (
    CodeSanitizer,
    Correction,
    remove_render_loops,
    strip_markers,
    trim_orphan_closers,
)

pytestmark = pytest.mark.unit

BOILERPLATE_SCENE = """\
const canvas = document.createElement("canvas");
document.body.appendChild(canvas);
const engine = new BABYLON.Engine(canvas, true);
const scene = new BABYLON.Scene(engine);
engine.runRenderLoop(() => {
    scene.render();
});
window.addEventListener("resize", () => engine.resize());
"""


def test_hyphenated_builder_name_is_corrected():
    result = CodeSanitizer().apply(
        'const box = Mesh-Builder.CreateBox("b", {size: 1}, scene);'
    )

    assert result.code == 'const box = MeshBuilder.CreateBox("b", {size: 1}, scene);'
    assert result.corrections == ("mesh_builder_name",)


@pytest.mark.parametrize(
    ("code", "expected", "name"),
    [
        (
            'BABYLON.MeshBuilder.CreateCube("c", {}, scene);',
            'BABYLON.MeshBuilder.CreateBox("c", {}, scene);',
            "create_cube",
        ),
        (
            'BABYLON.MeshBuilder.CreateRing("r", {}, scene);',
            'BABYLON.MeshBuilder.CreateTorus("r", {}, scene);',
            "create_ring",
        ),
        (
            'const m = new BABYLON.Material("m", scene);',
            'const m = new BABYLON.StandardMaterial("m", scene);',
            "abstract_material",
        ),
        (
            'const c = new BABYLON.Camera("c", pos, scene);',
            'const c = new BABYLON.FreeCamera("c", pos, scene);',
            "abstract_camera",
        ),
        (
            'const l = new BABYLON.Light("l", scene);',
            'const l = new BABYLON.HemisphericLight("l", scene);',
            "abstract_light",
        ),
    ],
)
def test_api_name_corrections(code, expected, name):
    result = CodeSanitizer().apply(code)

    assert result.code == expected
    assert result.corrections == (name,)


@pytest.mark.parametrize(
    "code",
    [
        'const m = new BABYLON.StandardMaterial("m", scene);',
        "camera.attachControl(canvas, true);",
        "const isMaterial = mesh.material instanceof BABYLON.Material;",
    ],
)
def test_valid_api_usage_is_left_alone(code):
    result = CodeSanitizer().apply(code)

    assert result.code == code
    assert result.corrections == ()


def test_host_boilerplate_is_removed():
    result = CodeSanitizer().apply(BOILERPLATE_SCENE)

    assert result.code == (
        "const scene = new BABYLON.Scene(engine);\n"
        'window.addEventListener("resize", () => engine.resize());'
    )
    assert result.corrections == (
        "canvas_creation",
        "canvas_append",
        "engine_creation",
        "render_loop",
    )


def test_render_loop_with_parens_inside_strings():
    code = 'engine.runRenderLoop(function () { log(")"); scene.render(); });\nrest();'

    fixed, removed = remove_render_loops(code)

    assert removed is True
    assert fixed == "rest();"


def test_unbalanced_render_loop_is_kept():
    code = "engine.runRenderLoop(() => {\n    scene.render();"

    fixed, removed = remove_render_loops(code)

    assert removed is False
    assert fixed == code


def test_markers_and_fences_are_stripped():
    payload = "[INSERT_CODE]```javascript\nconst a = 1;\n```[/INSERT_CODE]\n[RUN_SCENE]"

    result = CodeSanitizer().apply(payload)

    assert result.code == "const a = 1;"
    assert result.corrections == ("control_markers",)


def test_nested_marker_fragments_do_not_survive():
    assert strip_markers("[INSERT[RUN_SCENE]_CODE]x") == "x"


def test_blank_runs_collapse_without_being_reported():
    result = CodeSanitizer().apply("const a = 1;\n\n\n\n   \nconst b = 2;")

    assert result.code == "const a = 1;\n\nconst b = 2;"
    assert result.corrections == ()


def test_single_blank_line_is_kept():
    code = "const a = 1;\n\nconst b = 2;"

    assert CodeSanitizer().sanitize(code) == code


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("const a = 1;\n}\n})", "const a = 1;"),
        ("function f() {\n    return 1;\n}", "function f() {\n    return 1;\n}"),
        ("const xs = [1, 2]]", "const xs = [1, 2]"),
        (")))", ""),
    ],
)
def test_orphan_closers(code, expected):
    assert trim_orphan_closers(code) == expected


def test_custom_correction_table():
    custom = Correction("var_to_let", re.compile(r"\bvar\b"), "let")
    sanitizer = CodeSanitizer(corrections=(custom,))

    result = sanitizer.apply("var a = Mesh-Builder;")

    assert result.code == "let a = Mesh-Builder;"
    assert result.corrections == ("var_to_let",)


@pytest.mark.parametrize("payload", ["", "   \n\t", "```", "[RUN_SCENE]"])
def test_sanitize_is_total(payload):
    assert CodeSanitizer().sanitize(payload) == ""
