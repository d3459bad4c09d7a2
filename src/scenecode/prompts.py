"""System prompts that teach the model the response protocol.

The prompt asks for code wrapped in ``[INSERT_CODE]`` fences followed by
``[RUN_SCENE]``, and tells the model what the host page already provides so
it does not emit conflicting boilerplate.
"""

from __future__ import annotations

import dataclasses

from scenecode.constants import INSERT_CODE_CLOSE, INSERT_CODE_OPEN, RUN_SCENE


@dataclasses.dataclass(frozen=True, slots=True)
class SceneLibrary:
    """A 3D library the assistant can write code for."""

    id: str
    display_name: str
    code_language: str
    skeleton: str
    host_globals: tuple[str, ...]
    rules: tuple[str, ...] = ()


BABYLON = SceneLibrary(
    id="babylonjs",
    display_name="Babylon.js",
    code_language="javascript",
    skeleton="""\
const createScene = () => {
    const scene = new BABYLON.Scene(engine);

    const camera = new BABYLON.ArcRotateCamera("camera", -Math.PI / 2, Math.PI / 3, 10, BABYLON.Vector3.Zero(), scene);
    camera.attachControl(canvas, true);

    const light = new BABYLON.HemisphericLight("light", new BABYLON.Vector3(0, 1, 0), scene);
    light.intensity = 0.7;

    // Your 3D objects here

    return scene;
};

const scene = createScene();""",
    host_globals=("canvas", "engine"),
    rules=(
        "Use BABYLON.MeshBuilder.CreateBox/CreateSphere/CreateGround/CreateTorus "
        "(never Mesh-Builder, CreateCube or CreateRing)",
        "Use BABYLON.StandardMaterial for materials",
        "Use new BABYLON.Color3(r, g, b) with values between 0 and 1",
        'Do not call document.createElement("canvas"), new BABYLON.Engine() '
        "or engine.runRenderLoop()",
    ),
)

THREE = SceneLibrary(
    id="threejs",
    display_name="Three.js",
    code_language="javascript",
    skeleton="""\
const createScene = () => {
    const scene = new THREE.Scene();

    const camera = new THREE.PerspectiveCamera(75, window.innerWidth / window.innerHeight, 0.1, 1000);
    camera.position.set(0, 5, 10);

    const light = new THREE.DirectionalLight(0xffffff, 1);
    light.position.set(5, 10, 7.5);
    scene.add(light, new THREE.AmbientLight(0x404040, 0.6));

    // Your 3D objects here

    return { scene, camera };
};

const { scene, camera } = createScene();""",
    host_globals=("renderer",),
    rules=(
        "Do not create a new WebGLRenderer or call renderer.setAnimationLoop",
        "Use MeshStandardMaterial for lit materials",
    ),
)

AFRAME = SceneLibrary(
    id="aframe",
    display_name="A-Frame",
    code_language="html",
    skeleton="""\
<a-scene embedded vr-mode-ui="enabled: true" background="color: #212">
    <a-assets></a-assets>

    <a-light type="ambient" color="#404040" intensity="0.6"></a-light>
    <a-light type="directional" position="10 10 5" color="#ffffff" intensity="0.8"></a-light>

    <!-- Your 3D objects here -->

    <a-camera look-controls wasd-controls position="0 1.6 0">
        <a-cursor color="#fff"></a-cursor>
    </a-camera>
</a-scene>""",
    host_globals=(),
    rules=(
        "Use <a-scene> as the root element; do not include DOCTYPE, html, head "
        "or body tags",
        "Always include ambient and directional lighting and a camera with "
        "look-controls and wasd-controls",
        'Use position="x y z" and rotation="x y z" (degrees) attributes',
        "Prefer primitives such as a-box, a-sphere and a-plane",
    ),
)

REACT_THREE_FIBER = SceneLibrary(
    id="react-three-fiber",
    display_name="React Three Fiber",
    code_language="typescript",
    skeleton="""\
import React, { useRef } from 'react'
import { createRoot } from 'react-dom/client'
import { Canvas, useFrame } from '@react-three/fiber'
import { OrbitControls } from '@react-three/drei'
import * as THREE from 'three'

function Scene() {
  return (
    <>
      <ambientLight intensity={0.8} />
      <directionalLight position={[2, 2, 2]} intensity={1} />
      {/* Your 3D components here */}
      <OrbitControls />
    </>
  )
}

function App() {
  return (
    <Canvas style={{ width: '100%', height: '100%' }} camera={{ position: [0, 0, 5], fov: 75 }}>
      <Scene />
    </Canvas>
  )
}

createRoot(document.getElementById('root')!).render(<App />)""",
    host_globals=(),
    rules=(
        "Write TSX with type annotations, for example useRef<THREE.Mesh>(null)",
        "Mount to the existing #root element",
        "Animate with useFrame((state, delta) => ...)",
        "Use <mesh>, <boxGeometry> and <meshStandardMaterial> for objects",
    ),
)

REACTYLON = SceneLibrary(
    id="reactylon",
    display_name="Reactylon",
    code_language="typescript",
    skeleton="""\
import React from 'react'
import { createRoot } from 'react-dom/client'
import { Engine, Scene, ArcRotateCamera, HemisphericLight, XRExperience } from 'reactylon'

function XRScene() {
  return (
    <Engine antialias adaptToDeviceRatio canvasId="canvas">
      <Scene clearColor="#2c2c54">
        <ArcRotateCamera target={[0, 0, 0]} alpha={Math.PI / 4} beta={Math.PI / 3} radius={10} />
        <HemisphericLight direction={[0, 1, 0]} intensity={0.9} />

        {/* Your XR components here */}

        <XRExperience baseExperience={true} floorMeshes={["ground"]} />
      </Scene>
    </Engine>
  )
}

createRoot(document.getElementById('root')!).render(<XRScene />)""",
    host_globals=(),
    rules=(
        "Write TSX with type annotations",
        'Mount to the existing #root element and use canvasId="canvas" on <Engine>',
        "Use declarative components such as <Box>, <Sphere>, <Ground> and "
        "<StandardMaterial>",
        "Always include <XRExperience> for WebXR support",
    ),
)

LIBRARIES: dict[str, SceneLibrary] = {
    lib.id: lib for lib in (BABYLON, THREE, AFRAME, REACT_THREE_FIBER, REACTYLON)
}


def get_library(library_id: str) -> SceneLibrary:
    try:
        return LIBRARIES[library_id]
    except KeyError:
        raise ValueError(
            f"Unknown library {library_id!r}. Available: {sorted(LIBRARIES)}"
        ) from None


def build_system_prompt(
    library: SceneLibrary = BABYLON, current_code: str | None = None
) -> str:
    """Compose the system prompt for ``library``, embedding the editor's code if any."""
    guidelines = ["Always provide COMPLETE code; never truncate or abbreviate it"]
    if library.host_globals:
        globals_list = ", ".join(f"'{name}'" for name in library.host_globals)
        guidelines.append(
            f"The host page already provides {globals_list}; use them, do not "
            "recreate them"
        )
    guidelines.append("Follow this structure:")
    guideline_lines = "\n".join(f"- {line}" for line in guidelines)
    rules = "\n".join(f"- {rule}" for rule in library.rules)
    prompt = f"""\
You are an expert {library.display_name} assistant helping users build 3D scenes.

When the user asks for anything scene related, ALWAYS respond with:
1. A brief explanation of what you are creating
2. The complete working code wrapped exactly like this:
{INSERT_CODE_OPEN}```{library.code_language}
// code here
```{INSERT_CODE_CLOSE}
3. A short description of the key features
4. {RUN_SCENE} on its own line at the very end so the scene runs

Code guidelines:
{guideline_lines}

{library.skeleton}

{rules}"""
    if current_code and current_code.strip():
        prompt += (
            f"\n\nCurrent scene code:\n```{library.code_language}\n"
            f"{current_code.strip()}\n```"
        )
    return prompt
