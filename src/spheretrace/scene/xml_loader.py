"""Scene file loading.

Scenes are described in a small XML format; elements are processed in
document order, wherever they are nested:

    <scene>
      <film filename="spheres.ppm"/>
      <camera look_from="13 2 3" look_at="0 0 0" up="0 1 0" aperture="0.1"/>
      <material type="metal" color="0.7 0.6 0.5" fuzz="0.0"/>
      <object center="4 1 0" radius="1.0"/>
    </scene>

A ``<material>`` element becomes the current material, and each following
``<object>`` is a sphere bound to it, so consecutive objects share one
material. Before the first material element the current material is black
Lambertian. A grey ground sphere of radius 1000 centred at (0, -1000, 0) is
always added as the first sphere.

A JSON form is also accepted: the output of ``SceneManager.to_dict()`` with
extra ``camera`` and ``output`` keys.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.scene.xml_loader import load_scene_file
    >>> scene = load_scene_file("examples/scenes/three_spheres.xml")
    >>> scene.output_name
    'three_spheres.ppm'
"""

import json
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from spheretrace.camera.thin_lens import ThinLensCamera
from spheretrace.scene.manager import Scene, SceneManager

DEFAULT_OUTPUT_NAME = "default.ppm"

# Fixed optics of the XML format
DEFAULT_VFOV = 20.0
DEFAULT_FOCUS_DIST = 10.0
DEFAULT_ASPECT_RATIO = 3.0 / 2.0

GROUND_CENTER = (0.0, -1000.0, 0.0)
GROUND_RADIUS = 1000.0
GROUND_ALBEDO = (0.5, 0.5, 0.5)


class SceneFormatError(ValueError):
    """A scene description is malformed or incomplete."""


def _parse_float(text: str, what: str) -> float:
    try:
        return float(text)
    except ValueError as exc:
        raise SceneFormatError(f"Failed to parse {what}: {text!r}") from exc


def _parse_triple(text: str, what: str) -> tuple[float, float, float]:
    parts = text.split()
    if len(parts) < 3:
        raise SceneFormatError(f"Failed to parse {what}: expected three numbers, got {text!r}")
    x, y, z = (_parse_float(p, what) for p in parts[:3])
    return (x, y, z)


def _require(element: ET.Element, name: str, what: str) -> str:
    value = element.get(name)
    if value is None:
        raise SceneFormatError(f"Missing {what} ('{name}' attribute on <{element.tag}>)")
    return value


def _parse_camera(element: ET.Element, aspect_ratio: float) -> ThinLensCamera:
    lookfrom = _require(element, "look_from", "camera look from position")
    lookat = _require(element, "look_at", "camera look at position")
    return ThinLensCamera(
        lookfrom=_parse_triple(lookfrom, "camera look_from"),
        lookat=_parse_triple(lookat, "camera look_at"),
        vup=_parse_triple(_require(element, "up", "camera up vector"), "camera up"),
        vfov=DEFAULT_VFOV,
        aspect_ratio=aspect_ratio,
        aperture=_parse_float(_require(element, "aperture", "camera aperture"), "camera aperture"),
        focus_dist=DEFAULT_FOCUS_DIST,
    )


def _add_material(world: SceneManager, element: ET.Element) -> int:
    kind = _require(element, "type", "material type")
    color = (0.0, 0.0, 0.0)
    color_text = element.get("color")
    if color_text is not None:
        color = _parse_triple(color_text, "material color")

    if kind not in ("lambertian", "metal", "dielectric"):
        raise SceneFormatError(f"Unknown material type: {kind!r}")
    fuzz = ior = 0.0
    if kind == "metal":
        fuzz = _parse_float(_require(element, "fuzz", "material fuzziness"), "material fuzz")
    elif kind == "dielectric":
        ior = _parse_float(
            _require(element, "refrect_idx", "material refractive index"),
            "material refrect_idx",
        )

    try:
        if kind == "lambertian":
            return world.add_lambertian_material(color)
        if kind == "metal":
            return world.add_metal_material(color, fuzz)
        return world.add_dielectric_material(ior)
    except ValueError as exc:
        raise SceneFormatError(f"Invalid {kind} material: {exc}") from exc


def load_scene_xml(text: str, aspect_ratio: float = DEFAULT_ASPECT_RATIO) -> Scene:
    """Build a scene from XML text.

    Populates the (process-wide) world; any previous world is cleared.

    Args:
        text: The XML document.
        aspect_ratio: Aspect ratio for the camera; should match the image.

    Returns:
        The loaded Scene.

    Raises:
        SceneFormatError: If the document is malformed, a required attribute
            is missing or unparsable, a material type is unknown, or there
            is no camera element.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise SceneFormatError(f"Failed to parse XML: {exc}") from exc

    world = SceneManager()
    world.add_lambertian_sphere(GROUND_CENTER, GROUND_RADIUS, GROUND_ALBEDO)

    output_name = DEFAULT_OUTPUT_NAME
    camera: ThinLensCamera | None = None
    current_material: int | None = None
    warnings: list[str] = []

    for element in root.iter():
        if element.tag == "film":
            filename = element.get("filename")
            if filename is None:
                warnings.append(f"Missing output file name in XML, used {DEFAULT_OUTPUT_NAME}")
                output_name = DEFAULT_OUTPUT_NAME
            else:
                output_name = filename
        elif element.tag == "camera":
            camera = _parse_camera(element, aspect_ratio)
        elif element.tag == "material":
            current_material = _add_material(world, element)
        elif element.tag == "object":
            center = _parse_triple(_require(element, "center", "object center"), "object center")
            radius = _parse_float(_require(element, "radius", "object radius"), "object radius")
            if current_material is None:
                current_material = world.add_lambertian_material((0.0, 0.0, 0.0))
            try:
                world.add_sphere(center, radius, current_material)
            except ValueError as exc:
                raise SceneFormatError(f"Invalid object: {exc}") from exc

    if camera is None:
        raise SceneFormatError("Missing <camera> element")

    return Scene(world=world, camera=camera, output_name=output_name, warnings=warnings)


def load_scene_json(text: str, aspect_ratio: float = DEFAULT_ASPECT_RATIO) -> Scene:
    """Build a scene from its JSON form.

    The document holds ``materials`` and ``spheres`` (as produced by
    SceneManager.to_dict()), a ``camera`` object with ``lookfrom``,
    ``lookat``, ``vup`` and optional ``vfov``, ``aperture``, ``focus_dist``,
    and an optional ``output`` file name. No ground sphere is added.

    Raises:
        SceneFormatError: If the document is invalid.
    """
    try:
        data: dict[str, Any] = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SceneFormatError(f"Failed to parse JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SceneFormatError("Scene JSON must be an object")

    cam = data.get("camera")
    if not isinstance(cam, dict):
        raise SceneFormatError("Missing 'camera' object")
    try:
        camera = ThinLensCamera(
            lookfrom=tuple(float(v) for v in cam["lookfrom"]),
            lookat=tuple(float(v) for v in cam["lookat"]),
            vup=tuple(float(v) for v in cam["vup"]),
            vfov=float(cam.get("vfov", DEFAULT_VFOV)),
            aspect_ratio=aspect_ratio,
            aperture=float(cam.get("aperture", 0.0)),
            focus_dist=float(cam.get("focus_dist", DEFAULT_FOCUS_DIST)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise SceneFormatError(f"Invalid camera: {exc}") from exc

    world = SceneManager()
    try:
        world.from_dict(data)
    except (TypeError, ValueError) as exc:
        raise SceneFormatError(f"Invalid world: {exc}") from exc

    return Scene(
        world=world,
        camera=camera,
        output_name=str(data.get("output", DEFAULT_OUTPUT_NAME)),
    )


def load_scene_file(path: str | Path, aspect_ratio: float = DEFAULT_ASPECT_RATIO) -> Scene:
    """Load a scene file, choosing the format from its suffix.

    ".json" files use the JSON form; everything else is read as XML.

    Raises:
        OSError: If the file cannot be read.
        SceneFormatError: If the contents are invalid.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return load_scene_json(text, aspect_ratio)
    return load_scene_xml(text, aspect_ratio)
