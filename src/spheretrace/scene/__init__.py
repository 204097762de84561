"""Scene module.

Components:
    intersection: Sphere storage fields and the nearest-hit query
    manager: Material arena, SceneManager and the Scene bundle
    xml_loader: XML and JSON scene files
"""

from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    Scene,
    SceneConfig,
    SceneManager,
    SphereInfo,
    get_material_type,
    get_material_type_index,
)
from .xml_loader import (
    SceneFormatError,
    load_scene_file,
    load_scene_json,
    load_scene_xml,
)

__all__ = [
    "SceneHitRecord",
    "MAX_SPHERES",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    "SceneManager",
    "Scene",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    "SceneFormatError",
    "load_scene_xml",
    "load_scene_json",
    "load_scene_file",
]
