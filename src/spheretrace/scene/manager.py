"""Scene manager coordinating spheres and their materials.

A scene is an insertion-ordered list of spheres plus a material arena. Every
material added to the scene gets a unified material id; spheres refer to
materials by that id, so many spheres can share one material value. The
arena maps each id to its variant (Lambertian, Metal, Dielectric) and to the
index of its parameters in the variant's own registry, which is what the
integrator uses to dispatch scattering inside kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.scene.manager import SceneManager
    >>> world = SceneManager()
    >>> ground = world.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    >>> world.add_sphere(center=(0, -1000, 0), radius=1000, material_id=ground)
    >>> world.add_dielectric_sphere(center=(0, 1, 0), radius=1.0, ior=1.5)
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

from spheretrace.camera.thin_lens import ThinLensCamera
from spheretrace.materials.dielectric import (
    MAX_DIELECTRIC_MATERIALS,
    add_dielectric_material,
    clear_dielectric_materials,
)
from spheretrace.materials.lambertian import (
    MAX_LAMBERTIAN_MATERIALS,
    add_lambertian_material,
    clear_lambertian_materials,
)
from spheretrace.materials.metal import (
    MAX_METAL_MATERIALS,
    add_metal_material,
    clear_metal_materials,
)
from spheretrace.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

# Type alias for 3D vectors
vec3 = tm.vec3


class MaterialType(IntEnum):
    """Material variants, used for scatter dispatch in the integrator."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Maximum number of materials across all variants
MAX_MATERIALS = MAX_LAMBERTIAN_MATERIALS + MAX_METAL_MATERIALS + MAX_DIELECTRIC_MATERIALS

# material_types[i] stores the MaterialType for material id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the variant-local registry index for id i
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material variant for a material id.

    Args:
        material_id: The unified material id.

    Returns:
        The variant as an integer (see MaterialType), or -1 for an
        unknown id.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the variant-local registry index for a material id.

    Returns:
        The index into the variant's parameter fields, or -1 for an
        unknown id.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


def _as_triple(values: Any, name: str) -> tuple[float, float, float]:
    try:
        x, y, z = (float(v) for v in values)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be three numbers, got {values!r}") from exc
    return (x, y, z)


@dataclass
class MaterialInfo:
    """Host-side record of a registered material.

    Attributes:
        material_id: The unified material id.
        material_type: The material variant.
        type_index: The index within the variant's registry.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Host-side record of a sphere in the world.

    Attributes:
        sphere_index: The index in the sphere storage fields.
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material id assigned to the sphere.
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Serializable description of a world.

    Attributes:
        materials: Material configurations in arena order.
        spheres: Sphere configurations in insertion order.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


class SceneManager:
    """World builder keeping the Taichi fields and a host-side mirror in sync.

    Taichi fields are module-level, so there is effectively one world per
    process. Creating a SceneManager clears any previous world.

    Attributes:
        materials: MaterialInfo for every registered material, indexed by id.
        spheres: SphereInfo for every sphere, in insertion order.

    Example:
        >>> world = SceneManager()
        >>> red = world.add_lambertian_material(albedo=(0.8, 0.1, 0.1))
        >>> gold = world.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> world.add_sphere((0, 0, -1), 0.5, red)
        >>> world.add_sphere((1, 0, -1), 0.5, gold)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()

    def clear(self) -> None:
        """Remove every sphere and material."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a diffuse material.

        Args:
            albedo: The diffuse reflectance as (R, G, B), each in [0, 1].

        Returns:
            The unified material id.

        Raises:
            RuntimeError: If a material capacity is exceeded.
            ValueError: If any albedo component is outside [0, 1].
        """
        albedo = _as_triple(albedo, "albedo")
        type_index = add_lambertian_material(albedo)
        return self._register_material(MaterialType.LAMBERTIAN, type_index, {"albedo": albedo})

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal material.

        Args:
            albedo: The reflective color as (R, G, B), each in [0, 1].
            fuzz: Reflection perturbation radius in [0, 1]. 0 is a mirror.

        Returns:
            The unified material id.

        Raises:
            RuntimeError: If a material capacity is exceeded.
            ValueError: If albedo or fuzz is out of range.
        """
        albedo = _as_triple(albedo, "albedo")
        type_index = add_metal_material(albedo, float(fuzz))
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": albedo, "fuzz": float(fuzz)}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Add a dielectric (glass-like) material.

        Args:
            ior: Index of refraction, must be positive. Air=1.0,
                Water=1.33, Glass=1.5, Diamond=2.4.

        Returns:
            The unified material id.

        Raises:
            RuntimeError: If a material capacity is exceeded.
            ValueError: If ior is not positive.
        """
        type_index = add_dielectric_material(float(ior))
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": float(ior)})

    def get_material_count(self) -> int:
        """Get the total number of materials in the arena."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    # =========================================================================
    # Sphere Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Append a sphere bound to an existing material.

        Args:
            center: The center point as (x, y, z).
            radius: The radius, must be non-zero. A negative radius flips
                the outward normal, which turns a dielectric sphere into a
                hollow bubble.
            material_id: A unified material id from add_*_material().

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If the radius is zero or the material id is unknown.
        """
        center = _as_triple(center, "center")
        radius = float(radius)
        if radius == 0.0:
            raise ValueError("Sphere radius must be non-zero")
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

        sphere_index = add_sphere(vec3(center[0], center[1], center[2]), radius, material_id)
        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center,
                radius=radius,
                material_id=material_id,
            )
        )
        return sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new diffuse material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        ior: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(ior)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the world to a configuration object."""
        config = SceneConfig()

        for mat in self.materials:
            mat_config: dict[str, Any] = {"type": mat.material_type.name.lower()}
            for key, value in mat.params.items():
                mat_config[key] = list(value) if isinstance(value, tuple) else value
            config.materials.append(mat_config)

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Replace the world with the one described by config.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for mat_config in config.materials:
            mat_type = str(mat_config.get("type", "")).lower()
            if mat_type == "lambertian":
                self.add_lambertian_material(mat_config.get("albedo", [0.0, 0.0, 0.0]))
            elif mat_type == "metal":
                self.add_metal_material(
                    mat_config.get("albedo", [0.0, 0.0, 0.0]),
                    mat_config.get("fuzz", 0.0),
                )
            elif mat_type == "dielectric":
                self.add_dielectric_material(mat_config.get("ior", 1.5))
            else:
                raise ValueError(f"Unknown material type: {mat_type!r}")

        for sphere_config in config.spheres:
            if "center" not in sphere_config or "radius" not in sphere_config:
                raise ValueError(f"Sphere needs 'center' and 'radius': {sphere_config!r}")
            self.add_sphere(
                sphere_config["center"],
                sphere_config["radius"],
                int(sphere_config.get("material_id", 0)),
            )

    def to_dict(self) -> dict[str, Any]:
        """Export the world to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a world from a dictionary with 'materials' and 'spheres' keys."""
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
        )
        self.from_config(config)

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS


@dataclass
class Scene:
    """A loaded scene: the world, its camera and the output file name.

    Attributes:
        world: The populated SceneManager.
        camera: Camera configuration (call setup_camera before rendering).
        output_name: File name the rendered image is written to.
        warnings: Non-fatal problems found while loading.
    """

    world: SceneManager
    camera: ThinLensCamera
    output_name: str = "default.ppm"
    warnings: list[str] = field(default_factory=list)
