"""Tests for scene file loading.

Tests cover:
- XML element handling (film, camera, material, object)
- The implicit ground sphere and default black material
- Error reporting for malformed or incomplete documents
- The JSON scene form and suffix dispatch
"""

from pathlib import Path

import pytest

SCENES_DIR = Path(__file__).parent.parent / "examples" / "scenes"

CAMERA = '<camera look_from="13 2 3" look_at="0 0 0" up="0 1 0" aperture="0.1"/>'


def _xml(*elements):
    return "<scene>" + "".join(elements) + "</scene>"


class TestXmlScene:
    def test_full_scene(self):
        from spheretrace.scene.manager import MaterialType
        from spheretrace.scene.xml_loader import load_scene_xml

        scene = load_scene_xml(
            _xml(
                '<film filename="out.ppm"/>',
                CAMERA,
                '<material type="dielectric" refrect_idx="1.5"/>',
                '<object center="0 1 0" radius="1.0"/>',
                '<material type="lambertian" color="0.4 0.2 0.1"/>',
                '<object center="-4 1 0" radius="1.0"/>',
                '<material type="metal" color="0.7 0.6 0.5" fuzz="0.0"/>',
                '<object center="4 1 0" radius="1.0"/>',
            )
        )

        assert scene.output_name == "out.ppm"
        assert scene.warnings == []
        world = scene.world
        assert world.get_sphere_count() == 4
        types = [m.material_type for m in world.materials]
        assert types == [
            MaterialType.LAMBERTIAN,  # ground
            MaterialType.DIELECTRIC,
            MaterialType.LAMBERTIAN,
            MaterialType.METAL,
        ]
        assert world.spheres[3].center == (4.0, 1.0, 0.0)
        assert world.materials[3].params == {"albedo": (0.7, 0.6, 0.5), "fuzz": 0.0}

    def test_camera_uses_fixed_optics(self):
        from spheretrace.scene.xml_loader import load_scene_xml

        camera = load_scene_xml(_xml(CAMERA), aspect_ratio=2.0).camera
        assert camera.lookfrom == (13.0, 2.0, 3.0)
        assert camera.lookat == (0.0, 0.0, 0.0)
        assert camera.vup == (0.0, 1.0, 0.0)
        assert camera.aperture == pytest.approx(0.1)
        assert camera.vfov == 20.0
        assert camera.focus_dist == 10.0
        assert camera.aspect_ratio == 2.0

    def test_ground_sphere_is_always_first(self):
        from spheretrace.scene.xml_loader import load_scene_xml

        world = load_scene_xml(_xml(CAMERA)).world
        assert world.get_sphere_count() == 1
        ground = world.spheres[0]
        assert ground.center == (0.0, -1000.0, 0.0)
        assert ground.radius == 1000.0
        assert world.materials[ground.material_id].params["albedo"] == (0.5, 0.5, 0.5)

    def test_consecutive_objects_share_material(self):
        from spheretrace.scene.xml_loader import load_scene_xml

        world = load_scene_xml(
            _xml(
                CAMERA,
                '<material type="dielectric" refrect_idx="1.5"/>',
                '<object center="0 1 0" radius="1.0"/>',
                '<object center="0 1 0" radius="-0.9"/>',
            )
        ).world
        assert world.get_material_count() == 2
        assert world.spheres[1].material_id == world.spheres[2].material_id == 1
        assert world.spheres[2].radius == pytest.approx(-0.9)

    def test_object_before_material_is_black_lambertian(self):
        from spheretrace.scene.manager import MaterialType
        from spheretrace.scene.xml_loader import load_scene_xml

        world = load_scene_xml(
            _xml(
                '<object center="0 1 0" radius="1.0"/>',
                '<object center="2 1 0" radius="1.0"/>',
                CAMERA,
            )
        ).world
        black = world.materials[world.spheres[1].material_id]
        assert black.material_type == MaterialType.LAMBERTIAN
        assert black.params["albedo"] == (0.0, 0.0, 0.0)
        # Created once and reused
        assert world.spheres[2].material_id == black.material_id
        assert world.get_material_count() == 2

    def test_nested_elements_are_processed_in_document_order(self):
        from spheretrace.scene.xml_loader import load_scene_xml

        scene = load_scene_xml(
            _xml(
                "<group>",
                CAMERA,
                '<material type="lambertian" color="1 0 0"/>',
                "</group>",
                '<object center="0 1 0" radius="1.0"/>',
            )
        )
        assert scene.world.spheres[1].material_id == 1

    def test_missing_film_keeps_default_name(self):
        from spheretrace.scene.xml_loader import load_scene_xml

        scene = load_scene_xml(_xml(CAMERA))
        assert scene.output_name == "default.ppm"
        assert scene.warnings == []

    def test_film_without_filename_warns(self):
        from spheretrace.scene.xml_loader import load_scene_xml

        scene = load_scene_xml(_xml("<film/>", CAMERA))
        assert scene.output_name == "default.ppm"
        assert scene.warnings == ["Missing output file name in XML, used default.ppm"]

    def test_extra_triple_components_are_ignored(self):
        from spheretrace.scene.xml_loader import load_scene_xml

        world = load_scene_xml(_xml(CAMERA, '<object center="1 2 3 4" radius="1"/>')).world
        assert world.spheres[1].center == (1.0, 2.0, 3.0)

    def test_random_cover_scene_with_a_material_per_sphere(self):
        """A 20x20 grid of small diffuse spheres, each with its own colour."""
        from spheretrace.scene.xml_loader import load_scene_xml

        elements = [CAMERA]
        for a in range(-10, 10):
            for b in range(-10, 10):
                grey = (a + 10) / 20.0
                elements.append(f'<material type="lambertian" color="{grey} 0.5 {grey}"/>')
                elements.append(f'<object center="{a + 0.5} 0.2 {b + 0.5}" radius="0.2"/>')

        world = load_scene_xml(_xml(*elements)).world

        assert world.get_sphere_count() == 401
        assert world.get_material_count() == 401
        assert world.spheres[-1].material_id == 400


class TestXmlErrors:
    @pytest.mark.parametrize(
        "elements,message",
        [
            (('<camera look_at="0 0 0" up="0 1 0" aperture="0.1"/>',), "look from"),
            (('<camera look_from="1 1 1" look_at="0 0 0" up="0 1 0"/>',), "aperture"),
            ((CAMERA, '<material color="1 1 1"/>'), "material type"),
            ((CAMERA, '<material type="metal" color="1 1 1"/>'), "fuzziness"),
            ((CAMERA, '<material type="dielectric"/>'), "refractive index"),
            ((CAMERA, '<object radius="1"/>'), "object center"),
            ((CAMERA, '<object center="0 0 0"/>'), "object radius"),
        ],
    )
    def test_missing_attribute(self, elements, message):
        from spheretrace.scene.xml_loader import SceneFormatError, load_scene_xml

        with pytest.raises(SceneFormatError, match=message):
            load_scene_xml(_xml(*elements))

    def test_unknown_material_type(self):
        from spheretrace.scene.xml_loader import SceneFormatError, load_scene_xml

        with pytest.raises(SceneFormatError, match="Unknown material type"):
            load_scene_xml(_xml(CAMERA, '<material type="plastic"/>'))

    @pytest.mark.parametrize(
        "element",
        [
            '<object center="0 zero 0" radius="1"/>',
            '<object center="0 0" radius="1"/>',
            '<object center="0 0 0" radius="big"/>',
            '<object center="0 0 0" radius="0"/>',
            '<material type="lambertian" color="2 0 0"/>',
        ],
    )
    def test_invalid_values(self, element):
        from spheretrace.scene.xml_loader import SceneFormatError, load_scene_xml

        with pytest.raises(SceneFormatError):
            load_scene_xml(_xml(CAMERA, element))

    def test_malformed_xml(self):
        from spheretrace.scene.xml_loader import SceneFormatError, load_scene_xml

        with pytest.raises(SceneFormatError, match="Failed to parse XML"):
            load_scene_xml("<scene><camera></scene>")

    def test_missing_camera(self):
        from spheretrace.scene.xml_loader import SceneFormatError, load_scene_xml

        with pytest.raises(SceneFormatError, match="camera"):
            load_scene_xml(_xml('<object center="0 0 0" radius="1"/>'))

    def test_scene_format_error_is_value_error(self):
        from spheretrace.scene.xml_loader import SceneFormatError

        assert issubclass(SceneFormatError, ValueError)


class TestJsonScene:
    def test_load_json(self):
        from spheretrace.scene.xml_loader import load_scene_json

        scene = load_scene_json(
            """{
                "output": "j.png",
                "camera": {"lookfrom": [0, 0, 0], "lookat": [0, 0, -1], "vup": [0, 1, 0]},
                "materials": [{"type": "metal", "albedo": [0.5, 0.5, 0.5], "fuzz": 0.2}],
                "spheres": [{"center": [0, 0, -1], "radius": 0.5, "material_id": 0}]
            }"""
        )
        assert scene.output_name == "j.png"
        assert scene.camera.vfov == 20.0
        assert scene.camera.aperture == 0.0
        assert scene.camera.focus_dist == 10.0
        # No implicit ground sphere
        assert scene.world.get_sphere_count() == 1

    @pytest.mark.parametrize(
        "text,message",
        [
            ("{not json", "Failed to parse JSON"),
            ("[]", "object"),
            ('{"materials": []}', "camera"),
            ('{"camera": {"lookfrom": [0, 0, 0]}}', "Invalid camera"),
        ],
    )
    def test_invalid_json(self, text, message):
        from spheretrace.scene.xml_loader import SceneFormatError, load_scene_json

        with pytest.raises(SceneFormatError, match=message):
            load_scene_json(text)

    def test_invalid_world(self):
        from spheretrace.scene.xml_loader import SceneFormatError, load_scene_json

        text = (
            '{"camera": {"lookfrom": [0, 0, 0], "lookat": [0, 0, -1], "vup": [0, 1, 0]},'
            ' "materials": [{"type": "plastic"}]}'
        )
        with pytest.raises(SceneFormatError, match="Invalid world"):
            load_scene_json(text)


class TestSceneFiles:
    def test_three_spheres_example(self):
        from spheretrace.scene.xml_loader import load_scene_file

        scene = load_scene_file(SCENES_DIR / "three_spheres.xml")
        assert scene.output_name == "three_spheres.ppm"
        assert scene.world.get_sphere_count() == 4
        assert scene.world.get_material_count() == 4

    def test_glass_bubble_example(self):
        from spheretrace.scene.xml_loader import load_scene_file

        scene = load_scene_file(str(SCENES_DIR / "glass_bubble.xml"))
        assert scene.output_name == "glass_bubble.png"
        assert [s.radius for s in scene.world.spheres][2:4] == [1.0, pytest.approx(-0.9)]

    def test_json_example(self):
        from spheretrace.scene.xml_loader import load_scene_file

        scene = load_scene_file(SCENES_DIR / "small_world.json")
        assert scene.output_name == "small_world.ppm"
        assert scene.world.get_sphere_count() == 5
        assert scene.camera.aperture == 2.0

    def test_missing_file(self, tmp_path):
        from spheretrace.scene.xml_loader import load_scene_file

        with pytest.raises(OSError):
            load_scene_file(tmp_path / "nope.xml")
