"""Tests for layer extraction from archives and directories."""

import pytest

from layerforge.core.models import Layer, LayerStore
from layerforge.errors import ExtractionError
from layerforge.sessions import (
    MAX_TRAITS_PER_LAYER,
    extract_layers,
    extract_layers_from_directory,
    sanitize_layer_name,
    validate_layers,
)


class TestSanitizeLayerName:
    def test_replaces_non_alphanumerics(self):
        assert sanitize_layer_name("Hat Layer") == "Hat_Layer"
        assert sanitize_layer_name("eyes-2.0") == "eyes_2_0"
        assert sanitize_layer_name("Background") == "Background"


class TestExtractLayers:
    def test_scenario_archive(self, scenario_zip):
        store = extract_layers(scenario_zip)
        assert store.names == ["Background", "Eyes", "Hat"]
        assert store["Background"].traits == ["Blue", "Red"]
        assert store["Eyes"].traits == ["Laser", "Normal"]
        assert store["Hat"].traits == ["None"]
        assert store["Background"].image("Blue").startswith(b"\x89PNG")

    def test_skips_noise(self, make_zip, make_png):
        archive = make_zip(
            {
                "Background/Blue.png": make_png(),
                "Background/.DS_Store": b"junk",
                "Background/notes.txt": b"not an image",
                "__MACOSX/Background/._Blue.png": b"resource fork",
                "readme.png": make_png(),
                "Empty/readme.txt": b"nothing here",
                "Eyes/Laser Red.png": make_png(),
                "Hat Layer/Cap.PNG": make_png(),
                "Eyes/nested/Deep.png": make_png(),
            }
        )
        store = extract_layers(archive)
        assert store.names == ["Background", "Eyes", "Hat_Layer"]
        assert store["Background"].traits == ["Blue"]
        assert store["Eyes"].traits == ["Laser Red"]
        assert store["Hat_Layer"].traits == ["Cap"]

    def test_unwraps_single_root_folder(self, make_zip, make_png):
        archive = make_zip(
            {
                "collection/Background/Blue.png": make_png(),
                "collection/Eyes/Laser.png": make_png(),
            }
        )
        store = extract_layers(archive)
        assert store.names == ["Background", "Eyes"]

    def test_colliding_sanitized_names_keep_first(self, make_zip, make_png):
        archive = make_zip(
            {
                "Hat Layer/Cap.png": make_png(),
                "Hat-Layer/Crown.png": make_png(),
            }
        )
        store = extract_layers(archive)
        assert store.names == ["Hat_Layer"]
        assert store["Hat_Layer"].traits == ["Cap"]

    def test_duplicate_trait_stem_keeps_first(self, make_zip, make_png):
        archive = make_zip(
            {
                "Eyes/Laser.jpg": make_png((1, 1, 1, 255)),
                "Eyes/Laser.png": make_png((2, 2, 2, 255)),
            }
        )
        store = extract_layers(archive)
        assert store["Eyes"].traits == ["Laser"]

    def test_reports_progress(self, scenario_zip):
        calls = []
        extract_layers(scenario_zip, on_progress=lambda current, total: calls.append((current, total)))
        assert calls == [(1, 3), (2, 3), (3, 3)]

    def test_invalid_archive_raises(self):
        with pytest.raises(ExtractionError, match="ZIP"):
            extract_layers(b"definitely not a zip")

    def test_empty_archive(self, make_zip):
        store = extract_layers(make_zip({"notes.txt": b"hi"}))
        assert len(store) == 0


class TestExtractFromDirectory:
    def test_reads_layer_folders(self, tmp_path, make_png):
        (tmp_path / "Background").mkdir()
        (tmp_path / "Background" / "Blue.png").write_bytes(make_png())
        (tmp_path / "Eyes").mkdir()
        (tmp_path / "Eyes" / "Laser.png").write_bytes(make_png())
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "Blob.png").write_bytes(b"x")

        store = extract_layers_from_directory(tmp_path)
        assert store.names == ["Background", "Eyes"]
        assert store["Eyes"].traits == ["Laser"]

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(ExtractionError):
            extract_layers_from_directory(tmp_path / "missing")


class TestValidateLayers:
    def test_valid_store(self, scenario_store):
        result = validate_layers(scenario_store)
        assert result.valid
        assert result.warnings == []

    def test_no_layers(self):
        result = validate_layers(LayerStore())
        assert [e.category for e in result.errors] == ["NO_LAYERS"]

    def test_empty_layer(self):
        result = validate_layers(LayerStore([Layer(name="Empty")]))
        assert [e.category for e in result.errors] == ["EMPTY_LAYER"]

    def test_too_many_traits(self, make_png):
        image = make_png()
        traits = [f"t{i}" for i in range(MAX_TRAITS_PER_LAYER + 1)]
        store = LayerStore([Layer(name="Crowded", traits=traits, images={t: image for t in traits})])
        result = validate_layers(store)
        assert [e.category for e in result.errors] == ["TOO_MANY_TRAITS"]

    def test_missing_and_invalid_images(self, make_png):
        store = LayerStore(
            [
                Layer(
                    name="Eyes",
                    traits=["Normal", "Laser", "Broken"],
                    images={"Normal": make_png(), "Broken": b"garbage"},
                )
            ]
        )
        result = validate_layers(store)
        categories = {(e.category, e.location) for e in result.errors}
        assert categories == {("MISSING_IMAGE", "Eyes.Laser"), ("INVALID_IMAGE", "Eyes.Broken")}

    def test_image_too_large(self, make_png):
        store = LayerStore(
            [Layer(name="Background", traits=["Huge"], images={"Huge": make_png(size=(2049, 1))})]
        )
        result = validate_layers(store)
        assert [e.category for e in result.errors] == ["IMAGE_TOO_LARGE"]
        assert result.errors[0].value == "2049x1"
