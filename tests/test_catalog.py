"""Tests for the persona catalog."""

import pytest
import yaml
from pydantic import ValidationError

from storefront.core.models import Archetype, Persona
from storefront.population import (
    CatalogError,
    builtin_catalog,
    get_persona,
    load_catalog,
    save_catalog,
)


class TestBuiltinCatalog:
    def test_twenty_unique_personas(self):
        personas = builtin_catalog()
        assert len(personas) == 20
        assert len({p.id for p in personas}) == 20

    def test_every_archetype_present(self):
        archetypes = {p.archetype for p in builtin_catalog()}
        assert archetypes == set(Archetype)

    def test_empty_path_loads_builtin(self):
        assert [p.id for p in load_catalog(None)] == [p.id for p in builtin_catalog()]
        assert len(load_catalog("")) == 20

    def test_get_persona(self):
        personas = builtin_catalog()
        assert get_persona(personas, 7).id == 7
        assert get_persona(personas, 999) is None


class TestPersonaValidation:
    def test_traits_must_be_unit_interval(self, make_persona):
        with pytest.raises(ValidationError):
            make_persona(base_price_sensitivity=1.5)

    def test_budget_range_must_be_ordered(self, make_persona):
        with pytest.raises(ValidationError):
            make_persona(budget_range=(20.0, 10.0))

    def test_preferred_times_required(self, make_persona):
        with pytest.raises(ValidationError):
            make_persona(preferred_times=())

    def test_personas_are_immutable(self, make_persona):
        persona = make_persona()
        with pytest.raises(ValidationError):
            persona.name = "Someone else"


class TestCatalogFiles:
    def test_save_and_load(self, tmp_path, make_persona):
        path = tmp_path / "catalog.yaml"
        personas = [
            make_persona(1, archetype="Retiree", preferred_times=("morning", "lunch")),
            make_persona(2, values_quality=True, backstory="Runs a bakery."),
        ]
        save_catalog(personas, path)
        loaded = load_catalog(path)
        assert loaded == personas

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError, match="not found"):
            load_catalog(tmp_path / "nope.yaml")

    def test_missing_personas_key(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(yaml.safe_dump({"people": []}))
        with pytest.raises(CatalogError, match="personas"):
            load_catalog(path)

    def test_invalid_persona(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(yaml.safe_dump({"personas": [{"id": 1, "name": "Half"}]}))
        with pytest.raises(CatalogError, match="invalid"):
            load_catalog(path)

    def test_duplicate_ids(self, tmp_path, make_persona):
        path = tmp_path / "catalog.yaml"
        save_catalog([make_persona(3), make_persona(4)], path)
        data = yaml.safe_load(path.read_text())
        data["personas"][1]["id"] = 3
        path.write_text(yaml.safe_dump(data))
        with pytest.raises(CatalogError, match="duplicate"):
            load_catalog(path)

    def test_unparsable_yaml(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("personas: [unclosed")
        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_loaded_personas_are_persona_models(self, tmp_path, make_persona):
        path = tmp_path / "catalog.yaml"
        save_catalog([make_persona(5)], path)
        assert isinstance(load_catalog(path)[0], Persona)
