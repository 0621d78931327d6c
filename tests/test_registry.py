"""Tests for Registry, model registration and settings."""

import json
import logging

import pytest
from redis.asyncio import Redis

from nohm import NohmModel, NohmSettings, Registry
from nohm.exceptions import ConfigurationError, ModelDefinitionError
from nohm.models import PropertyDefinition, ScalarKind


@pytest.mark.unit
class TestRegister:
    """Test binding model classes."""

    def test_decorator(self, registry):
        """Test class-based models get their name and parsed definitions."""

        @registry.register
        class Product(NohmModel):
            definitions = {
                "title": {"type": "string", "validations": ["notEmpty"]},
                "price": {"type": "number", "index": True},
            }

        assert Product.model_name == "Product"
        assert Product.registry is registry
        assert isinstance(Product.definitions["price"], PropertyDefinition)
        assert Product.definitions["price"].kind is ScalarKind.FLOAT
        assert registry.get_model("Product") is Product
        assert Product().property("title") == ""

    def test_explicit_model_name(self, registry):
        """Test model_name on the class wins over the class name."""

        @registry.register
        class Thing(NohmModel):
            model_name = "Gadget"
            definitions = {"label": {"type": "string"}}

        assert registry.get_model("Gadget") is Thing
        assert "Thing" not in registry.get_models()

    def test_unregistered_class(self):
        """Test instances of unbound classes can't be created."""

        class Loose(NohmModel):
            definitions = {}

        with pytest.raises(ConfigurationError, match="not registered"):
            Loose()

    def test_unknown_model(self, registry):
        """Test looking up an unknown model."""
        with pytest.raises(ConfigurationError, match="Model 'Ghost' not found"):
            registry.get_model("Ghost")

    def test_name_with_delimiter(self, registry):
        """Test model names cannot contain ':'."""
        with pytest.raises(ConfigurationError, match="cannot contain"):
            registry.model("a:b", {})

    def test_property_name_with_delimiter(self, registry):
        """Test property names cannot contain ':'."""
        with pytest.raises(ModelDefinitionError, match="'Bad.a:b'"):
            registry.model("Bad", {"a:b": {"type": "string"}})

    def test_invalid_definition(self, registry):
        """Test invalid definitions name the model and property."""
        with pytest.raises(ModelDefinitionError) as exc_info:
            registry.model("Bad", {"size": {"type": "huge"}})
        assert exc_info.value.model_name == "Bad"
        assert exc_info.value.property_name == "size"

        with pytest.raises(ModelDefinitionError):
            registry.model("Bad", {"size": {"type": "integer", "colour": "red"}})

    def test_unknown_id_generator(self, registry):
        """Test unknown generator names are rejected at registration."""
        with pytest.raises(ConfigurationError, match="Unknown id generator"):
            registry.model("Bad", {}, id_generator="sequence")

    def test_reserved_name_warning(self, registry, caplog):
        """Test overriding public API names logs a warning."""
        with caplog.at_level(logging.WARNING, logger="nohm"):

            @registry.register
            class Odd(NohmModel):
                definitions = {"value": {"type": "integer"}}

                def sort(self):
                    return None

        assert "overrides reserved attribute 'sort'" in caplog.text

    def test_type_aliases(self, registry):
        """Test alias type names are normalized."""
        model = registry.model("Aliased", {
            "flag": {"type": "boolean"},
            "count": {"type": "int"},
            "when": {"type": "date"},
        })
        assert model.definitions["flag"].kind is ScalarKind.BOOL
        assert model.definitions["count"].kind is ScalarKind.INTEGER
        assert model.definitions["when"].kind is ScalarKind.TIMESTAMP

    def test_get_definitions_is_a_copy(self, user_model):
        """Test get_definitions can't change the model."""
        definitions = user_model.get_definitions()
        definitions.pop("name")
        assert "name" in user_model.definitions

    def test_get_validators(self, registry):
        """Test the validator table includes built-ins and registered ones."""
        registry.validators.register("odd")(lambda value, options: value % 2 == 1)
        table = registry.get_validators()
        assert "notEmpty" in table
        assert "odd" in table


@pytest.mark.unit
class TestMeta:
    """Test meta keys and versions."""

    def test_version_depends_on_definitions(self, registry):
        """Test different definitions give different versions."""
        first = registry.model("Versioned", {"a": {"type": "string"}})
        version = registry.meta_version(first)
        assert version == registry.meta_version(first)

        second = registry.model("Versioned", {"a": {"type": "integer"}})
        assert registry.meta_version(second) != version

    @pytest.mark.asyncio
    async def test_properties_meta_is_json(self, user_model, registry, redis_client):
        """Test the stored definitions are readable JSON."""
        await registry.ensure_meta(user_model)
        stored = json.loads(await redis_client.get(registry.keys.meta("properties", "User")))
        assert stored["visits"]["type"] == "integer"
        assert stored["visits"]["index"] is True
        assert stored["email"]["validations"][0]["name"] == "email"


@pytest.mark.unit
class TestPrefixAndPurge:
    """Test set_prefix and purge_db."""

    @pytest.mark.asyncio
    async def test_set_prefix(self, user_model, registry, redis_client):
        """Test models write under the new prefix."""
        registry.set_prefix("elsewhere:")
        assert registry.keys.prefix == "elsewhere"

        user = user_model()
        user.property("name", "Moved")
        await user.save()
        assert await redis_client.exists(f"elsewhere:hash:User:{user.id}")

    @pytest.mark.asyncio
    async def test_purge_only_own_prefix(self, user_model, registry, redis_client):
        """Test purge_db deletes this prefix and nothing else."""
        other = Registry(redis_client, NohmSettings(prefix="neighbour"))
        neighbour_model = other.model("User", {"name": {"type": "string"}})
        await neighbour_model().save()

        for name in ("A", "B", "C"):
            user = user_model()
            user.property("name", name)
            await user.save()

        deleted = await registry.purge_db()
        assert deleted > 0
        assert [key async for key in redis_client.scan_iter(match=f"{registry.keys.prefix}:*")] == []
        assert await neighbour_model.find() != []

    @pytest.mark.asyncio
    async def test_purge_empty(self, registry):
        """Test purging an empty prefix."""
        assert await registry.purge_db() == 0

    @pytest.mark.asyncio
    async def test_purge_rewrites_meta(self, user_model, registry, redis_client):
        """Test meta keys are written again after a purge."""
        user = user_model()
        user.property("name", "A")
        await user.save()
        await registry.purge_db()

        user = user_model()
        user.property("name", "B")
        await user.save()
        assert await redis_client.exists(registry.keys.meta("version", "User"))


@pytest.mark.unit
class TestSettings:
    """Test NohmSettings and from_settings."""

    def test_defaults(self):
        """Test default settings."""
        settings = NohmSettings()
        assert settings.prefix == "nohm"
        assert settings.publish is False
        assert settings.id_generator == "default"

    def test_from_env(self, monkeypatch):
        """Test NOHM_* variables override defaults."""
        monkeypatch.setenv("NOHM_PREFIX", "envapp:")
        monkeypatch.setenv("NOHM_PUBLISH", "true")
        settings = NohmSettings.from_env()
        assert settings.prefix == "envapp"
        assert settings.publish is True

    def test_from_env_invalid(self, monkeypatch):
        """Test invalid variables raise ConfigurationError."""
        monkeypatch.setenv("NOHM_PUBLISH", "maybe")
        with pytest.raises(ConfigurationError, match="NOHM_"):
            NohmSettings.from_env()

    def test_load_or_default(self, tmp_path):
        """Test loading from a file, a missing file and an invalid file."""
        assert NohmSettings.load_or_default(tmp_path / "missing.json") == NohmSettings()

        path = tmp_path / "nohm.json"
        path.write_text(json.dumps({"prefix": "fromfile", "id_generator": "increment"}))
        settings = NohmSettings.load_or_default(path)
        assert settings.prefix == "fromfile"
        assert settings.id_generator == "increment"

        path.write_text(json.dumps({"prefix": ""}))
        with pytest.raises(ConfigurationError, match="nohm.json"):
            NohmSettings.load_or_default(path)

    @pytest.mark.asyncio
    async def test_from_settings(self):
        """Test a client is built from the redis URL."""
        registry = Registry.from_settings(NohmSettings(redis_url="redis://localhost:6379/3", prefix="x"))
        try:
            assert isinstance(registry.client, Redis)
            assert registry.client.connection_pool.connection_kwargs["db"] == 3
            assert registry.keys.prefix == "x"
        finally:
            await registry.client.aclose()

    @pytest.mark.asyncio
    async def test_registry_id_generator_setting(self, redis_client):
        """Test the registry-wide id generator applies to models without one."""
        registry = Registry(redis_client, NohmSettings(prefix="ids", id_generator="increment"))
        model = registry.model("Counted", {"n": {"type": "integer"}})
        instance = model()
        await instance.save()
        assert instance.id == "1"
