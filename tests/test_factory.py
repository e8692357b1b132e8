"""Tests for ChartFactory."""

import asyncio

import pytest

from chart_service.plugins.datatypes import DataColumn
from chart_service.plugins.errors import (
    InvalidConfigurationError,
    InvalidStateError,
    PluginNotFoundError,
)
from chart_service.plugins.factory import ChartFactory, InstantiationRequest
from chart_service.plugins.registry import RegistryState


class _Renderer:
    """Stand-in renderer capability."""

    def __call__(self, data, configuration):
        return {"rows": len(data), "configuration": configuration}


@pytest.fixture
def renderer():
    return _Renderer()


@pytest.fixture
def descriptors(make_descriptor, donut_properties, renderer):
    return [
        make_descriptor(
            library="echarts",
            name="bar",
            properties={
                "xField": {"kind": "string", "field_role": "x-axis"},
                "yField": {"kind": "select", "field_role": "y-axis"},
                "stacked": {"kind": "boolean", "default": False},
            },
            required_keys=["yField"],
            data_requirements={
                "min_columns": 2,
                "required_field_roles": ["x-axis", "y-axis"],
            },
            renderer=renderer,
        ),
        make_descriptor(
            library="echarts",
            name="pie",
            category="composition",
            properties=donut_properties,
            required_keys=["donutInnerRadius"],
        ),
        make_descriptor(
            library="chartjs",
            name="bar",
            properties={"borderRadius": {"kind": "number", "default": 4}},
            required_keys=["borderRadius"],
            data_requirements={"min_columns": 1, "required_field_roles": ["x-axis"]},
        ),
    ]


@pytest.fixture
def factory(descriptors):
    async def loader(registry):
        return descriptors

    factory = ChartFactory(loader=loader)
    asyncio.run(factory.initialize())
    return factory


class TestLifecycle:
    """Tests for initialize and state gating."""

    def test_reads_refused_before_initialize(self):
        factory = ChartFactory(loader=lambda registry: [])
        assert factory.state == RegistryState.UNINITIALIZED
        with pytest.raises(InvalidStateError):
            factory.resolve("bar", "echarts")
        with pytest.raises(InvalidStateError):
            factory.available_plugins()

    def test_concurrent_initialize_loads_once(self, make_descriptor):
        calls = []

        async def loader(registry):
            calls.append(1)
            await asyncio.sleep(0.01)
            return [make_descriptor()]

        factory = ChartFactory(loader=loader)

        async def run():
            await asyncio.gather(factory.initialize(), factory.initialize(), factory.initialize())

        asyncio.run(run())
        assert len(calls) == 1
        assert factory.is_ready

    def test_initialize_is_idempotent(self, factory):
        asyncio.run(factory.initialize())
        assert len(factory.available_plugins()) == 3

    def test_reinitialize(self, factory, make_descriptor):
        factory.loader = lambda registry: [make_descriptor(name="area")]
        asyncio.run(factory.reinitialize())
        assert [d.name for d in factory.available_plugins()] == ["area"]


class TestResolve:
    """Tests for resolve and support probes."""

    def test_resolve_returns_registered_descriptor(self, factory, descriptors):
        for d in descriptors:
            assert factory.resolve(d.key.name, d.key.library) == d

    def test_not_found_is_explicit(self, factory):
        with pytest.raises(PluginNotFoundError) as exc_info:
            factory.resolve("sunburst", "echarts")
        error = exc_info.value
        assert isinstance(error, LookupError)
        assert (error.chart_type, error.library) == ("sunburst", "echarts")
        assert "bar" in str(error)

    def test_no_cross_library_fallback(self, factory):
        with pytest.raises(PluginNotFoundError):
            factory.resolve("pie", "chartjs")

    def test_is_supported(self, factory):
        assert factory.is_supported("pie", "echarts")
        assert not factory.is_supported("pie", "chartjs")

    def test_config_schema(self, factory):
        schema = factory.config_schema("bar", "chartjs")
        assert list(schema.properties) == ["borderRadius"]


class TestConfiguration:
    """Tests for defaults, validation and instantiation."""

    def test_defaults_are_deterministic(self, factory):
        pie = factory.resolve("pie", "echarts")
        assert factory.default_configuration(pie) == factory.default_configuration(pie)

    def test_defaults_validate_when_required_keys_have_defaults(self, factory):
        chartjs_bar = factory.resolve("bar", "chartjs")
        report = factory.validate(chartjs_bar, factory.default_configuration(chartjs_bar))
        assert report.valid
        assert report.errors == ()

    def test_defaults_still_fail_for_required_key_without_default(self, factory):
        bar = factory.resolve("bar", "echarts")
        report = factory.validate(bar, factory.default_configuration(bar))
        assert [e.field for e in report.error_entries] == ["yField"]

    def test_required_select_reports_exactly_one_error(self, factory):
        bar = factory.resolve("bar", "echarts")
        report = factory.validate(bar, {})
        assert len(report.error_entries) == 1
        assert report.error_entries[0].field == "yField"
        assert report.warning_entries == []

    def test_unsatisfied_conditional_is_not_required(self, factory):
        pie = factory.resolve("pie", "echarts")
        report = factory.validate(pie, {"chartVariant": "pie"})
        assert report.valid
        assert all(e.field != "donutInnerRadius" for e in report.errors)

    def test_validate_with_columns(self, factory):
        bar = factory.resolve("bar", "echarts")
        columns = [DataColumn(name="revenue", declared_type="int"), DataColumn(name="region", declared_type="text")]
        report = factory.validate(bar, {"yField": "revenue", "xField": "revenue"}, columns)
        assert report.valid
        assert [e.field for e in report.warning_entries] == ["xField"]

    def test_instantiation_refused_for_invalid_configuration(self, factory):
        bar = factory.resolve("bar", "echarts")
        with pytest.raises(InvalidConfigurationError) as exc_info:
            factory.instantiation_request(bar, {"stacked": True})
        assert exc_info.value.key == ("echarts", "bar")
        assert not exc_info.value.report.valid

    def test_instantiation_request(self, factory, renderer):
        bar = factory.resolve("bar", "echarts")
        request = factory.instantiation_request(bar, {"yField": "orders", "xField": "region"})
        assert isinstance(request, InstantiationRequest)
        assert request.renderer is renderer
        assert request.resolved_configuration == {"stacked": False, "yField": "orders", "xField": "region"}
        assert "renderer" not in request.to_dict()

    def test_defaults_that_enable_a_required_conditional_are_refused(self, factory, make_descriptor):
        gauge = make_descriptor(
            name="gauge",
            properties={
                "chartVariant": {
                    "kind": "select",
                    "default": "donut",
                    "enum_values": [
                        {"label": "Pie", "value": "pie"},
                        {"label": "Donut", "value": "donut"},
                    ],
                },
                "donutInnerRadius": {
                    "kind": "number",
                    "conditional": {"field": "chartVariant", "value": "donut"},
                },
            },
            required_keys=["donutInnerRadius"],
        )
        with pytest.raises(InvalidConfigurationError) as exc_info:
            factory.instantiation_request(gauge, {})
        assert [e.field for e in exc_info.value.report.error_entries] == ["donutInnerRadius"]

    def test_error_message_lists_errors_only(self, factory):
        bar = factory.resolve("bar", "echarts")
        with pytest.raises(InvalidConfigurationError) as exc_info:
            factory.instantiation_request(bar, {"animation": False})
        message = str(exc_info.value)
        assert "yField" in message
        assert "animation" not in message

    def test_caller_values_win_and_dotted_keys_nest(self, factory):
        pie = factory.resolve("pie", "echarts")
        request = factory.instantiation_request(
            pie, {"legend.position": "bottom", "chartVariant": "donut", "donutInnerRadius": 30}
        )
        assert request.resolved_configuration == {
            "chartVariant": "donut",
            "donutInnerRadius": 30,
            "legend": {"show": True, "position": "bottom"},
        }

    def test_instantiation_does_not_mutate_input(self, factory):
        pie = factory.resolve("pie", "echarts")
        config = {"legend": {"position": "bottom"}}
        factory.instantiation_request(pie, config)
        assert config == {"legend": {"position": "bottom"}}


class TestCatalogue:
    """Tests for the catalogue delegations."""

    def test_delegations(self, factory):
        assert factory.categories() == ["comparison", "composition"]
        assert factory.libraries() == ["chartjs", "echarts"]
        assert factory.search_plugins("") == factory.available_plugins()
        assert [d.key for d in factory.plugins_by_library("echarts")] == [("echarts", "bar"), ("echarts", "pie")]
        assert [d.key for d in factory.plugins_by_category("composition")] == [("echarts", "pie")]
        assert factory.statistics().total == 3

    def test_compatible_columns(self, factory):
        columns = [DataColumn(name="n", declared_type="float"), DataColumn(name="c", declared_type="varchar")]
        assert [c.name for c in factory.compatible_columns("y-axis", columns)] == ["n"]
        assert factory.compatible_columns(None, columns) == columns

    def test_offerable_plugins(self, factory):
        text_only = [DataColumn(name="region", declared_type="text")]
        assert [d.key for d in factory.offerable_plugins(text_only)] == [
            ("echarts", "pie"),
            ("chartjs", "bar"),
        ]
