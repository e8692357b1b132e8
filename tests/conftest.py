"""Shared fixtures for chart plugin tests."""

import pytest

from chart_service.plugins.descriptor import PluginDescriptor


def _build_descriptor(
    name="bar",
    library="echarts",
    category="comparison",
    properties=None,
    required_keys=(),
    **extra,
):
    data = {
        "name": name,
        "library": library,
        "display_name": extra.pop("display_name", f"{name.title()} Chart"),
        "category": category,
        "config_schema": {"properties": properties or {}, "required_keys": list(required_keys)},
    }
    data.update(extra)
    return PluginDescriptor.model_validate(data)


@pytest.fixture
def make_descriptor():
    """Factory fixture building PluginDescriptor objects from keyword overrides."""
    return _build_descriptor


@pytest.fixture
def donut_properties():
    """Pie-style schema with a conditional inner radius and nested legend keys."""
    return {
        "categoryField": {"kind": "string", "field_role": "category"},
        "valueField": {"kind": "string", "field_role": "value"},
        "chartVariant": {
            "kind": "select",
            "default": "pie",
            "enum_values": [
                {"label": "Pie", "value": "pie"},
                {"label": "Donut", "value": "donut"},
            ],
        },
        "donutInnerRadius": {
            "kind": "range",
            "default": 50,
            "bounds": {"minimum": 10, "maximum": 90},
            "conditional": {"field": "chartVariant", "value": "donut"},
        },
        "legend.show": {"kind": "boolean", "default": True},
        "legend.position": {
            "kind": "select",
            "default": "right",
            "enum_values": [
                {"label": "Right", "value": "right"},
                {"label": "Bottom", "value": "bottom"},
            ],
            "conditional": {"field": "legend.show", "value": True},
        },
    }
