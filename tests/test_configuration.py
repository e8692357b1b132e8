"""Tests for configuration schema interpretation."""

import pytest

from chart_service.plugins.configuration import (
    MISSING,
    Severity,
    deep_merge,
    default_configuration,
    expand_dotted,
    get_value,
    resolve_configuration,
    set_value,
    validate_configuration,
)
from chart_service.plugins.datatypes import DataColumn
from chart_service.plugins.schema import ConfigSchema


def _schema(properties, required_keys=()):
    return ConfigSchema.model_validate({"properties": properties, "required_keys": list(required_keys)})


class TestDotPaths:
    """Tests for dot-path helpers."""

    def test_get_nested(self):
        assert get_value({"legend": {"position": "top"}}, "legend.position") == "top"

    def test_literal_dotted_key_wins(self):
        config = {"legend.position": "left", "legend": {"position": "top"}}
        assert get_value(config, "legend.position") == "left"

    def test_missing(self):
        assert get_value({"legend": True}, "legend.position") is MISSING
        assert get_value({}, "xField") is MISSING

    def test_set_value_creates_levels(self):
        config = {}
        set_value(config, "plugins.legend.display", False)
        assert config == {"plugins": {"legend": {"display": False}}}

    def test_expand_dotted_merges_with_nested(self):
        expanded = expand_dotted({"legend.position": "top", "legend": {"show": True}, "xField": "a"})
        assert expanded == {"legend": {"position": "top", "show": True}, "xField": "a"}

    def test_deep_merge_override_wins_without_mutation(self):
        base = {"legend": {"show": True, "position": "top"}, "color": "#fff"}
        merged = deep_merge(base, {"legend": {"position": "bottom"}})
        assert merged == {"legend": {"show": True, "position": "bottom"}, "color": "#fff"}
        assert base["legend"]["position"] == "top"


class TestDefaultConfiguration:
    """Tests for default_configuration."""

    def test_defaults_nested_and_conditional(self, donut_properties):
        config = default_configuration(_schema(donut_properties))
        assert config == {"chartVariant": "pie", "legend": {"show": True, "position": "right"}}

    def test_conditional_sees_earlier_defaults(self):
        schema = _schema({
            "chartVariant": {
                "kind": "select",
                "default": "donut",
                "enum_values": [{"label": "Donut", "value": "donut"}],
            },
            "donutInnerRadius": {
                "kind": "number",
                "default": 40,
                "conditional": {"field": "chartVariant", "value": "donut"},
            },
        })
        assert default_configuration(schema) == {"chartVariant": "donut", "donutInnerRadius": 40}

    def test_conditional_on_later_property_is_unsatisfied(self):
        schema = _schema({
            "labelPosition": {
                "kind": "string",
                "default": "top",
                "conditional": {"field": "showLabel", "value": True},
            },
            "showLabel": {"kind": "boolean", "default": True},
        })
        assert default_configuration(schema) == {"showLabel": True}

    def test_properties_without_default_are_omitted(self):
        schema = _schema({"yField": {"kind": "number"}}, required_keys=["yField"])
        assert default_configuration(schema) == {}

    def test_deterministic_and_independent(self):
        schema = _schema({"palette": {"kind": "array", "default": ["#111", "#222"]}})
        first = default_configuration(schema)
        first["palette"].append("#333")
        assert default_configuration(schema) == {"palette": ["#111", "#222"]}

    def test_unknown_kind_default_applied_verbatim(self):
        schema = _schema({"theme": {"kind": "gradient", "default": {"from": "red", "to": "blue"}}})
        assert default_configuration(schema) == {"theme": {"from": "red", "to": "blue"}}


class TestValidateConfiguration:
    """Tests for validate_configuration."""

    def test_required_select_without_default(self):
        schema = _schema(
            {"yField": {
                "kind": "select",
                "enum_values": [{"label": "Revenue", "value": "revenue"}],
                "field_role": "y-axis",
            }},
            required_keys=["yField"],
        )
        report = validate_configuration(schema, {})
        assert not report.valid
        assert [(e.field, e.severity) for e in report.errors] == [("yField", Severity.ERROR)]

    def test_required_select_without_options(self):
        schema = _schema({"yField": {"kind": "select", "field_role": "y-axis"}}, required_keys=["yField"])
        assert [e.field for e in validate_configuration(schema, {}).error_entries] == ["yField"]
        assert validate_configuration(schema, {"yField": "orders"}).errors == ()

    @pytest.mark.parametrize("blank", [None, ""])
    def test_blank_required_value_is_missing(self, blank):
        schema = _schema({"xField": {"kind": "string"}}, required_keys=["xField"])
        report = validate_configuration(schema, {"xField": blank})
        assert [e.field for e in report.error_entries] == ["xField"]

    def test_blank_optional_value_is_absent(self):
        schema = _schema({"lineWidth": {"kind": "number"}})
        assert validate_configuration(schema, {"lineWidth": None}).errors == ()

    @pytest.mark.parametrize(
        "prop, value",
        [
            ({"kind": "number"}, "2"),
            ({"kind": "number"}, True),
            ({"kind": "range", "bounds": {"minimum": 0, "maximum": 1}}, 1.5),
            ({"kind": "boolean"}, 1),
            ({"kind": "string"}, 3),
            ({"kind": "color"}, "#12"),
            ({"kind": "array"}, "a,b"),
            ({"kind": "select", "enum_values": [{"label": "One", "value": 1}]}, True),
        ],
    )
    def test_type_mismatch_is_error(self, prop, value):
        report = validate_configuration(_schema({"p": prop}), {"p": value})
        assert not report.valid
        assert report.error_entries[0].field == "p"

    @pytest.mark.parametrize(
        "prop, value",
        [
            ({"kind": "number"}, 2),
            ({"kind": "number"}, 2.5),
            ({"kind": "range", "bounds": {"minimum": 0, "maximum": 1}}, 1),
            ({"kind": "boolean"}, False),
            ({"kind": "color"}, "#5470c6"),
            ({"kind": "color"}, "rgba(0, 0, 0, 0.5)"),
            ({"kind": "color"}, "steelblue"),
            ({"kind": "array"}, ["a", "b"]),
            ({"kind": "select", "enum_values": [{"label": "One", "value": 1}]}, 1),
            ({"kind": "select"}, "revenue"),
            ({"kind": "gradient"}, {"anything": "goes"}),
        ],
    )
    def test_matching_values_pass(self, prop, value):
        assert validate_configuration(_schema({"p": prop}), {"p": value}).errors == ()

    def test_inactive_required_property_not_flagged(self, donut_properties):
        schema = _schema(donut_properties, required_keys=["donutInnerRadius"])
        report = validate_configuration(schema, {"chartVariant": "pie"})
        assert report.valid
        assert report.errors == ()

    def test_active_conditional_property_checked(self, donut_properties):
        schema = _schema(donut_properties, required_keys=["donutInnerRadius"])
        report = validate_configuration(schema, {"chartVariant": "donut"})
        assert [e.field for e in report.error_entries] == ["donutInnerRadius"]

    def test_inactive_value_is_not_unknown(self, donut_properties):
        schema = _schema(donut_properties)
        report = validate_configuration(schema, {"chartVariant": "pie", "donutInnerRadius": 500})
        assert report.errors == ()

    def test_unknown_keys_are_warnings(self, donut_properties):
        schema = _schema(donut_properties)
        report = validate_configuration(
            schema, {"animation": False, "legend": {"show": True, "itemGap": 4}}
        )
        assert report.valid
        assert sorted(e.field for e in report.warning_entries) == ["animation", "legend.itemGap"]

    def test_nested_and_dotted_values_validated(self, donut_properties):
        schema = _schema(donut_properties)
        assert not validate_configuration(schema, {"legend": {"show": True, "position": "middle"}}).valid
        assert not validate_configuration(schema, {"legend.show": True, "legend.position": "middle"}).valid
        assert validate_configuration(schema, {"legend.show": True, "legend.position": "bottom"}).valid

    def test_hidden_legend_position_not_checked(self, donut_properties):
        schema = _schema(donut_properties)
        assert validate_configuration(schema, {"legend": {"show": False, "position": "middle"}}).valid

    def test_column_warnings(self):
        schema = _schema({
            "xField": {"kind": "string", "field_role": "x-axis"},
            "yField": {"kind": "string", "field_role": "y-axis"},
            "extraFields": {"kind": "array", "field_role": "y-axis"},
        })
        columns = [
            DataColumn(name="region", declared_type="text"),
            DataColumn(name="revenue", declared_type="decimal(12,2)"),
        ]
        report = validate_configuration(
            schema,
            {"xField": "region", "yField": "region", "extraFields": ["revenue", "missing"]},
            columns,
        )
        assert report.valid
        assert [e.field for e in report.warning_entries] == ["yField", "extraFields"]
        assert "missing" in report.warning_entries[1].message

    def test_columns_ignored_when_not_given(self):
        schema = _schema({"yField": {"kind": "string", "field_role": "y-axis"}})
        assert validate_configuration(schema, {"yField": "region"}).errors == ()

    def test_report_to_dict(self):
        schema = _schema({"xField": {"kind": "string"}}, required_keys=["xField"])
        data = validate_configuration(schema, {"other": 1}).to_dict()
        assert data["valid"] is False
        assert [e["severity"] for e in data["errors"]] == ["error", "warning"]


class TestResolveConfiguration:
    """Tests for resolve_configuration."""

    def test_caller_values_win(self, donut_properties):
        resolved = resolve_configuration(
            _schema(donut_properties),
            {"chartVariant": "donut", "legend.position": "bottom", "categoryField": "region"},
        )
        assert resolved == {
            "chartVariant": "donut",
            "legend": {"show": True, "position": "bottom"},
            "categoryField": "region",
        }
