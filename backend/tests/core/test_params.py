"""Unit tests for core.params: template-allowed flag parsing and parameter classification."""

import pytest

from app.core.errors import ConfigError
from app.core.params import classify, parse_template_allowed
from app.models_route import ParamLocationEnum, ParameterDescriptor


def _desc(name: str, allowed: bool = False, location=ParamLocationEnum.PATH) -> ParameterDescriptor:
    return ParameterDescriptor(name=name, location=location, template_allowed=allowed)


class TestParseTemplateAllowed:
    @pytest.mark.parametrize("value", [True, "true", "TRUE", " True "])
    def test_true(self, value):
        assert parse_template_allowed(value) is True

    @pytest.mark.parametrize("value", [False, "false", "False"])
    def test_false(self, value):
        assert parse_template_allowed(value) is False

    @pytest.mark.parametrize("value", ["yes", 1, None, [], "1"])
    def test_invalid(self, value):
        with pytest.raises(ConfigError):
            parse_template_allowed(value, "GET /x table")


class TestClassify:
    def test_allowed_param_is_template_and_bound(self):
        tpl, bound = classify({"table": "orders"}, [_desc("table", allowed=True)])
        assert tpl == {"table": "orders"}
        assert bound == {"table": "orders"}

    def test_plain_param_only_bound(self):
        tpl, bound = classify({"id": "7"}, [_desc("id")])
        assert tpl == {}
        assert bound == {"id": "7"}

    def test_absent_param_bound_as_none(self):
        tpl, bound = classify({}, [_desc("table", allowed=True)])
        assert tpl == {}
        assert bound == {"table": None}

    def test_undeclared_raw_ignored(self):
        tpl, bound = classify({"x": "1"}, [])
        assert tpl == {} and bound == {}

    def test_body_keys_bound(self):
        tpl, bound = classify({}, [], {"name": "a", "qty": 2})
        assert tpl == {}
        assert bound == {"name": "a", "qty": 2}

    def test_body_template_allowed(self):
        body = {"name": "text"}
        tpl, bound = classify({}, [], body, body_template_allowed=True)
        assert tpl == {"body": body}
        assert bound == {"name": "text"}

    def test_declared_param_wins_over_body_key(self):
        _, bound = classify({"id": "path"}, [_desc("id")], {"id": "body"})
        assert bound["id"] == "path"

    def test_body_key_kept_when_declared_param_absent(self):
        desc = _desc("name", location=ParamLocationEnum.BODY)
        _, bound = classify({}, [desc], {"name": "x"})
        assert bound["name"] == "x"
