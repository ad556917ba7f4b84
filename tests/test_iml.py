"""Tests for IML template rendering."""

import pytest

from everyrow_make.iml import render_template, render_value


class TestRenderTemplate:
    """Tests for render_template."""

    def test_parameter_string(self):
        assert render_template("Task: {{parameters.task}}", {"parameters": {"task": "Rank"}}) == "Task: Rank"

    def test_parameter_collection_as_json(self):
        context = {"parameters": {"rows": [{"name": "OpenAI"}]}}
        assert render_template("{{parameters.rows}}", context) == '[{"name":"OpenAI"}]'

    def test_nested_collection_keeps_unicode(self):
        context = {"parameters": {"d": [{"a": 1, "b": "é", "c": {"x": [True, None]}}]}}
        assert render_template("{{parameters.d}}", context) == '[{"a":1,"b":"é","c":{"x":[true,null]}}]'

    def test_parse_json_keeps_unicode(self):
        context = {"parameters": {"inputData": '[{"name": "Zürich AI"}]'}}
        assert render_template("{{parseJSON(parameters.inputData)}}", context) == '[{"name":"Zürich AI"}]'

    def test_parameter_scalars(self):
        context = {"parameters": {"flag": True, "n": 2.0, "x": 2.5}}
        assert render_template("{{parameters.flag}} {{parameters.n}} {{parameters.x}}", context) == "true 2 2.5"

    def test_missing_parameter_is_empty(self):
        assert render_template("[{{parameters.nope}}]", {}) == "[]"

    def test_temp_and_body(self):
        context = {"temp": {"session_id": "s-1"}, "body": {"task_id": "t-1", "count": 0}}
        template = "{{temp.session_id}}/{{body.task_id}}/{{body.count}}"
        assert render_template(template, context) == "s-1/t-1/"

    def test_parse_json_round_trip(self):
        context = {"parameters": {"inputData": '[{"name":"OpenAI"}]'}}
        assert render_template("{{parseJSON(parameters.inputData)}}", context) == '[{"name":"OpenAI"}]'

    def test_parse_json_invalid_string_raises(self):
        with pytest.raises(ValueError):
            render_template("{{parseJSON(parameters.inputData)}}", {"parameters": {"inputData": "not json"}})

    def test_parse_json_without_parameter_reference(self):
        assert render_template("{{parseJSON(temp.x)}}", {"temp": {"x": "[]"}}) == ""

    def test_plain_text_untouched(self):
        assert render_template("no expressions", {"parameters": {"a": 1}}) == "no expressions"


class TestRenderValue:
    """Tests for render_value."""

    def test_nested(self):
        value = {
            "url": "/tasks/{{parameters.taskId}}",
            "body": {"items": ["{{temp.a}}", 3, None]},
        }
        context = {"parameters": {"taskId": "t-1"}, "temp": {"a": "x"}}

        assert render_value(value, context) == {"url": "/tasks/t-1", "body": {"items": ["x", 3, None]}}
