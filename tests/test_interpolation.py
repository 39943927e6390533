"""
Tests for template interpolation and builtin functions.
"""

import base64
import re

import pytest

from varcontext import ExpressionError, Interpolator


class TestInterpolator:
    """Test template evaluation."""

    def setup_method(self):
        """Set up test fixtures."""
        self.interpolator = Interpolator()

    def test_plain_text_unchanged(self):
        assert self.interpolator.evaluate('no-template', {}) == 'no-template'

    def test_simple_variable(self):
        assert self.interpolator.evaluate('${a}', {'a': 'value'}) == 'value'

    def test_mixed_text(self):
        result = self.interpolator.evaluate('${prefix}-db-${index + 1}', {'prefix': 'svc', 'index': 0})
        assert result == 'svc-db-1'

    def test_values_are_rendered_as_strings(self):
        scope = {'n': 3, 'f': 3.14, 't': True, 'l': [1, 2], 'm': {'b': 1, 'a': 2}, 'none': None}
        assert self.interpolator.evaluate('${n}', scope) == '3'
        assert self.interpolator.evaluate('${f}', scope) == '3.14'
        assert self.interpolator.evaluate('${t}', scope) == 'true'
        assert self.interpolator.evaluate('${l}', scope) == '[1, 2]'
        assert self.interpolator.evaluate('${m}', scope) == '{"a": 2, "b": 1}'
        assert self.interpolator.evaluate('${none}', scope) == ''

    def test_dollar_escape(self):
        assert self.interpolator.evaluate('cost: $${price}', {}) == 'cost: ${price}'
        assert self.interpolator.evaluate('$${a} is ${a}', {'a': 1}) == '${a} is 1'
        assert self.interpolator.evaluate('$$${a}', {'a': 1}) == '$${a}'

    def test_double_dollar_without_brace_kept(self):
        assert self.interpolator.evaluate('$$ and $$$', {}) == '$$ and $$$'

    def test_unrenderable_result(self):
        with pytest.raises(ExpressionError) as exc_info:
            self.interpolator.evaluate('${[dne]}', {})

        assert "can't render list value" in str(exc_info.value)

    def test_unrenderable_scope_value(self):
        with pytest.raises(ExpressionError) as exc_info:
            self.interpolator.evaluate('${o}', {'o': object()})

        assert "can't render object value" in str(exc_info.value)

    def test_lone_dollar_kept(self):
        assert self.interpolator.evaluate('$5 and $', {}) == '$5 and $'

    def test_braces_inside_expression(self):
        result = self.interpolator.evaluate('${json.marshal({"k": "}"})}', {})
        assert result == '{"k":"}"}'

    def test_conditional_expression(self):
        template = '${"large" if size > 10 else "small"}'
        assert self.interpolator.evaluate(template, {'size': 20}) == 'large'
        assert self.interpolator.evaluate(template, {'size': 1}) == 'small'

    def test_undefined_variable(self):
        with pytest.raises(ExpressionError) as exc_info:
            self.interpolator.evaluate('${dne}', {})

        assert "'dne' is undefined" in str(exc_info.value)

    def test_undefined_in_operation(self):
        with pytest.raises(ExpressionError):
            self.interpolator.evaluate('${dne + 1}', {})

    def test_unterminated_expression(self):
        with pytest.raises(ExpressionError) as exc_info:
            self.interpolator.evaluate('abc ${a', {'a': 1})

        assert 'unterminated expression starting at offset 4' in str(exc_info.value)

    def test_syntax_error(self):
        with pytest.raises(ExpressionError) as exc_info:
            self.interpolator.evaluate('${1 +}', {})

        assert 'parse error' in str(exc_info.value)

    def test_runtime_error(self):
        with pytest.raises(ExpressionError) as exc_info:
            self.interpolator.evaluate('${1 / 0}', {})

        assert 'ZeroDivisionError' in str(exc_info.value)

    def test_sandbox_blocks_private_attributes(self):
        with pytest.raises(ExpressionError):
            self.interpolator.evaluate('${a.__class__.__mro__}', {'a': 'x'})

    def test_sandbox_blocks_mutation(self):
        with pytest.raises(ExpressionError):
            self.interpolator.evaluate('${items.append(4)}', {'items': [1, 2, 3]})

    def test_scope_shadows_functions(self):
        assert self.interpolator.evaluate('${counter}', {'counter': 'mine'}) == 'mine'

    def test_custom_functions(self):
        interpolator = Interpolator(functions={'double': lambda value: value * 2})
        assert interpolator.evaluate('${double(21)}', {}) == '42'


class TestBuiltinFunctions:
    """Test the builtin function table."""

    def setup_method(self):
        """Set up test fixtures."""
        self.interpolator = Interpolator()

    def test_assert_passes(self):
        assert self.interpolator.evaluate('${assert(1 < 2, "math")}', {}) == 'true'

    def test_assert_fails(self):
        with pytest.raises(ExpressionError) as exc_info:
            self.interpolator.evaluate('${assert(false, "failure!")}', {})

        assert str(exc_info.value) == 'assert: Assertion failed: failure!'

    def test_regexp_matches(self):
        assert self.interpolator.evaluate('${regexp.matches("^[a-z]+$", name)}', {'name': 'abc'}) == 'true'
        assert self.interpolator.evaluate('${regexp.matches("^[a-z]+$", name)}', {'name': 'ABC'}) == 'false'

    def test_regexp_invalid_pattern(self):
        with pytest.raises(ExpressionError) as exc_info:
            self.interpolator.evaluate('${regexp.matches("(", "x")}', {})

        assert 'regexp.matches' in str(exc_info.value)

    def test_truncate(self):
        assert self.interpolator.evaluate('${str.truncate(3, "abcdef")}', {}) == 'abc'
        assert self.interpolator.evaluate('${str.truncate(10, "ab")}', {}) == 'ab'

    def test_query_escape(self):
        assert self.interpolator.evaluate('${str.queryEscape("a b&c")}', {}) == 'a+b%26c'

    def test_counter_increments_per_interpolator(self):
        assert self.interpolator.evaluate('${counter.next()}', {}) == '1'
        assert self.interpolator.evaluate('${counter.next()}-${counter.next()}', {}) == '2-3'
        assert Interpolator().evaluate('${counter.next()}', {}) == '1'

    def test_time_nano(self):
        assert re.fullmatch(r'\d+', self.interpolator.evaluate('${time.nano()}', {}))

    def test_rand_base64(self):
        value = self.interpolator.evaluate('${rand.base64(32)}', {})
        assert len(base64.urlsafe_b64decode(value)) == 32

    def test_json_marshal(self):
        result = self.interpolator.evaluate('${json.marshal(m)}', {'m': {'b': [1, True], 'a': None}})
        assert result == '{"a":null,"b":[1,true]}'

    def test_map_flatten(self):
        result = self.interpolator.evaluate('${map.flatten(":", ",", m)}', {'m': {'b': 2, 'a': 'x'}})
        assert result == 'a:x,b:2'

    def test_map_flatten_requires_map(self):
        with pytest.raises(ExpressionError):
            self.interpolator.evaluate('${map.flatten(":", ",", "x")}', {})
