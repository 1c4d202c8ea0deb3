"""
Unit tests for laborders.clinical: 纯函数，不需要数据库。

覆盖：参考范围解析 / 选择、结果数值化、delta check（50% 边界）、异常判定。
"""
import pytest

from laborders.clinical import (
    ReferenceRange,
    coerce_result_value,
    delta_check_failed,
    is_numeric,
    is_outside_range,
    parse_reference_range,
    range_from_catalog_entry,
    select_reference_range,
)


class TestParseReferenceRange:

    def test_with_units(self):
        assert parse_reference_range('70 - 99 mg/dL') == ReferenceRange(70.0, 99.0, 'mg/dL')

    def test_decimals_without_units(self):
        assert parse_reference_range('4.5-11.0') == ReferenceRange(4.5, 11.0, '')

    @pytest.mark.parametrize('text', ['', 'negative', '99 - 70 mg/dL', '< 200'])
    def test_unparsable_returns_none(self, text):
        assert parse_reference_range(text) is None

    def test_display(self):
        assert ReferenceRange(70.0, 99.0, 'mg/dL').display() == '70 - 99 mg/dL'
        assert ReferenceRange(4.5, 11.0).display() == '4.5 - 11'


class TestSelectReferenceRange:

    def test_dict_entry(self):
        rng = range_from_catalog_entry({'rangeLow': 70, 'rangeHigh': 99, 'units': 'mg/dL'})
        assert rng == ReferenceRange(70.0, 99.0, 'mg/dL')

    def test_first_range_wins(self):
        ranges = [
            {'ageMin': 0, 'ageMax': 17, 'gender': 'any', 'rangeLow': 60, 'rangeHigh': 100, 'units': 'mg/dL'},
            {'ageMin': 18, 'ageMax': 120, 'gender': 'any', 'rangeLow': 70, 'rangeHigh': 99, 'units': 'mg/dL'},
        ]
        assert select_reference_range(ranges).low == 60.0

    def test_skips_unparsable_entries(self):
        assert select_reference_range(['n/a', '0 - 200 mg/dL']).high == 200.0

    def test_empty(self):
        assert select_reference_range([]) is None
        assert select_reference_range(None) is None


class TestCoerceResultValue:

    @pytest.mark.parametrize('raw, expected', [
        ('85', 85.0),
        (' 7.25 ', 7.25),
        ('-3', -3.0),
        (120, 120),
    ])
    def test_numeric(self, raw, expected):
        assert coerce_result_value(raw) == expected

    @pytest.mark.parametrize('raw', ['trace', 'positive', '12 mg', '', 'nan', 'inf'])
    def test_text_kept_as_given(self, raw):
        assert coerce_result_value(raw) == raw

    def test_bool_is_not_numeric(self):
        assert not is_numeric(True)


class TestDeltaCheck:

    def test_exactly_fifty_percent_passes(self):
        assert delta_check_failed(150, 100) is False

    def test_just_over_fifty_percent_fails(self):
        assert delta_check_failed(151, 100) is True

    def test_decrease_counts(self):
        assert delta_check_failed(49, 100) is True
        assert delta_check_failed(50, 100) is False

    def test_zero_previous_skipped(self):
        assert delta_check_failed(500, 0) is False

    @pytest.mark.parametrize('new, previous', [('trace', 100), (100, 'trace'), (100, None)])
    def test_non_numeric_skipped(self, new, previous):
        assert delta_check_failed(new, previous) is False

    def test_custom_threshold(self):
        assert delta_check_failed(111, 100, threshold_percent=10) is True


class TestIsOutsideRange:

    rng = ReferenceRange(70.0, 99.0, 'mg/dL')

    def test_inside_and_bounds(self):
        assert not is_outside_range(85, self.rng)
        assert not is_outside_range(70, self.rng)
        assert not is_outside_range(99, self.rng)

    def test_outside(self):
        assert is_outside_range(69.9, self.rng)
        assert is_outside_range(100, self.rng)

    def test_text_or_missing_range(self):
        assert not is_outside_range('trace', self.rng)
        assert not is_outside_range(200, None)
