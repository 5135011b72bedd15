import sys

import pytest

from format_case import try_format, run_formatter, FormatResult
from ice_oracle import Oracle
from melt import prepare, MinimizationResult
from conftest import FAKE_RUSTFMT, ICE_SOURCE

FORMATTER = [sys.executable, FAKE_RUSTFMT]

UNFORMATTED = b'let_x = 1;\nx_used(needed);\n'


@pytest.fixture
def check(rustc_spec, scratch):
    return prepare(ICE_SOURCE, Oracle(), rustc_spec, tmp_root=scratch)


def minimized(source):
    return MinimizationResult.of(ICE_SOURCE, source)


def test_formatted_source_is_kept(check, monkeypatch):
    monkeypatch.setenv('FAKE_RUSTFMT_MODE', 'indent')
    res, fmt = try_format(minimized(UNFORMATTED), check, FORMATTER)
    assert fmt == FormatResult.changed
    assert res.final_source == b'    let_x = 1;\n    x_used(needed);\n'
    assert res.final_line_count == 2
    assert res.original_line_count == 6


def test_formatting_that_loses_the_ice_is_dropped(check, monkeypatch):
    monkeypatch.setenv('FAKE_RUSTFMT_MODE', 'break')
    before = minimized(UNFORMATTED)
    res, fmt = try_format(before, check, FORMATTER)
    assert fmt == FormatResult.no_ice
    assert res == before


def test_formatter_failure(check, monkeypatch):
    monkeypatch.setenv('FAKE_RUSTFMT_MODE', 'fail')
    before = minimized(UNFORMATTED)
    res, fmt = try_format(before, check, FORMATTER)
    assert fmt == FormatResult.couldnt_format
    assert res.final_source == UNFORMATTED


def test_missing_formatter(check):
    before = minimized(UNFORMATTED)
    res, fmt = try_format(before, check, ['/nonexistent/rustfmt'])
    assert fmt == FormatResult.couldnt_format
    assert res == before


def test_already_formatted(check, monkeypatch):
    monkeypatch.setenv('FAKE_RUSTFMT_MODE', 'noop')
    before = minimized(UNFORMATTED)
    res, fmt = try_format(before, check, FORMATTER)
    assert fmt == FormatResult.no_change
    assert res == before


def test_run_formatter(monkeypatch):
    monkeypatch.setenv('FAKE_RUSTFMT_MODE', 'indent')
    assert run_formatter(b'a\nb', FORMATTER) == b'    a\n    b\n'
    monkeypatch.setenv('FAKE_RUSTFMT_MODE', 'fail')
    assert run_formatter(b'a\nb', FORMATTER) is None


def test_formatting_that_adds_lines_is_dropped(check, monkeypatch, capsys):
    monkeypatch.setenv('FAKE_RUSTFMT_MODE', 'expand')
    before = MinimizationResult.of(UNFORMATTED, UNFORMATTED)
    res, fmt = try_format(before, check, FORMATTER)
    assert fmt == FormatResult.couldnt_format
    assert res == before
    err = capsys.readouterr().err
    assert 'longer than the original' in err
    assert 'Failed to format' not in err


def test_formatter_failure_is_reported(check, monkeypatch, capsys):
    monkeypatch.setenv('FAKE_RUSTFMT_MODE', 'fail')
    try_format(minimized(UNFORMATTED), check, FORMATTER)
    assert 'Failed to format' in capsys.readouterr().err
