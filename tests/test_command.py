import argparse

import pytest

from componentkit.command import CommonOptions, add_common_options
from componentkit.terminal import Color, Verbosity


def _parse(args):
    parser = add_common_options(argparse.ArgumentParser(prog="tool"))
    return CommonOptions(**vars(parser.parse_args(args)))


def test_defaults():
    options = _parse([])
    assert options == CommonOptions(quiet=False, verbose=0, color=None)
    terminal = options.new_terminal()
    assert terminal.verbosity is Verbosity.NORMAL
    assert terminal.color is Color.AUTO


def test_verbose_count():
    options = _parse(["-vv"])
    assert options.verbose == 2
    assert options.new_terminal().verbosity is Verbosity.VERBOSE


def test_single_verbose():
    assert _parse(["--verbose"]).new_terminal().verbosity is Verbosity.VERBOSE


def test_quiet_wins_over_verbose():
    options = _parse(["-q", "-v"])
    assert options.quiet is True
    assert options.new_terminal().verbosity is Verbosity.QUIET


@pytest.mark.parametrize("value", ["auto", "never", "always"])
def test_color_option(value):
    options = _parse(["--color", value])
    assert str(options.color) == value
    assert options.new_terminal().color is options.color


def test_invalid_color_rejected(capsys):
    with pytest.raises(SystemExit) as excinfo:
        _parse(["--color", "rainbow"])
    assert excinfo.value.code == 2
    assert "must be auto, always, or never, but found `rainbow`" in capsys.readouterr().err


def test_direct_construction_never_color():
    terminal = CommonOptions(color=Color.NEVER).new_terminal()
    assert terminal.supports_color() is False
    assert terminal.verbosity is Verbosity.NORMAL