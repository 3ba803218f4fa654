"""Tests for the parsing helpers in ``melody_composer.utils``."""

import importlib
import sys
from enum import Enum
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

utils = importlib.import_module("melody_composer.utils")


@pytest.mark.parametrize("text, expected", [("4/4", (4, 4)), ("7/8", (7, 8)), (" 13 / 16 ", (13, 16)), ("3/2", (3, 2))])
def test_valid_time_signatures(text, expected):
    assert utils.validate_time_signature(text) == expected


@pytest.mark.parametrize("text", ["4", "4/3", "0/4", "33/4", "a/b", "4/4/4", "4/64"])
def test_invalid_time_signatures(text):
    with pytest.raises(ValueError):
        utils.validate_time_signature(text)


def test_parse_key_accepts_numbers_and_names():
    assert utils.parse_key("60") == 60
    assert utils.parse_key("D4") == 62
    with pytest.raises(ValueError):
        utils.parse_key("200")
    with pytest.raises(ValueError):
        utils.parse_key("Q4")


class _Style(Enum):
    PLAIN = "Plain"
    ARP_UP = "ArpUp"
    THREE_TWO = "3:2"


@pytest.mark.parametrize("name", ["arp-up", "ArpUp", "ARP_UP", "arp up"])
def test_enum_by_name_normalises(name):
    assert utils.enum_by_name(_Style, name, _Style.PLAIN) is _Style.ARP_UP


def test_enum_by_name_falls_back():
    assert utils.enum_by_name(_Style, "3:2", _Style.PLAIN) is _Style.THREE_TWO
    assert utils.enum_by_name(_Style, "unknown", _Style.PLAIN) is _Style.PLAIN
    assert utils.enum_by_name(_Style, _Style.ARP_UP, _Style.PLAIN) is _Style.ARP_UP
