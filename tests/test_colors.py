import pytest

from klogs.utils.colors import DisplayColor, build_prefix, color_for, colored


@pytest.mark.parametrize("uid", ["abc123", "", "7c1f0d6e-5b2a-4e0b-9b59-1d7a3f2c9e11", "ünïcödé"])
def test_color_is_deterministic(uid: str):
    assert color_for(uid) == color_for(uid)


def test_channels_are_pastel():
    for i in range(500):
        color = color_for(f"pod-uid-{i}")
        assert all(192 <= channel <= 255 for channel in color), color


def test_different_uids_spread_over_colors():
    colors = {color_for(f"pod-uid-{i}") for i in range(100)}
    assert len(colors) > 90


def test_empty_uid_is_valid():
    color = color_for("")
    assert isinstance(color, DisplayColor)
    assert all(192 <= channel <= 255 for channel in color)


def test_colored_wraps_text_in_truecolor_escape():
    assert colored("p1", DisplayColor(200, 210, 220)) == "\x1b[38;2;200;210;220mp1\x1b[0m"


def test_build_prefix_colors_every_segment():
    color = DisplayColor(192, 193, 194)
    prefix = build_prefix(["staging", "ops"], "p1", color)

    assert prefix == " | ".join(colored(segment, color) for segment in ["staging", "ops", "p1"])


def test_build_prefix_without_scope_labels():
    color = DisplayColor(255, 255, 255)
    assert build_prefix([], "p1", color) == colored("p1", color)
